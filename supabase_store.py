"""
supabase_store.py: Every read and write the dashboard makes against Supabase.

Tables (Postgres via PostgREST) and Storage buckets are reached only through
`SupabaseStore`.  Reads always return full collections (paginated past the
1000-row limit); filtering happens in memory.  Every failure is re-raised as a
`BackendError` carrying an `ErrorKind`, so callers never parse error text.
"""

import logging
import os

from fleet_dashboard.errors import BackendError, ErrorKind, classify_backend_error
from fleet_dashboard.uploads import storage_key

log = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

PAGE_SIZE = 1000

REPORT_SELECT = "*, vehicles(plate), daily_expenses(*), deposit_reports(deposit_id)"
DEPOSIT_SELECT = "*, deposit_reports(report_id), deposit_slips(*)"
RENTAL_SELECT = ("*, rental_vehicles(*, vehicles(plate)), "
                 "rental_expenses(*), rental_receipts(*)")
MAINTENANCE_SELECT = "*, vehicles:vehicle_id(plate, model)"


# ── Supabase helpers ────────────────────────────────────────────────────────

def get_supabase_client():
    """Return a Supabase client, or None if credentials are missing."""
    from dotenv import load_dotenv
    load_dotenv(os.path.join(BASE_DIR, ".env"))

    url = os.environ.get("SUPABASE_URL", "")
    key = os.environ.get("SUPABASE_KEY", "")
    if not url or not key or "YOUR_PROJECT" in url:
        return None

    from supabase import create_client
    return create_client(url, key)


def _what(table):
    return table.replace("_", " ")


class SupabaseStore:
    """Backend contract implemented on supabase-py.

    `replace_deposit_links` is two separate requests (delete, then insert) and
    is not atomic: if the insert fails the removals stay applied, and two
    editors racing on the same deposit clobber each other.
    """

    def __init__(self, client):
        self.client = client

    # ── plumbing ─────────────────────────────────────────────────────────

    def _run(self, query, action, table):
        try:
            return query.execute()
        except Exception as e:
            err = classify_backend_error(e, action, what=_what(table))
            log.error("Supabase %s failed (%s): %s", action, err.kind.value, e)
            raise err from e

    def _fetch_all(self, table, select="*", order_col="id", desc=False):
        """Fetch all rows from a table, paginating past the 1000-row limit."""
        rows = []
        offset = 0
        while True:
            query = (
                self.client.table(table)
                .select(select)
                .order(order_col, desc=desc)
                .range(offset, offset + PAGE_SIZE - 1)
            )
            batch = self._run(query, f"load {_what(table)}", table).data or []
            rows.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            offset += PAGE_SIZE
        return rows

    def _insert(self, table, row):
        resp = self._run(self.client.table(table).insert(row), f"create {_what(table)}", table)
        data = resp.data or []
        if isinstance(row, list):
            return data
        if not data:
            raise BackendError(ErrorKind.UNKNOWN, f"create {_what(table)}", "no row returned",
                               what=_what(table))
        return data[0]

    def _update(self, table, row_id, values):
        resp = self._run(self.client.table(table).update(values).eq("id", row_id),
                         f"update {_what(table)}", table)
        if not resp.data:
            raise BackendError(ErrorKind.NOT_FOUND, f"update {_what(table)}", str(row_id),
                               what=_what(table))
        return resp.data[0]

    def _delete_where(self, table, column, value):
        resp = self._run(self.client.table(table).delete().eq(column, value),
                         f"delete {_what(table)}", table)
        return len(resp.data or [])

    # ── generic CRUD (company expenses, maintenance, inventory) ─────────

    def create_row(self, table, values):
        return self._insert(table, values)

    def update_row(self, table, row_id, values):
        return self._update(table, row_id, values)

    def delete_row(self, table, row_id):
        return self._delete_where(table, "id", row_id)

    # ── reads ────────────────────────────────────────────────────────────

    def fetch_reports(self):
        return self._fetch_all("daily_reports", REPORT_SELECT, "report_date", desc=True)

    def fetch_deposits(self):
        return self._fetch_all("bank_deposits", DEPOSIT_SELECT, "deposit_date", desc=True)

    def fetch_rentals(self):
        return self._fetch_all("vehicle_rentals", RENTAL_SELECT, "rental_start_date", desc=True)

    def fetch_vehicles(self):
        return self._fetch_all("vehicles", "*", "plate")

    def fetch_company_expenses(self):
        return self._fetch_all("company_expenses", "*", "expense_date", desc=True)

    def fetch_maintenance(self):
        return self._fetch_all("maintenance_records", MAINTENANCE_SELECT, "date", desc=True)

    def fetch_inventory(self):
        return self._fetch_all("inventory_items", "*", "date", desc=True)

    def fetch_deposit_links(self, report_id=None, deposit_id=None, report_ids=None):
        """Current deposit_reports rows, optionally narrowed by report or deposit."""
        query = self.client.table("deposit_reports").select("deposit_id, report_id")
        if report_id is not None:
            query = query.eq("report_id", report_id)
        if deposit_id is not None:
            query = query.eq("deposit_id", deposit_id)
        if report_ids is not None:
            query = query.in_("report_id", list(report_ids))
        return self._run(query, "check deposit links", "deposit_reports").data or []

    def search_inventory(self, term):
        query = (self.client.table("inventory_items").select("*")
                 .ilike("item_name", f"%{term}%").order("date", desc=True).limit(20))
        return self._run(query, "search inventory", "inventory_items").data or []

    # ── daily reports & expenses ─────────────────────────────────────────

    def create_report(self, values):
        return self._insert("daily_reports", values)

    def update_report(self, report_id, values):
        return self._update("daily_reports", report_id, values)

    def delete_report(self, report_id):
        return self._delete_where("daily_reports", "id", report_id)

    def create_expense(self, values):
        return self._insert("daily_expenses", values)

    def update_expense(self, expense_id, values):
        return self._update("daily_expenses", expense_id, values)

    def delete_expense(self, expense_id):
        return self._delete_where("daily_expenses", "id", expense_id)

    def delete_expenses_for_report(self, report_id):
        return self._delete_where("daily_expenses", "report_id", report_id)

    # ── bank deposits ────────────────────────────────────────────────────

    def create_deposit(self, values):
        return self._insert("bank_deposits", values)["id"]

    def update_deposit(self, deposit_id, values):
        return self._update("bank_deposits", deposit_id, values)

    def delete_deposit(self, deposit_id):
        self._delete_where("deposit_slips", "deposit_id", deposit_id)
        self._delete_where("deposit_reports", "deposit_id", deposit_id)
        return self._delete_where("bank_deposits", "id", deposit_id)

    def link_reports(self, deposit_id, report_ids):
        if not report_ids:
            return []
        rows = [{"deposit_id": deposit_id, "report_id": rid} for rid in report_ids]
        return self._insert("deposit_reports", rows)

    def unlink_reports(self, deposit_id, report_ids):
        if not report_ids:
            return 0
        query = (self.client.table("deposit_reports").delete()
                 .eq("deposit_id", deposit_id).in_("report_id", list(report_ids)))
        return len(self._run(query, "unlink reports", "deposit_reports").data or [])

    def replace_deposit_links(self, deposit_id, to_add, to_remove):
        self.unlink_reports(deposit_id, to_remove)
        self.link_reports(deposit_id, to_add)

    def add_deposit_slip(self, deposit_id, url, filename, size):
        return self._insert("deposit_slips", {
            "deposit_id": deposit_id, "url": url, "filename": filename, "size": size,
        })

    # ── vehicle rentals ──────────────────────────────────────────────────

    def create_rental(self, values):
        return self._insert("vehicle_rentals", values)

    def update_rental(self, rental_id, values):
        return self._update("vehicle_rentals", rental_id, values)

    def delete_rental(self, rental_id):
        return self._delete_where("vehicle_rentals", "id", rental_id)

    def add_rental_vehicles(self, rental_id, vehicle_ids):
        if not vehicle_ids:
            return []
        return self._insert("rental_vehicles",
                            [{"rental_id": rental_id, "vehicle_id": v} for v in vehicle_ids])

    def delete_rental_vehicles(self, rental_id):
        return self._delete_where("rental_vehicles", "rental_id", rental_id)

    def create_rental_expense(self, rental_id, values):
        return self._insert("rental_expenses", {**values, "rental_id": rental_id})

    def delete_rental_expenses(self, rental_id):
        return self._delete_where("rental_expenses", "rental_id", rental_id)

    def add_rental_receipt(self, rental_id, values):
        return self._insert("rental_receipts", {**values, "rental_id": rental_id})

    def delete_rental_receipts(self, rental_id):
        return self._delete_where("rental_receipts", "rental_id", rental_id)

    # ── storage ──────────────────────────────────────────────────────────

    def upload_file(self, bucket, path, data, content_type):
        """Upload bytes to `bucket/path` and return the public URL."""
        action = f"upload {path}"
        try:
            bucket_api = self.client.storage.from_(bucket)
            bucket_api.upload(path, data, {
                "content-type": content_type,
                "cache-control": "3600",
                "upsert": "false",
            })
            return bucket_api.get_public_url(path)
        except Exception as e:
            err = classify_backend_error(e, action, what=bucket)
            log.error("Storage %s failed (%s): %s", action, err.kind.value, e)
            raise err from e

    def delete_file(self, bucket, url):
        path = storage_key(url, bucket)
        if path is None:
            raise BackendError(ErrorKind.NOT_FOUND, f"delete file {url}", "not a storage URL",
                               what=bucket)
        try:
            self.client.storage.from_(bucket).remove([path])
        except Exception as e:
            raise classify_backend_error(e, f"delete file {path}", what=bucket) from e


def connect():
    """Build a SupabaseStore from .env credentials, or None when unconfigured."""
    client = get_supabase_client()
    if client is None:
        log.warning("SUPABASE_URL / SUPABASE_KEY not set; starting with empty data")
        return None
    return SupabaseStore(client)
