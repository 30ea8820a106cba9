"""Shared fixtures: an in-memory stand-in for SupabaseStore and row factories."""
import copy
import itertools

import pytest

from fleet_dashboard.errors import BackendError, ErrorKind
from fleet_dashboard.uploads import storage_key

STORAGE_URL = "https://fleet.supabase.co/storage/v1/object/public"

REGULAR_PLATE = "LD-10-20-AA"
AGASEKE_PLATE = "LDA-25-91-AD"


class FakeStore:
    """Implements the same methods as SupabaseStore over plain dicts.

    `fail_on` holds method names that raise BackendError; `fail_payloads`
    holds upload bodies that are rejected by upload_file.  Every call is
    appended to `calls` so tests can assert on side effects.
    """

    def __init__(self):
        self.tables = {}
        self.files = {}
        self.calls = []
        self.fail_on = set()
        self.fail_payloads = set()
        self._ids = itertools.count(1)

    # ── plumbing ─────────────────────────────────────────────────────────

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise BackendError(ErrorKind.UNKNOWN, name, "injected failure")

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def _insert(self, table, values):
        row = dict(values)
        row.setdefault("id", next(self._ids))
        self.rows(table).append(row)
        return copy.deepcopy(row)

    def _update(self, table, row_id, values):
        for row in self.rows(table):
            if row["id"] == row_id:
                row.update(values)
                return copy.deepcopy(row)
        raise BackendError(ErrorKind.NOT_FOUND, f"update {table}", str(row_id), what=table)

    def _delete_where(self, table, column, value):
        keep = [r for r in self.rows(table) if r.get(column) != value]
        removed = len(self.rows(table)) - len(keep)
        self.tables[table] = keep
        return removed

    def _where(self, table, column, value):
        return [copy.deepcopy(r) for r in self.rows(table) if r.get(column) == value]

    def _plate(self, vehicle_id):
        for v in self.rows("vehicles"):
            if v["id"] == vehicle_id:
                return {"plate": v["plate"]}
        return None

    # ── generic CRUD ─────────────────────────────────────────────────────

    def create_row(self, table, values):
        self._call("create_row", table)
        return self._insert(table, values)

    def update_row(self, table, row_id, values):
        self._call("update_row", table, row_id)
        return self._update(table, row_id, values)

    def delete_row(self, table, row_id):
        self._call("delete_row", table, row_id)
        return self._delete_where(table, "id", row_id)

    # ── reads ────────────────────────────────────────────────────────────

    def fetch_reports(self):
        self._call("fetch_reports")
        out = []
        for report in self.rows("daily_reports"):
            row = copy.deepcopy(report)
            row["vehicles"] = self._plate(report.get("vehicle_id"))
            row["daily_expenses"] = self._where("daily_expenses", "report_id", report["id"])
            row["deposit_reports"] = [{"deposit_id": link["deposit_id"]} for link in
                                      self._where("deposit_reports", "report_id", report["id"])]
            out.append(row)
        return sorted(out, key=lambda r: r["report_date"], reverse=True)

    def fetch_deposits(self):
        self._call("fetch_deposits")
        out = []
        for deposit in self.rows("bank_deposits"):
            row = copy.deepcopy(deposit)
            row["deposit_reports"] = [{"report_id": link["report_id"]} for link in
                                      self._where("deposit_reports", "deposit_id", deposit["id"])]
            row["deposit_slips"] = self._where("deposit_slips", "deposit_id", deposit["id"])
            out.append(row)
        return sorted(out, key=lambda d: d["deposit_date"], reverse=True)

    def fetch_rentals(self):
        self._call("fetch_rentals")
        out = []
        for rental in self.rows("vehicle_rentals"):
            row = copy.deepcopy(rental)
            row["rental_vehicles"] = [
                {**link, "vehicles": self._plate(link["vehicle_id"])}
                for link in self._where("rental_vehicles", "rental_id", rental["id"])
            ]
            row["rental_expenses"] = self._where("rental_expenses", "rental_id", rental["id"])
            row["rental_receipts"] = self._where("rental_receipts", "rental_id", rental["id"])
            out.append(row)
        return out

    def fetch_vehicles(self):
        self._call("fetch_vehicles")
        return copy.deepcopy(self.rows("vehicles"))

    def fetch_company_expenses(self):
        self._call("fetch_company_expenses")
        return copy.deepcopy(self.rows("company_expenses"))

    def fetch_maintenance(self):
        self._call("fetch_maintenance")
        return [{**copy.deepcopy(m), "vehicles": self._plate(m.get("vehicle_id"))}
                for m in self.rows("maintenance_records")]

    def fetch_inventory(self):
        self._call("fetch_inventory")
        return copy.deepcopy(self.rows("inventory_items"))

    def fetch_deposit_links(self, report_id=None, deposit_id=None, report_ids=None):
        self._call("fetch_deposit_links", report_id)
        links = self.rows("deposit_reports")
        if report_id is not None:
            links = [link for link in links if link["report_id"] == report_id]
        if deposit_id is not None:
            links = [link for link in links if link["deposit_id"] == deposit_id]
        if report_ids is not None:
            links = [link for link in links if link["report_id"] in report_ids]
        return [{"deposit_id": link["deposit_id"], "report_id": link["report_id"]}
                for link in links]

    def search_inventory(self, term):
        self._call("search_inventory", term)
        term = term.lower()
        return [copy.deepcopy(i) for i in self.rows("inventory_items")
                if term in (i.get("item_name") or "").lower()]

    # ── reports & expenses ───────────────────────────────────────────────

    def create_report(self, values):
        self._call("create_report")
        return self._insert("daily_reports", values)

    def update_report(self, report_id, values):
        self._call("update_report", report_id)
        return self._update("daily_reports", report_id, values)

    def delete_report(self, report_id):
        self._call("delete_report", report_id)
        return self._delete_where("daily_reports", "id", report_id)

    def create_expense(self, values):
        self._call("create_expense")
        return self._insert("daily_expenses", values)

    def update_expense(self, expense_id, values):
        self._call("update_expense", expense_id)
        return self._update("daily_expenses", expense_id, values)

    def delete_expense(self, expense_id):
        self._call("delete_expense", expense_id)
        return self._delete_where("daily_expenses", "id", expense_id)

    def delete_expenses_for_report(self, report_id):
        self._call("delete_expenses_for_report", report_id)
        return self._delete_where("daily_expenses", "report_id", report_id)

    # ── deposits ─────────────────────────────────────────────────────────

    def create_deposit(self, values):
        self._call("create_deposit")
        return self._insert("bank_deposits", values)["id"]

    def update_deposit(self, deposit_id, values):
        self._call("update_deposit", deposit_id)
        return self._update("bank_deposits", deposit_id, values)

    def delete_deposit(self, deposit_id):
        self._call("delete_deposit", deposit_id)
        self._delete_where("deposit_slips", "deposit_id", deposit_id)
        self._delete_where("deposit_reports", "deposit_id", deposit_id)
        return self._delete_where("bank_deposits", "id", deposit_id)

    def link_reports(self, deposit_id, report_ids):
        self._call("link_reports", deposit_id, list(report_ids))
        return [self._insert("deposit_reports", {"deposit_id": deposit_id, "report_id": rid})
                for rid in report_ids]

    def unlink_reports(self, deposit_id, report_ids):
        self._call("unlink_reports", deposit_id, list(report_ids))
        before = len(self.rows("deposit_reports"))
        self.tables["deposit_reports"] = [
            link for link in self.rows("deposit_reports")
            if not (link["deposit_id"] == deposit_id and link["report_id"] in report_ids)
        ]
        return before - len(self.rows("deposit_reports"))

    def replace_deposit_links(self, deposit_id, to_add, to_remove):
        self.unlink_reports(deposit_id, to_remove)
        self.link_reports(deposit_id, to_add)

    def add_deposit_slip(self, deposit_id, url, filename, size):
        self._call("add_deposit_slip", deposit_id, filename)
        return self._insert("deposit_slips", {"deposit_id": deposit_id, "url": url,
                                              "filename": filename, "size": size})

    # ── rentals ──────────────────────────────────────────────────────────

    def create_rental(self, values):
        self._call("create_rental")
        return self._insert("vehicle_rentals", values)

    def update_rental(self, rental_id, values):
        self._call("update_rental", rental_id)
        return self._update("vehicle_rentals", rental_id, values)

    def delete_rental(self, rental_id):
        self._call("delete_rental", rental_id)
        return self._delete_where("vehicle_rentals", "id", rental_id)

    def add_rental_vehicles(self, rental_id, vehicle_ids):
        self._call("add_rental_vehicles", rental_id, list(vehicle_ids))
        return [self._insert("rental_vehicles", {"rental_id": rental_id, "vehicle_id": v})
                for v in vehicle_ids]

    def delete_rental_vehicles(self, rental_id):
        self._call("delete_rental_vehicles", rental_id)
        return self._delete_where("rental_vehicles", "rental_id", rental_id)

    def create_rental_expense(self, rental_id, values):
        self._call("create_rental_expense", rental_id)
        return self._insert("rental_expenses", {**values, "rental_id": rental_id})

    def delete_rental_expenses(self, rental_id):
        self._call("delete_rental_expenses", rental_id)
        return self._delete_where("rental_expenses", "rental_id", rental_id)

    def add_rental_receipt(self, rental_id, values):
        self._call("add_rental_receipt", rental_id)
        return self._insert("rental_receipts", {**values, "rental_id": rental_id})

    def delete_rental_receipts(self, rental_id):
        self._call("delete_rental_receipts", rental_id)
        return self._delete_where("rental_receipts", "rental_id", rental_id)

    # ── storage ──────────────────────────────────────────────────────────

    def upload_file(self, bucket, path, data, content_type):
        self._call("upload_file", bucket, path)
        if data in self.fail_payloads:
            raise BackendError(ErrorKind.PERMISSION_DENIED, f"upload {path}", "rejected",
                               what=bucket)
        url = f"{STORAGE_URL}/{bucket}/{path}"
        self.files[url] = (bucket, content_type, data)
        return url

    def delete_file(self, bucket, url):
        self._call("delete_file", bucket, url)
        if storage_key(url, bucket) is None:
            raise BackendError(ErrorKind.NOT_FOUND, f"delete file {url}", what=bucket)
        self.files.pop(url, None)

    # ── seeding helpers ──────────────────────────────────────────────────

    def seed_vehicle(self, plate):
        return self._insert("vehicles", {"plate": plate, "model": "Coach"})["id"]

    def seed_report(self, vehicle_id, report_date, ticket=0, baggage=0, cargo=0,
                    expenses=(), status="Operational"):
        report = self._insert("daily_reports", {
            "vehicle_id": vehicle_id, "report_date": report_date, "status": status,
            "route": "LUANDA - HUAMBO", "non_operational_reason": None,
            "ticket_revenue": ticket, "baggage_revenue": baggage, "cargo_revenue": cargo,
        })
        for category, amount in expenses:
            self._insert("daily_expenses", {"report_id": report["id"], "category": category,
                                            "description": None, "amount": amount})
        return report["id"]

    def names(self):
        """Method names called so far, in order."""
        return [c[0] for c in self.calls]


@pytest.fixture
def store():
    fake = FakeStore()
    fake.regular_id = fake.seed_vehicle(REGULAR_PLATE)
    fake.agaseke_id = fake.seed_vehicle(AGASEKE_PLATE)
    return fake


def _make_report(report_id, report_date="2024-05-01", plate=REGULAR_PLATE, ticket=0, baggage=0,
                 cargo=0, expenses=(), deposit_ids=(), status="Operational"):
    return {
        "id": report_id,
        "report_date": report_date,
        "status": status,
        "vehicles": {"plate": plate} if plate else None,
        "ticket_revenue": ticket,
        "baggage_revenue": baggage,
        "cargo_revenue": cargo,
        "daily_expenses": [{"id": report_id * 100 + i, "category": c, "amount": a}
                           for i, (c, a) in enumerate(expenses)],
        "deposit_reports": [{"deposit_id": d} for d in deposit_ids],
    }


@pytest.fixture
def make_report():
    return _make_report


PDF = b"%PDF-1.4 slip"
PNG = b"\x89PNG\r\n\x1a\n receipt"


@pytest.fixture
def pdf_bytes():
    return PDF


@pytest.fixture
def png_bytes():
    return PNG
