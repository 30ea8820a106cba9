"""Daily reports and their expenses: validation, CRUD, deletion guard."""
import logging

from fleet_dashboard import ledger
from fleet_dashboard.errors import BackendError, ReportLinkedError, ValidationError
from fleet_dashboard.theme import RECEIPT_BUCKET, REPORT_STATUSES, RESERVED_CATEGORIES
from fleet_dashboard.uploads import upload_many, validate_attachment

log = logging.getLogger(__name__)

REPORT_FIELDS = (
    "vehicle_id", "report_date", "route", "status", "non_operational_reason",
    "ticket_revenue", "baggage_revenue", "cargo_revenue",
)


def normalize_category(value):
    """Fold any casing of the reserved categories; pass everything else through."""
    if not isinstance(value, str):
        return value
    folded = value.strip().lower()
    for reserved in RESERVED_CATEGORIES:
        if folded == reserved.lower():
            return reserved
    return value


def _report_values(data):
    values = {k: data.get(k) for k in REPORT_FIELDS if k in data}
    for key in ("route", "non_operational_reason"):
        if key in values and not (values[key] or "").strip():
            values[key] = None
    for key in ledger.REVENUE_FIELDS:
        if key in values:
            values[key] = ledger.num(values[key])
            if values[key] < 0:
                raise ValidationError("Revenue amounts cannot be negative.")
    if "report_date" in values:
        try:
            values["report_date"] = ledger.date_key(values["report_date"])
        except ValueError:
            raise ValidationError("Report date is not a valid date.")
    return values


def create_report(store, data):
    if not data.get("vehicle_id") or not data.get("report_date") or not data.get("status"):
        raise ValidationError("Please fill out all required fields.")
    if data["status"] not in REPORT_STATUSES:
        raise ValidationError(f"Unknown status {data['status']!r}.")
    values = _report_values(data)
    for key in ledger.REVENUE_FIELDS:
        values.setdefault(key, 0.0)
    return store.create_report(values)


def update_report(store, report_id, data):
    if "status" in data and data["status"] not in REPORT_STATUSES:
        raise ValidationError(f"Unknown status {data['status']!r}.")
    return store.update_report(report_id, _report_values(data))


def _expense_values(data):
    category = normalize_category(data.get("category"))
    if not category or not str(category).strip():
        raise ValidationError("Please choose an expense category.")
    amount = ledger.num(data.get("amount"))
    if amount <= 0:
        raise ValidationError("Expense amount must be positive.")
    values = {
        "category": category,
        "description": (data.get("description") or "").strip() or None,
        "amount": amount,
    }
    if data.get("receipt_url"):
        values["receipt_url"] = data["receipt_url"]
    return values


def add_expense(store, report_id, data):
    return store.create_expense({**_expense_values(data), "report_id": report_id})


def update_expense(store, expense_id, data):
    return store.update_expense(expense_id, _expense_values(data))


def remove_expense(store, expense_id):
    return store.delete_expense(expense_id)


def edit_expense(store, expense, data, receipt=None, remove_receipt=False):
    """Update an expense; Fuel expenses may carry a receipt file.

    `receipt` is an optional (filename, bytes) replacing the current receipt;
    `remove_receipt` drops it.  The superseded file is deleted after the row
    is saved (best effort).  A receipt that fails to upload leaves the expense
    saved with its previous receipt.

    Returns (expense, receipt_failed).
    """
    values = _expense_values(data)
    old_url = expense.get("receipt_url")
    stale_url = None
    receipt_failed = False

    if receipt is not None:
        if values["category"] != "Fuel":
            raise ValidationError("Only fuel expenses carry a receipt.")
        ok, msg = validate_attachment(*receipt)
        if not ok:
            raise ValidationError(msg)
        prefix = f"fuel-{expense.get('report_id') or expense['id']}"
        uploaded, failed = upload_many(store, RECEIPT_BUCKET, prefix, [receipt])
        if uploaded:
            values["receipt_url"] = uploaded[0]["url"]
            if old_url != values["receipt_url"]:
                stale_url = old_url
        else:
            log.warning("Fuel receipt for expense %s not uploaded: %s", expense["id"], failed[0][1])
            receipt_failed = True
    elif remove_receipt and old_url:
        values["receipt_url"] = None
        stale_url = old_url

    updated = store.update_expense(expense["id"], values)
    if stale_url:
        try:
            store.delete_file(RECEIPT_BUCKET, stale_url)
        except BackendError as e:
            log.warning("Could not delete old receipt %s: %s", stale_url, e)
    return updated, receipt_failed


def expense_rows(reports, start=None, end=None, category=None):
    """Every expense across `reports`, newest report first.

    Each row is the expense dict plus `report_date` and `plate` of its report.
    """
    out = []
    for report in ledger.filter_by_date_range(reports, "report_date", start, end):
        for expense in report.get("daily_expenses") or []:
            if category and expense.get("category") != category:
                continue
            out.append({**expense, "report_id": report["id"],
                        "report_date": ledger.date_key(report["report_date"]),
                        "plate": ledger.report_plate(report)})
    out.sort(key=lambda e: e["report_date"], reverse=True)
    return out


def delete_report(store, report_id):
    """Delete a report and its expenses.  Refused while any deposit links it.

    Returns the number of expenses removed.
    """
    links = store.fetch_deposit_links(report_id)
    if links:
        raise ReportLinkedError(report_id, [link["deposit_id"] for link in links])
    removed = store.delete_expenses_for_report(report_id)
    store.delete_report(report_id)
    log.info("Deleted report %s with %d expense(s)", report_id, removed)
    return removed


def filter_reports(reports, start=None, end=None, report_type="all"):
    """Date-range and Agaseke/regular filtering for the reports page."""
    out = ledger.filter_by_date_range(reports, "report_date", start, end)
    return ledger.filter_by_report_type(out, report_type)
