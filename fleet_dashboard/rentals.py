"""Vehicle rentals: vehicles, expenses and payment receipts per rental."""
import logging

from fleet_dashboard import ledger
from fleet_dashboard.errors import BackendError, ValidationError
from fleet_dashboard.theme import RENTAL_RECEIPT_BUCKET, RENTAL_STATUSES
from fleet_dashboard.uploads import upload_many, validate_attachment

log = logging.getLogger(__name__)

RENTAL_FIELDS = (
    "rental_start_date", "rental_end_date", "rental_amount", "client_name",
    "client_contact", "description", "status",
)


def _rental_values(data):
    values = {k: data.get(k) for k in RENTAL_FIELDS if k in data}
    for key in ("rental_start_date", "rental_end_date"):
        if key in values:
            try:
                values[key] = ledger.date_key(values[key])
            except ValueError:
                raise ValidationError("Rental dates must be valid dates.")
    if "rental_amount" in values:
        values["rental_amount"] = ledger.num(values["rental_amount"])
        if values["rental_amount"] <= 0:
            raise ValidationError("Rental amount must be positive.")
    start, end = values.get("rental_start_date"), values.get("rental_end_date")
    if start and end and end < start:
        raise ValidationError("Rental end date cannot be before the start date.")
    if values.get("status") and values["status"] not in RENTAL_STATUSES:
        raise ValidationError(f"Unknown rental status {values['status']!r}.")
    return values


def _expense_values(expense):
    amount = ledger.num(expense.get("amount"))
    if not expense.get("category") or amount <= 0:
        raise ValidationError("Every rental expense needs a category and a positive amount.")
    return {
        "category": expense["category"],
        "description": expense.get("description") or None,
        "amount": amount,
        "expense_date": expense.get("expense_date"),
    }


def create_rental(store, data, vehicle_ids, expenses=(), receipts=()):
    """Create a rental with its vehicles, expenses and payment receipts.

    `receipts` is [{"filename", "data", "amount", "payment_method"}].
    Returns (rental, failed_receipt_filenames); receipt failures do not undo
    the rental.
    """
    if not data.get("rental_start_date") or not data.get("rental_end_date") \
            or "rental_amount" not in data:
        raise ValidationError("Please fill out the rental dates and amount.")
    if not vehicle_ids:
        raise ValidationError("Please select at least one vehicle.")
    values = _rental_values(data)
    values.setdefault("status", "active")
    expense_rows = [_expense_values(e) for e in expenses]
    receipts = list(receipts)
    for receipt in receipts:
        ok, msg = validate_attachment(receipt["filename"], receipt["data"])
        if not ok:
            raise ValidationError(msg)

    rental = store.create_rental(values)
    rental_id = rental["id"]
    store.add_rental_vehicles(rental_id, list(dict.fromkeys(vehicle_ids)))
    for row in expense_rows:
        store.create_rental_expense(rental_id, row)

    uploaded, failed = upload_many(store, RENTAL_RECEIPT_BUCKET, str(rental_id),
                                   [(r["filename"], r["data"]) for r in receipts])
    for item in uploaded:
        meta = receipts[item["index"]]
        try:
            store.add_rental_receipt(rental_id, {
                "receipt_url": item["url"],
                "filename": item["filename"],
                "amount": ledger.num(meta.get("amount")),
                "payment_method": meta.get("payment_method"),
            })
        except BackendError as e:
            log.warning("Receipt %s not recorded on rental %s: %s", item["filename"], rental_id, e)
            failed.append((item["filename"], e))
    return rental, [name for name, _ in failed]


def update_rental(store, rental_id, data):
    return store.update_rental(rental_id, _rental_values(data))


def delete_rental(store, rental):
    """Receipt files go first (best effort), then child rows, then the rental."""
    for receipt in rental.get("rental_receipts") or []:
        try:
            store.delete_file(RENTAL_RECEIPT_BUCKET, receipt["receipt_url"])
        except BackendError as e:
            log.warning("Could not delete receipt %s: %s", receipt.get("receipt_url"), e)
    rental_id = rental["id"]
    store.delete_rental_receipts(rental_id)
    store.delete_rental_expenses(rental_id)
    store.delete_rental_vehicles(rental_id)
    store.delete_rental(rental_id)
