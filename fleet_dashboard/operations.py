"""Vehicles, company expenses, maintenance records and inventory items (plain CRUD)."""
import logging

from fleet_dashboard import ledger
from fleet_dashboard.errors import BackendError, ValidationError
from fleet_dashboard.theme import MAINTENANCE_STATUSES, RECEIPT_BUCKET
from fleet_dashboard.uploads import upload_many, validate_attachment

log = logging.getLogger(__name__)

VEHICLES = "vehicles"
COMPANY_EXPENSES = "company_expenses"
MAINTENANCE = "maintenance_records"
INVENTORY = "inventory_items"


def _save(store, table, row_id, values):
    if row_id:
        return store.update_row(table, row_id, values)
    return store.create_row(table, values)


def _valid_date(value, label):
    try:
        return ledger.date_key(value)
    except ValueError:
        raise ValidationError(f"{label} is not a valid date.")


# ── Vehicles ────────────────────────────────────────────────────────────────

def save_vehicle(store, data, vehicle_id=None, vehicles=()):
    """Create or update a vehicle.  Plates are stored upper-case and must be unique."""
    plate = (data.get("plate") or "").strip().upper()
    model = (data.get("model") or "").strip()
    if not plate or not model:
        raise ValidationError("License plate and model are required.")
    for other in vehicles:
        if other.get("id") != vehicle_id and (other.get("plate") or "").upper() == plate:
            raise ValidationError(f"A vehicle with plate {plate} already exists.")
    return _save(store, VEHICLES, vehicle_id, {"plate": plate, "model": model})


def delete_vehicle(store, vehicle_id, reports=(), rentals=(), maintenance=()):
    """Delete a vehicle nothing refers to any more."""
    used = sum(1 for r in reports if r.get("vehicle_id") == vehicle_id)
    used += sum(1 for m in maintenance if m.get("vehicle_id") == vehicle_id)
    used += sum(1 for rental in rentals for link in rental.get("rental_vehicles") or []
                if link.get("vehicle_id") == vehicle_id)
    if used:
        raise ValidationError(f"This vehicle is used by {used} report(s), rental(s) or "
                              "maintenance record(s) and cannot be deleted.")
    return store.delete_row(VEHICLES, vehicle_id)


# ── Company expenses ────────────────────────────────────────────────────────

def save_company_expense(store, data, receipt=None, expense_id=None):
    """Create or update a company expense; `receipt` is an optional (filename, bytes)."""
    amount = ledger.num(data.get("amount"))
    if not data.get("category") or not data.get("expense_date") or amount <= 0:
        raise ValidationError("Please fill out date, category and a positive amount.")
    values = {
        "expense_date": _valid_date(data["expense_date"], "Expense date"),
        "category": data["category"],
        "description": (data.get("description") or "").strip() or None,
        "amount": amount,
    }
    if receipt is not None:
        ok, msg = validate_attachment(*receipt)
        if not ok:
            raise ValidationError(msg)
        uploaded, failed = upload_many(store, RECEIPT_BUCKET, "company-expenses", [receipt])
        if failed:
            raise failed[0][1]
        values["receipt_url"] = uploaded[0]["url"]
    return _save(store, COMPANY_EXPENSES, expense_id, values)


def delete_company_expense(store, expense):
    if expense.get("receipt_url"):
        try:
            store.delete_file(RECEIPT_BUCKET, expense["receipt_url"])
        except BackendError as e:
            log.warning("Could not delete receipt %s: %s", expense["receipt_url"], e)
    return store.delete_row(COMPANY_EXPENSES, expense["id"])


# ── Maintenance ─────────────────────────────────────────────────────────────

def save_maintenance_record(store, data, record_id=None):
    if not data.get("vehicle_id") or not data.get("date") or not data.get("description"):
        raise ValidationError("Please fill out vehicle, date and description.")
    status = data.get("status") or MAINTENANCE_STATUSES[0]
    if status not in MAINTENANCE_STATUSES:
        raise ValidationError(f"Unknown maintenance status {status!r}.")
    cost = ledger.num(data.get("cost"))
    if cost < 0:
        raise ValidationError("Cost cannot be negative.")
    parts = data.get("parts") or []
    if isinstance(parts, str):
        parts = [p.strip() for p in parts.split(",") if p.strip()]
    values = {
        "vehicle_id": data["vehicle_id"],
        "date": _valid_date(data["date"], "Maintenance date"),
        "description": data["description"].strip(),
        "status": status,
        "cost": cost,
        "technician": (data.get("technician") or "").strip() or None,
        "parts": parts,
    }
    return _save(store, MAINTENANCE, record_id, values)


def delete_maintenance_record(store, record_id):
    return store.delete_row(MAINTENANCE, record_id)


# ── Inventory ───────────────────────────────────────────────────────────────

def save_inventory_item(store, data, item_id=None):
    quantity = ledger.num(data.get("quantity"))
    amount_unit = ledger.num(data.get("amount_unit"))
    if not data.get("item_name") or not data.get("date"):
        raise ValidationError("Please fill out date and item name.")
    if quantity <= 0 or amount_unit < 0:
        raise ValidationError("Quantity must be positive and unit amount non-negative.")
    values = {
        "date": _valid_date(data["date"], "Item date"),
        "item_name": data["item_name"].strip(),
        "description": (data.get("description") or "").strip() or None,
        "quantity": quantity,
        "amount_unit": amount_unit,
        "total_cost": quantity * amount_unit,
    }
    return _save(store, INVENTORY, item_id, values)


def delete_inventory_item(store, item_id):
    return store.delete_row(INVENTORY, item_id)


def search_inventory(store, term):
    """Search-as-you-type lookup.  Failures clear the results instead of raising."""
    term = (term or "").strip()
    if len(term) < 2 or store is None:
        return []
    try:
        return store.search_inventory(term)
    except BackendError as e:
        log.debug("Inventory search for %r failed: %s", term, e)
        return []
