"""
export.py: CSV / tab-separated downloads of the currently filtered rows.

CSV format: every field quoted, embedded quotes doubled, CR/LF/TAB collapsed to
a space, lines joined with "\\n", then a blank line and a TOTAL row.
"""

import csv
import io
import re

import pandas as pd

from fleet_dashboard import ledger

_WS = re.compile(r"[\r\n\t]")


def _clean(value):
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _WS.sub(" ", str(value)).strip()


def _value(row, getter):
    return getter(row) if callable(getter) else row.get(getter)


def _table(rows, columns):
    return [[_clean(_value(row, getter)) for _, getter in columns] for row in rows]


def to_csv(rows, columns, totals=None):
    """Serialize `rows` with `columns` ([(header, key-or-callable)]).

    `totals` maps header → value for the trailing TOTAL row.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([_clean(header) for header, _ in columns])
    writer.writerows(_table(rows, columns))
    if totals is not None:
        buf.write("\n")
        total_row = []
        for i, (header, _) in enumerate(columns):
            if i == 0:
                total_row.append("TOTAL")
            else:
                total_row.append(_clean(totals.get(header)))
        writer.writerow(total_row)
    return buf.getvalue().rstrip("\n")


def to_tsv(rows, columns):
    """Tab-separated "Excel" export."""
    df = pd.DataFrame(_table(rows, columns), columns=[h for h, _ in columns])
    return df.to_csv(sep="\t", index=False, lineterminator="\n")


def _totals(rows, columns, headers):
    getters = dict(columns)
    return {h: sum(ledger.num(_value(r, getters[h])) for r in rows) for h in headers}


# ── Column sets ──────────────────────────────────────────────────────────────

def report_columns(excluded=()):
    return [
        ("Date", "report_date"),
        ("Vehicle Plate", ledger.report_plate),
        ("Route", "route"),
        ("Status", "status"),
        ("Ticket Revenue (AOA)", lambda r: ledger.num(r.get("ticket_revenue"))),
        ("Baggage Revenue (AOA)", lambda r: ledger.num(r.get("baggage_revenue"))),
        ("Cargo Revenue (AOA)", lambda r: ledger.num(r.get("cargo_revenue"))),
        ("Total Revenue (AOA)", ledger.total_revenue),
        ("Total Expenses (AOA)", lambda r: ledger.total_expenses(r, excluded)),
        ("Net Balance (AOA)", lambda r: ledger.net_balance(r, excluded)),
        ("Non-Operational Reason", "non_operational_reason"),
    ]


DEPOSIT_COLUMNS = [
    ("Deposit Date", "deposit_date"),
    ("Bank", "bank_name"),
    ("Amount (AOA)", lambda d: ledger.num(d.get("amount"))),
    ("Reports", lambda d: len(d.get("deposit_reports") or [])),
    ("Slips", lambda d: len(d.get("deposit_slips") or [])),
]


def rental_columns(excluded=()):
    return [
        ("Start Date", "rental_start_date"),
        ("End Date", "rental_end_date"),
        ("Client", "client_name"),
        ("Vehicles", lambda r: ", ".join(
            (v.get("vehicles") or {}).get("plate", "") for v in (r.get("rental_vehicles") or []))),
        ("Status", "status"),
        ("Rental Amount (AOA)", lambda r: ledger.num(r.get("rental_amount"))),
        ("Expenses (AOA)", lambda r: ledger.rental_total_expenses(r, excluded)),
        ("Net Profit (AOA)", lambda r: ledger.rental_net_profit(r, excluded)),
    ]


INVENTORY_COLUMNS = [
    ("Date", "date"),
    ("Item Name", lambda i: i.get("item_name") or "N/A"),
    ("Description", "description"),
    ("Quantity (UN)", "quantity"),
    ("Amount Unit (Kz)", "amount_unit"),
    ("Total Cost (Kz)", "total_cost"),
]

MAINTENANCE_COLUMNS = [
    ("Date", "date"),
    ("Vehicle", lambda m: (m.get("vehicles") or {}).get("plate") or m.get("vehicle_plate")),
    ("Description", "description"),
    ("Status", "status"),
    ("Cost (Kz)", "cost"),
    ("Technician", "technician"),
    ("Parts", lambda m: ", ".join(m.get("parts") or [])),
]

COMPANY_EXPENSE_COLUMNS = [
    ("Date", "expense_date"),
    ("Category", "category"),
    ("Description", "description"),
    ("Amount (AOA)", "amount"),
]


# ── Exports ──────────────────────────────────────────────────────────────────

def export_reports(reports, excluded=()):
    cols = report_columns(excluded)
    return to_csv(reports, cols, _totals(reports, cols, [
        "Ticket Revenue (AOA)", "Baggage Revenue (AOA)", "Cargo Revenue (AOA)",
        "Total Revenue (AOA)", "Total Expenses (AOA)", "Net Balance (AOA)",
    ]))


def export_deposits(deposits):
    return to_csv(deposits, DEPOSIT_COLUMNS,
                  _totals(deposits, DEPOSIT_COLUMNS, ["Amount (AOA)", "Reports", "Slips"]))


def export_rentals(rentals, excluded=()):
    cols = rental_columns(excluded)
    return to_csv(rentals, cols, _totals(rentals, cols, [
        "Rental Amount (AOA)", "Expenses (AOA)", "Net Profit (AOA)",
    ]))


def export_inventory(items):
    return to_csv(items, INVENTORY_COLUMNS, _totals(items, INVENTORY_COLUMNS, ["Total Cost (Kz)"]))


def export_maintenance(records):
    return to_csv(records, MAINTENANCE_COLUMNS, _totals(records, MAINTENANCE_COLUMNS, ["Cost (Kz)"]))


def export_company_expenses(expenses):
    return to_csv(expenses, COMPANY_EXPENSE_COLUMNS,
                  _totals(expenses, COMPANY_EXPENSE_COLUMNS, ["Amount (AOA)"]))
