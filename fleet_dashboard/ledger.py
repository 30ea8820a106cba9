"""
ledger.py: Net balances, deposit eligibility, and date grouping.

Every function here is pure.  Reports, deposits and rentals are the dict rows
held in data_state (same shape Supabase returns them in), and the set of
expense categories to leave out of a balance is always passed in by the
caller; there is no shared filter state.
"""

import math
from datetime import date, datetime

from fleet_dashboard.theme import (
    AGASEKE_PLATES, CURRENCY, FLAG_MAX_EXPENSES, FLAG_MIN_NET_MARGIN, RECORDS_PER_PAGE,
)

REVENUE_FIELDS = ("ticket_revenue", "baggage_revenue", "cargo_revenue")


# ══════════════════════════════════════════════════════════════════════════════
#  UTILITY FUNCTIONS
# ══════════════════════════════════════════════════════════════════════════════

def num(val):
    """Coerce a stored amount to float; missing or unparseable values are 0."""
    if val is None or val == "":
        return 0.0
    try:
        out = float(val)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(out) else out


def money(val):
    """Format a number as AOA X,XXX.XX."""
    val = num(val)
    if val < 0:
        return f"-{CURRENCY} {abs(val):,.2f}"
    return f"{CURRENCY} {val:,.2f}"


def date_key(value):
    """Date portion of a date, datetime or ISO string, as YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    return date.fromisoformat(text[:10]).isoformat()


def _excluded(excluded):
    return frozenset(excluded or ())


# ══════════════════════════════════════════════════════════════════════════════
#  NET BALANCE
# ══════════════════════════════════════════════════════════════════════════════

def total_revenue(report):
    return math.fsum(num(report.get(f)) for f in REVENUE_FIELDS)


def _expense_total(expenses, excluded):
    skip = _excluded(excluded)
    return math.fsum(num(e.get("amount")) for e in (expenses or [])
                     if e.get("category") not in skip)


def total_expenses(report, excluded=()):
    """Sum of the report's expenses whose category is not in `excluded`."""
    return _expense_total(report.get("daily_expenses"), excluded)


def net_balance(report, excluded=()):
    """Revenue minus (filtered) expenses.  Negative means the day ran at a loss."""
    return total_revenue(report) - total_expenses(report, excluded)


def rental_total_expenses(rental, excluded=()):
    return _expense_total(rental.get("rental_expenses"), excluded)


def rental_net_profit(rental, excluded=()):
    return num(rental.get("rental_amount")) - rental_total_expenses(rental, excluded)


# ══════════════════════════════════════════════════════════════════════════════
#  DEPOSIT ELIGIBILITY
# ══════════════════════════════════════════════════════════════════════════════

def report_plate(report):
    return (report.get("vehicles") or {}).get("plate")


def linked_deposit_ids(report):
    return [link["deposit_id"] for link in (report.get("deposit_reports") or [])
            if link.get("deposit_id") is not None]


def is_linked(report):
    return bool(linked_deposit_ids(report))


def classify_report(report, excluded=()):
    """Return "loss", "already_deposited" or "depositable".

    A non-positive balance is always a loss, linked or not.  Among positive
    balances the link decides.
    """
    if net_balance(report, excluded) <= 0:
        return "loss"
    if is_linked(report):
        return "already_deposited"
    return "depositable"


def bank_vehicle_rule(bank_name, plates):
    """Predicate forbidding vehicles in `plates` from being deposited into `bank_name`."""
    plates = frozenset(plates)

    def is_compatible(report, selected_bank):
        return not (selected_bank == bank_name and report_plate(report) in plates)

    return is_compatible


def selectable_reports(reports, excluded=(), deposit_id=None, bank_name=None,
                       is_compatible=None):
    """Reports that may be put on a deposit.

    Creating (`deposit_id` None): positive balance and not linked anywhere.
    Editing: additionally the reports already on `deposit_id`; reports on any
    other deposit are never offered.
    """
    out = []
    for report in reports:
        links = linked_deposit_ids(report)
        if deposit_id is not None and links and all(d == deposit_id for d in links):
            pass
        elif links or net_balance(report, excluded) <= 0:
            continue
        if is_compatible is not None and not is_compatible(report, bank_name):
            continue
        out.append(report)
    return out


def is_agaseke(report, plates=AGASEKE_PLATES):
    plate = report_plate(report)
    return bool(plate) and plate in plates


def deposit_amount(reports, selected_ids, excluded=()):
    """Sum of the selected reports' net balances."""
    by_id = {r["id"]: r for r in reports}
    return math.fsum(net_balance(by_id[rid], excluded) for rid in selected_ids if rid in by_id)


def latest_report_date(reports, selected_ids):
    selected = set(selected_ids)
    dates = [date_key(r["report_date"]) for r in reports if r["id"] in selected]
    return max(dates) if dates else None


def diff_links(current_ids, new_ids):
    """(to_add, to_remove) turning the link set `current_ids` into `new_ids`."""
    current = set(current_ids)
    wanted = set(new_ids)
    to_add, seen = [], set()
    for rid in new_ids:
        if rid not in current and rid not in seen:
            to_add.append(rid)
            seen.add(rid)
    to_remove = [rid for rid in dict.fromkeys(current_ids) if rid not in wanted]
    return to_add, to_remove


# ══════════════════════════════════════════════════════════════════════════════
#  DATE GROUPING
# ══════════════════════════════════════════════════════════════════════════════

def group_by_date(items, date_field, sums, distinct=None):
    """Group rows by calendar date, newest first.

    `sums` maps output name → per-row number; `distinct` maps output name →
    per-row value whose sorted distinct set is reported.  Rows keep their source
    order inside a group.
    """
    buckets = {}
    for item in items:
        buckets.setdefault(date_key(item.get(date_field)), []).append(item)

    groups = []
    for key in sorted(buckets, reverse=True):
        members = buckets[key]
        group = {"date": key, "items": members, "count": len(members)}
        for name, fn in sums.items():
            group[name] = math.fsum(fn(m) for m in members)
        for name, fn in (distinct or {}).items():
            group[name] = sorted({v for v in (fn(m) for m in members) if v is not None})
        groups.append(group)
    return groups


def group_reports_by_date(reports, excluded=()):
    groups = group_by_date(reports, "report_date", {
        "total_revenue": total_revenue,
        "total_expenses": lambda r: total_expenses(r, excluded),
        "net_balance": lambda r: net_balance(r, excluded),
    }, distinct={"plates": report_plate})
    for g in groups:
        g["vehicle_count"] = g["count"]
    return groups


def group_deposits_by_date(deposits):
    groups = group_by_date(deposits, "deposit_date", {
        "total_amount": lambda d: num(d.get("amount")),
        "report_count": lambda d: len(d.get("deposit_reports") or []),
    }, distinct={"banks": lambda d: d.get("bank_name")})
    for g in groups:
        g["deposit_count"] = g["count"]
        g["report_count"] = int(g["report_count"])
    return groups


def group_rentals_by_date(rentals, excluded=()):
    return group_by_date(rentals, "rental_start_date", {
        "total_amount": lambda r: num(r.get("rental_amount")),
        "total_expenses": lambda r: rental_total_expenses(r, excluded),
        "net_profit": lambda r: rental_net_profit(r, excluded),
    }, distinct={"clients": lambda r: r.get("client_name") or None})


# ══════════════════════════════════════════════════════════════════════════════
#  FILTERS, PAGING, FLAGS
# ══════════════════════════════════════════════════════════════════════════════

def filter_by_date_range(items, date_field, start=None, end=None):
    """Rows whose date lies in [start, end]; either bound may be omitted."""
    lo = date_key(start) if start else None
    hi = date_key(end) if end else None
    out = []
    for item in items:
        key = date_key(item.get(date_field))
        if lo and key < lo:
            continue
        if hi and key > hi:
            continue
        out.append(item)
    return out


def filter_by_report_type(reports, report_type="all", plates=AGASEKE_PLATES):
    if report_type == "agaseke":
        return [r for r in reports if is_agaseke(r, plates)]
    if report_type == "regular":
        return [r for r in reports if not is_agaseke(r, plates)]
    return list(reports)


def paginate(items, page, per_page=RECORDS_PER_PAGE):
    """Return (rows on `page`, total pages).  `page` is 1-based and clamped."""
    total_pages = math.ceil(len(items) / per_page) if items else 0
    page = min(max(1, int(page or 1)), max(total_pages, 1))
    start = (page - 1) * per_page
    return items[start:start + per_page], total_pages


def flag_reasons(report):
    revenue = total_revenue(report)
    expenses = total_expenses(report)
    net = revenue - expenses
    reasons = []
    if revenue > 0 and net / revenue < FLAG_MIN_NET_MARGIN:
        reasons.append(f"Low net revenue margin: {net / revenue * 100:.1f}% "
                       f"(< {FLAG_MIN_NET_MARGIN * 100:.0f}%)")
    if expenses > FLAG_MAX_EXPENSES:
        reasons.append(f"High expenses: {expenses:,.0f} {CURRENCY} "
                       f"(> {FLAG_MAX_EXPENSES:,} {CURRENCY})")
    return reasons


def is_flagged(report):
    return bool(flag_reasons(report))


# ══════════════════════════════════════════════════════════════════════════════
#  ANALYTICS
# ══════════════════════════════════════════════════════════════════════════════

def expense_breakdown(reports, excluded=()):
    """Per-category expense totals, largest first, with percentage of the whole."""
    skip = _excluded(excluded)
    totals = {}
    for report in reports:
        for exp in report.get("daily_expenses") or []:
            cat = exp.get("category") or "Other"
            if cat in skip:
                continue
            totals.setdefault(cat, []).append(num(exp.get("amount")))
    summed = {cat: math.fsum(vals) for cat, vals in totals.items()}
    grand = math.fsum(summed.values())
    return [
        {"category": cat, "amount": amt, "percentage": (amt / grand * 100) if grand else 0.0}
        for cat, amt in sorted(summed.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def vehicle_performance(reports, excluded=()):
    by_plate = {}
    for report in reports:
        plate = report_plate(report) or "Unknown"
        by_plate.setdefault(plate, []).append(report)

    rows = []
    for plate, items in by_plate.items():
        revenue = math.fsum(total_revenue(r) for r in items)
        expenses = math.fsum(total_expenses(r, excluded) for r in items)
        days = sum(1 for r in items if r.get("status") == "Operational")
        rows.append({
            "vehicle_plate": plate,
            "total_revenue": revenue,
            "total_expenses": expenses,
            "net_profit": math.fsum(net_balance(r, excluded) for r in items),
            "operational_days": days,
            "avg_daily_revenue": revenue / days if days else 0.0,
        })
    rows.sort(key=lambda row: (-row["net_profit"], row["vehicle_plate"]))
    return rows


def summarize(reports, excluded=()):
    revenue = math.fsum(total_revenue(r) for r in reports)
    expenses = math.fsum(total_expenses(r, excluded) for r in reports)
    net = math.fsum(net_balance(r, excluded) for r in reports)
    days = sum(1 for r in reports if r.get("status") == "Operational")
    return {
        "total_revenue": revenue,
        "total_expenses": expenses,
        "net_balance": net,
        "profit_margin": (net / revenue * 100) if revenue else 0.0,
        "operational_days": days,
        "avg_daily_revenue": revenue / days if days else 0.0,
        "report_count": len(reports),
    }
