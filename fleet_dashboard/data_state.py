"""
data_state.py: In-memory copy of every collection the dashboard shows.
This is the single source of truth for pages and callbacks.

Nothing here is cached cleverly: after every write the affected collections
are refetched in full and replaced.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from fleet_dashboard.errors import DashboardError

log = logging.getLogger(__name__)

REPORTS: list = []
DEPOSITS: list = []
RENTALS: list = []
VEHICLES: list = []
COMPANY_EXPENSES: list = []
MAINTENANCE: list = []
INVENTORY: list = []

# Last failure per collection name, for the page banners.
LOAD_ERRORS: dict = {}

_STORE = None
_STORE_READY = False

_FETCHERS = {
    "REPORTS": "fetch_reports",
    "DEPOSITS": "fetch_deposits",
    "RENTALS": "fetch_rentals",
    "VEHICLES": "fetch_vehicles",
    "COMPANY_EXPENSES": "fetch_company_expenses",
    "MAINTENANCE": "fetch_maintenance",
    "INVENTORY": "fetch_inventory",
}


def get_store():
    """Return the backend store, connecting to Supabase on first use."""
    global _STORE, _STORE_READY
    if not _STORE_READY:
        from supabase_store import connect
        _STORE = connect()
        _STORE_READY = True
    return _STORE


def set_store(store):
    global _STORE, _STORE_READY
    _STORE = store
    _STORE_READY = True


def require_store():
    store = get_store()
    if store is None:
        raise DashboardError("Supabase is not configured: set SUPABASE_URL and SUPABASE_KEY.")
    return store


def _reload(names):
    """Fetch `names` in parallel and replace those collections wholesale."""
    store = get_store()
    if store is None:
        for name in names:
            globals()[name] = []
        return {name: 0 for name in names}

    with ThreadPoolExecutor(max_workers=len(names)) as pool:
        futures = {name: pool.submit(getattr(store, _FETCHERS[name])) for name in names}

    counts = {}
    for name, fut in futures.items():
        try:
            rows = fut.result()
            LOAD_ERRORS.pop(name, None)
        except DashboardError as e:
            log.error("Loading %s failed: %s", name.lower(), e)
            LOAD_ERRORS[name] = e
            rows = []
        globals()[name] = rows
        counts[name] = len(rows)
    return counts


def reload_all():
    counts = _reload(list(_FETCHERS))
    log.info("Loaded %s", ", ".join(f"{v} {k.lower()}" for k, v in counts.items()))
    return counts


def reload_financials():
    return _reload(["REPORTS", "DEPOSITS", "VEHICLES"])


def reload_rentals():
    return _reload(["RENTALS", "VEHICLES"])


def reload_operations():
    return _reload(["COMPANY_EXPENSES", "MAINTENANCE", "INVENTORY", "VEHICLES"])


def find(collection, row_id):
    for row in collection:
        if row.get("id") == row_id:
            return row
    return None


def vehicle_options():
    return [{"label": v.get("plate") or str(v["id"]), "value": v["id"]} for v in VEHICLES]


def load_error_messages():
    return [e.user_message() for e in LOAD_ERRORS.values()]
