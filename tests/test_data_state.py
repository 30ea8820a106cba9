import pytest

from fleet_dashboard import data_state as ds
from fleet_dashboard.errors import DashboardError, ErrorKind


@pytest.fixture(autouse=True)
def reset_state():
    yield
    ds.set_store(None)
    ds.reload_all()
    ds.LOAD_ERRORS.clear()


def test_reload_all_fills_every_collection(store):
    store.seed_report(store.regular_id, "2024-05-01", ticket=100)
    ds.set_store(store)

    counts = ds.reload_all()

    assert counts["REPORTS"] == 1
    assert counts["VEHICLES"] == 2
    assert counts["DEPOSITS"] == 0
    assert len(ds.REPORTS) == 1
    assert ds.REPORTS[0]["vehicles"]["plate"] == "LD-10-20-AA"
    assert ds.load_error_messages() == []


def test_failed_collection_is_emptied_and_reported(store):
    store.seed_report(store.regular_id, "2024-05-01", ticket=100)
    ds.set_store(store)
    ds.reload_all()
    store.fail_on.add("fetch_deposits")

    counts = ds.reload_financials()

    assert counts == {"REPORTS": 1, "DEPOSITS": 0, "VEHICLES": 2}
    assert ds.DEPOSITS == []
    assert ds.LOAD_ERRORS["DEPOSITS"].kind is ErrorKind.UNKNOWN
    assert len(ds.load_error_messages()) == 1

    store.fail_on.clear()
    ds.reload_financials()
    assert "DEPOSITS" not in ds.LOAD_ERRORS


def test_partial_reloads_touch_only_their_collections(store):
    ds.set_store(store)
    ds.reload_all()
    store.calls.clear()

    ds.reload_rentals()
    assert sorted(store.names()) == ["fetch_rentals", "fetch_vehicles"]

    store.calls.clear()
    ds.reload_operations()
    assert sorted(store.names()) == ["fetch_company_expenses", "fetch_inventory",
                                     "fetch_maintenance", "fetch_vehicles"]


def test_unconfigured_store_gives_empty_data():
    ds.set_store(None)
    counts = ds.reload_all()
    assert set(counts.values()) == {0}
    assert ds.REPORTS == []
    with pytest.raises(DashboardError, match="not configured"):
        ds.require_store()


def test_find_and_vehicle_options(store):
    ds.set_store(store)
    ds.reload_all()
    assert ds.find(ds.VEHICLES, store.agaseke_id)["plate"] == "LDA-25-91-AD"
    assert ds.find(ds.VEHICLES, 999) is None
    assert {"label": "LD-10-20-AA", "value": store.regular_id} in ds.vehicle_options()


class _CallbackRecorder:
    """Stands in for the Dash app: keeps each registered callback by name."""

    def __init__(self):
        self.callbacks = {}

    def callback(self, *args, **kwargs):
        def register(fn):
            self.callbacks[fn.__name__] = fn
            return fn
        return register


@pytest.mark.parametrize("path, fetched", [
    ("/reports", {"fetch_reports", "fetch_deposits"}),
    ("/deposits", {"fetch_reports", "fetch_deposits"}),
    ("/expenses", {"fetch_reports"}),
    ("/rentals", {"fetch_rentals"}),
    ("/operations", {"fetch_company_expenses", "fetch_maintenance", "fetch_inventory"}),
])
def test_opening_a_page_refetches_its_data(store, path, fetched):
    from fleet_dashboard.callbacks import navigation_cb

    app = _CallbackRecorder()
    navigation_cb.register_callbacks(app)
    ds.set_store(store)
    store.seed_report(store.regular_id, "2024-05-01", ticket=100)

    app.callbacks["route_page"](path)

    assert fetched <= set(store.names())
    if path in ("/reports", "/deposits"):
        assert len(ds.REPORTS) == 1


def test_unknown_page_fetches_nothing(store):
    from fleet_dashboard.callbacks import navigation_cb

    app = _CallbackRecorder()
    navigation_cb.register_callbacks(app)
    ds.set_store(store)

    app.callbacks["route_page"]("/nowhere")

    assert store.calls == []
