import itertools
import random
from datetime import date, datetime

import pytest

from fleet_dashboard import ledger
from fleet_dashboard.theme import AGASEKE_EXCLUDED_BANK, AGASEKE_PLATES


def test_num_coerces_missing_and_bad_values_to_zero():
    assert ledger.num(None) == 0.0
    assert ledger.num("") == 0.0
    assert ledger.num("abc") == 0.0
    assert ledger.num(float("nan")) == 0.0
    assert ledger.num("12.5") == 12.5
    assert ledger.num(7) == 7.0


def test_money_formats_with_currency_and_sign():
    assert ledger.money(1234) == "AOA 1,234.00"
    assert ledger.money(-5.5) == "-AOA 5.50"
    assert ledger.money(None) == "AOA 0.00"


def test_date_key_accepts_strings_dates_and_datetimes():
    assert ledger.date_key("2024-05-01T10:30:00+00:00") == "2024-05-01"
    assert ledger.date_key(date(2024, 5, 1)) == "2024-05-01"
    assert ledger.date_key(datetime(2024, 5, 1, 23, 59)) == "2024-05-01"
    with pytest.raises(ValueError):
        ledger.date_key("not a date")


# ── Net balance ─────────────────────────────────────────────────────────────

def test_net_balance_scenario_with_and_without_fuel(make_report):
    report = make_report(1, ticket=100000, baggage=20000, expenses=[("Fuel", 40000)])
    assert ledger.total_revenue(report) == 120000
    assert ledger.net_balance(report) == 80000
    assert ledger.net_balance(report, {"Fuel"}) == 120000


def test_missing_expense_list_counts_as_zero(make_report):
    report = make_report(1, ticket=500)
    report["daily_expenses"] = None
    assert ledger.total_expenses(report) == 0
    assert ledger.net_balance(report) == 500


def test_excluding_more_categories_never_lowers_the_balance(make_report):
    cats = ["Fuel", "Subsidy", "Driver", "Tolls"]
    report = make_report(1, ticket=90000,
                         expenses=[("Fuel", 30000), ("Subsidy", 10000), ("Driver", 25000),
                                   ("Tolls", 5000), ("Fuel", 1000)])
    subsets = [set(c) for n in range(len(cats) + 1) for c in itertools.combinations(cats, n)]
    for small in subsets:
        for large in subsets:
            if small <= large:
                assert ledger.net_balance(report, large) >= ledger.net_balance(report, small)


def test_rental_net_profit_respects_exclusions():
    rental = {"rental_amount": 300000,
              "rental_expenses": [{"category": "fuel", "amount": 50000},
                                  {"category": "driver", "amount": 20000}]}
    assert ledger.rental_total_expenses(rental) == 70000
    assert ledger.rental_net_profit(rental) == 230000
    assert ledger.rental_net_profit(rental, {"fuel"}) == 280000


# ── Classification & selection ──────────────────────────────────────────────

def test_classify_report(make_report):
    assert ledger.classify_report(make_report(1, ticket=100)) == "depositable"
    assert ledger.classify_report(make_report(2, ticket=100, deposit_ids=[9])) == "already_deposited"
    assert ledger.classify_report(make_report(3, ticket=100, expenses=[("Fuel", 100)])) == "loss"


def test_loss_wins_over_link_state(make_report):
    report = make_report(1, ticket=100, expenses=[("Fuel", 150)], deposit_ids=[4])
    assert ledger.classify_report(report) == "loss"


def test_exclusion_can_turn_a_loss_depositable(make_report):
    report = make_report(1, ticket=100, expenses=[("Fuel", 150)])
    assert ledger.classify_report(report) == "loss"
    assert ledger.classify_report(report, {"Fuel"}) == "depositable"


def test_selectable_reports_when_creating(make_report):
    reports = [
        make_report(1, ticket=100),
        make_report(2, ticket=100, deposit_ids=[7]),
        make_report(3, ticket=0),
    ]
    assert [r["id"] for r in ledger.selectable_reports(reports)] == [1]


def test_selectable_reports_when_editing(make_report):
    reports = [
        make_report(1, ticket=100),
        make_report(2, ticket=100, deposit_ids=[7]),
        # on this deposit but now a loss (e.g. an expense was added later)
        make_report(3, ticket=10, expenses=[("Fuel", 50)], deposit_ids=[7]),
        make_report(4, ticket=100, deposit_ids=[8]),
    ]
    ids = [r["id"] for r in ledger.selectable_reports(reports, deposit_id=7)]
    assert ids == [1, 2, 3]


def test_bank_vehicle_rule_blocks_agaseke_for_excluded_bank(make_report):
    rule = ledger.bank_vehicle_rule(AGASEKE_EXCLUDED_BANK, AGASEKE_PLATES)
    reports = [
        make_report(1, ticket=100, plate=AGASEKE_PLATES[0]),
        make_report(2, ticket=100),
    ]
    bai = ledger.selectable_reports(reports, bank_name=AGASEKE_EXCLUDED_BANK, is_compatible=rule)
    caixa = ledger.selectable_reports(reports, bank_name="Caixa Angola", is_compatible=rule)
    assert [r["id"] for r in bai] == [2]
    assert [r["id"] for r in caixa] == [1, 2]


def test_deposit_amount_sums_selected_net_balances(make_report):
    reports = [make_report(1, ticket=50000), make_report(2, ticket=30000),
               make_report(3, ticket=999)]
    assert ledger.deposit_amount(reports, [1, 2]) == 80000
    assert ledger.deposit_amount(reports, [1]) == 50000
    assert ledger.deposit_amount(reports, []) == 0


def test_deposit_amount_does_not_depend_on_selection_order(make_report):
    values = [0.1, 0.2, 0.3, 1e6 + 0.7, 3.3333, 12345.678]
    reports = [make_report(i + 1, ticket=v) for i, v in enumerate(values)]
    ids = [r["id"] for r in reports]
    expected = ledger.deposit_amount(reports, ids)
    rng = random.Random(4)
    for _ in range(20):
        rng.shuffle(ids)
        assert ledger.deposit_amount(reports, ids) == expected


def test_latest_report_date(make_report):
    reports = [make_report(1, "2024-05-01"), make_report(2, "2024-05-03"),
               make_report(3, "2024-05-09")]
    assert ledger.latest_report_date(reports, [1, 2]) == "2024-05-03"
    assert ledger.latest_report_date(reports, []) is None


def test_diff_links():
    assert ledger.diff_links([1, 2, 3], [2, 3, 4]) == ([4], [1])
    assert ledger.diff_links([], [5, 5, 6]) == ([5, 6], [])
    assert ledger.diff_links([1, 2], [1, 2]) == ([], [])


def test_is_agaseke(make_report):
    assert ledger.is_agaseke(make_report(1, plate=AGASEKE_PLATES[1]))
    assert not ledger.is_agaseke(make_report(2))
    assert not ledger.is_agaseke(make_report(3, plate=None))


# ── Grouping ────────────────────────────────────────────────────────────────

def _sample_reports(make_report):
    return [
        make_report(1, "2024-05-01", plate="B", ticket=1000, expenses=[("Fuel", 200)]),
        make_report(2, "2024-05-03T08:00:00", plate="A", ticket=500),
        make_report(3, "2024-05-01", plate="A", ticket=300, expenses=[("Driver", 400)]),
        make_report(4, "2024-05-02", plate="C", cargo=50),
    ]


def test_group_reports_by_date_newest_first_with_totals(make_report):
    groups = ledger.group_reports_by_date(_sample_reports(make_report))
    assert [g["date"] for g in groups] == ["2024-05-03", "2024-05-02", "2024-05-01"]
    first_of_may = groups[2]
    assert [r["id"] for r in first_of_may["items"]] == [1, 3]
    assert first_of_may["total_revenue"] == 1300
    assert first_of_may["total_expenses"] == 600
    assert first_of_may["net_balance"] == 700
    assert first_of_may["plates"] == ["A", "B"]
    assert first_of_may["vehicle_count"] == 2


def test_group_totals_match_member_totals(make_report):
    reports = _sample_reports(make_report)
    for excluded in [(), ("Fuel",), ("Fuel", "Driver")]:
        groups = ledger.group_reports_by_date(reports, excluded)
        assert sum(g["count"] for g in groups) == len(reports)
        assert sum(g["net_balance"] for g in groups) == pytest.approx(
            sum(ledger.net_balance(r, excluded) for r in reports))
        for g in groups:
            assert g["net_balance"] == pytest.approx(g["total_revenue"] - g["total_expenses"])


def test_grouping_does_not_depend_on_input_order(make_report):
    reports = _sample_reports(make_report)
    shuffled = list(reports)
    random.Random(7).shuffle(shuffled)

    def summary(groups):
        return [(g["date"], sorted(r["id"] for r in g["items"]), g["net_balance"],
                 g["vehicle_count"], g["plates"]) for g in groups]

    assert summary(ledger.group_reports_by_date(shuffled)) == \
        summary(ledger.group_reports_by_date(reports))


def test_group_deposits_by_date():
    deposits = [
        {"id": 1, "deposit_date": "2024-05-02", "amount": 100, "bank_name": "BAI",
         "deposit_reports": [{"report_id": 1}, {"report_id": 2}]},
        {"id": 2, "deposit_date": "2024-05-02", "amount": "50.5", "bank_name": "Caixa Angola",
         "deposit_reports": [{"report_id": 3}]},
        {"id": 3, "deposit_date": "2024-04-30", "amount": None, "bank_name": "BAI"},
    ]
    groups = ledger.group_deposits_by_date(deposits)
    assert [g["date"] for g in groups] == ["2024-05-02", "2024-04-30"]
    assert groups[0]["total_amount"] == 150.5
    assert groups[0]["report_count"] == 3
    assert groups[0]["deposit_count"] == 2
    assert groups[0]["banks"] == ["BAI", "Caixa Angola"]
    assert groups[1]["total_amount"] == 0


def test_group_rentals_by_start_date():
    rentals = [
        {"id": 1, "rental_start_date": "2024-06-01", "rental_amount": 1000,
         "client_name": "Sonangol", "rental_expenses": [{"category": "fuel", "amount": 100}]},
        {"id": 2, "rental_start_date": "2024-06-01", "rental_amount": 500, "client_name": ""},
    ]
    [group] = ledger.group_rentals_by_date(rentals)
    assert group["total_amount"] == 1500
    assert group["net_profit"] == 1400
    assert group["clients"] == ["Sonangol"]


# ── Filters, paging, flags ──────────────────────────────────────────────────

def test_filter_by_date_range_is_inclusive(make_report):
    reports = _sample_reports(make_report)
    out = ledger.filter_by_date_range(reports, "report_date", "2024-05-02", "2024-05-03")
    assert sorted(r["id"] for r in out) == [2, 4]
    assert len(ledger.filter_by_date_range(reports, "report_date")) == 4
    assert sorted(r["id"] for r in ledger.filter_by_date_range(
        reports, "report_date", end="2024-05-01")) == [1, 3]


def test_filter_by_report_type(make_report):
    reports = [make_report(1, plate=AGASEKE_PLATES[0]), make_report(2)]
    assert [r["id"] for r in ledger.filter_by_report_type(reports, "agaseke")] == [1]
    assert [r["id"] for r in ledger.filter_by_report_type(reports, "regular")] == [2]
    assert len(ledger.filter_by_report_type(reports, "all")) == 2


def test_paginate_clamps_page():
    items = list(range(45))
    page, total = ledger.paginate(items, 1)
    assert total == 3 and page == list(range(20))
    assert ledger.paginate(items, 3)[0] == list(range(40, 45))
    assert ledger.paginate(items, 99)[0] == list(range(40, 45))
    assert ledger.paginate(items, 0)[0] == list(range(20))
    assert ledger.paginate([], 1) == ([], 0)


def test_flag_reasons(make_report):
    low_margin = make_report(1, ticket=100000, expenses=[("Fuel", 60000)])
    assert ledger.flag_reasons(low_margin) == ["Low net revenue margin: 40.0% (< 50%)"]

    expensive = make_report(2, ticket=1000000, expenses=[("Fuel", 250000)])
    assert ledger.flag_reasons(expensive) == ["High expenses: 250,000 AOA (> 210,000 AOA)"]

    healthy = make_report(3, ticket=100000, expenses=[("Fuel", 10000)])
    assert not ledger.is_flagged(healthy)
    assert not ledger.is_flagged(make_report(4))


# ── Analytics ───────────────────────────────────────────────────────────────

def test_expense_breakdown(make_report):
    reports = _sample_reports(make_report)
    rows = ledger.expense_breakdown(reports)
    assert [r["category"] for r in rows] == ["Driver", "Fuel"]
    assert rows[0]["amount"] == 400
    assert sum(r["percentage"] for r in rows) == pytest.approx(100)
    assert [r["category"] for r in ledger.expense_breakdown(reports, {"Driver"})] == ["Fuel"]


def test_vehicle_performance_sorted_by_net(make_report):
    rows = ledger.vehicle_performance(_sample_reports(make_report))
    assert [r["vehicle_plate"] for r in rows] == ["B", "A", "C"]
    b = rows[0]
    assert b["net_profit"] == 800
    assert b["operational_days"] == 1
    assert b["avg_daily_revenue"] == 1000


def test_summarize(make_report):
    kpis = ledger.summarize(_sample_reports(make_report))
    assert kpis["total_revenue"] == 1850
    assert kpis["total_expenses"] == 600
    assert kpis["net_balance"] == 1250
    assert kpis["report_count"] == 4
    assert kpis["profit_margin"] == pytest.approx(1250 / 1850 * 100)
    assert ledger.summarize([])["profit_margin"] == 0.0
