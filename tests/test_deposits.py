import pytest

from fleet_dashboard import deposits, ledger
from fleet_dashboard.errors import ValidationError
from fleet_dashboard.theme import AGASEKE_EXCLUDED_BANK, AGASEKE_PLATES, BANK_OPTIONS, SLIP_BUCKET


@pytest.fixture
def two_reports(store):
    first = store.seed_report(store.regular_id, "2024-05-01", ticket=50000)
    second = store.seed_report(store.regular_id, "2024-05-03", ticket=30000)
    return first, second


def _draft(store, **kwargs):
    return deposits.DepositDraft(store.fetch_reports(), **kwargs)


def _deposit(store, deposit_id):
    return next(d for d in store.fetch_deposits() if d["id"] == deposit_id)


def _report(store, report_id):
    return next(r for r in store.fetch_reports() if r["id"] == report_id)


# ── Draft state machine ─────────────────────────────────────────────────────

def test_draft_moves_through_states(store, two_reports, pdf_bytes):
    draft = _draft(store)
    assert draft.state == deposits.EMPTY

    draft.toggle_report(two_reports[0])
    assert draft.state == deposits.REPORTS_SELECTED

    draft.attach_slip("slip.pdf", pdf_bytes)
    assert draft.state == deposits.SUBMITTABLE
    assert draft.is_submittable

    draft.bank_name = "Unknown Bank"
    assert draft.state == deposits.SLIPS_ATTACHED
    assert not draft.is_submittable


def test_toggling_recomputes_amount_and_advances_date(store, two_reports):
    draft = _draft(store, deposit_date="2024-04-01")
    draft.toggle_report(two_reports[0])
    assert draft.amount == 50000
    assert draft.deposit_date == "2024-05-01"

    draft.toggle_report(two_reports[1])
    assert draft.amount == 80000
    assert draft.deposit_date == "2024-05-03"

    draft.toggle_report(two_reports[1])
    assert draft.amount == 50000


def test_excluding_a_category_changes_the_draft_amount(store):
    report_id = store.seed_report(store.regular_id, "2024-05-01", ticket=100000,
                                  baggage=20000, expenses=[("Fuel", 40000)])
    draft = _draft(store)
    draft.toggle_report(report_id)
    assert draft.amount == 80000
    draft.set_excluded({"Fuel"})
    assert draft.amount == 120000


def test_cannot_select_a_loss_report(store):
    loss = store.seed_report(store.regular_id, "2024-05-01", ticket=100, expenses=[("Fuel", 500)])
    draft = _draft(store)
    with pytest.raises(ValidationError):
        draft.toggle_report(loss)
    assert draft.selected_ids == []


def test_agaseke_vehicle_not_offered_for_excluded_bank(store):
    agaseke = store.seed_report(store.agaseke_id, "2024-05-01", ticket=1000)
    regular = store.seed_report(store.regular_id, "2024-05-01", ticket=1000)
    rule = ledger.bank_vehicle_rule(AGASEKE_EXCLUDED_BANK, AGASEKE_PLATES)

    draft = _draft(store, bank_name=AGASEKE_EXCLUDED_BANK, is_compatible=rule)
    assert [r["id"] for r in draft.selectable()] == [regular]
    with pytest.raises(ValidationError):
        draft.select_reports([agaseke, regular])

    draft.bank_name = "Caixa Angola"
    draft.select_reports([agaseke, regular])
    assert draft.amount == 2000


def test_invalid_slip_is_rejected(store, two_reports):
    draft = _draft(store)
    with pytest.raises(ValidationError, match="PDF or image"):
        draft.attach_slip("slip.docx", b"data")
    with pytest.raises(ValidationError, match="empty"):
        draft.attach_slip("slip.pdf", b"")
    assert draft.slips == []


def test_remove_slip(store, pdf_bytes):
    draft = _draft(store)
    draft.attach_slip("a.pdf", pdf_bytes)
    draft.attach_slip("b.pdf", pdf_bytes)
    draft.remove_slip("a.pdf")
    assert [name for name, _ in draft.slips] == ["b.pdf"]


def test_validate_requires_reports_and_slip(store, two_reports, pdf_bytes):
    draft = _draft(store)
    with pytest.raises(ValidationError, match="report"):
        draft.validate()
    draft.toggle_report(two_reports[0])
    with pytest.raises(ValidationError, match="slip"):
        draft.validate()
    draft.attach_slip("slip.pdf", pdf_bytes)
    draft.validate()


# ── Submit ──────────────────────────────────────────────────────────────────

def test_submit_creates_deposit_links_and_slips(store, two_reports, pdf_bytes):
    draft = _draft(store)
    draft.select_reports(list(two_reports))
    draft.attach_slip("slip.pdf", pdf_bytes)

    deposit_id, failed = deposits.submit_deposit(store, draft)

    assert failed == []
    deposit = _deposit(store, deposit_id)
    assert deposit["amount"] == 80000
    assert deposit["deposit_date"] == "2024-05-03"
    assert sorted(link["report_id"] for link in deposit["deposit_reports"]) == sorted(two_reports)
    [slip] = deposit["deposit_slips"]
    assert slip["filename"] == "slip.pdf"
    assert slip["size"] == len(pdf_bytes)
    assert slip["url"] in store.files
    assert store.files[slip["url"]][0] == SLIP_BUCKET


def test_deposited_reports_cannot_be_deposited_again(store, two_reports, pdf_bytes):
    draft = _draft(store)
    draft.select_reports([two_reports[0]])
    draft.attach_slip("slip.pdf", pdf_bytes)
    deposits.submit_deposit(store, draft)

    reports = store.fetch_reports()
    assert ledger.classify_report(_report(store, two_reports[0])) == "already_deposited"
    fresh = deposits.DepositDraft(reports)
    assert [r["id"] for r in fresh.selectable()] == [two_reports[1]]
    with pytest.raises(ValidationError):
        fresh.toggle_report(two_reports[0])


def test_failed_slip_upload_keeps_the_deposit(store, two_reports, pdf_bytes):
    bad = b"%PDF-1.4 rejected"
    store.fail_payloads.add(bad)
    draft = _draft(store)
    draft.select_reports(list(two_reports))
    draft.attach_slip("good.pdf", pdf_bytes)
    draft.attach_slip("bad.pdf", bad)

    deposit_id, failed = deposits.submit_deposit(store, draft)

    assert failed == ["bad.pdf"]
    deposit = _deposit(store, deposit_id)
    assert [s["filename"] for s in deposit["deposit_slips"]] == ["good.pdf"]
    assert len(deposit["deposit_reports"]) == 2


def test_second_draft_from_stale_reports_cannot_take_the_same_report(store, two_reports,
                                                                     pdf_bytes):
    reports = store.fetch_reports()
    first = deposits.DepositDraft(reports)
    second = deposits.DepositDraft(reports)
    for draft in (first, second):
        draft.select_reports([two_reports[0]])
        draft.attach_slip("slip.pdf", pdf_bytes)

    deposits.submit_deposit(store, first)
    with pytest.raises(ValidationError, match="already deposited"):
        deposits.submit_deposit(store, second)

    assert store.names().count("create_deposit") == 1
    owners = [link["deposit_id"] for link in store.fetch_deposit_links(report_id=two_reports[0])]
    assert len(owners) == 1


def test_submit_without_slip_makes_no_calls(store, two_reports):
    draft = _draft(store)
    draft.select_reports(list(two_reports))
    store.calls.clear()
    with pytest.raises(ValidationError):
        deposits.submit_deposit(store, draft)
    assert store.calls == []


def test_attach_slips_to_existing_deposit(store, two_reports, pdf_bytes, png_bytes):
    draft = _draft(store)
    draft.select_reports([two_reports[0]])
    draft.attach_slip("slip.pdf", pdf_bytes)
    deposit_id, _ = deposits.submit_deposit(store, draft)

    failed = deposits.attach_slips(store, deposit_id, [("extra.png", png_bytes)])

    assert failed == []
    names = [s["filename"] for s in _deposit(store, deposit_id)["deposit_slips"]]
    assert names == ["slip.pdf", "extra.png"]


# ── Update ──────────────────────────────────────────────────────────────────

def _submitted(store, report_ids, pdf_bytes):
    draft = _draft(store)
    draft.select_reports(list(report_ids))
    draft.attach_slip("slip.pdf", pdf_bytes)
    deposit_id, _ = deposits.submit_deposit(store, draft)
    return deposit_id


def test_update_with_fewer_reports_recomputes_amount_and_links(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)

    deposits.update_deposit(store, deposit, store.fetch_reports(), "BAI", "2024-05-04",
                            report_ids=[two_reports[0]])

    updated = _deposit(store, deposit_id)
    assert updated["amount"] == 50000
    assert updated["bank_name"] == "BAI"
    assert updated["deposit_date"] == "2024-05-04"
    assert [link["report_id"] for link in updated["deposit_reports"]] == [two_reports[0]]
    assert ledger.classify_report(_report(store, two_reports[1])) == "depositable"


def test_update_without_report_ids_keeps_amount(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)
    store.calls.clear()

    deposits.update_deposit(store, deposit, store.fetch_reports(), "Caixa Angola", "2024-05-10")

    assert _deposit(store, deposit_id)["amount"] == 80000
    assert "replace_deposit_links" not in store.names()
    assert "link_reports" not in store.names()


def test_update_keeps_own_report_even_after_it_became_a_loss(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    store._insert("daily_expenses", {"report_id": two_reports[1], "category": "Driver",
                                     "amount": 35000})
    deposit = _deposit(store, deposit_id)

    deposits.update_deposit(store, deposit, store.fetch_reports(), "BAI", "2024-05-04",
                            report_ids=list(two_reports))

    assert _deposit(store, deposit_id)["amount"] == 45000


def test_update_refuses_report_from_another_deposit(store, two_reports, pdf_bytes):
    first = _submitted(store, [two_reports[0]], pdf_bytes)
    second = _submitted(store, [two_reports[1]], pdf_bytes)
    deposit = _deposit(store, first)
    store.calls.clear()

    with pytest.raises(ValidationError, match="another deposit"):
        deposits.update_deposit(store, deposit, store.fetch_reports(), "BAI", "2024-05-04",
                                report_ids=list(two_reports))

    assert "update_deposit" not in store.names()
    assert [link["report_id"] for link in _deposit(store, second)["deposit_reports"]] == \
        [two_reports[1]]


def test_update_replaces_links_added_since_the_deposit_was_loaded(store, two_reports,
                                                                  pdf_bytes):
    third = store.seed_report(store.regular_id, "2024-05-04", ticket=10000)
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)
    # another editor links a third report after this copy was loaded
    store._insert("deposit_reports", {"deposit_id": deposit_id, "report_id": third})

    deposits.update_deposit(store, deposit, store.fetch_reports(), "Caixa Angola", "2024-05-04",
                            report_ids=[two_reports[0]])

    links = [link["report_id"] for link in store.fetch_deposit_links(deposit_id=deposit_id)]
    assert links == [two_reports[0]]
    assert _deposit(store, deposit_id)["amount"] == 50000


def test_update_refuses_link_made_after_reports_were_loaded(store, two_reports, pdf_bytes):
    first = _submitted(store, [two_reports[0]], pdf_bytes)
    stale_reports = store.fetch_reports()
    other = store.create_deposit({"bank_name": "BAI", "deposit_date": "2024-05-03",
                                  "amount": 30000})
    store.link_reports(other, [two_reports[1]])
    store.calls.clear()

    with pytest.raises(ValidationError, match="another deposit"):
        deposits.update_deposit(store, _deposit(store, first), stale_reports, "BAI",
                                "2024-05-04", report_ids=list(two_reports))

    assert "update_deposit" not in store.names()


def test_update_applies_bank_vehicle_rule(store, pdf_bytes):
    other_bank = next(b for b in BANK_OPTIONS if b != AGASEKE_EXCLUDED_BANK)
    agaseke = store.seed_report(store.agaseke_id, "2024-05-01", ticket=1000)
    regular = store.seed_report(store.regular_id, "2024-05-01", ticket=1000)
    draft = _draft(store, bank_name=other_bank)
    draft.select_reports([agaseke, regular])
    draft.attach_slip("slip.pdf", pdf_bytes)
    deposit_id, _ = deposits.submit_deposit(store, draft)
    rule = ledger.bank_vehicle_rule(AGASEKE_EXCLUDED_BANK, AGASEKE_PLATES)
    store.calls.clear()

    with pytest.raises(ValidationError, match="cannot be deposited into this bank"):
        deposits.update_deposit(store, _deposit(store, deposit_id), store.fetch_reports(),
                                AGASEKE_EXCLUDED_BANK, "2024-05-02",
                                report_ids=[agaseke, regular], is_compatible=rule)
    assert "update_deposit" not in store.names()

    deposits.update_deposit(store, _deposit(store, deposit_id), store.fetch_reports(),
                            AGASEKE_EXCLUDED_BANK, "2024-05-02", report_ids=[regular],
                            is_compatible=rule)
    assert _deposit(store, deposit_id)["bank_name"] == AGASEKE_EXCLUDED_BANK
    assert [link["report_id"] for link in _deposit(store, deposit_id)["deposit_reports"]] == \
        [regular]


def test_update_validates_fields(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)
    with pytest.raises(ValidationError):
        deposits.update_deposit(store, deposit, store.fetch_reports(), "Nowhere", "2024-05-04")
    with pytest.raises(ValidationError):
        deposits.update_deposit(store, deposit, store.fetch_reports(), "BAI", "")
    with pytest.raises(ValidationError):
        deposits.update_deposit(store, deposit, store.fetch_reports(), "BAI", "2024-05-04",
                                report_ids=[])


# ── Delete ──────────────────────────────────────────────────────────────────

def test_delete_removes_slips_links_and_deposit(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)

    deposits.delete_deposit(store, deposit)

    assert store.fetch_deposits() == []
    assert store.fetch_deposit_links() == []
    assert store.files == {}
    assert all(ledger.classify_report(r) == "depositable" for r in store.fetch_reports())


def test_delete_goes_ahead_when_slip_file_removal_fails(store, two_reports, pdf_bytes):
    deposit_id = _submitted(store, two_reports, pdf_bytes)
    deposit = _deposit(store, deposit_id)
    store.fail_on.add("delete_file")

    deposits.delete_deposit(store, deposit)

    assert store.fetch_deposits() == []
    assert len(store.files) == 1
