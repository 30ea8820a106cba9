"""
deposits.py: Creating, editing and deleting bank deposits.

A deposit in progress is a `DepositDraft`:

    Empty → ReportsSelected → SlipsAttached → Submittable

Submitting creates the deposit row, links the selected reports, then uploads
the slips.  Slip uploads that fail after the deposit exists are reported back
but never roll the deposit back: the deposit being recorded matters more than
having every scan attached.
"""

import logging
from datetime import date

from fleet_dashboard import ledger
from fleet_dashboard.errors import BackendError, ValidationError
from fleet_dashboard.theme import BANK_OPTIONS, DEFAULT_BANK, SLIP_BUCKET
from fleet_dashboard.uploads import upload_many, validate_attachment

log = logging.getLogger(__name__)

EMPTY = "Empty"
REPORTS_SELECTED = "ReportsSelected"
SLIPS_ATTACHED = "SlipsAttached"
SUBMITTABLE = "Submittable"


class DepositDraft:
    """A deposit being assembled from depositable reports and slip files."""

    def __init__(self, reports, excluded=(), bank_name=DEFAULT_BANK, deposit_date=None,
                 is_compatible=None):
        self.reports = list(reports)
        self.excluded = frozenset(excluded or ())
        self.bank_name = bank_name
        self.deposit_date = deposit_date or date.today().isoformat()
        self.is_compatible = is_compatible
        self.selected_ids = []
        self.slips = []  # [(filename, bytes)]
        self.amount = 0.0

    # ── state ────────────────────────────────────────────────────────────

    @property
    def state(self):
        if not self.selected_ids:
            return EMPTY
        if not self.slips:
            return REPORTS_SELECTED
        if self.bank_name not in BANK_OPTIONS or not self.deposit_date:
            return SLIPS_ATTACHED
        return SUBMITTABLE

    @property
    def is_submittable(self):
        return self.state == SUBMITTABLE

    def selectable(self):
        return ledger.selectable_reports(self.reports, self.excluded,
                                         bank_name=self.bank_name,
                                         is_compatible=self.is_compatible)

    # ── reports ──────────────────────────────────────────────────────────

    def _recompute(self):
        self.amount = ledger.deposit_amount(self.reports, self.selected_ids, self.excluded)
        latest = ledger.latest_report_date(self.reports, self.selected_ids)
        if latest:
            self.deposit_date = latest

    def toggle_report(self, report_id):
        if report_id in self.selected_ids:
            self.selected_ids.remove(report_id)
        else:
            allowed = {r["id"] for r in self.selectable()}
            if report_id not in allowed:
                raise ValidationError("This report cannot be added to a deposit.")
            self.selected_ids.append(report_id)
        self._recompute()

    def select_reports(self, report_ids):
        allowed = {r["id"] for r in self.selectable()}
        rejected = [rid for rid in report_ids if rid not in allowed]
        if rejected:
            raise ValidationError(f"{len(rejected)} selected report(s) cannot be deposited.")
        self.selected_ids = list(dict.fromkeys(report_ids))
        self._recompute()

    def set_excluded(self, excluded):
        self.excluded = frozenset(excluded or ())
        self._recompute()

    # ── slips ────────────────────────────────────────────────────────────

    def attach_slip(self, filename, data):
        ok, msg = validate_attachment(filename, data)
        if not ok:
            raise ValidationError(msg)
        self.slips.append((filename, data))

    def remove_slip(self, filename):
        self.slips = [s for s in self.slips if s[0] != filename]

    def validate(self):
        if self.bank_name not in BANK_OPTIONS:
            raise ValidationError("Please choose a bank.")
        if not self.selected_ids:
            raise ValidationError("Please select at least one report to deposit.")
        if not self.slips:
            raise ValidationError("Please attach a bank deposit slip.")

    def core_fields(self):
        return {
            "bank_name": self.bank_name,
            "deposit_date": self.deposit_date,
            "amount": self.amount,
        }


def _linked_elsewhere(store, report_ids, deposit_id=None):
    """Ids in `report_ids` the backend already links to a deposit other than `deposit_id`."""
    return sorted({link["report_id"] for link in store.fetch_deposit_links(report_ids=report_ids)
                   if link["deposit_id"] != deposit_id})


def submit_deposit(store, draft):
    """Create the deposit, link its reports, upload slips.

    The selected reports are checked against the backend's links first, since
    the draft was built from the last loaded copy of the reports.

    Returns (deposit_id, failed_filenames).
    """
    draft.validate()
    taken = _linked_elsewhere(store, draft.selected_ids)
    if taken:
        raise ValidationError(f"{len(taken)} selected report(s) were already deposited. "
                              "Reload the page and try again.")
    deposit_id = store.create_deposit(draft.core_fields())
    store.link_reports(deposit_id, list(draft.selected_ids))
    log.info("Created deposit %s for %d report(s), %s", deposit_id,
             len(draft.selected_ids), ledger.money(draft.amount))

    return deposit_id, attach_slips(store, deposit_id, draft.slips)


def attach_slips(store, deposit_id, slips):
    """Upload `slips` ([(filename, bytes)]) onto an existing deposit.

    Returns the filenames that could not be uploaded or recorded.
    """
    for filename, data in slips:
        ok, msg = validate_attachment(filename, data)
        if not ok:
            raise ValidationError(msg)
    uploaded, failed = upload_many(store, SLIP_BUCKET, str(deposit_id), list(slips))
    for slip in uploaded:
        try:
            store.add_deposit_slip(deposit_id, slip["url"], slip["filename"], slip["size"])
        except BackendError as e:
            log.warning("Slip %s uploaded but not recorded on deposit %s: %s",
                        slip["filename"], deposit_id, e)
            failed.append((slip["filename"], e))
    return [name for name, _ in failed]


def update_deposit(store, deposit, reports, bank_name, deposit_date, report_ids=None,
                   excluded=(), amount=None, is_compatible=None):
    """Edit a deposit's bank/date and optionally replace its report set.

    With `report_ids` the amount is recomputed from the new set; without it
    `amount` (or the stored amount) is kept.  The link set is replaced
    wholesale: the deposit's current links are read back from the store and
    the difference removed and added, so after the edit the deposit links
    exactly `report_ids`. Last writer wins.
    """
    if bank_name not in BANK_OPTIONS or not deposit_date:
        raise ValidationError("Please fill out all fields.")

    deposit_id = deposit["id"]
    values = {"bank_name": bank_name, "deposit_date": ledger.date_key(deposit_date)}

    if report_ids is not None:
        report_ids = list(dict.fromkeys(report_ids))
        if not report_ids:
            raise ValidationError("A deposit needs at least one report.")
        allowed = {r["id"] for r in ledger.selectable_reports(reports, excluded,
                                                              deposit_id=deposit_id,
                                                              bank_name=bank_name,
                                                              is_compatible=is_compatible)}
        stolen = [rid for rid in report_ids if rid not in allowed]
        stolen += [rid for rid in _linked_elsewhere(store, report_ids, deposit_id)
                   if rid not in stolen]
        if stolen:
            raise ValidationError(f"{len(stolen)} report(s) belong to another deposit "
                                  "or cannot be deposited into this bank.")
        values["amount"] = ledger.deposit_amount(reports, report_ids, excluded)
    else:
        values["amount"] = ledger.num(deposit.get("amount") if amount is None else amount)

    if values["amount"] <= 0:
        raise ValidationError("Deposit amount must be positive.")

    updated = store.update_deposit(deposit_id, values)
    if report_ids is not None:
        current = [link["report_id"] for link in store.fetch_deposit_links(deposit_id=deposit_id)]
        to_add, to_remove = ledger.diff_links(current, report_ids)
        store.replace_deposit_links(deposit_id, to_add, to_remove)
    return updated


def delete_deposit(store, deposit):
    """Delete slip files (best effort), then the deposit and its links."""
    for slip in deposit.get("deposit_slips") or []:
        try:
            store.delete_file(SLIP_BUCKET, slip["url"])
        except BackendError as e:
            log.warning("Could not delete slip %s of deposit %s: %s",
                        slip.get("filename") or slip.get("url"), deposit["id"], e)
    store.delete_deposit(deposit["id"])
