"""Bank Deposits callbacks: deposit modal state machine, slips, writes, export."""
import logging
from datetime import date

from dash import Input, Output, State, ALL, callback_context, dcc, html, no_update
import dash_bootstrap_components as dbc

from fleet_dashboard import data_state as ds
from fleet_dashboard import deposits, export, ledger
from fleet_dashboard.components.cards import toast, error_toast
from fleet_dashboard.errors import DashboardError
from fleet_dashboard.pages import deposits as page
from fleet_dashboard.theme import AGASEKE_EXCLUDED_BANK, BANK_EXCLUDED_PLATES, DEFAULT_BANK
from fleet_dashboard.uploads import decode_upload, validate_attachment

log = logging.getLogger(__name__)

BANK_RULE = ledger.bank_vehicle_rule(AGASEKE_EXCLUDED_BANK, BANK_EXCLUDED_PLATES)


def _filtered_deposits(start, end, bank):
    rows = ledger.filter_by_date_range(ds.DEPOSITS, "deposit_date", start, end)
    if bank:
        rows = [d for d in rows if d.get("bank_name") == bank]
    return rows


def _decoded(slips):
    return [(s["filename"], decode_upload(s["contents"])) for s in slips or []]


def _draft(report_ids, slips, bank, deposit_date, excluded):
    """Rebuild the in-progress deposit from the modal's current values."""
    draft = deposits.DepositDraft(ds.REPORTS, excluded, bank, deposit_date,
                                  is_compatible=BANK_RULE)
    allowed = {r["id"] for r in draft.selectable()}
    draft.select_reports([rid for rid in report_ids or [] if rid in allowed])
    draft.deposit_date = deposit_date
    for filename, data in _decoded(slips):
        draft.attach_slip(filename, data)
    return draft


def _clicked():
    trig = callback_context.triggered
    return trig[0]["value"] if trig else None


def register_callbacks(app):
    # ── Listing ───────────────────────────────────────────────────────────
    @app.callback(
        Output("dep-kpis", "children"),
        Output("dep-list", "children"),
        Input("data-version", "data"),
        Input("dep-date-range", "start_date"),
        Input("dep-date-range", "end_date"),
        Input("dep-bank-filter", "value"),
        Input("dep-page-excluded", "value"),
    )
    def render_deposits(_version, start, end, bank, excluded):
        rows = _filtered_deposits(start, end, bank)
        return (page.deposit_kpis(rows, ds.REPORTS, excluded or []),
                page.grouped_deposits(rows))

    # ── Open / close the modal ────────────────────────────────────────────
    @app.callback(
        Output("dep-modal", "is_open"),
        Output("dep-edit-id", "data"),
        Output("dep-modal-title", "children"),
        Output("dep-bank", "value"),
        Output("dep-date", "value"),
        Output("dep-reports", "value"),
        Output("dep-slips", "data"),
        Output("dep-excluded", "value"),
        Output("dep-slip-feedback", "children"),
        Input("dep-new-btn", "n_clicks"),
        Input("dep-cancel", "n_clicks"),
        Input({"type": "dep-edit", "index": ALL}, "n_clicks"),
        prevent_initial_call=True,
    )
    def toggle_deposit_modal(_new, _cancel, _edits):
        trigger = callback_context.triggered_id
        if trigger == "dep-cancel":
            return (False,) + (no_update,) * 8
        if trigger == "dep-new-btn":
            return (True, None, "New Bank Deposit", DEFAULT_BANK, date.today().isoformat(),
                    [], [], [], None)
        if not _clicked():
            return (no_update,) * 9
        deposit = ds.find(ds.DEPOSITS, trigger["index"])
        if deposit is None:
            return (no_update,) * 9
        linked = [link["report_id"] for link in deposit.get("deposit_reports") or []]
        return (True, deposit["id"], "Edit Bank Deposit", deposit.get("bank_name"),
                ledger.date_key(deposit["deposit_date"]), linked, [], [], None)

    # ── Which reports can be picked ───────────────────────────────────────
    @app.callback(
        Output("dep-reports", "options"),
        Input("dep-modal", "is_open"),
        Input("dep-bank", "value"),
        Input("dep-excluded", "value"),
        State("dep-edit-id", "data"),
    )
    def report_options(is_open, bank, excluded, deposit_id):
        if not is_open:
            return []
        excluded = excluded or []
        rows = ledger.selectable_reports(ds.REPORTS, excluded, deposit_id=deposit_id,
                                         bank_name=bank, is_compatible=BANK_RULE)
        rows = sorted(rows, key=lambda r: ledger.date_key(r["report_date"]), reverse=True)
        return [page.report_option(r, excluded) for r in rows]

    # ── Amount and date follow the selection ──────────────────────────────
    @app.callback(
        Output("dep-amount", "children"),
        Output("dep-date", "value", allow_duplicate=True),
        Input("dep-reports", "value"),
        Input("dep-reports", "options"),
        Input("dep-excluded", "value"),
        State("dep-edit-id", "data"),
        prevent_initial_call=True,
    )
    def selection_changed(report_ids, options, excluded, deposit_id):
        offered = {o["value"] for o in options or []}
        ids = [rid for rid in report_ids or [] if rid in offered]
        amount = ledger.deposit_amount(ds.REPORTS, ids, excluded or [])
        latest = ledger.latest_report_date(ds.REPORTS, ids)
        if deposit_id is not None or not latest:
            return ledger.money(amount), no_update
        return ledger.money(amount), latest

    # ── Slips ─────────────────────────────────────────────────────────────
    @app.callback(
        Output("dep-slips", "data", allow_duplicate=True),
        Output("dep-slip-feedback", "children", allow_duplicate=True),
        Input("dep-slip-upload", "contents"),
        State("dep-slip-upload", "filename"),
        State("dep-slips", "data"),
        prevent_initial_call=True,
    )
    def add_slips(contents, filenames, slips):
        if not contents:
            return no_update, no_update
        slips = list(slips or [])
        have = {s["filename"] for s in slips}
        errors = []
        for content, filename in zip(contents, filenames):
            data = decode_upload(content)
            ok, msg = validate_attachment(filename, data)
            if not ok:
                errors.append(msg)
            elif filename not in have:
                slips.append({"filename": filename, "contents": content, "size": len(data)})
                have.add(filename)
        feedback = dbc.Alert([html.Div(e) for e in errors], color="danger",
                             className="py-2") if errors else None
        return slips, feedback

    @app.callback(
        Output("dep-slips", "data", allow_duplicate=True),
        Input({"type": "dep-slip-del", "index": ALL}, "n_clicks"),
        State("dep-slips", "data"),
        prevent_initial_call=True,
    )
    def remove_slip(_clicks, slips):
        if not _clicked():
            return no_update
        name = callback_context.triggered_id["index"]
        return [s for s in slips or [] if s["filename"] != name]

    @app.callback(
        Output("dep-slip-list", "children"),
        Input("dep-slips", "data"),
    )
    def render_slips(slips):
        return page.slip_list(slips or [])

    # ── Submit button follows the draft state ─────────────────────────────
    @app.callback(
        Output("dep-submit", "disabled"),
        Output("dep-state", "children"),
        Input("dep-reports", "value"),
        Input("dep-reports", "options"),
        Input("dep-slips", "data"),
        Input("dep-bank", "value"),
        Input("dep-date", "value"),
        State("dep-excluded", "value"),
        State("dep-edit-id", "data"),
    )
    def submit_state(report_ids, options, slips, bank, deposit_date, excluded, deposit_id):
        offered = {o["value"] for o in options or []}
        ids = [rid for rid in report_ids or [] if rid in offered]
        if deposit_id is not None:
            ready = bool(ids and bank and deposit_date)
            return not ready, f"Editing · {len(ids)} report(s) · {len(slips or [])} new slip(s)"
        try:
            draft = _draft(ids, slips, bank, deposit_date, excluded or [])
        except DashboardError as e:
            return True, e.user_message()
        return not draft.is_submittable, draft.state

    # ── Save ──────────────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("dep-modal", "is_open", allow_duplicate=True),
        Input("dep-submit", "n_clicks"),
        State("dep-edit-id", "data"),
        State("dep-reports", "value"),
        State("dep-slips", "data"),
        State("dep-bank", "value"),
        State("dep-date", "value"),
        State("dep-excluded", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_deposit(n_clicks, deposit_id, report_ids, slips, bank, deposit_date, excluded,
                     version):
        if not n_clicks:
            return no_update, no_update, no_update
        excluded = excluded or []
        try:
            store = ds.require_store()
            if deposit_id is None:
                draft = _draft(report_ids, slips, bank, deposit_date, excluded)
                deposit_id, failed = deposits.submit_deposit(store, draft)
                msg = f"Deposit of {ledger.money(draft.amount)} saved"
            else:
                deposit = ds.find(ds.DEPOSITS, deposit_id)
                if deposit is None:
                    raise DashboardError("This deposit no longer exists.")
                deposits.update_deposit(store, deposit, ds.REPORTS, bank, deposit_date,
                                        report_ids=report_ids, excluded=excluded,
                                        is_compatible=BANK_RULE)
                failed = deposits.attach_slips(store, deposit_id, _decoded(slips)) if slips else []
                msg = "Deposit updated"
        except DashboardError as e:
            return error_toast(e, "Deposit not saved"), no_update, no_update
        ds.reload_financials()
        if failed:
            note = toast(f"{msg}, but these slips failed to upload: {', '.join(failed)}",
                         "Bank Deposits", icon="warning", duration=8000)
        else:
            note = toast(msg, "Bank Deposits")
        return note, (version or 0) + 1, False

    # ── Delete ────────────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "dep-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_deposit(_clicks, version):
        if not _clicked():
            return no_update, no_update
        deposit = ds.find(ds.DEPOSITS, callback_context.triggered_id["index"])
        if deposit is None:
            return no_update, no_update
        try:
            deposits.delete_deposit(ds.require_store(), deposit)
        except DashboardError as e:
            return error_toast(e, "Deposit not deleted"), no_update
        ds.reload_financials()
        return toast("Deposit deleted; its reports are depositable again", "Bank Deposits"), \
            (version or 0) + 1

    # ── Export ────────────────────────────────────────────────────────────
    @app.callback(
        Output("dep-download", "data"),
        Input("dep-export-csv", "n_clicks"),
        State("dep-date-range", "start_date"),
        State("dep-date-range", "end_date"),
        State("dep-bank-filter", "value"),
        prevent_initial_call=True,
    )
    def export_deposits(n_clicks, start, end, bank):
        if not n_clicks:
            return no_update
        rows = _filtered_deposits(start, end, bank)
        return dcc.send_string(export.export_deposits(rows),
                               f"bank_deposits_{date.today().isoformat()}.csv")
