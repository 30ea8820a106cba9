"""Daily Reports callbacks: filtering, paging, report/expense writes, exports."""
import logging
from datetime import date

from dash import Input, Output, State, ALL, callback_context, dcc, no_update

from fleet_dashboard import data_state as ds
from fleet_dashboard import export, ledger, reports
from fleet_dashboard.components.cards import toast, error_toast
from fleet_dashboard.errors import DashboardError
from fleet_dashboard.pages import reports as page

log = logging.getLogger(__name__)


def _filtered(start, end, report_type, view, excluded):
    rows = reports.filter_reports(ds.REPORTS, start, end, report_type or "all")
    if "flagged" in (view or []):
        rows = [r for r in rows if ledger.is_flagged(r)]
    return rows


def _clicked():
    """Value of the component that fired; None for pattern buttons just rendered."""
    trig = callback_context.triggered
    return trig[0]["value"] if trig else None


def register_callbacks(app):
    # ── Table, KPIs and paging ────────────────────────────────────────────
    @app.callback(
        Output("rep-kpis", "children"),
        Output("rep-table", "children"),
        Output("rep-pagination", "max_value"),
        Input("data-version", "data"),
        Input("rep-date-range", "start_date"),
        Input("rep-date-range", "end_date"),
        Input("rep-type", "value"),
        Input("rep-view", "value"),
        Input("rep-excluded", "value"),
        Input("rep-pagination", "active_page"),
    )
    def render_reports(_version, start, end, report_type, view, excluded, active_page):
        excluded = excluded or []
        rows = _filtered(start, end, report_type, view, excluded)
        kpis = page.report_kpis(rows, excluded)
        if "group" in (view or []):
            return kpis, page.grouped_reports(rows, excluded), 1
        rows_on_page, total_pages = ledger.paginate(rows, active_page)
        return kpis, page.report_table(rows_on_page, excluded), max(total_pages, 1)

    # ── Open / close the report form ──────────────────────────────────────
    @app.callback(
        Output("rep-modal", "is_open"),
        Output("rep-edit-id", "data"),
        Output("rep-modal-title", "children"),
        Output("rep-f-vehicle", "value"),
        Output("rep-f-date", "value"),
        Output("rep-f-status", "value"),
        Output("rep-f-route", "value"),
        Output("rep-f-reason", "value"),
        Output("rep-f-ticket", "value"),
        Output("rep-f-baggage", "value"),
        Output("rep-f-cargo", "value"),
        Input("rep-new-btn", "n_clicks"),
        Input("rep-cancel", "n_clicks"),
        Input({"type": "rep-edit", "index": ALL}, "n_clicks"),
        prevent_initial_call=True,
    )
    def toggle_report_form(_new, _cancel, _edits):
        trigger = callback_context.triggered_id
        if trigger == "rep-cancel":
            return (False,) + (no_update,) * 10
        if trigger == "rep-new-btn":
            return (True, None, "New Daily Report", None, date.today().isoformat(),
                    "Operational", None, "", 0, 0, 0)
        if not _clicked():
            return (no_update,) * 11
        report = ds.find(ds.REPORTS, trigger["index"])
        if report is None:
            return (no_update,) * 11
        return (True, report["id"], "Edit Daily Report", report.get("vehicle_id"),
                ledger.date_key(report["report_date"]), report.get("status"),
                report.get("route"), report.get("non_operational_reason") or "",
                ledger.num(report.get("ticket_revenue")),
                ledger.num(report.get("baggage_revenue")),
                ledger.num(report.get("cargo_revenue")))

    # ── Save report ───────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("rep-modal", "is_open", allow_duplicate=True),
        Input("rep-save", "n_clicks"),
        State("rep-edit-id", "data"),
        State("rep-f-vehicle", "value"),
        State("rep-f-date", "value"),
        State("rep-f-status", "value"),
        State("rep-f-route", "value"),
        State("rep-f-reason", "value"),
        State("rep-f-ticket", "value"),
        State("rep-f-baggage", "value"),
        State("rep-f-cargo", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_report(n_clicks, report_id, vehicle_id, report_date, status, route, reason,
                    ticket, baggage, cargo, version):
        if not n_clicks:
            return no_update, no_update, no_update
        data = {
            "vehicle_id": vehicle_id, "report_date": report_date, "status": status,
            "route": route, "non_operational_reason": reason,
            "ticket_revenue": ticket, "baggage_revenue": baggage, "cargo_revenue": cargo,
        }
        try:
            store = ds.require_store()
            if report_id:
                reports.update_report(store, report_id, data)
            else:
                reports.create_report(store, data)
        except DashboardError as e:
            return error_toast(e, "Report not saved"), no_update, no_update
        ds.reload_financials()
        msg = "Report updated" if report_id else "Report created"
        return toast(msg, "Daily Reports"), (version or 0) + 1, False

    # ── Delete report ─────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "rep-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_report(_clicks, version):
        if not _clicked():
            return no_update, no_update
        report_id = callback_context.triggered_id["index"]
        try:
            removed = reports.delete_report(ds.require_store(), report_id)
        except DashboardError as e:
            return error_toast(e, "Report not deleted"), no_update
        ds.reload_financials()
        return toast(f"Report deleted ({removed} expense(s) removed)", "Daily Reports"), \
            (version or 0) + 1

    # ── Expenses ──────────────────────────────────────────────────────────
    @app.callback(
        Output("rep-exp-list", "children"),
        Output("rep-exp-report", "options"),
        Input("rep-exp-report", "value"),
        Input("data-version", "data"),
    )
    def render_expenses(report_id, _version):
        report = ds.find(ds.REPORTS, report_id) if report_id else None
        return page.expense_list(report), page.report_options()

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("rep-exp-amount", "value"),
        Output("rep-exp-description", "value"),
        Input("rep-exp-add", "n_clicks"),
        State("rep-exp-report", "value"),
        State("rep-exp-category", "value"),
        State("rep-exp-description", "value"),
        State("rep-exp-amount", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def add_expense(n_clicks, report_id, category, description, amount, version):
        if not n_clicks:
            return (no_update,) * 4
        if not report_id:
            return toast("Choose a report first.", "Expenses", icon="warning"), \
                no_update, no_update, no_update
        try:
            reports.add_expense(ds.require_store(), report_id, {
                "category": category, "description": description, "amount": amount,
            })
        except DashboardError as e:
            return error_toast(e, "Expense not added"), no_update, no_update, no_update
        ds.reload_financials()
        return toast("Expense added", "Expenses"), (version or 0) + 1, None, ""

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "rep-exp-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def remove_expense(_clicks, version):
        if not _clicked():
            return no_update, no_update
        try:
            reports.remove_expense(ds.require_store(), callback_context.triggered_id["index"])
        except DashboardError as e:
            return error_toast(e, "Expense not removed"), no_update
        ds.reload_financials()
        return toast("Expense removed", "Expenses"), (version or 0) + 1

    # ── Export ────────────────────────────────────────────────────────────
    @app.callback(
        Output("rep-download", "data"),
        Input("rep-export-csv", "n_clicks"),
        Input("rep-export-tsv", "n_clicks"),
        State("rep-date-range", "start_date"),
        State("rep-date-range", "end_date"),
        State("rep-type", "value"),
        State("rep-view", "value"),
        State("rep-excluded", "value"),
        prevent_initial_call=True,
    )
    def export_reports(_csv, _tsv, start, end, report_type, view, excluded):
        excluded = excluded or []
        rows = _filtered(start, end, report_type, view, excluded)
        stamp = date.today().isoformat()
        if callback_context.triggered_id == "rep-export-tsv":
            text = export.to_tsv(rows, export.report_columns(excluded))
            return dcc.send_string(text, f"daily_reports_{stamp}.xls")
        return dcc.send_string(export.export_reports(rows, excluded), f"daily_reports_{stamp}.csv")
