"""Rentals callbacks: listing, new-rental form, status changes, delete, export."""
import logging
from datetime import date

from dash import Input, Output, State, ALL, callback_context, dcc, html, no_update
import dash_bootstrap_components as dbc

from fleet_dashboard import data_state as ds
from fleet_dashboard import export, ledger, rentals
from fleet_dashboard.components.cards import toast, error_toast
from fleet_dashboard.errors import DashboardError
from fleet_dashboard.pages import rentals as page
from fleet_dashboard.uploads import decode_upload, validate_attachment

log = logging.getLogger(__name__)


def _filtered(start, end, status):
    rows = ledger.filter_by_date_range(ds.RENTALS, "rental_start_date", start, end)
    if status:
        rows = [r for r in rows if (r.get("status") or "active") == status]
    return rows


def register_callbacks(app):
    @app.callback(
        Output("rent-kpis", "children"),
        Output("rent-list", "children"),
        Input("data-version", "data"),
        Input("rent-date-range", "start_date"),
        Input("rent-date-range", "end_date"),
        Input("rent-status-filter", "value"),
        Input("rent-excluded", "value"),
    )
    def render_rentals(_version, start, end, status, excluded):
        rows = _filtered(start, end, status)
        excluded = excluded or []
        return page.rental_kpis(rows, excluded), page.grouped_rentals(rows, excluded)

    # ── Form ──────────────────────────────────────────────────────────────
    @app.callback(
        Output("rent-modal", "is_open"),
        Output("rent-f-start", "value"),
        Output("rent-f-end", "value"),
        Output("rent-f-amount", "value"),
        Output("rent-f-client", "value"),
        Output("rent-f-contact", "value"),
        Output("rent-f-vehicles", "value"),
        Output("rent-f-description", "value"),
        Output("rent-f-expenses", "data"),
        Output("rent-receipts", "data"),
        Output("rent-f-receipt-feedback", "children"),
        Input("rent-new-btn", "n_clicks"),
        Input("rent-cancel", "n_clicks"),
        prevent_initial_call=True,
    )
    def toggle_rental_form(_new, _cancel):
        if callback_context.triggered_id == "rent-cancel":
            return (False,) + (no_update,) * 10
        today = date.today().isoformat()
        return True, today, today, None, "", "", [], "", [], [], None

    @app.callback(
        Output("rent-f-expenses", "data", allow_duplicate=True),
        Input("rent-f-add-expense", "n_clicks"),
        State("rent-f-expenses", "data"),
        prevent_initial_call=True,
    )
    def add_expense_row(n_clicks, rows):
        if not n_clicks:
            return no_update
        return (rows or []) + [{"category": "fuel", "description": "", "amount": None}]

    @app.callback(
        Output("rent-receipts", "data", allow_duplicate=True),
        Output("rent-f-receipt-feedback", "children", allow_duplicate=True),
        Input("rent-f-receipt-upload", "contents"),
        State("rent-f-receipt-upload", "filename"),
        State("rent-f-receipt-amount", "value"),
        State("rent-f-receipt-method", "value"),
        State("rent-receipts", "data"),
        prevent_initial_call=True,
    )
    def add_receipts(contents, filenames, amount, method, receipts):
        if not contents:
            return no_update, no_update
        receipts = list(receipts or [])
        errors = []
        for content, filename in zip(contents, filenames):
            ok, msg = validate_attachment(filename, decode_upload(content))
            if not ok:
                errors.append(msg)
                continue
            receipts.append({"filename": filename, "contents": content,
                             "amount": ledger.num(amount), "payment_method": method})
        feedback = dbc.Alert([html.Div(e) for e in errors], color="danger",
                             className="py-2") if errors else None
        return receipts, feedback

    @app.callback(
        Output("rent-f-receipt-list", "children"),
        Input("rent-receipts", "data"),
    )
    def render_receipts(receipts):
        return page.receipt_list(receipts or [])

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("rent-modal", "is_open", allow_duplicate=True),
        Input("rent-save", "n_clicks"),
        State("rent-f-start", "value"),
        State("rent-f-end", "value"),
        State("rent-f-amount", "value"),
        State("rent-f-client", "value"),
        State("rent-f-contact", "value"),
        State("rent-f-vehicles", "value"),
        State("rent-f-description", "value"),
        State("rent-f-expenses", "data"),
        State("rent-receipts", "data"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_rental(n_clicks, start, end, amount, client, contact, vehicle_ids, description,
                    expense_rows, receipts, version):
        if not n_clicks:
            return no_update, no_update, no_update
        data = {
            "rental_start_date": start, "rental_end_date": end, "rental_amount": amount,
            "client_name": (client or "").strip() or None,
            "client_contact": (contact or "").strip() or None,
            "description": (description or "").strip() or None,
        }
        expense_rows = [{**row, "expense_date": start} for row in expense_rows or []
                        if row.get("category") or row.get("amount")]
        files = [{"filename": r["filename"], "data": decode_upload(r["contents"]),
                  "amount": r.get("amount"), "payment_method": r.get("payment_method")}
                 for r in receipts or []]
        try:
            rental, failed = rentals.create_rental(ds.require_store(), data, vehicle_ids or [],
                                                   expense_rows, files)
        except DashboardError as e:
            return error_toast(e, "Rental not saved"), no_update, no_update
        ds.reload_rentals()
        if failed:
            note = toast(f"Rental saved, but these receipts failed to upload: {', '.join(failed)}",
                         "Rentals", icon="warning", duration=8000)
        else:
            note = toast(f"Rental for {rental.get('client_name') or 'client'} saved", "Rentals")
        return note, (version or 0) + 1, False

    # ── Row actions ───────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "rent-status", "index": ALL}, "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def change_status(_values, version):
        trigger = callback_context.triggered_id
        if not trigger or not callback_context.triggered:
            return no_update, no_update
        status = callback_context.triggered[0]["value"]
        rental = ds.find(ds.RENTALS, trigger["index"])
        if rental is None or (rental.get("status") or "active") == status:
            return no_update, no_update
        try:
            rentals.update_rental(ds.require_store(), rental["id"], {"status": status})
        except DashboardError as e:
            return error_toast(e, "Status not changed"), no_update
        ds.reload_rentals()
        return toast(f"Rental marked {status}", "Rentals"), (version or 0) + 1

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "rent-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_rental(_clicks, version):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return no_update, no_update
        rental = ds.find(ds.RENTALS, callback_context.triggered_id["index"])
        if rental is None:
            return no_update, no_update
        try:
            rentals.delete_rental(ds.require_store(), rental)
        except DashboardError as e:
            return error_toast(e, "Rental not deleted"), no_update
        ds.reload_rentals()
        return toast("Rental deleted", "Rentals"), (version or 0) + 1

    @app.callback(
        Output("rent-download", "data"),
        Input("rent-export-csv", "n_clicks"),
        State("rent-date-range", "start_date"),
        State("rent-date-range", "end_date"),
        State("rent-status-filter", "value"),
        State("rent-excluded", "value"),
        prevent_initial_call=True,
    )
    def export_rentals(n_clicks, start, end, status, excluded):
        if not n_clicks:
            return no_update
        rows = _filtered(start, end, status)
        return dcc.send_string(export.export_rentals(rows, excluded or []),
                               f"rentals_{date.today().isoformat()}.csv")
