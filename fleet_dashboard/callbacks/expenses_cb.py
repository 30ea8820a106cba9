"""Expenses callbacks: listing, edit form, fuel receipt replacement."""
import logging

from dash import Input, Output, State, ALL, callback_context, no_update

from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger, reports
from fleet_dashboard.components.cards import toast, error_toast
from fleet_dashboard.errors import DashboardError
from fleet_dashboard.pages import expenses as page
from fleet_dashboard.uploads import decode_upload

log = logging.getLogger(__name__)


def _find_expense(expense_id):
    for expense in reports.expense_rows(ds.REPORTS):
        if expense["id"] == expense_id:
            return expense
    return None


def register_callbacks(app):
    @app.callback(
        Output("exp-kpis", "children"),
        Output("exp-table", "children"),
        Output("exp-pagination", "max_value"),
        Input("data-version", "data"),
        Input("exp-date-range", "start_date"),
        Input("exp-date-range", "end_date"),
        Input("exp-category-filter", "value"),
        Input("exp-pagination", "active_page"),
    )
    def render_expenses(_version, start, end, category, active_page):
        rows = reports.expense_rows(ds.REPORTS, start, end, category)
        rows_on_page, total_pages = ledger.paginate(rows, active_page)
        return page.expense_kpis(rows), page.expense_table(rows_on_page), max(total_pages, 1)

    @app.callback(
        Output("exp-modal", "is_open"),
        Output("exp-edit-id", "data"),
        Output("exp-f-category", "value"),
        Output("exp-f-description", "value"),
        Output("exp-f-amount", "value"),
        Output("exp-f-remove-receipt", "value"),
        Output("exp-receipt-data", "data"),
        Input({"type": "exp-edit", "index": ALL}, "n_clicks"),
        Input("exp-cancel", "n_clicks"),
        prevent_initial_call=True,
    )
    def toggle_edit_form(_edit_clicks, _cancel):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return (no_update,) * 7
        if callback_context.triggered_id == "exp-cancel":
            return False, None, no_update, no_update, no_update, False, None
        expense = _find_expense(callback_context.triggered_id["index"])
        if expense is None:
            return (no_update,) * 7
        return (True, expense["id"], expense.get("category"), expense.get("description") or "",
                ledger.num(expense.get("amount")), False, None)

    @app.callback(
        Output("exp-receipt-data", "data", allow_duplicate=True),
        Input("exp-f-receipt", "contents"),
        State("exp-f-receipt", "filename"),
        prevent_initial_call=True,
    )
    def pick_receipt(contents, filename):
        if not contents:
            return None
        return {"filename": filename, "contents": contents}

    @app.callback(
        Output("exp-f-receipt-note", "children"),
        Output("exp-f-receipt-block", "style"),
        Input("exp-receipt-data", "data"),
        Input("exp-edit-id", "data"),
        Input("exp-f-category", "value"),
    )
    def receipt_note(receipt, expense_id, category):
        style = None if category == "Fuel" else {"display": "none"}
        expense = _find_expense(expense_id) if expense_id else None
        return page.receipt_note(expense, (receipt or {}).get("filename")), style

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("exp-modal", "is_open", allow_duplicate=True),
        Input("exp-save", "n_clicks"),
        State("exp-edit-id", "data"),
        State("exp-f-category", "value"),
        State("exp-f-description", "value"),
        State("exp-f-amount", "value"),
        State("exp-f-remove-receipt", "value"),
        State("exp-receipt-data", "data"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_expense(n_clicks, expense_id, category, description, amount, remove_receipt,
                     receipt, version):
        if not n_clicks or expense_id is None:
            return no_update, no_update, no_update
        expense = _find_expense(expense_id)
        if expense is None:
            return toast("This expense no longer exists.", "Expenses", icon="warning"), \
                no_update, False
        upload = None
        if receipt and category == "Fuel":
            upload = (receipt["filename"], decode_upload(receipt["contents"]))
        try:
            _, receipt_failed = reports.edit_expense(
                ds.require_store(), expense,
                {"category": category, "description": description, "amount": amount},
                receipt=upload, remove_receipt=bool(remove_receipt) and category == "Fuel",
            )
        except DashboardError as e:
            return error_toast(e, "Expense not saved"), no_update, no_update
        ds.reload_financials()
        if receipt_failed:
            note = toast("Expense updated without the new receipt: the upload failed.",
                         "Expenses", icon="warning", duration=8000)
        else:
            note = toast("Expense updated", "Expenses")
        return note, (version or 0) + 1, False
