"""Operations callbacks: company expenses, maintenance, inventory search, vehicles."""
import logging
from datetime import date

from dash import Input, Output, State, ALL, callback_context, dcc, no_update

from fleet_dashboard import data_state as ds
from fleet_dashboard import export, operations
from fleet_dashboard.components.cards import toast, error_toast
from fleet_dashboard.errors import DashboardError
from fleet_dashboard.pages import operations as page
from fleet_dashboard.uploads import decode_upload

log = logging.getLogger(__name__)


def _saved(message, version):
    ds.reload_operations()
    return toast(message, "Operations"), (version or 0) + 1


def register_callbacks(app):
    # ── Tables ────────────────────────────────────────────────────────────
    @app.callback(
        Output("ops-kpis", "children"),
        Output("ops-exp-table", "children"),
        Output("ops-mnt-table", "children"),
        Output("ops-veh-table", "children"),
        Input("data-version", "data"),
    )
    def render_operations(_version):
        return (page.operations_kpis(), page.company_expense_table(ds.COMPANY_EXPENSES),
                page.maintenance_table(ds.MAINTENANCE), page.vehicle_table(ds.VEHICLES))

    @app.callback(
        Output("ops-inv-table", "children"),
        Input("ops-inv-search", "value"),
        Input("data-version", "data"),
    )
    def render_inventory(term, _version):
        if not (term or "").strip():
            return page.inventory_table(ds.INVENTORY)
        return page.inventory_table(operations.search_inventory(ds.get_store(), term))

    # ── Company expenses ──────────────────────────────────────────────────
    @app.callback(
        Output("ops-exp-receipt-data", "data"),
        Output("ops-exp-receipt-name", "children"),
        Input("ops-exp-receipt", "contents"),
        State("ops-exp-receipt", "filename"),
        prevent_initial_call=True,
    )
    def pick_receipt(contents, filename):
        if not contents:
            return None, ""
        return {"filename": filename, "contents": contents}, f"Receipt: {filename}"

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("ops-exp-receipt-data", "data", allow_duplicate=True),
        Output("ops-exp-receipt-name", "children", allow_duplicate=True),
        Input("ops-exp-save", "n_clicks"),
        State("ops-exp-date", "value"),
        State("ops-exp-category", "value"),
        State("ops-exp-description", "value"),
        State("ops-exp-amount", "value"),
        State("ops-exp-receipt-data", "data"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_company_expense(n_clicks, expense_date, category, description, amount, receipt,
                             version):
        if not n_clicks:
            return (no_update,) * 4
        attachment = None
        if receipt:
            attachment = (receipt["filename"], decode_upload(receipt["contents"]))
        try:
            operations.save_company_expense(ds.require_store(), {
                "expense_date": expense_date, "category": category,
                "description": description, "amount": amount,
            }, receipt=attachment)
        except DashboardError as e:
            return error_toast(e, "Expense not saved"), no_update, no_update, no_update
        return _saved("Company expense added", version) + (None, "")

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "ops-exp-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_company_expense(_clicks, version):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return no_update, no_update
        expense = ds.find(ds.COMPANY_EXPENSES, callback_context.triggered_id["index"])
        if expense is None:
            return no_update, no_update
        try:
            operations.delete_company_expense(ds.require_store(), expense)
        except DashboardError as e:
            return error_toast(e, "Expense not deleted"), no_update
        return _saved("Company expense deleted", version)

    # ── Maintenance ───────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input("ops-mnt-save", "n_clicks"),
        State("ops-mnt-vehicle", "value"),
        State("ops-mnt-date", "value"),
        State("ops-mnt-status", "value"),
        State("ops-mnt-cost", "value"),
        State("ops-mnt-technician", "value"),
        State("ops-mnt-description", "value"),
        State("ops-mnt-parts", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_maintenance(n_clicks, vehicle_id, record_date, status, cost, technician,
                         description, parts, version):
        if not n_clicks:
            return no_update, no_update
        try:
            operations.save_maintenance_record(ds.require_store(), {
                "vehicle_id": vehicle_id, "date": record_date, "status": status,
                "cost": cost, "technician": technician, "description": description,
                "parts": parts,
            })
        except DashboardError as e:
            return error_toast(e, "Maintenance not saved"), no_update
        return _saved("Maintenance record added", version)

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "ops-mnt-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_maintenance(_clicks, version):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return no_update, no_update
        try:
            operations.delete_maintenance_record(ds.require_store(),
                                                 callback_context.triggered_id["index"])
        except DashboardError as e:
            return error_toast(e, "Maintenance not deleted"), no_update
        return _saved("Maintenance record deleted", version)

    # ── Inventory ─────────────────────────────────────────────────────────
    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input("ops-inv-save", "n_clicks"),
        State("ops-inv-date", "value"),
        State("ops-inv-name", "value"),
        State("ops-inv-description", "value"),
        State("ops-inv-quantity", "value"),
        State("ops-inv-unit", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_inventory(n_clicks, item_date, name, description, quantity, unit, version):
        if not n_clicks:
            return no_update, no_update
        try:
            operations.save_inventory_item(ds.require_store(), {
                "date": item_date, "item_name": name, "description": description,
                "quantity": quantity, "amount_unit": unit,
            })
        except DashboardError as e:
            return error_toast(e, "Item not saved"), no_update
        return _saved(f"{name} added to inventory", version)

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "ops-inv-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_inventory(_clicks, version):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return no_update, no_update
        try:
            operations.delete_inventory_item(ds.require_store(),
                                             callback_context.triggered_id["index"])
        except DashboardError as e:
            return error_toast(e, "Item not deleted"), no_update
        return _saved("Inventory item deleted", version)

    # ── Vehicles ──────────────────────────────────────────────────────────
    @app.callback(
        Output("ops-veh-edit-id", "data"),
        Output("ops-veh-plate", "value"),
        Output("ops-veh-model", "value"),
        Output("ops-veh-mode", "children"),
        Input({"type": "ops-veh-edit", "index": ALL}, "n_clicks"),
        Input("ops-veh-new", "n_clicks"),
        prevent_initial_call=True,
    )
    def pick_vehicle(_edit_clicks, _new):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return (no_update,) * 4
        if callback_context.triggered_id == "ops-veh-new":
            return None, "", "", ""
        vehicle = ds.find(ds.VEHICLES, callback_context.triggered_id["index"])
        if vehicle is None:
            return (no_update,) * 4
        return vehicle["id"], vehicle.get("plate"), vehicle.get("model"), \
            f"Editing {vehicle.get('plate')}"

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Output("ops-veh-edit-id", "data", allow_duplicate=True),
        Output("ops-veh-mode", "children", allow_duplicate=True),
        Input("ops-veh-save", "n_clicks"),
        State("ops-veh-edit-id", "data"),
        State("ops-veh-plate", "value"),
        State("ops-veh-model", "value"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def save_vehicle(n_clicks, vehicle_id, plate, model, version):
        if not n_clicks:
            return (no_update,) * 4
        try:
            saved = operations.save_vehicle(ds.require_store(), {"plate": plate, "model": model},
                                            vehicle_id, ds.VEHICLES)
        except DashboardError as e:
            return error_toast(e, "Vehicle not saved"), no_update, no_update, no_update
        verb = "updated" if vehicle_id else "added"
        note, version = _saved(f"Vehicle {saved['plate']} {verb}", version)
        return note, version, None, ""

    @app.callback(
        Output("toast-container", "children", allow_duplicate=True),
        Output("data-version", "data", allow_duplicate=True),
        Input({"type": "ops-veh-del", "index": ALL}, "n_clicks"),
        State("data-version", "data"),
        prevent_initial_call=True,
    )
    def delete_vehicle(_clicks, version):
        trig = callback_context.triggered
        if not trig or not trig[0]["value"]:
            return no_update, no_update
        # reports and rentals are not refetched by this page
        ds.reload_financials()
        ds.reload_rentals()
        try:
            operations.delete_vehicle(ds.require_store(), callback_context.triggered_id["index"],
                                      ds.REPORTS, ds.RENTALS, ds.MAINTENANCE)
        except DashboardError as e:
            return error_toast(e, "Vehicle not deleted"), no_update
        return _saved("Vehicle deleted", version)

    # ── Exports ───────────────────────────────────────────────────────────
    @app.callback(
        Output("ops-download", "data"),
        Input("ops-exp-export", "n_clicks"),
        Input("ops-mnt-export", "n_clicks"),
        Input("ops-inv-export", "n_clicks"),
        State("ops-inv-search", "value"),
        prevent_initial_call=True,
    )
    def export_operations(_exp, _mnt, _inv, term):
        stamp = date.today().isoformat()
        trigger = callback_context.triggered_id
        if trigger == "ops-exp-export":
            return dcc.send_string(export.export_company_expenses(ds.COMPANY_EXPENSES),
                                   f"company_expenses_{stamp}.csv")
        if trigger == "ops-mnt-export":
            return dcc.send_string(export.export_maintenance(ds.MAINTENANCE),
                                   f"maintenance_{stamp}.csv")
        if trigger == "ops-inv-export":
            items = ds.INVENTORY
            if (term or "").strip():
                items = operations.search_inventory(ds.get_store(), term)
            return dcc.send_string(export.export_inventory(items), f"inventory_{stamp}.csv")
        return no_update
