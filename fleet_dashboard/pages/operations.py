"""Operations page: company expenses, maintenance log, inventory with search, vehicles."""
from dash import html, dcc
import dash_bootstrap_components as dbc

from fleet_dashboard.theme import *
from fleet_dashboard.components.cards import section, load_banner
from fleet_dashboard.components.kpi import kpi_card
from fleet_dashboard.components.tables import simple_table, money_cell, empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger


def _delete_button(kind, row_id):
    return html.Td(dbc.Button("Delete", id={"type": kind, "index": row_id}, size="sm",
                              color="danger", outline=True))


# ── Company expenses ─────────────────────────────────────────────────────────

def company_expense_table(expenses):
    if not expenses:
        return empty_note("No company expenses recorded.")
    rows = [html.Tr([
        html.Td(ledger.date_key(e["expense_date"]), style={"fontSize": "12px"}),
        html.Td(html.Span(e.get("category") or "Other",
                          style={"color": CATEGORY_COLORS.get(e.get("category"), GRAY)})),
        html.Td(e.get("description") or "", style={"color": GRAY, "fontSize": "12px"}),
        money_cell(ledger.num(e.get("amount"))),
        html.Td(html.A("receipt", href=e["receipt_url"], target="_blank",
                       style={"color": CYAN, "fontSize": "11px"}) if e.get("receipt_url") else ""),
        _delete_button("ops-exp-del", e["id"]),
    ]) for e in expenses]
    return simple_table(["Date", "Category", "Description", "Amount", "Receipt", ""], rows,
                        right_align=("Amount",))


def _company_expenses_tab():
    return html.Div([
        dbc.Row([
            dbc.Col(dbc.Input(id="ops-exp-date", type="date"), md=2),
            dbc.Col(dcc.Dropdown(id="ops-exp-category", placeholder="Category",
                                 options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
                    md=2),
            dbc.Col(dbc.Input(id="ops-exp-description", placeholder="Description"), md=3),
            dbc.Col(dbc.Input(id="ops-exp-amount", type="number", min=0, placeholder="Amount"),
                    md=2),
            dbc.Col(dcc.Upload(id="ops-exp-receipt", accept=".pdf,.jpg,.jpeg,.png",
                               children=dbc.Button("Receipt…", color="secondary", outline=True,
                                                   className="w-100")), md=1),
            dbc.Col(dbc.Button("Add", id="ops-exp-save", color="primary", className="w-100"),
                    md=2),
        ], className="g-2 mb-2"),
        html.Div(id="ops-exp-receipt-name", style={"color": GRAY, "fontSize": "12px",
                                                   "marginBottom": "8px"}),
        html.Div([
            dbc.Button("Export CSV", id="ops-exp-export", size="sm", color="secondary",
                       outline=True),
        ], className="mb-2"),
        html.Div(id="ops-exp-table"),
    ], style={"paddingTop": "16px"})


# ── Maintenance ──────────────────────────────────────────────────────────────

MAINTENANCE_STATUS_COLORS = {"Scheduled": ORANGE, "In Progress": BLUE, "Completed": GREEN}


def maintenance_table(records):
    if not records:
        return empty_note("No maintenance records yet.")
    rows = [html.Tr([
        html.Td(ledger.date_key(m["date"]), style={"fontSize": "12px"}),
        html.Td((m.get("vehicles") or {}).get("plate") or "—", style={"fontWeight": "600"}),
        html.Td([
            html.Div(m.get("description") or ""),
            html.Div(", ".join(m.get("parts") or []), style={"color": GRAY, "fontSize": "11px"}),
        ]),
        html.Td(html.Span(m.get("status") or "",
                          style={"color": MAINTENANCE_STATUS_COLORS.get(m.get("status"), GRAY)})),
        html.Td(m.get("technician") or "", style={"fontSize": "12px"}),
        money_cell(ledger.num(m.get("cost"))),
        _delete_button("ops-mnt-del", m["id"]),
    ]) for m in records]
    return simple_table(["Date", "Vehicle", "Work", "Status", "Technician", "Cost", ""], rows,
                        right_align=("Cost",))


def _maintenance_tab():
    return html.Div([
        dbc.Row([
            dbc.Col(dcc.Dropdown(id="ops-mnt-vehicle", placeholder="Vehicle",
                                 options=ds.vehicle_options()), md=3),
            dbc.Col(dbc.Input(id="ops-mnt-date", type="date"), md=2),
            dbc.Col(dbc.Select(id="ops-mnt-status", value=MAINTENANCE_STATUSES[0],
                               options=[{"label": s, "value": s} for s in MAINTENANCE_STATUSES]),
                    md=2),
            dbc.Col(dbc.Input(id="ops-mnt-cost", type="number", min=0, placeholder="Cost"), md=2),
            dbc.Col(dbc.Input(id="ops-mnt-technician", placeholder="Technician"), md=3),
        ], className="g-2 mb-2"),
        dbc.Row([
            dbc.Col(dbc.Input(id="ops-mnt-description", placeholder="Work done"), md=6),
            dbc.Col(dbc.Input(id="ops-mnt-parts", placeholder="Parts (comma separated)"), md=4),
            dbc.Col(dbc.Button("Add", id="ops-mnt-save", color="primary", className="w-100"),
                    md=2),
        ], className="g-2 mb-2"),
        html.Div([
            dbc.Button("Export CSV", id="ops-mnt-export", size="sm", color="secondary",
                       outline=True),
        ], className="mb-2"),
        html.Div(id="ops-mnt-table"),
    ], style={"paddingTop": "16px"})


# ── Inventory ────────────────────────────────────────────────────────────────

def inventory_table(items):
    if not items:
        return empty_note("No inventory items found.")
    rows = [html.Tr([
        html.Td(ledger.date_key(i["date"]), style={"fontSize": "12px"}),
        html.Td([
            html.Div(i.get("item_name") or "N/A", style={"fontWeight": "600"}),
            html.Div(i.get("description") or "", style={"color": GRAY, "fontSize": "11px"}),
        ]),
        html.Td(f"{ledger.num(i.get('quantity')):g}",
                style={"textAlign": "center", "fontFamily": "monospace"}),
        money_cell(ledger.num(i.get("amount_unit"))),
        money_cell(ledger.num(i.get("total_cost")), CYAN),
        _delete_button("ops-inv-del", i["id"]),
    ]) for i in items]
    return simple_table(["Date", "Item", "Qty", "Unit", "Total", ""], rows,
                        right_align=("Unit", "Total"))


def _inventory_tab():
    return html.Div([
        dbc.Row([
            dbc.Col(dbc.Input(id="ops-inv-date", type="date"), md=2),
            dbc.Col(dbc.Input(id="ops-inv-name", placeholder="Item name"), md=3),
            dbc.Col(dbc.Input(id="ops-inv-description", placeholder="Description"), md=3),
            dbc.Col(dbc.Input(id="ops-inv-quantity", type="number", min=0, placeholder="Qty"),
                    md=1),
            dbc.Col(dbc.Input(id="ops-inv-unit", type="number", min=0, placeholder="Unit cost"),
                    md=1),
            dbc.Col(dbc.Button("Add", id="ops-inv-save", color="primary", className="w-100"),
                    md=2),
        ], className="g-2 mb-3"),
        dbc.Row([
            dbc.Col(dcc.Input(id="ops-inv-search", type="text", debounce=400,
                              placeholder="Search items (2+ characters)…",
                              className="form-control"), md=6),
            dbc.Col(dbc.Button("Export CSV", id="ops-inv-export", size="sm", color="secondary",
                               outline=True), md=6, style={"textAlign": "right"}),
        ], className="g-2 mb-2"),
        html.Div(id="ops-inv-table"),
    ], style={"paddingTop": "16px"})


# ── Vehicles ─────────────────────────────────────────────────────────────────

def vehicle_table(vehicles):
    if not vehicles:
        return empty_note("No vehicles registered.")
    rows = [html.Tr([
        html.Td(v.get("plate") or "", style={"fontWeight": "600"}),
        html.Td(v.get("model") or "", style={"color": GRAY}),
        html.Td(html.Span("Agaseke", style={"color": TEAL, "fontSize": "11px"})
                if v.get("plate") in AGASEKE_PLATES else ""),
        html.Td([
            dbc.Button("Edit", id={"type": "ops-veh-edit", "index": v["id"]}, size="sm",
                       color="secondary", outline=True, className="me-1"),
            dbc.Button("Delete", id={"type": "ops-veh-del", "index": v["id"]}, size="sm",
                       color="danger", outline=True),
        ], style={"whiteSpace": "nowrap"}),
    ]) for v in vehicles]
    return simple_table(["Plate", "Model", "", ""], rows)


def _vehicles_tab():
    return html.Div([
        dbc.Row([
            dbc.Col(dbc.Input(id="ops-veh-plate", placeholder="License plate"), md=4),
            dbc.Col(dbc.Input(id="ops-veh-model", placeholder="Model"), md=4),
            dbc.Col(dbc.Button("Save", id="ops-veh-save", color="primary", className="w-100"),
                    md=2),
            dbc.Col(dbc.Button("New", id="ops-veh-new", color="secondary", outline=True,
                               className="w-100"), md=2),
        ], className="g-2 mb-2"),
        html.Div(id="ops-veh-mode", style={"color": GRAY, "fontSize": "12px",
                                           "marginBottom": "8px"}),
        html.Div(id="ops-veh-table"),
        dcc.Store(id="ops-veh-edit-id"),
    ], style={"paddingTop": "16px"})


def operations_kpis():
    return [
        kpi_card("Company Expenses",
                 ledger.money(sum(ledger.num(e.get("amount")) for e in ds.COMPANY_EXPENSES)),
                 ORANGE, f"{len(ds.COMPANY_EXPENSES)} entries"),
        kpi_card("Maintenance",
                 ledger.money(sum(ledger.num(m.get("cost")) for m in ds.MAINTENANCE)),
                 PINK, f"{sum(1 for m in ds.MAINTENANCE if m.get('status') != 'Completed')} open"),
        kpi_card("Inventory Value",
                 ledger.money(sum(ledger.num(i.get("total_cost")) for i in ds.INVENTORY)),
                 CYAN, f"{len(ds.INVENTORY)} items"),
        kpi_card("Vehicles", str(len(ds.VEHICLES)), BLUE,
                 f"{sum(1 for v in ds.VEHICLES if v.get('plate') in AGASEKE_PLATES)} Agaseke"),
    ]


def layout():
    """Build the Operations page."""
    return html.Div([
        load_banner(ds.load_error_messages()),
        html.Div(id="ops-kpis", style={"display": "flex", "gap": "12px", "flexWrap": "wrap",
                                       "marginBottom": "16px"}),
        section("Operations", [
            dbc.Tabs([
                dbc.Tab(_company_expenses_tab(), label="Company Expenses", tab_id="expenses"),
                dbc.Tab(_maintenance_tab(), label="Maintenance", tab_id="maintenance"),
                dbc.Tab(_inventory_tab(), label="Inventory", tab_id="inventory"),
                dbc.Tab(_vehicles_tab(), label="Vehicles", tab_id="vehicles"),
            ], active_tab="expenses"),
        ], PURPLE),
        dcc.Download(id="ops-download"),
        dcc.Store(id="ops-exp-receipt-data"),
    ])
