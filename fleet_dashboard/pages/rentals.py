"""Rentals page: rentals by start date, new-rental form with expenses and receipts."""
from dash import html, dcc, dash_table
import dash_bootstrap_components as dbc

from fleet_dashboard.theme import *
from fleet_dashboard.components.cards import section, load_banner
from fleet_dashboard.components.kpi import kpi_card
from fleet_dashboard.components.tables import simple_table, money_cell, empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger

STATUS_BADGE_COLORS = {"active": "success", "completed": "info", "cancelled": "secondary"}


def rental_plates(rental):
    return [(v.get("vehicles") or {}).get("plate") or str(v.get("vehicle_id"))
            for v in rental.get("rental_vehicles") or []]


def _rental_row(rental, excluded):
    status = rental.get("status") or "active"
    receipts = rental.get("rental_receipts") or []
    return html.Tr([
        html.Td([
            html.Div(rental.get("client_name") or "—", style={"fontWeight": "600"}),
            html.Div(f"{ledger.date_key(rental['rental_start_date'])} → "
                     f"{ledger.date_key(rental['rental_end_date'])}",
                     style={"color": GRAY, "fontSize": "11px"}),
        ]),
        html.Td(", ".join(rental_plates(rental)), style={"fontSize": "12px"}),
        money_cell(ledger.num(rental.get("rental_amount")), GREEN),
        money_cell(ledger.rental_total_expenses(rental, excluded), ORANGE),
        money_cell(ledger.rental_net_profit(rental, excluded)),
        html.Td(html.Span([
            html.A(r.get("filename") or "receipt", href=r["receipt_url"], target="_blank",
                   style={"color": CYAN, "fontSize": "11px", "marginRight": "6px"})
            for r in receipts
        ])),
        html.Td(dbc.Select(
            id={"type": "rent-status", "index": rental["id"]}, value=status, size="sm",
            options=[{"label": s.title(), "value": s} for s in RENTAL_STATUSES],
        ), style={"minWidth": "120px"}),
        html.Td(dbc.Button("Delete", id={"type": "rent-del", "index": rental["id"]}, size="sm",
                           color="danger", outline=True)),
    ])


RENTAL_HEADERS = ["Client", "Vehicles", "Amount", "Expenses", "Net", "Receipts", "Status", ""]


def grouped_rentals(rentals, excluded):
    if not rentals:
        return empty_note("No rentals match these filters.")
    cards = []
    for group in ledger.group_rentals_by_date(rentals, excluded):
        header = html.Div([
            html.Span(group["date"], style={"fontWeight": "bold", "color": WHITE}),
            html.Span(f"  {group['count']} rental(s)", style={"color": GRAY, "fontSize": "12px"}),
            html.Span(ledger.money(group["net_profit"]),
                      style={"float": "right", "fontFamily": "monospace",
                             "color": GREEN if group["net_profit"] >= 0 else RED}),
        ])
        body = simple_table(RENTAL_HEADERS, [_rental_row(r, excluded) for r in group["items"]],
                            right_align=("Amount", "Expenses", "Net"))
        cards.append(dbc.Card([dbc.CardHeader(header), dbc.CardBody(body, style={"padding": "0"})],
                              className="mb-2"))
    return html.Div(cards)


def rental_kpis(rentals, excluded):
    amount = sum(ledger.num(r.get("rental_amount")) for r in rentals)
    expenses = sum(ledger.rental_total_expenses(r, excluded) for r in rentals)
    active = sum(1 for r in rentals if (r.get("status") or "active") == "active")
    return [
        kpi_card("Rentals", str(len(rentals)), CYAN, f"{active} active"),
        kpi_card("Rental Income", ledger.money(amount), GREEN),
        kpi_card("Expenses", ledger.money(expenses), ORANGE),
        kpi_card("Net Profit", ledger.money(amount - expenses),
                 GREEN if amount >= expenses else RED),
    ]


def receipt_list(receipts):
    if not receipts:
        return html.Div("No receipts attached.", style={"color": DARKGRAY, "fontSize": "12px"})
    return html.Div([
        html.Div([
            html.Span(r["filename"], style={"color": WHITE, "fontSize": "12px"}),
            html.Span(f"  {ledger.money(r.get('amount'))} · {r.get('payment_method') or '—'}",
                      style={"color": GRAY, "fontSize": "11px"}),
        ]) for r in receipts
    ])


def _rental_form():
    return dbc.Modal([
        dbc.ModalHeader(dbc.ModalTitle("New Rental")),
        dbc.ModalBody([
            dbc.Row([
                dbc.Col([dbc.Label("Start date"), dbc.Input(id="rent-f-start", type="date")], md=4),
                dbc.Col([dbc.Label("End date"), dbc.Input(id="rent-f-end", type="date")], md=4),
                dbc.Col([dbc.Label("Amount"),
                         dbc.Input(id="rent-f-amount", type="number", min=0)], md=4),
            ], className="mb-2"),
            dbc.Row([
                dbc.Col([dbc.Label("Client"), dbc.Input(id="rent-f-client")], md=6),
                dbc.Col([dbc.Label("Contact"), dbc.Input(id="rent-f-contact")], md=6),
            ], className="mb-2"),
            dbc.Label("Vehicles"),
            dcc.Dropdown(id="rent-f-vehicles", multi=True, options=ds.vehicle_options(),
                         className="mb-2"),
            dbc.Label("Description"),
            dbc.Textarea(id="rent-f-description", className="mb-3"),

            dbc.Label("Expenses"),
            dash_table.DataTable(
                id="rent-f-expenses",
                columns=[
                    {"name": "Category", "id": "category", "presentation": "dropdown"},
                    {"name": "Description", "id": "description"},
                    {"name": "Amount", "id": "amount", "type": "numeric"},
                ],
                data=[],
                editable=True,
                row_deletable=True,
                dropdown={"category": {"options": [
                    {"label": c.title(), "value": c} for c in RENTAL_EXPENSE_CATEGORIES
                ]}},
                style_header={"backgroundColor": CARD2, "color": WHITE, "fontWeight": "bold"},
                style_cell={"backgroundColor": CARD, "color": WHITE, "border": f"1px solid {DARKGRAY}",
                            "textAlign": "left", "fontSize": "12px"},
            ),
            dbc.Button("+ Expense", id="rent-f-add-expense", size="sm", color="secondary",
                       outline=True, className="mt-2 mb-3"),

            dbc.Label("Payment receipts"),
            dbc.Row([
                dbc.Col(dbc.Input(id="rent-f-receipt-amount", type="number", min=0,
                                  placeholder="Amount paid"), md=6),
                dbc.Col(dbc.Select(id="rent-f-receipt-method", value=PAYMENT_METHODS[0],
                                   options=[{"label": m, "value": m} for m in PAYMENT_METHODS]),
                        md=6),
            ], className="mb-2"),
            dcc.Upload(
                id="rent-f-receipt-upload",
                multiple=True,
                accept=".pdf,.jpg,.jpeg,.png",
                children=html.Div([
                    html.Span("Drag & Drop or "),
                    html.A("Click to Browse", style={"color": CYAN, "textDecoration": "underline"}),
                ], style={"color": GRAY, "fontSize": "13px"}),
                style={"width": "100%", "borderWidth": "2px", "borderStyle": "dashed",
                       "borderColor": f"{GREEN}44", "borderRadius": "10px",
                       "textAlign": "center", "padding": "16px", "cursor": "pointer"},
                className="upload-zone mb-2",
            ),
            html.Div(id="rent-f-receipt-feedback"),
            html.Div(id="rent-f-receipt-list"),
        ]),
        dbc.ModalFooter([
            dbc.Button("Cancel", id="rent-cancel", color="secondary", className="me-2"),
            dbc.Button("Save Rental", id="rent-save", color="primary"),
        ]),
    ], id="rent-modal", is_open=False, size="lg", scrollable=True)


def layout():
    """Build the Rentals page."""
    return html.Div([
        load_banner(ds.load_error_messages()),
        dbc.Card(dbc.CardBody(dbc.Row([
            dbc.Col([
                html.Label("Start date range", className="form-label small"),
                dcc.DatePickerRange(id="rent-date-range", clearable=True,
                                    display_format="YYYY-MM-DD"),
            ], md=4),
            dbc.Col([
                html.Label("Status", className="form-label small"),
                dcc.Dropdown(id="rent-status-filter", placeholder="All statuses",
                             options=[{"label": s.title(), "value": s} for s in RENTAL_STATUSES]),
            ], md=4),
            dbc.Col([
                html.Label("Leave out of expenses", className="form-label small"),
                dcc.Dropdown(id="rent-excluded", multi=True, placeholder="No categories excluded",
                             options=[{"label": c.title(), "value": c}
                                      for c in RENTAL_EXPENSE_CATEGORIES]),
            ], md=4),
        ], className="g-2")), className="mb-3"),
        html.Div(id="rent-kpis", style={"display": "flex", "gap": "12px", "flexWrap": "wrap",
                                        "marginBottom": "16px"}),
        html.Div([
            dbc.Button("+ New Rental", id="rent-new-btn", color="success", className="me-2"),
            dbc.Button("Export CSV", id="rent-export-csv", color="secondary", outline=True),
            dcc.Download(id="rent-download"),
        ], className="mb-3"),
        section("Rentals by Start Date", [html.Div(id="rent-list")], GREEN),
        _rental_form(),
        dcc.Store(id="rent-receipts", data=[]),
    ])
