"""Expenses page: every daily-report expense, with editing and fuel receipts."""
from dash import html, dcc
import dash_bootstrap_components as dbc

from fleet_dashboard.theme import *
from fleet_dashboard.components.cards import section, load_banner
from fleet_dashboard.components.kpi import kpi_card
from fleet_dashboard.components.tables import simple_table, money_cell, empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger


def _receipt_link(expense):
    if not expense.get("receipt_url"):
        return ""
    return html.A("Receipt", href=expense["receipt_url"], target="_blank",
                  style={"color": CYAN, "fontSize": "12px"})


def _expense_row(expense):
    category = expense.get("category") or "Other"
    return html.Tr([
        html.Td(expense["report_date"], style={"fontSize": "12px"}),
        html.Td(expense.get("plate") or "—", style={"fontWeight": "600", "fontSize": "13px"}),
        html.Td(html.Span(category, style={"color": CATEGORY_COLORS.get(category, GRAY)})),
        html.Td(expense.get("description") or "", style={"color": GRAY, "fontSize": "12px"}),
        money_cell(ledger.num(expense.get("amount"))),
        html.Td(_receipt_link(expense)),
        html.Td(dbc.Button("Edit", id={"type": "exp-edit", "index": expense["id"]}, size="sm",
                           color="secondary", outline=True)),
    ])


EXPENSE_HEADERS = ["Date", "Vehicle", "Category", "Description", "Amount", "", ""]


def expense_table(rows):
    if not rows:
        return empty_note("No expenses match these filters.")
    return simple_table(EXPENSE_HEADERS, [_expense_row(e) for e in rows], right_align=("Amount",))


def expense_kpis(rows):
    total = ledger.num(sum(ledger.num(e.get("amount")) for e in rows))
    fuel = [e for e in rows if e.get("category") == "Fuel"]
    missing = sum(1 for e in fuel if not e.get("receipt_url"))
    return [
        kpi_card("Expenses", str(len(rows)), CYAN),
        kpi_card("Total", ledger.money(total), ORANGE),
        kpi_card("Fuel", ledger.money(sum(ledger.num(e.get("amount")) for e in fuel)), ORANGE,
                 f"{len(fuel)} entries"),
        kpi_card("Fuel Without Receipt", str(missing), PINK if missing else GREEN),
    ]


def receipt_note(expense, pending_name):
    """What will happen to the receipt when the form is saved."""
    if pending_name:
        return html.Span(f"New receipt: {pending_name}", style={"color": CYAN, "fontSize": "12px"})
    if expense and expense.get("receipt_url"):
        return html.A("Current receipt", href=expense["receipt_url"], target="_blank",
                      style={"color": CYAN, "fontSize": "12px"})
    return html.Span("No receipt uploaded", style={"color": GRAY, "fontSize": "12px"})


def _filters():
    return dbc.Card(dbc.CardBody(dbc.Row([
        dbc.Col([
            html.Label("Date range", className="form-label small"),
            dcc.DatePickerRange(id="exp-date-range", clearable=True,
                                display_format="YYYY-MM-DD"),
        ], md=5),
        dbc.Col([
            html.Label("Category", className="form-label small"),
            dcc.Dropdown(id="exp-category-filter", placeholder="All categories",
                         options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
        ], md=4),
    ], className="g-2")), className="mb-3")


def _edit_form():
    return dbc.Modal([
        dbc.ModalHeader(dbc.ModalTitle("Edit Expense")),
        dbc.ModalBody([
            dbc.Label("Category"),
            dbc.Select(id="exp-f-category", className="mb-2",
                       options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
            dbc.Label("Description"),
            dbc.Input(id="exp-f-description", className="mb-2"),
            dbc.Label("Amount"),
            dbc.Input(id="exp-f-amount", type="number", min=0, className="mb-3"),
            html.Div([
                dbc.Label("Fuel Receipt (optional)"),
                html.Div(id="exp-f-receipt-note", className="mb-2"),
                dcc.Upload(
                    id="exp-f-receipt",
                    children=html.Div([
                        html.Span("Drag & Drop or "),
                        html.A("Click to Browse", style={"color": CYAN, "textDecoration": "underline"}),
                        html.Span(" (PDF, JPG, PNG up to 5MB)", style={"color": GRAY}),
                    ]),
                    className="upload-zone",
                    style={"padding": "16px", "textAlign": "center"},
                ),
                dbc.Checkbox(id="exp-f-remove-receipt", label="Remove current receipt",
                             value=False, className="mt-2"),
            ], id="exp-f-receipt-block"),
        ]),
        dbc.ModalFooter([
            dbc.Button("Cancel", id="exp-cancel", color="secondary", className="me-2"),
            dbc.Button("Save", id="exp-save", color="primary"),
        ]),
    ], id="exp-modal", is_open=False)


def layout():
    """Build the Expenses page."""
    return html.Div([
        load_banner(ds.load_error_messages()),
        _filters(),
        html.Div(id="exp-kpis", style={"display": "flex", "gap": "12px", "flexWrap": "wrap",
                                       "marginBottom": "16px"}),
        section("Expenses", [
            html.Div(id="exp-table"),
            dbc.Pagination(id="exp-pagination", max_value=1, active_page=1,
                           fully_expanded=False, className="mt-3"),
        ], ORANGE),
        _edit_form(),
        dcc.Store(id="exp-edit-id"),
        dcc.Store(id="exp-receipt-data"),
    ])
