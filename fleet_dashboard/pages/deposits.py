"""Bank Deposits page: deposits grouped by date, create/edit modal, exports."""
from dash import html, dcc
import dash_bootstrap_components as dbc

from fleet_dashboard.theme import *
from fleet_dashboard.components.cards import section, load_banner
from fleet_dashboard.components.kpi import kpi_card
from fleet_dashboard.components.tables import simple_table, money_cell, empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger
from fleet_dashboard.uploads import MAX_UPLOAD_MB


def _slip_links(deposit):
    slips = deposit.get("deposit_slips") or []
    if not slips:
        return html.Span("no slip", style={"color": RED, "fontSize": "11px"})
    return html.Span([
        html.A(s.get("filename") or f"slip {i + 1}", href=s["url"], target="_blank",
               style={"color": CYAN, "fontSize": "11px", "marginRight": "6px"})
        for i, s in enumerate(slips)
    ])


def _deposit_row(deposit):
    n_reports = len(deposit.get("deposit_reports") or [])
    return html.Tr([
        html.Td(deposit.get("bank_name") or "", style={"fontWeight": "600"}),
        money_cell(ledger.num(deposit.get("amount")), CYAN),
        html.Td(f"{n_reports} report(s)", style={"color": GRAY, "fontSize": "12px"}),
        html.Td(_slip_links(deposit)),
        html.Td([
            dbc.Button("Edit", id={"type": "dep-edit", "index": deposit["id"]}, size="sm",
                       color="secondary", outline=True, className="me-1"),
            dbc.Button("Delete", id={"type": "dep-del", "index": deposit["id"]}, size="sm",
                       color="danger", outline=True),
        ], style={"whiteSpace": "nowrap"}),
    ])


def grouped_deposits(deposits):
    if not deposits:
        return empty_note("No deposits match these filters.")
    cards = []
    for group in ledger.group_deposits_by_date(deposits):
        header = html.Div([
            html.Span(group["date"], style={"fontWeight": "bold", "color": WHITE}),
            html.Span(f"  {group['deposit_count']} deposit(s) · {group['report_count']} report(s)"
                      f" · {', '.join(group['banks'])}",
                      style={"color": GRAY, "fontSize": "12px"}),
            html.Span(ledger.money(group["total_amount"]),
                      style={"float": "right", "fontFamily": "monospace", "color": CYAN}),
        ])
        body = simple_table(["Bank", "Amount", "Reports", "Slips", ""],
                            [_deposit_row(d) for d in group["items"]], right_align=("Amount",))
        cards.append(dbc.Card([dbc.CardHeader(header), dbc.CardBody(body, style={"padding": "0"})],
                              className="mb-2"))
    return html.Div(cards)


def deposit_kpis(deposits, reports, excluded):
    pending = [r for r in reports if ledger.classify_report(r, excluded) == "depositable"]
    return [
        kpi_card("Deposited", ledger.money(sum(ledger.num(d.get("amount")) for d in deposits)),
                 CYAN, f"{len(deposits)} deposit(s)"),
        kpi_card("Awaiting Deposit",
                 ledger.money(sum(ledger.net_balance(r, excluded) for r in pending)),
                 ORANGE, f"{len(pending)} report(s)"),
        kpi_card("Loss Days",
                 str(sum(1 for r in reports if ledger.classify_report(r, excluded) == "loss")),
                 RED),
    ]


def report_option(report, excluded):
    plate = ledger.report_plate(report) or "—"
    net = ledger.net_balance(report, excluded)
    return {
        "label": f"  {ledger.date_key(report['report_date'])} · {plate} · {ledger.money(net)}",
        "value": report["id"],
    }


def slip_list(slips):
    if not slips:
        return html.Div("No slips attached yet.", style={"color": DARKGRAY, "fontSize": "12px"})
    return html.Div([
        html.Div([
            html.Span(s["filename"], style={"color": WHITE, "fontSize": "12px"}),
            html.Span(f"  {s['size'] / 1024:,.0f} KB", style={"color": GRAY, "fontSize": "11px"}),
            dbc.Button("×", id={"type": "dep-slip-del", "index": s["filename"]}, size="sm",
                       color="link", style={"color": RED, "padding": "0 6px"}),
        ]) for s in slips
    ])


def _deposit_modal():
    return dbc.Modal([
        dbc.ModalHeader(dbc.ModalTitle("New Bank Deposit", id="dep-modal-title")),
        dbc.ModalBody([
            dbc.Row([
                dbc.Col([
                    dbc.Label("Bank"),
                    dbc.Select(id="dep-bank", value=DEFAULT_BANK,
                               options=[{"label": b, "value": b} for b in BANK_OPTIONS]),
                ], md=6),
                dbc.Col([
                    dbc.Label("Deposit date"),
                    dbc.Input(id="dep-date", type="date"),
                ], md=6),
            ], className="mb-3"),
            dbc.Label("Leave out of report balances"),
            dcc.Dropdown(id="dep-excluded", multi=True, className="mb-3",
                         options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
            dbc.Label("Reports to deposit"),
            html.Div(
                dbc.Checklist(id="dep-reports", options=[], value=[]),
                style={"maxHeight": "260px", "overflowY": "auto", "border": f"1px solid {DARKGRAY}",
                       "borderRadius": "6px", "padding": "8px", "marginBottom": "12px"},
            ),
            html.Div([
                html.Span("Amount: ", style={"color": GRAY}),
                html.Span(id="dep-amount", style={"color": CYAN, "fontFamily": "monospace",
                                                  "fontWeight": "bold", "fontSize": "18px"}),
                html.Span(id="dep-state", style={"float": "right", "color": GRAY,
                                                 "fontSize": "12px"}),
            ], className="mb-3"),
            dbc.Label("Deposit slips"),
            dcc.Upload(
                id="dep-slip-upload",
                multiple=True,
                accept=".pdf,.jpg,.jpeg,.png",
                children=html.Div([
                    html.Span("Drag & Drop or "),
                    html.A("Click to Browse", style={"color": CYAN, "textDecoration": "underline"}),
                    html.Div(f"PDF, JPG or PNG up to {MAX_UPLOAD_MB}MB each",
                             style={"fontSize": "11px", "color": DARKGRAY}),
                ], style={"color": GRAY, "fontSize": "13px"}),
                style={"width": "100%", "borderWidth": "2px", "borderStyle": "dashed",
                       "borderColor": f"{CYAN}44", "borderRadius": "10px",
                       "textAlign": "center", "padding": "16px", "cursor": "pointer"},
                className="upload-zone mb-2",
            ),
            html.Div(id="dep-slip-feedback"),
            html.Div(id="dep-slip-list"),
        ]),
        dbc.ModalFooter([
            dbc.Button("Cancel", id="dep-cancel", color="secondary", className="me-2"),
            dbc.Button("Save Deposit", id="dep-submit", color="primary", disabled=True),
        ]),
    ], id="dep-modal", is_open=False, size="lg", scrollable=True)


def layout():
    """Build the Bank Deposits page."""
    return html.Div([
        load_banner(ds.load_error_messages()),
        dbc.Card(dbc.CardBody(dbc.Row([
            dbc.Col([
                html.Label("Date range", className="form-label small"),
                dcc.DatePickerRange(id="dep-date-range", clearable=True,
                                    display_format="YYYY-MM-DD"),
            ], md=4),
            dbc.Col([
                html.Label("Bank", className="form-label small"),
                dcc.Dropdown(id="dep-bank-filter", placeholder="All banks",
                             options=[{"label": b, "value": b} for b in BANK_OPTIONS]),
            ], md=4),
            dbc.Col([
                html.Label("Leave out of balances", className="form-label small"),
                dcc.Dropdown(id="dep-page-excluded", multi=True, placeholder="No categories excluded",
                             options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
            ], md=4),
        ], className="g-2")), className="mb-3"),
        html.Div(id="dep-kpis", style={"display": "flex", "gap": "12px", "flexWrap": "wrap",
                                       "marginBottom": "16px"}),
        html.Div([
            dbc.Button("+ New Deposit", id="dep-new-btn", color="success", className="me-2"),
            dbc.Button("Export CSV", id="dep-export-csv", color="secondary", outline=True),
            dcc.Download(id="dep-download"),
        ], className="mb-3"),
        section("Deposits by Date", [html.Div(id="dep-list")], BLUE),
        _deposit_modal(),
        dcc.Store(id="dep-edit-id"),
        dcc.Store(id="dep-slips", data=[]),
    ])
