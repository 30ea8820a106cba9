"""Daily Reports page: filters, report table, report form, expenses, exports."""
from dash import html, dcc
import dash_bootstrap_components as dbc

from fleet_dashboard.theme import *
from fleet_dashboard.components.cards import section, load_banner
from fleet_dashboard.components.kpi import kpi_card
from fleet_dashboard.components.tables import simple_table, status_badge, money_cell, empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger


def _action_buttons(kind, row_id):
    return html.Td([
        dbc.Button("Edit", id={"type": f"{kind}-edit", "index": row_id}, size="sm",
                   color="secondary", outline=True, className="me-1"),
        dbc.Button("Delete", id={"type": f"{kind}-del", "index": row_id}, size="sm",
                   color="danger", outline=True),
    ], style={"whiteSpace": "nowrap"})


def _report_row(report, excluded):
    status = ledger.classify_report(report, excluded)
    reasons = ledger.flag_reasons(report)
    plate = ledger.report_plate(report) or "—"
    return html.Tr([
        html.Td(ledger.date_key(report["report_date"]), style={"fontSize": "12px"}),
        html.Td([
            html.Div(plate, style={"color": WHITE, "fontWeight": "600", "fontSize": "13px"}),
            html.Div(report.get("route") or report.get("non_operational_reason") or "",
                     style={"color": GRAY, "fontSize": "11px"}),
        ]),
        html.Td(report.get("status") or "", style={"fontSize": "12px"}),
        money_cell(ledger.total_revenue(report), GREEN),
        money_cell(ledger.total_expenses(report, excluded), ORANGE),
        money_cell(ledger.net_balance(report, excluded)),
        html.Td(status_badge(status)),
        html.Td(html.Span("⚠", title="\n".join(reasons), style={"color": PINK})
                if reasons else ""),
        _action_buttons("rep", report["id"]),
    ])


REPORT_HEADERS = ["Date", "Vehicle", "Status", "Revenue", "Expenses", "Net", "Deposit", "", ""]
MONEY_HEADERS = ("Revenue", "Expenses", "Net")


def report_table(reports, excluded):
    if not reports:
        return empty_note("No reports match these filters.")
    return simple_table(REPORT_HEADERS, [_report_row(r, excluded) for r in reports],
                        right_align=MONEY_HEADERS)


def grouped_reports(reports, excluded):
    """One card per date with its totals, reports listed inside."""
    if not reports:
        return empty_note("No reports match these filters.")
    cards = []
    for group in ledger.group_reports_by_date(reports, excluded):
        header = html.Div([
            html.Span(group["date"], style={"fontWeight": "bold", "color": WHITE}),
            html.Span(f"  {group['vehicle_count']} vehicle(s): {', '.join(group['plates'])}",
                      style={"color": GRAY, "fontSize": "12px"}),
            html.Span(ledger.money(group["net_balance"]),
                      style={"float": "right", "fontFamily": "monospace",
                             "color": GREEN if group["net_balance"] > 0 else RED}),
        ])
        body = simple_table(REPORT_HEADERS, [_report_row(r, excluded) for r in group["items"]],
                            right_align=MONEY_HEADERS)
        cards.append(dbc.Card([dbc.CardHeader(header), dbc.CardBody(body, style={"padding": "0"})],
                              className="mb-2"))
    return html.Div(cards)


def report_kpis(reports, excluded):
    kpis = ledger.summarize(reports, excluded)
    flagged = sum(1 for r in reports if ledger.is_flagged(r))
    return [
        kpi_card("Reports", str(kpis["report_count"]), CYAN,
                 f"{kpis['operational_days']} operational"),
        kpi_card("Revenue", ledger.money(kpis["total_revenue"]), GREEN),
        kpi_card("Expenses", ledger.money(kpis["total_expenses"]), ORANGE),
        kpi_card("Net Balance", ledger.money(kpis["net_balance"]),
                 GREEN if kpis["net_balance"] >= 0 else RED,
                 f"{kpis['profit_margin']:.1f}% margin"),
        kpi_card("Flagged", str(flagged), PINK),
    ]


def _filters():
    return dbc.Card(dbc.CardBody(dbc.Row([
        dbc.Col([
            html.Label("Date range", className="form-label small"),
            dcc.DatePickerRange(id="rep-date-range", clearable=True,
                                display_format="YYYY-MM-DD"),
        ], md=3),
        dbc.Col([
            html.Label("Vehicles", className="form-label small"),
            dbc.RadioItems(id="rep-type", inline=True, value="all", options=[
                {"label": "All", "value": "all"},
                {"label": "Agaseke", "value": "agaseke"},
                {"label": "Regular", "value": "regular"},
            ]),
        ], md=3),
        dbc.Col([
            html.Label("Leave out of balances", className="form-label small"),
            dcc.Dropdown(id="rep-excluded", multi=True, placeholder="No categories excluded",
                         options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
        ], md=3),
        dbc.Col([
            dbc.Checklist(id="rep-view", switch=True, value=[], options=[
                {"label": "Group by date", "value": "group"},
                {"label": "Flagged only", "value": "flagged"},
            ]),
        ], md=3),
    ], className="g-2")), className="mb-3")


def _report_form():
    return dbc.Modal([
        dbc.ModalHeader(dbc.ModalTitle("Daily Report", id="rep-modal-title")),
        dbc.ModalBody([
            dbc.Row([
                dbc.Col([
                    dbc.Label("Vehicle"),
                    dcc.Dropdown(id="rep-f-vehicle", options=ds.vehicle_options()),
                ], md=6),
                dbc.Col([
                    dbc.Label("Date"),
                    dbc.Input(id="rep-f-date", type="date"),
                ], md=6),
            ], className="mb-2"),
            dbc.Row([
                dbc.Col([
                    dbc.Label("Status"),
                    dbc.Select(id="rep-f-status", value=REPORT_STATUSES[0],
                               options=[{"label": s, "value": s} for s in REPORT_STATUSES]),
                ], md=6),
                dbc.Col([
                    dbc.Label("Route"),
                    dcc.Dropdown(id="rep-f-route",
                                 options=[{"label": r, "value": r} for r in COMMON_ROUTES]),
                ], md=6),
            ], className="mb-2"),
            dbc.Label("Non-operational reason"),
            dbc.Input(id="rep-f-reason", type="text", className="mb-2"),
            dbc.Row([
                dbc.Col([dbc.Label("Ticket revenue"),
                         dbc.Input(id="rep-f-ticket", type="number", min=0)], md=4),
                dbc.Col([dbc.Label("Baggage revenue"),
                         dbc.Input(id="rep-f-baggage", type="number", min=0)], md=4),
                dbc.Col([dbc.Label("Cargo revenue"),
                         dbc.Input(id="rep-f-cargo", type="number", min=0)], md=4),
            ]),
        ]),
        dbc.ModalFooter([
            dbc.Button("Cancel", id="rep-cancel", color="secondary", className="me-2"),
            dbc.Button("Save", id="rep-save", color="primary"),
        ]),
    ], id="rep-modal", is_open=False, size="lg")


def report_options():
    return [
        {"label": f"{ledger.date_key(r['report_date'])} · {ledger.report_plate(r) or '—'}",
         "value": r["id"]}
        for r in ds.REPORTS
    ]


def _expense_panel():
    return section("Report Expenses", [
        dcc.Dropdown(id="rep-exp-report", options=report_options(), placeholder="Choose a report",
                     className="mb-2"),
        dbc.Row([
            dbc.Col(dcc.Dropdown(id="rep-exp-category", placeholder="Category",
                                 options=[{"label": c, "value": c} for c in CATEGORY_OPTIONS]),
                    md=3),
            dbc.Col(dbc.Input(id="rep-exp-description", placeholder="Description"), md=5),
            dbc.Col(dbc.Input(id="rep-exp-amount", type="number", min=0, placeholder="Amount"),
                    md=2),
            dbc.Col(dbc.Button("Add", id="rep-exp-add", color="primary", className="w-100"),
                    md=2),
        ], className="g-2 mb-2"),
        html.Div(id="rep-exp-list"),
    ], ORANGE)


def expense_list(report):
    if report is None:
        return empty_note("Choose a report to see its expenses.")
    expenses = report.get("daily_expenses") or []
    if not expenses:
        return empty_note("No expenses recorded for this report.")
    rows = [html.Tr([
        html.Td(html.Span(e.get("category") or "Other",
                          style={"color": CATEGORY_COLORS.get(e.get("category"), GRAY)})),
        html.Td(e.get("description") or "", style={"color": GRAY, "fontSize": "12px"}),
        money_cell(ledger.num(e.get("amount"))),
        html.Td(dbc.Button("Remove", id={"type": "rep-exp-del", "index": e["id"]}, size="sm",
                           color="danger", outline=True)),
    ]) for e in expenses]
    return simple_table(["Category", "Description", "Amount", ""], rows, right_align=("Amount",))


def layout():
    """Build the Daily Reports page."""
    return html.Div([
        load_banner(ds.load_error_messages()),
        _filters(),
        html.Div(id="rep-kpis", style={"display": "flex", "gap": "12px", "flexWrap": "wrap",
                                       "marginBottom": "16px"}),
        html.Div([
            dbc.Button("+ New Report", id="rep-new-btn", color="success", className="me-2"),
            dbc.Button("Export CSV", id="rep-export-csv", color="secondary", outline=True,
                       className="me-2"),
            dbc.Button("Export Excel", id="rep-export-tsv", color="secondary", outline=True),
            dcc.Download(id="rep-download"),
        ], className="mb-3"),
        section("Reports", [
            html.Div(id="rep-table"),
            dbc.Pagination(id="rep-pagination", max_value=1, active_page=1,
                           fully_expanded=False, className="mt-3"),
        ], CYAN),
        _expense_panel(),
        _report_form(),
        dcc.Store(id="rep-edit-id"),
    ])
