"""Overview page: KPI strip, revenue trend, expense mix, vehicle performance."""
from dash import html, dcc
import dash_bootstrap_components as dbc
import pandas as pd
import plotly.graph_objects as go

from fleet_dashboard.theme import *
from fleet_dashboard.components.kpi import kpi_pill
from fleet_dashboard.components.cards import section, row_item, make_chart, load_banner
from fleet_dashboard.components.tables import empty_note
from fleet_dashboard import data_state as ds
from fleet_dashboard import ledger


def _daily_frame(reports):
    """One row per report date: revenue, expenses, net (summed per report)."""
    if not reports:
        return pd.DataFrame(columns=["date", "revenue", "expenses", "net"])
    df = pd.DataFrame([{
        "date": ledger.date_key(r["report_date"]),
        "revenue": ledger.total_revenue(r),
        "expenses": ledger.total_expenses(r),
        "net": ledger.net_balance(r),
    } for r in reports])
    df["date"] = pd.to_datetime(df["date"])
    return df.groupby("date", as_index=False).sum().sort_values("date")


def _trend_chart(reports):
    df = _daily_frame(reports)
    fig = go.Figure()
    if len(df):
        fig.add_trace(go.Bar(x=df["date"], y=df["revenue"], name="Revenue", marker_color=GREEN))
        fig.add_trace(go.Bar(x=df["date"], y=-df["expenses"], name="Expenses", marker_color=RED))
        fig.add_trace(go.Scatter(x=df["date"], y=df["net"], name="Net", mode="lines+markers",
                                 line=dict(color=CYAN, width=2)))
    make_chart(fig, 380)
    fig.update_layout(title="Daily Revenue vs Expenses", barmode="relative")
    return fig


def _breakdown_chart(reports):
    rows = ledger.expense_breakdown(reports)
    fig = go.Figure()
    if rows:
        fig.add_trace(go.Pie(
            labels=[r["category"] for r in rows],
            values=[r["amount"] for r in rows],
            marker=dict(colors=[CATEGORY_COLORS.get(r["category"], GRAY) for r in rows]),
            hole=0.4, textinfo="label+percent",
        ))
    make_chart(fig, 350)
    fig.update_layout(title="Expense Breakdown")
    return fig


def _vehicle_chart(reports):
    rows = ledger.vehicle_performance(reports)[:15]
    fig = go.Figure()
    if rows:
        fig.add_trace(go.Bar(
            x=[r["net_profit"] for r in rows],
            y=[r["vehicle_plate"] for r in rows],
            orientation="h",
            marker_color=[GREEN if r["net_profit"] >= 0 else RED for r in rows],
        ))
    make_chart(fig, 380, legend_h=False)
    fig.update_layout(title="Net Balance by Vehicle", yaxis=dict(autorange="reversed"))
    return fig


def _recent_deposits():
    if not ds.DEPOSITS:
        return empty_note("No deposits recorded yet.")
    return html.Div([
        row_item(f"{ledger.date_key(d['deposit_date'])}  ·  {d.get('bank_name', '')}",
                 ledger.num(d.get("amount")), color=CYAN)
        for d in ds.DEPOSITS[:10]
    ])


def layout():
    """Build the Overview page."""
    reports = ds.REPORTS
    kpis = ledger.summarize(reports)
    undeposited = [r for r in reports if ledger.classify_report(r) == "depositable"]
    undeposited_total = sum(ledger.net_balance(r) for r in undeposited)
    flagged = sum(1 for r in reports if ledger.is_flagged(r))

    return html.Div([
        load_banner(ds.load_error_messages()),

        html.Div([
            kpi_pill("R", "Revenue", ledger.money(kpis["total_revenue"]), GREEN,
                     f"{kpis['report_count']} reports"),
            kpi_pill("E", "Expenses", ledger.money(kpis["total_expenses"]), RED),
            kpi_pill("N", "Net Balance", ledger.money(kpis["net_balance"]), CYAN,
                     f"{kpis['profit_margin']:.1f}% margin"),
            kpi_pill("D", "To Deposit", ledger.money(undeposited_total), ORANGE,
                     f"{len(undeposited)} report(s) waiting"),
            kpi_pill("!", "Flagged", str(flagged), PINK, "low margin or high expenses"),
        ], style={"display": "flex", "gap": "12px", "flexWrap": "wrap", "marginBottom": "16px"}),

        dbc.Card(dbc.CardBody(dcc.Graph(figure=_trend_chart(reports),
                                        config={"displayModeBar": False})), className="mb-3"),

        dbc.Row([
            dbc.Col(dbc.Card(dbc.CardBody(dcc.Graph(figure=_breakdown_chart(reports),
                                                    config={"displayModeBar": False}))), md=6),
            dbc.Col(dbc.Card(dbc.CardBody(dcc.Graph(figure=_vehicle_chart(reports),
                                                    config={"displayModeBar": False}))), md=6),
        ], className="g-3 mb-3"),

        section("Recent Deposits", [_recent_deposits()], BLUE),
    ])
