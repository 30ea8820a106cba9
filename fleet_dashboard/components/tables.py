"""Reusable table builders."""
from dash import html
import dash_bootstrap_components as dbc
from fleet_dashboard.theme import *
from fleet_dashboard.ledger import money


def status_badge(status):
    """Depositable / Deposited / Loss pill."""
    return dbc.Badge(STATUS_LABELS.get(status, status), color="light", text_color="dark",
                     style={"backgroundColor": STATUS_COLORS.get(status, GRAY)})


def money_cell(amount, color=None):
    color = color or (RED if amount < 0 else WHITE)
    return html.Td(money(amount), style={"fontFamily": "monospace", "textAlign": "right",
                                         "fontSize": "12px", "color": color})


def simple_table(headers, rows, right_align=()):
    """dbc.Table from a header list and prebuilt html.Tr rows."""
    return dbc.Table([
        html.Thead(html.Tr([
            html.Th(h, style={"textAlign": "right"} if h in right_align else None)
            for h in headers
        ])),
        html.Tbody(rows),
    ], striped=True, hover=True, size="sm", className="mb-0")


def empty_note(text):
    return html.P(text, style={"color": GRAY, "textAlign": "center", "padding": "40px"})
