"""
Fleet Financial Dashboard
Run:  python -m fleet_dashboard.app
Open: http://127.0.0.1:8050
"""

import logging
import os

import dash
from dash import html, dcc
import dash_bootstrap_components as dbc
import flask

from fleet_dashboard import data_state as ds

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# ── Create the Dash app ──────────────────────────────────────────────────────
app = dash.Dash(
    __name__,
    suppress_callback_exceptions=True,
    external_stylesheets=[
        dbc.themes.DARKLY,
        "https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&display=swap",
    ],
    assets_folder=os.path.join(os.path.dirname(__file__), "assets"),
    title="Fleet Financials",
)
server = app.server  # For deployment (Gunicorn)

# ── Sidebar navigation ──────────────────────────────────────────────────────
NAV_ITEMS = [
    {"label": "Overview",       "icon": "\U0001f4ca", "value": "/"},
    "---",
    {"label": "Daily Reports",  "icon": "\U0001f4dd", "value": "/reports"},
    {"label": "Expenses",       "icon": "\U0001f9fe", "value": "/expenses"},
    {"label": "Bank Deposits",  "icon": "\U0001f3e6", "value": "/deposits"},
    {"label": "Rentals",        "icon": "\U0001f697", "value": "/rentals"},
    "---",
    {"label": "Operations",     "icon": "\U0001f527", "value": "/operations"},
]


def _build_sidebar():
    nav_links = []
    for item in NAV_ITEMS:
        if item == "---":
            nav_links.append(html.Hr(className="sidebar-divider"))
        else:
            nav_links.append(
                dbc.NavLink(
                    [html.Span(item["icon"], className="nav-icon"), item["label"]],
                    href=item["value"],
                    active="exact",
                )
            )

    return html.Div([
        html.Div([
            html.H4("FLEET"),
            html.Small("Operations & Financials"),
        ], className="sidebar-brand"),
        dbc.Nav(nav_links, vertical=True, pills=True),
    ], className="sidebar")


# ── App layout ───────────────────────────────────────────────────────────────
def serve_layout():
    return html.Div([
        dcc.Location(id="url", refresh=False),
        _build_sidebar(),
        html.Div([
            html.Div([
                html.H3("FLEET OPERATIONS DASHBOARD"),
                html.Div(
                    f"{len(ds.REPORTS)} reports  |  {len(ds.DEPOSITS)} deposits  |  "
                    f"{len(ds.RENTALS)} rentals  |  {len(ds.VEHICLES)} vehicles",
                    className="header-subtitle", id="app-header-content",
                ),
            ], className="app-header"),

            # Page content (rendered by routing callback)
            html.Div(id="page-content"),

            # Toast notification container
            html.Div(id="toast-container"),

            # Bumped by any write; pages re-render from it
            dcc.Store(id="data-version", data=0),
        ], className="main-content"),
    ])


app.layout = serve_layout


@server.route("/api/reload")
def api_reload():
    counts = ds.reload_all()
    return flask.jsonify({k.lower(): v for k, v in counts.items()})


# ── Register callbacks ───────────────────────────────────────────────────────
from fleet_dashboard.callbacks import (
    navigation_cb, reports_cb, expenses_cb, deposits_cb, rentals_cb, operations_cb,
)
navigation_cb.register_callbacks(app)
reports_cb.register_callbacks(app)
expenses_cb.register_callbacks(app)
deposits_cb.register_callbacks(app)
rentals_cb.register_callbacks(app)
operations_cb.register_callbacks(app)

ds.reload_all()

# ── Run ──────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8050))
    print(f"\n  Fleet Financial Dashboard")
    print(f"  http://127.0.0.1:{port}\n")
    app.run(debug=False, host="0.0.0.0", port=port)
