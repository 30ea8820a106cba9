"""Reusable card/section builders."""
from dash import html
import dash_bootstrap_components as dbc
from fleet_dashboard.theme import *
from fleet_dashboard.ledger import money


def section(title, children, color=ORANGE):
    """Titled section card with colored top border."""
    return dbc.Card([
        dbc.CardHeader(title, style={"color": color, "fontWeight": "bold", "fontSize": "16px",
                                      "borderBottom": f"2px solid {color}",
                                      "backgroundColor": "transparent", "padding": "12px 16px"}),
        dbc.CardBody(children, style={"padding": "16px"}),
    ], className="mb-3")


def row_item(label, amount, indent=0, bold=False, color=WHITE, neg_color=RED):
    """Single ledger row: label on the left, amount on the right."""
    display_color = neg_color if amount < 0 else color
    style = {
        "display": "flex", "justifyContent": "space-between",
        "padding": "4px 0", "borderBottom": "1px solid #ffffff10",
        "marginLeft": f"{indent * 24}px",
    }
    if bold:
        style["fontWeight"] = "bold"
        style["borderBottom"] = "2px solid #ffffff30"
        style["padding"] = "8px 0"
    return html.Div([
        html.Span(label, style={"color": color if not bold else display_color, "fontSize": "13px"}),
        html.Span(money(amount), style={"color": display_color, "fontFamily": "monospace", "fontSize": "13px"}),
    ], style=style)


def make_chart(fig, height=360, legend_h=True):
    """Apply consistent styling to a Plotly figure."""
    layout = {**CHART_LAYOUT, "height": height}
    if legend_h:
        layout["legend"] = dict(orientation="h", y=1.12, x=0.5, xanchor="center")
    fig.update_layout(**layout)
    return fig


def toast(message, header, icon="success", duration=3000):
    return dbc.Toast(message, header=header, icon=icon, duration=duration, style=TOAST_STYLE)


def error_toast(err, header="Error"):
    """Toast for a DashboardError (or anything with user_message)."""
    text = err.user_message() if hasattr(err, "user_message") else str(err)
    return toast(text, header, icon="danger", duration=6000)


def load_banner(messages):
    if not messages:
        return None
    return dbc.Alert([html.Div(m) for m in messages], color="warning", className="mb-3")
