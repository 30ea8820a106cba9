"""Page routing callback: refetches the page's data, then renders it."""
from dash import html, Input, Output

from fleet_dashboard import data_state as ds


def register_callbacks(app):
    @app.callback(
        Output("page-content", "children"),
        Input("url", "pathname"),
    )
    def route_page(pathname):
        if pathname == "/" or pathname is None:
            ds.reload_financials()
            from fleet_dashboard.pages.overview import layout
            return layout()
        elif pathname == "/reports":
            ds.reload_financials()
            from fleet_dashboard.pages.reports import layout
            return layout()
        elif pathname == "/expenses":
            ds.reload_financials()
            from fleet_dashboard.pages.expenses import layout
            return layout()
        elif pathname == "/deposits":
            ds.reload_financials()
            from fleet_dashboard.pages.deposits import layout
            return layout()
        elif pathname == "/rentals":
            ds.reload_rentals()
            from fleet_dashboard.pages.rentals import layout
            return layout()
        elif pathname == "/operations":
            ds.reload_operations()
            from fleet_dashboard.pages.operations import layout
            return layout()
        else:
            return html.Div([
                html.H3("404: Page Not Found", style={"color": "#e74c3c"}),
                html.P(f"No page at '{pathname}'"),
            ], style={"padding": "40px"})
