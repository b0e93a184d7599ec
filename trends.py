# trends.py
from typing import Sequence

import pandas as pd
import plotly.express as px
from dash import Dash, Input, Output, dcc, html

from models import TrendPoint
from query_client import QueryClient, QueryState, QueryStatus

TREND_QUERY_KEY = "attritionTrends"
CHART_HEIGHT = 300
LINE_COLOR = "#3b82f6"

PANEL_STYLE = {"border":"1px solid #e6e6e6","borderRadius":"10px","padding":"16px","background":"#fff",
               "boxShadow":"0 1px 0 rgba(0,0,0,.03)"}
ERROR_STYLE = {"background":"#fef2f2","border":"1px solid #fecaca","color":"#991b1b",
               "padding":"8px 12px","borderRadius":"6px"}


def trend_figure(points: Sequence[TrendPoint]):
    df = pd.DataFrame([{"month": p.month, "rate": p.rate} for p in points], columns=["month", "rate"])
    fig = px.line(df, x="month", y="rate", markers=True)
    fig.update_traces(line=dict(color=LINE_COLOR, width=2), marker=dict(color=LINE_COLOR))
    # keep backend order even when month labels would sort differently
    fig.update_xaxes(type="category", categoryorder="array", categoryarray=df["month"].tolist(), title=None)
    fig.update_yaxes(title=None, showgrid=True, griddash="dash")
    fig.update_layout(height=CHART_HEIGHT, margin=dict(l=40, r=16, t=8, b=32), template="plotly_white")
    return fig


def render_trends(state: QueryState):
    if state.is_loading:
        return html.Div(className="placeholder", style={**PANEL_STYLE, "height":f"{CHART_HEIGHT}px", "background":"#f3f4f6"})
    if state.status is QueryStatus.ERROR:
        return html.Div([
            html.H4("Attrition Trends"),
            html.Div(f"Could not load attrition trends: {state.error}", className="error-banner", style=ERROR_STYLE),
        ], style=PANEL_STYLE)
    return html.Div([
        html.H4("Attrition Trends"),
        dcc.Graph(figure=trend_figure(state.data or []), config={"displayModeBar": False}),
    ], style=PANEL_STYLE)


def trends_layout(poll_interval_ms: int = 500):
    return html.Div([
        dcc.Interval(id="trends-poll", interval=poll_interval_ms, n_intervals=0),
        html.Div(render_trends(QueryState()), id="trends-content"),
    ])


def register_trend_callbacks(app: Dash, api, queries: QueryClient) -> None:
    @app.callback(
        Output("trends-content", "children"),
        Output("trends-poll", "disabled"),
        Input("trends-poll", "n_intervals"),
    )
    def update_trends(_):
        state = queries.query(TREND_QUERY_KEY, api.fetch_attrition_trends)
        return render_trends(state), state.is_settled
