# dash_app.py
import logging
from typing import List, Optional, Sequence

import dash
from dash import Dash, Input, Output, State, dcc, html

from attrition_api import AttritionApiClient
from models import JOB_LEVELS, AttritionPrediction, DepartmentMetrics, Employee
from query_client import Mutation, QueryClient, QueryState, QueryStatus
from settings import Settings, setup_logging
from trends import ERROR_STYLE, PANEL_STYLE, register_trend_callbacks, trends_layout
from validation import validate_employee

logger = logging.getLogger(__name__)

METRICS_QUERY_KEY = "departmentMetrics"
DEFAULT_DEPARTMENT = "All"
DEFAULT_JOB_LEVEL = "Entry Level"
SUBMIT_LABEL = "Calculate Risk"
PENDING_LABEL = "Calculating..."

# submit stays disabled and relabelled while the prediction callback runs
SUBMIT_RUNNING = [
    (Output("calculate", "disabled"), True, False),
    (Output("calculate", "children"), PENDING_LABEL, SUBMIT_LABEL),
]

FIELD_ERROR_STYLE = {"color":"#dc2626","fontSize":"13px","marginTop":"4px"}
RISK_COLORS = {"Low":"#16a34a","Medium":"#ca8a04","High":"#dc2626"}


# ---------------------- HELPERS ----------------------
def select_metrics(metrics: Optional[Sequence[DepartmentMetrics]], selected: Optional[str]) -> Optional[DepartmentMetrics]:
    """Metrics for ``selected``, or the first department when it is not listed."""
    if not metrics:
        return None
    for m in metrics:
        if m.department == selected:
            return m
    return metrics[0]


def _plain_number(value: float) -> str:
    return f"{int(value)}" if float(value).is_integer() else f"{value}"


def format_cards(m: Optional[DepartmentMetrics]) -> dict:
    if m is None:
        return {"attrition_rate": "-", "employee_count": "-", "predicted_attrition": "-"}
    return {
        "attrition_rate": f"{m.attrition_rate:.1f}%",
        "employee_count": f"{m.employee_count:d}",
        "predicted_attrition": _plain_number(m.predicted_attrition),
    }


def card(title, value):
    return html.Div([
        html.Div(title, style={"fontSize":"12px","color":"#6b7280","marginBottom":"6px"}),
        html.Div(value, style={"fontSize":"22px","fontWeight":"700","color":"#111827"})
    ], style={"border":"1px solid #e6e6e6","borderRadius":"10px","padding":"14px 16px","background":"#fff","boxShadow":"0 1px 0 rgba(0,0,0,.03)"})


def render_cards(state: QueryState, selected: Optional[str]):
    if state.is_loading and state.data is None:
        return html.Div("Loading...", className="loading")
    values = format_cards(select_metrics(state.data, selected))
    return html.Div([
        html.Div(card("🚪 Attrition Rate", values["attrition_rate"]), style={"flex":"1","marginRight":"8px"}),
        html.Div(card("👥 Total Employees", values["employee_count"]), style={"flex":"1","marginRight":"8px"}),
        html.Div(card("📈 Predicted Attrition (Next 3 Months)", values["predicted_attrition"]), style={"flex":"1"})
    ], style={"display":"flex","gap":"8px","flexWrap":"wrap"})


def render_error(message: str):
    return html.Div(message, className="error-banner", style=ERROR_STYLE)


def render_prediction(prediction: AttritionPrediction):
    factors = [html.Li(f"{f.factor}: {f.impact:+.2f}") for f in prediction.top_factors]
    return html.Div([
        html.H4("Prediction"),
        html.Div([
            html.Div(card("Attrition Probability", f"{prediction.probability * 100:.1f}%"), style={"flex":"1","marginRight":"8px"}),
            html.Div(card("Risk Level", html.Span(prediction.risk_level, style={"color": RISK_COLORS.get(prediction.risk_level)})),
                     style={"flex":"1"}),
        ], style={"display":"flex","gap":"8px","flexWrap":"wrap"}),
        html.Div([html.Label("Top Factors"), html.Ul(factors)] if factors else "No contributing factors reported."),
    ], className="prediction-result")


# ---------------------- DASHBOARD ----------------------
class Dashboard:
    """Callback logic for the metrics header and the risk calculator."""

    def __init__(self, api: AttritionApiClient, queries: QueryClient):
        self.api = api
        self.queries = queries

    def metrics_state(self) -> QueryState:
        return self.queries.query(METRICS_QUERY_KEY, self.api.fetch_department_metrics)

    def metrics_view(self, selected: Optional[str]):
        state = self.metrics_state()
        metrics: List[DepartmentMetrics] = state.data or []
        options = [{"label": m.department, "value": m.department} for m in metrics]
        banner = None
        if state.status is QueryStatus.ERROR:
            banner = render_error(f"Could not load department metrics: {state.error}")
        return options, render_cards(state, selected), banner, state.is_settled

    def new_prediction(self) -> Mutation:
        return Mutation(self.api.predict_attrition, on_success=self._log_prediction, on_error=self._log_failure)

    def submit(self, years, income, level):
        """Validate the form and, when it passes, request a prediction.

        Returns the three per-field error texts and the result panel.
        """
        result = validate_employee({"yearsAtCompany": years, "monthlyIncome": income, "jobLevel": level})
        if not result.ok:
            errors = result.errors
            return (errors.get("yearsAtCompany"), errors.get("monthlyIncome"), errors.get("jobLevel"),
                    dash.no_update)

        mutation = self.new_prediction()
        prediction = mutation.mutate(result.employee)
        if mutation.is_error:
            return None, None, None, render_error(f"Prediction failed: {mutation.error}")
        return None, None, None, render_prediction(prediction)

    @staticmethod
    def _log_prediction(prediction: AttritionPrediction, employee: Employee) -> None:
        logger.info("Prediction for %s: %s (p=%.3f)", employee, prediction.risk_level, prediction.probability)

    @staticmethod
    def _log_failure(exc: BaseException, employee: Employee) -> None:
        logger.error("Prediction for %s failed: %s", employee, exc)


# ---------------------- LAYOUT ----------------------
def _field(label, control, error_id):
    return html.Div([
        html.Label(label),
        control,
        html.Div(id=error_id, style=FIELD_ERROR_STYLE),
    ], style={"flex":"1","minWidth":"200px","marginRight":"8px"})


def build_layout(settings: Settings):
    return html.Div([
        dcc.Interval(id="metrics-poll", interval=settings.poll_interval_ms, n_intervals=0),
        html.Div([
            html.H2("Employee Attrition Analytics", style={"color":"#1f77b4","margin":"0"}),
            dcc.Dropdown(id="department", options=[], value=DEFAULT_DEPARTMENT, clearable=False,
                         style={"width":"260px"}),
        ], style={"display":"flex","justifyContent":"space-between","alignItems":"center","marginBottom":"12px"}),
        html.Div(id="metrics-error"),
        html.Div(html.Div("Loading...", className="loading"), id="metric-cards"),
        html.Hr(),
        trends_layout(settings.poll_interval_ms),
        html.Hr(),
        html.Div([
            html.H4("💰 Attrition Risk Calculator"),
            html.Div([
                _field("Years at Company",
                       dcc.Input(id="years", type="number", placeholder="0", debounce=True, style={"width":"100%"}),
                       "years-error"),
                _field("Monthly Income",
                       dcc.Input(id="income", type="number", placeholder="0", debounce=True, style={"width":"100%"}),
                       "income-error"),
                _field("Job Level",
                       dcc.Dropdown(id="job-level", options=[{"label":lvl,"value":lvl} for lvl in JOB_LEVELS],
                                    value=DEFAULT_JOB_LEVEL, clearable=False),
                       "level-error"),
            ], style={"display":"flex","gap":"8px","flexWrap":"wrap","alignItems":"flex-start"}),
            html.Button(SUBMIT_LABEL, id="calculate", n_clicks=0,
                        style={"width":"100%","marginTop":"12px","padding":"8px","background":"#2563eb",
                               "color":"#fff","border":"none","borderRadius":"6px"}),
            html.Div(id="prediction-result", style={"marginTop":"12px"}),
        ], style=PANEL_STYLE),
    ], style={"maxWidth":"1200px","margin":"0 auto","padding":"10px 16px"})


# ---------------------- APP ----------------------
def create_app(api: Optional[AttritionApiClient] = None, queries: Optional[QueryClient] = None,
               settings: Optional[Settings] = None) -> Dash:
    settings = settings or Settings.from_env()
    api = api or AttritionApiClient(settings.api_url, timeout=settings.api_timeout)
    queries = queries or QueryClient()
    dashboard = Dashboard(api, queries)

    app = Dash(__name__, title="Employee Attrition Analytics", suppress_callback_exceptions=True)
    app.layout = build_layout(settings)

    @app.callback(
        Output("department", "options"),
        Output("metric-cards", "children"),
        Output("metrics-error", "children"),
        Output("metrics-poll", "disabled"),
        Input("metrics-poll", "n_intervals"),
        Input("department", "value"),
    )
    def update_metrics(_, selected):
        return dashboard.metrics_view(selected)

    @app.callback(
        Output("years-error", "children"),
        Output("income-error", "children"),
        Output("level-error", "children"),
        Output("prediction-result", "children"),
        Input("calculate", "n_clicks"),
        Input("years", "n_submit"),
        Input("income", "n_submit"),
        State("years", "value"),
        State("income", "value"),
        State("job-level", "value"),
        running=SUBMIT_RUNNING,
        prevent_initial_call=True,
    )
    def calculate_risk(_clicks, _years_submit, _income_submit, years, income, level):
        return dashboard.submit(years, income, level)

    register_trend_callbacks(app, api, queries)
    return app


# ---------------------- MAIN ----------------------
def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Using attrition backend at %s", settings.api_url)
    app = create_app(settings=settings)
    app.run(host=settings.dash_host, port=settings.dash_port, debug=settings.dash_debug)


if __name__ == "__main__":
    main()
