"""Tests for the dashboard view logic."""

import threading

import dash
import pytest

from conftest import DEPARTMENTS
from dash_app import (
    DEFAULT_DEPARTMENT,
    METRICS_QUERY_KEY,
    PENDING_LABEL,
    SUBMIT_LABEL,
    SUBMIT_RUNNING,
    Dashboard,
    create_app,
    format_cards,
    select_metrics,
)
from models import DepartmentMetrics
from query_client import Mutation, QueryStatus
from settings import Settings
from validation import YEARS_RANGE


def texts(component):
    """Flatten every string found under a Dash component tree."""
    if component is None:
        return []
    if isinstance(component, str):
        return [component]
    if isinstance(component, (list, tuple)):
        return [t for child in component for t in texts(child)]
    return texts(getattr(component, "children", None))


@pytest.fixture
def metrics():
    return DepartmentMetrics.list_from_json(DEPARTMENTS)


@pytest.fixture
def dashboard(api, inline_queries):
    return Dashboard(api, inline_queries)


def test_select_matching_department(metrics):
    assert select_metrics(metrics, "Sales").department == "Sales"


def test_select_falls_back_to_first(metrics):
    assert select_metrics(metrics, DEFAULT_DEPARTMENT).department == "Engineering"
    assert select_metrics(metrics, "Legal").department == "Engineering"
    assert select_metrics(metrics, None).department == "Engineering"


def test_select_without_metrics():
    assert select_metrics([], "Sales") is None
    assert select_metrics(None, "Sales") is None


def test_format_cards(metrics):
    assert format_cards(metrics[0]) == {
        "attrition_rate": "12.3%",
        "employee_count": "120",
        "predicted_attrition": "9",
    }
    assert format_cards(metrics[1])["predicted_attrition"] == "7.5"
    assert format_cards(None)["attrition_rate"] == "-"


def test_metrics_view_loads_once_and_falls_back(dashboard, backend):
    options, cards, banner, settled = dashboard.metrics_view(DEFAULT_DEPARTMENT)
    dashboard.metrics_view("Sales")

    assert options == [{"label": "Engineering", "value": "Engineering"}, {"label": "Sales", "value": "Sales"}]
    assert "12.3%" in texts(cards)
    assert banner is None
    assert settled is True
    assert len(backend.calls("GET", "/metrics/departments")) == 1


def test_metrics_view_selects_department(dashboard):
    _, cards, _, _ = dashboard.metrics_view("Sales")

    assert "18.0%" in texts(cards)
    assert "80" in texts(cards)


def test_metrics_view_shows_loading(api, queries):
    release = threading.Event()
    queries.refetch(METRICS_QUERY_KEY, lambda: release.wait(5) and [])
    _, cards, banner, settled = Dashboard(api, queries).metrics_view(DEFAULT_DEPARTMENT)
    release.set()

    assert texts(cards) == ["Loading..."]
    assert banner is None
    assert settled is False


def test_metrics_view_shows_error_banner(dashboard, backend):
    backend.routes[("GET", "/metrics/departments")] = (500, {"detail": "boom"})

    options, cards, banner, settled = dashboard.metrics_view(DEFAULT_DEPARTMENT)

    assert dashboard.queries.get_state(METRICS_QUERY_KEY).status is QueryStatus.ERROR
    assert options == []
    assert "HTTP 500" in texts(banner)[0]
    assert settled is True


def test_submit_valid_form_posts_prediction(dashboard, backend):
    years_err, income_err, level_err, result = dashboard.submit("5", "4000", "Senior")

    assert (years_err, income_err, level_err) == (None, None, None)
    assert backend.posted_json() == [{"yearsAtCompany": 5, "monthlyIncome": 4000, "jobLevel": "Senior"}]
    shown = texts(result)
    assert "42.0%" in shown
    assert "Medium" in shown
    assert "Monthly income: +0.31" in shown


def test_submit_invalid_form_never_posts(dashboard, backend):
    years_err, income_err, level_err, result = dashboard.submit("-1", "1000", "Senior")

    assert years_err == YEARS_RANGE
    assert income_err is None
    assert level_err is None
    assert result is dash.no_update
    assert backend.calls("POST", "/predict/attrition") == []


def test_submit_backend_failure_shows_banner(dashboard, backend):
    backend.routes[("POST", "/predict/attrition")] = (502, {"detail": "model offline"})

    errors = dashboard.submit(5, 4000, "Senior")

    assert errors[:3] == (None, None, None)
    assert texts(errors[3])[0].startswith("Prediction failed: HTTP 502")


def test_submit_holds_mutation_pending_during_request(dashboard, monkeypatch):
    observed = []

    def predict(employee):
        observed.append(mutation.is_pending)
        return dashboard.api.predict_attrition(employee)

    mutation = Mutation(predict)
    monkeypatch.setattr(dashboard, "new_prediction", lambda: mutation)
    assert not mutation.is_pending

    dashboard.submit("5", "4000", "Senior")

    assert observed == [True]
    assert not mutation.is_pending
    assert mutation.is_success


def test_create_app_registers_callbacks(api, inline_queries):
    app = create_app(api=api, queries=inline_queries, settings=Settings(poll_interval_ms=250))

    outputs = " ".join(app.callback_map)
    assert "metric-cards.children" in outputs
    assert "prediction-result.children" in outputs
    assert "trends-content.children" in outputs


def test_submit_button_disabled_while_running():
    running = {(out.component_id, out.component_property): (on, off) for out, on, off in SUBMIT_RUNNING}

    assert running[("calculate", "disabled")] == (True, False)
    assert running[("calculate", "children")] == (PENDING_LABEL, SUBMIT_LABEL)


def test_running_outputs_attached_to_prediction_callback(api, inline_queries):
    app = create_app(api=api, queries=inline_queries, settings=Settings())

    specs = [s for s in app._callback_list if "prediction-result.children" in str(s.get("output"))]
    assert len(specs) == 1
    running = str(specs[0].get("running"))
    assert "calculate" in running
    assert "disabled" in running
    assert PENDING_LABEL in running


def test_reload_after_failed_metrics_fetch_recovers(dashboard, backend):
    backend.routes[("GET", "/metrics/departments")] = (503, {"detail": "warming up"})
    _, _, banner, _ = dashboard.metrics_view(DEFAULT_DEPARTMENT)
    assert "HTTP 503" in texts(banner)[0]

    backend.routes[("GET", "/metrics/departments")] = (200, DEPARTMENTS)
    options, cards, banner, settled = dashboard.metrics_view(DEFAULT_DEPARTMENT)

    assert banner is None
    assert settled is True
    assert len(options) == 2
    assert "12.3%" in texts(cards)
    assert len(backend.calls("GET", "/metrics/departments")) == 2
