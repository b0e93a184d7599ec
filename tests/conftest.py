"""Shared fixtures: a fake attrition backend and query clients."""

import json
from concurrent.futures import Executor, Future

import httpx
import pytest

from attrition_api import AttritionApiClient
from query_client import QueryClient

BASE_URL = "http://backend.test"

DEPARTMENTS = [
    {"department": "Engineering", "attritionRate": 12.345, "employeeCount": 120, "predictedAttrition": 9},
    {"department": "Sales", "attritionRate": 18.0, "employeeCount": 80, "predictedAttrition": 7.5},
]
TRENDS = [
    {"month": "Jan", "rate": 10.2},
    {"month": "Feb", "rate": 11.0},
    {"month": "Mar", "rate": 9.4},
]
PREDICTION = {
    "probability": 0.42,
    "riskLevel": "Medium",
    "topFactors": [
        {"factor": "Monthly income", "impact": 0.31},
        {"factor": "Years at company", "impact": -0.12},
    ],
}


class FakeBackend:
    """Routes requests to canned JSON and records what was asked."""

    def __init__(self):
        self.routes = {
            ("GET", "/metrics/departments"): (200, DEPARTMENTS),
            ("GET", "/metrics/trends"): (200, TRENDS),
            ("POST", "/predict/attrition"): (200, PREDICTION),
        }
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        status, payload = route
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def posted_json(self):
        return [json.loads(r.content) for r in self.calls("POST", "/predict/attrition")]


class InlineExecutor(Executor):
    """Runs submitted work immediately in the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    client = AttritionApiClient(BASE_URL, transport=httpx.MockTransport(backend))
    yield client
    client.close()


@pytest.fixture
def queries():
    client = QueryClient(max_workers=4)
    yield client
    client.shutdown()


@pytest.fixture
def inline_queries():
    return QueryClient(executor=InlineExecutor())
