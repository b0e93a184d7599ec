# attrition_api.py
import logging
from typing import Any, List, Optional

import httpx

from models import (
    ApiError,
    AttritionPrediction,
    DepartmentMetrics,
    Employee,
    HttpError,
    NetworkError,
    ResponseFormatError,
    TrendPoint,
)

__all__ = [
    "AttritionApiClient",
    "ApiError",
    "HttpError",
    "NetworkError",
    "ResponseFormatError",
]

logger = logging.getLogger(__name__)

DEPARTMENTS_PATH = "/metrics/departments"
TRENDS_PATH = "/metrics/trends"
PREDICT_PATH = "/predict/attrition"


class AttritionApiClient:
    """Typed access to the attrition backend.

    ``timeout=None`` waits forever, so a hung backend leaves the calling
    query loading. Pass ``transport`` to swap the network out (tests use
    ``httpx.MockTransport``).
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def __enter__(self) -> "AttritionApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            logger.warning("%s %s -> %s", method, path, resp.status_code)
            raise HttpError(resp.status_code, str(resp.request.url), resp.text[:200])

        logger.debug("%s %s -> %s", method, path, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ResponseFormatError(f"{method} {path}: response is not JSON") from exc

    def fetch_department_metrics(self) -> List[DepartmentMetrics]:
        return DepartmentMetrics.list_from_json(self._request("GET", DEPARTMENTS_PATH))

    def predict_attrition(self, employee: Employee) -> AttritionPrediction:
        payload = self._request("POST", PREDICT_PATH, json=employee.to_json())
        return AttritionPrediction.from_json(payload)

    def fetch_attrition_trends(self) -> List[TrendPoint]:
        return TrendPoint.list_from_json(self._request("GET", TRENDS_PATH))
