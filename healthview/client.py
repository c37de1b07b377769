"""REST client for the monitoring backend's JSON API."""

import logging
from typing import Any

import requests

from .models import (
    Announcement,
    AppConfig,
    ConditionResult,
    EndpointEvent,
    EndpointStatus,
    EventType,
    ResponseTimeHistory,
    Sample,
    SuiteStatus,
)
from .timefmt import parse_timestamp

logger = logging.getLogger(__name__)

# Response-time history buckets the backend aggregates.
DURATIONS = ("24h", "7d", "30d")

DEFAULT_PAGE_SIZE = 50
DEFAULT_TIMEOUT = 10


class ClientError(Exception):
    """Raised when a request fails or returns an unusable response."""

    pass


def _parse_sample(data: dict[str, Any]) -> Sample:
    """Parse one endpoint result entry."""
    conditions = tuple(
        ConditionResult(description=str(c.get("condition", "")), success=bool(c.get("success")))
        for c in data.get("conditionResults") or []
    )
    return Sample(
        timestamp=parse_timestamp(data["timestamp"]),
        success=bool(data.get("success")),
        duration_nanos=int(data.get("duration") or 0),
        condition_results=conditions,
        errors=tuple(str(e) for e in data.get("errors") or []),
        status=data.get("status") or None,
        hostname=data.get("hostname") or None,
    )


def _parse_suite_sample(data: dict[str, Any]) -> Sample:
    """Parse one suite result; per-endpoint outcomes become conditions."""
    conditions = tuple(
        ConditionResult(description=str(e.get("name", "")), success=bool(e.get("success")))
        for e in data.get("endpointResults") or []
    )
    return Sample(
        timestamp=parse_timestamp(data["timestamp"]),
        success=bool(data.get("success")),
        duration_nanos=int(data.get("duration") or 0),
        condition_results=conditions,
        errors=tuple(str(e) for e in data.get("errors") or []),
    )


def _parse_event(data: dict[str, Any]) -> EndpointEvent:
    return EndpointEvent(type=EventType(data["type"]), timestamp=parse_timestamp(data["timestamp"]))


def _parse_endpoint_status(data: dict[str, Any]) -> EndpointStatus:
    return EndpointStatus(
        name=str(data["name"]),
        key=str(data["key"]),
        group=str(data.get("group") or ""),
        results=tuple(_parse_sample(r) for r in data.get("results") or []),
        events=tuple(_parse_event(e) for e in data.get("events") or []),
    )


def _parse_suite_status(data: dict[str, Any]) -> SuiteStatus:
    return SuiteStatus(
        name=str(data["name"]),
        key=str(data["key"]),
        group=str(data.get("group") or ""),
        results=tuple(_parse_suite_sample(r) for r in data.get("results") or []),
    )


def _parse_announcement(data: dict[str, Any]) -> Announcement:
    start = data.get("startTime")
    end = data.get("endTime")
    return Announcement(
        title=str(data.get("title", "")),
        description=str(data.get("description", "")),
        severity=str(data.get("severity", "none")),
        start_time=parse_timestamp(start) if start else None,
        end_time=parse_timestamp(end) if end else None,
        archived=bool(data.get("archived", False)),
    )


class StatusClient:
    """Thin wrapper around the ``/api/v1`` endpoints.

    Every method raises ``ClientError`` on transport errors, non-2xx
    responses and malformed bodies. There are no retries: callers rely on
    the next periodic refresh.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise ClientError(f"GET {path} failed: {e}")
        except ValueError as e:
            raise ClientError(f"GET {path} returned invalid JSON: {e}")

    def _parse(self, path: str, parser, data: Any) -> Any:
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ClientError(f"GET {path} returned an unexpected payload: {e}")

    def fetch_config(self) -> AppConfig:
        path = "/api/v1/config"
        data = self._get(path)

        def parse(d: dict) -> AppConfig:
            return AppConfig(
                oidc=bool(d.get("oidc", False)),
                authenticated=bool(d.get("authenticated", True)),
                announcements=[_parse_announcement(a) for a in d.get("announcements") or []],
            )

        return self._parse(path, parse, data)

    def fetch_endpoint_statuses(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> list[EndpointStatus]:
        path = "/api/v1/endpoints/statuses"
        data = self._get(path, {"page": page, "pageSize": page_size})
        return self._parse(path, lambda d: [_parse_endpoint_status(e) for e in d or []], data)

    def fetch_endpoint_status(self, key: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> EndpointStatus:
        path = f"/api/v1/endpoints/{key}/statuses"
        data = self._get(path, {"page": page, "pageSize": page_size})
        return self._parse(path, _parse_endpoint_status, data)

    def fetch_response_time_history(self, key: str, duration: str) -> ResponseTimeHistory:
        """Fetch the ``(timestamps, values)`` trend for an endpoint.

        Raises:
            ValueError: If ``duration`` is not a known bucket.
            ClientError: If the request fails.
        """
        if duration not in DURATIONS:
            raise ValueError(f"Invalid duration '{duration}'. Must be one of: {DURATIONS}")
        path = f"/api/v1/endpoints/{key}/response-times/{duration}/history"
        data = self._get(path)

        def parse(d: dict) -> ResponseTimeHistory:
            return ResponseTimeHistory(
                timestamps=tuple(int(t) for t in d.get("timestamps") or []),
                values=tuple(float(v) for v in d.get("values") or []),
            )

        history = self._parse(path, parse, data)
        logger.debug("Fetched %d response-time points for %s (%s)", len(history), key, duration)
        return history

    def fetch_suite_statuses(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> list[SuiteStatus]:
        path = "/api/v1/suites/statuses"
        data = self._get(path, {"page": page, "pageSize": page_size})
        return self._parse(path, lambda d: [_parse_suite_status(s) for s in d or []], data)

    def fetch_suite_status(self, key: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> SuiteStatus:
        path = f"/api/v1/suites/{key}/statuses"
        data = self._get(path, {"page": page, "pageSize": page_size})
        return self._parse(path, _parse_suite_status, data)
