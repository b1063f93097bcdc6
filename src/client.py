from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from utils.http_utils import http_request

logger = logging.getLogger(__name__)


@dataclass
class ApiResult:
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error(self) -> str | None:
        return self.body.get("error")


class BlacklistClient:
    """Thin client for a running blacklist mock API server.

    Non-2xx responses are returned as ``ApiResult`` rather than raised, so
    callers can assert on status codes directly. Transport failures
    (connection refused, timeouts) propagate as ``requests`` exceptions.
    """

    def __init__(self, base_url: str, timeout: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _call(self, method: str, path: str, json: Any = None) -> ApiResult:
        url = f"{self.base_url}{path}"
        resp = http_request(method, url, json=json, timeout=self.timeout)
        try:
            body = resp.json()
        except ValueError:
            logger.warning(f"Non-JSON response from {method} {url} (status={resp.status_code})")
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}
        return ApiResult(status=resp.status_code, body=body)

    @staticmethod
    def _segment(name: str) -> str:
        return quote(name, safe="")

    def health(self, detailed: bool = False) -> ApiResult:
        return self._call("GET", "/api/health/detailed" if detailed else "/api/health")

    def list_entries(self) -> ApiResult:
        return self._call("GET", "/api/blacklist")

    def check(self, name: str) -> ApiResult:
        return self._call("GET", f"/api/blacklist/check/{self._segment(name)}")

    def stats(self) -> ApiResult:
        return self._call("GET", "/api/blacklist/stats")

    def add(
        self,
        name: str,
        reason: str | None = None,
        added_by: str | None = None,
        category: str | None = None,
    ) -> ApiResult:
        payload: dict[str, Any] = {"name": name}
        if reason is not None:
            payload["reason"] = reason
        if added_by is not None:
            payload["addedBy"] = added_by
        if category is not None:
            payload["category"] = category
        return self._call("POST", "/api/blacklist", json=payload)

    def remove(self, name: str) -> ApiResult:
        return self._call("DELETE", f"/api/blacklist/{self._segment(name)}")

    def is_blacklisted(self, name: str) -> bool:
        result = self.check(name)
        return bool(result.ok and result.body.get("isBlacklisted"))
