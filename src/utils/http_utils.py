from __future__ import annotations

import logging
import os
import threading
import uuid
from time import perf_counter
from typing import Any

import requests
from flask import Request, g, jsonify, request
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Typed API error that can be raised within routes to return JSON errors.

    Attributes
    ----------
    message: str
        Error string placed in the ``error`` field of the response
    status: int
        HTTP status code (default 400)
    code: Optional[int | str]
        Optional application-specific error code
    details: Optional[dict[str, Any]]
        Optional structured details to aid clients
    """

    def __init__(
        self,
        message: str,
        status: int = 400,
        code: int | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details


def get_request_id() -> str | None:
    """Return a stable per-request id if a request context exists.

    - Prefer an existing value in flask.g
    - Else prefer inbound header 'X-Request-Id'
    - Else generate a new uuid4 and store in flask.g
    - If no request context, return None
    """
    try:
        _ = request.headers  # raises outside a request context
    except RuntimeError:
        return None
    rid: str | None = getattr(g, "request_id", None)
    if rid:
        return rid
    rid_hdr = request.headers.get("X-Request-Id")
    g.request_id = rid_hdr if rid_hdr else str(uuid.uuid4())
    return g.request_id


def json_error(
    error: str,
    status: int = 400,
    code: int | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
):
    body: dict[str, Any] = {"success": False, "error": error}
    body.update(payload)
    if code is not None:
        body["code"] = code
    if details is not None:
        body["details"] = details
    rid = get_request_id()
    if rid is not None:
        body["request_id"] = rid
    return jsonify(body), status


def json_success(message: str | None = None, status: int = 200, **payload: Any):
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    body.update(payload)
    rid = get_request_id()
    if rid is not None:
        body["request_id"] = rid
    return jsonify(body), status


def json_internal_error(
    context: str,
    *,
    message: str | None = None,
    status: int = 500,
    code: int | str | None = "internal_error",
):
    """Return a standardized 500 envelope.

    ``context`` names the failed operation and becomes the ``error`` string
    ("Failed to <context>"); ``message`` carries the exception text as a
    debugging aid only.
    """
    return json_error(
        f"Failed to {context}",
        status=status,
        code=code,
        message=message if message is not None else "Unknown error",
    )


def wants_json(req: Request | None = None) -> bool:
    """Heuristic to decide if the current request expects JSON.

    Every route in this service speaks JSON except the plain-text probes.
    """
    try:
        r = req or request
        if r.path in ("/healthz", "/readyz"):
            return False
        return True
    except RuntimeError:
        return False


# ---- HTTP client helpers ----------------------------------------------------

# Use a thread-local container to avoid sharing sessions across threads.
_thread_local = threading.local()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_TIMEOUT_SECONDS: float = _env_float("MOCKAPI_HTTP_TIMEOUT_DEFAULT_S", 10.0)
DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "BlacklistMockAPI-Client/1.0",
    "Accept": "application/json",
}


def _build_retry() -> Retry:
    # Retry idempotent methods on common transient failures; POST is never retried
    retries_total = _env_int("MOCKAPI_HTTP_RETRIES", 3)
    backoff = _env_float("MOCKAPI_HTTP_BACKOFF", 0.0)  # keep tests snappy by default
    return Retry(
        total=retries_total,
        connect=retries_total,
        read=retries_total,
        status=retries_total,
        backoff_factor=backoff,
        status_forcelist=(429, 502, 503, 504),
        allowed_methods=("HEAD", "GET", "DELETE", "OPTIONS"),
        raise_on_status=False,
    )


def _build_session() -> requests.Session:
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=_build_retry())
    s.headers.update(DEFAULT_HEADERS)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    return s


def get_shared_session() -> requests.Session:
    """Return a requests.Session unique to the current thread."""
    session: requests.Session | None = getattr(_thread_local, "session", None)
    if session is None:
        session = _build_session()
        _thread_local.session = session
    return session


def http_request(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float | tuple[float, float] | None = None,
) -> requests.Response:
    """Perform a request using the shared session with retries and sane defaults.

    - Adds the default User-Agent and Accept headers
    - Applies a default timeout if none is provided
    - Logs latency when MOCKAPI_HTTP_LOG_LATENCY is set
    """
    session = get_shared_session()
    final_headers = dict(DEFAULT_HEADERS)
    if headers:
        final_headers.update(headers)
    effective_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS

    log_latency = _env_bool("MOCKAPI_HTTP_LOG_LATENCY", False)
    t0 = perf_counter()
    try:
        resp = session.request(
            method.upper(),
            url,
            params=params,
            json=json,
            headers=final_headers,
            timeout=effective_timeout,
        )
    except requests.RequestException as ex:
        if log_latency:
            logger.warning(
                "HTTP %s failed | url=%s elapsed_ms=%s error=%s",
                method.upper(),
                url,
                int((perf_counter() - t0) * 1000),
                type(ex).__name__,
            )
        raise

    if log_latency:
        logger.info(
            "HTTP %s | url=%s status=%s elapsed_ms=%s bytes=%s",
            method.upper(),
            url,
            resp.status_code,
            int((perf_counter() - t0) * 1000),
            len(resp.content or b""),
        )
    return resp


def _reset_shared_session_for_tests() -> None:
    """Reset the shared session (testing only)."""
    if hasattr(_thread_local, "session"):
        delattr(_thread_local, "session")
