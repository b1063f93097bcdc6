import threading

import pytest
import requests


class _FakeResponse:
    status_code = 200
    content = b"{}"

    def json(self):
        return {}


def test_http_request_user_agent_and_default_timeout(monkeypatch):
    import utils.http_utils as http_utils

    http_utils._reset_shared_session_for_tests()

    captured = {}

    def fake_request(self, method, url, **kwargs):  # type: ignore[no-redef]
        captured["method"] = method
        captured["headers"] = kwargs.get("headers")
        captured["timeout"] = kwargs.get("timeout")
        captured["json"] = kwargs.get("json")
        return _FakeResponse()

    monkeypatch.setattr(requests.Session, "request", fake_request, raising=True)

    http_utils.http_request("post", "http://localhost:3000/api/blacklist", json={"name": "x"})

    assert captured["method"] == "POST"
    assert captured["headers"].get("User-Agent", "").startswith("BlacklistMockAPI-Client/")
    assert captured["headers"].get("Accept") == "application/json"
    assert captured["timeout"] == http_utils.DEFAULT_TIMEOUT_SECONDS
    assert captured["json"] == {"name": "x"}


def test_http_request_timeout_override(monkeypatch):
    import utils.http_utils as http_utils

    http_utils._reset_shared_session_for_tests()

    captured = {}

    def fake_request(self, method, url, **kwargs):  # type: ignore[no-redef]
        captured["method"] = method
        captured["timeout"] = kwargs.get("timeout")
        return _FakeResponse()

    monkeypatch.setattr(requests.Session, "request", fake_request, raising=True)

    http_utils.http_request("GET", "http://localhost:3000/api/health", timeout=5)
    assert captured == {"method": "GET", "timeout": 5}


def test_http_request_logs_latency_when_enabled(monkeypatch, caplog):
    import utils.http_utils as http_utils

    http_utils._reset_shared_session_for_tests()
    monkeypatch.setenv("MOCKAPI_HTTP_LOG_LATENCY", "1")
    monkeypatch.setattr(requests.Session, "request", lambda self, m, u, **k: _FakeResponse(), raising=True)

    with caplog.at_level("INFO", logger="utils.http_utils"):
        http_utils.http_request("GET", "http://localhost:3000/api/health")
    assert any("HTTP GET | url=http://localhost:3000/api/health status=200" in r.getMessage() for r in caplog.records)


def test_http_request_propagates_transport_errors(monkeypatch):
    import utils.http_utils as http_utils

    http_utils._reset_shared_session_for_tests()

    def boom(self, method, url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests.Session, "request", boom, raising=True)
    with pytest.raises(requests.ConnectionError):
        http_utils.http_request("GET", "http://localhost:1/api/health")


def test_shared_session_retry_configuration():
    import utils.http_utils as http_utils
    from urllib3.util.retry import Retry

    http_utils._reset_shared_session_for_tests()
    session = http_utils.get_shared_session()
    adapter = session.adapters.get("http://")
    assert adapter is not None
    retry = adapter.max_retries
    assert isinstance(retry, Retry)
    assert retry.backoff_factor == 0.0
    assert "GET" in retry.allowed_methods
    assert "POST" not in retry.allowed_methods
    assert 503 in retry.status_forcelist


def test_shared_session_thread_isolation():
    import utils.http_utils as http_utils

    http_utils._reset_shared_session_for_tests()
    sessions = []

    def grab():
        sessions.append(http_utils.get_shared_session())

    t1 = threading.Thread(target=grab)
    t2 = threading.Thread(target=grab)
    t1.start()
    t2.start()
    t1.join()
    t2.join()
    assert len(sessions) == 2
    assert sessions[0] is not sessions[1]
    assert http_utils.get_shared_session() is http_utils.get_shared_session()


def test_get_request_id_outside_request_context():
    from utils.http_utils import get_request_id

    assert get_request_id() is None


def test_json_error_and_success_envelopes():
    from flask import Flask

    from utils.http_utils import APIError, json_error, json_internal_error, json_success

    app = Flask(__name__)
    with app.test_request_context("/api/blacklist", headers={"X-Request-Id": "rid-1"}):
        resp, status = json_error("Entry not found", status=404, message="missing")
        assert status == 404
        assert resp.get_json() == {
            "success": False,
            "error": "Entry not found",
            "message": "missing",
            "request_id": "rid-1",
        }

        resp, status = json_success("done", status=201, entry={"name": "x"})
        assert status == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "done"
        assert body["entry"] == {"name": "x"}

        resp, status = json_internal_error("check blacklist", message="kaboom")
        body = resp.get_json()
        assert status == 500
        assert body["error"] == "Failed to check blacklist"
        assert body["message"] == "kaboom"
        assert body["code"] == "internal_error"

    err = APIError("bad", status=422, code="E1", details={"field": "name"})
    assert (err.message, err.status, err.code, err.details) == ("bad", 422, "E1", {"field": "name"})


def test_generated_request_id_is_stable_within_request():
    from flask import Flask

    from utils.http_utils import get_request_id

    app = Flask(__name__)
    with app.test_request_context("/"):
        first = get_request_id()
        assert first
        assert get_request_id() == first
