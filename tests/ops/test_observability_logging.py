import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.wms.db.timing import add_db_time, get_db_time_ms, is_tracking, track_db_time
from app.wms.middleware.observability import build_request_log_payload


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/wms/stock-in/123/commit",
        "headers": [],
        "route": SimpleNamespace(path="/wms/stock-in/{stock_in_id}/commit"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.user_id = "clerk-1"
    request.state.error_code = None
    response = Response(status_code=200)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "clerk-1"
    assert payload["route"] == "/wms/stock-in/{stock_in_id}/commit"
    assert payload["method"] == "POST"
    assert payload["status_code"] == 200
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57


def test_db_time_is_only_tracked_inside_a_request():
    assert not is_tracking()
    add_db_time(5.0)
    assert get_db_time_ms() is None

    with track_db_time():
        add_db_time(1.5)
        add_db_time(2.0)
        assert get_db_time_ms() == 3.5

    assert not is_tracking()


def test_request_is_logged_with_trace_id(client, caplog):
    with caplog.at_level(logging.INFO, logger="wms.request"):
        response = client.get("/health", headers={"X-Trace-ID": "trace-abc", "X-User-ID": "clerk-9"})

    assert response.headers["X-Trace-ID"] == "trace-abc"
    entries = [json.loads(record.getMessage()) for record in caplog.records if record.name == "wms.request"]
    assert entries
    assert entries[-1]["trace_id"] == "trace-abc"
    assert entries[-1]["user_id"] == "clerk-9"
    assert entries[-1]["route"] == "/health"
