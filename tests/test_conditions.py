from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from payguard.conditions import enforce_response_conditions, enforce_status_conditions
from payguard.errors import ResponseConditionFailed
from payguard.policies import ResponseConditions
from payguard.reason_codes import RESPONSE_CONDITION_FAILED


def _json_response(body: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=body)


def test_no_conditions_is_a_noop() -> None:
    response = httpx.Response(500, content=b"not json")
    enforce_response_conditions(response, 0, None, now_ms=10_000)
    enforce_response_conditions(response, 0, ResponseConditions(), now_ms=10_000)


def test_rejects_non_2xx_when_required() -> None:
    response = _json_response({"ok": False}, status=500)
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(
            response, 1_000, ResponseConditions(require_http_2xx=True), now_ms=1_050
        )
    assert excinfo.value.code == RESPONSE_CONDITION_FAILED
    assert excinfo.value.details == {"status": 500, "latency_ms": 50}


@pytest.mark.parametrize("status", [200, 204, 299])
def test_accepts_2xx(status: int) -> None:
    response = httpx.Response(status)
    enforce_response_conditions(response, 0, ResponseConditions(require_http_2xx=True), now_ms=1)


def test_status_failure_never_reaches_json_check() -> None:
    response = httpx.Response(500, content=b"<html>oops</html>")
    conditions = ResponseConditions(require_http_2xx=True, required_json_fields=["result"])
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(response, 0, conditions, now_ms=1)
    assert "status" in excinfo.value.explanation
    assert "missing" not in excinfo.value.details


def test_latency_checked_before_status() -> None:
    response = _json_response({}, status=503)
    conditions = ResponseConditions(require_http_2xx=True, max_latency_ms=100)
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(response, 1_000, conditions, now_ms=1_101)
    assert excinfo.value.details == {"latency_ms": 101, "max_latency_ms": 100, "status": 503}


def test_latency_at_limit_passes() -> None:
    response = _json_response({})
    enforce_response_conditions(
        response, 1_000, ResponseConditions(max_latency_ms=100), now_ms=1_100
    )


def test_rejects_missing_required_field() -> None:
    response = _json_response({"ok": True})
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(
            response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
        )
    assert excinfo.value.details["missing"] == ["result"]


def test_null_field_is_treated_as_missing() -> None:
    response = _json_response({"ok": True, "result": None})
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(
            response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
        )
    assert excinfo.value.code == RESPONSE_CONDITION_FAILED


def test_present_field_passes() -> None:
    response = _json_response({"ok": True, "result": "42"})
    enforce_response_conditions(
        response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
    )


def test_falsy_values_are_not_missing() -> None:
    response = _json_response({"count": 0, "flag": False, "text": ""})
    enforce_response_conditions(
        response,
        0,
        ResponseConditions(required_json_fields=["count", "flag", "text"]),
        now_ms=5,
    )


def test_all_missing_fields_reported_at_once() -> None:
    response = _json_response({"a": 1, "b": None})
    conditions = ResponseConditions(required_json_fields=["a", "b", "c", "d"])
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(response, 0, conditions, now_ms=5)
    assert excinfo.value.details["missing"] == ["b", "c", "d"]


def test_non_object_body_misses_every_field() -> None:
    response = _json_response([{"result": 1}])
    conditions = ResponseConditions(required_json_fields=["result"])
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(response, 0, conditions, now_ms=5)
    assert excinfo.value.details["missing"] == ["result"]


def test_invalid_json_fails() -> None:
    response = httpx.Response(200, content=b"{not json")
    with pytest.raises(ResponseConditionFailed) as excinfo:
        enforce_response_conditions(
            response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
        )
    assert excinfo.value.explanation == "Response is not valid JSON."


def test_body_remains_readable_after_check() -> None:
    body = {"ok": True, "result": "42"}
    response = httpx.Response(200, json=body)
    enforce_response_conditions(
        response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
    )
    assert response.json() == body
    assert json.loads(response.text) == body


def test_streamed_body_is_read_and_cached() -> None:
    response = httpx.Response(200, stream=httpx.ByteStream(b'{"result": "ok"}'))
    enforce_response_conditions(
        response, 0, ResponseConditions(required_json_fields=["result"]), now_ms=5
    )
    assert response.json() == {"result": "ok"}


def test_status_checks_do_not_read_the_body() -> None:
    response = httpx.Response(503, stream=httpx.ByteStream(b'{"result": "ok"}'))
    conditions = ResponseConditions(require_http_2xx=True, required_json_fields=["result"])

    with pytest.raises(ResponseConditionFailed):
        enforce_status_conditions(response, 0, conditions, now_ms=5)

    assert not response.is_stream_consumed
    assert enforce_status_conditions(response, 0, ResponseConditions(), now_ms=5) == 5
