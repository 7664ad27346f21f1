"""Response conditions, evaluated after a paid response is received.

In a pay-to-access flow the client has usually paid before it sees the body,
so these checks cannot prevent the first payment to a bad server. They stop
retry-drain (paying again and again for junk) and silent acceptance of
malformed results.

Checks run cheapest first: latency, status, then the JSON body. All missing
JSON fields are reported in one failure.
"""

from __future__ import annotations

import json
import time

import httpx

from .errors import ResponseConditionFailed
from .policies import ResponseConditions


def _missing_fields(body: object, required: list[str]) -> list[str]:
    if not isinstance(body, dict):
        return list(required)
    return [name for name in required if body.get(name) is None]


def enforce_status_conditions(
    response: httpx.Response,
    started_at_ms: int,
    conditions: ResponseConditions | None,
    *,
    now_ms: int | None = None,
) -> int:
    """Run the latency and status checks only; return the measured latency.

    Never touches the body, so async callers can run it before ``aread()``.
    """
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    latency_ms = now_ms - started_at_ms
    if conditions is None:
        return latency_ms
    status = response.status_code

    if conditions.max_latency_ms is not None and latency_ms > conditions.max_latency_ms:
        raise ResponseConditionFailed(
            "Response exceeded max latency policy.",
            {
                "latency_ms": latency_ms,
                "max_latency_ms": conditions.max_latency_ms,
                "status": status,
            },
        )

    if conditions.require_http_2xx and not 200 <= status < 300:
        raise ResponseConditionFailed(
            "Response status failed policy (expected 2xx).",
            {"status": status, "latency_ms": latency_ms},
        )
    return latency_ms


def enforce_response_conditions(
    response: httpx.Response,
    started_at_ms: int,
    conditions: ResponseConditions | None,
    *,
    now_ms: int | None = None,
) -> None:
    """Raise ``ResponseConditionFailed`` on the first failing check.

    The body is read through ``response.read()``, which caches it, so the caller
    can still read it afterwards. Async callers must ``await response.aread()``
    before calling this.
    """
    if conditions is None:
        return

    latency_ms = enforce_status_conditions(
        response, started_at_ms, conditions, now_ms=now_ms
    )
    status = response.status_code

    required = conditions.required_json_fields
    if not required:
        return

    try:
        content = response.read()
    except (httpx.HTTPError, httpx.StreamError) as exc:
        raise ResponseConditionFailed(
            "Response body could not be read.",
            {"status": status, "latency_ms": latency_ms},
        ) from exc

    try:
        body = json.loads(content)
    except ValueError as exc:
        raise ResponseConditionFailed(
            "Response is not valid JSON.",
            {"status": status, "latency_ms": latency_ms},
        ) from exc

    missing = _missing_fields(body, required)
    if missing:
        raise ResponseConditionFailed(
            "Response is missing required JSON fields.",
            {"status": status, "latency_ms": latency_ms, "missing": missing},
        )
