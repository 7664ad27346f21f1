"""Async payment guard.

Same decisions as ``PaymentGuard``, driven by an ``AsyncPaymentNegotiator`` on
an ``httpx.AsyncClient``. Policy, evaluator and ledger work stays synchronous on
the event loop; only the negotiation round trip and the audit sink are awaited.

Each call gets its own ``CallContext``, so overlapping calls keep separate audit
snapshots. They still share one rolling budget, and an admit from one call is
not reserved against another until that call's ``after_sign`` records it.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import httpx

from .conditions import enforce_response_conditions, enforce_status_conditions
from .errors import GuardError, ResponseConditionFailed
from .guard import _GuardCore
from .policies import GuardPolicy
from .protocols import AsyncDecisionSink, AsyncPaymentNegotiator
from .types import AllowDecision, DenyDecision


class AsyncPaymentGuard(_GuardCore):
    """Guarded paid HTTP client (async).

    Example:
        async with AsyncPaymentGuard(negotiator=negotiator, policy=policy) as guard:
            response = await guard.fetch("https://api.example.com/v1/compute")

    Sync sinks can be wrapped with ``payguard.adapters.SyncDecisionSinkAdapter``.
    """

    def __init__(
        self,
        *,
        negotiator: AsyncPaymentNegotiator,
        policy: GuardPolicy | Mapping[str, Any],
        client: httpx.AsyncClient | None = None,
        audit_sink: AsyncDecisionSink | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        super().__init__(policy=policy, clock=clock)
        if negotiator is None:
            raise ValueError("negotiator is required")
        self.negotiator = negotiator
        self.audit_sink = audit_sink
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient()

    async def fetch(
        self,
        target: str | httpx.URL | httpx.Request,
        *,
        method: str | None = None,
        **request_kwargs: Any,
    ) -> httpx.Response:
        """Send a guarded request; return the response or raise ``GuardError``."""
        if isinstance(target, httpx.Request):
            request = target
        else:
            request = self.client.build_request(method or "GET", target, **request_kwargs)
        hooks = self._start_call(request)
        ctx = hooks.ctx

        try:
            response = await self.negotiator.send(self.client, request, hooks)
        except Exception as exc:
            await self._emit(self._deny_for_negotiation(ctx, exc))
            if ctx.block is None or ctx.block is exc:
                raise
            raise ctx.block from exc

        if ctx.block is not None:
            await response.aclose()
            await self._emit(self._deny_for_error(ctx, ctx.block))
            raise ctx.block

        now_ms = self._clock()
        conditions = self.policy.conditions
        try:
            if conditions is not None and conditions.required_json_fields:
                # latency and status first; the body is only read once they pass
                enforce_status_conditions(
                    response, ctx.started_at_ms, conditions, now_ms=now_ms
                )
                await self._read_body(response, ctx.started_at_ms, now_ms)
            enforce_response_conditions(response, ctx.started_at_ms, conditions, now_ms=now_ms)
        except GuardError as exc:
            await self._emit(self._deny_for_error(ctx, exc))
            raise

        await self._emit(self._allow(ctx, response, now_ms))
        return response

    @staticmethod
    async def _read_body(response: httpx.Response, started_at_ms: int, now_ms: int) -> None:
        try:
            await response.aread()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise ResponseConditionFailed(
                "Response body could not be read.",
                {"status": response.status_code, "latency_ms": now_ms - started_at_ms},
            ) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "AsyncPaymentGuard":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _emit(self, decision: AllowDecision | DenyDecision) -> None:
        self._log_decision(decision)
        if self.audit_sink is None:
            return
        try:
            await self.audit_sink.log(decision)
        except Exception:
            self._audit_failed(decision)
