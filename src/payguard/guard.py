"""Payment guard: policy enforcement around a payment negotiation round trip.

The negotiator decides *how* a payment is negotiated, signed and settled; the
guard decides *whether* it may happen and whether its result is accepted.

Enforcement points:

- before payment (preferred): filter offered requirements, enforce the
  per-payment cap and the rolling budget, abort before any signature exists
- after the response: status, latency and JSON field conditions, which stop
  "pay, get junk, retry, pay again" loops

Every guarded call ends in exactly one allow or deny record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import time
from typing import Any, Callable, Mapping, Sequence

import httpx

from .budgets import RollingBudget
from .conditions import enforce_response_conditions
from .errors import (
    BudgetWindowExceeded,
    GuardError,
    NoAcceptableRequirements,
    PerPaymentCapExceeded,
)
from .policies import GuardPolicy, validate_policy
from .protocols import AbortSignal, DecisionSink, PaymentNegotiator
from .reason_codes import PAYMENT_NEGOTIATION_FAILED
from .redaction import redact_details, redact_url
from .requirements import evaluate_payment_requirements
from .types import (
    AllowDecision,
    BudgetSnapshot,
    DenyDecision,
    PaymentAudit,
    PaymentRequirement,
    RequestInfo,
    RequirementRejection,
    ResponseInfo,
)
from .units import parse_amount_base_units

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CallContext:
    """Per-call audit state, threaded through the hooks of a single guarded call."""

    url: str | None
    method: str | None
    started_at_ms: int
    selected: PaymentRequirement | None = None
    rejected: list[RequirementRejection] = field(default_factory=list)
    admitted_amount: int | None = None
    budget_before: int | None = None
    budget_after: int | None = None
    block: GuardError | None = None


class GuardHooks:
    """``NegotiationHooks`` bound to one guarded call."""

    def __init__(
        self,
        *,
        policy: GuardPolicy,
        budget: RollingBudget | None,
        clock: Callable[[], int],
        ctx: CallContext,
    ) -> None:
        self._policy = policy
        self._budget = budget
        self._clock = clock
        self.ctx = ctx

    def filter_requirements(
        self, version: int, requirements: Sequence[PaymentRequirement]
    ) -> list[PaymentRequirement]:
        evaluation = evaluate_payment_requirements(self._policy, requirements)
        self.ctx.rejected = list(evaluation.rejected)
        if not evaluation.acceptable:
            raise self._block(
                NoAcceptableRequirements(
                    "No acceptable payment requirements remain after applying guard policy.",
                    {
                        "protocol_version": version,
                        "available": [
                            r.snapshot().model_dump(mode="json") for r in requirements
                        ],
                    },
                )
            )
        return evaluation.acceptable

    def before_sign(self, requirement: PaymentRequirement) -> AbortSignal | None:
        self.ctx.selected = requirement
        amount = parse_amount_base_units(requirement)

        cap = self._policy.cap_base_units
        if cap is not None and (amount is None or amount > cap):
            error = self._block(
                PerPaymentCapExceeded(
                    "Selected payment requirement is above the per-payment cap.",
                    {"amount": requirement.snapshot().amount, "cap_base_units": cap},
                )
            )
            return AbortSignal(error.explanation)

        if self._budget is None:
            self.ctx.admitted_amount = amount
            return None

        if amount is None:
            error = self._block(
                BudgetWindowExceeded(
                    "Selected payment amount cannot be parsed, so it cannot be budgeted.",
                    {"amount": requirement.snapshot().amount},
                )
            )
            return AbortSignal(error.explanation)

        now = self._clock()
        admission = self._budget.admit(amount, now)
        self.ctx.budget_before = admission.total
        if not admission.admitted:
            error = self._block(
                BudgetWindowExceeded(
                    f"Blocked by budget window policy: total={admission.total} + "
                    f"next={amount} exceeds limit.",
                    {
                        "total_base_units": admission.total,
                        "amount_base_units": amount,
                        "limit_base_units": self._budget.limit,
                        "window_ms": self._budget.window_ms,
                    },
                )
            )
            return AbortSignal(error.explanation)

        self.ctx.admitted_amount = amount
        return None

    def after_sign(self, requirement: PaymentRequirement) -> None:
        if self._budget is None or self.ctx.admitted_amount is None:
            return
        if requirement != self.ctx.selected:
            _logger.warning("after_sign called for a requirement that was not admitted")
            return
        now = self._clock()
        self._budget.record(self.ctx.admitted_amount, now)
        self.ctx.budget_after = self._budget.query(now)

    def _block(self, error: GuardError) -> GuardError:
        _logger.debug("payment blocked: %s", error)
        self.ctx.block = error
        return error


class _GuardCore:
    """Policy, ledger and decision-record plumbing shared by sync and async guards."""

    def __init__(
        self,
        *,
        policy: GuardPolicy | Mapping[str, Any],
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.policy = validate_policy(policy)
        self._clock = clock or _now_ms
        self.budget: RollingBudget | None = None
        if self.policy.budget is not None:
            self.budget = RollingBudget(
                self.policy.budget.window_ms,
                self.policy.budget.limit_base_units,
                clock=self._clock,
            )
        self._audit_error_count = 0

    @property
    def audit_error_count(self) -> int:
        """Number of audit sink failures swallowed since guard creation."""
        return self._audit_error_count

    def _start_call(self, request: httpx.Request) -> GuardHooks:
        ctx = CallContext(
            url=str(request.url),
            method=request.method,
            started_at_ms=self._clock(),
        )
        return GuardHooks(policy=self.policy, budget=self.budget, clock=self._clock, ctx=ctx)

    def _payment_audit(self, ctx: CallContext) -> PaymentAudit:
        budget = None
        if self.budget is not None:
            budget = BudgetSnapshot(
                window_ms=self.budget.window_ms,
                limit_base_units=self.budget.limit,
                total_before_base_units=ctx.budget_before,
                total_after_base_units=ctx.budget_after,
            )
        return PaymentAudit(
            selected=ctx.selected.snapshot() if ctx.selected is not None else None,
            rejected=list(ctx.rejected) or None,
            budget=budget,
        )

    def _request_info(self, ctx: CallContext) -> RequestInfo:
        return RequestInfo(url=redact_url(ctx.url), method=ctx.method)

    def _deny(
        self,
        ctx: CallContext,
        *,
        code: str,
        explanation: str,
        details: dict[str, Any] | None,
    ) -> DenyDecision:
        return DenyDecision(
            at=datetime.now(timezone.utc),
            request=self._request_info(ctx),
            code=code,
            explanation=explanation or code,
            details=redact_details(details),
            payment=self._payment_audit(ctx),
        )

    def _deny_for_error(self, ctx: CallContext, error: GuardError) -> DenyDecision:
        return self._deny(
            ctx, code=error.code, explanation=error.explanation, details=error.details
        )

    def _deny_for_negotiation(self, ctx: CallContext, exc: BaseException) -> DenyDecision:
        if ctx.block is not None:
            return self._deny_for_error(ctx, ctx.block)
        return self._deny(
            ctx,
            code=PAYMENT_NEGOTIATION_FAILED,
            explanation=str(exc) or type(exc).__name__,
            details={"error_type": type(exc).__name__},
        )

    def _allow(self, ctx: CallContext, response: httpx.Response, now_ms: int) -> AllowDecision:
        return AllowDecision(
            at=datetime.now(timezone.utc),
            request=self._request_info(ctx),
            payment=self._payment_audit(ctx),
            response=ResponseInfo(
                status=response.status_code, latency_ms=now_ms - ctx.started_at_ms
            ),
        )

    def _audit_failed(self, decision: AllowDecision | DenyDecision) -> None:
        self._audit_error_count += 1
        _logger.warning("audit sink failed for %s decision", decision.decision, exc_info=True)

    @staticmethod
    def _log_decision(decision: AllowDecision | DenyDecision) -> None:
        if isinstance(decision, DenyDecision):
            _logger.debug("deny %s: %s", decision.code, decision.explanation)
        else:
            _logger.debug("allow %s %s", decision.request.method, decision.request.url)


class PaymentGuard(_GuardCore):
    """Guarded paid HTTP client (sync).

    Example:
        guard = PaymentGuard(
            negotiator=my_negotiator,
            policy={"max_per_payment": "0.10", "select_cheapest": True},
            audit_sink=JsonlDecisionLogger("decisions.jsonl"),
        )
        response = guard.fetch("https://api.example.com/v1/compute", method="POST", json={...})
    """

    def __init__(
        self,
        *,
        negotiator: PaymentNegotiator,
        policy: GuardPolicy | Mapping[str, Any],
        client: httpx.Client | None = None,
        audit_sink: DecisionSink | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        super().__init__(policy=policy, clock=clock)
        if negotiator is None:
            raise ValueError("negotiator is required")
        self.negotiator = negotiator
        self.audit_sink = audit_sink
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client()

    def fetch(
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
            response = self.negotiator.send(self.client, request, hooks)
        except Exception as exc:
            self._emit(self._deny_for_negotiation(ctx, exc))
            if ctx.block is None or ctx.block is exc:
                raise
            raise ctx.block from exc

        if ctx.block is not None:
            # The negotiator ignored an abort; the response is not accepted.
            response.close()
            self._emit(self._deny_for_error(ctx, ctx.block))
            raise ctx.block

        now_ms = self._clock()
        try:
            enforce_response_conditions(
                response, ctx.started_at_ms, self.policy.conditions, now_ms=now_ms
            )
        except GuardError as exc:
            self._emit(self._deny_for_error(ctx, exc))
            raise

        self._emit(self._allow(ctx, response, now_ms))
        return response

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "PaymentGuard":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _emit(self, decision: AllowDecision | DenyDecision) -> None:
        self._log_decision(decision)
        if self.audit_sink is None:
            return
        try:
            self.audit_sink.log(decision)
        except Exception:
            # sink failures are counted, never raised
            self._audit_failed(decision)
