"""Typed models for payguard."""

from __future__ import annotations

from datetime import datetime
import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .reason_codes import DenyCode, RejectionReason


class PaymentRequirement(BaseModel):
    """One server-advertised way to pay for a request.

    ``amount`` is the base-unit integer encoded as a numeral string. It is kept
    untyped so that a malformed server value still produces a requirement the
    evaluator can reject, instead of failing negotiation with a parse error.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    scheme: str
    network: str
    amount: Any = None
    asset: str | None = None
    pay_to: str | None = Field(default=None, alias="payTo")
    max_timeout_seconds: int | None = Field(default=None, alias="maxTimeoutSeconds")
    extra: dict[str, Any] = Field(default_factory=dict)

    def snapshot(self) -> "RequirementSnapshot":
        """Minimal copy safe to emit in decision records."""
        return RequirementSnapshot(
            scheme=self.scheme,
            network=self.network,
            amount=None if self.amount is None else str(self.amount),
            asset=self.asset,
            pay_to=self.pay_to,
        )


class RequirementSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheme: str
    network: str
    amount: str | None = None
    asset: str | None = None
    pay_to: str | None = None


class RequirementRejection(BaseModel):
    """A requirement dropped by the evaluator, with the reason it was dropped."""

    model_config = ConfigDict(frozen=True)

    requirement: RequirementSnapshot
    reason: RejectionReason


class BudgetSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_ms: int
    limit_base_units: int
    total_before_base_units: int | None = None
    total_after_base_units: int | None = None


class PaymentAudit(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected: RequirementSnapshot | None = None
    rejected: list[RequirementRejection] | None = None
    budget: BudgetSnapshot | None = None


class RequestInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str | None = None
    method: str | None = None


class ResponseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: int
    latency_ms: int


class _DecisionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    at: datetime
    request: RequestInfo = Field(default_factory=RequestInfo)
    payment: PaymentAudit | None = None

    @field_validator("at")
    @classmethod
    def _at_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("at must be timezone-aware")
        return value

    def to_json_line(self) -> str:
        """Render the record as a single JSON line."""
        return json.dumps(self.model_dump(mode="json", exclude_none=True))


class AllowDecision(_DecisionBase):
    """The guarded call paid (or did not need to) and the response was accepted."""

    decision: Literal["allow"] = "allow"
    response: ResponseInfo | None = None


class DenyDecision(_DecisionBase):
    """The guarded call was blocked; ``code`` says by what."""

    decision: Literal["deny"] = "deny"
    code: DenyCode
    explanation: str
    details: dict[str, Any] | None = None

    @field_validator("explanation")
    @classmethod
    def _explanation_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("explanation must be a non-empty string")
        return value


GuardDecision = Annotated[Union[AllowDecision, DenyDecision], Field(discriminator="decision")]

DECISION_ADAPTER: TypeAdapter[AllowDecision | DenyDecision] = TypeAdapter(GuardDecision)


def parse_decision(line: str) -> AllowDecision | DenyDecision:
    """Parse one JSON line written by a decision logger."""
    return DECISION_ADAPTER.validate_json(line)
