"""Exception types for payguard."""

from __future__ import annotations

from typing import Any

from .reason_codes import (
    PAYMENT_BLOCKED_BUDGET_WINDOW,
    PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS,
    PAYMENT_BLOCKED_PER_PAYMENT_CAP,
    POLICY_INVALID,
    RESPONSE_CONDITION_FAILED,
)


class PayGuardError(Exception):
    """Base exception for all payguard errors."""


class GuardError(PayGuardError):
    """A blocking guard decision with a stable code and a human explanation.

    ``details`` is optional structured context for debugging and audit trails.
    """

    def __init__(self, code: str, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"{code}: {explanation}")
        self.code = code
        self.explanation = explanation
        self.details = details


class PolicyInvalid(GuardError):
    """Raised when a policy configuration is invalid (fatal to guard creation)."""

    def __init__(self, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(POLICY_INVALID, explanation, details)


class PerPaymentCapExceeded(GuardError):
    """Raised when the requirement selected for signing is above the per-payment cap."""

    def __init__(self, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(PAYMENT_BLOCKED_PER_PAYMENT_CAP, explanation, details)


class BudgetWindowExceeded(GuardError):
    """Raised when the rolling budget refuses a payment (always before signing)."""

    def __init__(self, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(PAYMENT_BLOCKED_BUDGET_WINDOW, explanation, details)


class NoAcceptableRequirements(GuardError):
    """Raised when filtering leaves no payment requirement to sign."""

    def __init__(self, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS, explanation, details)


class ResponseConditionFailed(GuardError):
    """Raised when a paid response fails status, latency or JSON field checks."""

    def __init__(self, explanation: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(RESPONSE_CONDITION_FAILED, explanation, details)


class PaymentAborted(PayGuardError):
    """Raised by a negotiator when ``before_sign`` returned an abort signal."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AuditLogError(PayGuardError):
    """Raised when an audit sink fails to write a decision record."""
