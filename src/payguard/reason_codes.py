"""Stable machine-readable codes carried by guard errors and deny records."""

from __future__ import annotations

from typing import Literal

POLICY_INVALID = "POLICY_INVALID"
PAYMENT_BLOCKED_PER_PAYMENT_CAP = "PAYMENT_BLOCKED_PER_PAYMENT_CAP"
PAYMENT_BLOCKED_BUDGET_WINDOW = "PAYMENT_BLOCKED_BUDGET_WINDOW"
PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS = "PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS"
RESPONSE_CONDITION_FAILED = "RESPONSE_CONDITION_FAILED"

# Deny records only: the negotiator failed for a reason the guard did not cause.
PAYMENT_NEGOTIATION_FAILED = "PAYMENT_NEGOTIATION_FAILED"

# Per-requirement rejection reasons.
ABOVE_PER_PAYMENT_CAP = "ABOVE_PER_PAYMENT_CAP"
AMOUNT_UNPARSEABLE = "AMOUNT_UNPARSEABLE"

GuardErrorCode = Literal[
    "POLICY_INVALID",
    "PAYMENT_BLOCKED_PER_PAYMENT_CAP",
    "PAYMENT_BLOCKED_BUDGET_WINDOW",
    "PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS",
    "RESPONSE_CONDITION_FAILED",
]

DenyCode = Literal[
    "POLICY_INVALID",
    "PAYMENT_BLOCKED_PER_PAYMENT_CAP",
    "PAYMENT_BLOCKED_BUDGET_WINDOW",
    "PAYMENT_BLOCKED_NO_ACCEPTABLE_REQUIREMENTS",
    "RESPONSE_CONDITION_FAILED",
    "PAYMENT_NEGOTIATION_FAILED",
]

RejectionReason = Literal["ABOVE_PER_PAYMENT_CAP", "AMOUNT_UNPARSEABLE"]
