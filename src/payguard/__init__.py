"""payguard public API."""

from .async_guard import AsyncPaymentGuard
from .budgets import BudgetAdmission, RollingBudget, SpendEvent
from .conditions import enforce_response_conditions
from .errors import (
    AuditLogError,
    BudgetWindowExceeded,
    GuardError,
    NoAcceptableRequirements,
    PayGuardError,
    PaymentAborted,
    PerPaymentCapExceeded,
    PolicyInvalid,
    ResponseConditionFailed,
)
from .guard import CallContext, GuardHooks, PaymentGuard
from .policies import (
    BudgetWindowPolicy,
    GuardPolicy,
    ResponseConditions,
    load_policy,
    validate_policy,
)
from .protocols import (
    AbortSignal,
    AsyncDecisionSink,
    AsyncPaymentNegotiator,
    DecisionSink,
    NegotiationHooks,
    PaymentNegotiator,
)
from .requirements import RequirementEvaluation, evaluate_payment_requirements
from .types import (
    AllowDecision,
    DenyDecision,
    GuardDecision,
    PaymentRequirement,
    RequirementRejection,
    parse_decision,
)
from .units import parse_amount_base_units, to_base_units, to_display_units

__all__ = (
    # Guards
    "PaymentGuard",
    "AsyncPaymentGuard",
    "GuardHooks",
    "CallContext",
    # Policy
    "GuardPolicy",
    "BudgetWindowPolicy",
    "ResponseConditions",
    "validate_policy",
    "load_policy",
    # Components
    "evaluate_payment_requirements",
    "RequirementEvaluation",
    "RollingBudget",
    "BudgetAdmission",
    "SpendEvent",
    "enforce_response_conditions",
    # Units
    "to_base_units",
    "to_display_units",
    "parse_amount_base_units",
    # Types
    "PaymentRequirement",
    "RequirementRejection",
    "AllowDecision",
    "DenyDecision",
    "GuardDecision",
    "parse_decision",
    # Protocols
    "AbortSignal",
    "NegotiationHooks",
    "PaymentNegotiator",
    "AsyncPaymentNegotiator",
    "DecisionSink",
    "AsyncDecisionSink",
    # Errors
    "PayGuardError",
    "GuardError",
    "PolicyInvalid",
    "PerPaymentCapExceeded",
    "BudgetWindowExceeded",
    "NoAcceptableRequirements",
    "ResponseConditionFailed",
    "PaymentAborted",
    "AuditLogError",
)
