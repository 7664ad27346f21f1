"""Guard policy configuration.

Policies are intentionally small and explicit: easy to audit, deterministic to
enforce. Display amounts assume the 6-decimal unit of account in ``units``.
Every constraint lives on the models, so one ``ValidationError`` lists every
violation at once.
"""

from __future__ import annotations

from decimal import Decimal
import json
import os
from pathlib import Path
from typing import Annotated, Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import PolicyInvalid
from .units import to_base_units

POLICY_PATH_ENV = "PAYGUARD_POLICY_PATH"

PositiveAmount = Annotated[Decimal, Field(gt=0, allow_inf_nan=False)]
PositiveMillis = Annotated[int, Field(gt=0)]


class BudgetWindowPolicy(BaseModel):
    """Maximum total spend (display units) inside a rolling window."""

    model_config = ConfigDict(frozen=True)

    limit: PositiveAmount
    window_ms: PositiveMillis

    @property
    def limit_base_units(self) -> int:
        return to_base_units(self.limit)


class ResponseConditions(BaseModel):
    """Post-response quality checks.

    These cannot prevent the first payment to a bad server; they stop a caller
    from accepting junk and paying again on retry.
    """

    model_config = ConfigDict(frozen=True)

    require_http_2xx: bool = False
    max_latency_ms: PositiveMillis | None = None
    required_json_fields: list[str] | None = None


class GuardPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_per_payment: PositiveAmount | None = None
    budget: BudgetWindowPolicy | None = None
    conditions: ResponseConditions | None = None
    select_cheapest: bool = False

    @property
    def cap_base_units(self) -> int | None:
        if self.max_per_payment is None:
            return None
        return to_base_units(self.max_per_payment)


def _format_validation_errors(exc: ValidationError) -> list[str]:
    formatted = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "policy"
        formatted.append(f"{location}: {error['msg']}")
    return formatted


def validate_policy(policy: GuardPolicy | Mapping[str, Any]) -> GuardPolicy:
    """Validate a policy eagerly; raise ``PolicyInvalid`` listing every problem.

    A ``GuardPolicy`` instance was already validated when it was built.
    """
    if isinstance(policy, GuardPolicy):
        return policy
    try:
        return GuardPolicy.model_validate(policy)
    except ValidationError as exc:
        raise PolicyInvalid(
            "Invalid guard policy.", {"errors": _format_validation_errors(exc)}
        ) from exc


def load_policy(path: str | Path | None = None) -> GuardPolicy:
    """Load and validate a JSON policy file (default: ``$PAYGUARD_POLICY_PATH``)."""
    if path is None:
        path = os.environ.get(POLICY_PATH_ENV)
    if not path:
        raise PolicyInvalid(f"No policy path given and {POLICY_PATH_ENV} is not set.")
    policy_path = Path(path)
    try:
        data = json.loads(policy_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PolicyInvalid(
            f"Could not read policy file {policy_path}.", {"error": str(exc)}
        ) from exc
    return validate_policy(data)
