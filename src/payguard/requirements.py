"""Payment requirement evaluation (pre-payment guardrails).

Resource servers may advertise several payment options; most negotiators sign
the first acceptable one. This module is a pure, deterministic transformation
over that list:

- drop options that violate policy (above the per-payment cap, unparseable)
- optionally order the rest cheapest-first so default selection does not overpay
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .policies import GuardPolicy
from .reason_codes import ABOVE_PER_PAYMENT_CAP, AMOUNT_UNPARSEABLE
from .types import PaymentRequirement, RequirementRejection
from .units import parse_amount_base_units


@dataclass(frozen=True)
class RequirementEvaluation:
    acceptable: list[PaymentRequirement]
    rejected: list[RequirementRejection]


def _reject(requirement: PaymentRequirement, reason: str) -> RequirementRejection:
    return RequirementRejection(requirement=requirement.snapshot(), reason=reason)


def evaluate_payment_requirements(
    policy: GuardPolicy, requirements: Sequence[PaymentRequirement]
) -> RequirementEvaluation:
    """Filter and order server-provided requirements against ``policy``.

    Unparseable amounts are always disqualifying. Under a cap they are reported
    as ``ABOVE_PER_PAYMENT_CAP``; without one, as ``AMOUNT_UNPARSEABLE``. Either
    way an untrusted amount can never be sorted ahead of a real one.
    """
    cap = policy.cap_base_units
    priced: list[tuple[int, PaymentRequirement]] = []
    rejected: list[RequirementRejection] = []

    for requirement in requirements:
        amount = parse_amount_base_units(requirement)
        if cap is not None and (amount is None or amount > cap):
            rejected.append(_reject(requirement, ABOVE_PER_PAYMENT_CAP))
            continue
        if amount is None:
            rejected.append(_reject(requirement, AMOUNT_UNPARSEABLE))
            continue
        priced.append((amount, requirement))

    if policy.select_cheapest:
        # sorted() is stable: equal amounts keep their advertised order
        priced = sorted(priced, key=lambda item: item[0])

    return RequirementEvaluation(
        acceptable=[requirement for _, requirement in priced],
        rejected=rejected,
    )
