"""Protocol definitions for the guard's collaborators.

The guard never talks to a concrete payment protocol client. A negotiator
drives the 402 round trip (parsing offers, signing, retrying with the payment
header) and calls back into ``NegotiationHooks`` at three points:

- ``filter_requirements`` once the server has disclosed its payment options
- ``before_sign`` with the single requirement chosen for signing
- ``after_sign`` once the payment payload has been built

Hooks are synchronous; only the negotiator's own I/O may block or suspend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

import httpx

from .types import AllowDecision, DenyDecision, PaymentRequirement


@dataclass(frozen=True)
class AbortSignal:
    """Returned by ``before_sign`` to stop a payment before it is signed."""

    reason: str


@runtime_checkable
class NegotiationHooks(Protocol):
    def filter_requirements(
        self, version: int, requirements: Sequence[PaymentRequirement]
    ) -> list[PaymentRequirement]:
        """Return the acceptable requirements in preference order. Raising stops negotiation."""
        ...

    def before_sign(self, requirement: PaymentRequirement) -> AbortSignal | None:
        """Return an ``AbortSignal`` to refuse signing; ``None`` to proceed."""
        ...

    def after_sign(self, requirement: PaymentRequirement) -> None:
        """Account for a payment whose payload has been constructed."""
        ...


@runtime_checkable
class PaymentNegotiator(Protocol):
    """Sync payment negotiation collaborator.

    Implementations must raise ``PaymentAborted`` (and must not sign) when
    ``before_sign`` returns an abort signal.
    """

    def send(
        self, client: httpx.Client, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        ...


@runtime_checkable
class AsyncPaymentNegotiator(Protocol):
    async def send(
        self, client: httpx.AsyncClient, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        ...


@runtime_checkable
class DecisionSink(Protocol):
    """Receives exactly one decision record per guarded call."""

    def log(self, decision: AllowDecision | DenyDecision) -> None:
        ...


@runtime_checkable
class AsyncDecisionSink(Protocol):
    async def log(self, decision: AllowDecision | DenyDecision) -> None:
        ...
