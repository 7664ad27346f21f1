"""Rolling-window spend accounting with an admission check.

The window slides continuously from "now" rather than resetting on fixed
epochs: with epochs a caller could spend the full limit at the end of one epoch
and again at the start of the next.

Limitations: the ledger is in-memory and per-process. It is not coordinated
across processes or threads sharing one agent identity, and it does not
deduplicate retried payments by idempotency key, so a caller that retries after
``record`` but before settlement is confirmed can miscount. Time passed in is
assumed to be non-decreasing across calls.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SpendEvent:
    ts: int
    amount: int


@dataclass(frozen=True)
class BudgetAdmission:
    admitted: bool
    total: int


class RollingBudget:
    """In-memory rolling budget in base units.

    ``now`` is always supplied by the caller (or by the injected clock), which
    keeps the ledger testable with synthetic time.
    """

    def __init__(
        self,
        window_ms: int,
        limit: int,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if limit < 0:
            raise ValueError("limit must be non-negative")
        self.window_ms = window_ms
        self.limit = limit
        self._clock = clock or _now_ms
        self._events: list[SpendEvent] = []

    @property
    def events(self) -> tuple[SpendEvent, ...]:
        return tuple(self._events)

    def query(self, now: int | None = None) -> int:
        """Total spend inside ``[now - window_ms, now]``."""
        now = self._clock() if now is None else now
        self._prune(now)
        return sum(event.amount for event in self._events if event.ts <= now)

    def admit(self, amount: int, now: int | None = None) -> BudgetAdmission:
        """Check whether ``amount`` fits; never records anything."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        now = self._clock() if now is None else now
        total = self.query(now)
        return BudgetAdmission(admitted=total + amount <= self.limit, total=total)

    def record(self, amount: int, now: int | None = None) -> None:
        """Append a spend event. Call only for a payment admitted for signing."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        now = self._clock() if now is None else now
        self._prune(now)
        self._events.append(SpendEvent(ts=now, amount=amount))

    def _prune(self, now: int) -> None:
        cutoff = now - self.window_ms
        self._events = [event for event in self._events if event.ts >= cutoff]
