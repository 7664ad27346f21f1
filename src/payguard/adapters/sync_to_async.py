"""Sync-to-async adapters for payguard protocols.

Adapters are explicit: users construct them, the guard never wraps anything
implicitly. Blocking sink I/O runs in a worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..types import AllowDecision, DenyDecision


@dataclass(frozen=True, slots=True)
class SyncDecisionSinkAdapter:
    """Wraps a sync ``DecisionSink`` to provide the ``AsyncDecisionSink`` interface.

    Usage:
        sink = SyncDecisionSinkAdapter(JsonlDecisionLogger("decisions.jsonl"))
        guard = AsyncPaymentGuard(negotiator=negotiator, policy=policy, audit_sink=sink)
    """

    _sink: Any  # DecisionSink protocol

    async def log(self, decision: AllowDecision | DenyDecision) -> None:
        """Log in a worker thread (file I/O is blocking)."""
        await asyncio.to_thread(self._sink.log, decision)
