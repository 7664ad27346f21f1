"""Adapters between sync and async collaborators."""

from .sync_to_async import SyncDecisionSinkAdapter

__all__ = ("SyncDecisionSinkAdapter",)
