"""Audit sinks for guard decision records."""

from .console import ConsoleDecisionSink
from .jsonl import JsonlDecisionLogger

__all__ = ("ConsoleDecisionSink", "JsonlDecisionLogger")
