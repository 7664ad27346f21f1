"""Terminal decision sink using rich."""

from __future__ import annotations

from typing import assert_never

from rich.console import Console
from rich.markup import escape

from ..types import AllowDecision, DenyDecision
from ..units import parse_amount, to_display_units


def _describe_amount(amount: str | None) -> str:
    base = parse_amount(amount)
    if base is None:
        return escape(repr(amount))
    return f"{to_display_units(base)} ({base} base units)"


class ConsoleDecisionSink:
    """Prints one line per decision, plus the deny details when present."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def log(self, decision: AllowDecision | DenyDecision) -> None:
        target = escape(f"{decision.request.method or '-'} {decision.request.url or '-'}")
        selected = decision.payment.selected if decision.payment else None
        paid = f" paid {_describe_amount(selected.amount)}" if selected else ""

        if isinstance(decision, AllowDecision):
            response = decision.response
            outcome = f" -> {response.status} in {response.latency_ms}ms" if response else ""
            self.console.print(f"[bold green]ALLOW[/] {target}{paid}{outcome}")
        elif isinstance(decision, DenyDecision):
            self.console.print(
                f"[bold red]DENY[/] {target} [yellow]{decision.code}[/]: "
                f"{escape(decision.explanation)}"
            )
            if decision.details:
                self.console.print(decision.details)
        else:
            assert_never(decision)
