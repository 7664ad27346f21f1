"""JSONL decision logger."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from ..errors import AuditLogError
from ..types import AllowDecision, DenyDecision, parse_decision


class JsonlDecisionLogger:
    """Append-only JSONL decision logger."""

    def __init__(self, path: str | Path = "payguard_decisions.jsonl") -> None:
        self.path = Path(path)

    def log(self, decision: AllowDecision | DenyDecision) -> None:
        """Append a decision record to the JSONL file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(decision.to_json_line() + "\n")
        except Exception as e:
            raise AuditLogError(f"Failed to write decision log: {e}") from e


def read_decisions(path: str | Path) -> Iterator[AllowDecision | DenyDecision]:
    """Yield decision records from a JSONL file, skipping blank lines."""
    with Path(path).open("r", encoding="utf-8") as handle:
        for raw_line in handle:
            line = raw_line.strip()
            if not line:
                continue
            yield parse_decision(line)
