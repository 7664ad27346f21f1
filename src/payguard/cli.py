"""Command-line interface for payguard."""

from __future__ import annotations

import argparse
from collections import Counter
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from payguard.errors import PolicyInvalid
from payguard.loggers.jsonl import read_decisions
from payguard.policies import POLICY_PATH_ENV, GuardPolicy, load_policy
from payguard.requirements import evaluate_payment_requirements
from payguard.types import DenyDecision, PaymentRequirement


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="payguard")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="validate a JSON policy file")
    validate.add_argument(
        "policy_path",
        nargs="?",
        type=Path,
        help=f"policy file (default: ${POLICY_PATH_ENV})",
    )

    evaluate = sub.add_parser("evaluate", help="filter payment requirements against a policy")
    evaluate.add_argument("policy_path", type=Path)
    evaluate.add_argument(
        "requirements_path",
        type=Path,
        help="JSON list of requirements, or a 402 body with an 'accepts' list",
    )

    summary = sub.add_parser("summary", help="summarize a JSONL decision log")
    summary.add_argument("decisions_path", type=Path)
    summary.add_argument("--format", choices=("json", "table"), default="json")

    return parser.parse_args(argv)


def _print_policy_errors(exc: PolicyInvalid) -> None:
    print(f"invalid policy: {exc.explanation}", file=sys.stderr)
    details = exc.details or {}
    for error in details.get("errors", []):
        print(f"  - {error}", file=sys.stderr)
    if "error" in details:
        print(f"  - {details['error']}", file=sys.stderr)


def _describe_policy(policy: GuardPolicy) -> dict[str, Any]:
    described: dict[str, Any] = {
        "max_per_payment_base_units": policy.cap_base_units,
        "select_cheapest": policy.select_cheapest,
    }
    if policy.budget is not None:
        described["budget"] = {
            "limit_base_units": policy.budget.limit_base_units,
            "window_ms": policy.budget.window_ms,
        }
    if policy.conditions is not None:
        described["conditions"] = policy.conditions.model_dump(mode="json")
    return described


def _cmd_validate(policy_path: Path | None) -> int:
    try:
        policy = load_policy(policy_path)
    except PolicyInvalid as exc:
        _print_policy_errors(exc)
        return 2
    print(json.dumps(_describe_policy(policy), ensure_ascii=False))
    return 0


def _load_requirements(path: Path) -> list[PaymentRequirement]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("accepts", [])
    if not isinstance(data, list):
        raise ValueError("requirements must be a JSON list or an object with 'accepts'")
    return [PaymentRequirement.model_validate(item) for item in data]


def _cmd_evaluate(policy_path: Path, requirements_path: Path) -> int:
    try:
        policy = load_policy(policy_path)
    except PolicyInvalid as exc:
        _print_policy_errors(exc)
        return 2
    try:
        requirements = _load_requirements(requirements_path)
    except (OSError, ValueError) as exc:
        # pydantic's ValidationError is a ValueError
        print(f"evaluate failed: {exc}", file=sys.stderr)
        return 1
    evaluation = evaluate_payment_requirements(policy, requirements)
    result = {
        "acceptable": [
            r.model_dump(mode="json", by_alias=True, exclude_none=True)
            for r in evaluation.acceptable
        ],
        "rejected": [r.model_dump(mode="json") for r in evaluation.rejected],
    }
    print(json.dumps(result, ensure_ascii=False))
    return 0 if evaluation.acceptable else 1


def _cmd_summary(decisions_path: Path, output_format: str) -> int:
    if not decisions_path.exists():
        print("decision log not found", file=sys.stderr)
        return 1
    outcomes: Counter[str] = Counter()
    codes: Counter[str] = Counter()
    try:
        for decision in read_decisions(decisions_path):
            outcomes[decision.decision] += 1
            if isinstance(decision, DenyDecision):
                codes[decision.code] += 1
    except (OSError, ValidationError) as exc:
        print(f"summary failed: {exc}", file=sys.stderr)
        return 1

    if output_format == "table":
        table = Table(title=str(decisions_path))
        table.add_column("decision")
        table.add_column("code")
        table.add_column("count", justify="right")
        table.add_row("allow", "", str(outcomes["allow"]))
        for code, count in sorted(codes.items()):
            table.add_row("deny", code, str(count))
        Console().print(table)
        return 0

    summary = {
        "total": sum(outcomes.values()),
        "allow": outcomes["allow"],
        "deny": outcomes["deny"],
        "deny_by_code": dict(sorted(codes.items())),
    }
    print(json.dumps(summary, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    if args.command == "validate":
        return _cmd_validate(args.policy_path)
    if args.command == "evaluate":
        return _cmd_evaluate(args.policy_path, args.requirements_path)
    if args.command == "summary":
        return _cmd_summary(args.decisions_path, args.format)
    print("unknown command", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
