from __future__ import annotations

from datetime import datetime, timezone
import json

from payguard.cli import main
from payguard.loggers import JsonlDecisionLogger
from payguard.policies import POLICY_PATH_ENV
from payguard.types import AllowDecision, DenyDecision

from conftest import make_requirement


def _write_json(path, data) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_validate_prints_base_unit_policy(tmp_path, capsys) -> None:
    policy = _write_json(
        tmp_path / "policy.json",
        {"max_per_payment": "0.10", "budget": {"limit": 1, "window_ms": 60_000}},
    )

    assert main(["validate", policy]) == 0

    described = json.loads(capsys.readouterr().out)
    assert described["max_per_payment_base_units"] == 100_000
    assert described["budget"] == {"limit_base_units": 1_000_000, "window_ms": 60_000}


def test_validate_reads_policy_path_from_env(tmp_path, capsys, monkeypatch) -> None:
    policy = _write_json(tmp_path / "policy.json", {"select_cheapest": True})
    monkeypatch.setenv(POLICY_PATH_ENV, policy)

    assert main(["validate"]) == 0
    assert json.loads(capsys.readouterr().out)["select_cheapest"] is True


def test_validate_reports_invalid_policy(tmp_path, capsys) -> None:
    policy = _write_json(tmp_path / "policy.json", {"max_per_payment": 0})

    assert main(["validate", policy]) == 2

    err = capsys.readouterr().err
    assert "invalid policy" in err
    assert "max_per_payment: Input should be greater than 0" in err


def test_validate_reports_missing_file(tmp_path, capsys) -> None:
    assert main(["validate", str(tmp_path / "nope.json")]) == 2
    assert "invalid policy" in capsys.readouterr().err


def test_evaluate_filters_and_orders(tmp_path, capsys) -> None:
    policy = _write_json(
        tmp_path / "policy.json", {"max_per_payment": "0.10", "select_cheapest": True}
    )
    offer = _write_json(
        tmp_path / "offer.json",
        {
            "x402Version": 2,
            "accepts": [
                make_requirement("5000000"),
                make_requirement("50000"),
                make_requirement("20000"),
            ],
        },
    )

    assert main(["evaluate", policy, offer]) == 0

    result = json.loads(capsys.readouterr().out)
    assert [r["amount"] for r in result["acceptable"]] == ["20000", "50000"]
    assert result["acceptable"][0]["payTo"] == "0xdeadbeef"
    assert result["rejected"] == [
        {
            "requirement": {
                "scheme": "exact",
                "network": "eip155:84532",
                "amount": "5000000",
                "asset": "USDC",
                "pay_to": "0xdeadbeef",
            },
            "reason": "ABOVE_PER_PAYMENT_CAP",
        }
    ]


def test_evaluate_exits_nonzero_when_nothing_acceptable(tmp_path, capsys) -> None:
    policy = _write_json(tmp_path / "policy.json", {"max_per_payment": "0.000001"})
    offer = _write_json(tmp_path / "offer.json", [make_requirement("2")])

    assert main(["evaluate", policy, offer]) == 1
    assert json.loads(capsys.readouterr().out)["acceptable"] == []


def test_evaluate_reports_unreadable_requirements(tmp_path, capsys) -> None:
    policy = _write_json(tmp_path / "policy.json", {})
    offer = tmp_path / "offer.json"
    offer.write_text("{broken", encoding="utf-8")

    assert main(["evaluate", policy, str(offer)]) == 1
    assert "evaluate failed" in capsys.readouterr().err


def _write_log(path) -> str:
    logger = JsonlDecisionLogger(path)
    now = datetime.now(timezone.utc)
    logger.log(AllowDecision(at=now))
    logger.log(AllowDecision(at=now))
    logger.log(
        DenyDecision(
            at=now, code="PAYMENT_BLOCKED_BUDGET_WINDOW", explanation="Blocked by budget."
        )
    )
    logger.log(
        DenyDecision(at=now, code="RESPONSE_CONDITION_FAILED", explanation="Bad status.")
    )
    return str(path)


def test_summary_json(tmp_path, capsys) -> None:
    log = _write_log(tmp_path / "decisions.jsonl")

    assert main(["summary", log]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary == {
        "total": 4,
        "allow": 2,
        "deny": 2,
        "deny_by_code": {
            "PAYMENT_BLOCKED_BUDGET_WINDOW": 1,
            "RESPONSE_CONDITION_FAILED": 1,
        },
    }


def test_summary_table(tmp_path, capsys) -> None:
    log = _write_log(tmp_path / "decisions.jsonl")

    assert main(["summary", log, "--format", "table"]) == 0

    out = capsys.readouterr().out
    assert "allow" in out
    assert "PAYMENT_BLOCKED_BUDGET_WINDOW" in out


def test_summary_missing_log(tmp_path, capsys) -> None:
    assert main(["summary", str(tmp_path / "missing.jsonl")]) == 1
    assert "not found" in capsys.readouterr().err


def test_summary_rejects_corrupt_log(tmp_path, capsys) -> None:
    log = tmp_path / "decisions.jsonl"
    log.write_text('{"decision": "allow"}\n', encoding="utf-8")

    assert main(["summary", str(log)]) == 1
    assert "summary failed" in capsys.readouterr().err
