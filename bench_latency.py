"""
Simple latency microbenchmark for payguard.

Measures:
- requirement evaluation (cap + cheapest ordering)
- rolling budget admit/record
- full guarded fetch over an in-process transport, unguarded vs guarded
"""

from __future__ import annotations

import time
from statistics import mean, median, quantiles

import httpx

from payguard import (
    GuardPolicy,
    NegotiationHooks,
    PaymentAborted,
    PaymentGuard,
    PaymentRequirement,
    RollingBudget,
    evaluate_payment_requirements,
)

ROUNDS = 100  # adjust for tighter p95s; increase for more stable p95

ACCEPTS = [
    {"scheme": "exact", "network": "eip155:84532", "asset": "USDC", "amount": amount}
    for amount in ("5000000", "50000", "20000", "75000")
]
REQUIREMENTS = [PaymentRequirement.model_validate(a) for a in ACCEPTS]


def handler(request: httpx.Request) -> httpx.Response:
    if "X-PAYMENT" not in request.headers:
        return httpx.Response(402, json={"x402Version": 2, "accepts": ACCEPTS})
    return httpx.Response(200, json={"result": "42"})


class BenchNegotiator:
    def send(
        self, client: httpx.Client, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        response = client.send(request)
        if response.status_code != 402:
            return response
        selected = hooks.filter_requirements(2, REQUIREMENTS)[0]
        abort = hooks.before_sign(selected)
        if abort is not None:
            raise PaymentAborted(abort.reason)
        hooks.after_sign(selected)
        paid = httpx.Request(request.method, request.url, headers={"X-PAYMENT": "bench"})
        return client.send(paid)


def bench(label: str, call) -> None:
    times = []
    for _ in range(ROUNDS):
        t0 = time.perf_counter()
        call()
        t1 = time.perf_counter()
        times.append((t1 - t0) * 1_000_000)  # microseconds
    p50 = median(times)
    p95 = quantiles(times, n=100)[94]
    print(f"{label:28s} avg {mean(times):8.2f} us | p50 {p50:8.2f} us | p95 {p95:8.2f} us")


def main() -> None:
    policy = GuardPolicy.model_validate(
        {
            "max_per_payment": "0.10",
            "select_cheapest": True,
            # large enough that no round is blocked
            "budget": {"limit": "1000000", "window_ms": 60_000},
            "conditions": {"require_http_2xx": True, "required_json_fields": ["result"]},
        }
    )
    budget = RollingBudget(60_000, 10**12)
    client = httpx.Client(transport=httpx.MockTransport(handler))
    guard = PaymentGuard(negotiator=BenchNegotiator(), policy=policy, client=client)

    def unguarded() -> None:
        client.get("https://api.example.com/v1")
        client.get("https://api.example.com/v1", headers={"X-PAYMENT": "bench"})

    def admit_and_record() -> None:
        if budget.admit(20_000).admitted:
            budget.record(20_000)

    bench("evaluate requirements", lambda: evaluate_payment_requirements(policy, REQUIREMENTS))
    bench("budget admit+record", admit_and_record)
    bench("unguarded 402 round trip", unguarded)
    bench("guarded fetch", lambda: guard.fetch("https://api.example.com/v1"))
    client.close()


if __name__ == "__main__":
    main()
