"""Async guard demo with a JSONL decision log.

Writes ``payguard_decisions.jsonl``; summarize it with:
  payguard summary payguard_decisions.jsonl --format table
"""

from __future__ import annotations

import asyncio

import httpx

from payguard import AsyncPaymentGuard, GuardError, NegotiationHooks, PaymentAborted
from payguard.adapters import SyncDecisionSinkAdapter
from payguard.loggers import JsonlDecisionLogger
from payguard.types import PaymentRequirement


async def fake_server(request: httpx.Request) -> httpx.Response:
    if "X-PAYMENT" not in request.headers:
        accepts = [{"scheme": "exact", "network": "eip155:84532", "amount": "30000"}]
        return httpx.Response(402, json={"x402Version": 2, "accepts": accepts})
    await asyncio.sleep(0.01)
    return httpx.Response(200, json={"result": request.url.path})


class DemoNegotiator:
    async def send(
        self, client: httpx.AsyncClient, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        response = await client.send(request)
        if response.status_code != 402:
            return response
        offer = response.json()
        requirements = [PaymentRequirement.model_validate(a) for a in offer["accepts"]]
        selected = hooks.filter_requirements(offer["x402Version"], requirements)[0]
        abort = hooks.before_sign(selected)
        if abort is not None:
            raise PaymentAborted(abort.reason)
        hooks.after_sign(selected)
        paid = httpx.Request(
            request.method,
            request.url,
            headers={**request.headers, "X-PAYMENT": f"demo:{selected.amount}"},
        )
        return await client.send(paid)


async def main() -> None:
    policy = {"budget": {"limit": "0.1", "window_ms": 60_000}}
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_server))
    guard = AsyncPaymentGuard(
        negotiator=DemoNegotiator(),
        policy=policy,
        client=client,
        audit_sink=SyncDecisionSinkAdapter(JsonlDecisionLogger()),
    )

    # sequential, so each admit sees the previous call's spend
    for i in range(5):
        try:
            response = await guard.fetch(f"https://api.example.com/v1/job/{i}")
            print(f"job {i}: {response.json()}")
        except GuardError as exc:
            print(f"job {i}: {exc.code}")
    await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
