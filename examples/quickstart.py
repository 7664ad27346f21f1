"""Quickstart demo for payguard.

Runs against an in-process fake x402 server, so no wallet or network is needed.
The negotiator "signs" by echoing the amount back in the payment header.
"""

from __future__ import annotations

import httpx

from payguard import (
    GuardError,
    GuardPolicy,
    NegotiationHooks,
    PaymentAborted,
    PaymentGuard,
    PaymentRequirement,
)
from payguard.loggers import ConsoleDecisionSink

PRICES = {"/v1/cheap": ["20000", "50000"], "/v1/pricey": ["5000000"]}


def fake_server(request: httpx.Request) -> httpx.Response:
    if "X-PAYMENT" not in request.headers:
        accepts = [
            {"scheme": "exact", "network": "eip155:84532", "asset": "USDC", "amount": amount}
            for amount in PRICES[request.url.path]
        ]
        return httpx.Response(402, json={"x402Version": 2, "accepts": accepts})
    return httpx.Response(200, json={"result": "42"})


class DemoNegotiator:
    def send(
        self, client: httpx.Client, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        response = client.send(request)
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
        return client.send(paid)


def main() -> None:
    policy = GuardPolicy.model_validate(
        {
            "max_per_payment": "0.10",
            "select_cheapest": True,
            "budget": {"limit": "0.05", "window_ms": 60_000},
            "conditions": {"require_http_2xx": True, "required_json_fields": ["result"]},
        }
    )
    client = httpx.Client(transport=httpx.MockTransport(fake_server))

    with PaymentGuard(
        negotiator=DemoNegotiator(),
        policy=policy,
        client=client,
        audit_sink=ConsoleDecisionSink(),
    ) as guard:
        for path in ("/v1/cheap", "/v1/cheap", "/v1/cheap", "/v1/pricey"):
            try:
                response = guard.fetch(f"https://api.example.com{path}")
                print(f"{path}: {response.json()}")
            except GuardError as exc:
                print(f"{path}: {exc}")
    client.close()


if __name__ == "__main__":
    main()
