from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from payguard.errors import PaymentAborted
from payguard.protocols import NegotiationHooks
from payguard.types import AllowDecision, DenyDecision, PaymentRequirement

PAYMENT_HEADER = "X-PAYMENT"


def make_requirement(amount: Any, **overrides: Any) -> dict[str, Any]:
    """Wire-format payment requirement as a 402 server would advertise it."""
    requirement = {
        "scheme": "exact",
        "network": "eip155:84532",
        "asset": "USDC",
        "amount": amount,
        "payTo": "0xdeadbeef",
        "maxTimeoutSeconds": 60,
        "extra": {},
    }
    requirement.update(overrides)
    return requirement


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MemorySink:
    """Audit sink that collects decision records in memory."""

    def __init__(self) -> None:
        self.entries: list[AllowDecision | DenyDecision] = []

    def log(self, decision: AllowDecision | DenyDecision) -> None:
        self.entries.append(decision)


class FailingSink:
    def log(self, decision: AllowDecision | DenyDecision) -> None:
        raise RuntimeError("sink exploded")


class PaidApi:
    """MockTransport handler: 402 with ``accepts`` until a payment header arrives."""

    def __init__(
        self,
        accepts: list[dict[str, Any]],
        *,
        status: int = 200,
        body: Any = None,
        raw_body: bytes | None = None,
        on_paid: Callable[[], None] | None = None,
    ) -> None:
        self.accepts = accepts
        self.status = status
        self.body = {"ok": True, "result": "42"} if body is None else body
        self.raw_body = raw_body
        self.on_paid = on_paid
        self.payments: list[str] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payment = request.headers.get(PAYMENT_HEADER)
        if payment is None:
            return httpx.Response(402, json={"x402Version": 2, "accepts": self.accepts})
        self.payments.append(payment)
        if self.on_paid is not None:
            self.on_paid()
        if self.raw_body is not None:
            return httpx.Response(self.status, content=self.raw_body)
        return httpx.Response(self.status, json=self.body)


def _offer(response: httpx.Response) -> tuple[int, list[PaymentRequirement]]:
    offer = response.json()
    requirements = [PaymentRequirement.model_validate(a) for a in offer["accepts"]]
    return offer.get("x402Version", 2), requirements


def _paid_request(request: httpx.Request, requirement: PaymentRequirement) -> httpx.Request:
    headers = httpx.Headers(request.headers)
    headers[PAYMENT_HEADER] = f"signed:{requirement.amount}"
    return httpx.Request(request.method, request.url, headers=headers, content=request.content)


class SimpleNegotiator:
    """Minimal 402 negotiator: filter, take the first offer, sign, retry."""

    def __init__(self) -> None:
        self.signed: list[PaymentRequirement] = []

    def send(
        self, client: httpx.Client, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        response = client.send(request)
        if response.status_code != 402:
            return response
        version, requirements = _offer(response)
        selected = hooks.filter_requirements(version, requirements)[0]
        abort = hooks.before_sign(selected)
        if abort is not None:
            raise PaymentAborted(abort.reason)
        self.signed.append(selected)
        hooks.after_sign(selected)
        return client.send(_paid_request(request, selected))


class AsyncSimpleNegotiator:
    def __init__(self) -> None:
        self.signed: list[PaymentRequirement] = []

    async def send(
        self, client: httpx.AsyncClient, request: httpx.Request, hooks: NegotiationHooks
    ) -> httpx.Response:
        response = await client.send(request)
        if response.status_code != 402:
            return response
        version, requirements = _offer(response)
        selected = hooks.filter_requirements(version, requirements)[0]
        abort = hooks.before_sign(selected)
        if abort is not None:
            raise PaymentAborted(abort.reason)
        self.signed.append(selected)
        hooks.after_sign(selected)
        return await client.send(_paid_request(request, selected))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def negotiator() -> SimpleNegotiator:
    return SimpleNegotiator()


@pytest.fixture
def async_negotiator() -> AsyncSimpleNegotiator:
    return AsyncSimpleNegotiator()


@pytest.fixture
def requirement() -> Callable[..., dict[str, Any]]:
    return make_requirement


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def paid_api() -> type[PaidApi]:
    return PaidApi
