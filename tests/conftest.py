"""Pytest fixtures shared by monobot tests.

Monobank is never called for real: the gateway runs on top of
``httpx.MockTransport`` backed by :class:`MonoApiStub`, and rate limiters
use a manual :class:`FakeClock`.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import httpx
import pytest

from monobot.app.core.limiter_core import LimiterSet
from monobot.app.integrations.monobank_api import MonobankGateway
from monobot.app.schemas.monobank_schemas import Account, StatementItem
from monobot.app.services.client_service import BankClient

KYIV = ZoneInfo("Europe/Kyiv")

ACCOUNT_UAH: Dict[str, Any] = {
    "id": "acc-uah",
    "sendId": "uah-send",
    "balance": 1234500,
    "creditLimit": 0,
    "type": "black",
    "currencyCode": 980,
    "cashbackType": "UAH",
    "maskedPan": ["537541******1234"],
    "iban": "UA213223130000026007233566001",
}

ACCOUNT_USD: Dict[str, Any] = {
    "id": "acc-usd",
    "sendId": "usd-send",
    "balance": 10050,
    "creditLimit": 0,
    "type": "white",
    "currencyCode": 840,
    "cashbackType": "UAH",
    "maskedPan": ["444111******9876"],
    "iban": "UA213223130000026007233566002",
}


def client_info_payload(
    name: str = "Іван Петренко",
    accounts: Optional[List[Dict[str, Any]]] = None,
    web_hook_url: str = "",
) -> Dict[str, Any]:
    return {
        "clientId": "3MSaMMtczs",
        "name": name,
        "webHookUrl": web_hook_url,
        "permissions": "psfj",
        "accounts": [ACCOUNT_UAH, ACCOUNT_USD] if accounts is None else accounts,
    }


def item_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": "item-1",
        "time": 1609495200,
        "description": "Кава",
        "mcc": 5814,
        "originalMcc": 5814,
        "hold": False,
        "amount": -5000,
        "operationAmount": -5000,
        "currencyCode": 980,
        "commissionRate": 0,
        "cashbackAmount": 0,
        "balance": 1229500,
    }
    payload.update(overrides)
    return payload


def make_item(**overrides: Any) -> StatementItem:
    return StatementItem.model_validate(item_payload(**overrides))


def make_account(**overrides: Any) -> Account:
    return Account.model_validate({**ACCOUNT_UAH, **overrides})


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Responder = Callable[[httpx.Request], httpx.Response]


class MonoApiStub:
    """Routes requests by (method, path prefix) to canned responses."""

    def __init__(self) -> None:
        self.routes: List[Tuple[str, str, Responder]] = []
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        status: int = 200,
        raw: Optional[bytes] = None,
        error: Optional[Exception] = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if error is not None:
                raise error
            content = raw if raw is not None else json.dumps(payload).encode("utf-8")
            return httpx.Response(status, content=content, headers={"Content-Type": "application/json"})

        self.routes.insert(0, (method, path, respond))

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, path, respond in self.routes:
            if request.method == method and request.url.path.startswith(path):
                return respond(request)
        return httpx.Response(404, json={"errorDescription": "Unknown request"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mono_api() -> MonoApiStub:
    return MonoApiStub()


@pytest.fixture
async def gateway(mono_api: MonoApiStub):
    gw = MonobankGateway(
        base_url="https://api.monobank.test",
        timeout_seconds=5,
        transport=httpx.MockTransport(mono_api.handler),
    )
    yield gw
    await gw.aclose()


@pytest.fixture
def make_client(gateway: MonobankGateway, clock: FakeClock):
    """Factory of BankClient instances sharing the stub gateway and the fake clock."""

    def factory(token: str = "token-1", *, policy: str = "fail", page_size: int = 5) -> BankClient:
        return BankClient(
            token,
            gateway,
            limiters=LimiterSet(
                {"info": 65, "statement": 61, "webhook": 60, "currency": 60},
                clock=clock,
            ),
            policy=policy,
            page_size=page_size,
        )

    return factory
