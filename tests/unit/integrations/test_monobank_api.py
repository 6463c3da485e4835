import json
from typing import List

import httpx
import pytest

from monobot.app.core.errors_core import DecodeError, TransportError, UpstreamError
from monobot.app.integrations.monobank_api import (
    MonobankGateway,
    client_info_request,
    currency_request,
    statement_request,
    webhook_request,
)
from monobot.app.schemas.monobank_schemas import ClientInfo, StatementItem, WebHookResponse
from conftest import MonoApiStub, client_info_payload, item_payload


def test_statement_request_paths():
    assert statement_request("t", "acc", 100).path == "/personal/statement/acc/100"
    assert statement_request("t", "acc", 100, 200).path == "/personal/statement/acc/100/200"


def test_public_request_has_no_token_header():
    assert "X-Token" not in currency_request().build_headers()
    assert client_info_request("secret").build_headers()["X-Token"] == "secret"


async def test_client_info_is_decoded_and_token_sent_as_header(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", client_info_payload())

    info = await gateway.do(client_info_request("token-1"), ClientInfo)

    assert info.name == "Іван Петренко"
    assert [a.id for a in info.accounts] == ["acc-uah", "acc-usd"]
    request = mono_api.requests[0]
    assert request.headers["X-Token"] == "token-1"
    assert "token-1" not in str(request.url)


async def test_statement_list_is_decoded(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/statement/acc-uah", [item_payload(), item_payload(id="item-2")])

    items = await gateway.do(statement_request("t", "acc-uah", 1609452000), List[StatementItem])

    assert [i.id for i in items] == ["item-1", "item-2"]
    assert items[0].operation_amount == -5000


async def test_webhook_request_posts_url(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("POST", "/personal/webhook", {"status": "ok"})

    response = await gateway.do(webhook_request("t", "https://example.org/web_hook"), WebHookResponse)

    assert response.status == "ok"
    assert json.loads(mono_api.requests[0].content) == {"webHookUrl": "https://example.org/web_hook"}


async def test_transport_failure_is_wrapped(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", error=httpx.ConnectTimeout("timed out"))

    with pytest.raises(TransportError) as excinfo:
        await gateway.do(client_info_request("t"), ClientInfo)

    assert excinfo.value.details["reason"] == "ConnectTimeout"


async def test_malformed_body_is_a_decode_error(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", raw=b"<html>502</html>", status=502)

    with pytest.raises(DecodeError) as excinfo:
        await gateway.do(client_info_request("t"), ClientInfo)

    assert excinfo.value.details["kind"] == "malformed_json"


async def test_wrong_shape_is_a_decode_error(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/statement", {"unexpected": True})

    with pytest.raises(DecodeError) as excinfo:
        await gateway.do(statement_request("t", "acc", 1), List[StatementItem])

    assert excinfo.value.details["kind"] == "shape_mismatch"


async def test_error_description_becomes_upstream_error(gateway: MonobankGateway, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/statement", {"errorDescription": "Too many requests"}, status=429)

    with pytest.raises(UpstreamError) as excinfo:
        await gateway.do(statement_request("t", "acc", 1), List[StatementItem])

    assert excinfo.value.message == "Too many requests"
    assert excinfo.value.user_message() == "error: Too many requests"
