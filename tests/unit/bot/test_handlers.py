import asyncio

import pytest
from aiogram.filters import CommandObject
from aiogram.types import Chat, InaccessibleMessage

from monobot.app.bot.callback_codec import CallbackAction, CallbackData, decode
from monobot.app.bot.handlers.balance_handlers import build_balance, handle_balance_client
from monobot.app.bot.handlers.report_handlers import account_prompt, build_report, handle_report_page
from monobot.app.bot.handlers.webhook_handlers import GET_WEBHOOK, SET_WEBHOOK, client_index, is_url
from monobot.app.core.errors_core import RateLimitedError
from monobot.app.services.registry_service import ClientRegistry
from monobot.app.services.templates_service import MESSAGE_EXPIRED
from conftest import FakeClock, MonoApiStub, client_info_payload, item_payload, make_item


def _command(name: str, args: str | None = None) -> CommandObject:
    pattern = GET_WEBHOOK if name.startswith("get") else SET_WEBHOOK
    return CommandObject(prefix="/", command=name, args=args, regexp_match=pattern.match(name))


@pytest.mark.parametrize(
    "name, index",
    [("get_webhook", 0), ("get_webhook_0", 0), ("get_webhook_2", 2), ("set_webhook_1", 1)],
)
def test_client_index_from_command_suffix(name, index):
    assert client_index(_command(name)) == index


def test_webhook_commands_do_not_match_other_names():
    assert GET_WEBHOOK.match("get_webhooks") is None
    assert SET_WEBHOOK.match("set_webhook_x") is None


@pytest.mark.parametrize(
    "value, ok",
    [
        ("https://example.org/web_hook", True),
        ("http://10.0.0.1:8080/web_hook", True),
        ("example.org/web_hook", False),
        ("https://", False),
        ("not a url", False),
    ],
)
def test_is_url(value, ok):
    assert is_url(value) is ok


async def test_balance_is_always_fresh(make_client, mono_api: MonoApiStub, clock: FakeClock):
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    client = make_client()
    await client.init()

    with pytest.raises(RateLimitedError):
        await build_balance(client)

    clock.advance(65)
    assert (await build_balance(client)).startswith("Іван Петренко\n\n- black")


async def test_account_prompt_lists_accounts(make_client, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    client = make_client()
    await client.init()

    text, markup = await account_prompt(client)

    assert text == "Іван Петренко\nВиберіть рахунок:"
    assert [decode(b.callback_data).action for b in markup.inline_keyboard[0]] == [CallbackAction.REPORT_ACCOUNT] * 2


async def test_report_pages_are_served_from_cache(make_client, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    mono_api.add(
        "GET",
        "/personal/statement/acc-uah",
        [item_payload(id=f"item-{i}", amount=-100 * (i + 1), operationAmount=-100 * (i + 1)) for i in range(12)],
    )
    client = make_client()
    await client.init()
    data = CallbackData(action=CallbackAction.REPORT_PAGE, period="Today", client_id=client.id, account_id="acc-uah", page=1)

    first_text, first_markup = await build_report(client, data, chat_id=-100, user_id=7, page=1)
    last_text, last_markup = await build_report(client, data, chat_id=-100, user_id=7, page=3)

    assert len(mono_api.calls("/personal/statement")) == 1
    assert first_text.startswith("Іван Петренко, 12345₴, Today\nВитрачено: 78₴")
    assert [b.text for b in first_markup.inline_keyboard[0]] == ["·1·", "2", "3"]
    assert [b.text for b in last_markup.inline_keyboard[0]] == ["1", "2", "·3·"]
    assert last_text.count("Баланс:") == 2


async def test_report_cache_is_per_user(make_client, mono_api: MonoApiStub, clock: FakeClock):
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    mono_api.add("GET", "/personal/statement/acc-uah", [item_payload()])
    client = make_client()
    await client.init()
    data = CallbackData(action=CallbackAction.REPORT_PAGE, period="Today", client_id=client.id, account_id="acc-uah", page=1)

    await build_report(client, data, chat_id=-100, user_id=7, page=1)
    with pytest.raises(RateLimitedError):
        await build_report(client, data, chat_id=-100, user_id=8, page=1)

    clock.advance(61)
    text, markup = await build_report(client, data, chat_id=-100, user_id=8, page=1)
    assert markup is None
    assert "Кава" in text


async def test_statement_loaded_before_notification_is_not_cached(make_client, mono_api: MonoApiStub, monkeypatch):
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    client = make_client()
    await client.init()
    started, release = asyncio.Event(), asyncio.Event()

    async def slow_statement(period, account_id, **kwargs):
        started.set()
        await release.wait()
        return [make_item(id="before-notification")]

    monkeypatch.setattr(client, "get_statement", slow_statement)
    data = CallbackData(action=CallbackAction.REPORT_PAGE, period="Today", client_id=client.id, account_id="acc-uah", page=1)

    task = asyncio.create_task(build_report(client, data, chat_id=-100, user_id=7, page=1))
    await started.wait()
    client.reset_report("acc-uah")
    release.set()
    text, _ = await task

    engine = client.get_report("acc-uah")
    assert "Кава" in text
    assert not engine.is_cached(engine.cache_key("Today", -100, 7, client.id))


class StubCallback:
    def __init__(self, message, data: str = "") -> None:
        self.message = message
        self.data = data
        self.answers = []

    async def answer(self, text=None, **kwargs) -> None:
        self.answers.append(text)


@pytest.mark.parametrize(
    "message",
    [None, InaccessibleMessage.model_construct(chat=Chat(id=-100, type="group"), message_id=1, date=0)],
)
@pytest.mark.parametrize("handler", [handle_balance_client, handle_report_page])
async def test_callback_on_inaccessible_message_is_answered(handler, message):
    callback = StubCallback(message, data="bc:v1::1::0")

    await handler(callback, ClientRegistry([]))

    assert callback.answers == [MESSAGE_EXPIRED]
