import asyncio
import contextlib
from typing import List, Set, Tuple

from aiogram.exceptions import TelegramBadRequest
from aiogram.methods import SendMessage

from monobot.app.schemas.monobank_schemas import StatementItemData
from monobot.app.services.notification_service import NotificationService, broadcast
from monobot.app.services.registry_service import ClientRegistry
from conftest import MonoApiStub, client_info_payload, item_payload, make_item


class FakeSender:
    def __init__(self, failing: Set[int] = frozenset()) -> None:
        self.sent: List[Tuple[int, str]] = []
        self.failing = failing

    async def send_message(self, chat_id: int, text: str, **kwargs) -> None:
        if chat_id in self.failing:
            raise TelegramBadRequest(method=SendMessage(chat_id=chat_id, text=text), message="chat not found")
        self.sent.append((chat_id, text))


def _event(account: str = "acc-uah", **item) -> StatementItemData:
    return StatementItemData.model_validate(
        {"type": "StatementItem", "data": {"account": account, "statementItem": item_payload(**item)}}
    )


async def _registry(make_client, mono_api: MonoApiStub) -> ClientRegistry:
    mono_api.add("GET", "/personal/client-info", client_info_payload())
    registry = ClientRegistry([make_client()])
    await registry.init_clients()
    return registry


async def test_broadcast_skips_failed_recipients():
    sender = FakeSender(failing={2})

    delivered = await broadcast(sender, [1, 2, 3], "hello")

    assert delivered == 2
    assert [chat for chat, _ in sender.sent] == [1, 3]


async def test_event_goes_to_chats_then_admins(make_client, mono_api: MonoApiStub):
    registry = await _registry(make_client, mono_api)
    sender = FakeSender()
    service = NotificationService(registry, sender, asyncio.Queue(), chat_ids=[-100], admin_ids=[7, 8])

    await service.handle_event(_event())

    assert [chat for chat, _ in sender.sent] == [-100, 7, 8]
    assert sender.sent[0][1].startswith("Іван Петренко\n🍔 -50₴")


async def test_event_resets_report_cache_of_the_account(make_client, mono_api: MonoApiStub):
    registry = await _registry(make_client, mono_api)
    client = registry.get_client(0)
    engine = client.get_report("acc-uah")
    engine.set_cache_data(engine.cache_key("Today", 1, 2, client.id), [make_item()])
    service = NotificationService(registry, FakeSender(), asyncio.Queue(), chat_ids=[1], admin_ids=[])

    await service.handle_event(_event())

    assert engine.cache_size() == 0


async def test_run_survives_unknown_accounts(make_client, mono_api: MonoApiStub):
    registry = await _registry(make_client, mono_api)
    sender = FakeSender()
    queue: asyncio.Queue = asyncio.Queue()
    service = NotificationService(registry, sender, queue, chat_ids=[1], admin_ids=[])
    queue.put_nowait(_event(account="acc-unknown"))
    queue.put_nowait(_event(id="item-2"))

    task = asyncio.create_task(service.run())
    try:
        await asyncio.wait_for(queue.join(), timeout=2)
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    assert len(sender.sent) == 1
