import asyncio
from datetime import datetime
from typing import List

import pytest

from monobot.app.scheduler.summary_daily import SummaryScheduler, run_once, seconds_until
from monobot.app.services.registry_service import ClientRegistry
from conftest import ACCOUNT_UAH, KYIV, MonoApiStub, client_info_payload, item_payload


class FakeSender:
    def __init__(self) -> None:
        self.sent: List[tuple] = []

    async def send_message(self, chat_id: int, text: str, **kwargs) -> None:
        self.sent.append((chat_id, text))


class BrokenRegistry:
    @property
    def count(self) -> int:
        raise RuntimeError("boom")


def test_seconds_until_later_today():
    now = datetime(2021, 5, 10, 20, 0, tzinfo=KYIV)

    assert seconds_until("0 21 * * *", now, KYIV) == 3600


def test_seconds_until_rolls_over_to_tomorrow():
    now = datetime(2021, 5, 10, 21, 30, tzinfo=KYIV)

    assert seconds_until("0 21 * * *", now, KYIV) == 23.5 * 3600
    assert seconds_until("30 21 * * *", now, KYIV) == 24 * 3600


def test_seconds_until_counts_real_time_across_dst_switch():
    # 2021-03-28 03:00 Kyiv: clocks jump forward, the day is 23 hours long
    now = datetime(2021, 3, 27, 21, 0, tzinfo=KYIV)

    assert seconds_until("0 21 * * *", now, KYIV) == 23 * 3600


def test_seconds_until_follows_weekday_fields():
    monday = datetime(2021, 5, 10, 12, 0, tzinfo=KYIV)

    assert seconds_until("0 9 * * 5", monday, KYIV) == (3 * 24 + 21) * 3600


async def test_run_once_sends_summary_to_every_chat(make_client, mono_api: MonoApiStub):
    mono_api.add("GET", "/personal/client-info", client_info_payload(accounts=[ACCOUNT_UAH]))
    mono_api.add("GET", "/bank/currency", [])
    mono_api.add("GET", "/personal/statement/acc-uah", [item_payload(amount=-12345, operationAmount=-12345)])
    sender = FakeSender()

    sent = await run_once(ClientRegistry([make_client()]), sender, [-1, -2])

    assert sent == 1
    assert [chat for chat, _ in sender.sent] == [-1, -2]
    assert "Витрачено: 123.45 UAH" in sender.sent[0][1]


async def test_scheduler_sleeps_until_time_then_ticks():
    delays: List[float] = []

    async def sleeper(seconds: float) -> None:
        delays.append(seconds)
        if len(delays) == 2:
            raise asyncio.CancelledError

    scheduler = SummaryScheduler(
        ClientRegistry([]),
        FakeSender(),
        cron="0 21 * * *",
        chat_ids=[-1],
        sleeper=sleeper,
    )

    with pytest.raises(asyncio.CancelledError):
        await scheduler.run()

    assert len(delays) == 2
    assert all(0 < d <= 24 * 3600 for d in delays)


async def test_failed_tick_does_not_stop_the_scheduler():
    scheduler = SummaryScheduler(BrokenRegistry(), FakeSender(), cron="0 21 * * *", chat_ids=[-1])

    await scheduler.tick()
