"""Application entry point for monobot: webhook listener, notifier, scheduler and Telegram polling."""

from __future__ import annotations

import asyncio
import contextlib
from typing import List

import uvicorn

from monobot.app import create_app
from monobot.app.bot.bot import build_bot, build_dispatcher, start_polling
from monobot.app.core import core_health
from monobot.app.core.config_core import get_settings
from monobot.app.core.logging_core import get_logger
from monobot.app.integrations.monobank_api import MonobankGateway
from monobot.app.scheduler.summary_daily import SummaryScheduler
from monobot.app.services.notification_service import NotificationService, new_event_queue
from monobot.app.services.registry_service import ClientRegistry

logger = get_logger(__name__)


async def main() -> None:
    """Собрать все части процесса и работать до остановки polling."""

    settings = get_settings()
    health = core_health()
    for warning in health["warnings"]:
        logger.warning("[Run] %s", warning)
    if not health["ok"]:
        raise SystemExit("; ".join(health["errors"]))

    gateway = MonobankGateway()
    registry = ClientRegistry.from_tokens(settings.mono_tokens, gateway)
    bot = build_bot()
    tasks: List[asyncio.Task] = []
    try:
        await registry.init_clients()

        queue = new_event_queue()
        server = uvicorn.Server(
            uvicorn.Config(
                create_app(queue),
                host=settings.APP_HOST,
                port=settings.APP_PORT,
                log_config=None,
            )
        )
        tasks.append(asyncio.create_task(server.serve(), name="webhook-listener"))
        tasks.append(asyncio.create_task(NotificationService(registry, bot, queue).run(), name="notifier"))

        cron = settings.schedule_cron
        if cron is not None:
            tasks.append(asyncio.create_task(SummaryScheduler(registry, bot, cron=cron).run(), name="summary"))

        await start_polling(bot, build_dispatcher(registry))
    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await bot.session.close()
        await registry.aclose()
        logger.info("[Run] stopped")


def run() -> None:
    """Синхронный entrypoint (CLI / console script)."""

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("[Run] stopped by user")


if __name__ == "__main__":
    run()
