# ============================================================================
# monobot — scheduler.summary_daily
# -----------------------------------------------------------------------------
# Назначение: ежедневная сводка по клиентам (потрачено, кешбек, число
#             операций за «Today») в разрешённые чаты в SCHEDULE_TIME.
#
# Канон/инварианты:
#   • Расписание — cron-выражение SCHEDULE_TIME (HH:MM — сокращение для
#     «M H * * *»), вычисляется в зоне TIMEZONE; следующий запуск строго
#     позже текущего момента.
#   • Пустые сводки (нет трат) не отправляются.
#   • Лимиты Monobank здесь ждут окна (policy="wait"), а не отказывают.
#
# ИИ-защита/самовосстановление:
#   • Ошибка одного тика логируется; цикл ждёт следующего запуска.
#
# Запреты:
#   • Не отправляет сводку администраторам — только в TELEGRAM_CHATS.
# ============================================================================
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from ..core.config_core import get_settings
from ..core.logging_core import get_logger
from ..services.notification_service import MessageSender, broadcast
from ..services.registry_service import ClientRegistry
from ..services.summary_service import build_summaries
from ..services.templates_service import render_summary

logger = get_logger(__name__)
settings = get_settings()


def seconds_until(cron: str, now: Optional[datetime] = None, tz: Optional[ZoneInfo] = None) -> float:
    """Секунды до ближайшего запуска по cron в местном времени (строго в будущем)."""

    zone = tz or ZoneInfo(settings.TIMEZONE)
    local = now.astimezone(zone) if now is not None else datetime.now(zone)
    target = croniter(cron, local).get_next(datetime)
    # разница через timestamp: переход на летнее время меняет длину суток
    return target.timestamp() - local.timestamp()


async def run_once(registry: ClientRegistry, sender: MessageSender, chat_ids: Iterable[int]) -> int:
    """Один тик: собрать сводки и разослать. Возвращает число отправленных сводок."""

    recipients = list(chat_ids)
    sent = 0
    for summary in await build_summaries(registry):
        text = render_summary(summary.client_name, summary.spent, summary.cashback, summary.count)
        if await broadcast(sender, recipients, text):
            sent += 1
    logger.info("[Summary] daily tick done", extra={"sent": sent})
    return sent


class SummaryScheduler:
    """Вечный цикл ежедневной сводки."""

    def __init__(
        self,
        registry: ClientRegistry,
        sender: MessageSender,
        *,
        cron: str,
        chat_ids: Optional[Iterable[int]] = None,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.registry = registry
        self.sender = sender
        self.cron = cron
        self.chat_ids = list(settings.chat_ids if chat_ids is None else chat_ids)
        self._sleeper = sleeper

    async def tick(self) -> None:
        try:
            await run_once(self.registry, self.sender, self.chat_ids)
        except Exception as exc:  # noqa: BLE001 - фиксируем и ждём следующего запуска
            logger.exception("[Summary] daily tick failed", extra={"error": str(exc)})

    async def run(self) -> None:
        logger.info("[Summary] scheduler started", extra={"cron": self.cron})
        while True:
            delay = seconds_until(self.cron)
            logger.debug("[Summary] sleeping", extra={"seconds": int(delay)})
            await self._sleeper(delay)
            await self.tick()


# ============================================================================
# Пояснения «для чайника»:
#   • SCHEDULE_TIME не задан — планировщик не запускается вовсе.
#   • Сводка считает только сегодняшние операции по всем счетам клиента;
#     переводы между своими счетами не считаются тратами.
# ============================================================================
