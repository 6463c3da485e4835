# -*- coding: utf-8 -*-
# monobot/app/services/notification_service.py
# =============================================================================
# Назначение кода:
#   Потребитель очереди событий вебхука Monobank:
#   • находит клиента и счёт по id счёта из события;
#   • сбрасывает кэш отчётов этого счёта (новая операция меняет итоги);
#   • отправляет текст операции в разрешённые чаты, затем администраторам.
#
# Канон / инварианты:
#   • Один потребитель: события обрабатываются строго по очереди.
#   • Ошибка одного события (нет клиента, Telegram недоступен) логируется,
#     цикл продолжает работу.
#   • Доставка «не более одного раза»: событие не возвращается в очередь.
#
# Запреты:
#   • Нет запросов выписки — только client-info (через кэш) и отправка.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Iterable, Protocol

from aiogram.exceptions import TelegramAPIError

from monobot.app.core.config_core import get_settings
from monobot.app.core.errors_core import MonoBotError
from monobot.app.core.logging_core import get_logger
from monobot.app.schemas.monobank_schemas import StatementItemData
from monobot.app.services.registry_service import ClientRegistry
from monobot.app.services.templates_service import render_statement

logger = get_logger(__name__)
settings = get_settings()


class MessageSender(Protocol):
    async def send_message(self, chat_id: int, text: str, **kwargs: object) -> object: ...


async def broadcast(sender: MessageSender, chat_ids: Iterable[int], text: str) -> int:
    """Отправить text каждому получателю. Возвращает число успешных отправок."""
    delivered = 0
    for chat_id in chat_ids:
        try:
            await sender.send_message(chat_id, text)
            delivered += 1
        except TelegramAPIError as exc:
            logger.error(
                "[Notify] send failed",
                extra={"chat_id": chat_id, "error": str(exc)},
            )
    return delivered


def new_event_queue(maxsize: int | None = None) -> "asyncio.Queue[StatementItemData]":
    """Очередь передачи событий от листенера к потребителю (ограниченная)."""
    return asyncio.Queue(maxsize=maxsize or settings.NOTIFY_QUEUE_SIZE)


class NotificationService:
    """Потребитель очереди событий вебхука."""

    def __init__(
        self,
        registry: ClientRegistry,
        sender: MessageSender,
        queue: "asyncio.Queue[StatementItemData]",
        *,
        chat_ids: Iterable[int] | None = None,
        admin_ids: Iterable[int] | None = None,
    ) -> None:
        self._registry = registry
        self._sender = sender
        self._queue = queue
        self._chat_ids = list(settings.chat_ids if chat_ids is None else chat_ids)
        self._admin_ids = list(settings.admin_ids if admin_ids is None else admin_ids)

    async def handle_event(self, event: StatementItemData) -> None:
        account_id = event.data.account
        client = await self._registry.get_client_by_account(account_id)
        account = await client.get_account(account_id)
        client.reset_report(account_id)

        text = render_statement(client.name, event.data.statement_item, account)
        await broadcast(self._sender, self._chat_ids, text)
        await broadcast(self._sender, self._admin_ids, text)
        logger.info(
            "[Notify] statement delivered",
            extra={"client": client.id, "item": event.data.statement_item.id},
        )

    async def run(self) -> None:
        """Бесконечный цикл потребления; завершается только отменой задачи."""
        logger.info("[Notify] consumer started")
        while True:
            event = await self._queue.get()
            try:
                await self.handle_event(event)
            except MonoBotError as exc:
                logger.error("[Notify] event skipped", extra={"error": exc.code})
            except Exception:  # noqa: BLE001 - цикл не должен падать
                logger.exception("[Notify] unexpected failure")
            finally:
                self._queue.task_done()


__all__ = ["MessageSender", "NotificationService", "broadcast", "new_event_queue"]
