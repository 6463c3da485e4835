# -*- coding: utf-8 -*-
# monobot/app/routes/webhook_routes.py
# =============================================================================
# Назначение кода:
#   HTTP-листенер вебхука Monobank. Monobank присылает POST с событием
#   StatementItem и проверяет адрес GET-запросом при установке вебхука.
#
# Канон / инварианты:
#   • Тело не разобралось → ответ «Not Ok!», в очередь ничего не попадает.
#   • Разобралось → await queue.put(event): очередь ограничена, при
#     переполнении листенер ждёт потребителя, события не теряются.
#   • Ответы — обычный текст, как ожидает Monobank.
#
# Запреты:
#   • Нет обращений к Monobank и к Telegram — только приём и передача.
# =============================================================================

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from monobot.app.core.config_core import get_settings
from monobot.app.core.logging_core import get_logger
from monobot.app.schemas.monobank_schemas import StatementItemData

logger = get_logger(__name__)
settings = get_settings()

OK = "Ok!"
NOT_OK = "Not Ok!"

router = APIRouter(tags=["monobank"])


def _event_queue(request: Request) -> "asyncio.Queue[StatementItemData]":
    return request.app.state.event_queue


@router.get(settings.WEBHOOK_PATH, response_class=PlainTextResponse)
async def webhook_probe() -> str:
    """Проверка адреса со стороны Monobank."""
    return OK


@router.post(settings.WEBHOOK_PATH, response_class=PlainTextResponse)
async def webhook_event(request: Request) -> str:
    body = await request.body()
    try:
        event = StatementItemData.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("[Webhook] bad payload", extra={"errors": exc.error_count()})
        return NOT_OK

    logger.debug(
        "[Webhook] event received",
        extra={"type": event.type, "item": event.data.statement_item.id},
    )
    await _event_queue(request).put(event)
    return OK


__all__ = ["router", "OK", "NOT_OK"]
