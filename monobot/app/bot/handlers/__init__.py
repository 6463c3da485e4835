"""Роутеры команд и callback-кнопок бота."""

from __future__ import annotations

from typing import Optional

from aiogram.types import CallbackQuery, Message

from monobot.app.core.logging_core import get_logger
from monobot.app.services.templates_service import MESSAGE_EXPIRED

logger = get_logger(__name__)


async def message_of(callback: CallbackQuery) -> Optional[Message]:
    """
    Сообщение, к которому привязана кнопка.

    Для старого (InaccessibleMessage) или отсутствующего сообщения callback
    гасится подсказкой и возвращается None: редактировать и отвечать некуда.
    """
    if isinstance(callback.message, Message):
        return callback.message
    logger.info("[Bot] callback message is inaccessible", extra={"data": callback.data})
    await callback.answer(MESSAGE_EXPIRED)
    return None


__all__ = ["message_of"]
