"""Стартовые команды бота и ответ на неподдерживаемые сообщения."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from monobot.app.core.logging_core import get_logger

logger = get_logger(__name__)

router = Router(name="start")

HELP_TEXT = (
    "Я надсилаю сповіщення про операції Monobank і показую звіти.\n\n"
    "/balance — баланс рахунків\n"
    "/report — виписка за період\n"
    "/get_webhook_N — поточний вебхук клієнта N\n"
    "/set_webhook_N <url> — встановити вебхук клієнта N"
)


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message()
async def handle_unsupported(message: Message) -> None:
    """Прочие сообщения только логируются; роутер подключается последним."""

    logger.debug("[Bot] unsupported message")
