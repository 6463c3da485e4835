"""
Вебхук Monobank по клиентам: /get_webhook[_N] и /set_webhook[_N] <url>.

N — индекс токена в MONO_TOKENS (с нуля); без суффикса — первый клиент.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from monobot.app.core.logging_core import get_logger
from monobot.app.services.registry_service import ClientRegistry
from monobot.app.services.templates_service import INCORRECT_URL, render_webhook

logger = get_logger(__name__)

router = Router(name="webhook")

GET_WEBHOOK = re.compile(r"^get_webhook(?:_(\d+))?$")
SET_WEBHOOK = re.compile(r"^set_webhook(?:_(\d+))?$")


def client_index(command: CommandObject) -> int:
    match: Optional[re.Match[str]] = command.regexp_match
    if match is None or match.group(1) is None:
        return 0
    return int(match.group(1))


def is_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


@router.message(Command(GET_WEBHOOK))
async def handle_get_webhook(message: Message, command: CommandObject, registry: ClientRegistry) -> None:
    client = registry.get_client(client_index(command))
    info = await client.get_info()
    await message.reply(render_webhook(info))


@router.message(Command(SET_WEBHOOK))
async def handle_set_webhook(message: Message, command: CommandObject, registry: ClientRegistry) -> None:
    """Ровно один аргумент — URL; иначе команда игнорируется."""

    args = (command.args or "").split(" ")
    if len(args) != 1 or not args[0]:
        logger.info("[Bot] set_webhook ignored, bad arguments")
        return

    url = args[0]
    if not is_url(url):
        await message.answer(INCORRECT_URL)
        return

    client = registry.get_client(client_index(command))
    response = await client.set_webhook(url)
    await message.reply(response.status or f"error: {response.error_description}")
