"""
===============================================================================
== monobot — bot.py (aiogram entrypoint)
-------------------------------------------------------------------------------
Назначение:
  • Сборка Telegram-бота (aiogram v3): Bot, Dispatcher, middlewares, роутеры
    команд /balance, /report, /get_webhook, /set_webhook, /start, /help.
  • Запуск long polling.

Канон/инварианты:
  • Апдейты обрабатываются строго последовательно (handle_as_tasks=False):
    кэш отчётов и лимиты не делят один апдейт с другим.
  • Реестр клиентов передаётся хэндлерам через workflow data Dispatcher
    (аргумент `registry`).
  • Сообщения отправляются обычным текстом, без parse_mode: описания
    операций приходят от банка и могут содержать любые символы.

ИИ-защиты/самовосстановление:
  • SafeMiddleware перехватывает ошибки хэндлеров и отвечает текстом ошибки.
  • AccessMiddleware отсекает чужие апдейты до хэндлеров.

Запреты:
  • Нет приёма вебхуков Monobank — это FastAPI-листенер (routes/).
===============================================================================
"""

from __future__ import annotations

from typing import Sequence

from aiogram import Bot, Dispatcher, Router
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from monobot.app.core.config_core import get_settings
from monobot.app.core.logging_core import get_logger
from monobot.app.services.registry_service import ClientRegistry
from .handlers import balance_handlers, report_handlers, start_handlers, webhook_handlers
from .middlewares import AccessMiddleware, LoggingMiddleware, SafeMiddleware

logger = get_logger(__name__)
settings = get_settings()


def _routers() -> Sequence[Router]:
    """Порядок важен: start_handlers содержит обработчик «всего остального»."""

    return (
        balance_handlers.router,
        report_handlers.router,
        webhook_handlers.router,
        start_handlers.router,
    )


def _setup_middlewares(dp: Dispatcher) -> None:
    dp.update.middleware(LoggingMiddleware())
    dp.update.middleware(AccessMiddleware())
    dp.update.middleware(SafeMiddleware())


def build_dispatcher(registry: ClientRegistry) -> Dispatcher:
    """Dispatcher с памятью FSM, роутерами и middlewares; registry — в workflow data."""

    dp = Dispatcher(storage=MemoryStorage(), registry=registry)
    for router in _routers():
        dp.include_router(router)
    _setup_middlewares(dp)
    return dp


def build_bot(token: str | None = None) -> Bot:
    token = token or settings.TELEGRAM_TOKEN
    if not token:
        raise RuntimeError("TELEGRAM_TOKEN is not set")
    return Bot(token=token)


def _bot_commands() -> Sequence[BotCommand]:
    return (
        BotCommand(command="balance", description="Баланс рахунків"),
        BotCommand(command="report", description="Виписка за період"),
        BotCommand(command="get_webhook", description="Поточний вебхук"),
        BotCommand(command="help", description="Довідка"),
    )


async def start_polling(bot: Bot, dp: Dispatcher) -> None:
    """Polling до отмены задачи. Вебхук Telegram снимается, чтобы не было двойной доставки."""

    await bot.delete_webhook(drop_pending_updates=False)
    await bot.set_my_commands(list(_bot_commands()))
    me = await bot.get_me()
    logger.info("[Bot] authorized", extra={"username": me.username})
    await dp.start_polling(
        bot,
        allowed_updates=dp.resolve_used_update_types(),
        handle_as_tasks=False,
    )


__all__ = ["build_bot", "build_dispatcher", "start_polling"]

# ===========================================================================
# Пояснения «для чайника»:
#   • Этот файл только собирает бота; запуск всего процесса — в run.py.
#   • Кнопки отчётов не хранят сессию: всё нужное лежит в callback_data,
#     поэтому бот переживает рестарт без потери навигации (кроме кэша).
# ===========================================================================
