# ==============================================================================
# monobot — FastAPI application factory
# ------------------------------------------------------------------------------
# Назначение: создаёт FastAPI-приложение листенера вебхука Monobank:
# корреляция логов, обработчики ошибок, роут вебхука и /health.
#
# Канон/инварианты:
#   • Очередь событий передаётся снаружи и кладётся в app.state.event_queue;
#     её читает NotificationService.
#   • create_app() без побочных эффектов: можно вызывать в тестах сколько
#     угодно раз.
#
# Запреты:
#   • Не запускает бота и планировщик — только HTTP.
# ==============================================================================
from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import FastAPI

from .core import CORE_VERSION
from .core.config_core import get_settings
from .core.errors_core import setup_exception_handlers
from .core.logging_core import CorrelationIdMiddleware, get_logger
from .routes import register
from .schemas.monobank_schemas import StatementItemData

logger = get_logger(__name__)


def create_app(queue: Optional["asyncio.Queue[StatementItemData]"] = None) -> FastAPI:
    """Создать приложение листенера; без очереди создаётся собственная."""

    settings = get_settings()
    app = FastAPI(title=settings.PROJECT_NAME, version=CORE_VERSION, docs_url=None, redoc_url=None)
    app.state.event_queue = queue if queue is not None else asyncio.Queue(maxsize=settings.NOTIFY_QUEUE_SIZE)

    app.add_middleware(CorrelationIdMiddleware)
    setup_exception_handlers(app)
    register(app)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Простая проверка живости сервиса без побочных эффектов."""

        return {"status": "ok"}

    logger.info("[App] listener app initialised", extra={"webhook_path": settings.WEBHOOK_PATH})
    return app


__all__ = ["create_app"]

# ==============================================================================
# Пояснения «для чайника»:
#   • Monobank шлёт POST на WEBHOOK_PATH; листенер кладёт событие в очередь
#     и сразу отвечает «Ok!». Отправкой в Telegram занимается отдельная задача.
# ==============================================================================
