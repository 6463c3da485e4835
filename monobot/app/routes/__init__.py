# -*- coding: utf-8 -*-
# monobot/app/routes/__init__.py
# =============================================================================
# Назначение кода:
#   Точка подключения HTTP-роутов: общий api_router и register(app).
#
# Канон / инварианты:
#   • Модуль только собирает маршруты; бизнес-логика — в сервисах.
#   • Каждый модуль роутов экспортирует `router: APIRouter`.
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, FastAPI

from monobot.app.core.logging_core import get_logger
from monobot.app.routes import webhook_routes

logger = get_logger(__name__)

api_router = APIRouter()
api_router.include_router(webhook_routes.router)


def register(app: FastAPI, prefix: str = "") -> None:
    app.include_router(api_router, prefix=prefix)
    logger.info("[Routes] registered", extra={"prefix": prefix or "/", "paths": list_registered_paths()})


def list_registered_paths() -> List[str]:
    """Пути, смонтированные в api_router (для диагностики)."""
    return sorted({getattr(route, "path", "") for route in api_router.routes})


__all__ = ["api_router", "register", "list_registered_paths"]
