# -*- coding: utf-8 -*-
# monobot/app/core/__init__.py
# =============================================================================
# Назначение кода:
# Единая точка входа ядра monobot: настройки, логирование, ошибки, лимитеры.
#
# Канон/инварианты:
# • Источником истины служит config_core.get_settings().
# • Здесь нет сетевых вызовов и бизнес-логики.
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List

from .config_core import get_settings
from .logging_core import get_logger

CORE_VERSION = "1.0.0"

logger = get_logger(__name__)


def core_health() -> Dict[str, Any]:
    """
    Проверка «минимально достаточного» набора настроек перед стартом.

    Возвращает {"ok": bool, "errors": [...], "warnings": [...], "settings": {...}}.
    """
    settings = get_settings()
    errors: List[str] = []
    warnings: List[str] = []

    if not settings.TELEGRAM_TOKEN:
        errors.append("TELEGRAM_TOKEN is not set")
    if not settings.mono_tokens:
        errors.append("MONO_TOKENS is empty")
    if not settings.admin_ids and not settings.chat_ids:
        warnings.append("TELEGRAM_ADMINS and TELEGRAM_CHATS are empty: nobody can use the bot")

    return {
        "ok": not errors,
        "errors": errors,
        "warnings": warnings,
        "settings": settings.debug_dump(),
    }


__all__ = ["CORE_VERSION", "get_settings", "get_logger", "core_health"]
