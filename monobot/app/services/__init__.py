# -*- coding: utf-8 -*-
# monobot/app/services/__init__.py
# =============================================================================
# monobot — сервисный слой (единая точка входа)
# -----------------------------------------------------------------------------
# Назначение файла:
#   • Стабильный импорт основных сервисов для бота, листенера и планировщика.
#   • Бизнес-логики здесь нет — только реэкспорт.
# =============================================================================

from __future__ import annotations

from .client_service import NO_NAME, BankClient, fnv1a_32  # noqa: F401
from .notification_service import NotificationService, broadcast, new_event_queue  # noqa: F401
from .period_service import REPORT_PERIODS, resolve_period  # noqa: F401
from .registry_service import CLIENT_NOT_FOUND, ClientRegistry  # noqa: F401
from .report_service import PageButton, ReportEngine, ReportPage  # noqa: F401
from .summary_service import DailySummary, build_summaries  # noqa: F401

__all__ = [
    "BankClient",
    "fnv1a_32",
    "NO_NAME",
    "ClientRegistry",
    "CLIENT_NOT_FOUND",
    "ReportEngine",
    "ReportPage",
    "PageButton",
    "REPORT_PERIODS",
    "resolve_period",
    "NotificationService",
    "broadcast",
    "new_event_queue",
    "DailySummary",
    "build_summaries",
]
