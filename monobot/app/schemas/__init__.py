# -*- coding: utf-8 -*-
# monobot/app/schemas/__init__.py
# =============================================================================
# Назначение кода:
# Фасад Pydantic-схем monobot. Единый импорт:
#     from monobot.app.schemas import StatementItem, ClientInfo, ...
# =============================================================================

from __future__ import annotations

from .monobank_schemas import (
    TRANSFER_MCC,
    UAH_CODE,
    Account,
    ClientInfo,
    Currency,
    StatementItem,
    StatementItemData,
    StatementItemPayload,
    WebHookResponse,
)

__all__ = [
    "UAH_CODE",
    "TRANSFER_MCC",
    "StatementItem",
    "Account",
    "ClientInfo",
    "WebHookResponse",
    "Currency",
    "StatementItemPayload",
    "StatementItemData",
]
