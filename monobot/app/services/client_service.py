# -*- coding: utf-8 -*-
# monobot/app/services/client_service.py
# =============================================================================
# Назначение кода:
#   Bank Client — всё, что бот делает от имени ОДНОГО токена Monobank:
#   • стабильный числовой id токена (FNV-1a 32 бит) для callback_data;
#   • client-info с кэшем и отдачей сохранённой копии, когда лимит исчерпан;
#   • выписка за период, установка вебхука, курсы валют;
#   • Report Engine на каждый счёт.
#
# Канон / инварианты:
#   • У каждого токена свой LimiterSet; токены не мешают друг другу.
#   • get_info(): лимит позволяет → свежий запрос и замена кэша; иначе
#     кэш; иначе RateLimitedError (политика fail) или ожидание (wait).
#   • Ответ client-info с errorDescription кэш НЕ заменяет → UpstreamError.
#   • Ошибка метки периода проверяется ДО расхода лимита выписки.
#   • id — некриптографический хэш: коллизии двух токенов теоретически
#     возможны, набор токенов мал и задаётся оператором.
#
# Запреты:
#   • Не отправляет сообщения в Telegram и не форматирует тексты.
#   • Токен не попадает в логи и исключения.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from monobot.app.core.config_core import get_settings
from monobot.app.core.errors_core import NotFoundError, RateLimitedError, UpstreamError
from monobot.app.core.limiter_core import (
    BUCKET_CURRENCY,
    BUCKET_INFO,
    BUCKET_STATEMENT,
    BUCKET_WEBHOOK,
    LimiterSet,
)
from monobot.app.core.logging_core import get_logger
from monobot.app.integrations.monobank_api import (
    MonobankGateway,
    client_info_request,
    currency_request,
    statement_request,
    webhook_request,
)
from monobot.app.schemas.monobank_schemas import (
    Account,
    ClientInfo,
    Currency,
    StatementItem,
    WebHookResponse,
)
from monobot.app.services.period_service import resolve_period
from monobot.app.services.report_service import ReportEngine

logger = get_logger(__name__)
settings = get_settings()

NO_NAME = "NoName"

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


def fnv1a_32(data: bytes) -> int:
    """FNV-1a, 32 бита."""
    value = _FNV32_OFFSET
    for byte in data:
        value ^= byte
        value = (value * _FNV32_PRIME) & 0xFFFFFFFF
    return value


class BankClient:
    """Клиент Monobank для одного токена."""

    def __init__(
        self,
        token: str,
        gateway: MonobankGateway,
        *,
        limiters: Optional[LimiterSet] = None,
        policy: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> None:
        if not token:
            raise ValueError("empty Monobank token")
        self._token = token
        self._gateway = gateway
        self._limiters = limiters or LimiterSet.from_settings(settings)
        self._policy = (policy or settings.RATE_LIMIT_POLICY).lower()
        self._page_size = page_size
        self._id = fnv1a_32(token.encode("utf-8"))
        self._info: Optional[ClientInfo] = None
        self._stale = False
        self._reports: Dict[str, ReportEngine] = {}

    def __repr__(self) -> str:
        return f"BankClient(id={self._id}, name={self.name!r})"

    # ------------------------------------------------------------------ свойства

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        if self._info is None or not self._info.name:
            return NO_NAME
        return self._info.name

    @property
    def info(self) -> Optional[ClientInfo]:
        """Последняя успешно полученная client-info (без запроса)."""
        return self._info

    # ------------------------------------------------------------------ лимиты

    async def _acquire(self, bucket: str, policy: Optional[str] = None) -> None:
        if self._limiters.allow(bucket):
            return
        if (policy or self._policy) == "wait":
            logger.info("[Client] waiting for rate limit", extra={"client": self._id, "bucket": bucket})
            await self._limiters.get(bucket).wait()
            return
        logger.info("[Client] rate limited", extra={"client": self._id, "bucket": bucket})
        raise RateLimitedError(details={"bucket": bucket})

    # ------------------------------------------------------------------ client-info

    async def init(self) -> ClientInfo:
        """Первая загрузка client-info при старте процесса."""
        return await self.get_info()

    def clear(self) -> "BankClient":
        """
        Пометить кэш client-info устаревшим: следующий get_info() не вернёт
        сохранённую копию вместо запроса. Сама копия остаётся для имени
        клиента и поиска счёта по вебхуку.
        """
        self._stale = True
        return self

    async def get_info(self) -> ClientInfo:
        if self._limiters.allow(BUCKET_INFO):
            return await self._fetch_info()
        if self._info is not None and not self._stale:
            return self._info
        if self._policy == "wait":
            await self._limiters.get(BUCKET_INFO).wait()
            return await self._fetch_info()
        logger.info("[Client] get info, rate limited", extra={"client": self._id})
        raise RateLimitedError(details={"bucket": BUCKET_INFO})

    async def _fetch_info(self) -> ClientInfo:
        logger.debug("[Client] get info", extra={"client": self._id})
        info = await self._gateway.do(client_info_request(self._token), ClientInfo)
        if info.error_description:
            raise UpstreamError(info.error_description, details={"client": self._id})
        self._info = info
        self._stale = False
        return info

    async def get_account(self, account_id: str) -> Account:
        info = self._info if self._info is not None else await self.get_info()
        account = info.find_account(account_id)
        if account is None:
            raise NotFoundError("Account does not found", details={"client": self._id})
        return account

    def has_account(self, account_id: str) -> bool:
        return self._info is not None and self._info.find_account(account_id) is not None

    # ------------------------------------------------------------------ выписка

    async def get_statement(
        self,
        period: str,
        account_id: str,
        *,
        now: Optional[datetime] = None,
        policy: Optional[str] = None,
    ) -> List[StatementItem]:
        """policy перекрывает RATE_LIMIT_POLICY для одного вызова (фоновые задачи ждут)."""
        from_ts, to_ts = resolve_period(period, now)
        await self._acquire(BUCKET_STATEMENT, policy)
        logger.debug(
            "[Client] statement",
            extra={"client": self._id, "period": period, "from": from_ts, "to": to_ts},
        )
        return await self._gateway.do(
            statement_request(self._token, account_id, from_ts, to_ts),
            List[StatementItem],
        )

    # ------------------------------------------------------------------ вебхук и курсы

    async def set_webhook(self, url: str) -> WebHookResponse:
        await self._acquire(BUCKET_WEBHOOK)
        response = await self._gateway.do(webhook_request(self._token, url), WebHookResponse)
        logger.info(
            "[Client] webhook set",
            extra={"client": self._id, "status": response.status or "-"},
        )
        return response

    async def get_currencies(self, policy: Optional[str] = None) -> List[Currency]:
        await self._acquire(BUCKET_CURRENCY, policy)
        return await self._gateway.do(currency_request(), List[Currency])

    # ------------------------------------------------------------------ отчёты

    def get_report(self, account_id: str) -> ReportEngine:
        engine = self._reports.get(account_id)
        if engine is None:
            engine = ReportEngine(account_id, page_size=self._page_size)
            self._reports[account_id] = engine
        return engine

    def reset_report(self, account_id: str, now: Optional[datetime] = None) -> int:
        engine = self._reports.get(account_id)
        if engine is None:
            return 0
        return engine.reset_cache(now)


__all__ = ["BankClient", "fnv1a_32", "NO_NAME"]

# =============================================================================
# Пояснения «для чайника»:
#   • Monobank отвечает на персональные запросы раз в минуту на токен, поэтому
#     баланс/имя клиента берутся из кэша, если окно ещё не открылось.
#   • /balance вызывает clear().get_info(): пользователь получает либо свежий
#     баланс, либо просьбу подождать, но не старые цифры.
#   • Каждый счёт имеет свой Report Engine; вебхук по счёту сбрасывает его кэш.
# =============================================================================
