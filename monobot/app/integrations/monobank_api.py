# -*- coding: utf-8 -*-
# monobot/app/integrations/monobank_api.py
# =============================================================================
# monobot — Интеграция с Monobank API (единый шлюз запросов)
# -----------------------------------------------------------------------------
# Назначение:
#   • Единственная точка, через которую уходят HTTP-запросы к Monobank.
#   • Отправляет запрос (httpx.AsyncClient, явный таймаут), читает тело
#     целиком и декодирует JSON в форму, которую передал вызывающий
#     (pydantic TypeAdapter).
#   • Построители запросов: client-info, выписка, установка вебхука, курсы.
#
# Канон/инварианты:
#   • Сбой соединения/таймаут/чтения → TransportError.
#   • Не-JSON или несовпадение формы → DecodeError. Если при этом тело —
#     объект с errorDescription (типичный ответ 4xx), бросается UpstreamError
#     с текстом Monobank.
#   • Поле errorDescription внутри корректно декодированной формы
#     (например, ClientInfo) не интерпретируется — это решает Bank Client.
#   • Повторов нет: лимит Monobank один запрос в минуту, ретраи его сжигают.
#   • Тело каждого ответа пишется в лог на уровне DEBUG.
#
# Запреты:
#   • Модуль не знает про лимитеры, кэши и Telegram.
#   • Токен передаётся только заголовком X-Token и никогда не логируется.
# =============================================================================
from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from monobot.app.core.config_core import get_settings
from monobot.app.core.errors_core import DecodeError, TransportError, UpstreamError
from monobot.app.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()

T = TypeVar("T")

_BODY_LOG_LIMIT = 4096


@dataclass(slots=True)
class UpstreamRequest:
    """Описание одного запроса к Monobank."""

    method: str
    path: str
    token: Optional[str] = None
    json_body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def build_headers(self) -> Dict[str, str]:
        out = {"Accept": "application/json", **self.headers}
        if self.token:
            out["X-Token"] = self.token
        return out


# -----------------------------------------------------------------------------
# Построители запросов
# -----------------------------------------------------------------------------
def client_info_request(token: str) -> UpstreamRequest:
    return UpstreamRequest(method="GET", path="/personal/client-info", token=token)


def statement_request(token: str, account_id: str, from_ts: int, to_ts: int = 0) -> UpstreamRequest:
    """GET /personal/statement/{account}/{from}[/{to}]; to=0 — до текущего момента."""
    path = f"/personal/statement/{account_id}/{int(from_ts)}"
    if to_ts > 0:
        path = f"{path}/{int(to_ts)}"
    return UpstreamRequest(method="GET", path=path, token=token)


def webhook_request(token: str, url: str) -> UpstreamRequest:
    return UpstreamRequest(
        method="POST",
        path="/personal/webhook",
        token=token,
        json_body={"webHookUrl": url},
    )


def currency_request() -> UpstreamRequest:
    return UpstreamRequest(method="GET", path="/bank/currency")


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter[Any]:
    return TypeAdapter(shape)


def _extract_error_description(body: bytes) -> Optional[str]:
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("errorDescription"):
        return str(data["errorDescription"])
    return None


class MonobankGateway:
    """Тонкий асинхронный клиент Monobank с таймаутами и строгим декодированием.

    transport подменяется в тестах (httpx.MockTransport).
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.MONO_API_URL).rstrip("/")
        self.timeout_seconds = float(timeout_seconds or settings.NETWORK_REQUEST_TIMEOUT_SEC)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=transport,
        )

    async def do(self, request: UpstreamRequest, shape: Type[T] | Any) -> T:
        """Выполнить запрос и вернуть тело, декодированное в shape.

        Исключения: TransportError, DecodeError, UpstreamError.
        """

        try:
            response = await self._client.request(
                request.method,
                request.path,
                headers=request.build_headers(),
                json=request.json_body,
            )
            body = response.content
        except httpx.HTTPError as exc:
            logger.error(
                "[MonoAPI] transport failure",
                extra={"path": request.path, "error_type": type(exc).__name__},
            )
            raise TransportError(
                details={"path": request.path, "reason": type(exc).__name__},
            ) from exc

        logger.debug(
            "[MonoAPI] response %s %s: %s",
            response.status_code,
            request.path,
            body[:_BODY_LOG_LIMIT].decode("utf-8", errors="replace"),
        )

        try:
            return _adapter(shape).validate_json(body)
        except ValidationError as exc:
            description = _extract_error_description(body)
            if description is not None:
                logger.warning(
                    "[MonoAPI] upstream error",
                    extra={"path": request.path, "status": response.status_code},
                )
                raise UpstreamError(
                    description,
                    details={"status": response.status_code},
                ) from exc
            kind = "malformed_json" if any(e.get("type") == "json_invalid" for e in exc.errors()) else "shape_mismatch"
            logger.error(
                "[MonoAPI] decode failure",
                extra={"path": request.path, "status": response.status_code, "kind": kind},
            )
            raise DecodeError(details={"path": request.path, "kind": kind}) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "UpstreamRequest",
    "MonobankGateway",
    "client_info_request",
    "statement_request",
    "webhook_request",
    "currency_request",
]


# =============================================================================
# Пояснения «для чайника»:
#   • Этот модуль только ходит в Monobank и превращает JSON в схемы.
#   • Лимиты «раз в минуту» и кэш client-info живут в client_service.
#   • В логах DEBUG видны тела ответов; токены маскирует RedactingFilter,
#     но сюда они и не попадают: X-Token уходит только заголовком.
# =============================================================================
