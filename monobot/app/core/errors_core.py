# -*- coding: utf-8 -*-
# monobot/app/core/errors_core.py
# =============================================================================
# Назначение кода:
#   • Единый слой доменных ошибок monobot.
#   • Стабильные коды ошибок для логов, ответов HTTP и текстов в Telegram.
#   • Унифицированные JSON-ответы для FastAPI (листенер вебхука).
#
# Канон / инварианты:
#   • Gateway, Bank Client, Period Resolver и Callback Codec бросают ТОЛЬКО
#     исключения из этого модуля.
#   • Пользователю Telegram никогда не уходят технические детали
#     (URL, токены, тексты исключений httpx) — только user_message().
#   • Ошибка лимита всегда видна пользователю как «подождите минуту».
#
# Запреты:
#   • Не включать сюда бизнес-логику.
#   • Не класть в details токены и сырые тела ответов.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, cast

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from monobot.app.core.logging_core import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "please waiting 1 minute and then try again"
GENERIC_FAILURE_MESSAGE = "Щось пішло не так, спробуйте пізніше."


# -----------------------------------------------------------------------------
# Базовая доменная ошибка
# -----------------------------------------------------------------------------
@dataclass
class MonoBotError(Exception):
    """
    Базовое доменное исключение monobot.

    Поля:
      • code         — стабильный машинный код ошибки (snake_case).
      • message      — короткое безопасное сообщение.
      • http_status  — HTTP код для листенера вебхука.
      • details      — безопасные детали (без секретов), опционально.
    """

    code: str
    message: str
    http_status: int = status.HTTP_400_BAD_REQUEST
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Готовит JSON-ответ для клиента."""
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def user_message(self) -> str:
        """Текст, который можно показать в Telegram."""
        return GENERIC_FAILURE_MESSAGE

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# -----------------------------------------------------------------------------
# Ошибки компонентов
# -----------------------------------------------------------------------------
class RateLimitedError(MonoBotError):
    """Лимитер операции пуст, а кэша (для info) нет."""

    def __init__(
        self,
        message: str = RATE_LIMIT_MESSAGE,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="rate_limited",
            message=message,
            http_status=status.HTTP_429_TOO_MANY_REQUESTS,
            details=details or {},
        )

    def user_message(self) -> str:
        return self.message


class InvalidPeriodError(MonoBotError):
    """Метка периода не входит в поддерживаемый набор."""

    def __init__(
        self,
        message: str = "incorrect period",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="invalid_period",
            message=message,
            http_status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details or {},
        )

    def user_message(self) -> str:
        return self.message


class TransportError(MonoBotError):
    """Upstream недоступен: соединение, таймаут, чтение тела."""

    def __init__(
        self,
        message: str = "Upstream transport failure.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="transport_error",
            message=message,
            http_status=status.HTTP_502_BAD_GATEWAY,
            details=details or {},
        )


class DecodeError(MonoBotError):
    """Тело ответа не JSON или не совпадает с ожидаемой формой."""

    def __init__(
        self,
        message: str = "Upstream response could not be decoded.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="decode_error",
            message=message,
            http_status=status.HTTP_502_BAD_GATEWAY,
            details=details or {},
        )


class UpstreamError(MonoBotError):
    """Monobank ответил корректным JSON с полем errorDescription."""

    def __init__(
        self,
        message: str = "Upstream returned an error.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="upstream_error",
            message=message,
            http_status=status.HTTP_502_BAD_GATEWAY,
            details=details or {},
        )

    def user_message(self) -> str:
        return f"error: {self.message}"


class NotFoundError(MonoBotError):
    """Клиент или счёт не найден."""

    def __init__(
        self,
        message: str = "Resource not found.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="not_found",
            message=message,
            http_status=status.HTTP_404_NOT_FOUND,
            details=details or {},
        )

    def user_message(self) -> str:
        return self.message


class InvalidCallbackError(MonoBotError):
    """Callback-токен повреждён, чужой версии или неизвестного действия."""

    def __init__(
        self,
        message: str = "Invalid callback data.",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            code="invalid_callback",
            message=message,
            http_status=status.HTTP_400_BAD_REQUEST,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# Нормализация исключений → (status_code, payload)
# -----------------------------------------------------------------------------
def normalize_exception(
    exc: BaseException,
) -> Tuple[int, Dict[str, Any]]:
    """
    Приводит произвольное исключение к каноническому HTTP-ответу.

    Правила:
      • MonoBotError     → свой http_status + to_payload().
      • HTTPException    → status_code + {"error": "http_error", "message", ...}.
      • Любая другая     → 500 + {"error": "internal_error"} (без деталей).
    """
    if isinstance(exc, MonoBotError):
        return exc.http_status, exc.to_payload()

    if isinstance(exc, HTTPException):
        details: Dict[str, Any] = {}
        if isinstance(exc.detail, str):
            msg = exc.detail
        elif isinstance(exc.detail, dict):
            details = cast(Dict[str, Any], exc.detail)
            msg = details.get("message") or details.get("detail") or "HTTP error."
        else:
            msg = "HTTP error."
        payload: Dict[str, Any] = {"error": "http_error", "message": msg}
        if details:
            payload["details"] = details
        return exc.status_code, payload

    logger.exception("Unhandled exception", extra={"error_type": type(exc).__name__})
    return (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "error": "internal_error",
            "message": "Internal server error.",
        },
    )


def user_message_for(exc: BaseException) -> str:
    """Безопасный текст ошибки для ответа в Telegram."""
    if isinstance(exc, MonoBotError):
        return exc.user_message()
    return GENERIC_FAILURE_MESSAGE


# -----------------------------------------------------------------------------
# FastAPI-хендлеры исключений
# -----------------------------------------------------------------------------
async def monobot_error_handler(
    request: Request, exc: MonoBotError
) -> JSONResponse:
    status_code, payload = normalize_exception(exc)
    logger.warning(
        "MonoBotError handled",
        extra={
            "path": request.url.path,
            "error": exc.code,
            "status": status_code,
        },
    )
    return JSONResponse(status_code=status_code, content=payload)


async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Обработчик «на всё остальное»: наружу только internal_error."""
    status_code, payload = normalize_exception(exc)
    logger.error(
        "Unhandled exception handled by generic handler",
        extra={
            "path": request.url.path,
            "status": status_code,
            "exc_type": type(exc).__name__,
        },
    )
    return JSONResponse(status_code=status_code, content=payload)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Подключает обработчики исключений.

    Вызывать один раз при создании приложения:
        app = FastAPI(...)
        setup_exception_handlers(app)
    """
    app.add_exception_handler(MonoBotError, monobot_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Exception handlers registered for MonoBotError/Exception")


__all__ = [
    "MonoBotError",
    "RateLimitedError",
    "InvalidPeriodError",
    "TransportError",
    "DecodeError",
    "UpstreamError",
    "NotFoundError",
    "InvalidCallbackError",
    "RATE_LIMIT_MESSAGE",
    "GENERIC_FAILURE_MESSAGE",
    "normalize_exception",
    "user_message_for",
    "setup_exception_handlers",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Сервисы бросают наследников MonoBotError; SafeMiddleware бота превращает
#     их в короткий ответ через user_message_for().
#   • RateLimitedError — это не сбой: Monobank разрешает один запрос в минуту,
#     поэтому пользователь просто видит просьбу подождать.
#   • В create_app() не забудьте вызвать setup_exception_handlers(app).
# =============================================================================
