# -*- coding: utf-8 -*-
# monobot/app/core/logging_core.py
# =============================================================================
# Назначение кода:
#   Централизованная настройка логирования monobot:
#   • формат и хэндлеры;
#   • контекст корреляции (request_id вебхука, chat/user апдейта Telegram);
#   • защита от утечек токенов Telegram и Monobank;
#   • утилиты для модулей бота.
#
# Канон / инварианты:
#   • Единый стиль логов во всём приложении:
#       - prod — JSON (python-json-logger),
#       - dev/local — человекочитаемый формат.
#   • Логи не имеют права «ронять» приложение:
#       - ошибки фильтра → запись уходит как есть.
#   • Значимые операции сопровождаем полями: env, svc, rid, chat, uid.
#
# Запреты:
#   • Никакого логирования токенов (X-Token, токен бота).
#   • Никаких сетевых/блокирующих операций в форматерах/фильтрах.
# =============================================================================

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple

from pythonjsonlogger.json import JsonFormatter as _BaseJsonFormatter

from monobot.app.core.config_core import get_settings

ASGIApp = Callable[
    [Mapping[str, Any], Callable[..., Awaitable[Any]], Callable[..., Awaitable[Any]]],
    Awaitable[Any],
]


# -----------------------------------------------------------------------------
# Контекст корреляции (contextvars) — безопасно для асинхронного кода
# -----------------------------------------------------------------------------
_rid_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "rid",
    default=None,
)  # request_id вебхука
_chat_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "chat",
    default=None,
)  # chat_id апдейта Telegram
_uid_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "uid",
    default=None,
)  # user_id автора апдейта


def set_request_context(
    *,
    request_id: Optional[str] = None,
    chat_id: Optional[int | str] = None,
    user_id: Optional[int | str] = None,
) -> None:
    """
    Присвоить контекст корреляции текущей асинхронной задаче.

    Используется ASGI-middleware (request_id) и LoggingMiddleware бота
    (chat_id / user_id), чтобы все логи апдейта содержали эти поля.
    """
    if request_id is not None:
        _rid_var.set(str(request_id))
    if chat_id is not None:
        _chat_var.set(str(chat_id))
    if user_id is not None:
        _uid_var.set(str(user_id))


def clear_request_context() -> None:
    """Очистить контекст корреляции (после завершения запроса/апдейта)."""
    _rid_var.set(None)
    _chat_var.set(None)
    _uid_var.set(None)


# -----------------------------------------------------------------------------
# Фильтры логирования
# -----------------------------------------------------------------------------
class ContextFilter(logging.Filter):
    """
    Впрыскивает в запись структурированные поля из contextvars и настроек.

    Поля:
      • env  — нормализованная среда (local/dev/prod);
      • svc  — имя сервиса (PROJECT_NAME);
      • rid  — request_id вебхука Monobank;
      • chat — чат Telegram;
      • uid  — пользователь Telegram.
    """

    def __init__(self, env: str, service: str) -> None:
        super().__init__()
        self._env = env
        self._svc = service

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "env"):
            record.env = self._env
        if not hasattr(record, "svc"):
            record.svc = self._svc
        if not hasattr(record, "rid"):
            record.rid = _rid_var.get() or "-"
        if not hasattr(record, "chat"):
            record.chat = _chat_var.get() or "-"
        if not hasattr(record, "uid"):
            record.uid = _uid_var.get() or "-"
        return True


class RedactingFilter(logging.Filter):
    """
    Маскирует токен бота и токены Monobank в сообщении и его аргументах.

    Секреты берутся значениями из настроек, а не по именам ключей: токен
    Monobank может оказаться в URL, в теле ответа или в тексте исключения.
    """

    MASK = "****"

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self._secrets: list[str] = [s for s in secrets if s]

    def redact(self, text: str) -> str:
        if not text:
            return text
        redacted = text
        for secret in self._secrets:
            if secret in redacted:
                redacted = redacted.replace(secret, self.MASK)
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            if isinstance(record.msg, str):
                record.msg = self.redact(record.msg)
            if isinstance(record.args, tuple):
                record.args = tuple(
                    self.redact(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        except Exception:  # noqa: BLE001 - фильтр не должен ломать логирование
            pass
        return True


# -----------------------------------------------------------------------------
# Форматеры
# -----------------------------------------------------------------------------
class DevFormatter(logging.Formatter):
    """
    Человекочитаемый формат для local/dev-окружений.

    Пример строки:
    2026-10-17 12:00:00 | INFO     | monobot | monobot.app.bot | rid=- chat=-100 uid=42 | msg
    """

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "%(asctime)s | %(levelname)-8s | %(svc)s | %(name)s | "
                "rid=%(rid)s chat=%(chat)s uid=%(uid)s | %(message)s"
            ),
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class JsonFormatter(_BaseJsonFormatter):
    """JSON-строка на запись; extra-поля вызова сохраняются как есть."""

    _RENAMES: Tuple[Tuple[str, str], ...] = (
        ("asctime", "time"),
        ("levelname", "level"),
        ("svc", "service"),
        ("name", "logger"),
        ("message", "msg"),
    )

    def process_log_record(self, log_record: Dict[str, Any]) -> Dict[str, Any]:
        for src, dst in self._RENAMES:
            if src in log_record:
                log_record[dst] = log_record.pop(src)
        return super().process_log_record(log_record)


def _make_json_formatter() -> logging.Formatter:
    return JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(svc)s %(name)s %(env)s %(rid)s %(chat)s %(uid)s %(message)s",
    )


def _resolve_level(debug: bool, level_name: Optional[str]) -> int:
    """LOG_LEVEL важнее DEBUG; неизвестное имя уровня игнорируется."""
    if level_name:
        level = logging.getLevelName(level_name.strip().upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if debug else logging.INFO


# -----------------------------------------------------------------------------
# Инициализация логирования
# -----------------------------------------------------------------------------
def setup_logging() -> None:
    """
    Полностью настраивает логирование:

      • root-логгер, формат, уровни;
      • консоль (stdout);
      • фильтры контекста и маскирования токенов;
      • uvicorn/fastapi/aiogram-логгеры → в root (единый формат);
      • httpx-логгер не выше WARNING (в его строках есть URL с id счёта).
    """
    settings = get_settings()
    env = settings.env_normalized
    service = settings.PROJECT_NAME
    level = _resolve_level(settings.DEBUG, settings.LOG_LEVEL)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    ctx_filter = ContextFilter(env=env, service=service)
    redact_filter = RedactingFilter(settings.secret_values())

    console_handler = logging.StreamHandler(sys.stdout)
    if env in ("local", "dev"):
        formatter: logging.Formatter = DevFormatter()
    else:
        formatter = _make_json_formatter()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ctx_filter)
    console_handler.addFilter(redact_filter)
    root.addHandler(console_handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "aiogram"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(level)
        logger.propagate = True

    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={"env": env, "level": logging.getLevelName(level)},
    )


def get_logger(name: Optional[str] = None, **extra: Any) -> logging.Logger:
    """
    Получить логгер по имени и (опционально) привязать дополнительные поля
    через LoggerAdapter.

    Пример:
        log = get_logger(__name__, component="notifier")
    """
    base = logging.getLogger(name)
    if not extra:
        return base
    return logging.LoggerAdapter(base, extra)  # type: ignore[return-value]


# -----------------------------------------------------------------------------
# ASGI-middleware для корреляции (подключается в create_app)
# -----------------------------------------------------------------------------
class CorrelationIdMiddleware:
    """
    Берёт X-Request-ID из заголовков (или генерирует UUID4 hex), кладёт его
    в contextvars и возвращает тем же заголовком в ответе.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[Any]],
        send: Callable[..., Awaitable[Any]],
    ) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        headers: Dict[str, str] = {
            key.decode("latin-1").lower(): value.decode("latin-1")
            for key, value in (scope.get("headers") or [])
        }
        rid = headers.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id=rid)

        async def send_wrapper(message: Mapping[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers_list: list[Tuple[bytes, bytes]] = list(
                    message.get("headers") or [],
                )
                headers_list.append((b"x-request-id", rid.encode("utf-8")))
                new_message: Dict[str, Any] = dict(message)
                new_message["headers"] = headers_list
                await send(new_message)
                return
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_request_context()


# -----------------------------------------------------------------------------
# Автоконфигурация при импорте
# -----------------------------------------------------------------------------
setup_logging()

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_context",
    "clear_request_context",
    "ContextFilter",
    "RedactingFilter",
    "CorrelationIdMiddleware",
]
# =============================================================================
# Пояснения «для чайника»:
#   • В dev/local вы увидите читаемые строки; в prod — JSON для сборщика логов.
#   • LoggingMiddleware бота кладёт chat/uid в контекст, поэтому любые логи,
#     написанные во время обработки апдейта, содержат чат и пользователя.
#   • Токены Telegram и Monobank в логах автоматически заменяются на "****".
# =============================================================================
