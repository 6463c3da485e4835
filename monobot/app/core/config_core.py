# -*- coding: utf-8 -*-
# monobot/app/core/config_core.py
# =============================================================================
# Назначение:
#   • Единый конфигурационный модуль monobot (aiogram + FastAPI + httpx).
#   • Канонический источник всех настроек: Telegram, доступ, токены Monobank,
#     лимиты upstream, отчёты, вебхук-листенер, ежедневная сводка.
#
# Канон / инварианты:
#   1) Секреты (TELEGRAM_TOKEN, MONO_TOKENS) берутся только из ENV/.env.
#   2) Интервалы лимитов upstream — секунды на один вызов, burst = 1.
#      Каждый токен получает собственный набор лимитеров.
#   3) Все периоды отчётов считаются в гражданской зоне TIMEZONE
#      (по умолчанию Europe/Kyiv).
#   4) Каждый исходящий запрос имеет явный таймаут
#      (NETWORK_REQUEST_TIMEOUT_SEC).
#
# Запреты:
#   • Никаких сетевых вызовов при загрузке настроек.
#   • Никаких секретов в debug_dump().
# =============================================================================

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, List, Optional

from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Вспомогательные утилиты (локальные, без сетевых вызовов)
# =============================================================================


def _parse_csv(value: object) -> List[str]:
    """Преобразует CSV-строку 'a,b,c' в ['a', 'b', 'c'] (пробелы обрезаются)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(x).strip() for x in value if str(x).strip()]
    s = str(value).strip()
    if not s:
        return []
    return [item.strip() for item in s.split(",") if item.strip()]


def _parse_int_csv(value: object) -> List[int]:
    """CSV → список int; нечисловые элементы отбрасываются."""
    out: List[int] = []
    for item in _parse_csv(value):
        try:
            out.append(int(item))
        except ValueError:
            continue
    return out


_HHMM = re.compile(r"^(?P<h>[01]?\d|2[0-3]):(?P<m>[0-5]\d)$")


def _to_cron(raw: str) -> str:
    """«HH:MM» → «M H * * *»; cron-выражение возвращается как есть."""
    m = _HHMM.match(raw)
    if m is None:
        return " ".join(raw.split())
    return f"{int(m.group('m'))} {int(m.group('h'))} * * *"


# =============================================================================
# Док-описания полей
# =============================================================================


class _Doc:
    # Приложение
    PROJECT_NAME = "Имя сервиса (попадает в логи)."
    ENV = "Окружение: production/dev/local (нормализуется в prod/dev/local)."
    DEBUG = "Расширенные логи (уровень DEBUG)."
    LOG_LEVEL = "Явный уровень логов (DEBUG/INFO/WARNING/...), важнее DEBUG."

    # Telegram
    TELEGRAM_TOKEN = "Токен Telegram-бота."
    TELEGRAM_ADMINS = "CSV id пользователей-администраторов."
    TELEGRAM_CHATS = "CSV id разрешённых чатов."

    # Monobank
    MONO_TOKENS = "CSV токенов Monobank (X-Token), по одному на клиента."
    MONO_API_URL = "Базовый URL API Monobank."
    NETWORK_REQUEST_TIMEOUT_SEC = "Таймаут одного запроса к upstream (сек)."

    RATE_LIMIT_INFO_SEC = "Интервал между запросами client-info (сек)."
    RATE_LIMIT_STATEMENT_SEC = "Интервал между запросами выписки (сек)."
    RATE_LIMIT_WEBHOOK_SEC = "Интервал между установками вебхука (сек)."
    RATE_LIMIT_CURRENCY_SEC = "Интервал между запросами курсов (сек)."
    RATE_LIMIT_POLICY = (
        "Поведение при пустом лимитере: fail — сразу ошибка, "
        "wait — дождаться следующего токена."
    )

    # Вебхук-листенер
    APP_HOST = "Адрес для uvicorn (обычно 0.0.0.0)."
    APP_PORT = "Порт листенера вебхуков Monobank."
    WEBHOOK_PATH = "Путь, на который Monobank шлёт транзакции."
    NOTIFY_QUEUE_SIZE = "Ёмкость очереди передачи событий вебхука в обработчик."

    # Отчёты
    TIMEZONE = "Часовой пояс границ периодов (IANA)."
    REPORT_PAGE_SIZE = "Количество операций на странице отчёта."
    SCHEDULE_TIME = (
        "Расписание сводки: cron из 5 полей (\"0 21 * * *\") или HH:MM; "
        "время в TIMEZONE, пусто — выключено."
    )


class Settings(BaseSettings):
    """
    Контейнер переменных окружения monobot.

    Важное:
      • CSV-поля хранятся строкой как в ENV; разобранные списки отдают
        свойства admin_ids / chat_ids / mono_tokens.
      • Значения лимитов и таймаутов строго положительные.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------- БАЗОВЫЕ НАСТРОЙКИ ---------------------------
    PROJECT_NAME: str = Field("monobot", description=_Doc.PROJECT_NAME)
    ENV: str = Field("production", description=_Doc.ENV)
    DEBUG: bool = Field(False, description=_Doc.DEBUG)
    LOG_LEVEL: Optional[str] = Field(None, description=_Doc.LOG_LEVEL)

    # -------------------------------- TELEGRAM -------------------------------
    TELEGRAM_TOKEN: Optional[str] = Field(None, description=_Doc.TELEGRAM_TOKEN)
    TELEGRAM_ADMINS: str = Field("", description=_Doc.TELEGRAM_ADMINS)
    TELEGRAM_CHATS: str = Field("", description=_Doc.TELEGRAM_CHATS)

    # -------------------------------- MONOBANK -------------------------------
    MONO_TOKENS: str = Field("", description=_Doc.MONO_TOKENS)
    MONO_API_URL: str = Field(
        "https://api.monobank.ua",
        description=_Doc.MONO_API_URL,
    )
    NETWORK_REQUEST_TIMEOUT_SEC: float = Field(
        20.0,
        description=_Doc.NETWORK_REQUEST_TIMEOUT_SEC,
    )

    RATE_LIMIT_INFO_SEC: float = Field(65.0, description=_Doc.RATE_LIMIT_INFO_SEC)
    RATE_LIMIT_STATEMENT_SEC: float = Field(
        61.0,
        description=_Doc.RATE_LIMIT_STATEMENT_SEC,
    )
    RATE_LIMIT_WEBHOOK_SEC: float = Field(
        60.0,
        description=_Doc.RATE_LIMIT_WEBHOOK_SEC,
    )
    RATE_LIMIT_CURRENCY_SEC: float = Field(
        60.0,
        description=_Doc.RATE_LIMIT_CURRENCY_SEC,
    )
    RATE_LIMIT_POLICY: str = Field("fail", description=_Doc.RATE_LIMIT_POLICY)

    # ----------------------------- ВЕБХУК-ЛИСТЕНЕР ---------------------------
    APP_HOST: str = Field("0.0.0.0", description=_Doc.APP_HOST)
    APP_PORT: int = Field(8080, description=_Doc.APP_PORT)
    WEBHOOK_PATH: str = Field("/web_hook", description=_Doc.WEBHOOK_PATH)
    NOTIFY_QUEUE_SIZE: int = Field(100, description=_Doc.NOTIFY_QUEUE_SIZE)

    # --------------------------------- ОТЧЁТЫ --------------------------------
    TIMEZONE: str = Field("Europe/Kyiv", description=_Doc.TIMEZONE)
    REPORT_PAGE_SIZE: int = Field(5, description=_Doc.REPORT_PAGE_SIZE)
    SCHEDULE_TIME: Optional[str] = Field(None, description=_Doc.SCHEDULE_TIME)

    # =============================== ВАЛИДАТОРЫ ==============================

    @field_validator(
        "NETWORK_REQUEST_TIMEOUT_SEC",
        "RATE_LIMIT_INFO_SEC",
        "RATE_LIMIT_STATEMENT_SEC",
        "RATE_LIMIT_WEBHOOK_SEC",
        "RATE_LIMIT_CURRENCY_SEC",
        "REPORT_PAGE_SIZE",
        "NOTIFY_QUEUE_SIZE",
    )
    @classmethod
    def _v_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("значение должно быть > 0")
        return value

    @field_validator("RATE_LIMIT_POLICY", mode="before")
    @classmethod
    def _v_policy(cls, value: object) -> str:
        policy = str(value or "fail").strip().lower()
        if policy not in ("fail", "wait"):
            raise ValueError("RATE_LIMIT_POLICY: ожидается fail или wait")
        return policy

    @field_validator("SCHEDULE_TIME", mode="before")
    @classmethod
    def _v_schedule_time(cls, value: object) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        raw = str(value).strip()
        cron = _to_cron(raw)
        if len(cron.split()) != 5 or not croniter.is_valid(cron):
            raise ValueError("SCHEDULE_TIME: ожидается cron-выражение из 5 полей или HH:MM")
        return raw

    @field_validator("WEBHOOK_PATH", mode="before")
    @classmethod
    def _v_webhook_path(cls, value: object) -> str:
        path = str(value or "/web_hook").strip()
        if not path.startswith("/"):
            path = "/" + path
        return path

    # =========================== Удобные свойства/методы =====================

    @property
    def env_normalized(self) -> str:
        """Нормализует ENV к одному из: prod/dev/local."""
        value = (self.ENV or "").strip().lower()
        if value.startswith("dev"):
            return "dev"
        if value.startswith("loc"):
            return "local"
        return "prod"

    @property
    def is_prod(self) -> bool:
        return self.env_normalized == "prod"

    @property
    def admin_ids(self) -> List[int]:
        return _parse_int_csv(self.TELEGRAM_ADMINS)

    @property
    def chat_ids(self) -> List[int]:
        return _parse_int_csv(self.TELEGRAM_CHATS)

    @property
    def mono_tokens(self) -> List[str]:
        return _parse_csv(self.MONO_TOKENS)

    @property
    def schedule_cron(self) -> Optional[str]:
        """Cron-выражение ежедневной сводки или None, если она выключена."""
        if not self.SCHEDULE_TIME:
            return None
        return _to_cron(self.SCHEDULE_TIME)

    def secret_values(self) -> List[str]:
        """Все значения, которые нельзя печатать в логи."""
        secrets = list(self.mono_tokens)
        if self.TELEGRAM_TOKEN:
            secrets.append(self.TELEGRAM_TOKEN)
        return secrets

    def debug_dump(self) -> Dict[str, str]:
        """Безопасный дамп ключевых настроек (без секретов) для логов."""
        return {
            "env": self.env_normalized,
            "projectName": self.PROJECT_NAME,
            "telegramTokenSet": "yes" if self.TELEGRAM_TOKEN else "no",
            "admins": str(len(self.admin_ids)),
            "chats": str(len(self.chat_ids)),
            "monoClients": str(len(self.mono_tokens)),
            "monoApiUrl": self.MONO_API_URL,
            "rateLimitPolicy": self.RATE_LIMIT_POLICY,
            "listen": f"{self.APP_HOST}:{self.APP_PORT}{self.WEBHOOK_PATH}",
            "timezone": self.TIMEZONE,
            "scheduleTime": self.SCHEDULE_TIME or "off",
        }


# =============================================================================
# Синглтон настроек для всего приложения
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Создаёт и кэширует объект Settings."""
    return Settings()


# Удобный глобальный экспорт:
# from monobot.app.core.config_core import settings
settings: Settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]

# =============================================================================
# Пояснения «для чайника»:
#   • Все параметры задаются переменными окружения или файлом .env.
#   • TELEGRAM_ADMINS / TELEGRAM_CHATS / MONO_TOKENS — строки через запятую.
#   • RATE_LIMIT_POLICY=wait заставит бота ждать окно Monobank вместо ответа
#     «подождите минуту».
#   • SCHEDULE_TIME="0 21 * * *" (или коротко 21:00) включает сводку в чаты.
# =============================================================================
