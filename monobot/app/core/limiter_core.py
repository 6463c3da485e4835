# -*- coding: utf-8 -*-
# monobot/app/core/limiter_core.py
# =============================================================================
# Назначение кода:
#   • Лимитеры частоты запросов к Monobank: «один вызов за интервал», burst 1.
#   • Набор лимитеров (LimiterSet) на один токен: отдельное ведро на каждую
#     операцию (info / statement / webhook / currency).
#
# Канон / инварианты:
#   • Лимитер новый → первый allow() разрешён сразу (ведро полное).
#   • Пустое ведро пополняется на 1 токен за interval_sec; больше burst
#     не накапливается.
#   • Ведра разных операций и разных токенов независимы.
#   • allow() безопасен при одновременных вызовах (threading.Lock):
#     лимитер делят путь бота и фоновые задачи.
#
# Запреты:
#   • Никаких сетевых вызовов и логики Monobank — только учёт времени.
# =============================================================================

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable, Dict, Iterable, Mapping

Clock = Callable[[], float]

BUCKET_INFO = "info"
BUCKET_STATEMENT = "statement"
BUCKET_WEBHOOK = "webhook"
BUCKET_CURRENCY = "currency"


class RateLimiter:
    """
    Token bucket с пополнением 1 токен / interval_sec и ёмкостью burst.

    clock подменяется в тестах; по умолчанию time.monotonic.
    """

    def __init__(
        self,
        interval_sec: float,
        *,
        burst: int = 1,
        clock: Clock = time.monotonic,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        if burst < 1:
            raise ValueError("burst must be >= 1")
        self.interval_sec = float(interval_sec)
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.burst), self._tokens + elapsed / self.interval_sec)
        self._updated_at = now

    def allow(self) -> bool:
        """Забрать токен, если он есть. Не ждёт."""
        with self._lock:
            self._refill(self._clock())
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def delay(self) -> float:
        """Секунды до появления следующего токена (0 — токен уже есть)."""
        with self._lock:
            self._refill(self._clock())
            if self._tokens >= 1.0:
                return 0.0
            return (1.0 - self._tokens) * self.interval_sec

    async def wait(self) -> None:
        """Дождаться токена и забрать его."""
        while not self.allow():
            await asyncio.sleep(max(self.delay(), 0.05))


class LimiterSet:
    """Лимитеры одного токена Monobank, по одному на имя операции."""

    def __init__(
        self,
        intervals: Mapping[str, float],
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._limiters: Dict[str, RateLimiter] = {
            name: RateLimiter(interval, clock=clock)
            for name, interval in intervals.items()
        }

    @classmethod
    def from_settings(cls, settings: object, *, clock: Clock = time.monotonic) -> "LimiterSet":
        return cls(
            {
                BUCKET_INFO: getattr(settings, "RATE_LIMIT_INFO_SEC", 65.0),
                BUCKET_STATEMENT: getattr(settings, "RATE_LIMIT_STATEMENT_SEC", 61.0),
                BUCKET_WEBHOOK: getattr(settings, "RATE_LIMIT_WEBHOOK_SEC", 60.0),
                BUCKET_CURRENCY: getattr(settings, "RATE_LIMIT_CURRENCY_SEC", 60.0),
            },
            clock=clock,
        )

    def get(self, name: str) -> RateLimiter:
        try:
            return self._limiters[name]
        except KeyError:
            raise KeyError(f"unknown limiter bucket: {name}") from None

    def allow(self, name: str) -> bool:
        return self.get(name).allow()

    def names(self) -> Iterable[str]:
        return tuple(self._limiters)


__all__ = [
    "RateLimiter",
    "LimiterSet",
    "BUCKET_INFO",
    "BUCKET_STATEMENT",
    "BUCKET_WEBHOOK",
    "BUCKET_CURRENCY",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Monobank разрешает персональные запросы примерно раз в минуту на токен.
#   • allow() отвечает «можно сейчас?» и сразу тратит разрешение.
#   • wait() используется политикой RATE_LIMIT_POLICY=wait: задача спит до
#     следующего окна, не блокируя цикл событий.
# =============================================================================
