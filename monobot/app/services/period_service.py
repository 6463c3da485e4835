# -*- coding: utf-8 -*-
# monobot/app/services/period_service.py
# =============================================================================
# Назначение кода:
#   Перевод человеко-читаемой метки периода («Today», «Last month»,
#   «March», ...) в полуоткрытый интервал Unix-времени [from, to) для
#   запроса выписки Monobank.
#
# Канон / инварианты:
#   • Границы — полночь в гражданской зоне TIMEZONE (Europe/Kyiv), не UTC.
#   • to == 0 означает «открыт до текущего момента». Конечный to только у
#     Last week, Last month и у месяца, который целиком позади или впереди.
#   • Недели по ISO-8601: начинаются в понедельник, номер недели и её год
#     берутся из date.isocalendar() (неделя на стыке лет принадлежит году,
#     в котором больше её дней).
#   • Названия месяцев — месяц ТЕКУЩЕГО года.
#   • Неизвестная метка → InvalidPeriodError.
#
# Запреты:
#   • Никаких сетевых вызовов: чистая функция от (метка, now, tz).
# =============================================================================

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from monobot.app.core.config_core import get_settings
from monobot.app.core.errors_core import InvalidPeriodError

settings = get_settings()

TODAY = "Today"
THIS_WEEK = "This week"
LAST_WEEK = "Last week"
THIS_MONTH = "This month"
LAST_MONTH = "Last month"

RELATIVE_PERIODS: Tuple[str, ...] = (TODAY, THIS_WEEK, LAST_WEEK, THIS_MONTH, LAST_MONTH)

MONTH_NAMES: Tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

REPORT_PERIODS: Tuple[str, ...] = RELATIVE_PERIODS + MONTH_NAMES


def is_period_label(label: str) -> bool:
    return label in REPORT_PERIODS


def _zone(tz: Optional[ZoneInfo]) -> ZoneInfo:
    return tz or ZoneInfo(settings.TIMEZONE)


def _local_now(now: Optional[datetime], tz: ZoneInfo) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def _midnight(day: date, tz: ZoneInfo) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=tz).timestamp())


def _month_start(year: int, month: int) -> date:
    # month может выйти за 1..12 на соседний год
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, 1)


def resolve_period(
    label: str,
    now: Optional[datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> Tuple[int, int]:
    """
    Вернуть (from_unix, to_unix) для метки периода.

    now подставляется в тестах; наивный datetime трактуется как время в tz.
    """
    zone = _zone(tz)
    local = _local_now(now, zone)
    today = local.date()

    if label == TODAY:
        return _midnight(today, zone), 0

    if label in (THIS_WEEK, LAST_WEEK):
        iso_year, iso_week, _ = today.isocalendar()
        monday = date.fromisocalendar(iso_year, iso_week, 1)
        if label == THIS_WEEK:
            return _midnight(monday, zone), 0
        return _midnight(monday - timedelta(days=7), zone), _midnight(monday, zone)

    if label == THIS_MONTH:
        return _midnight(_month_start(today.year, today.month), zone), 0

    if label == LAST_MONTH:
        start = _month_start(today.year, today.month - 1)
        end = _month_start(today.year, today.month)
        return _midnight(start, zone), _midnight(end, zone)

    if label in MONTH_NAMES:
        month = MONTH_NAMES.index(label) + 1
        start = _month_start(today.year, month)
        if month == today.month:
            return _midnight(start, zone), 0
        end = _month_start(today.year, month + 1)
        return _midnight(start, zone), _midnight(end, zone)

    raise InvalidPeriodError(details={"label": label})


def current_period_labels(now: Optional[datetime] = None, tz: Optional[ZoneInfo] = None) -> Tuple[str, ...]:
    """Метки, чьи отчёты может изменить операция «сейчас»: относительные + текущий месяц."""
    local = _local_now(now, _zone(tz))
    return RELATIVE_PERIODS + (MONTH_NAMES[local.month - 1],)


def available_months(now: Optional[datetime] = None, tz: Optional[ZoneInfo] = None) -> List[str]:
    """Месяцы текущего года до текущего включительно (для клавиатуры)."""
    local = _local_now(now, _zone(tz))
    return list(MONTH_NAMES[: local.month])


__all__ = [
    "TODAY",
    "THIS_WEEK",
    "LAST_WEEK",
    "THIS_MONTH",
    "LAST_MONTH",
    "RELATIVE_PERIODS",
    "MONTH_NAMES",
    "REPORT_PERIODS",
    "is_period_label",
    "resolve_period",
    "current_period_labels",
    "available_months",
]
