# -*- coding: utf-8 -*-
# monobot/app/bot/callback_codec.py
# =============================================================================
# monobot — кодек callback_data inline-кнопок
# -----------------------------------------------------------------------------
# Назначение:
#   • Упаковать состояние взаимодействия (действие, период, клиент, счёт,
#     страница) в короткую строку callback_data и распаковать обратно.
#   • Inline-клавиатуры Telegram не хранят сессию, поэтому всё нужное для
#     следующего шага едет внутри кнопки.
#
# Канон/инварианты:
#   • Формат: <tag>:v<версия>:<период_через_подчёркивания>:<клиент>:<счёт>:<страница>.
#   • Разбор позиционный и строгий: иное число полей, неизвестный тег,
#     чужая версия или нечисловые номера → InvalidCallbackError.
#   • encode→decode возвращает исходный кортеж в точности.
#   • Длина токена ≤ 64 байт (ограничение Telegram на callback_data).
#
# Запреты:
#   • Никаких сетевых вызовов и обращения к кэшу отчётов.
# =============================================================================
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from monobot.app.core.errors_core import InvalidCallbackError
from monobot.app.services.period_service import is_period_label
from monobot.app.services.report_service import period_from_token, period_token

CALLBACK_VERSION = 1
CALLBACK_MAX_BYTES = 64
SEPARATOR = ":"

_TOKEN = re.compile(
    r"^(?P<tag>[a-z]{2}):v(?P<version>\d{1,3}):(?P<period>[A-Za-z_]{0,16}):"
    r"(?P<client>\d{1,10}):(?P<account>[A-Za-z0-9_\-]{0,40}):(?P<page>\d{1,6})$"
)
_ACCOUNT = re.compile(r"^[A-Za-z0-9_\-]{0,40}$")


class CallbackAction(str, Enum):
    """Теги действий inline-кнопок."""

    BALANCE = "bc"  # баланс выбранного клиента
    REPORT_CLIENT = "rc"  # отчёт: выбран клиент → список счетов
    REPORT_ACCOUNT = "ra"  # отчёт: выбран счёт → выбор периода
    REPORT_PAGE = "rp"  # отчёт: первая страница периода
    REPORT_UPDATE = "rr"  # отчёт: переход на другую страницу

    @property
    def prefix(self) -> str:
        return f"{self.value}{SEPARATOR}"


@dataclass(slots=True, frozen=True)
class CallbackData:
    """Состояние, которое несёт одна кнопка."""

    action: CallbackAction
    period: str = ""
    client_id: int = 0
    account_id: str = ""
    page: int = 0


def encode(data: CallbackData) -> str:
    """Собрать callback_data; бросает InvalidCallbackError, если поле не кодируется."""
    if data.period and not is_period_label(data.period):
        raise InvalidCallbackError(details={"period": data.period})
    if not _ACCOUNT.match(data.account_id):
        raise InvalidCallbackError(details={"account": "unsupported characters"})
    if data.client_id < 0 or data.page < 0:
        raise InvalidCallbackError(details={"reason": "negative number"})

    token = SEPARATOR.join(
        (
            data.action.value,
            f"v{CALLBACK_VERSION}",
            period_token(data.period),
            str(data.client_id),
            data.account_id,
            str(data.page),
        )
    )
    if len(token.encode("utf-8")) > CALLBACK_MAX_BYTES:
        raise InvalidCallbackError(details={"reason": "token too long", "length": len(token)})
    return token


def decode(token: str) -> CallbackData:
    """Разобрать callback_data. Любое отклонение от формата → InvalidCallbackError."""
    m = _TOKEN.match(token or "")
    if m is None:
        raise InvalidCallbackError(details={"reason": "malformed"})
    if int(m.group("version")) != CALLBACK_VERSION:
        raise InvalidCallbackError(details={"reason": "version", "version": m.group("version")})
    try:
        action = CallbackAction(m.group("tag"))
    except ValueError:
        raise InvalidCallbackError(details={"reason": "tag", "tag": m.group("tag")}) from None

    period = period_from_token(m.group("period"))
    if period and not is_period_label(period):
        raise InvalidCallbackError(details={"reason": "period"})

    return CallbackData(
        action=action,
        period=period,
        client_id=int(m.group("client")),
        account_id=m.group("account"),
        page=int(m.group("page")),
    )


__all__ = [
    "CALLBACK_VERSION",
    "CALLBACK_MAX_BYTES",
    "CallbackAction",
    "CallbackData",
    "encode",
    "decode",
]
