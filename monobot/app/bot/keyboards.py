"""
==============================================================================
== monobot — keyboards
------------------------------------------------------------------------------
Назначение: inline-клавиатуры бота: выбор клиента, счёта, периода отчёта и
переключатель страниц. Всё состояние следующего шага едет в callback_data.

Канон/инварианты:
  • callback_data собирается только через callback_codec.encode().
  • Периоды: относительные одной строкой, месяцы текущего года двумя
    строками по шесть (январь–июнь, июль–декабрь), до текущего месяца.
  • Кнопки страниц берутся из Report Engine как есть, в том же порядке.

Запреты:
  • Нет сетевых вызовов: клиент передаётся с уже загруженной client-info.
==============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from monobot.app.bot.callback_codec import CallbackAction, CallbackData, encode
from monobot.app.schemas.monobank_schemas import Account
from monobot.app.services.client_service import BankClient
from monobot.app.services.period_service import RELATIVE_PERIODS, available_months
from monobot.app.services.report_service import PageButton

MONTHS_PER_ROW = 6


def _button(text: str, data: CallbackData) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=encode(data))


def client_keyboard(action: CallbackAction, clients: Sequence[BankClient]) -> InlineKeyboardMarkup:
    """Одна строка: по кнопке на клиента (action = bc или rc)."""

    row = [_button(client.name, CallbackData(action=action, client_id=client.id)) for client in clients]
    return InlineKeyboardMarkup(inline_keyboard=[row])


def account_keyboard(client_id: int, accounts: Sequence[Account]) -> InlineKeyboardMarkup:
    row = [
        _button(
            account.display_name,
            CallbackData(action=CallbackAction.REPORT_ACCOUNT, client_id=client_id, account_id=account.id),
        )
        for account in accounts
    ]
    return InlineKeyboardMarkup(inline_keyboard=[row])


def period_keyboard(client_id: int, account_id: str, now: Optional[datetime] = None) -> InlineKeyboardMarkup:
    """Выбор периода отчёта; каждая кнопка открывает первую страницу (rp)."""

    def period_button(label: str) -> InlineKeyboardButton:
        return _button(
            label,
            CallbackData(
                action=CallbackAction.REPORT_PAGE,
                period=label,
                client_id=client_id,
                account_id=account_id,
                page=1,
            ),
        )

    rows: List[List[InlineKeyboardButton]] = [[period_button(label) for label in RELATIVE_PERIODS]]
    months = available_months(now)
    for start in range(0, len(months), MONTHS_PER_ROW):
        rows.append([period_button(label) for label in months[start : start + MONTHS_PER_ROW]])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def page_keyboard(
    buttons: Sequence[PageButton],
    *,
    period: str,
    client_id: int,
    account_id: str,
) -> Optional[InlineKeyboardMarkup]:
    """Переключатель страниц (rr). Для одной страницы клавиатура не нужна."""

    if len(buttons) < 2:
        return None
    row = [
        _button(
            button.text,
            CallbackData(
                action=CallbackAction.REPORT_UPDATE,
                period=period,
                client_id=client_id,
                account_id=account_id,
                page=button.page,
            ),
        )
        for button in buttons
    ]
    return InlineKeyboardMarkup(inline_keyboard=[row])


__all__ = ["client_keyboard", "account_keyboard", "period_keyboard", "page_keyboard"]
