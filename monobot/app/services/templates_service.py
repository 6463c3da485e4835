# -*- coding: utf-8 -*-
# monobot/app/services/templates_service.py
# =============================================================================
# Назначение кода:
#   Тексты сообщений бота (украинский интерфейс): уведомление об операции,
#   баланс, страница отчёта, вебхук, ежедневная сводка, подписи выбора.
#
# Канон / инварианты:
#   • Суммы приходят в копейках/центах; normalize_price(1200) → «12»,
#     normalize_price(1234) → «12.34».
#   • Символ валюты по числовому коду ISO 4217; неизвестный код — пусто.
#   • Описание и комментарий операции приходят HTML-экранированными и
#     раскрываются html.unescape; сообщения отправляются как обычный текст.
#
# Запреты:
#   • Нет сетевых вызовов и обращений к кэшам.
# =============================================================================

from __future__ import annotations

import html
from typing import Dict, List

from monobot.app.schemas.monobank_schemas import (
    TRANSFER_MCC,
    Account,
    ClientInfo,
    StatementItem,
)
from monobot.app.services.report_service import ReportPage

DEFAULT_ICON = "🛒"
TRANSFER_IN_ICON = "👉💳"
TRANSFER_OUT_ICON = "👈💳"

# см. https://mcc.in.ua/
MCC_ICONS: Dict[int, str] = {
    5411: "🍞",
    5814: "🍔",
    8999: "🏢",
    5499: "🛍",
    5651: "👕",
    5655: "🥊",
    6011: "🏧",
    4814: "📱",
    7399: "💼",
    2842: "🔧",
    5977: "💋",
    5912: "💊",
}

CURRENCY_SYMBOLS: Dict[int, str] = {
    980: "₴",
    840: "$",
    978: "€",
    985: "zł",
    203: "Kč",
}

CHOOSE_CLIENT = "Виберіть клієнта:"
CHOOSE_ACCOUNT = "Виберіть рахунок:"
CHOOSE_PERIOD = "Виберіть період:"
EMPTY_REPORT = "Операцій за період немає."
INCORRECT_URL = "Incorrect url"
ACCESS_DENIED = "Access denied"
MESSAGE_EXPIRED = "Повідомлення застаріло, надішліть команду ще раз."


def normalize_price(minor: int) -> str:
    if minor % 100 == 0:
        return str(minor // 100)
    return f"{minor / 100:.2f}"


def currency_symbol(code: int) -> str:
    return CURRENCY_SYMBOLS.get(code, "")


def mcc_icon(item: StatementItem) -> str:
    icon = DEFAULT_ICON
    if item.mcc == TRANSFER_MCC:
        icon = TRANSFER_IN_ICON if item.amount > 0 else TRANSFER_OUT_ICON
    return MCC_ICONS.get(item.mcc, icon)


def _item_lines(item: StatementItem, account_symbol: str) -> List[str]:
    head = f"{mcc_icon(item)} {normalize_price(item.amount)}{account_symbol}"
    item_symbol = currency_symbol(item.currency_code)
    if item.amount != item.operation_amount:
        head += f" ({normalize_price(item.operation_amount)}{item_symbol})"
    if item.cashback_amount:
        head += f", Кешбек: {normalize_price(item.cashback_amount)}{item_symbol}"
    lines = [head, html.unescape(item.description)]
    if item.comment:
        lines.append(f"Коментар: {html.unescape(item.comment)}")
    lines.append(f"Баланс: {normalize_price(item.balance)}{account_symbol}")
    return lines


def render_statement(client_name: str, item: StatementItem, account: Account) -> str:
    """Уведомление о новой операции по счёту."""
    return "\n".join([client_name, *_item_lines(item, currency_symbol(account.currency_code))])


def render_balance(info: ClientInfo) -> str:
    blocks = [info.name, ""]
    for account in info.accounts:
        blocks.append(f"- {account.type}")
        blocks.append(f"Баланс: {normalize_price(account.balance)}{currency_symbol(account.currency_code)}")
    return "\n".join(blocks)


def render_account_header(client_name: str, account: Account, period: str = "") -> str:
    """Первая строка сообщений отчёта: клиент, баланс счёта, период."""
    header = f"{client_name}, {normalize_price(account.balance)}{currency_symbol(account.currency_code)}"
    if period:
        header += f", {period}"
    return header


def render_report_page(page: ReportPage, currency_code: int) -> str:
    symbol = currency_symbol(currency_code)
    if page.total_items == 0:
        return EMPTY_REPORT
    blocks = [
        f"Витрачено: {normalize_price(page.spent_total)}{symbol}, "
        f"Кешбек: {normalize_price(page.cashback_total)}{symbol}",
        "",
    ]
    for item in page.items:
        blocks.extend(_item_lines(item, symbol))
        blocks.append("")
    return "\n".join(blocks).rstrip("\n")


def render_webhook(info: ClientInfo) -> str:
    return f"Вебхук: {info.web_hook_url or 'Відсутній'}"


def render_summary(client_name: str, spent: int, cashback: int, count: int) -> str:
    return (
        f"Щоденна статистика рахунків, {client_name}\n\n"
        f"Витрачено: {normalize_price(spent)} UAH\n"
        f"Кешбек: {normalize_price(cashback)} UAH\n"
        f"Транзакцій: {count}"
    )


__all__ = [
    "normalize_price",
    "currency_symbol",
    "mcc_icon",
    "render_statement",
    "render_balance",
    "render_account_header",
    "render_report_page",
    "render_webhook",
    "render_summary",
    "CHOOSE_CLIENT",
    "CHOOSE_ACCOUNT",
    "CHOOSE_PERIOD",
    "EMPTY_REPORT",
    "INCORRECT_URL",
    "ACCESS_DENIED",
    "MESSAGE_EXPIRED",
]
