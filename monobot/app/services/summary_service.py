# -*- coding: utf-8 -*-
# monobot/app/services/summary_service.py
# =============================================================================
# Назначение кода:
#   Ежедневная сводка по клиенту: сколько потрачено за сегодня (в гривне),
#   сколько начислено кешбека и сколько было операций.
#
# Канон / инварианты:
#   • Переводы между своими счетами (MCC 4829) не считаются: списание с одного
#     счёта и зеркальное зачисление на другой исключаются парой.
#   • Списание по валютному счёту пересчитывается в гривну по курсу Monobank
#     (rateCross, иначе rateSell); нет курса — операция в сумму не входит.
#   • Гривневая операция по валютному счёту берёт operationAmount (он в UAH).
#   • Кешбек суммируется по всем оставшимся операциям.
#
# Запреты:
#   • Нет отправки сообщений — только расчёт и сбор данных.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from monobot.app.core.errors_core import MonoBotError
from monobot.app.core.logging_core import get_logger
from monobot.app.schemas.monobank_schemas import (
    TRANSFER_MCC,
    UAH_CODE,
    Currency,
    StatementItem,
)
from monobot.app.services.client_service import BankClient
from monobot.app.services.period_service import TODAY
from monobot.app.services.registry_service import ClientRegistry

logger = get_logger(__name__)

_MirrorKey = Tuple[int, int, int, int]


def _is_outgoing_own_transfer(item: StatementItem) -> bool:
    return (
        item.mcc == TRANSFER_MCC
        and item.original_mcc == TRANSFER_MCC
        and item.amount < 0
        and item.operation_amount < 0
        and item.amount != item.operation_amount
    )


def filter_own_transfers(items: Sequence[StatementItem]) -> List[StatementItem]:
    """Убрать пары «списание ↔ зеркальное зачисление» между своими счетами."""
    outgoing: Dict[_MirrorKey, str] = {}
    for item in items:
        if _is_outgoing_own_transfer(item):
            key = (item.mcc, item.original_mcc, -item.amount, -item.operation_amount)
            outgoing[key] = item.id

    ignored: Set[str] = set()
    for item in items:
        key = (item.mcc, item.original_mcc, item.operation_amount, item.amount)
        paired = outgoing.get(key)
        if paired is not None:
            ignored.add(item.id)
            ignored.add(paired)

    return [item for item in items if item.id not in ignored]


def find_uah_rate(currencies: Sequence[Currency], code: int) -> Optional[float]:
    for currency in currencies:
        if currency.currency_code_a == code and currency.currency_code_b == UAH_CODE:
            return currency.uah_rate
    return None


def spent_in_uah(item: StatementItem, currencies: Sequence[Currency]) -> int:
    """Сумма списания в копейках гривны (положительное число)."""
    if item.amount == item.operation_amount and item.currency_code != UAH_CODE:
        rate = find_uah_rate(currencies, item.currency_code)
        if rate is None:
            logger.warning("[Summary] no UAH rate", extra={"currency": item.currency_code})
            return 0
        return round(-item.amount * rate)
    if item.amount != item.operation_amount and item.currency_code == UAH_CODE:
        return -item.operation_amount
    return -item.amount


@dataclass(slots=True)
class DailySummary:
    """Сводка одного клиента."""

    client_name: str
    items: List[StatementItem] = field(default_factory=list)
    currencies: List[Currency] = field(default_factory=list)
    spent: int = 0
    cashback: int = 0
    count: int = 0

    def is_empty(self) -> bool:
        return not self.items

    def prepare(self) -> "DailySummary":
        if self.is_empty():
            return self
        statements = filter_own_transfers(self.items)
        self.count = len(statements)
        self.spent = sum(spent_in_uah(item, self.currencies) for item in statements if item.amount < 0)
        self.cashback = sum(item.cashback_amount for item in statements)
        return self

    @property
    def worth_sending(self) -> bool:
        return self.count > 0 and self.spent > 0


async def build_client_summary(client: BankClient, currencies: Sequence[Currency]) -> DailySummary:
    """Собрать «Today» по всем счетам клиента. Лимиты выписки здесь ждут окна."""
    info = await client.get_info()
    summary = DailySummary(client_name=info.name, currencies=list(currencies))
    for account in info.accounts:
        try:
            items = await client.get_statement(TODAY, account.id, policy="wait")
        except MonoBotError as exc:
            logger.error(
                "[Summary] statement failed",
                extra={"client": client.id, "error": exc.code},
            )
            continue
        summary.items.extend(items)
    return summary.prepare()


async def build_summaries(registry: ClientRegistry) -> List[DailySummary]:
    """Сводки всех клиентов, которые стоит отправить."""
    if not registry.count:
        return []
    try:
        currencies = await registry.get_currencies(policy="wait")
    except MonoBotError as exc:
        logger.error("[Summary] currencies failed", extra={"error": exc.code})
        currencies = []

    result: List[DailySummary] = []
    for client in registry.clients:
        try:
            summary = await build_client_summary(client, currencies)
        except MonoBotError as exc:
            logger.error("[Summary] client failed", extra={"client": client.id, "error": exc.code})
            continue
        if not summary.worth_sending:
            logger.info("[Summary] nothing to send", extra={"client": client.id})
            continue
        result.append(summary)
    return result


__all__ = [
    "DailySummary",
    "filter_own_transfers",
    "find_uah_rate",
    "spent_in_uah",
    "build_client_summary",
    "build_summaries",
]
