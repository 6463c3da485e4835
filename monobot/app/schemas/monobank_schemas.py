# -*- coding: utf-8 -*-
# monobot/app/schemas/monobank_schemas.py
# =============================================================================
# Назначение кода:
# Pydantic-схемы ответов Monobank API и тела вебхука: выписка, счета,
# информация о клиенте, ответ установки вебхука, курсы валют.
#
# Канон / инварианты:
# • Все суммы — целые минимальные единицы валюты (копейки/центы), знак
#   отражает направление (отрицательное — списание).
# • Снаружи (в JSON) поля camelCase, внутри — snake_case (alias + populate_by_name).
# • Неизвестные поля игнорируются: Monobank добавляет поля без версии API.
#
# Запреты:
# • Нет бизнес-логики — только декларативные DTO и мелкие свойства.
# =============================================================================

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

UAH_CODE = 980
TRANSFER_MCC = 4829


class _MonoModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Выписка
# -----------------------------------------------------------------------------
class StatementItem(_MonoModel):
    """Одна операция по счёту."""

    id: str
    time: int = 0
    description: str = ""
    comment: str = ""
    mcc: int = 0
    original_mcc: int = Field(0, alias="originalMcc")
    hold: bool = False
    amount: int = 0
    operation_amount: int = Field(0, alias="operationAmount")
    currency_code: int = Field(UAH_CODE, alias="currencyCode")
    commission_rate: int = Field(0, alias="commissionRate")
    cashback_amount: int = Field(0, alias="cashbackAmount")
    balance: int = 0
    receipt_id: Optional[str] = Field(None, alias="receiptId")
    counter_iban: Optional[str] = Field(None, alias="counterIban")
    counter_name: Optional[str] = Field(None, alias="counterName")

    @property
    def is_transfer(self) -> bool:
        return self.mcc == TRANSFER_MCC


# =============================================================================
# Клиент и счета
# -----------------------------------------------------------------------------
class Account(_MonoModel):
    """Счёт клиента (карта, ФОП, ...)."""

    id: str
    send_id: Optional[str] = Field(None, alias="sendId")
    balance: int = 0
    credit_limit: int = Field(0, alias="creditLimit")
    type: str = ""
    currency_code: int = Field(UAH_CODE, alias="currencyCode")
    cashback_type: str = Field("", alias="cashbackType")
    masked_pan: List[str] = Field(default_factory=list, alias="maskedPan")
    iban: str = ""

    @property
    def display_name(self) -> str:
        """Подпись кнопки счёта: тип + последние цифры карты/IBAN."""
        suffix = ""
        if self.masked_pan:
            suffix = self.masked_pan[0][-4:]
        elif self.iban:
            suffix = self.iban[-4:]
        label = self.type or self.id
        return f"{label} *{suffix}" if suffix else label


class ClientInfo(_MonoModel):
    """Ответ /personal/client-info."""

    client_id: Optional[str] = Field(None, alias="clientId")
    name: str = ""
    web_hook_url: str = Field("", alias="webHookUrl")
    permissions: str = ""
    accounts: List[Account] = Field(default_factory=list)
    error_description: Optional[str] = Field(None, alias="errorDescription")

    def find_account(self, account_id: str) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None


class WebHookResponse(_MonoModel):
    """Ответ POST /personal/webhook: status при успехе, иначе errorDescription."""

    status: str = ""
    error_description: str = Field("", alias="errorDescription")


# =============================================================================
# Курсы валют
# -----------------------------------------------------------------------------
class Currency(_MonoModel):
    """Строка таблицы /bank/currency (коды ISO 4217, числовые)."""

    currency_code_a: int = Field(..., alias="currencyCodeA")
    currency_code_b: int = Field(..., alias="currencyCodeB")
    date: int = 0
    rate_buy: Optional[float] = Field(None, alias="rateBuy")
    rate_sell: Optional[float] = Field(None, alias="rateSell")
    rate_cross: Optional[float] = Field(None, alias="rateCross")

    @property
    def uah_rate(self) -> Optional[float]:
        """Курс к гривне: кросс-курс, иначе курс продажи."""
        return self.rate_cross or self.rate_sell


# =============================================================================
# Тело вебхука
# -----------------------------------------------------------------------------
class StatementItemPayload(_MonoModel):
    account: str
    statement_item: StatementItem = Field(..., alias="statementItem")


class StatementItemData(_MonoModel):
    """Тело POST от Monobank: {"type": "StatementItem", "data": {...}}."""

    type: str = ""
    data: StatementItemPayload


__all__ = [
    "UAH_CODE",
    "TRANSFER_MCC",
    "StatementItem",
    "Account",
    "ClientInfo",
    "WebHookResponse",
    "Currency",
    "StatementItemPayload",
    "StatementItemData",
]
