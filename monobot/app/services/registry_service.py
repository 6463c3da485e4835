# -*- coding: utf-8 -*-
# monobot/app/services/registry_service.py
# =============================================================================
# Назначение кода:
#   Multi-Client Router: набор Bank Client, по одному на токен из MONO_TOKENS,
#   и поиск клиента по индексу, по id (из callback_data) и по id счёта
#   (из тела вебхука).
#
# Канон / инварианты:
#   • Порядок клиентов = порядок токенов в MONO_TOKENS; индекс команд
#     /get_webhook_N и /set_webhook_N считается от нуля.
#   • Неизвестный клиент → NotFoundError («Client does not found»).
#   • Ошибка инициализации любого токена при старте — фатальна.
#
# Запреты:
#   • Нет форматирования текстов и работы с Telegram.
# =============================================================================

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from monobot.app.core.errors_core import MonoBotError, NotFoundError
from monobot.app.core.logging_core import get_logger
from monobot.app.integrations.monobank_api import MonobankGateway
from monobot.app.schemas.monobank_schemas import Currency
from monobot.app.services.client_service import BankClient

logger = get_logger(__name__)

CLIENT_NOT_FOUND = "Client does not found"


class ClientRegistry:
    """Все Bank Client процесса."""

    def __init__(self, clients: Sequence[BankClient], gateway: Optional[MonobankGateway] = None) -> None:
        self._clients: List[BankClient] = list(clients)
        self._gateway = gateway

    @classmethod
    def from_tokens(cls, tokens: Iterable[str], gateway: MonobankGateway) -> "ClientRegistry":
        return cls([BankClient(token, gateway) for token in tokens if token], gateway)

    @property
    def clients(self) -> List[BankClient]:
        return list(self._clients)

    @property
    def count(self) -> int:
        return len(self._clients)

    async def init_clients(self) -> None:
        """Загрузить client-info всех клиентов; первая ошибка прерывает старт."""
        if not self._clients:
            raise NotFoundError("MONO_TOKENS is empty")
        for index, client in enumerate(self._clients):
            await client.init()
            logger.info(
                "[Registry] client initialized",
                extra={"index": index, "client": client.id, "accounts": len(client.info.accounts) if client.info else 0},
            )

    def get_client(self, index: int) -> BankClient:
        if 0 <= index < len(self._clients):
            return self._clients[index]
        raise NotFoundError(CLIENT_NOT_FOUND, details={"index": index})

    def get_client_by_id(self, client_id: int) -> BankClient:
        for client in self._clients:
            if client.id == client_id:
                return client
        raise NotFoundError(CLIENT_NOT_FOUND, details={"client": client_id})

    async def get_client_by_account(self, account_id: str) -> BankClient:
        """
        Клиент, которому принадлежит счёт. Сначала по кэшу client-info,
        затем — по свежей client-info тех, у кого кэша ещё нет.
        """
        for client in self._clients:
            if client.has_account(account_id):
                return client
        for client in self._clients:
            if client.info is not None:
                continue
            try:
                info = await client.get_info()
            except MonoBotError as exc:
                logger.warning(
                    "[Registry] client info unavailable",
                    extra={"client": client.id, "error": exc.code},
                )
                continue
            if info.find_account(account_id) is not None:
                return client
        raise NotFoundError(CLIENT_NOT_FOUND, details={"account": account_id})

    async def get_currencies(self, policy: Optional[str] = None) -> List[Currency]:
        """Таблица курсов (публичный эндпоинт; запрос от имени первого клиента)."""
        return await self.get_client(0).get_currencies(policy)

    async def aclose(self) -> None:
        if self._gateway is not None:
            await self._gateway.aclose()


__all__ = ["ClientRegistry", "CLIENT_NOT_FOUND"]
