"""Баланс счетов: /balance и выбор клиента (bc)."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from monobot.app.bot.callback_codec import CallbackAction, decode
from monobot.app.bot.handlers import message_of
from monobot.app.bot.keyboards import client_keyboard
from monobot.app.services.client_service import BankClient
from monobot.app.services.registry_service import ClientRegistry
from monobot.app.services.templates_service import CHOOSE_CLIENT, render_balance

router = Router(name="balance")


async def build_balance(client: BankClient) -> str:
    """Свежий баланс: кэш client-info помечается устаревшим перед запросом."""

    info = await client.clear().get_info()
    return render_balance(info)


@router.message(Command("balance"))
async def handle_balance(message: Message, registry: ClientRegistry) -> None:
    if registry.count > 1:
        await message.reply(
            CHOOSE_CLIENT,
            reply_markup=client_keyboard(CallbackAction.BALANCE, registry.clients),
        )
        return

    await message.reply(await build_balance(registry.get_client(0)))


@router.callback_query(F.data.startswith(CallbackAction.BALANCE.prefix))
async def handle_balance_client(callback: CallbackQuery, registry: ClientRegistry) -> None:
    """Клиент выбран кнопкой: сообщение с кнопками заменяется балансом."""

    message = await message_of(callback)
    if message is None:
        return
    data = decode(callback.data or "")
    client = registry.get_client_by_id(data.client_id)
    await message.edit_text(await build_balance(client))
    await callback.answer()
