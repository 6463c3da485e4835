"""
Отчёты по счетам: /report → клиент (rc) → счёт (ra) → период (rp) → страницы (rr).

Выписка за период запрашивается один раз и кладётся в кэш Report Engine
счёта по ключу (период, чат, пользователь, клиент); листание страниц
работает из кэша и лимит выписки не тратит.
"""

from __future__ import annotations

from typing import Optional, Tuple

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from monobot.app.bot.callback_codec import CallbackAction, CallbackData, decode
from monobot.app.bot.handlers import message_of
from monobot.app.bot.keyboards import account_keyboard, client_keyboard, page_keyboard, period_keyboard
from monobot.app.core.logging_core import get_logger
from monobot.app.services.client_service import BankClient
from monobot.app.services.registry_service import ClientRegistry
from monobot.app.services.templates_service import (
    CHOOSE_ACCOUNT,
    CHOOSE_CLIENT,
    CHOOSE_PERIOD,
    render_account_header,
    render_report_page,
)

logger = get_logger(__name__)

router = Router(name="report")


async def account_prompt(client: BankClient) -> Tuple[str, InlineKeyboardMarkup]:
    info = client.info or await client.get_info()
    return f"{client.name}\n{CHOOSE_ACCOUNT}", account_keyboard(client.id, info.accounts)


async def build_report(
    client: BankClient,
    data: CallbackData,
    *,
    chat_id: int,
    user_id: int,
    page: int,
) -> Tuple[str, Optional[InlineKeyboardMarkup]]:
    """Текст страницы отчёта и переключатель страниц."""

    account = await client.get_account(data.account_id)
    engine = client.get_report(account.id)
    key = engine.cache_key(data.period, chat_id, user_id, client.id)

    items = engine.get_cache_data(key)
    if items is None:
        generation = engine.generation
        items = await client.get_statement(data.period, account.id)
        engine.set_cache_data(key, items, generation=generation)

    report = engine.build_page(items, page)
    selector = engine.build_page_selector(report.total_items, report.page)
    text = "\n".join(
        (
            render_account_header(client.name, account, data.period),
            render_report_page(report, account.currency_code),
        )
    )
    markup = page_keyboard(selector, period=data.period, client_id=client.id, account_id=account.id)
    return text, markup


@router.message(Command("report"))
async def handle_report(message: Message, registry: ClientRegistry) -> None:
    if registry.count > 1:
        await message.reply(
            CHOOSE_CLIENT,
            reply_markup=client_keyboard(CallbackAction.REPORT_CLIENT, registry.clients),
        )
        return

    text, markup = await account_prompt(registry.get_client(0))
    await message.reply(text, reply_markup=markup)


@router.callback_query(F.data.startswith(CallbackAction.REPORT_CLIENT.prefix))
async def handle_report_client(callback: CallbackQuery, registry: ClientRegistry) -> None:
    message = await message_of(callback)
    if message is None:
        return
    data = decode(callback.data or "")
    text, markup = await account_prompt(registry.get_client_by_id(data.client_id))
    await message.edit_text(text, reply_markup=markup)
    await callback.answer()


@router.callback_query(F.data.startswith(CallbackAction.REPORT_ACCOUNT.prefix))
async def handle_report_account(callback: CallbackQuery, registry: ClientRegistry) -> None:
    message = await message_of(callback)
    if message is None:
        return
    data = decode(callback.data or "")
    client = registry.get_client_by_id(data.client_id)
    account = await client.get_account(data.account_id)
    await message.answer(
        f"{render_account_header(client.name, account)}\n{CHOOSE_PERIOD}",
        reply_markup=period_keyboard(client.id, account.id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith(CallbackAction.REPORT_PAGE.prefix))
async def handle_report_period(callback: CallbackQuery, registry: ClientRegistry) -> None:
    """Период выбран: новое сообщение с первой страницей."""

    message = await message_of(callback)
    if message is None:
        return
    data = decode(callback.data or "")
    client = registry.get_client_by_id(data.client_id)
    text, markup = await build_report(
        client,
        data,
        chat_id=message.chat.id,
        user_id=callback.from_user.id,
        page=1,
    )
    await message.answer(text, reply_markup=markup)
    await callback.answer()


@router.callback_query(F.data.startswith(CallbackAction.REPORT_UPDATE.prefix))
async def handle_report_page(callback: CallbackQuery, registry: ClientRegistry) -> None:
    """Листание: то же сообщение перерисовывается с другой страницей."""

    message = await message_of(callback)
    if message is None:
        return
    data = decode(callback.data or "")
    client = registry.get_client_by_id(data.client_id)
    text, markup = await build_report(
        client,
        data,
        chat_id=message.chat.id,
        user_id=callback.from_user.id,
        page=data.page,
    )
    try:
        await message.edit_text(text, reply_markup=markup)
    except TelegramBadRequest as exc:
        # нажата текущая страница: Telegram не принимает тот же текст
        if "message is not modified" not in str(exc):
            raise
        logger.debug("[Bot] report page unchanged", extra={"page": data.page})
    await callback.answer()
