"""
==============================================================================
== monobot — aiogram middlewares
------------------------------------------------------------------------------
Назначение:
  • LoggingMiddleware — контекст логов (chat/user/update) на время апдейта.
  • AccessMiddleware  — allow-list: администратор (user id) ИЛИ разрешённый
    чат (chat id). Чужие callback получают ответ «Access denied», чужие
    сообщения молча игнорируются.
  • SafeMiddleware    — ошибки хэндлеров не роняют цикл апдейтов:
    доменные → user_message(), прочие → лог + общий ответ.

Канон/инварианты:
  • Порядок в Dispatcher: Logging → Access → Safe → хэндлер.
  • Middlewares висят на уровне Update; from_user/chat берутся из
    data["event_from_user"] / data["event_chat"] (их кладёт aiogram).

Запреты:
  • Нет обращений к Monobank.
==============================================================================
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from aiogram import BaseMiddleware, Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Chat, TelegramObject, Update, User

from monobot.app.core.config_core import get_settings
from monobot.app.core.errors_core import MonoBotError, user_message_for
from monobot.app.core.logging_core import clear_request_context, get_logger, set_request_context
from monobot.app.services.templates_service import ACCESS_DENIED

logger = get_logger(__name__)
settings = get_settings()

Handler = Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]]


def _ids(data: Dict[str, Any]) -> tuple[Optional[int], Optional[int]]:
    user: Optional[User] = data.get("event_from_user")
    chat: Optional[Chat] = data.get("event_chat")
    return (user.id if user else None), (chat.id if chat else None)


class LoggingMiddleware(BaseMiddleware):
    """Логирование входящих апдейтов без изменения логики."""

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:
        user_id, chat_id = _ids(data)
        update_id = event.update_id if isinstance(event, Update) else None
        set_request_context(request_id=f"upd-{update_id}", chat_id=chat_id, user_id=user_id)
        try:
            logger.debug("[Bot] update received", extra={"update_id": update_id})
            return await handler(event, data)
        finally:
            clear_request_context()


class AccessMiddleware(BaseMiddleware):
    """Пропускает апдейт, если автор — админ или чат в списке разрешённых."""

    def __init__(
        self,
        admin_ids: Optional[Iterable[int]] = None,
        chat_ids: Optional[Iterable[int]] = None,
    ) -> None:
        self.admin_ids = frozenset(settings.admin_ids if admin_ids is None else admin_ids)
        self.chat_ids = frozenset(settings.chat_ids if chat_ids is None else chat_ids)

    def is_allowed(self, user_id: Optional[int], chat_id: Optional[int]) -> bool:
        return (user_id is not None and user_id in self.admin_ids) or (
            chat_id is not None and chat_id in self.chat_ids
        )

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:
        user_id, chat_id = _ids(data)
        if self.is_allowed(user_id, chat_id):
            return await handler(event, data)

        logger.info("[Bot] access denied")
        if isinstance(event, Update) and event.callback_query is not None:
            bot: Bot = data["bot"]
            try:
                await bot.answer_callback_query(event.callback_query.id, text=ACCESS_DENIED)
            except TelegramAPIError as exc:
                logger.error("[Bot] access denied, callback answer failed", extra={"error": str(exc)})
        return None


class SafeMiddleware(BaseMiddleware):
    """Перехват исключений хэндлеров: бот отвечает текстом ошибки и живёт дальше."""

    async def __call__(self, handler: Handler, event: TelegramObject, data: Dict[str, Any]) -> Any:
        try:
            return await handler(event, data)
        except MonoBotError as exc:
            logger.warning("[Bot] handler failed", extra={"error": exc.code})
            await self._reply(event, data, user_message_for(exc))
        except TelegramAPIError as exc:
            logger.error("[Bot] telegram call failed", extra={"error": str(exc)})
        except Exception as exc:  # noqa: BLE001 - цикл апдейтов не должен падать
            logger.exception("[Bot] unexpected handler failure")
            await self._reply(event, data, user_message_for(exc))
        return None

    @staticmethod
    async def _reply(event: TelegramObject, data: Dict[str, Any], text: str) -> None:
        bot: Bot = data["bot"]
        _, chat_id = _ids(data)
        try:
            if isinstance(event, Update) and event.callback_query is not None:
                await bot.answer_callback_query(event.callback_query.id)
            if chat_id is not None:
                await bot.send_message(chat_id, text)
        except TelegramAPIError as exc:
            logger.error("[Bot] error reply failed", extra={"error": str(exc)})


__all__ = ["LoggingMiddleware", "AccessMiddleware", "SafeMiddleware"]
