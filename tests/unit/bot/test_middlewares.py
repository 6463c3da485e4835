from typing import Any, Dict, List

from aiogram.types import CallbackQuery, Chat, Message, Update, User

from monobot.app.bot.middlewares import AccessMiddleware, LoggingMiddleware, SafeMiddleware
from monobot.app.core.errors_core import GENERIC_FAILURE_MESSAGE, RateLimitedError

ADMIN = User(id=7, is_bot=False, first_name="Admin")
STRANGER = User(id=99, is_bot=False, first_name="Stranger")
FAMILY_CHAT = Chat(id=-100, type="group")
PRIVATE_CHAT = Chat(id=99, type="private")


class FakeBot:
    def __init__(self) -> None:
        self.answers: List[tuple] = []
        self.messages: List[tuple] = []

    async def answer_callback_query(self, callback_query_id: str, text: str | None = None, **kwargs) -> bool:
        self.answers.append((callback_query_id, text))
        return True

    async def send_message(self, chat_id: int, text: str, **kwargs) -> None:
        self.messages.append((chat_id, text))


def _callback_update(user: User) -> Update:
    return Update(
        update_id=1,
        callback_query=CallbackQuery(id="cb-1", from_user=user, chat_instance="ci", data="bc:v1::1::0"),
    )


def _message_update(user: User, chat: Chat) -> Update:
    return Update(
        update_id=2,
        message=Message(message_id=1, date=0, chat=chat, from_user=user, text="/balance"),
    )


def _data(user: User, chat: Chat, bot: FakeBot) -> Dict[str, Any]:
    return {"event_from_user": user, "event_chat": chat, "bot": bot}


class Recorder:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error

    async def __call__(self, event, data):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return "handled"


def test_allow_list_accepts_admin_or_chat():
    access = AccessMiddleware(admin_ids=[7], chat_ids=[-100])

    assert access.is_allowed(7, 99)
    assert access.is_allowed(99, -100)
    assert not access.is_allowed(99, 99)
    assert not access.is_allowed(None, None)


async def test_admin_passes_in_private_chat():
    handler, bot = Recorder(), FakeBot()

    result = await AccessMiddleware(admin_ids=[7], chat_ids=[])(
        handler, _message_update(ADMIN, PRIVATE_CHAT), _data(ADMIN, PRIVATE_CHAT, bot)
    )

    assert result == "handled"
    assert handler.calls == 1


async def test_stranger_message_is_ignored_silently():
    handler, bot = Recorder(), FakeBot()

    await AccessMiddleware(admin_ids=[7], chat_ids=[-100])(
        handler, _message_update(STRANGER, PRIVATE_CHAT), _data(STRANGER, PRIVATE_CHAT, bot)
    )

    assert handler.calls == 0
    assert bot.messages == [] and bot.answers == []


async def test_stranger_callback_gets_access_denied():
    handler, bot = Recorder(), FakeBot()

    await AccessMiddleware(admin_ids=[7], chat_ids=[-100])(
        handler, _callback_update(STRANGER), _data(STRANGER, PRIVATE_CHAT, bot)
    )

    assert handler.calls == 0
    assert bot.answers == [("cb-1", "Access denied")]


async def test_safe_middleware_replies_with_domain_message():
    bot = FakeBot()

    await SafeMiddleware()(
        Recorder(RateLimitedError()), _message_update(ADMIN, FAMILY_CHAT), _data(ADMIN, FAMILY_CHAT, bot)
    )

    assert bot.messages == [(-100, "please waiting 1 minute and then try again")]


async def test_safe_middleware_hides_unexpected_errors_and_answers_callback():
    bot = FakeBot()

    await SafeMiddleware()(Recorder(KeyError("secret")), _callback_update(ADMIN), _data(ADMIN, FAMILY_CHAT, bot))

    assert bot.answers == [("cb-1", None)]
    assert bot.messages == [(-100, GENERIC_FAILURE_MESSAGE)]


async def test_logging_middleware_passes_result_through():
    bot = FakeBot()

    result = await LoggingMiddleware()(Recorder(), _message_update(ADMIN, FAMILY_CHAT), _data(ADMIN, FAMILY_CHAT, bot))

    assert result == "handled"
