# selfcarebot/tests/unit/test_adapter_routing.py
import pytest
from unittest.mock import AsyncMock, Mock

from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup

from selfcarebot.adapters.telegram_adapter import TelegramAdapter
from selfcarebot.core.conversation import Menu
from selfcarebot.core.course import Choice
from selfcarebot.core.i18n import MESSAGES


class DummyBot:
    def __init__(self, *a, **k):
        self.calls = []
        self.fail = False

    async def send_message(self, **kwargs):
        if self.fail:
            raise RuntimeError("Forbidden: bot was blocked by the user")
        self.calls.append(kwargs)
        return type("M", (), {"message_id": 1})()


class DummyDispatcher:
    def __init__(self):
        self.message = Mock()
        self.callback_query = Mock()

    async def start_polling(self, bot): ...


@pytest.fixture
def tg(monkeypatch):
    monkeypatch.setattr("selfcarebot.adapters.telegram_adapter.Bot", DummyBot)
    monkeypatch.setattr("selfcarebot.adapters.telegram_adapter.Dispatcher", DummyDispatcher)
    handler = AsyncMock()
    return TelegramAdapter("dummy", handler=handler), handler


class _User:
    id = 42
    first_name = "Анна"


class _Chat:
    id = 42


def _message(text):
    class _Msg:
        chat = _Chat()
        from_user = _User()

    msg = _Msg()
    msg.text = text
    return msg


@pytest.mark.asyncio
async def test_send_with_options_uses_inline_tokens(tg):
    adapter, _ = tg
    ok = await adapter.send(42, "Вечер", [Choice("A", "day_1_evening_a"), Choice("B", "day_1_evening_b")])
    assert ok is True
    markup = adapter.bot.calls[0]["reply_markup"]
    assert isinstance(markup, InlineKeyboardMarkup)
    assert [row[0].callback_data for row in markup.inline_keyboard] == ["day_1_evening_a", "day_1_evening_b"]


@pytest.mark.asyncio
async def test_send_with_menu_uses_reply_keyboard(tg):
    adapter, _ = tg
    await adapter.send(42, "Пауза", menu=Menu.PAUSED)
    markup = adapter.bot.calls[0]["reply_markup"]
    assert isinstance(markup, ReplyKeyboardMarkup)
    captions = [b.text for row in markup.keyboard for b in row]
    assert MESSAGES["btn_resume"] in captions
    assert MESSAGES["btn_pause"] not in captions


@pytest.mark.asyncio
async def test_send_failure_returns_false(tg):
    adapter, _ = tg
    adapter.bot.fail = True
    assert await adapter.send(42, "x") is False


@pytest.mark.asyncio
async def test_caption_routes_to_pause(tg):
    adapter, handler = tg
    await adapter.on_text(_message(MESSAGES["btn_pause"]))
    handler.on_pause.assert_awaited_once_with(42, 42)
    handler.on_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_free_text_routes_to_handler(tg):
    adapter, handler = tg
    await adapter.on_text(_message("Мне сегодня спокойно"))
    handler.on_text.assert_awaited_once_with(42, 42, "Мне сегодня спокойно")


@pytest.mark.asyncio
async def test_callback_answers_spinner_and_forwards_token(tg):
    adapter, handler = tg

    class _Msg:
        chat = _Chat()

    class _CB:
        data = "day_1_evening_easier"
        from_user = _User()
        message = _Msg()
        answered = False

        async def answer(self):
            self.answered = True

    cb = _CB()
    await adapter.on_callback(cb)

    assert cb.answered is True
    handler.on_callback.assert_awaited_once_with(42, 42, "day_1_evening_easier", name="Анна")
