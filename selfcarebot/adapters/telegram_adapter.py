# selfcarebot/adapters/telegram_adapter.py
from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterable, Optional

from aiogram import Bot, Dispatcher, F
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import (
    BufferedInputFile,
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    Message,
    ReplyKeyboardMarkup,
)

from selfcarebot.core.conversation import Menu
from selfcarebot.core.i18n import MESSAGES
from selfcarebot.core.logging_utils import kv


class TelegramAdapter:
    """
    Aiogram 3.x delivery channel and inbound router.

    • send(): one message, optional inline choices (opaque callback tokens) and an
      optional persistent reply keyboard chosen by the user's state.
    • Inbound commands, reply-keyboard captions, callbacks and free text are
      forwarded to the ConversationHandler unchanged.
    """

    def __init__(self, bot_token: str, handler: Any) -> None:
        self.bot = Bot(token=bot_token)
        self.dp = Dispatcher()

        self.handler = handler
        self.log = logging.getLogger("selfcarebot.adapter")

        # Reply-keyboard captions double as text commands
        self._captions = {
            MESSAGES["btn_start"]: self._h_start,
            MESSAGES["btn_restart"]: self._h_restart,
            MESSAGES["btn_help"]: self._h_help,
            MESSAGES["btn_pause"]: self._h_pause,
            MESSAGES["btn_resume"]: self._h_resume,
            MESSAGES["btn_progress"]: self._h_progress,
        }

        # ---- Handlers (IMPORTANT: commands first, then captions, then generic text) ----
        self.dp.message.register(self._h_start, CommandStart())
        self.dp.message.register(self._h_help, Command("help"))
        self.dp.message.register(self._h_progress, Command("progress"))
        self.dp.message.register(self._h_pause, Command("pause"))
        self.dp.message.register(self._h_resume, Command("resume"))
        self.dp.message.register(self._h_restart, Command("restart"))
        self.dp.message.register(self._h_stats, Command("stats"))
        self.dp.message.register(self._h_export, Command("export"))
        self.dp.message.register(self._h_handled, Command("handled"))
        self.dp.message.register(self.on_text, F.text)
        self.dp.callback_query.register(self.on_callback)

    def attach_handler(self, handler: Any) -> None:
        self.handler = handler

    # ------------------------------------------------------------------------------
    # Keyboards
    # ------------------------------------------------------------------------------
    @staticmethod
    def build_inline_keyboard(options: Iterable[Any]) -> InlineKeyboardMarkup:
        # One choice per row; labels are long sentences on reflection days
        rows = [
            [InlineKeyboardButton(text=opt.label, callback_data=opt.token)]
            for opt in options
        ]
        return InlineKeyboardMarkup(inline_keyboard=rows)

    @staticmethod
    def build_menu_keyboard(menu: Menu) -> ReplyKeyboardMarkup:
        m = MESSAGES
        layouts = {
            Menu.GUEST: [[m["btn_start"], m["btn_help"]]],
            Menu.COMPLETED: [[m["btn_restart"], m["btn_progress"]], [m["btn_help"]]],
            Menu.PAUSED: [[m["btn_resume"], m["btn_progress"]], [m["btn_help"]]],
            Menu.ACTIVE: [[m["btn_progress"], m["btn_pause"]], [m["btn_help"]]],
        }
        rows = [[KeyboardButton(text=t) for t in row] for row in layouts[Menu(menu)]]
        return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True, is_persistent=True)

    # ------------------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------------------
    async def send(
        self,
        chat_id: int,
        text: str,
        options: Optional[Iterable[Any]] = None,
        *,
        menu: Optional[Menu] = None,
    ) -> bool:
        """
        Deliver one message. Inline options win over the reply keyboard (Telegram
        accepts one markup per message). Returns False on delivery failure.
        """
        options = list(options or [])
        if options:
            markup: Any = self.build_inline_keyboard(options)
        elif menu is not None:
            markup = self.build_menu_keyboard(menu)
        else:
            markup = None
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=markup)
        except Exception as e:
            self.log.error("msg.out.fail " + kv(chat_id=chat_id, err=repr(e)))
            return False
        self.log.debug("msg.out " + kv(chat_id=chat_id, options=len(options), text=text[:60]))
        return True

    async def send_document(self, chat_id: int, filename: str, content: str) -> None:
        self.log.info("doc.out " + kv(chat_id=chat_id, filename=filename))
        doc = BufferedInputFile(content.encode("utf-8"), filename=filename)
        await self.bot.send_document(chat_id=chat_id, document=doc)

    # ------------------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------------------
    @staticmethod
    def _ids(message: Message) -> tuple[int, int, Optional[str]]:
        user = message.from_user
        return message.chat.id, (user.id if user else 0), (user.first_name if user else None)

    async def _h_start(self, message: Message) -> None:
        chat_id, uid, name = self._ids(message)
        await self.handler.on_start(chat_id, uid, name)

    async def _h_help(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_help(chat_id, uid)

    async def _h_progress(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_progress(chat_id, uid)

    async def _h_pause(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_pause(chat_id, uid)

    async def _h_resume(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_resume(chat_id, uid)

    async def _h_restart(self, message: Message) -> None:
        chat_id, uid, name = self._ids(message)
        await self.handler.on_restart(chat_id, uid, name)

    async def _h_stats(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_stats(chat_id, uid)

    async def _h_export(self, message: Message, command: CommandObject) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_export(chat_id, uid, command.args or "")

    async def _h_handled(self, message: Message, command: CommandObject) -> None:
        chat_id, uid, _ = self._ids(message)
        await self.handler.on_alert_handled(chat_id, uid, command.args or "")

    async def on_text(self, message: Message) -> None:
        chat_id, uid, _ = self._ids(message)
        text = message.text or ""

        caption_handler = self._captions.get(text.strip())
        if caption_handler is not None:
            await caption_handler(message)
            return

        if text.startswith("/"):
            self.log.debug("msg.in.unknown_command " + kv(chat_id=chat_id, text=text))
            return

        self.log.info("msg.in " + kv(chat_id=chat_id, user_id=uid, length=len(text)))
        await self.handler.on_text(chat_id, uid, text)

    async def on_callback(self, callback: CallbackQuery) -> None:
        chat_id = callback.message.chat.id if callback.message else 0
        from_user = callback.from_user
        uid = from_user.id if from_user else 0
        data = callback.data or ""

        # Acknowledge the callback to clear the Telegram spinner
        with contextlib.suppress(Exception):
            await callback.answer()

        if not chat_id or not data:
            self.log.debug("cb.ignored " + kv(chat_id=chat_id, data=data))
            return

        await self.handler.on_callback(
            chat_id, uid, data, name=from_user.first_name if from_user else None
        )

    async def run_polling(self) -> None:
        self.log.debug("polling.run")
        await self.bot.delete_webhook(drop_pending_updates=True)
        await self.dp.start_polling(self.bot)

    async def close(self) -> None:
        await self.bot.session.close()


__all__ = ["TelegramAdapter"]
