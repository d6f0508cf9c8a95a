# selfcarebot/core/conversation.py
"""
Inbound conversation handling.

Platform-neutral: the Telegram adapter extracts (chat_id, telegram_id, name, text
or callback token) and calls the on_* methods here. Replies go back through the
same adapter.send(). Any error while handling an event is logged and answered
with a generic apology; the error text never reaches the user.
"""

from __future__ import annotations

import logging
import random
import re
from enum import Enum
from typing import Any, Iterable, Optional

from selfcarebot import config as cfg
from selfcarebot.core.alerts import find_crisis_keyword
from selfcarebot.core.clock import Clock
from selfcarebot.core.course import Choice, Slot, all_days, get_day_content
from selfcarebot.core.i18n import MESSAGES, fmt, variants
from selfcarebot.core.logging_utils import kv
from selfcarebot.core.personalization import (
    QUESTIONS,
    QuizAnswers,
    parse_answer,
    quiz_token,
    recommend,
)
from selfcarebot.core.reminder_engine import DayOutcome
from selfcarebot.core.reporting import collect_stats, format_stats, to_csv

DAY_TOKEN_RE = re.compile(r"^day_(\d+)_(morning|exercise|phrase|evening)_(\w+)$")
QUIZ_TOKEN_RE = re.compile(r"^quiz_(\d)_(\w+)$")


class Menu(str, Enum):
    """Persistent reply keyboard variants; the adapter renders them."""

    GUEST = "guest"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def menu_for(user: Any) -> Menu:
    if user is None:
        return Menu.GUEST
    if user.course_completed:
        return Menu.COMPLETED
    if user.paused:
        return Menu.PAUSED
    return Menu.ACTIVE


def _name_suffix(name: Optional[str]) -> str:
    return f", {name}" if name else ""


def _progress_text(user: Any) -> str:
    if user.course_completed:
        return MESSAGES["progress_completed"]
    status = MESSAGES["status_paused"] if user.paused else MESSAGES["status_active"]
    return fmt("progress_active", day=user.current_day, status=status)


class ConversationHandler:
    def __init__(
        self,
        gateway: Any,
        adapter: Any | None,
        engine: Any,
        alert_keywords: Iterable[str],
        admin_chat_id: int,
        clock: Optional[Clock] = None,
    ):
        self.gateway = gateway
        self.adapter = adapter
        self.engine = engine
        self.alert_keywords = list(alert_keywords)
        self.admin_chat_id = admin_chat_id
        self.clock = clock or gateway.clock
        self.log = logging.getLogger("selfcarebot.conversation")
        # telegram_id -> answers given so far in the personalization quiz
        self._quiz: dict[int, list] = {}

    # ---- helpers ----------------------------------------------------------------------
    async def _reply(
        self,
        chat_id: int,
        text: str,
        options: Optional[Iterable[Choice]] = None,
        *,
        menu: Optional[Menu] = None,
    ) -> bool:
        return await self.adapter.send(chat_id, text, list(options) if options else None, menu=menu)

    async def _apologize(self, chat_id: int, where: str, err: Exception) -> None:
        self.log.error("conv.fail " + kv(where=where, chat_id=chat_id, err=repr(err)))
        try:
            await self.adapter.send(chat_id, MESSAGES["error_generic"])
        except Exception as e:
            self.log.error("conv.apology.fail " + kv(chat_id=chat_id, err=repr(e)))

    def _is_admin(self, telegram_id: int) -> bool:
        return bool(self.admin_chat_id) and telegram_id == self.admin_chat_id

    # ---- commands -----------------------------------------------------------------------
    async def on_start(self, chat_id: int, telegram_id: int, name: Optional[str] = None) -> None:
        try:
            self.log.info("conv.start " + kv(telegram_id=telegram_id, name=name))
            user = await self.gateway.create_user(telegram_id, name)
            suffix = _name_suffix(name or user.name)

            if user.course_completed:
                await self._reply(chat_id, fmt("start_completed", name=suffix), menu=menu_for(user))
            elif user.current_day > 1:
                await self._reply(
                    chat_id,
                    fmt("start_returning", name=suffix, day=user.current_day),
                    menu=menu_for(user),
                )
            else:
                await self._reply(
                    chat_id,
                    fmt("start_new", name=suffix),
                    [
                        Choice(MESSAGES["btn_start_yes"], "start_yes"),
                        Choice(MESSAGES["btn_more_info"], "more_info"),
                        Choice(MESSAGES["btn_later"], "later"),
                    ],
                )
                await self._reply(chat_id, MESSAGES["start_menu_hint"], menu=menu_for(user))
        except Exception as e:
            await self._apologize(chat_id, "start", e)

    async def on_help(self, chat_id: int, telegram_id: int) -> None:
        try:
            user = await self.gateway.get_user(telegram_id)
            times = ", ".join(cfg.SLOT_TIMES[s.value] for s in Slot)
            await self._reply(
                chat_id,
                fmt("help_text", times=times, email=cfg.SUPPORT_EMAIL),
                menu=menu_for(user),
            )
        except Exception as e:
            await self._apologize(chat_id, "help", e)

    async def on_progress(self, chat_id: int, telegram_id: int) -> None:
        try:
            user = await self.gateway.get_user(telegram_id)
            if user is None:
                await self._reply(chat_id, MESSAGES["not_started"], menu=Menu.GUEST)
                return
            await self._reply(chat_id, _progress_text(user), menu=menu_for(user))
        except Exception as e:
            await self._apologize(chat_id, "progress", e)

    async def _set_paused(self, chat_id: int, telegram_id: int, paused: bool) -> None:
        user = await self.gateway.get_user(telegram_id)
        if user is None:
            await self._reply(chat_id, MESSAGES["not_started"], menu=Menu.GUEST)
            return
        await self.gateway.set_paused(user.id, paused)
        user = await self.gateway.get_user(telegram_id)
        self.log.info("conv.paused " + kv(user_id=user.id, paused=paused))
        await self._reply(chat_id, MESSAGES["paused" if paused else "resumed"], menu=menu_for(user))

    async def on_pause(self, chat_id: int, telegram_id: int) -> None:
        try:
            await self._set_paused(chat_id, telegram_id, True)
        except Exception as e:
            await self._apologize(chat_id, "pause", e)

    async def on_resume(self, chat_id: int, telegram_id: int) -> None:
        try:
            await self._set_paused(chat_id, telegram_id, False)
        except Exception as e:
            await self._apologize(chat_id, "resume", e)

    async def on_restart(self, chat_id: int, telegram_id: int, name: Optional[str] = None) -> None:
        try:
            user = await self.gateway.create_user(telegram_id, name)
            await self.gateway.reset_progress(user.id)
            user = await self.gateway.get_user(telegram_id)
            self._quiz.pop(telegram_id, None)
            await self._reply(
                chat_id,
                fmt("restarted", name=_name_suffix(name or user.name)),
                menu=menu_for(user),
            )
        except Exception as e:
            await self._apologize(chat_id, "restart", e)

    # ---- free text ----------------------------------------------------------------------
    async def on_text(self, chat_id: int, telegram_id: int, text: str) -> None:
        if not text or text.startswith("/"):
            return
        try:
            user = await self.gateway.get_user(telegram_id)
            if user is None:
                await self._reply(chat_id, MESSAGES["not_started"], menu=Menu.GUEST)
                return

            await self.gateway.save_response(user.id, user.current_day, "free_text", text, "text")

            keyword = find_crisis_keyword(text, self.alert_keywords)
            if keyword is not None:
                await self._raise_alert(user, keyword, text)
                await self._reply(chat_id, MESSAGES["crisis_reply"], menu=menu_for(user))
                return

            await self._reply(chat_id, random.choice(variants("thanks_text")), menu=menu_for(user))
        except Exception as e:
            await self._apologize(chat_id, "text", e)

    async def _raise_alert(self, user: Any, keyword: str, text: str) -> None:
        alert_id = await self.gateway.create_alert(user.id, keyword, text)
        if not self.admin_chat_id:
            self.log.warning("alert.no_operator " + kv(alert_id=alert_id))
            return
        who = user.name or str(user.telegram_id)
        ok = await self.adapter.send(
            self.admin_chat_id,
            fmt("alert_operator", alert_id=alert_id, who=who, day=user.current_day, keyword=keyword, text=text),
        )
        if not ok:
            self.log.error("alert.notify.fail " + kv(alert_id=alert_id))

    # ---- callbacks ----------------------------------------------------------------------
    async def on_callback(self, chat_id: int, telegram_id: int, token: str, name: Optional[str] = None) -> None:
        self.log.info("conv.callback " + kv(telegram_id=telegram_id, token=token))
        try:
            if token == "start_yes":
                await self._enroll(chat_id, telegram_id, name)
            elif token == "more_info":
                await self._more_info(chat_id)
            elif token == "later":
                user = await self.gateway.get_user(telegram_id)
                await self._reply(chat_id, MESSAGES["later"], menu=menu_for(user))
            elif token == "quiz_start":
                self._quiz[telegram_id] = []
                await self._ask_question(chat_id, 1)
            elif QUIZ_TOKEN_RE.match(token):
                await self._quiz_answer(chat_id, telegram_id, token)
            elif DAY_TOKEN_RE.match(token):
                await self._day_choice(chat_id, telegram_id, token)
            else:
                self.log.warning("conv.callback.unknown " + kv(token=token))
        except Exception as e:
            await self._apologize(chat_id, "callback", e)

    async def _enroll(self, chat_id: int, telegram_id: int, name: Optional[str]) -> None:
        user = await self.gateway.get_user(telegram_id)
        if user is None:
            user = await self.gateway.create_user(telegram_id, name)
        elif user.course_completed or user.current_day > 1:
            # Old enrollment button from the chat history; the course is already under way
            self.log.info("conv.enroll.ignored " + kv(user_id=user.id, day=user.current_day))
            await self._reply(chat_id, _progress_text(user), menu=menu_for(user))
            return
        await self.gateway.set_user_day(user.id, 1)
        user = await self.gateway.get_user(telegram_id)
        await self._reply(
            chat_id,
            fmt("enrolled", **cfg.SLOT_TIMES),
            [Choice(MESSAGES["btn_quiz"], "quiz_start")],
            menu=menu_for(user),
        )

    async def _more_info(self, chat_id: int) -> None:
        lines = "\n".join(fmt("more_info_line", day=d.day, title=d.title) for d in all_days())
        await self._reply(
            chat_id,
            fmt("more_info", days=lines),
            [
                Choice(MESSAGES["btn_start_go"], "start_yes"),
                Choice(MESSAGES["btn_later"], "later"),
            ],
        )

    async def _day_choice(self, chat_id: int, telegram_id: int, token: str) -> None:
        user = await self.gateway.get_user(telegram_id)
        if user is None:
            await self._reply(chat_id, MESSAGES["not_started"], menu=Menu.GUEST)
            return
        m = DAY_TOKEN_RE.match(token)
        day, slot = int(m.group(1)), Slot(m.group(2))

        await self.gateway.save_response(user.id, day, "button_choice", token, "button")

        content = get_day_content(day)
        choice = next((c for c in (content.options if content else ()) if c.token == token), None)
        reply = choice.response if choice and choice.response else random.choice(variants("thanks_button"))
        await self._reply(chat_id, reply, menu=menu_for(user))

        if slot is not Slot.EVENING:
            return
        outcome = await self.engine.complete_day_if_ready(user)
        self.log.info("conv.evening.check " + kv(user_id=user.id, day=user.current_day, outcome=outcome.value))
        if outcome is DayOutcome.ADVANCED:
            await self._reply(chat_id, fmt("day_advanced", day=user.current_day, next_day=user.current_day + 1))
        elif outcome is DayOutcome.COURSE_COMPLETED:
            user = await self.gateway.get_user(telegram_id)
            await self._reply(chat_id, MESSAGES["course_completed"], menu=menu_for(user))

    # ---- personalization quiz -----------------------------------------------------------
    async def _ask_question(self, chat_id: int, question: int) -> None:
        key, enum_cls = QUESTIONS[question - 1]
        options = [
            Choice(MESSAGES[f"quiz_a_{key}_{answer.value}"], quiz_token(question, answer))
            for answer in enum_cls
        ]
        await self._reply(chat_id, MESSAGES[f"quiz_q{question}"], options)

    async def _quiz_answer(self, chat_id: int, telegram_id: int, token: str) -> None:
        m = QUIZ_TOKEN_RE.match(token)
        question = int(m.group(1))
        answer = parse_answer(question, m.group(2))
        given = self._quiz.get(telegram_id)
        # Out-of-order or stale buttons restart the quiz
        if answer is None or given is None or len(given) != question - 1:
            self._quiz[telegram_id] = []
            await self._reply(chat_id, MESSAGES["quiz_expired"])
            await self._ask_question(chat_id, 1)
            return

        given.append(answer)
        if question < len(QUESTIONS):
            await self._ask_question(chat_id, question + 1)
            return

        del self._quiz[telegram_id]
        answers = QuizAnswers(*given)
        kind = recommend(answers)
        user = await self.gateway.get_user(telegram_id)
        if user is None:
            await self._reply(chat_id, MESSAGES["not_started"], menu=Menu.GUEST)
            return
        await self.gateway.set_personalization(user.id, kind.value)
        summary = ";".join(f"{k}={a.value}" for (k, _), a in zip(QUESTIONS, given))
        await self.gateway.save_response(user.id, user.current_day, "quiz", f"{summary} -> {kind.value}", "button")
        self.log.info("conv.quiz.done " + kv(user_id=user.id, result=kind.value))
        await self._reply(chat_id, MESSAGES[f"quiz_result_{kind.value}"], menu=menu_for(user))

    # ---- admin --------------------------------------------------------------------------
    async def on_stats(self, chat_id: int, telegram_id: int) -> None:
        if not self._is_admin(telegram_id):
            await self._reply(chat_id, MESSAGES["admin_only"])
            return
        try:
            stats = await collect_stats(self.gateway)
            await self._reply(chat_id, format_stats(stats))
        except Exception as e:
            await self._apologize(chat_id, "stats", e)

    async def on_export(self, chat_id: int, telegram_id: int, kind: str) -> None:
        if not self._is_admin(telegram_id):
            await self._reply(chat_id, MESSAGES["admin_only"])
            return
        kind = (kind or "").strip().lower()
        if kind not in ("users", "responses", "alerts"):
            await self._reply(chat_id, MESSAGES["export_usage"])
            return
        try:
            rows = await self.gateway.export_rows(kind)
            if not rows:
                await self._reply(chat_id, MESSAGES["export_empty"])
                return
            filename = f"{kind}_{self.clock.today().isoformat()}.csv"
            await self.adapter.send_document(chat_id, filename, to_csv(rows))
            self.log.info("admin.export " + kv(kind=kind, rows=len(rows)))
        except Exception as e:
            await self._apologize(chat_id, "export", e)

    async def on_alert_handled(self, chat_id: int, telegram_id: int, raw_id: str) -> None:
        if not self._is_admin(telegram_id):
            await self._reply(chat_id, MESSAGES["admin_only"])
            return
        try:
            alert_id = int((raw_id or "").strip())
        except ValueError:
            await self._reply(chat_id, MESSAGES["alert_usage"])
            return
        try:
            if await self.gateway.mark_alert_handled(alert_id):
                await self._reply(chat_id, fmt("alert_handled", alert_id=alert_id))
            else:
                await self._reply(chat_id, fmt("alert_unknown", alert_id=alert_id))
        except Exception as e:
            await self._apologize(chat_id, "alert_handled", e)
