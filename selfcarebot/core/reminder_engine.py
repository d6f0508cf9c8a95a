# selfcarebot/core/reminder_engine.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from selfcarebot.core.clock import Clock
from selfcarebot.core.course import COURSE_DAYS, Slot, get_day_content
from selfcarebot.core.i18n import MESSAGES, fmt
from selfcarebot.core.logging_utils import kv


class DayOutcome(str, Enum):
    NOT_READY = "not_ready"
    ALREADY_COMPLETED = "already_completed"
    ADVANCED = "advanced"
    COURSE_COMPLETED = "course_completed"
    COURSE_ALREADY_COMPLETED = "course_already_completed"


@dataclass
class SlotRunReport:
    slot: Slot
    aborted: bool = False
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    advanced: int = 0
    completed: int = 0


class ReminderEngine:
    """
    Runs one scheduled slot across all active users and owns the day-advancement
    check. Per user the order is: dedup check, content lookup, delivery, log,
    then (evening only) the advancement check.

    The advancement check is shared with the evening-button path, so whichever
    trigger sees all four slots logged first moves the user; the other gets
    ALREADY_COMPLETED.
    """

    def __init__(
        self,
        gateway: Any,
        adapter: Any | None,
        clock: Optional[Clock] = None,
        user_timeout_s: float = 30,
    ):
        self.gateway = gateway
        self.adapter = adapter
        self.clock = clock or gateway.clock
        self.user_timeout_s = user_timeout_s
        self.log = logging.getLogger("selfcarebot.engine")

    # ---- scheduled cycle --------------------------------------------------------------
    async def run_slot(self, slot: Slot) -> SlotRunReport:
        slot = Slot(slot)
        report = SlotRunReport(slot=slot)
        try:
            users = await self.gateway.list_active_users()
        except Exception as e:
            self.log.error("cycle.abort " + kv(slot=slot.value, err=str(e)))
            report.aborted = True
            return report

        self.log.info("cycle.start " + kv(slot=slot.value, users=len(users), date=str(self.clock.today())))
        for user in users:
            try:
                await asyncio.wait_for(self._process_user(user, slot, report), self.user_timeout_s)
            except asyncio.TimeoutError:
                report.failed += 1
                self.log.error("cycle.user.timeout " + kv(user_id=user.id, slot=slot.value))
            except Exception as e:
                report.failed += 1
                self.log.error(
                    "cycle.user.fail " + kv(user_id=user.id, slot=slot.value, err=repr(e))
                )

        self.log.info(
            "cycle.done "
            + kv(
                slot=slot.value,
                sent=report.sent,
                skipped=report.skipped,
                failed=report.failed,
                advanced=report.advanced,
                completed=report.completed,
            )
        )
        return report

    async def _process_user(self, user: Any, slot: Slot, report: SlotRunReport) -> None:
        day = user.current_day
        if user.course_completed or not 1 <= day <= COURSE_DAYS:
            report.skipped += 1
            self.log.warning("cycle.user.skip " + kv(user_id=user.id, day=day, reason="not eligible"))
            return

        if await self.gateway.was_slot_sent_today(user.id, day, slot):
            report.skipped += 1
            self.log.debug("cycle.user.dup " + kv(user_id=user.id, day=day, slot=slot.value))
            return

        content = get_day_content(day)
        if content is None:
            report.skipped += 1
            self.log.warning("cycle.user.no_content " + kv(user_id=user.id, day=day))
            return

        options = content.options_for(slot) or None
        ok = await self.adapter.send(user.telegram_id, content.message_for(slot), options)
        if not ok:
            # Not logged: the slot stays open for the next trigger
            report.failed += 1
            self.log.warning("cycle.user.send_fail " + kv(user_id=user.id, day=day, slot=slot.value))
            return

        await self.gateway.log_slot_sent(user.id, day, slot)
        report.sent += 1
        self.log.debug("cycle.user.sent " + kv(user_id=user.id, day=day, slot=slot.value))

        if slot is Slot.EVENING:
            outcome = await self.complete_day_if_ready(user)
            if outcome is DayOutcome.ADVANCED:
                report.advanced += 1
                notice = fmt("day_advanced", day=day, next_day=day + 1)
            elif outcome is DayOutcome.COURSE_COMPLETED:
                report.completed += 1
                notice = MESSAGES["course_completed"]
            else:
                return
            # The day is already recorded; a lost notice is only logged
            if not await self.adapter.send(user.telegram_id, notice):
                self.log.warning("cycle.user.notice_fail " + kv(user_id=user.id, outcome=outcome.value))

    # ---- day advancement --------------------------------------------------------------
    async def complete_day_if_ready(self, user: Any) -> DayOutcome:
        """
        Advance the user past their current day once all four slots are logged
        for today. Safe to call repeatedly and from concurrent triggers.
        """
        day = user.current_day
        if user.course_completed:
            return DayOutcome.COURSE_ALREADY_COMPLETED
        if not await self.gateway.all_slots_sent_today(user.id, day):
            return DayOutcome.NOT_READY
        if await self.gateway.is_day_completed(user.id, day):
            return DayOutcome.ALREADY_COMPLETED

        if day >= COURSE_DAYS:
            changed = await self.gateway.mark_course_completed(user.id)
        else:
            changed = await self.gateway.advance_user_day(user.id, day + 1)
        await self.gateway.mark_day_completed(user.id, day)

        if not changed:
            self.log.debug("day.already " + kv(user_id=user.id, day=day))
            return DayOutcome.ALREADY_COMPLETED
        if day >= COURSE_DAYS:
            self.log.info("course.completed " + kv(user_id=user.id))
            return DayOutcome.COURSE_COMPLETED
        self.log.info("day.advanced " + kv(user_id=user.id, day=day, next_day=day + 1))
        return DayOutcome.ADVANCED
