# selfcarebot/db/gateway.py
"""
Persistence gateway for the course bot.

Every write is individually idempotent (unique keys, insert-ignore, guarded
updates), so the scheduler and inbound conversation events may call it
concurrently without extra locking. Reads used by the scheduler degrade to an
empty/false result on database errors; writes raise to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy import Table, and_, delete, func, or_, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from selfcarebot.core.clock import Clock
from selfcarebot.core.course import COURSE_DAYS, SLOTS, Slot
from selfcarebot.core.logging_utils import kv
from selfcarebot.db.models import alerts, progress, reminder_log, responses, users

logger = logging.getLogger(__name__)


@dataclass
class User:
    id: int
    telegram_id: int
    name: Optional[str]
    current_day: int
    personalization_type: Optional[str]
    notifications_enabled: bool
    paused: bool
    course_completed: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "User":
        m = row._mapping
        return cls(
            id=m["id"],
            telegram_id=m["telegram_id"],
            name=m["name"],
            current_day=m["current_day"],
            personalization_type=m["personalization_type"],
            notifications_enabled=bool(m["notifications_enabled"]),
            paused=bool(m["paused"]),
            course_completed=bool(m["course_completed"]),
            created_at=m["created_at"],
            updated_at=m["updated_at"],
        )


EXPORT_KINDS = ("users", "responses", "alerts")


class CourseGateway:
    def __init__(self, engine: AsyncEngine, clock: Clock, active_window_days: int):
        if active_window_days <= 0:
            raise ValueError("active_window_days must be positive")
        self.engine = engine
        self.clock = clock
        self.active_window = timedelta(days=active_window_days)

    # ---- dialect helpers ----------------------------------------------------------------
    @property
    def _dialect(self) -> str:
        return self.engine.dialect.name

    def _insert_ignore(self, table: Table, **values: Any):
        if self._dialect == "mysql":
            return mysql_insert(table).values(**values).prefix_with("IGNORE")
        if self._dialect == "postgresql":
            return pg_insert(table).values(**values).on_conflict_do_nothing()
        return sqlite_insert(table).values(**values).on_conflict_do_nothing()

    # ---- users --------------------------------------------------------------------------
    async def create_user(self, telegram_id: int, name: Optional[str] = None) -> User:
        """
        Create on first contact; on repeat contact refresh updated_at and keep the
        stored name unless a new one is given.
        """
        now = self.clock.now_utc_naive()
        values = dict(
            telegram_id=telegram_id,
            name=name,
            current_day=1,
            notifications_enabled=True,
            paused=False,
            course_completed=False,
            created_at=now,
            updated_at=now,
        )
        if self._dialect == "mysql":
            stmt = mysql_insert(users).values(**values)
            stmt = stmt.on_duplicate_key_update(
                name=func.coalesce(stmt.inserted.name, users.c.name),
                updated_at=stmt.inserted.updated_at,
            )
        else:
            ins = (pg_insert if self._dialect == "postgresql" else sqlite_insert)(users)
            ins = ins.values(**values)
            stmt = ins.on_conflict_do_update(
                index_elements=[users.c.telegram_id],
                set_={
                    "name": func.coalesce(ins.excluded.name, users.c.name),
                    "updated_at": ins.excluded.updated_at,
                },
            )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)
            row = (
                await conn.execute(select(users).where(users.c.telegram_id == telegram_id))
            ).first()
        logger.debug("db.user.upsert " + kv(telegram_id=telegram_id, user_id=row.id))
        return User.from_row(row)

    async def get_user(self, telegram_id: int) -> Optional[User]:
        stmt = select(users).where(users.c.telegram_id == telegram_id).limit(1)
        async with self.engine.begin() as conn:
            row = (await conn.execute(stmt)).first()
        return User.from_row(row) if row else None

    async def list_active_users(self) -> list[User]:
        """
        Users eligible for scheduled sends, earlier days first.
        Returns [] on database errors so a cycle degrades to "send nothing".
        """
        cutoff = self.clock.now_utc_naive() - self.active_window
        stmt = (
            select(users)
            .where(
                and_(
                    users.c.course_completed.is_(False),
                    users.c.paused.is_(False),
                    users.c.notifications_enabled.is_(True),
                    users.c.current_day.between(1, COURSE_DAYS),
                    users.c.updated_at > cutoff,
                )
            )
            .order_by(users.c.current_day, users.c.created_at, users.c.id)
        )
        try:
            async with self.engine.begin() as conn:
                rows = (await conn.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error("db.active_users.fail " + kv(err=str(e)))
            return []
        return [User.from_row(r) for r in rows]

    async def set_user_day(self, user_id: int, day: int) -> None:
        if not 1 <= day <= COURSE_DAYS:
            raise ValueError(f"day must be in 1..{COURSE_DAYS}, got {day}")
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(current_day=day, updated_at=self.clock.now_utc_naive())
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    async def advance_user_day(self, user_id: int, new_day: int) -> bool:
        """
        Move the user from new_day - 1 to new_day. Only one caller can win for a
        given day; returns False when the user was not on the previous day.
        """
        if not 2 <= new_day <= COURSE_DAYS:
            raise ValueError(f"new_day must be in 2..{COURSE_DAYS}, got {new_day}")
        stmt = (
            update(users)
            .where(
                and_(
                    users.c.id == user_id,
                    users.c.current_day == new_day - 1,
                    users.c.course_completed.is_(False),
                )
            )
            .values(current_day=new_day, updated_at=self.clock.now_utc_naive())
        )
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            return res.rowcount > 0

    async def mark_course_completed(self, user_id: int) -> bool:
        """Terminal. Returns True only for the call that actually completed the course."""
        stmt = (
            update(users)
            .where(and_(users.c.id == user_id, users.c.course_completed.is_(False)))
            .values(course_completed=True, updated_at=self.clock.now_utc_naive())
        )
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            return res.rowcount > 0

    async def set_paused(self, user_id: int, paused: bool) -> None:
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(paused=paused, updated_at=self.clock.now_utc_naive())
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    async def set_personalization(self, user_id: int, kind: str) -> None:
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(personalization_type=kind, updated_at=self.clock.now_utc_naive())
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    async def reset_progress(self, user_id: int) -> None:
        """
        Soft reset: back to day 1, not completed, not paused, progress cleared.
        The reminder log is kept; reset_at fences off the sends made before it.
        """
        now = self.clock.now_utc_naive()
        async with self.engine.begin() as conn:
            await conn.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(
                    current_day=1,
                    course_completed=False,
                    paused=False,
                    reset_at=now,
                    updated_at=now,
                )
            )
            await conn.execute(delete(progress).where(progress.c.user_id == user_id))
        logger.info("db.user.reset " + kv(user_id=user_id))

    # ---- reminder log -------------------------------------------------------------------
    async def was_slot_sent_today(self, user_id: int, day: int, slot: Slot) -> bool:
        stmt = (
            select(func.count())
            .select_from(reminder_log)
            .where(
                and_(
                    reminder_log.c.user_id == user_id,
                    reminder_log.c.day == day,
                    reminder_log.c.slot == Slot(slot).value,
                    reminder_log.c.sent_date == self.clock.today(),
                )
            )
        )
        try:
            async with self.engine.begin() as conn:
                return (await conn.execute(stmt)).scalar_one() > 0
        except SQLAlchemyError as e:
            logger.error(
                "db.slot_sent.fail " + kv(user_id=user_id, day=day, slot=Slot(slot).value, err=str(e))
            )
            return False

    async def log_slot_sent(self, user_id: int, day: int, slot: Slot) -> None:
        """Insert-ignore: a second call for the same date is a no-op."""
        stmt = self._insert_ignore(
            reminder_log,
            user_id=user_id,
            day=day,
            slot=Slot(slot).value,
            sent_date=self.clock.today(),
            sent_at=self.clock.now_utc_naive(),
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    async def all_slots_sent_today(self, user_id: int, day: int) -> bool:
        """
        All four slots logged today for this day, counting only sends made after
        the user's last soft reset.
        """
        stmt = (
            select(reminder_log.c.slot)
            .join(users, reminder_log.c.user_id == users.c.id)
            .where(
                and_(
                    reminder_log.c.user_id == user_id,
                    reminder_log.c.day == day,
                    reminder_log.c.sent_date == self.clock.today(),
                    or_(users.c.reset_at.is_(None), reminder_log.c.sent_at > users.c.reset_at),
                )
            )
            .distinct()
        )
        try:
            async with self.engine.begin() as conn:
                sent = set((await conn.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            logger.error("db.all_slots.fail " + kv(user_id=user_id, day=day, err=str(e)))
            return False
        return all(s.value in sent for s in SLOTS)

    # ---- day progress -------------------------------------------------------------------
    async def is_day_completed(self, user_id: int, day: int) -> bool:
        stmt = (
            select(progress.c.completed)
            .where(
                and_(
                    progress.c.user_id == user_id,
                    progress.c.day == day,
                    progress.c.completed.is_(True),
                )
            )
            .limit(1)
        )
        try:
            async with self.engine.begin() as conn:
                return (await conn.execute(stmt)).first() is not None
        except SQLAlchemyError as e:
            logger.error("db.day_completed.fail " + kv(user_id=user_id, day=day, err=str(e)))
            return False

    async def mark_day_completed(self, user_id: int, day: int) -> None:
        """Upsert; the first completed_at is preserved on repeats."""
        now = self.clock.now_utc_naive()
        values = dict(user_id=user_id, day=day, completed=True, completed_at=now)
        if self._dialect == "mysql":
            stmt = mysql_insert(progress).values(**values)
            stmt = stmt.on_duplicate_key_update(
                completed=True,
                completed_at=func.coalesce(progress.c.completed_at, stmt.inserted.completed_at),
            )
        else:
            ins = (pg_insert if self._dialect == "postgresql" else sqlite_insert)(progress)
            ins = ins.values(**values)
            stmt = ins.on_conflict_do_update(
                index_elements=[progress.c.user_id, progress.c.day],
                set_={
                    "completed": True,
                    "completed_at": func.coalesce(progress.c.completed_at, ins.excluded.completed_at),
                },
            )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)

    # ---- responses & alerts -------------------------------------------------------------
    async def save_response(
        self,
        user_id: int,
        day: int,
        question_type: str,
        text: str,
        response_type: str = "text",
    ) -> None:
        now = self.clock.now_utc_naive()
        async with self.engine.begin() as conn:
            await conn.execute(
                responses.insert().values(
                    user_id=user_id,
                    day=day,
                    question_type=question_type,
                    response_text=text,
                    response_type=response_type,
                    created_at=now,
                )
            )
            # Any answer counts as activity for the staleness window
            await conn.execute(update(users).where(users.c.id == user_id).values(updated_at=now))

    async def list_responses_for_user(self, user_id: int) -> list[dict]:
        stmt = (
            select(responses)
            .where(responses.c.user_id == user_id)
            .order_by(responses.c.day, responses.c.created_at, responses.c.id)
        )
        async with self.engine.begin() as conn:
            return [dict(r._mapping) for r in (await conn.execute(stmt)).all()]

    async def create_alert(self, user_id: int, trigger_word: str, message: str) -> int:
        stmt = alerts.insert().values(
            user_id=user_id,
            trigger_word=trigger_word,
            message=message,
            handled=False,
            created_at=self.clock.now_utc_naive(),
        )
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            alert_id = res.inserted_primary_key[0]
        logger.warning("db.alert.created " + kv(alert_id=alert_id, user_id=user_id, keyword=trigger_word))
        return alert_id

    async def mark_alert_handled(self, alert_id: int) -> bool:
        stmt = (
            update(alerts)
            .where(and_(alerts.c.id == alert_id, alerts.c.handled.is_(False)))
            .values(handled=True)
        )
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            return res.rowcount > 0

    async def list_alerts(self, *, only_open: bool = False, limit: int = 50) -> list[dict]:
        stmt = (
            select(
                alerts.c.id,
                users.c.name,
                users.c.telegram_id,
                alerts.c.trigger_word,
                alerts.c.message,
                alerts.c.handled,
                alerts.c.created_at,
            )
            .join(users, alerts.c.user_id == users.c.id)
            .order_by(alerts.c.created_at.desc(), alerts.c.id.desc())
            .limit(limit)
        )
        if only_open:
            stmt = stmt.where(alerts.c.handled.is_(False))
        async with self.engine.begin() as conn:
            return [dict(r._mapping) for r in (await conn.execute(stmt)).all()]

    # ---- reporting ----------------------------------------------------------------------
    async def get_stats(self) -> dict[str, int]:
        start_local = datetime.combine(self.clock.today(), time.min, tzinfo=self.clock.tz)
        start_utc = start_local.astimezone(UTC).replace(tzinfo=None)
        count = select(func.count()).select_from
        async with self.engine.begin() as conn:
            total = (await conn.execute(count(users))).scalar_one()
            active_today = (
                await conn.execute(count(users).where(users.c.updated_at >= start_utc))
            ).scalar_one()
            completed = (
                await conn.execute(count(users).where(users.c.course_completed.is_(True)))
            ).scalar_one()
            open_alerts = (
                await conn.execute(count(alerts).where(alerts.c.handled.is_(False)))
            ).scalar_one()
        return {
            "total_users": total,
            "active_today": active_today,
            "completed_course": completed,
            "open_alerts": open_alerts,
        }

    async def export_rows(self, kind: str) -> list[dict]:
        """Rows for CSV export; column labels are the export headers."""
        if kind == "users":
            stmt = select(
                users.c.name.label("name"),
                users.c.telegram_id.label("telegram_id"),
                users.c.current_day.label("current_day"),
                users.c.personalization_type.label("personalization_type"),
                users.c.paused.label("paused"),
                users.c.course_completed.label("course_completed"),
                users.c.created_at.label("registered_at"),
                users.c.updated_at.label("last_activity"),
            ).order_by(users.c.created_at.desc(), users.c.id.desc())
        elif kind == "responses":
            stmt = (
                select(
                    users.c.name.label("name"),
                    users.c.telegram_id.label("telegram_id"),
                    responses.c.day.label("day"),
                    responses.c.question_type.label("question_type"),
                    responses.c.response_text.label("response"),
                    responses.c.response_type.label("response_type"),
                    responses.c.created_at.label("created_at"),
                )
                .join(users, responses.c.user_id == users.c.id)
                .order_by(responses.c.created_at.desc(), responses.c.id.desc())
            )
        elif kind == "alerts":
            return await self.list_alerts(limit=10_000)
        else:
            raise ValueError(f"unknown export kind {kind!r}, expected one of {EXPORT_KINDS}")
        async with self.engine.begin() as conn:
            return [dict(r._mapping) for r in (await conn.execute(stmt)).all()]
