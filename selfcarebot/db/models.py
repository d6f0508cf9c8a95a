# selfcarebot/db/models.py
from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

# Timestamps are UTC naive; dates are course-timezone calendar dates.

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("telegram_id", BigInteger, nullable=False, unique=True),
    Column("name", String(255), nullable=True),
    Column("current_day", SmallInteger, nullable=False, default=1),
    Column("personalization_type", String(50), nullable=True),  # critical|trying|normal|unsure
    Column("notifications_enabled", Boolean, nullable=False, default=True),
    Column("paused", Boolean, nullable=False, default=False),
    Column("course_completed", Boolean, nullable=False, default=False),
    # Set by a soft reset; slot logs sent before it do not complete a day
    Column("reset_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Index("idx_users_active", "course_completed", "paused", "current_day"),
)

reminder_log = Table(
    "reminder_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("day", SmallInteger, nullable=False),
    Column("slot", String(16), nullable=False),  # morning|exercise|phrase|evening
    Column("sent_date", Date, nullable=False),
    Column("sent_at", DateTime, nullable=False),
    UniqueConstraint("user_id", "day", "slot", "sent_date", name="uq_reminder_log_key"),
)

progress = Table(
    "progress",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("day", SmallInteger, nullable=False),
    Column("completed", Boolean, nullable=False, default=False),
    Column("completed_at", DateTime, nullable=True),
    UniqueConstraint("user_id", "day", name="uq_progress_user_day"),
)

responses = Table(
    "responses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("day", SmallInteger, nullable=False),
    Column("question_type", String(100), nullable=False),  # free_text|button_choice|quiz
    Column("response_text", Text, nullable=True),
    Column("response_type", String(50), nullable=False, default="text"),  # text|button
    Column("created_at", DateTime, nullable=False),
    Index("idx_responses_user_day", "user_id", "day"),
)

alerts = Table(
    "alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("trigger_word", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("handled", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Index("idx_alerts_handled", "handled", "created_at"),
)
