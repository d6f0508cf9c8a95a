# selfcarebot/core/clock.py
from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


class Clock:
    """Injectable, testable clock bound to the course timezone."""

    def __init__(self, tz: ZoneInfo):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        """Calendar date in the course timezone (the reminder log is keyed by it)."""
        return self.now().date()

    def now_utc_naive(self) -> datetime:
        """UTC timestamp without tzinfo, the form stored in the database."""
        return self.now().astimezone(UTC).replace(tzinfo=None)
