# selfcarebot/core/course.py
"""
Course content catalog.

The curriculum lives in course.yaml next to this module and is loaded once at
import. Lookups never touch the file again and never raise: an unknown day
simply has no content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONTENT_PATH = Path(__file__).parent / "course.yaml"
COURSE_DAYS = 7


class Slot(str, Enum):
    """The four daily message slots, in delivery order."""

    MORNING = "morning"
    EXERCISE = "exercise"
    PHRASE = "phrase"
    EVENING = "evening"


SLOTS: tuple[Slot, ...] = tuple(Slot)


class CourseContentError(ValueError):
    pass


@dataclass(frozen=True)
class Choice:
    """Inline button: label shown to the user, opaque token sent back on tap."""

    label: str
    token: str
    response: str = ""


@dataclass(frozen=True)
class DayContent:
    day: int
    title: str
    morning: str
    exercise: str
    phrase: str
    evening: str
    options: tuple[Choice, ...] = ()

    def message_for(self, slot: Slot) -> str:
        return getattr(self, Slot(slot).value)

    def options_for(self, slot: Slot) -> tuple[Choice, ...]:
        """Closing options belong to the evening message only."""
        return self.options if Slot(slot) is Slot.EVENING else ()


def evening_token(day: int, choice: str) -> str:
    return f"day_{day}_evening_{choice}"


def _parse_day(raw: dict[str, Any]) -> DayContent:
    day = raw.get("day")
    if not isinstance(day, int):
        raise CourseContentError(f"day entry without integer 'day': {raw!r}")
    bodies = {}
    for key in ("title", *(s.value for s in SLOTS)):
        value = str(raw.get(key) or "").strip()
        if not value:
            raise CourseContentError(f"day {day}: '{key}' must be non-empty")
        bodies[key] = value

    options = []
    for opt in raw.get("options") or []:
        if not opt.get("text") or not opt.get("choice"):
            raise CourseContentError(f"day {day}: option needs 'text' and 'choice'")
        options.append(
            Choice(
                label=str(opt["text"]),
                token=evening_token(day, str(opt["choice"])),
                response=str(opt.get("response") or ""),
            )
        )
    return DayContent(day=day, options=tuple(options), **bodies)


def load_course(path: Path = CONTENT_PATH) -> dict[int, DayContent]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.error("Course content not found at %s", path)
        raise

    days = [_parse_day(d) for d in (raw or {}).get("days", [])]
    by_day = {d.day: d for d in days}
    if sorted(by_day) != list(range(1, COURSE_DAYS + 1)) or len(days) != COURSE_DAYS:
        raise CourseContentError(
            f"course must define days 1..{COURSE_DAYS} exactly once, got {[d.day for d in days]}"
        )
    titles = [d.title for d in days]
    if len(set(titles)) != len(titles):
        raise CourseContentError("day titles must be unique")
    return by_day


_COURSE = load_course()


def get_day_content(day: Any) -> Optional[DayContent]:
    """Content for day 1..7, or None for anything else (0, 8, negatives, non-ints)."""
    if isinstance(day, bool) or not isinstance(day, int):
        return None
    return _COURSE.get(day)


def all_days() -> list[DayContent]:
    return [_COURSE[d] for d in sorted(_COURSE)]
