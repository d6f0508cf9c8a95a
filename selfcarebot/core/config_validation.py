# selfcarebot/core/config_validation.py
from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from selfcarebot.core.course import SLOTS

_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def _is_valid_hhmm(s: str) -> bool:
    if not isinstance(s, str) or not _TIME_RE.match(s):
        return False
    hh, mm = (int(x) for x in s.split(":", 1))
    return 0 <= hh <= 23 and 0 <= mm <= 59


def parse_hhmm(s: str) -> tuple[int, int]:
    if not _is_valid_hhmm(s):
        raise ValueError(f"invalid time '{s}' (expected HH:MM)")
    hh, mm = s.split(":", 1)
    return int(hh), int(mm)


def validate_config(
    cfg: Any,
    *,
    alert_keywords: Optional[Iterable[str]] = None,
    active_window_days: Optional[int] = None,
) -> None:
    """Validate runtime configuration before starting the bot.

    Slot times must cover all four slots, be valid HH:MM and follow the daily
    order (the evening slot closes the day, so it has to come last).
    """
    slot_times = getattr(cfg, "SLOT_TIMES", None)
    if not isinstance(slot_times, dict):
        raise ValueError("SLOT_TIMES must be a dict of slot -> HH:MM")
    for slot in SLOTS:
        if slot.value not in slot_times:
            raise ValueError(f"SLOT_TIMES is missing slot '{slot.value}'")
        if not _is_valid_hhmm(slot_times[slot.value]):
            raise ValueError(f"slot {slot.value}: invalid time '{slot_times[slot.value]}' (expected HH:MM)")
    unknown = set(slot_times) - {s.value for s in SLOTS}
    if unknown:
        raise ValueError(f"SLOT_TIMES has unknown slots: {sorted(unknown)}")

    ordered = [parse_hhmm(slot_times[s.value]) for s in SLOTS]
    if any(a >= b for a, b in zip(ordered, ordered[1:])):
        raise ValueError("SLOT_TIMES must be strictly increasing: morning < exercise < phrase < evening")

    if getattr(cfg, "COURSE_DAYS", 7) != 7:
        raise ValueError("COURSE_DAYS must be 7")

    timeout = getattr(cfg, "USER_TIMEOUT_S", 30)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("USER_TIMEOUT_S must be a positive number")

    if alert_keywords is not None:
        kws = list(alert_keywords)
        if not kws or not all(isinstance(k, str) and k.strip() for k in kws):
            raise ValueError("ALERT_KEYWORDS must be a non-empty list of strings")

    if active_window_days is not None:
        if not isinstance(active_window_days, int) or active_window_days <= 0:
            raise ValueError("ACTIVE_WINDOW_DAYS must be a positive integer")
