# selfcarebot/core/reporting.py
"""Operator reporting: counters and CSV exports delivered through admin commands."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from selfcarebot.core.i18n import fmt


@dataclass(frozen=True)
class Stats:
    total_users: int
    active_today: int
    completed_course: int
    open_alerts: int


async def collect_stats(gateway: Any) -> Stats:
    raw = await gateway.get_stats()
    return Stats(
        total_users=int(raw["total_users"]),
        active_today=int(raw["active_today"]),
        completed_course=int(raw["completed_course"]),
        open_alerts=int(raw["open_alerts"]),
    )


def format_stats(stats: Stats) -> str:
    return fmt(
        "stats",
        total=stats.total_users,
        active_today=stats.active_today,
        completed=stats.completed_course,
        open_alerts=stats.open_alerts,
    )


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


def to_csv(rows: Iterable[Mapping[str, Any]]) -> str:
    """
    CSV text with a UTF-8 BOM (so spreadsheet apps detect the encoding).
    Header comes from the first row's keys; empty input gives an empty string.
    """
    rows = list(rows)
    if not rows:
        return ""
    header = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([_cell(row.get(k)) for k in header])
    return "\ufeff" + buf.getvalue()
