"""
Weekly insights summary.

Counts check-ins and resets per day over the last seven days (oldest
first), the trailing streak of active days, and the busiest day.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Any

from src.models.wellness import History, MoodCheckIn, ResetLog, parse_timestamp

WEEK_DAYS = 7


@dataclass(frozen=True)
class WeeklyPoint:
    date: str  # ISO start of day in the requested zone
    label: str  # "Mon", "Tue", ...
    check_ins: int
    resets: int

    @property
    def total(self) -> int:
        return self.check_ins + self.resets

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "label": self.label,
            "check_ins": self.check_ins,
            "resets": self.resets,
        }


@dataclass(frozen=True)
class WeeklySummary:
    points: tuple[WeeklyPoint, ...] = field(default_factory=tuple)
    streak: int = 0
    best_day: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": [p.to_dict() for p in self.points],
            "streak": self.streak,
            "best_day": self.best_day,
        }


def _count_by_day(timestamps: Iterable[str | None], tz: tzinfo) -> Counter[date]:
    counts: Counter[date] = Counter()
    for raw in timestamps:
        parsed = parse_timestamp(raw)
        if parsed is not None:
            counts[parsed.astimezone(tz).date()] += 1
    return counts


def build_weekly_summary(
    check_ins: Iterable[MoodCheckIn],
    resets: Iterable[ResetLog],
    today: date | None = None,
    tz: tzinfo = UTC,
) -> WeeklySummary:
    """
    Summarize the last seven days ending with ``today``.

    The streak counts consecutive active days ending at the most recent
    day; an inactive day resets it. ``best_day`` is the first day with
    the highest combined count (None if the week is empty).
    """
    today = today or datetime.now(tz).date()
    check_in_counts = _count_by_day((c.timestamp for c in check_ins), tz)
    reset_counts = _count_by_day((r.started_at for r in resets), tz)

    points: list[WeeklyPoint] = []
    for offset in range(WEEK_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        points.append(
            WeeklyPoint(
                date=datetime.combine(day, time.min, tzinfo=tz).isoformat(),
                label=day.strftime("%a"),
                check_ins=check_in_counts[day],
                resets=reset_counts[day],
            )
        )

    streak = 0
    best: WeeklyPoint | None = None
    for point in points:
        if point.total > 0:
            streak += 1
            if best is None or point.total > best.total:
                best = point
        else:
            streak = 0

    return WeeklySummary(
        points=tuple(points),
        streak=streak,
        best_day=best.label if best else None,
    )


def summarize_history(history: History, today: date | None = None, tz: tzinfo = UTC) -> WeeklySummary:
    return build_weekly_summary(history.check_ins, history.resets, today=today, tz=tz)


__all__ = ["WeeklyPoint", "WeeklySummary", "build_weekly_summary", "summarize_history"]
