"""
Pattern Analyzer for Burnout Buddy.

Derives behavioral signals from a user's check-in and reset history:
- Mean improvement per practice+mood pair
- Top-5 practices by mean improvement
- Mean improvement per hour of day (0-23)
- Mean improvement per day of week (0=Sunday .. 6=Saturday)
- Overall mean improvement across resets that carry an outcome

Improvement per reset: 1.0 for "better", 0.0 for "same", 0.5 when the
user gave no feedback.

Linking resets to check-ins:
    A reset with an explicit ``check_in_id`` is attributed to that
    check-in only. Legacy resets without the back-reference fall back to
    the first check-in whose ``practice_id`` matches. Resets that cannot
    be linked, or whose ``started_at`` cannot be parsed, are skipped.

Everything here is a pure function of the history passed in; nothing
is cached between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, tzinfo

from src.models.wellness import (
    History,
    Mood,
    MoodCheckIn,
    PostMood,
    ResetLog,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5
PREFERRED_PRACTICES_LIMIT = 5


@dataclass(frozen=True)
class PracticeEffectiveness:
    """Historical outcome summary for one practice under one mood."""

    practice_id: str
    mood: Mood
    effectiveness_score: float  # 0.0 - 1.0
    usage_count: int
    positive_outcome_count: int


@dataclass(frozen=True)
class UserPatterns:
    """Aggregate signals consumed by the Recommendation Ranker."""

    avg_mood_improvement: float = NEUTRAL_SCORE
    preferred_practices: tuple[str, ...] = ()
    time_of_day_patterns: dict[int, float] = field(default_factory=dict)
    day_of_week_patterns: dict[int, float] = field(default_factory=dict)
    practice_effectiveness: tuple[PracticeEffectiveness, ...] = ()
    resolved_resets: int = 0

    @property
    def has_history(self) -> bool:
        return self.resolved_resets > 0

    def hour_signal(self, hour: int) -> float:
        """Mean improvement for an hour, neutral when never observed."""
        return self.time_of_day_patterns.get(hour, NEUTRAL_SCORE)

    def day_signal(self, day: int) -> float:
        return self.day_of_week_patterns.get(day, NEUTRAL_SCORE)

    def effectiveness_for(self, practice_id: str, mood: Mood) -> float | None:
        """Mean improvement for the pair, or None if never observed."""
        for entry in self.practice_effectiveness:
            if entry.practice_id == practice_id and entry.mood == mood:
                return entry.effectiveness_score
        return None


class _RunningMean:
    __slots__ = ("total", "count", "positive")

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0
        self.positive = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1
        if value >= 1.0:
            self.positive += 1

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else NEUTRAL_SCORE


def calculate_mood_improvement(post_mood: PostMood | None) -> float:
    """better -> 1.0, same -> 0.0, no feedback -> 0.5"""
    if post_mood is None:
        return NEUTRAL_SCORE
    return 1.0 if post_mood is PostMood.BETTER else 0.0


def day_of_week(weekday: int) -> int:
    """Convert Python's Monday=0 weekday to Sunday=0 numbering."""
    return (weekday + 1) % 7


def resolve_check_in(
    reset: ResetLog,
    check_ins: Sequence[MoodCheckIn],
    check_ins_by_id: dict[str, MoodCheckIn] | None = None,
) -> MoodCheckIn | None:
    """
    Find the check-in a reset belongs to.

    Explicit ``check_in_id`` wins; a dangling explicit link is treated as
    unresolvable rather than guessed. Without a link, the first check-in
    referencing the same practice is used.
    """
    if reset.check_in_id:
        if check_ins_by_id is None:
            check_ins_by_id = {c.id: c for c in check_ins}
        return check_ins_by_id.get(reset.check_in_id)

    if not reset.practice_id:
        return None
    for check_in in check_ins:
        if check_in.practice_id == reset.practice_id:
            return check_in
    return None


def analyze_patterns(
    check_ins: Iterable[MoodCheckIn],
    resets: Iterable[ResetLog],
    tz: tzinfo = UTC,
) -> UserPatterns:
    """
    Build the signal bundle for one user's history.

    Args:
        check_ins: All check-ins, in creation order
        resets: All reset logs, in creation order
        tz: Zone used to bucket ``started_at`` into hour and weekday

    Returns:
        UserPatterns; empty mappings and a 0.5 overall score when no reset
        can be linked to a check-in.
    """
    check_ins = tuple(check_ins)
    check_ins_by_id = {c.id: c for c in check_ins}

    overall = _RunningMean()
    by_practice: dict[str, _RunningMean] = {}
    by_practice_mood: dict[tuple[str, Mood], _RunningMean] = {}
    by_hour: dict[int, _RunningMean] = {}
    by_day: dict[int, _RunningMean] = {}
    resolved = 0
    skipped = 0

    for reset in resets:
        check_in = resolve_check_in(reset, check_ins, check_ins_by_id)
        started = parse_timestamp(reset.started_at)
        if check_in is None or started is None or not reset.practice_id:
            skipped += 1
            continue

        resolved += 1
        improvement = calculate_mood_improvement(reset.post_mood)
        if reset.post_mood is not None:
            overall.add(improvement)

        local_start = started.astimezone(tz)
        by_practice.setdefault(reset.practice_id, _RunningMean()).add(improvement)
        by_practice_mood.setdefault((reset.practice_id, check_in.mood), _RunningMean()).add(improvement)
        by_hour.setdefault(local_start.hour, _RunningMean()).add(improvement)
        by_day.setdefault(day_of_week(local_start.weekday()), _RunningMean()).add(improvement)

    if skipped:
        logger.debug("Pattern analysis skipped %d unlinked or malformed resets", skipped)

    # sorted() is stable, so equal means keep first-encounter order
    ranked = sorted(by_practice.items(), key=lambda item: item[1].mean, reverse=True)
    preferred = tuple(practice_id for practice_id, _ in ranked[:PREFERRED_PRACTICES_LIMIT])

    effectiveness = tuple(
        PracticeEffectiveness(
            practice_id=practice_id,
            mood=mood,
            effectiveness_score=acc.mean,
            usage_count=acc.count,
            positive_outcome_count=acc.positive,
        )
        for (practice_id, mood), acc in by_practice_mood.items()
    )

    return UserPatterns(
        avg_mood_improvement=overall.mean,
        preferred_practices=preferred,
        time_of_day_patterns={hour: acc.mean for hour, acc in by_hour.items()},
        day_of_week_patterns={day: acc.mean for day, acc in by_day.items()},
        practice_effectiveness=effectiveness,
        resolved_resets=resolved,
    )


def analyze_history(history: History, tz: tzinfo = UTC) -> UserPatterns:
    """Convenience wrapper taking a History snapshot."""
    return analyze_patterns(history.check_ins, history.resets, tz=tz)


def get_practice_effectiveness_for_mood(
    practice_id: str,
    mood: Mood,
    effectiveness_data: Iterable[PracticeEffectiveness],
) -> float:
    """Effectiveness for a practice+mood pair, neutral 0.5 when unseen."""
    for entry in effectiveness_data:
        if entry.practice_id == practice_id and entry.mood == mood:
            return entry.effectiveness_score
    return NEUTRAL_SCORE


__all__ = [
    "NEUTRAL_SCORE",
    "PracticeEffectiveness",
    "UserPatterns",
    "analyze_history",
    "analyze_patterns",
    "calculate_mood_improvement",
    "day_of_week",
    "get_practice_effectiveness_for_mood",
    "resolve_check_in",
]
