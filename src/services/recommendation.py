"""
Recommendation Ranker for Burnout Buddy.

Picks a practice for the current check-in (mood, time budget, on-shift)
and explains why.

Eligibility:
    mood in practice.tags AND practice_supports_time(practice, budget).
    When history signals are in play, a duration ceiling also applies:
    the 2-minute budget takes practices <= 180s, the 5-minute budget
    takes practices > 180s.

Scoring (signal mode only), starting from 0.5:
    +0.30 x mean improvement for this practice+mood (0 if unseen)
    +0.10 x (hour-of-day signal - 0.5), missing hour counts as 0.5
    +0.15 if the practice is in the user's top-5 preferred list
    +0.10 category/mood alignment (breathing|mindset for stressed|exhausted,
          visual|gratitude for calm|ok)
    +0.05 duration fits the budget
    clamped to [0, 1]; stable sort keeps catalog order on ties.

Without signals (no history, or no reset could be linked) eligible
practices come back in catalog order.

When nothing is eligible the fallback path returns the first practice
supporting the budget, flagged ``is_fallback``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo

from src.content.practices import PRACTICES, practice_supports_time
from src.lib.exceptions import ConfigurationError
from src.models.wellness import (
    History,
    Mood,
    Practice,
    PracticeCategory,
    RecommendationResult,
    TimeBudget,
)
from src.services.pattern_analyzer import NEUTRAL_SCORE, UserPatterns, analyze_history

logger = logging.getLogger(__name__)

SHORT_DURATION_CEILING = 180
MAX_ALTERNATIVES = 2

# Scoring weights
HISTORY_WEIGHT = 0.3
HOUR_WEIGHT = 0.1
PREFERRED_BONUS = 0.15
CATEGORY_BONUS = 0.1
DURATION_FIT_BONUS = 0.05

TIME_COPY: dict[TimeBudget, str] = {budget: budget.spoken for budget in TimeBudget}

_LOW_MOODS = frozenset({Mood.STRESSED, Mood.EXHAUSTED})
_HIGH_MOODS = frozenset({Mood.CALM, Mood.OK})
_SETTLING_CATEGORIES = frozenset({PracticeCategory.BREATHING, PracticeCategory.MINDSET})
_MAINTAINING_CATEGORIES = frozenset({PracticeCategory.VISUAL, PracticeCategory.GRATITUDE})

ON_SHIFT_REASON = "You're on shift, so we picked something you can do between patients."
PERSONALIZED_REASON = "This pick reflects what has helped you in past resets."


def format_mood(mood: Mood) -> str:
    """Display form: Calm / OK / Stressed / Exhausted."""
    return mood.display


def fits_duration(practice: Practice, time_budget: TimeBudget) -> bool:
    """<=180s for the short budget, >180s for the long one."""
    if time_budget is TimeBudget.SHORT:
        return practice.duration_seconds <= SHORT_DURATION_CEILING
    return practice.duration_seconds > SHORT_DURATION_CEILING


def is_eligible(
    practice: Practice,
    mood: Mood,
    time_budget: TimeBudget,
    enforce_duration: bool = False,
) -> bool:
    if mood not in practice.tags or not practice_supports_time(practice, time_budget):
        return False
    return not enforce_duration or fits_duration(practice, time_budget)


def _category_bonus(practice: Practice, mood: Mood) -> float:
    if mood in _LOW_MOODS and practice.category in _SETTLING_CATEGORIES:
        return CATEGORY_BONUS
    if mood in _HIGH_MOODS and practice.category in _MAINTAINING_CATEGORIES:
        return CATEGORY_BONUS
    return 0.0


def score_practice(
    practice: Practice,
    mood: Mood,
    time_budget: TimeBudget,
    patterns: UserPatterns,
    current_hour: int,
) -> float:
    """Effectiveness score in [0, 1] for one eligible practice."""
    score = NEUTRAL_SCORE

    history_score = patterns.effectiveness_for(practice.id, mood)
    if history_score is not None:
        score += HISTORY_WEIGHT * history_score

    score += HOUR_WEIGHT * (patterns.hour_signal(current_hour) - NEUTRAL_SCORE)

    if practice.id in patterns.preferred_practices:
        score += PREFERRED_BONUS

    score += _category_bonus(practice, mood)

    if fits_duration(practice, time_budget):
        score += DURATION_FIT_BONUS

    return max(0.0, min(1.0, score))


def rank_practices(
    mood: Mood,
    time_budget: TimeBudget,
    practices: Sequence[Practice] = PRACTICES,
    patterns: UserPatterns | None = None,
    current_hour: int | None = None,
) -> list[Practice]:
    """
    Eligible practices, most recommended first.

    Returns an empty list when nothing is eligible; callers decide whether
    to take the fallback path.
    """
    use_signals = patterns is not None and patterns.has_history
    eligible = [
        p for p in practices
        if is_eligible(p, mood, time_budget, enforce_duration=use_signals)
    ]
    if not use_signals:
        return eligible

    hour = datetime.now(UTC).hour if current_hour is None else current_hour
    scored = [(p, score_practice(p, mood, time_budget, patterns, hour)) for p in eligible]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [p for p, _ in scored]


def _build_reason(
    mood: Mood,
    time_budget: TimeBudget,
    on_shift: bool,
    personalized: bool,
    primary: Practice,
) -> str:
    parts: list[str] = []
    if on_shift:
        parts.append(ON_SHIFT_REASON)
    if personalized:
        parts.append(PERSONALIZED_REASON)
    parts.append(f"You selected {format_mood(mood)} with about {TIME_COPY[time_budget]}.")
    parts.append(primary.why_it_helps)
    return " ".join(parts)


def _fallback(time_budget: TimeBudget, practices: Sequence[Practice]) -> RecommendationResult:
    primary = next((p for p in practices if practice_supports_time(p, time_budget)), None)
    if primary is None:
        raise ConfigurationError(f"No practices available for the {TIME_COPY[time_budget]} window")

    alternatives = tuple(p for p in practices if p.id != primary.id)[:MAX_ALTERNATIVES]
    return RecommendationResult(
        primary=primary,
        alternatives=alternatives,
        reason=f"A versatile reset that fits into your {TIME_COPY[time_budget]} window.",
        personalized=False,
        is_fallback=True,
    )


def _result_from_ranked(
    ranked: Sequence[Practice],
    primary_index: int,
    mood: Mood,
    time_budget: TimeBudget,
    on_shift: bool,
    personalized: bool,
) -> RecommendationResult:
    primary = ranked[primary_index]
    following = list(ranked[primary_index + 1:]) + list(ranked[:primary_index])
    alternatives = tuple(p for p in following if p.id != primary.id)[:MAX_ALTERNATIVES]
    return RecommendationResult(
        primary=primary,
        alternatives=alternatives,
        reason=_build_reason(mood, time_budget, on_shift, personalized, primary),
        personalized=personalized,
        is_fallback=False,
    )


def _resolve_patterns(
    history: History | None,
    patterns: UserPatterns | None,
    tz: tzinfo,
) -> UserPatterns | None:
    if patterns is not None:
        return patterns
    if history is None or history.is_empty:
        return None
    return analyze_history(history, tz=tz)


def build_recommendation(
    mood: Mood,
    time_budget: TimeBudget,
    on_shift: bool,
    history: History | None = None,
    practices: Sequence[Practice] = PRACTICES,
    current_hour: int | None = None,
    tz: tzinfo = UTC,
    patterns: UserPatterns | None = None,
) -> RecommendationResult:
    """
    Rank the catalog for this check-in and wrap the top pick with a reason.

    Args:
        mood: Current mood
        time_budget: 2m or 5m
        on_shift: Whether the user is between patients
        history: Optional history snapshot; analyzed when ``patterns`` is not given
        practices: Catalog to rank (defaults to the static catalog)
        current_hour: Hour used for the time-of-day signal (defaults to now in ``tz``)
        tz: Zone for hour bucketing
        patterns: Pre-computed signals (skips analysis)

    Raises:
        ConfigurationError: if no catalog practice supports the budget at all
    """
    patterns = _resolve_patterns(history, patterns, tz)
    if current_hour is None:
        current_hour = datetime.now(tz).hour

    ranked = rank_practices(mood, time_budget, practices, patterns, current_hour)
    if not ranked:
        logger.info(
            "No practice matched mood=%s time=%s, using fallback",
            mood.value,
            time_budget.value,
        )
        return _fallback(time_budget, practices)

    personalized = patterns is not None and patterns.has_history
    return _result_from_ranked(ranked, 0, mood, time_budget, on_shift, personalized)


def rotate_recommendation(
    current: RecommendationResult,
    mood: Mood,
    time_budget: TimeBudget,
    on_shift: bool,
    history: History | None = None,
    practices: Sequence[Practice] = PRACTICES,
    current_hour: int | None = None,
    tz: tzinfo = UTC,
) -> RecommendationResult:
    """
    Re-rank and move to the practice after the current primary.

    Wraps around at the end of the ranked list. If the current primary is
    no longer ranked, the top practice is returned.
    """
    patterns = _resolve_patterns(history, None, tz)
    if current_hour is None:
        current_hour = datetime.now(tz).hour

    ranked = rank_practices(mood, time_budget, practices, patterns, current_hour)
    if not ranked:
        return _fallback(time_budget, practices)

    ids = [p.id for p in ranked]
    try:
        next_index = (ids.index(current.primary.id) + 1) % len(ranked)
    except ValueError:
        next_index = 0

    personalized = patterns is not None and patterns.has_history
    return _result_from_ranked(ranked, next_index, mood, time_budget, on_shift, personalized)


__all__ = [
    "SHORT_DURATION_CEILING",
    "TIME_COPY",
    "build_recommendation",
    "fits_duration",
    "format_mood",
    "is_eligible",
    "rank_practices",
    "rotate_recommendation",
    "score_practice",
]
