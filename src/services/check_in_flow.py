"""
Check-in and timer session flow.

The mood -> recommendation -> timer -> outcome loop, expressed as pure
functions over a ``History`` value. Every operation returns a new
History; callers (the API layer) load the snapshot from a store, apply
one operation, and save the result.

Invariants enforced here:
- A check-in's practice_id always references a catalog practice.
- A reset's check_in_id references an existing check-in.
- post_mood is write-once on check-ins (StateError on overwrite).
- A timer session is logged at most once and must agree with its check-in.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import Any

from src.content.practices import get_practice_by_id
from src.lib.exceptions import NotFoundError, StateError, ValidationError
from src.models.wellness import (
    History,
    Mood,
    MoodCheckIn,
    PostMood,
    RecommendationResult,
    ResetLog,
    TimeBudget,
    parse_timestamp,
    to_iso,
)
from src.services.recommendation import build_recommendation, rotate_recommendation

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


# =============================================================================
# Timer session
# =============================================================================


class TimerStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TimerSession:
    """A running countdown for one practice, tied to the active check-in."""

    id: str
    practice_id: str
    check_in_id: str
    started_at: str
    duration_seconds: int
    mood: Mood
    time_available: TimeBudget

    def elapsed_seconds(self, now: datetime | None = None) -> int:
        started = parse_timestamp(self.started_at)
        if started is None:
            return 0
        return max(0, int((_now(now) - started).total_seconds()))

    def remaining_seconds(self, now: datetime | None = None) -> int:
        return max(0, self.duration_seconds - self.elapsed_seconds(now))

    def status(self, now: datetime | None = None) -> TimerStatus:
        return TimerStatus.COMPLETED if self.remaining_seconds(now) == 0 else TimerStatus.RUNNING

    def progress(self, now: datetime | None = None) -> float:
        """Fraction of the countdown elapsed, 0.0 - 1.0."""
        if self.duration_seconds <= 0:
            return 1.0
        return min(1.0, self.elapsed_seconds(now) / self.duration_seconds)

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "practice_id": self.practice_id,
            "check_in_id": self.check_in_id,
            "started_at": self.started_at,
            "duration_seconds": self.duration_seconds,
            "mood": self.mood.value,
            "time_available": self.time_available.value,
            "remaining_seconds": self.remaining_seconds(now),
            "status": self.status(now).value,
        }


# =============================================================================
# Internal helpers
# =============================================================================


def _require_check_in(history: History, check_in_id: str) -> MoodCheckIn:
    check_in = history.find_check_in(check_in_id)
    if check_in is None:
        raise NotFoundError(f"Check-in not found: {check_in_id}")
    return check_in


def _replace_check_in(history: History, updated: MoodCheckIn) -> History:
    return replace(
        history,
        check_ins=tuple(updated if c.id == updated.id else c for c in history.check_ins),
    )


def _already_logged(history: History, session: TimerSession) -> bool:
    # one reset per session; a session is its check-in plus start time
    return any(
        r.check_in_id == session.check_in_id and r.started_at == session.started_at
        for r in history.resets
    )


# =============================================================================
# Operations
# =============================================================================


def commit_mood_selection(
    history: History,
    mood: Mood,
    shift: bool,
    time_budget: TimeBudget,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> tuple[History, MoodCheckIn, RecommendationResult]:
    """
    Record a check-in and the recommendation produced for it.

    The recommendation is computed from the history *before* the new
    check-in is appended; the check-in's practice_id is the primary pick.
    """
    moment = _now(now)
    recommendation = build_recommendation(
        mood,
        time_budget,
        shift,
        history=history,
        current_hour=moment.astimezone(tz).hour,
        tz=tz,
    )
    check_in = MoodCheckIn(
        id=_new_id(),
        mood=mood,
        shift=shift,
        time_available=time_budget,
        timestamp=to_iso(moment),
        practice_id=recommendation.primary.id,
    )
    logger.info(
        "Check-in committed mood=%s time=%s practice=%s fallback=%s",
        mood.value,
        time_budget.value,
        check_in.practice_id,
        recommendation.is_fallback,
    )
    return replace(history, check_ins=(*history.check_ins, check_in)), check_in, recommendation


def rotate_check_in(
    history: History,
    check_in_id: str,
    current: RecommendationResult | None = None,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> tuple[History, RecommendationResult]:
    """
    Swap the active check-in to the next ranked suggestion.

    ``current`` defaults to a recommendation whose primary is the practice
    currently attached to the check-in.
    """
    check_in = _require_check_in(history, check_in_id)
    moment = _now(now)

    if current is None:
        attached = get_practice_by_id(check_in.practice_id)
        if attached is None:
            raise ValidationError(f"Check-in references unknown practice: {check_in.practice_id}")
        current = RecommendationResult(primary=attached, alternatives=(), reason="")

    # Rank against history without the active check-in so the user's own
    # in-progress entry does not feed its own signals.
    prior = replace(history, check_ins=tuple(c for c in history.check_ins if c.id != check_in_id))
    recommendation = rotate_recommendation(
        current,
        check_in.mood,
        check_in.time_available,
        check_in.shift,
        history=prior,
        current_hour=moment.astimezone(tz).hour,
        tz=tz,
    )
    updated = replace(check_in, practice_id=recommendation.primary.id)
    return _replace_check_in(history, updated), recommendation


def start_timer(
    history: History,
    check_in_id: str,
    practice_id: str,
    now: datetime | None = None,
) -> tuple[History, TimerSession]:
    """Start a countdown for ``practice_id`` and attach it to the check-in."""
    practice = get_practice_by_id(practice_id)
    if practice is None:
        raise ValidationError(f"Unknown practice: {practice_id}")
    check_in = _require_check_in(history, check_in_id)

    session = TimerSession(
        id=_new_id(),
        practice_id=practice.id,
        check_in_id=check_in.id,
        started_at=to_iso(_now(now)),
        duration_seconds=practice.duration_seconds,
        mood=check_in.mood,
        time_available=check_in.time_available,
    )
    updated = replace(check_in, practice_id=practice.id)
    return _replace_check_in(history, updated), session


def complete_timer(
    history: History,
    session: TimerSession,
    log_reset: bool,
    post_mood: PostMood | None = None,
    now: datetime | None = None,
) -> tuple[History, ResetLog | None]:
    """
    Finish a timer session.

    Appends a ResetLog linked to the check-in when ``log_reset`` is set and
    records ``post_mood`` on the check-in.

    Raises:
        NotFoundError: if the session's check-in is gone
        ValidationError: if the session names an unknown practice or
            disagrees with its check-in on mood or practice
        StateError: if the check-in already has an outcome, or this
            session was already logged
    """
    check_in = _require_check_in(history, session.check_in_id)
    if get_practice_by_id(session.practice_id) is None:
        raise ValidationError(f"Unknown practice: {session.practice_id}")
    if session.mood != check_in.mood or session.practice_id != check_in.practice_id:
        raise ValidationError(f"Timer session does not match check-in {check_in.id}")

    if log_reset and _already_logged(history, session):
        raise StateError(f"Timer session for check-in {check_in.id} was already logged")

    if post_mood is not None and check_in.post_mood is not None:
        raise StateError(f"Check-in {check_in.id} already has an outcome")

    reset: ResetLog | None = None
    resets = history.resets
    if log_reset:
        reset = ResetLog(
            id=_new_id(),
            practice_id=session.practice_id,
            mood=session.mood,
            started_at=session.started_at,
            completed_at=to_iso(_now(now)),
            time_available=session.time_available,
            post_mood=post_mood,
            check_in_id=check_in.id,
        )
        resets = (*resets, reset)

    updated_history = replace(history, resets=resets)
    if post_mood is not None:
        updated_history = _replace_check_in(updated_history, replace(check_in, post_mood=post_mood))

    logger.info(
        "Timer completed practice=%s logged=%s post_mood=%s",
        session.practice_id,
        log_reset,
        post_mood.value if post_mood else None,
    )
    return updated_history, reset


def skip_timer(history: History, session: TimerSession | None = None) -> History:
    """Abandon a timer without logging anything."""
    if session is not None:
        logger.info("Timer skipped practice=%s", session.practice_id)
    return history


def clear_history(history: History) -> History:
    """Drop all check-ins and resets, keeping settings."""
    return History(settings=history.settings)


__all__ = [
    "TimerSession",
    "TimerStatus",
    "clear_history",
    "commit_mood_selection",
    "complete_timer",
    "rotate_check_in",
    "skip_timer",
    "start_timer",
]
