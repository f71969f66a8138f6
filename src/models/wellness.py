"""
Domain types for Burnout Buddy.

Plain dataclasses and enums shared by the recommendation core, the
session flow, the stores, and the API. None of these types hold a
reference to storage; a ``History`` is a value that gets passed into
every core call and replaced (never mutated) by the session flow.

Documents:
    Records serialize to the camelCase JSON document shape used by the
    demo store and by data export (``to_document`` / ``from_document``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from src.lib.exceptions import SerializationError

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class Mood(StrEnum):
    """Self-reported mood, ordered from most to least regulated."""

    CALM = "calm"
    OK = "ok"
    STRESSED = "stressed"
    EXHAUSTED = "exhausted"

    @property
    def display(self) -> str:
        return _MOOD_DISPLAY[self]

    @property
    def wellness_rank(self) -> int:
        """calm=4 .. exhausted=1"""
        return _MOOD_RANK[self]


_MOOD_DISPLAY = {
    Mood.CALM: "Calm",
    Mood.OK: "OK",
    Mood.STRESSED: "Stressed",
    Mood.EXHAUSTED: "Exhausted",
}

_MOOD_RANK = {Mood.CALM: 4, Mood.OK: 3, Mood.STRESSED: 2, Mood.EXHAUSTED: 1}


class TimeBudget(StrEnum):
    """Time the user says they have available."""

    SHORT = "2m"
    LONG = "5m"

    @property
    def spoken(self) -> str:
        return "2 minutes" if self is TimeBudget.SHORT else "5 minutes"


class PostMood(StrEnum):
    """Self-report after a reset."""

    BETTER = "better"
    SAME = "same"


class PracticeCategory(StrEnum):
    BREATHING = "breathing"
    MOVEMENT = "movement"
    MINDSET = "mindset"
    VISUAL = "visual"
    GRATITUDE = "gratitude"


# =============================================================================
# Helpers
# =============================================================================


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string with a trailing Z."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def to_iso(value: datetime) -> str:
    """Format a datetime the way records store it (UTC, trailing Z)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp; naive values are treated as UTC.

    Returns None for missing or unparseable values so callers can skip
    the record instead of failing.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_enum(enum_cls: type[StrEnum], value: Any) -> Any:
    if value is None:
        return None
    return enum_cls(value)


# =============================================================================
# Catalog types
# =============================================================================


@dataclass(frozen=True)
class BreathingCue:
    """Inhale / hold / exhale / rest counts for paced breathing."""

    inhale: int = 0
    hold: int = 0
    exhale: int = 0
    rest: int = 0


@dataclass(frozen=True)
class Practice:
    """A guided micro-reset from the static catalog."""

    id: str
    name: str
    duration_seconds: int
    category: PracticeCategory
    tags: tuple[Mood, ...]
    summary: str
    why_it_helps: str
    steps: tuple[str, ...]
    cue: BreathingCue | None = None
    time_options: tuple[TimeBudget, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "duration_seconds": self.duration_seconds,
            "category": self.category.value,
            "tags": [t.value for t in self.tags],
            "summary": self.summary,
            "why_it_helps": self.why_it_helps,
            "steps": list(self.steps),
            "cue": None if self.cue is None else {
                "inhale": self.cue.inhale,
                "hold": self.cue.hold,
                "exhale": self.cue.exhale,
                "rest": self.cue.rest,
            },
            "time_options": None if self.time_options is None else [t.value for t in self.time_options],
        }


# =============================================================================
# History records
# =============================================================================


@dataclass(frozen=True)
class MoodCheckIn:
    """One mood submission. ``practice_id`` is re-pointed on rotate/start."""

    id: str
    mood: Mood
    shift: bool
    time_available: TimeBudget
    timestamp: str
    practice_id: str
    post_mood: PostMood | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "mood": self.mood.value,
            "shift": self.shift,
            "timeAvailable": self.time_available.value,
            "timestamp": self.timestamp,
            "practiceId": self.practice_id,
        }
        if self.post_mood is not None:
            doc["postMood"] = self.post_mood.value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> MoodCheckIn:
        try:
            return cls(
                id=str(doc["id"]),
                mood=Mood(doc["mood"]),
                shift=bool(doc.get("shift", False)),
                time_available=TimeBudget(doc.get("timeAvailable", TimeBudget.SHORT.value)),
                timestamp=str(doc["timestamp"]),
                practice_id=str(doc.get("practiceId") or ""),
                post_mood=_optional_enum(PostMood, doc.get("postMood")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed check-in document: {e}") from e


@dataclass(frozen=True)
class ResetLog:
    """One completed (or explicitly logged) timer session. Never mutated."""

    id: str
    practice_id: str
    mood: Mood
    started_at: str
    time_available: TimeBudget
    completed_at: str | None = None
    post_mood: PostMood | None = None
    check_in_id: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "practiceId": self.practice_id,
            "mood": self.mood.value,
            "startedAt": self.started_at,
            "timeAvailable": self.time_available.value,
            "checkInId": self.check_in_id,
        }
        if self.completed_at is not None:
            doc["completedAt"] = self.completed_at
        if self.post_mood is not None:
            doc["postMood"] = self.post_mood.value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> ResetLog:
        try:
            return cls(
                id=str(doc["id"]),
                practice_id=str(doc.get("practiceId") or ""),
                mood=Mood(doc["mood"]),
                started_at=str(doc.get("startedAt") or ""),
                time_available=TimeBudget(doc.get("timeAvailable", TimeBudget.SHORT.value)),
                completed_at=doc.get("completedAt"),
                post_mood=_optional_enum(PostMood, doc.get("postMood")),
                check_in_id=doc.get("checkInId") or None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed reset document: {e}") from e


@dataclass(frozen=True)
class AppSettings:
    reduced_motion: bool = False
    display_name: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"reducedMotion": self.reduced_motion}
        if self.display_name is not None:
            doc["displayName"] = self.display_name
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> AppSettings:
        doc = doc or {}
        return cls(
            reduced_motion=bool(doc.get("reducedMotion", False)),
            display_name=doc.get("displayName"),
        )


@dataclass(frozen=True)
class History:
    """
    Snapshot of one user's check-ins, resets, and settings.

    Passed by value into the Pattern Analyzer and Recommendation Ranker.
    Session-flow operations return a new History rather than mutating.
    """

    check_ins: tuple[MoodCheckIn, ...] = ()
    resets: tuple[ResetLog, ...] = ()
    settings: AppSettings = field(default_factory=AppSettings)

    @property
    def is_empty(self) -> bool:
        return not self.check_ins and not self.resets

    def find_check_in(self, check_in_id: str | None) -> MoodCheckIn | None:
        if not check_in_id:
            return None
        for check_in in self.check_ins:
            if check_in.id == check_in_id:
                return check_in
        return None

    def to_document(self) -> dict[str, Any]:
        return {
            "checkIns": [c.to_document() for c in self.check_ins],
            "resets": [r.to_document() for r in self.resets],
            "settings": self.settings.to_document(),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> History:
        """
        Build a History from a stored document.

        Individual malformed records are logged and dropped; the rest of
        the history still loads.
        """
        if not doc:
            return cls()
        if not isinstance(doc, dict):
            raise SerializationError("History document must be an object")

        check_ins: list[MoodCheckIn] = []
        for raw in doc.get("checkIns") or []:
            try:
                check_ins.append(MoodCheckIn.from_document(raw))
            except SerializationError as e:
                logger.warning("Skipping check-in record: %s", e)

        resets: list[ResetLog] = []
        for raw in doc.get("resets") or []:
            try:
                resets.append(ResetLog.from_document(raw))
            except SerializationError as e:
                logger.warning("Skipping reset record: %s", e)

        return cls(
            check_ins=tuple(check_ins),
            resets=tuple(resets),
            settings=AppSettings.from_document(doc.get("settings")),
        )


# =============================================================================
# Recommendation result
# =============================================================================


@dataclass(frozen=True)
class RecommendationResult:
    """
    Ranked suggestion returned to the caller.

    ``is_fallback`` marks the degraded path (no practice matched the
    mood+time filter); ``personalized`` is True only when history
    signals shaped the ranking.
    """

    primary: Practice
    alternatives: tuple[Practice, ...]
    reason: str
    personalized: bool = False
    is_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "alternatives": [p.to_dict() for p in self.alternatives],
            "reason": self.reason,
            "personalized": self.personalized,
            "is_fallback": self.is_fallback,
        }


__all__ = [
    "AppSettings",
    "BreathingCue",
    "History",
    "Mood",
    "MoodCheckIn",
    "PostMood",
    "Practice",
    "PracticeCategory",
    "RecommendationResult",
    "ResetLog",
    "TimeBudget",
    "parse_timestamp",
    "to_iso",
    "utc_now_iso",
]
