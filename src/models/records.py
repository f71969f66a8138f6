"""
SQL tables backing authenticated (account) sessions.

Each user's history is stored as rows keyed by ``user_id`` (the session
subject). ``position`` preserves the append order of the original
history so the Pattern Analyzer sees records in the order they were
created, which matters for first-match linking of legacy resets.

Timestamps are kept as the ISO strings carried by the domain records
rather than re-typed, so a save/load round-trip is lossless.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from src.models.base import Base
from src.models.wellness import (
    AppSettings,
    Mood,
    MoodCheckIn,
    PostMood,
    ResetLog,
    TimeBudget,
)


class CheckInRecord(Base):
    """Persisted MoodCheckIn."""

    __tablename__ = "check_ins"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    mood = Column(String(16), nullable=False)
    shift = Column(Boolean, nullable=False, default=False)
    time_available = Column(String(4), nullable=False)
    timestamp = Column(String(40), nullable=False)
    practice_id = Column(String(64), nullable=False)
    post_mood = Column(String(8), nullable=True)

    __table_args__ = (Index("ix_check_ins_user_position", "user_id", "position"),)

    @classmethod
    def from_domain(cls, user_id: str, position: int, check_in: MoodCheckIn) -> CheckInRecord:
        return cls(
            id=check_in.id,
            user_id=user_id,
            position=position,
            mood=check_in.mood.value,
            shift=check_in.shift,
            time_available=check_in.time_available.value,
            timestamp=check_in.timestamp,
            practice_id=check_in.practice_id,
            post_mood=check_in.post_mood.value if check_in.post_mood else None,
        )

    def to_domain(self) -> MoodCheckIn:
        return MoodCheckIn(
            id=self.id,
            mood=Mood(self.mood),
            shift=bool(self.shift),
            time_available=TimeBudget(self.time_available),
            timestamp=self.timestamp,
            practice_id=self.practice_id,
            post_mood=PostMood(self.post_mood) if self.post_mood else None,
        )


class ResetLogRecord(Base):
    """Persisted ResetLog."""

    __tablename__ = "reset_logs"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    practice_id = Column(String(64), nullable=False)
    mood = Column(String(16), nullable=False)
    started_at = Column(String(40), nullable=False)
    completed_at = Column(String(40), nullable=True)
    time_available = Column(String(4), nullable=False)
    post_mood = Column(String(8), nullable=True)
    check_in_id = Column(String(64), nullable=True)

    __table_args__ = (Index("ix_reset_logs_user_position", "user_id", "position"),)

    @classmethod
    def from_domain(cls, user_id: str, position: int, reset: ResetLog) -> ResetLogRecord:
        return cls(
            id=reset.id,
            user_id=user_id,
            position=position,
            practice_id=reset.practice_id,
            mood=reset.mood.value,
            started_at=reset.started_at,
            completed_at=reset.completed_at,
            time_available=reset.time_available.value,
            post_mood=reset.post_mood.value if reset.post_mood else None,
            check_in_id=reset.check_in_id,
        )

    def to_domain(self) -> ResetLog:
        return ResetLog(
            id=self.id,
            practice_id=self.practice_id,
            mood=Mood(self.mood),
            started_at=self.started_at,
            time_available=TimeBudget(self.time_available),
            completed_at=self.completed_at,
            post_mood=PostMood(self.post_mood) if self.post_mood else None,
            check_in_id=self.check_in_id,
        )


class UserSettingsRecord(Base):
    """Per-user app settings."""

    __tablename__ = "user_settings"

    user_id = Column(String(128), primary_key=True)
    reduced_motion = Column(Boolean, nullable=False, default=False)
    display_name = Column(String(255), nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    def to_domain(self) -> AppSettings:
        return AppSettings(
            reduced_motion=bool(self.reduced_motion),
            display_name=self.display_name,
        )


__all__ = ["CheckInRecord", "ResetLogRecord", "UserSettingsRecord"]
