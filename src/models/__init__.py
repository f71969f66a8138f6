"""
Models package for Burnout Buddy.

Domain types (dataclasses) and the SQLAlchemy tables used by account
sessions.

Usage:
    from src.models import History, Mood, TimeBudget
    from src.models import CheckInRecord, ResetLogRecord
"""

from src.models.base import Base
from src.models.records import CheckInRecord, ResetLogRecord, UserSettingsRecord
from src.models.wellness import (
    AppSettings,
    BreathingCue,
    History,
    Mood,
    MoodCheckIn,
    PostMood,
    Practice,
    PracticeCategory,
    RecommendationResult,
    ResetLog,
    TimeBudget,
)

__all__ = [
    # Base
    "Base",
    # Tables
    "CheckInRecord",
    "ResetLogRecord",
    "UserSettingsRecord",
    # Domain
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
]
