"""
Static content for Burnout Buddy (practice catalog).
"""

from src.content.practices import (
    MOOD_PRIORITY,
    PRACTICE_LOOKUP,
    PRACTICES,
    get_practice_by_id,
    get_primary_practice_for_mood,
    practice_supports_time,
    validate_catalog,
)

__all__ = [
    "MOOD_PRIORITY",
    "PRACTICES",
    "PRACTICE_LOOKUP",
    "get_practice_by_id",
    "get_primary_practice_for_mood",
    "practice_supports_time",
    "validate_catalog",
]
