"""
Pydantic schemas and the response envelope for the Burnout Buddy REST API.

Every endpoint returns::

    {"success": bool, "data": ..., "error": {...} | None, "meta": {"timestamp": ...}}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.lib.errors import build_error_response
from src.models.wellness import Mood, PostMood, TimeBudget, utc_now_iso
from src.services.mood_analysis import MAX_TEXT_LENGTH

# =============================================================================
# Envelope
# =============================================================================


def _meta(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {"timestamp": utc_now_iso()}
    if extra:
        meta.update(extra)
    return meta


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data, "error": None, "meta": _meta(meta)}


def error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Wrap an error code (see src.lib.errors) in the failure envelope."""
    return {
        "success": False,
        "data": None,
        "error": build_error_response(code, message, details),
        "meta": _meta(),
    }


# =============================================================================
# Auth
# =============================================================================


class DemoSessionRequest(BaseModel):
    """Optional existing demo id to resume; a new one is minted otherwise."""

    user_id: str | None = Field(default=None, min_length=8, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")


# =============================================================================
# Check-in flow
# =============================================================================


class CheckInRequest(BaseModel):
    mood: Mood
    time_available: TimeBudget
    shift: bool = False


class RotateRequest(BaseModel):
    """Current primary to rotate away from (defaults to the check-in's practice)."""

    current_practice_id: str | None = Field(default=None, max_length=64)


class StartTimerRequest(BaseModel):
    practice_id: str = Field(..., min_length=1, max_length=64)


class TimerSessionPayload(BaseModel):
    """A timer session echoed back by the client."""

    id: str = Field(..., min_length=1, max_length=64)
    practice_id: str = Field(..., min_length=1, max_length=64)
    check_in_id: str = Field(..., min_length=1, max_length=64)
    started_at: str = Field(..., min_length=1, max_length=40)
    duration_seconds: int = Field(..., ge=0)
    mood: Mood
    time_available: TimeBudget


class CompleteTimerRequest(BaseModel):
    session: TimerSessionPayload
    log_reset: bool = True
    post_mood: PostMood | None = None


class SkipTimerRequest(BaseModel):
    session: TimerSessionPayload | None = None


# =============================================================================
# Settings and LLM-backed features
# =============================================================================


class SettingsUpdate(BaseModel):
    reduced_motion: bool | None = None
    display_name: str | None = Field(default=None, max_length=80)

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class MoodAnalyzeRequest(BaseModel):
    # Length is checked on the stripped text by MoodAnalyzer
    text: str = Field(..., max_length=MAX_TEXT_LENGTH * 4)


class GamifyRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=80)


__all__ = [
    "CheckInRequest",
    "CompleteTimerRequest",
    "DemoSessionRequest",
    "GamifyRequest",
    "MoodAnalyzeRequest",
    "RotateRequest",
    "SettingsUpdate",
    "SkipTimerRequest",
    "StartTimerRequest",
    "TimerSessionPayload",
    "error_response",
    "success_response",
]
