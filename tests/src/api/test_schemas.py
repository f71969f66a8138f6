"""Tests for request schemas and the response envelope (src/api/schemas.py)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.api.schemas import (
    CheckInRequest,
    CompleteTimerRequest,
    DemoSessionRequest,
    SettingsUpdate,
    error_response,
    success_response,
)
from src.models.wellness import Mood, TimeBudget


def test_success_envelope():
    body = success_response({"a": 1}, meta={"page": 2})
    assert body["success"] is True
    assert body["data"] == {"a": 1}
    assert body["error"] is None
    assert body["meta"]["page"] == 2
    assert "timestamp" in body["meta"]


def test_error_envelope():
    body = error_response("NOT_FOUND", details={"id": "x"})
    assert body["success"] is False
    assert body["data"] is None
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["details"] == {"id": "x"}


def test_check_in_request_parses_enums():
    req = CheckInRequest.model_validate({"mood": "exhausted", "time_available": "5m"})
    assert req.mood is Mood.EXHAUSTED
    assert req.time_available is TimeBudget.LONG
    assert req.shift is False


@pytest.mark.parametrize(
    "payload",
    [
        {"mood": "sad", "time_available": "2m"},
        {"mood": "ok", "time_available": "10m"},
        {"time_available": "2m"},
    ],
)
def test_check_in_request_rejects(payload):
    with pytest.raises(ValidationError):
        CheckInRequest.model_validate(payload)


def test_complete_request_defaults():
    req = CompleteTimerRequest.model_validate({
        "session": {
            "id": "t",
            "practice_id": "box-breathing",
            "check_in_id": "c",
            "started_at": "2026-03-04T09:00:00Z",
            "duration_seconds": 120,
            "mood": "stressed",
            "time_available": "2m",
            "remaining_seconds": 0,
        },
    })
    assert req.log_reset is True
    assert req.post_mood is None


def test_complete_request_rejects_unknown_outcome():
    with pytest.raises(ValidationError):
        CompleteTimerRequest.model_validate({"session": {}, "post_mood": "worse"})


@pytest.mark.parametrize("user_id", ["short", "has space in it", "x" * 65])
def test_demo_user_id_constraints(user_id):
    with pytest.raises(ValidationError):
        DemoSessionRequest(user_id=user_id)


def test_settings_display_name_is_stripped():
    assert SettingsUpdate(display_name="  Dr. Ng ").display_name == "Dr. Ng"
    assert SettingsUpdate(display_name="   ").display_name is None
