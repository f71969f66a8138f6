"""
Tests for gamification stories (src/services/gamification.py).

Tests cover:
- build_gamification_input stats, ordering, and name fallback
- GamificationInput camelCase document
- StoryGenerator: unavailable without a key, malformed responses, success
"""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date, timedelta

import httpx
import pytest

from src.lib.exceptions import ExternalServiceError, ServiceUnavailableError
from src.models.wellness import AppSettings, History, Mood
from src.services.gamification import (
    GamificationInput,
    HighlightPractice,
    StoryGenerator,
    build_gamification_input,
)
from src.services.llm_client import LLMClient
from tests.factories import BASE_TIME, build_check_in, build_reset

WEDNESDAY = date(2026, 3, 4)
YESTERDAY = BASE_TIME - timedelta(days=1)


@pytest.fixture
def history():
    return History(
        check_ins=(
            build_check_in(id="c1", mood=Mood.STRESSED, timestamp=YESTERDAY),
            build_check_in(id="c2", mood=Mood.EXHAUSTED, timestamp=BASE_TIME),
        ),
        resets=(
            replace(
                build_reset(id="r1", practice_id="box-breathing", check_in_id="c1", started_at=YESTERDAY),
                completed_at=None,
            ),
            build_reset(id="r2", check_in_id="c2"),
        ),
    )


# =============================================================================
# build_gamification_input
# =============================================================================


def test_stats(history):
    payload = build_gamification_input(history, today=WEDNESDAY)

    assert payload.doctor_name == "Doctor"
    assert payload.streak_days == 2
    assert payload.week_check_ins == 2
    assert payload.week_resets == 2
    assert payload.lifetime_check_ins == 2
    assert payload.lifetime_resets == 2
    # Tue and Wed tie at 2 events each; the earlier day wins
    assert payload.best_day == "Tue"


def test_recent_items_are_newest_first(history):
    payload = build_gamification_input(history, today=WEDNESDAY)
    assert payload.recent_moods == (Mood.EXHAUSTED, Mood.STRESSED)
    assert payload.recent_practices == ("4-7-8 Breathing", "Box Breathing")


def test_highlights_only_include_completed_resets(history):
    payload = build_gamification_input(history, today=WEDNESDAY)
    assert payload.highlight_practices == (
        HighlightPractice(name="4-7-8 Breathing", completed_at="2026-03-04T09:00:00Z"),
    )


def test_recent_lists_are_capped():
    resets = tuple(
        build_reset(id=f"r{i}", started_at=BASE_TIME - timedelta(hours=i)) for i in range(8)
    )
    payload = build_gamification_input(History(resets=resets), today=WEDNESDAY)
    assert len(payload.recent_practices) == 5
    assert len(payload.highlight_practices) == 3


def test_unknown_practice_falls_back_to_id():
    history = History(resets=(build_reset(practice_id="retired-reset"),))
    payload = build_gamification_input(history, today=WEDNESDAY)
    assert payload.recent_practices == ("retired-reset",)


@pytest.mark.parametrize(
    ("explicit", "stored", "expected"),
    [
        ("Dr. Okafor", "Dr. Lee", "Dr. Okafor"),
        (None, "Dr. Lee", "Dr. Lee"),
        (None, None, "Doctor"),
        ("   ", None, "Doctor"),
    ],
)
def test_doctor_name_resolution(explicit, stored, expected):
    history = History(settings=AppSettings(display_name=stored))
    assert build_gamification_input(history, display_name=explicit, today=WEDNESDAY).doctor_name == expected


def test_document_shape(history):
    doc = build_gamification_input(history, today=WEDNESDAY).to_document()
    assert doc == {
        "doctorName": "Doctor",
        "streakDays": 2,
        "weekCheckIns": 2,
        "weekResets": 2,
        "lifetimeCheckIns": 2,
        "lifetimeResets": 2,
        "recentMoods": ["exhausted", "stressed"],
        "recentPractices": ["4-7-8 Breathing", "Box Breathing"],
        "highlightPractices": [{"name": "4-7-8 Breathing", "completedAt": "2026-03-04T09:00:00Z"}],
        "bestDay": "Tue",
    }


def test_document_omits_missing_best_day():
    doc = build_gamification_input(History(), today=WEDNESDAY).to_document()
    assert "bestDay" not in doc
    assert doc["recentMoods"] == []


# =============================================================================
# StoryGenerator
# =============================================================================

STORIES = {
    "achievementStory": "You showed up for yourself.",
    "streakCelebration": "Two days running.",
    "progressNarrative": "Small resets add up.",
}


def _generator(handler) -> StoryGenerator:
    client = LLMClient(api_key="sk-test", base_url="https://llm.test/v1", transport=httpx.MockTransport(handler))
    return StoryGenerator(client)


def _reply(content: dict) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": json.dumps(content)}}]})


@pytest.mark.asyncio
async def test_generate_without_key_is_unavailable():
    generator = StoryGenerator(LLMClient(api_key=None, base_url="https://llm.test/v1"))
    with pytest.raises(ServiceUnavailableError, match="OPENAI_API_KEY"):
        await generator.generate(GamificationInput("Doctor", 0, 0, 0, 0, 0))


@pytest.mark.asyncio
async def test_generate_returns_stories(history):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return _reply(STORIES)

    payload = build_gamification_input(history, display_name="Dr. Okafor", today=WEDNESDAY)
    stories = await _generator(handler).generate(payload)

    assert stories.to_dict() == {
        "achievement_story": "You showed up for yourself.",
        "streak_celebration": "Two days running.",
        "progress_narrative": "Small resets add up.",
    }
    sent = requests[0]
    assert sent["temperature"] == 0.7
    assert sent["max_tokens"] == 800
    assert '"doctorName": "Dr. Okafor"' in sent["messages"][1]["content"]


@pytest.mark.asyncio
async def test_generate_rejects_incomplete_response():
    partial = {k: v for k, v in STORIES.items() if k != "progressNarrative"}
    with pytest.raises(ExternalServiceError, match="malformed"):
        await _generator(lambda request: _reply(partial)).generate(GamificationInput("Doctor", 0, 0, 0, 0, 0))


@pytest.mark.asyncio
async def test_generate_rejects_non_string_fields():
    bad = {**STORIES, "streakCelebration": 3}
    with pytest.raises(ExternalServiceError):
        await _generator(lambda request: _reply(bad)).generate(GamificationInput("Doctor", 0, 0, 0, 0, 0))
