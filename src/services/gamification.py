"""
Gamification stories.

Turns a user's history into a small stats payload and asks the LLM for
three short uplifting narratives (achievement, streak, progress).
Unlike mood analysis there is no local fallback: without a provider
the feature is unavailable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, tzinfo
from typing import Any

from src.content.practices import get_practice_by_id
from src.lib.exceptions import ExternalServiceError, ServiceUnavailableError
from src.models.wellness import History, Mood, parse_timestamp
from src.services.analytics import build_weekly_summary
from src.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
HIGHLIGHT_LIMIT = 3
DEFAULT_DOCTOR_NAME = "Doctor"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

STORY_SYSTEM_PROMPT = (
    "You are Burnout Buddy's gentle narrator. Write concise, uplifting narratives "
    "for physicians navigating burnout. Always respond with valid JSON: "
    '{"achievementStory": string, "streakCelebration": string, "progressNarrative": string}. '
    "Keep each field under 90 words, warm but professional, no medical advice."
)


@dataclass(frozen=True)
class HighlightPractice:
    name: str
    completed_at: str | None = None


@dataclass(frozen=True)
class GamificationInput:
    doctor_name: str
    streak_days: int
    week_check_ins: int
    week_resets: int
    lifetime_check_ins: int
    lifetime_resets: int
    best_day: str | None = None
    recent_moods: tuple[Mood, ...] = ()
    recent_practices: tuple[str, ...] = ()
    highlight_practices: tuple[HighlightPractice, ...] = field(default_factory=tuple)

    def to_document(self) -> dict[str, Any]:
        """camelCase payload sent to the narrator."""
        doc: dict[str, Any] = {
            "doctorName": self.doctor_name,
            "streakDays": self.streak_days,
            "weekCheckIns": self.week_check_ins,
            "weekResets": self.week_resets,
            "lifetimeCheckIns": self.lifetime_check_ins,
            "lifetimeResets": self.lifetime_resets,
            "recentMoods": [m.value for m in self.recent_moods],
            "recentPractices": list(self.recent_practices),
            "highlightPractices": [
                {"name": h.name, "completedAt": h.completed_at} if h.completed_at else {"name": h.name}
                for h in self.highlight_practices
            ],
        }
        if self.best_day:
            doc["bestDay"] = self.best_day
        return doc


@dataclass(frozen=True)
class GamificationStories:
    achievement_story: str
    streak_celebration: str
    progress_narrative: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def _practice_name(practice_id: str) -> str:
    practice = get_practice_by_id(practice_id)
    return practice.name if practice else practice_id


def build_gamification_input(
    history: History,
    display_name: str | None = None,
    today: date | None = None,
    tz: tzinfo = UTC,
) -> GamificationInput:
    """
    Collect the stats the narrator writes about.

    Recent moods and practices are newest first. Highlights are the most
    recent completed resets.
    """
    weekly = build_weekly_summary(history.check_ins, history.resets, today=today, tz=tz)

    check_ins = sorted(
        history.check_ins,
        key=lambda c: parse_timestamp(c.timestamp) or _EPOCH,
        reverse=True,
    )
    resets = sorted(
        history.resets,
        key=lambda r: parse_timestamp(r.started_at) or _EPOCH,
        reverse=True,
    )
    completed = [r for r in resets if r.completed_at]

    return GamificationInput(
        doctor_name=(display_name or history.settings.display_name or DEFAULT_DOCTOR_NAME).strip()
        or DEFAULT_DOCTOR_NAME,
        streak_days=weekly.streak,
        best_day=weekly.best_day,
        week_check_ins=sum(p.check_ins for p in weekly.points),
        week_resets=sum(p.resets for p in weekly.points),
        lifetime_check_ins=len(history.check_ins),
        lifetime_resets=len(history.resets),
        recent_moods=tuple(c.mood for c in check_ins[:RECENT_LIMIT]),
        recent_practices=tuple(_practice_name(r.practice_id) for r in resets[:RECENT_LIMIT]),
        highlight_practices=tuple(
            HighlightPractice(name=_practice_name(r.practice_id), completed_at=r.completed_at)
            for r in completed[:HIGHLIGHT_LIMIT]
        ),
    )


class StoryGenerator:
    """Asks the LLM for the three gamification narratives."""

    def __init__(self, llm_client: LLMClient) -> None:
        self.llm_client = llm_client

    async def generate(self, payload: GamificationInput) -> GamificationStories:
        """
        Raises:
            ServiceUnavailableError: no provider configured, or circuit open
            ExternalServiceError: provider failed or returned malformed stories
        """
        if not self.llm_client.available:
            raise ServiceUnavailableError("AI storytelling is unavailable. Add OPENAI_API_KEY.")

        summary = json.dumps(payload.to_document(), indent=2)
        parsed = await self.llm_client.complete_json(
            [
                {"role": "system", "content": STORY_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        "Craft three pieces (achievementStory, streakCelebration, progressNarrative) "
                        f"for this physician data:\n{summary}"
                    ),
                },
            ],
            temperature=0.7,
            max_tokens=800,
        )

        fields = ("achievementStory", "streakCelebration", "progressNarrative")
        if not all(isinstance(parsed.get(name), str) for name in fields):
            logger.warning("Story response missing fields: %s", sorted(parsed))
            raise ExternalServiceError("AI response was malformed.")

        return GamificationStories(
            achievement_story=parsed["achievementStory"],
            streak_celebration=parsed["streakCelebration"],
            progress_narrative=parsed["progressNarrative"],
        )


__all__ = [
    "GamificationInput",
    "GamificationStories",
    "HighlightPractice",
    "StoryGenerator",
    "build_gamification_input",
]
