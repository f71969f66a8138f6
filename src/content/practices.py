"""
Static practice catalog.

Hand-authored micro-resets. The catalog is fixed at import time and
validated once; everything downstream (ranker, session flow, API)
treats it as read-only.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.lib.exceptions import ConfigurationError
from src.models.wellness import (
    BreathingCue,
    Mood,
    Practice,
    PracticeCategory,
    TimeBudget,
)

PRACTICES: tuple[Practice, ...] = (
    Practice(
        id="box-breathing",
        name="Box Breathing",
        duration_seconds=120,
        category=PracticeCategory.BREATHING,
        tags=(Mood.STRESSED, Mood.EXHAUSTED, Mood.OK),
        summary="Steady four-count breathing to quickly calm the nervous system.",
        why_it_helps=(
            "Creates rhythmic balance between inhale, hold, exhale and rest "
            "to downshift stress hormones."
        ),
        steps=(
            "Inhale gently through the nose for 4 counts.",
            "Hold the breath softly for 4 counts.",
            "Exhale through the mouth for 4 counts.",
            "Rest and notice the pause for 4 counts, then repeat.",
        ),
        cue=BreathingCue(inhale=4, hold=4, exhale=4, rest=4),
        time_options=(TimeBudget.SHORT, TimeBudget.LONG),
    ),
    Practice(
        id="478-breathing",
        name="4-7-8 Breathing",
        duration_seconds=150,
        category=PracticeCategory.BREATHING,
        tags=(Mood.EXHAUSTED, Mood.STRESSED),
        summary="Longer exhales to settle an overactive mind.",
        why_it_helps="Extending the exhale activates the parasympathetic response and eases tension.",
        steps=(
            "Inhale quietly through the nose for 4 counts.",
            "Hold gently for 7 counts.",
            "Exhale audibly for 8 counts, letting the stress go.",
            "Repeat 4 cycles, keeping shoulders soft.",
        ),
        cue=BreathingCue(inhale=4, hold=7, exhale=8, rest=0),
        time_options=(TimeBudget.SHORT,),
    ),
    Practice(
        id="micro-stretch",
        name="Micro Stretch",
        duration_seconds=150,
        category=PracticeCategory.MOVEMENT,
        tags=(Mood.OK, Mood.STRESSED, Mood.EXHAUSTED),
        summary="Neck and shoulder reset to release screen-time tension.",
        why_it_helps="Gentle movement boosts blood flow and reduces stiffness that feeds fatigue.",
        steps=(
            "Roll shoulders back in slow circles x3, breathing with the motion.",
            "Drop the right ear toward the shoulder, hold 10 seconds, switch sides.",
            "Interlace fingers behind head, open chest, breathe into the ribs for 3 cycles.",
        ),
        time_options=(TimeBudget.SHORT, TimeBudget.LONG),
    ),
    Practice(
        id="visual-reset",
        name="Visual Reset",
        duration_seconds=90,
        category=PracticeCategory.VISUAL,
        tags=(Mood.CALM, Mood.OK),
        summary="Shift focus to distant gaze to relax eye and brain strain.",
        why_it_helps="Distance gazing relaxes ocular muscles and widens awareness beyond the chart.",
        steps=(
            "Look out to a point 20+ feet away, soften your gaze.",
            "Breathe slowly and notice color, light, and shape.",
            "Blink gently and return with refreshed focus.",
        ),
        time_options=(TimeBudget.SHORT,),
    ),
    Practice(
        id="mental-unload",
        name="Mental Unload",
        duration_seconds=120,
        category=PracticeCategory.MINDSET,
        tags=(Mood.STRESSED, Mood.EXHAUSTED),
        summary="Slow counting scan to clear looping thoughts.",
        why_it_helps="Gives the mind a simple rhythmic task so cognitive overload can settle.",
        steps=(
            "Close eyes or soften gaze and count breaths backwards from 10.",
            "If thoughts intrude, warmly notice them and restart at 10.",
            "End by naming one thing you're grateful to have handled today.",
        ),
        time_options=(TimeBudget.SHORT,),
    ),
    Practice(
        id="gratitude-note",
        name="Gratitude Micro-note",
        duration_seconds=90,
        category=PracticeCategory.GRATITUDE,
        tags=(Mood.CALM, Mood.OK, Mood.STRESSED),
        summary="Jot one sentence about someone or something you value from today.",
        why_it_helps="Gratitude practices increase resilience and buffer against cynicism.",
        steps=(
            "Take three easy breaths, notice what felt meaningful.",
            "Write one sentence or say it aloud.",
            "Let yourself feel the appreciation for a full breath.",
        ),
        time_options=(TimeBudget.SHORT,),
    ),
    Practice(
        id="body-scan",
        name="Body Scan",
        duration_seconds=300,
        category=PracticeCategory.MINDSET,
        tags=(Mood.STRESSED, Mood.EXHAUSTED, Mood.OK),
        summary="Slow head-to-toe attention sweep to release held tension.",
        why_it_helps="Noticing each region in turn interrupts rumination and lets muscles unclench.",
        steps=(
            "Sit back, drop your shoulders, and let the eyes close or soften.",
            "Move attention from the crown of the head down to the jaw and neck.",
            "Continue through shoulders, arms, chest, belly, hips, and legs.",
            "Finish at the feet and take three slower breaths before opening your eyes.",
        ),
        time_options=(TimeBudget.LONG,),
    ),
    Practice(
        id="mindful-walk",
        name="Mindful Hallway Walk",
        duration_seconds=240,
        category=PracticeCategory.MOVEMENT,
        tags=(Mood.CALM, Mood.OK, Mood.STRESSED),
        summary="An unhurried lap with attention on each step.",
        why_it_helps="Rhythmic walking pairs light movement with focus, clearing residual adrenaline.",
        steps=(
            "Walk at half your usual pace, feeling heel, arch, and toes land.",
            "Match your breath to four steps in and four steps out.",
            "Notice three sounds around you without labeling them.",
            "Pause before returning and name your next single task.",
        ),
        time_options=(TimeBudget.LONG,),
    ),
    Practice(
        id="savoring-pause",
        name="Savoring Pause",
        duration_seconds=270,
        category=PracticeCategory.GRATITUDE,
        tags=(Mood.CALM, Mood.OK),
        summary="Replay one good moment from your shift in detail.",
        why_it_helps="Savoring positive moments strengthens them in memory and sustains a settled mood.",
        steps=(
            "Recall a moment today that went well, however small.",
            "Picture where you were, who was there, and what was said.",
            "Notice where you feel that moment in your body.",
            "Close with one breath of thanks for your part in it.",
        ),
        time_options=(TimeBudget.LONG,),
    ),
)

PRACTICE_LOOKUP: dict[str, Practice] = {practice.id: practice for practice in PRACTICES}

MOOD_PRIORITY: dict[Mood, tuple[str, ...]] = {
    Mood.CALM: ("visual-reset", "gratitude-note", "micro-stretch"),
    Mood.OK: ("micro-stretch", "gratitude-note", "visual-reset"),
    Mood.STRESSED: ("box-breathing", "micro-stretch", "mental-unload"),
    Mood.EXHAUSTED: ("478-breathing", "box-breathing", "mental-unload"),
}


def practice_supports_time(practice: Practice, time_budget: TimeBudget) -> bool:
    """A practice without explicit time options fits any budget."""
    if not practice.time_options:
        return True
    return time_budget in practice.time_options


def get_practice_by_id(practice_id: str | None) -> Practice | None:
    if not practice_id:
        return None
    return PRACTICE_LOOKUP.get(practice_id)


def get_primary_practice_for_mood(mood: Mood) -> Practice:
    """Hand-picked first choice for a mood, independent of history."""
    return PRACTICE_LOOKUP[MOOD_PRIORITY[mood][0]]


def validate_catalog(practices: Sequence[Practice]) -> None:
    """
    Check the catalog can serve every request.

    Raises:
        ConfigurationError: if the catalog is empty, ids collide, some time
            budget has no compatible practice, or some mood has no practice
            compatible with any budget.
    """
    if not practices:
        raise ConfigurationError("Practice catalog is empty")

    ids = [p.id for p in practices]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate practice ids: {', '.join(duplicates)}")

    for budget in TimeBudget:
        if not any(practice_supports_time(p, budget) for p in practices):
            raise ConfigurationError(f"No practice supports the {budget.spoken} window")

    for mood in Mood:
        reachable = any(
            mood in p.tags and any(practice_supports_time(p, b) for b in TimeBudget)
            for p in practices
        )
        if not reachable:
            raise ConfigurationError(f"No practice is tagged for mood '{mood.value}'")


__all__ = [
    "MOOD_PRIORITY",
    "PRACTICES",
    "PRACTICE_LOOKUP",
    "get_practice_by_id",
    "get_primary_practice_for_mood",
    "practice_supports_time",
    "validate_catalog",
]
