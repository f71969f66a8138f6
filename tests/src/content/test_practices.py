"""
Tests for the static practice catalog (src/content/practices.py).

Tests cover:
- Catalog reachability (every mood has a practice for some budget)
- Both time budgets have candidates
- Lookups and mood priority
- validate_catalog failure modes
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from src.content.practices import (
    MOOD_PRIORITY,
    PRACTICE_LOOKUP,
    PRACTICES,
    get_practice_by_id,
    get_primary_practice_for_mood,
    practice_supports_time,
    validate_catalog,
)
from src.lib.exceptions import ConfigurationError
from src.models.wellness import Mood, TimeBudget

# =============================================================================
# Catalog shape
# =============================================================================


def test_every_mood_is_reachable():
    for mood in Mood:
        assert any(
            mood in p.tags and any(practice_supports_time(p, b) for b in TimeBudget)
            for p in PRACTICES
        ), mood


def test_every_budget_has_a_practice():
    for budget in TimeBudget:
        assert any(practice_supports_time(p, budget) for p in PRACTICES), budget


def test_long_budget_has_practices_over_three_minutes():
    long_only = [p for p in PRACTICES if p.time_options == (TimeBudget.LONG,)]
    assert {p.id for p in long_only} == {"body-scan", "mindful-walk", "savoring-pause"}
    assert all(p.duration_seconds > 180 for p in long_only)


def test_ids_are_unique():
    assert len(PRACTICE_LOOKUP) == len(PRACTICES)


def test_original_catalog_order_is_kept():
    assert [p.id for p in PRACTICES[:6]] == [
        "box-breathing",
        "478-breathing",
        "micro-stretch",
        "visual-reset",
        "mental-unload",
        "gratitude-note",
    ]


# =============================================================================
# Lookups
# =============================================================================


def test_get_practice_by_id():
    assert get_practice_by_id("box-breathing").name == "Box Breathing"
    assert get_practice_by_id("missing") is None
    assert get_practice_by_id(None) is None


def test_practice_without_time_options_supports_any_budget():
    open_practice = replace(PRACTICES[0], time_options=None)
    assert practice_supports_time(open_practice, TimeBudget.SHORT)
    assert practice_supports_time(open_practice, TimeBudget.LONG)


def test_478_breathing_is_short_only():
    practice = get_practice_by_id("478-breathing")
    assert practice_supports_time(practice, TimeBudget.SHORT)
    assert not practice_supports_time(practice, TimeBudget.LONG)


@pytest.mark.parametrize("mood", list(Mood))
def test_mood_priority_references_catalog(mood):
    assert all(pid in PRACTICE_LOOKUP for pid in MOOD_PRIORITY[mood])
    assert get_primary_practice_for_mood(mood).id == MOOD_PRIORITY[mood][0]


# =============================================================================
# validate_catalog
# =============================================================================


def test_validate_catalog_accepts_shipped_catalog():
    validate_catalog(PRACTICES)


def test_validate_catalog_rejects_empty():
    with pytest.raises(ConfigurationError, match="empty"):
        validate_catalog(())


def test_validate_catalog_rejects_duplicates():
    with pytest.raises(ConfigurationError, match="Duplicate"):
        validate_catalog((PRACTICES[0], PRACTICES[0]))


def test_validate_catalog_rejects_missing_budget():
    short_only = tuple(p for p in PRACTICES if p.time_options == (TimeBudget.SHORT,))
    with pytest.raises(ConfigurationError, match="5 minutes"):
        validate_catalog(short_only)


def test_validate_catalog_rejects_unreachable_mood():
    no_calm = tuple(p for p in PRACTICES if Mood.CALM not in p.tags)
    with pytest.raises(ConfigurationError, match="calm"):
        validate_catalog(no_calm)
