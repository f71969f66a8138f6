"""
Tests for the Pattern Analyzer (src/services/pattern_analyzer.py).

Tests cover:
- calculate_mood_improvement mapping
- Reset -> check-in linking (explicit link, legacy first-match, dangling link)
- Skipping unlinked and malformed resets
- Per practice+mood, hour and day aggregation (sum / matched count)
- Preferred practices ordering and tie-breaks
- Overall improvement ignores resets without an outcome
- Empty history defaults
- Time zone bucketing
"""

from __future__ import annotations

from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from src.models.wellness import History, Mood, PostMood
from src.services.pattern_analyzer import (
    NEUTRAL_SCORE,
    PracticeEffectiveness,
    UserPatterns,
    analyze_history,
    analyze_patterns,
    calculate_mood_improvement,
    day_of_week,
    get_practice_effectiveness_for_mood,
    resolve_check_in,
)
from tests.factories import BASE_TIME, build_check_in, build_reset

# =============================================================================
# Improvement mapping
# =============================================================================


def test_improvement_values():
    assert calculate_mood_improvement(PostMood.BETTER) == 1.0
    assert calculate_mood_improvement(PostMood.SAME) == 0.0
    assert calculate_mood_improvement(None) == 0.5


def test_day_of_week_is_sunday_zero():
    assert day_of_week(6) == 0  # Python Sunday
    assert day_of_week(0) == 1  # Python Monday
    assert day_of_week(5) == 6  # Python Saturday


# =============================================================================
# Linking
# =============================================================================


class TestResolveCheckIn:
    def test_explicit_link_wins_over_practice_match(self):
        first = build_check_in(id="a", practice_id="box-breathing", mood=Mood.STRESSED)
        second = build_check_in(id="b", practice_id="box-breathing", mood=Mood.CALM)
        reset = build_reset(practice_id="box-breathing", check_in_id="b")
        assert resolve_check_in(reset, [first, second]) is second

    def test_legacy_reset_uses_first_practice_match(self):
        first = build_check_in(id="a", practice_id="box-breathing", mood=Mood.STRESSED)
        second = build_check_in(id="b", practice_id="box-breathing", mood=Mood.CALM)
        reset = build_reset(practice_id="box-breathing", check_in_id=None)
        assert resolve_check_in(reset, [first, second]) is first

    def test_dangling_link_is_unresolved(self):
        check_in = build_check_in(id="a", practice_id="box-breathing")
        reset = build_reset(practice_id="box-breathing", check_in_id="gone")
        assert resolve_check_in(reset, [check_in]) is None

    def test_legacy_reset_without_practice_is_unresolved(self):
        check_in = build_check_in(id="a", practice_id="box-breathing")
        reset = build_reset(practice_id="", check_in_id=None)
        assert resolve_check_in(reset, [check_in]) is None


# =============================================================================
# Aggregation
# =============================================================================


def test_empty_history_defaults():
    patterns = analyze_patterns([], [])
    assert patterns.avg_mood_improvement == NEUTRAL_SCORE
    assert patterns.preferred_practices == ()
    assert patterns.time_of_day_patterns == {}
    assert patterns.day_of_week_patterns == {}
    assert patterns.practice_effectiveness == ()
    assert not patterns.has_history


def test_single_linked_reset():
    check_in = build_check_in()
    reset = build_reset()
    patterns = analyze_patterns([check_in], [reset])

    assert patterns.has_history
    assert patterns.resolved_resets == 1
    assert patterns.avg_mood_improvement == 1.0
    assert patterns.preferred_practices == ("478-breathing",)
    assert patterns.time_of_day_patterns == {9: 1.0}
    # 2026-03-04 is a Wednesday -> 3 with Sunday=0
    assert patterns.day_of_week_patterns == {3: 1.0}
    assert patterns.practice_effectiveness == (
        PracticeEffectiveness(
            practice_id="478-breathing",
            mood=Mood.EXHAUSTED,
            effectiveness_score=1.0,
            usage_count=1,
            positive_outcome_count=1,
        ),
    )


def test_unlinked_and_malformed_resets_are_skipped():
    check_in = build_check_in()
    resets = [
        build_reset(id="orphan", practice_id="visual-reset", check_in_id=None),
        build_reset(id="bad-time", started_at="not-a-timestamp"),
        build_reset(id="dangling", check_in_id="missing"),
    ]
    patterns = analyze_patterns([check_in], resets)
    assert not patterns.has_history
    assert patterns.time_of_day_patterns == {}


def test_means_divide_by_matched_count():
    check_in = build_check_in()
    resets = [
        build_reset(id="r1", post_mood=PostMood.BETTER),
        build_reset(id="r2", post_mood=PostMood.SAME),
        # unresolvable: must not dilute the hour mean
        build_reset(id="r3", check_in_id="missing"),
    ]
    patterns = analyze_patterns([check_in], resets)
    assert patterns.time_of_day_patterns == {9: 0.5}
    assert patterns.effectiveness_for("478-breathing", Mood.EXHAUSTED) == 0.5


def test_overall_improvement_ignores_missing_outcomes():
    check_in = build_check_in()
    resets = [
        build_reset(id="r1", post_mood=PostMood.BETTER),
        build_reset(id="r2", post_mood=None),
    ]
    patterns = analyze_patterns([check_in], resets)
    assert patterns.avg_mood_improvement == 1.0
    # the unrated reset still counts as neutral toward the per-practice mean
    assert patterns.effectiveness_for("478-breathing", Mood.EXHAUSTED) == pytest.approx(0.75)


def test_positive_count_only_counts_better():
    check_in = build_check_in()
    resets = [build_reset(id="r1", post_mood=None), build_reset(id="r2", post_mood=None)]
    entry = analyze_patterns([check_in], resets).practice_effectiveness[0]
    assert entry.usage_count == 2
    assert entry.positive_outcome_count == 0


def test_mood_comes_from_linked_check_in():
    check_in = build_check_in(mood=Mood.STRESSED)
    reset = build_reset(mood=Mood.EXHAUSTED)
    patterns = analyze_patterns([check_in], [reset])
    assert patterns.effectiveness_for("478-breathing", Mood.STRESSED) == 1.0
    assert patterns.effectiveness_for("478-breathing", Mood.EXHAUSTED) is None


def test_preferred_practices_sorted_with_stable_ties():
    check_ins = [
        build_check_in(id="c1", practice_id="micro-stretch"),
        build_check_in(id="c2", practice_id="box-breathing"),
        build_check_in(id="c3", practice_id="mental-unload"),
    ]
    resets = [
        build_reset(id="r1", practice_id="micro-stretch", check_in_id="c1", post_mood=PostMood.SAME),
        build_reset(id="r2", practice_id="box-breathing", check_in_id="c2", post_mood=PostMood.BETTER),
        build_reset(id="r3", practice_id="mental-unload", check_in_id="c3", post_mood=PostMood.BETTER),
    ]
    patterns = analyze_patterns(check_ins, resets)
    assert patterns.preferred_practices == ("box-breathing", "mental-unload", "micro-stretch")


def test_preferred_practices_capped_at_five():
    ids = ["box-breathing", "478-breathing", "micro-stretch", "visual-reset", "mental-unload", "gratitude-note"]
    check_ins = [build_check_in(id=f"c{i}", practice_id=pid) for i, pid in enumerate(ids)]
    resets = [build_reset(id=f"r{i}", practice_id=pid, check_in_id=f"c{i}") for i, pid in enumerate(ids)]
    patterns = analyze_patterns(check_ins, resets)
    assert patterns.preferred_practices == tuple(ids[:5])


def test_time_zone_shifts_hour_and_day():
    # 02:00 UTC on Wednesday is 21:00 Tuesday in New York
    check_in = build_check_in()
    reset = build_reset(started_at=BASE_TIME.replace(hour=2))
    patterns = analyze_patterns([check_in], [reset], tz=ZoneInfo("America/New_York"))
    assert patterns.time_of_day_patterns == {21: 1.0}
    assert patterns.day_of_week_patterns == {2: 1.0}


def test_analyze_history_matches_analyze_patterns():
    check_ins = (build_check_in(),)
    resets = (build_reset(started_at=BASE_TIME + timedelta(hours=3)),)
    assert analyze_history(History(check_ins=check_ins, resets=resets)) == analyze_patterns(check_ins, resets)


# =============================================================================
# Lookups
# =============================================================================


def test_user_patterns_neutral_lookups():
    patterns = UserPatterns()
    assert patterns.hour_signal(13) == NEUTRAL_SCORE
    assert patterns.day_signal(0) == NEUTRAL_SCORE
    assert patterns.effectiveness_for("box-breathing", Mood.CALM) is None


def test_get_practice_effectiveness_for_mood_defaults_to_neutral():
    data = [PracticeEffectiveness("box-breathing", Mood.STRESSED, 0.9, 3, 2)]
    assert get_practice_effectiveness_for_mood("box-breathing", Mood.STRESSED, data) == 0.9
    assert get_practice_effectiveness_for_mood("box-breathing", Mood.CALM, data) == NEUTRAL_SCORE
