"""
Services for Burnout Buddy.

Services:
    - PatternAnalyzer: history -> per-user signals (improvement, hour/day, effectiveness)
    - RecommendationRanker: mood + time + signals -> ranked practices with a reason
    - CheckInFlow: check-in, rotate, timer, outcome over a History value
    - Analytics: weekly counts, streak, best day
    - MoodAnalysis: free text -> mood (LLM with keyword fallback)
    - Gamification: narrator stories from history stats
    - HistoryStore: local JSON (demo) and SQL (account) persistence
"""

from .analytics import WeeklyPoint, WeeklySummary, build_weekly_summary, summarize_history
from .check_in_flow import (
    TimerSession,
    TimerStatus,
    clear_history,
    commit_mood_selection,
    complete_timer,
    rotate_check_in,
    skip_timer,
    start_timer,
)
from .gamification import (
    GamificationInput,
    GamificationStories,
    StoryGenerator,
    build_gamification_input,
)
from .history_store import (
    DatabaseHistoryStore,
    HistoryLocks,
    HistoryStore,
    LocalHistoryStore,
    create_session_factory,
    export_history,
)
from .llm_client import LLMClient
from .mood_analysis import MoodAnalysis, MoodAnalyzer, analyze_mood_locally
from .pattern_analyzer import (
    PracticeEffectiveness,
    UserPatterns,
    analyze_history,
    analyze_patterns,
    calculate_mood_improvement,
    get_practice_effectiveness_for_mood,
)
from .recommendation import (
    build_recommendation,
    rank_practices,
    rotate_recommendation,
    score_practice,
)

__all__ = [
    # Pattern Analyzer
    "PracticeEffectiveness",
    "UserPatterns",
    "analyze_history",
    "analyze_patterns",
    "calculate_mood_improvement",
    "get_practice_effectiveness_for_mood",
    # Recommendation Ranker
    "build_recommendation",
    "rank_practices",
    "rotate_recommendation",
    "score_practice",
    # Check-in flow
    "TimerSession",
    "TimerStatus",
    "clear_history",
    "commit_mood_selection",
    "complete_timer",
    "rotate_check_in",
    "skip_timer",
    "start_timer",
    # Insights
    "WeeklyPoint",
    "WeeklySummary",
    "build_weekly_summary",
    "summarize_history",
    # LLM-backed features
    "LLMClient",
    "MoodAnalysis",
    "MoodAnalyzer",
    "analyze_mood_locally",
    "GamificationInput",
    "GamificationStories",
    "StoryGenerator",
    "build_gamification_input",
    # Storage
    "DatabaseHistoryStore",
    "HistoryLocks",
    "HistoryStore",
    "LocalHistoryStore",
    "create_session_factory",
    "export_history",
]
