"""
Mood-from-text classification.

Maps a short free-text description ("so tired after rounds") to one of
the four moods with a confidence and a human-readable reason.

Two tiers:
1. ``analyze_mood_locally``: keyword / phrase scoring table. Pure
   function, no state.
2. ``MoodAnalyzer``: asks an LLM when a key is configured and falls
   back to tier 1 on any failure. Results are cached (LRU, 100 entries)
   by a hash of the normalized text.

Scoring (tier 1):
    score(mood) = 2 x keyword hits + 3 x phrase hits
    highest score wins (ties: exhausted, stressed, ok, calm)
    confidence = min(0.95, 0.5 + 0.1 x score)
    nothing matched: "stressed" @ 0.6 if medical-work words appear,
    otherwise "ok" @ 0.4
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from src.lib.exceptions import ServiceError, ValidationError
from src.models.wellness import Mood
from src.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 500
CACHE_SIZE = 100
MAX_CONFIDENCE = 0.95
KEYWORD_WEIGHT = 2
PHRASE_WEIGHT = 3

MOOD_KEYWORDS: dict[Mood, tuple[str, ...]] = {
    Mood.EXHAUSTED: (
        "tired", "exhausted", "drained", "burned out", "worn out", "depleted",
        "sapped", "fatigued", "sleepy", "drowsy", "gassed", "pooped", "beat",
        "washed up", "dead on my feet",
    ),
    Mood.STRESSED: (
        "stressed", "overwhelmed", "pressure", "anxious", "worried", "panic",
        "tense", "frustrated", "irritated", "agitated", "antsy", "uptight",
        "keyed up", "worked up",
    ),
    Mood.OK: (
        "okay", "fine", "alright", "manageable", "not bad", "surviving",
        "hanging in there", "chugging along", "muddling through", "coping",
        "holding up", "getting by",
    ),
    Mood.CALM: (
        "calm", "peaceful", "relaxed", "content", "serene", "centered",
        "balanced", "at peace", "mellow", "easygoing", "chill", "laid back",
    ),
}

MOOD_PHRASES: dict[Mood, tuple[str, ...]] = {
    Mood.EXHAUSTED: (
        "so tired", "too tired", "really drained", "completely done",
        "totally exhausted", "can barely keep", "struggling to stay awake",
        "running on empty", "need to sleep",
    ),
    Mood.STRESSED: (
        "can't handle", "too much", "way too much", "don't know how to handle",
        "feeling behind", "falling behind", "falling apart", "breaking down",
        "at my limit", "reached my limit",
    ),
    Mood.OK: (
        "hanging in", "doing ok", "making it", "getting through",
        "not terrible", "surprisingly well",
    ),
    Mood.CALM: (
        "feeling centered", "feeling balanced", "at ease", "feeling good",
        "actually good", "pretty good",
    ),
}

MEDICAL_WORK_KEYWORDS: tuple[str, ...] = (
    "shift", "patients", "rounds", "charting", "consult", "code", "crisis",
    "emergency", "surgery", "procedure", "meeting", "conference", "admin",
    "paperwork",
)

# Tie-break order for equal scores
_SCORE_ORDER = (Mood.EXHAUSTED, Mood.STRESSED, Mood.OK, Mood.CALM)
# Order in which keyword matches are cited in the reason
_REASON_ORDER = (Mood.EXHAUSTED, Mood.STRESSED, Mood.CALM, Mood.OK)

_FEELING_WORDS = {
    Mood.EXHAUSTED: "experiencing exhaustion",
    Mood.STRESSED: "experiencing stress",
    Mood.CALM: "experiencing calmness",
    Mood.OK: "feeling okay",
}

MOOD_SYSTEM_PROMPT = (
    "You are an expert emotional wellness analyst for healthcare professionals. "
    "Analyze the following description and identify their current mood state. "
    'You must choose exactly one mood from ONLY these four options: "calm", "ok", '
    '"stressed", or "exhausted".\n\n'
    "Provide:\n"
    "- mood: (string, one of the 4 options above)\n"
    "- confidence: (number between 0 and 1)\n"
    "- reason: (string explaining your analysis)\n\n"
    "Respond ONLY in JSON format with no other text."
)


@dataclass(frozen=True)
class MoodAnalysis:
    detected_mood: Mood
    confidence: float
    reason: str
    source: str = "local"  # "local" | "llm"

    def to_dict(self) -> dict[str, Any]:
        return {
            "detected_mood": self.detected_mood.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "source": self.source,
        }


def _matches(text: str, terms: tuple[str, ...]) -> list[str]:
    return [term for term in terms if term in text]


def analyze_mood_locally(text: str) -> MoodAnalysis:
    """Keyword/phrase heuristic. Never raises for string input."""
    lowered = text.lower()

    keyword_hits = {mood: _matches(lowered, MOOD_KEYWORDS[mood]) for mood in Mood}
    phrase_hits = {mood: _matches(lowered, MOOD_PHRASES[mood]) for mood in Mood}
    medical_hits = _matches(lowered, MEDICAL_WORK_KEYWORDS)

    scores = {
        mood: len(keyword_hits[mood]) * KEYWORD_WEIGHT + len(phrase_hits[mood]) * PHRASE_WEIGHT
        for mood in Mood
    }
    best = max(_SCORE_ORDER, key=lambda mood: scores[mood])

    if scores[best] > 0:
        detected = best
        confidence = 0.5 + scores[best] * 0.1
    elif medical_hits:
        detected = Mood.STRESSED
        confidence = 0.6
    else:
        detected = Mood.OK
        confidence = 0.4
    confidence = min(MAX_CONFIDENCE, confidence)

    cited = next((m for m in _REASON_ORDER if keyword_hits[m]), None)
    if cited is not None:
        reason = (
            f'I noticed you mentioned feeling "{keyword_hits[cited][0]}", '
            f"which suggests you might be {_FEELING_WORDS[cited]}. "
        )
    elif phrase_hits[Mood.EXHAUSTED]:
        reason = f'Based on "{phrase_hits[Mood.EXHAUSTED][0]}", you seem to be experiencing exhaustion. '
    elif phrase_hits[Mood.STRESSED]:
        reason = f'Based on "{phrase_hits[Mood.STRESSED][0]}", you seem to be experiencing stress. '
    elif medical_hits:
        reason = f'I sense work-related stress from your mention of "{medical_hits[0]}". '
    else:
        reason = f"Based on the sentiment in your description, you seem to be feeling {detected.value}. "
    reason += f'Would you like me to select "{detected.value}" as your current mood?'

    return MoodAnalysis(detected_mood=detected, confidence=round(confidence, 2), reason=reason)


def _cache_key(text: str) -> str:
    return hashlib.sha256(text.lower().strip().encode("utf-8")).hexdigest()


class MoodAnalyzer:
    """
    LLM-first mood classifier with a local fallback and an LRU cache.

    The analyzer never surfaces provider failures: any error from the LLM
    path yields the local heuristic result.
    """

    def __init__(self, llm_client: LLMClient | None = None, cache_size: int = CACHE_SIZE) -> None:
        self.llm_client = llm_client
        self.cache_size = cache_size
        self._cache: OrderedDict[str, MoodAnalysis] = OrderedDict()

    def _remember(self, key: str, result: MoodAnalysis) -> MoodAnalysis:
        self._cache[key] = result
        self._cache.move_to_end(key)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return result

    async def analyze(self, text: str) -> MoodAnalysis:
        """
        Classify ``text``.

        Raises:
            ValidationError: empty text or longer than 500 characters
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Text is required")
        text = text.strip()
        if len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(f"Text must be under {MAX_TEXT_LENGTH} characters")

        key = _cache_key(text)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return cached

        llm_client = self.llm_client
        if llm_client is None or not llm_client.available:
            return self._remember(key, analyze_mood_locally(text))

        try:
            result = await self._analyze_with_llm(llm_client, text)
        except ServiceError as e:
            logger.warning("Mood analysis falling back to local heuristic: %s", e)
            result = analyze_mood_locally(text)
        return self._remember(key, result)

    async def _analyze_with_llm(self, llm_client: LLMClient, text: str) -> MoodAnalysis:
        parsed = await llm_client.complete_json(
            [
                {"role": "system", "content": MOOD_SYSTEM_PROMPT},
                {"role": "user", "content": f'Analyze this healthcare professional\'s description: "{text}".'},
            ],
            temperature=0.3,
            max_tokens=150,
        )

        mood_raw = parsed.get("mood")
        confidence_raw = parsed.get("confidence")
        reason = parsed.get("reason")
        if not mood_raw or not confidence_raw or not reason:
            logger.warning("LLM mood response missing fields; using local heuristic")
            return analyze_mood_locally(text)

        try:
            mood = Mood(str(mood_raw).lower())
        except ValueError:
            mood = Mood.STRESSED
        try:
            confidence = max(0.0, min(1.0, float(confidence_raw)))
        except (TypeError, ValueError):
            return analyze_mood_locally(text)

        return MoodAnalysis(detected_mood=mood, confidence=confidence, reason=str(reason), source="llm")


__all__ = [
    "MAX_TEXT_LENGTH",
    "MoodAnalysis",
    "MoodAnalyzer",
    "analyze_mood_locally",
]
