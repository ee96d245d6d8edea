# services/emotion_detector.py
"""
Lexical emotion analysis for user messages.

Each emotion category is scored from three signal families:
  keywords        +0.3 per hit
  regex patterns  +0.4 per hit
  context clues   +0.2 per hit
plus a length bonus (+0.1 for messages over 50 chars) and an intensity
modifier bonus (+0.2 for "so " / "really " / "very ") on categories that
already have a lexical hit. Scores are capped at 1.0.
"""
from __future__ import annotations

import logging
import math
import random
import re
from collections import Counter
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

KEYWORD_WEIGHT = 0.3
PATTERN_WEIGHT = 0.4
CLUE_WEIGHT = 0.2
LENGTH_BONUS = 0.1
MODIFIER_BONUS = 0.2
SECONDARY_THRESHOLD = 0.3
HISTORY_LIMIT = 50

_INTENSITY_MODIFIERS = ("so ", "really ", "very ")


@dataclass(frozen=True)
class EmotionPattern:
    keywords: tuple[str, ...]
    patterns: tuple[re.Pattern, ...]
    context_clues: tuple[str, ...]


def _rx(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Insertion order is the tie-break order for the primary emotion.
EMOTION_PATTERNS: dict[str, EmotionPattern] = {
    "stressed": EmotionPattern(
        keywords=("stressed", "overwhelming", "pressure", "deadline", "busy", "exhausted", "burned out"),
        patterns=_rx(r"too much", r"can't handle", r"falling behind", r"so many things"),
        context_clues=("work", "school", "deadline", "boss", "project"),
    ),
    "sad": EmotionPattern(
        keywords=("sad", "down", "depressed", "upset", "hurt", "crying", "tears"),
        patterns=_rx(r"feel like", r"can't stop", r"everything is"),
        context_clues=("breakup", "loss", "death", "failed", "rejected"),
    ),
    "anxious": EmotionPattern(
        keywords=("anxious", "worried", "nervous", "scared", "afraid", "panic"),
        patterns=_rx(r"what if", r"worried about", r"scared that", r"nervous about"),
        context_clues=("future", "unknown", "interview", "presentation", "test", "exam"),
    ),
    "happy": EmotionPattern(
        keywords=("happy", "excited", "joy", "great", "amazing", "wonderful", "thrilled"),
        patterns=_rx(r"so happy", r"can't wait", r"feel great", r"love it"),
        context_clues=("success", "achievement", "good news", "celebration", "vacation"),
    ),
    "angry": EmotionPattern(
        keywords=("angry", "mad", "furious", "pissed", "annoyed", "frustrated", "irritated"),
        patterns=_rx(r"so angry", r"can't believe", r"hate when", r"fed up"),
        context_clues=("unfair", "betrayed", "disrespected", "ignored", "lied"),
    ),
    "lonely": EmotionPattern(
        keywords=("lonely", "alone", "isolated", "miss", "empty", "disconnected"),
        patterns=_rx(r"feel alone", r"no one understands", r"miss you", r"wish i had"),
        context_clues=("friends", "relationship", "family", "distance", "social"),
    ),
    "confused": EmotionPattern(
        keywords=("confused", "lost", "don't know", "uncertain", "unclear", "mixed up"),
        patterns=_rx(r"don't understand", r"not sure", r"confused about", r"don't know what"),
        context_clues=("decision", "choice", "direction", "meaning", "purpose"),
    ),
}

EMPATHY_RESPONSES: dict[str, list[str]] = {
    "stressed": [
        "That sounds incredibly overwhelming. You're dealing with so much right now.",
        "I can hear how much pressure you're under. That must be exhausting.",
        "It sounds like you have a lot on your plate. No wonder you're feeling stressed.",
    ],
    "sad": [
        "I can hear the pain in your words. I'm so sorry you're going through this.",
        "That must hurt so deeply. Your feelings are completely valid.",
        "It's okay to feel sad about this. Anyone would in your situation.",
    ],
    "anxious": [
        "Those anxious thoughts can be so overwhelming. I understand why you're worried.",
        "It makes complete sense that you'd feel anxious about this.",
        "Those 'what if' thoughts can be so consuming. I hear you.",
    ],
    "happy": [
        "Your happiness is contagious! I'm so excited for you!",
        "You deserve all this happiness and more!",
        "This is amazing news! I'm so happy for you!",
    ],
    "angry": [
        "That would make anyone furious. Your anger is completely justified.",
        "You have every right to be angry about that situation.",
        "That's infuriating. I'd be mad too if I were in your shoes.",
    ],
    "lonely": [
        "Loneliness can feel so heavy. I'm here with you, you're not alone.",
        "Even when you feel alone, know that you matter to me.",
        "I hear how lonely you're feeling. That's such a difficult emotion.",
    ],
    "confused": [
        "It's okay to feel confused and uncertain. Life can be overwhelming.",
        "Confusion is natural when facing big decisions. Take your time.",
        "It's okay not to have all the answers right now.",
    ],
}

VALIDATION_PHRASES: list[str] = [
    "Your feelings are completely valid",
    "Anyone would feel that way in your situation",
    "It makes perfect sense that you'd react like that",
    "You're not overreacting at all",
    "I can see why this would affect you so deeply",
    "You're allowed to feel exactly how you feel",
]


@dataclass
class EmotionalState:
    primary_emotion: str = "neutral"
    intensity: float = 0.0
    secondary_emotions: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)
    support_needed: str = "none"
    response_tone: str = "neutral"
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "primary_emotion": self.primary_emotion,
            "intensity": round(self.intensity, 3),
            "secondary_emotions": list(self.secondary_emotions),
            "triggers": list(self.triggers),
            "support_needed": self.support_needed,
            "response_tone": self.response_tone,
            "confidence": round(self.confidence, 3),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EmotionalState":
        return cls(
            primary_emotion=data.get("primary_emotion", "neutral"),
            intensity=float(data.get("intensity", 0.0)),
            secondary_emotions=list(data.get("secondary_emotions") or []),
            triggers=list(data.get("triggers") or []),
            support_needed=data.get("support_needed", "general_support"),
            response_tone=data.get("response_tone", "supportive"),
            confidence=float(data.get("confidence", 0.5)),
        )


def score_emotions(text: str) -> tuple[dict[str, float], list[str]]:
    """Score every emotion category; returns (scores, keyword triggers)."""
    lowered = text.lower()
    scores: dict[str, float] = {}
    triggers: list[str] = []

    for emotion, pattern in EMOTION_PATTERNS.items():
        score = 0.0
        for keyword in pattern.keywords:
            if keyword in lowered:
                score += KEYWORD_WEIGHT
                triggers.append(keyword)
        for regex in pattern.patterns:
            if regex.search(text):
                score += PATTERN_WEIGHT
        for clue in pattern.context_clues:
            if clue in lowered:
                score += CLUE_WEIGHT

        if score <= 0:
            continue
        if len(text) > 50:
            score += LENGTH_BONUS
        if any(mod in lowered for mod in _INTENSITY_MODIFIERS):
            score += MODIFIER_BONUS
        scores[emotion] = min(score, 1.0)

    return scores, triggers


def determine_support_needed(emotion: str, intensity: float) -> str:
    if intensity < 0.3:
        return "none"
    support = {
        "stressed": "immediate_relief" if intensity > 0.7 else "gentle_support",
        "sad": "deep_comfort" if intensity > 0.7 else "validation",
        "anxious": "reassurance" if intensity > 0.7 else "gentle_guidance",
        "angry": "space_and_validation" if intensity > 0.6 else "understanding",
        "lonely": "connection" if intensity > 0.5 else "acknowledgment",
        "confused": "clarity_and_guidance",
        "happy": "celebration",
    }
    return support.get(emotion, "general_support")


def determine_response_tone(emotion: str, intensity: float) -> str:
    if intensity < 0.3:
        return "neutral"
    tones = {
        "stressed": "calming_and_soothing" if intensity > 0.7 else "understanding",
        "sad": "gentle_and_comforting" if intensity > 0.7 else "empathetic",
        "anxious": "reassuring_and_stable" if intensity > 0.7 else "supportive",
        "angry": "validating_and_calm" if intensity > 0.6 else "understanding",
        "lonely": "warm_and_connecting",
        "confused": "patient_and_clarifying",
        "happy": "enthusiastic" if intensity > 0.7 else "warm",
    }
    return tones.get(emotion, "supportive")


def calculate_confidence(score: float, trigger_count: int) -> float:
    confidence = score * 0.7 + min(trigger_count * 0.1, 0.3)
    return min(confidence, 1.0)


class EmotionalIntelligence:
    """Stateful analyzer; keeps a rolling history of recent readings."""

    def __init__(self, history: list[EmotionalState] | None = None, rng: random.Random | None = None):
        self.history: list[EmotionalState] = list(history or [])[-HISTORY_LIMIT:]
        self._rng = rng or random.Random()

    def analyze(self, text: str) -> EmotionalState:
        scores, triggers = score_emotions(text)

        primary = "neutral"
        max_score = 0.0
        for emotion, score in scores.items():
            if score > max_score:
                max_score = score
                primary = emotion

        secondary = [
            emotion for emotion, score in scores.items()
            if emotion != primary and score > SECONDARY_THRESHOLD
        ]

        state = EmotionalState(
            primary_emotion=primary,
            intensity=max_score,
            secondary_emotions=secondary,
            triggers=triggers,
            support_needed=determine_support_needed(primary, max_score),
            response_tone=determine_response_tone(primary, max_score),
            confidence=calculate_confidence(max_score, len(triggers)),
        )

        self.history.append(state)
        if len(self.history) > HISTORY_LIMIT:
            self.history = self.history[-HISTORY_LIMIT:]

        if primary != "neutral":
            logger.info("Emotion: %s @ %.2f (secondary=%s)", primary, max_score, secondary)
        return state

    def empathy_response(self, state: EmotionalState) -> str:
        responses = EMPATHY_RESPONSES.get(state.primary_emotion)
        if not responses:
            return self._rng.choice(VALIDATION_PHRASES)
        return self._rng.choice(responses)

    def emotional_pattern(self, days: int = 7) -> dict:
        """Summarize recent readings (roughly five per day)."""
        recent = self.history[-days * 5:]
        if not recent:
            return {"pattern": "insufficient_data"}

        counts = Counter(s.primary_emotion for s in recent)
        dominant = max(counts, key=counts.get)
        trigger_counts = Counter(t for s in recent[-10:] for t in s.triggers)

        return {
            "pattern": "analyzed",
            "dominant_emotion": dominant,
            "emotion_frequency": dict(counts),
            "average_intensity": sum(s.intensity for s in recent) / len(recent),
            "emotional_stability": _stability(recent),
            "recent_triggers": [t for t, _ in trigger_counts.most_common(5)],
        }

    def to_dict(self) -> dict:
        return {"emotional_history": [s.to_dict() for s in self.history]}

    @classmethod
    def from_dict(cls, data: dict | None, rng: random.Random | None = None) -> "EmotionalIntelligence":
        raw = (data or {}).get("emotional_history") or []
        return cls(history=[EmotionalState.from_dict(d) for d in raw], rng=rng)


def _stability(states: list[EmotionalState]) -> str:
    if len(states) < 3:
        return "unknown"

    values = [s.intensity for s in states]
    mean = sum(values) / len(values)
    variation = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    changes = sum(
        1 for prev, cur in zip(states, states[1:])
        if prev.primary_emotion != cur.primary_emotion
    )

    if variation < 0.2 and changes < len(states) * 0.3:
        return "stable"
    if variation > 0.5 or changes > len(states) * 0.7:
        return "volatile"
    return "moderate"
