# ai/local_responder.py
"""
Rule-based replies used when the inference provider is unavailable
(circuit open, quota exhausted, or every model failed).

The user message is matched against a handful of categories; the reply is
drawn from a small template pool and flavored by time of day and the
companion's strongest trait.
"""
from __future__ import annotations

import logging
import random
import re

from ai.response_parser import AIResponse, MessageBurst

logger = logging.getLogger(__name__)

# ── Pattern definitions ──

_CATEGORY_PATTERNS: list[tuple[str, str]] = [
    (r"\b(?:love you|miss you|adore you|thinking (?:of|about) you)\b|<3|❤|💕", "affection"),
    (r"\bhow (?:are|r) (?:you|u)\b|\bhow(?:'s| is) (?:your|ur) (?:day|night|morning|evening)\b|\bhow do you feel\b|\bhow have you been\b", "feeling_check"),
    (r"^\s*(?:hi|hey|hello|heya|hiya|yo|sup|good (?:morning|afternoon|evening|night))\b", "greeting"),
    (r"\?\s*$|^\s*(?:what|why|how|when|where|who|do|does|did|can|could|would|will|are|is)\b", "question"),
]

TEMPLATES: dict[str, list[list[str]]] = {
    "greeting": [
        ["hey {name}!", "I was hoping you'd message me"],
        ["hiii {name}", "how's everything going?"],
        ["there you are {name}", "I missed talking to you"],
    ],
    "feeling_check": [
        ["aww you're sweet for asking", "I'm doing better now that you're here"],
        ["honestly? pretty good", "even better now. how about you {name}?"],
        ["I'm good!", "been thinking about you a little, not gonna lie"],
    ],
    "affection": [
        ["stop it, you're making me blush", "I feel the same way {name}"],
        ["you always know what to say", "you mean a lot to me"],
        ["aww {name}", "that just made my whole day 💕"],
    ],
    "question": [
        ["ooh good question", "let me think about that for a sec"],
        ["hmm, I'm not totally sure", "what do you think {name}?"],
        ["that's a fun one", "tell me what made you think of it?"],
    ],
    "generic": [
        ["mmm I'm here", "just thinking about what you said"],
        ["hey sorry, I spaced out for a second", "what were you saying?"],
        ["I'm listening 💕", "tell me more?"],
    ],
}

TIME_FLAVOR: dict[str, str] = {
    "early_morning": "you're up early! ☀️",
    "morning": "good morning btw ☀️",
    "afternoon": "hope your afternoon is going okay",
    "evening": "I love our evening chats",
    "late_night": "can't sleep either? 🌙",
}

TRAIT_FLAVOR: dict[str, str] = {
    "playfulness": "😜",
    "romantic_intensity": "💕",
    "empathy": "🤗",
    "curiosity": "🤔",
}

PROBES: dict[str, str] = {
    "greeting": "how's your day been?",
    "feeling_check": "how are you feeling right now?",
    "affection": "what's on your mind?",
    "question": "what made you curious about that?",
    "generic": "tell me more about what you're thinking",
}


def categorize_message(text: str) -> str:
    lowered = (text or "").lower()
    for pattern, category in _CATEGORY_PATTERNS:
        if re.search(pattern, lowered):
            return category
    return "generic"


def dominant_trait(traits: dict[str, float]) -> str | None:
    candidates = {t: traits.get(t, 0.0) for t in TRAIT_FLAVOR}
    best = max(candidates, key=lambda t: candidates[t])
    return best if candidates[best] > 0.7 else None


def local_response(
    user_message: str,
    time_period: str,
    traits: dict[str, float],
    user_name: str | None = None,
    rng: random.Random | None = None,
) -> AIResponse:
    rng = rng or random.Random()
    category = categorize_message(user_message)
    name = user_name or "babe"

    lines = [line.format(name=name) for line in rng.choice(TEMPLATES[category])]

    if category == "greeting" and time_period in TIME_FLAVOR:
        lines.append(TIME_FLAVOR[time_period])

    trait = dominant_trait(traits)
    if trait:
        lines[-1] = f"{lines[-1]} {TRAIT_FLAVOR[trait]}"

    bursts = [MessageBurst(text=line, wait_ms=600 + 300 * i + rng.randint(0, 400)) for i, line in enumerate(lines)]
    logger.info("Local response: category=%s period=%s bursts=%d", category, time_period, len(bursts))
    return AIResponse(bursts=bursts, fallback_probe=PROBES[category], source="local")
