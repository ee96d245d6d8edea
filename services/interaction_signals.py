# services/interaction_signals.py
"""
Cheap lexical signals derived from a single user message.

These feed trait adjustments and relationship metric nudges. Matching is
word-boundary based so "like" does not fire on "likely".
"""
from __future__ import annotations

import re
from dataclasses import dataclass

# ── Pattern definitions ──

_POSITIVE = re.compile(
    r"\b(?:yes|yeah|love|like|great|amazing|wonderful|perfect|awesome|thank(?:s| you)?|appreciate)\b",
    re.IGNORECASE,
)
_PERSONAL = re.compile(
    r"\b(?:i feel|i think|my life|i am|i'm|when i|i was|i remember|my (?:mom|dad|family|job|boss|friend))\b",
    re.IGNORECASE,
)
_FLIRT = re.compile(
    r"\b(?:kiss(?:es)?|cuddle|sexy|hot|flirt(?:ing|y)?|tease|hug(?:s)?|gorgeous|beautiful)\b",
    re.IGNORECASE,
)
_AFFECTION = re.compile(
    r"\b(?:love you|miss(?:ed)? you|care about you|adore|sweetheart|baby|babe|darling)\b",
    re.IGNORECASE,
)
_EMOTIONAL_SHARING = re.compile(
    r"\b(?:i feel|i'm feeling|i am feeling|scared|worried|hurt|lonely|sad|anxious|stressed|afraid)\b",
    re.IGNORECASE,
)
_SUPPORT_NEEDED = re.compile(
    r"\b(?:need (?:help|you|someone)|can't cope|hard time|struggling|don't know what to do|rough day)\b",
    re.IGNORECASE,
)

_DISTANT_REPLIES = {"k", "ok", "whatever", "sure", "i guess", "maybe", "idk", "don't know", "fine", "meh"}

_TOPIC_STOPWORDS = {"what", "when", "where", "why", "how", "that", "this", "have", "been", "will", "just", "really"}


@dataclass
class InteractionSignals:
    positive_response: bool = False
    shared_personal: bool = False
    flirtatious: bool = False
    affection: bool = False
    distant: bool = False
    emotional_sharing: bool = False
    emotional_support_needed: bool = False
    main_topic: str = "general conversation"
    content_category: str = "casual"
    message_length: int = 0
    conversation_length: int = 0

    @classmethod
    def from_text(cls, text: str, conversation_length: int = 0) -> "InteractionSignals":
        stripped = (text or "").strip()
        lowered = stripped.lower()
        return cls(
            positive_response=bool(_POSITIVE.search(stripped)),
            shared_personal=bool(_PERSONAL.search(stripped)),
            flirtatious=bool(_FLIRT.search(stripped)),
            affection=bool(_AFFECTION.search(stripped)),
            distant=len(stripped) < 10 or lowered.rstrip(".!") in _DISTANT_REPLIES,
            emotional_sharing=bool(_EMOTIONAL_SHARING.search(stripped)),
            emotional_support_needed=bool(_SUPPORT_NEEDED.search(stripped)),
            main_topic=extract_main_topic(stripped),
            content_category=categorize_content(stripped),
            message_length=len(stripped),
            conversation_length=conversation_length,
        )


def extract_main_topic(text: str) -> str:
    """First few content words of the first sentence."""
    first = re.split(r"[.!?]", text, maxsplit=1)[0].strip()
    words = [
        w.strip(",;:'\"") for w in first.split()
        if len(w) > 3 and w.lower() not in _TOPIC_STOPWORDS
    ]
    topic = " ".join(w for w in words[:3] if w)
    return topic or "general conversation"


def categorize_content(text: str) -> str:
    if _FLIRT.search(text):
        return "flirtatious"
    if _AFFECTION.search(text):
        return "affectionate"
    if "?" in text:
        return "question"
    if len(text) > 100:
        return "story"
    return "casual"
