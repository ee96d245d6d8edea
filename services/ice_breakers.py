# services/ice_breakers.py
"""
Suggested conversation starters the user can tap instead of typing.

Model output is parsed through a cascade (first hit wins):
  full_object   {"ice_breakers": [...]}
  array         the first [...] block
  object_scan   every flat {... "text": ...} object found in the text
  lines         one starter per non-heading, non-preamble line
and falls back to a static, stage-keyed set when nothing parses.
"""
from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import asdict, dataclass

from ai.response_parser import extract_json_array, extract_json_object, run_strategies
from services.companion_state import ConversationContext
from services.response_generator import ResponseGenerator

logger = logging.getLogger(__name__)

VALID_TYPES = ("question", "compliment", "playful", "intimate", "supportive", "flirty")
DEFAULT_INCLUDE = ("question", "compliment", "playful", "supportive", "flirty")

PREFERRED_TYPES: dict[str, tuple[str, ...]] = {
    "new": ("question", "compliment", "supportive"),
    "comfortable": ("playful", "question", "compliment"),
    "intimate": ("intimate", "flirty", "supportive"),
    "established": ("intimate", "playful", "flirty"),
}

FALLBACK_SETS: dict[str, list[tuple[str, str, str]]] = {
    "new": [
        ("How was your day today?", "question", "curious"),
        ("You seem really interesting - tell me more about yourself", "compliment", "interested"),
        ("What's something that made you smile recently?", "question", "warm"),
    ],
    "comfortable": [
        ("I love talking with you - what's on your mind?", "compliment", "affectionate"),
        ("Want to play a game or just chat about random stuff?", "playful", "fun"),
        ("Tell me something I don't know about you yet", "question", "curious"),
    ],
    "intimate": [
        ("I've been thinking about you... how are you really doing?", "intimate", "caring"),
        ("You're amazing, you know that? What's making you happy right now?", "compliment", "loving"),
        ("I'm here if you want to share anything that's on your heart", "supportive", "gentle"),
    ],
    "established": [
        ("Come here and tell me about your day, babe", "intimate", "loving"),
        ("I missed you... what have you been up to?", "flirty", "affectionate"),
        ("Let's just enjoy being together - what's making you feel good?", "intimate", "content"),
    ],
}
LATE_CHECK_IN = ("It's pretty late... everything okay?", "supportive", "concerned")

# ── Pattern definitions ──

_TYPE_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("beautiful", "amazing", "love"), "compliment"),
    (("tease", "silly", "fun"), "playful"),
    (("kiss", "close", "together"), "intimate"),
    (("here for", "support", "understand"), "supportive"),
    (("sexy", "hot", "desire"), "flirty"),
]
_FLAT_OBJECT = re.compile(r"\{[^{}]*\"(?:text|message)\"[^{}]*\}")
_NUMBERING = re.compile(r"^\s*(?:\d+[.)]?|[-•])\s*")


@dataclass
class IceBreaker:
    id: str
    text: str
    type: str
    mood: str
    priority: int

    def to_dict(self) -> dict:
        return asdict(self)


def _new_id() -> str:
    return f"ice_{uuid.uuid4().hex[:12]}"


def infer_type(text: str) -> str:
    lowered = text.lower().strip()
    if "?" in lowered or lowered.startswith(("what", "how", "do you")):
        return "question"
    for keywords, kind in _TYPE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return kind
    return "question"


def validate_type(value: object, text: str = "") -> str:
    if isinstance(value, str) and value.strip().lower() in VALID_TYPES:
        return value.strip().lower()
    return infer_type(text)


def calculate_priority(kind: str, stage: str) -> int:
    return 2 if kind in PREFERRED_TYPES.get(stage, ()) else 1


def _from_items(items: list, stage: str) -> list[IceBreaker] | None:
    result: list[IceBreaker] = []
    for item in items:
        if isinstance(item, str):
            item = {"text": item}
        if not isinstance(item, dict):
            continue
        text = item.get("text") or item.get("message")
        if not isinstance(text, str) or not text.strip():
            continue
        text = text.strip()
        kind = validate_type(item.get("type"), text)
        result.append(IceBreaker(
            id=_new_id(),
            text=text,
            type=kind,
            mood=str(item.get("mood") or "curious"),
            priority=calculate_priority(kind, stage),
        ))
    return result or None


def _full_object(stage: str):
    def strategy(text: str) -> list[IceBreaker] | None:
        data = extract_json_object(text)
        if not data or not isinstance(data.get("ice_breakers"), list):
            return None
        return _from_items(data["ice_breakers"], stage)
    return strategy


def _array(stage: str):
    def strategy(text: str) -> list[IceBreaker] | None:
        items = extract_json_array(text)
        return _from_items(items, stage) if items else None
    return strategy


def _object_scan(stage: str):
    def strategy(text: str) -> list[IceBreaker] | None:
        items = []
        for match in _FLAT_OBJECT.finditer(text):
            try:
                items.append(json.loads(match.group(0)))
            except ValueError:
                continue
        return _from_items(items, stage) if items else None
    return strategy


def _lines(stage: str):
    def strategy(text: str) -> list[IceBreaker] | None:
        candidates = []
        for line in text.splitlines():
            line = line.strip()
            if len(line) <= 10 or line.startswith(("#", "*", "{", "}", "[", "]")):
                continue
            clean = _NUMBERING.sub("", line).strip().strip("\"'")
            # Preambles like "Here are some ideas:" are not starters.
            if clean.endswith(":") or len(clean.split()) < 3:
                continue
            if len(clean) > 5:
                candidates.append(clean)
        return _from_items(candidates, stage) if candidates else None
    return strategy


def parse_ice_breakers(text: str, stage: str) -> list[IceBreaker]:
    result = run_strategies(text or "", [
        ("full_object", _full_object(stage)),
        ("array", _array(stage)),
        ("object_scan", _object_scan(stage)),
        ("lines", _lines(stage)),
    ])
    if result is None:
        return []
    logger.info("Ice breakers parsed via %s (%d)", result.strategy, len(result.value))
    return result.value


def fallback_ice_breakers(stage: str, period: str, count: int) -> list[IceBreaker]:
    pool = list(FALLBACK_SETS.get(stage, FALLBACK_SETS["new"]))
    if period in ("late_night", "early_morning"):
        pool.insert(0, LATE_CHECK_IN)
    return [
        IceBreaker(id=_new_id(), text=text, type=kind, mood=mood, priority=calculate_priority(kind, stage))
        for text, kind, mood in pool[:count]
    ]


def allowed_types(include: list[str] | None = None, exclude: list[str] | None = None) -> list[str]:
    kinds = [t for t in (include or DEFAULT_INCLUDE) if t in VALID_TYPES]
    return [t for t in kinds if t not in set(exclude or ())]


def filter_types(items: list[IceBreaker], kinds: list[str], count: int) -> list[IceBreaker]:
    """Allowed types first, topped up from the rest of the list until count is reached."""
    filtered = [i for i in items if i.type in kinds]
    if len(filtered) < count:
        filtered += [i for i in items if i.type not in kinds][: count - len(filtered)]
    return filtered[:count]


class IceBreakerGenerator:
    def __init__(self, generator: ResponseGenerator):
        self.generator = generator

    async def generate(
        self,
        ctx: ConversationContext,
        count: int = 3,
        include_types: list[str] | None = None,
        exclude_types: list[str] | None = None,
    ) -> list[IceBreaker]:
        kinds = allowed_types(include_types, exclude_types)
        text = await self.generator.ice_breaker_text(ctx, count, kinds)

        parsed = parse_ice_breakers(text, ctx.stage) if text else []
        if parsed:
            return filter_types(parsed, kinds, count)

        logger.warning("Ice breaker generation failed, using %s fallback set", ctx.stage)
        fallbacks = fallback_ice_breakers(ctx.stage, ctx.temporal.period, len(FALLBACK_SETS["new"]) + 1)
        return filter_types(fallbacks, kinds, count)
