# ai/response_parser.py
"""
Parse untrusted model output into Plans and timed message bursts.

Each parse is an ordered list of `text -> value | None` strategies; the
first strategy returning a value wins. Public entry points never raise.

Plan strategies:
  json_plan          {"emotional_state": ..., "response_strategy": ...}
  burst_confusion    model returned {"bursts": [...]} to the planner
  field_regex        key: value scraping, defaults for anything missing

Response strategies:
  json_bursts        {"bursts": [{"text": ..., "wait_ms": ...}], "fallback_probe": ...}
  burst_regex        "text": "..." pairs out of truncated / broken JSON
  sentences          one burst per sentence with an 800–1800 ms wait
"""
from __future__ import annotations

import json
import logging
import random
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_WAIT_MS = 1000
MIN_SENTENCE_WAIT_MS = 800
SENTENCE_WAIT_SPREAD_MS = 1000
MAX_FIELD_LENGTH = 60


@dataclass
class MessageBurst:
    text: str
    wait_ms: int = DEFAULT_WAIT_MS

    def to_dict(self) -> dict:
        return {"text": self.text, "wait_ms": self.wait_ms}


@dataclass
class Plan:
    emotional_state: str = "warm"
    response_strategy: str = "supportive"
    key_themes: list[str] = field(default_factory=lambda: ["connection"])
    personality_adjustments: list[str] = field(default_factory=list)
    intimacy_level: int = 6
    response_length: str = "medium"
    tone: str = "loving"
    interaction_goals: list[str] = field(default_factory=lambda: ["maintain connection"])

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AIResponse:
    bursts: list[MessageBurst]
    fallback_probe: str | None = None
    source: str = "model"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"bursts": [b.to_dict() for b in self.bursts]}
        if self.fallback_probe:
            data["fallback_probe"] = self.fallback_probe
        return data


@dataclass
class ParseResult(Generic[T]):
    value: T
    strategy: str


DEFAULT_PLAN = Plan()

EMERGENCY_BURSTS: tuple[tuple[str, int], ...] = (
    ("hey... sorry, I'm having a moment over here", 500),
    ("give me a sec and try again? 💕", 800),
)


def emergency_response() -> AIResponse:
    return AIResponse(
        bursts=[MessageBurst(text, wait) for text, wait in EMERGENCY_BURSTS],
        source="emergency",
    )


# ── JSON extraction helpers (shared with the ice-breaker parser) ──

_DECODER = json.JSONDecoder()
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_GREEDY_ARRAY = re.compile(r"\[[\s\S]*\]")


def extract_json_object(text: str) -> dict | None:
    """First-brace-to-last-brace, then a left-to-right raw_decode scan."""
    if not text:
        return None
    match = _GREEDY_OBJECT.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
            if isinstance(parsed, dict):
                return parsed
        except ValueError:
            pass

    for idx, char in enumerate(text):
        if char != "{":
            continue
        try:
            parsed, _ = _DECODER.raw_decode(text, idx)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_json_array(text: str) -> list | None:
    if not text:
        return None
    match = _GREEDY_ARRAY.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in re.findall(r"[^.!?\n]+[.!?]*", text or "") if s.strip(" .!?\t")]


def run_strategies(
    text: str,
    strategies: list[tuple[str, Callable[[str], T | None]]],
) -> ParseResult[T] | None:
    for name, strategy in strategies:
        try:
            value = strategy(text)
        except Exception as exc:
            logger.debug("Parse strategy %s raised: %s", name, exc)
            continue
        if value is not None:
            return ParseResult(value=value, strategy=name)
    return None


# ── Plan parsing ──

def _str_list(value: Any, default: list[str]) -> list[str]:
    if isinstance(value, list):
        items = [str(v).strip() for v in value if str(v).strip()]
        return items or list(default)
    if isinstance(value, str) and value.strip():
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(default)


def _int(value: Any, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def plan_from_mapping(data: dict) -> Plan:
    """Per-field validation with defaults for anything missing or invalid."""
    return Plan(
        emotional_state=_str(data.get("emotional_state"), DEFAULT_PLAN.emotional_state),
        response_strategy=_str(data.get("response_strategy"), DEFAULT_PLAN.response_strategy),
        key_themes=_str_list(data.get("key_themes"), DEFAULT_PLAN.key_themes),
        personality_adjustments=_str_list(data.get("personality_adjustments"), []),
        intimacy_level=max(1, min(10, _int(data.get("intimacy_level"), DEFAULT_PLAN.intimacy_level))),
        response_length=_str(data.get("response_length"), DEFAULT_PLAN.response_length),
        tone=_str(data.get("tone"), DEFAULT_PLAN.tone),
        interaction_goals=_str_list(data.get("interaction_goals"), DEFAULT_PLAN.interaction_goals),
    )


def plan_from_bursts(bursts: list) -> Plan:
    """Derive a plan by keyword-sniffing burst text the model sent by mistake."""
    all_text = " ".join(
        str(b.get("text", "")) if isinstance(b, dict) else str(b) for b in bursts
    ).lower()

    emotional_state = "warm"
    if "excited" in all_text or "amazing" in all_text:
        emotional_state = "excited"
    elif "sad" in all_text or "sorry" in all_text:
        emotional_state = "concerned"
    elif "playful" in all_text or "tease" in all_text:
        emotional_state = "playful"

    response_strategy = "supportive"
    if "question" in all_text or "how" in all_text or "what" in all_text:
        response_strategy = "inquisitive"
    elif "comfort" in all_text or "here for you" in all_text:
        response_strategy = "comforting"

    return Plan(
        emotional_state=emotional_state,
        response_strategy=response_strategy,
        key_themes=["connection", "empathy"],
    )


def _json_plan(text: str) -> Plan | None:
    data = extract_json_object(text)
    if data is None or isinstance(data.get("bursts"), list):
        return None
    if not (data.get("emotional_state") or data.get("response_strategy")):
        return None
    return plan_from_mapping(data)


def _burst_confusion(text: str) -> Plan | None:
    data = extract_json_object(text)
    if data is None or not isinstance(data.get("bursts"), list):
        return None
    logger.info("Planner returned bursts instead of a plan; deriving plan from burst text")
    return plan_from_bursts(data["bursts"])


def extract_field(text: str, key: str, default: str) -> str:
    """Scrape `key: value` from loose text. Over-long values are prose, not fields."""
    pattern = re.compile(rf"""\b{key}\b["']?\s*[:=]\s*["']?([^"'\n,}}\[\]]+)""", re.IGNORECASE)
    match = pattern.search(text)
    if not match:
        return default
    value = match.group(1).strip()
    if not value or len(value) > MAX_FIELD_LENGTH:
        return default
    return value


def _field_regex(text: str) -> Plan:
    return Plan(
        emotional_state=extract_field(text, "emotional_state", "warm"),
        response_strategy=extract_field(text, "response_strategy", "supportive"),
        key_themes=_str_list(extract_field(text, "key_themes", "connection,empathy"), ["connection"]),
        intimacy_level=max(1, min(10, _int(extract_field(text, "intimacy_level", "6"), 6))),
        response_length=extract_field(text, "response_length", "medium"),
        tone=extract_field(text, "tone", "loving"),
        interaction_goals=_str_list(
            extract_field(text, "interaction_goals", "maintain connection"), ["maintain connection"],
        ),
    )


PLAN_STRATEGIES: list[tuple[str, Callable[[str], Plan | None]]] = [
    ("json_plan", _json_plan),
    ("burst_confusion", _burst_confusion),
    ("field_regex", _field_regex),
]


def parse_plan_result(text: str | None) -> ParseResult[Plan]:
    result = run_strategies(text or "", PLAN_STRATEGIES)
    if result is None:
        return ParseResult(value=Plan(), strategy="default")
    return result


def parse_plan(text: str | None) -> Plan:
    """Always returns a fully populated Plan."""
    result = parse_plan_result(text)
    logger.debug("Plan parsed via %s", result.strategy)
    return result.value


# ── Response parsing ──

def normalize_wait(value: Any) -> int:
    try:
        wait = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_WAIT_MS
    return max(0, wait)


def bursts_from_items(items: list) -> list[MessageBurst]:
    bursts: list[MessageBurst] = []
    for item in items:
        if isinstance(item, str):
            text, wait = item, DEFAULT_WAIT_MS
        elif isinstance(item, dict):
            text, wait = item.get("text"), normalize_wait(item.get("wait_ms", DEFAULT_WAIT_MS))
        else:
            continue
        if isinstance(text, str) and text.strip():
            bursts.append(MessageBurst(text=text.strip(), wait_ms=wait))
    return bursts


def bursts_from_sentences(text: str, rng: random.Random | None = None) -> list[MessageBurst]:
    rng = rng or random.Random()
    return [
        MessageBurst(
            text=sentence,
            wait_ms=int(rng.random() * SENTENCE_WAIT_SPREAD_MS + MIN_SENTENCE_WAIT_MS),
        )
        for sentence in split_sentences(text)
    ]


def _json_bursts(text: str) -> AIResponse | None:
    data = extract_json_object(text)
    if data is None or not isinstance(data.get("bursts"), list):
        return None
    bursts = bursts_from_items(data["bursts"])
    if not bursts:
        return None
    probe = data.get("fallback_probe")
    return AIResponse(bursts=bursts, fallback_probe=probe.strip() if isinstance(probe, str) and probe.strip() else None)


_BURST_TEXT = re.compile(r'"text"\s*:\s*"((?:[^"\\]|\\.)*)"(?:\s*,\s*"wait_ms"\s*:\s*(\d+))?')
_PROBE_TEXT = re.compile(r'"fallback_probe"\s*:\s*"((?:[^"\\]|\\.)*)"')


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


def _burst_regex(text: str) -> AIResponse | None:
    if '"bursts"' not in text:
        return None
    bursts = [
        MessageBurst(text=_unescape(m.group(1)).strip(), wait_ms=normalize_wait(m.group(2) or DEFAULT_WAIT_MS))
        for m in _BURST_TEXT.finditer(text)
        if m.group(1).strip()
    ]
    if not bursts:
        return None
    probe = _PROBE_TEXT.search(text)
    return AIResponse(bursts=bursts, fallback_probe=_unescape(probe.group(1)) if probe else None)


def _sentence_strategy(rng: random.Random | None) -> Callable[[str], AIResponse | None]:
    def _sentences(text: str) -> AIResponse | None:
        bursts = bursts_from_sentences(text.strip(), rng)
        return AIResponse(bursts=bursts) if bursts else None
    return _sentences


def parse_response_result(text: str | None, rng: random.Random | None = None) -> ParseResult[AIResponse] | None:
    strategies: list[tuple[str, Callable[[str], AIResponse | None]]] = [
        ("json_bursts", _json_bursts),
        ("burst_regex", _burst_regex),
        ("sentences", _sentence_strategy(rng)),
    ]
    return run_strategies(text or "", strategies)


def parse_response(text: str | None, rng: random.Random | None = None) -> AIResponse:
    """Never raises and never returns zero bursts; worst case is the emergency message."""
    result = parse_response_result(text, rng)
    if result is None:
        logger.warning("Response parse produced no bursts, using emergency message")
        return emergency_response()
    logger.debug("Response parsed via %s (%d bursts)", result.strategy, len(result.value.bursts))
    return result.value
