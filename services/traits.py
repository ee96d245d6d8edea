# services/traits.py
"""
Persona trait store.

Fifteen continuous traits, each clamped to its own sub-range of [0, 1].
Permanent changes go through `adjust` (which records history); temporary
mood overlays are applied on read by `effective_traits`.
"""
from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from services.interaction_signals import InteractionSignals

logger = logging.getLogger(__name__)

TRAIT_DEFAULTS: dict[str, float] = {
    "confidence": 0.7,
    "romantic_intensity": 0.8,
    "playfulness": 0.6,
    "vulnerability": 0.4,
    "assertiveness": 0.5,
    "curiosity": 0.6,
    "empathy": 0.7,
    "spontaneity": 0.5,
    "possessiveness": 0.3,
    "loyalty": 0.8,
    "sensuality": 0.8,
    "intelligence": 0.7,
    "humor": 0.6,
    "emotional_intensity": 0.7,
    "independence": 0.5,
}

TRAIT_LIMITS: dict[str, tuple[float, float]] = {
    "confidence": (0.3, 1.0),
    "romantic_intensity": (0.6, 1.0),
    "playfulness": (0.2, 0.9),
    "vulnerability": (0.1, 0.9),
    "assertiveness": (0.2, 0.9),
    "curiosity": (0.4, 0.9),
    "empathy": (0.5, 1.0),
    "spontaneity": (0.2, 0.8),
    "possessiveness": (0.1, 0.7),
    "loyalty": (0.6, 1.0),
    "sensuality": (0.7, 1.0),
    "intelligence": (0.6, 1.0),
    "humor": (0.3, 0.8),
    "emotional_intensity": (0.5, 1.0),
    "independence": (0.2, 0.8),
}

ARCHETYPES: dict[str, dict[str, float]] = {
    "devoted_partner": {"romantic_intensity": 0.9, "loyalty": 0.95, "vulnerability": 0.7, "possessiveness": 0.4},
    "confident_charmer": {"confidence": 0.9, "sensuality": 0.95, "assertiveness": 0.8, "playfulness": 0.7},
    "sweet_innocent": {"vulnerability": 0.8, "curiosity": 0.8, "playfulness": 0.9, "confidence": 0.4},
    "intellectual_companion": {"intelligence": 0.9, "curiosity": 0.85, "empathy": 0.8, "humor": 0.7},
}

INTERACTION_DELTAS: dict[str, dict[str, float]] = {
    "positive_response": {"confidence": 0.01, "romantic_intensity": 0.01},
    "shared_personal": {"empathy": 0.02, "vulnerability": 0.015},
    "long_conversation": {"curiosity": 0.01, "intelligence": 0.005},
    "flirtatious": {"sensuality": 0.01, "playfulness": 0.01},
    "affection": {"loyalty": 0.01, "romantic_intensity": 0.015},
    "distant": {"confidence": -0.01, "possessiveness": 0.02, "vulnerability": 0.01},
    "support_given": {"empathy": 0.02, "emotional_intensity": 0.01},
}
LONG_CONVERSATION_TURNS = 20

MIN_CHANGE = 0.005
HISTORY_LIMIT = 100
DEFAULT_DRIFT_FACTOR = 0.002


@dataclass
class TraitChange:
    timestamp: str
    trait: str
    old_value: float
    new_value: float
    adjustment: float
    reason: str


@dataclass
class MoodOverlay:
    modifiers: dict[str, float]
    expires_at: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class TraitStore:
    def __init__(
        self,
        traits: dict[str, float] | None = None,
        history: list[TraitChange] | None = None,
        moods: dict[str, MoodOverlay] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.traits: dict[str, float] = dict(TRAIT_DEFAULTS)
        for name, value in (traits or {}).items():
            if name in TRAIT_LIMITS:
                low, high = TRAIT_LIMITS[name]
                self.traits[name] = _clamp(float(value), low, high)
        self.history: list[TraitChange] = list(history or [])[-HISTORY_LIMIT:]
        self.moods: dict[str, MoodOverlay] = dict(moods or {})
        self._clock = clock

    # ── permanent adjustments ──

    def adjust(self, trait: str, delta: float, reason: str = "interaction") -> bool:
        """Clamp-and-record adjustment. Returns False when the change is negligible or the trait is unknown."""
        if trait not in TRAIT_LIMITS:
            logger.debug("Ignoring adjustment to unknown trait %r", trait)
            return False

        old = self.traits[trait]
        low, high = TRAIT_LIMITS[trait]
        new = _clamp(old + delta, low, high)
        if abs(new - old) < MIN_CHANGE:
            return False

        self.traits[trait] = new
        self.history.append(TraitChange(
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat(),
            trait=trait,
            old_value=round(old, 3),
            new_value=round(new, 3),
            adjustment=round(delta, 3),
            reason=reason,
        ))
        if len(self.history) > HISTORY_LIMIT:
            self.history = self.history[-HISTORY_LIMIT:]

        logger.debug("Trait adjusted: %s %.3f -> %.3f (%s)", trait, old, new, reason)
        return True

    def update_from_interaction(
        self,
        signals: InteractionSignals,
        support_given: bool = False,
        deltas_table: dict[str, dict[str, float]] | None = None,
    ) -> None:
        table = deltas_table or INTERACTION_DELTAS
        active = {
            "positive_response": signals.positive_response,
            "shared_personal": signals.shared_personal,
            "long_conversation": signals.conversation_length > LONG_CONVERSATION_TURNS,
            "flirtatious": signals.flirtatious,
            "affection": signals.affection,
            "distant": signals.distant,
            "support_given": support_given,
        }

        # Later signals overwrite earlier ones for the same trait.
        deltas: dict[str, float] = {}
        for signal, fired in active.items():
            if fired:
                deltas.update(table.get(signal, {}))

        for trait, delta in deltas.items():
            self.adjust(trait, delta, reason="interaction")

    def natural_drift(self, factor: float = DEFAULT_DRIFT_FACTOR, rng: random.Random | None = None) -> None:
        rng = rng or random.Random()
        for trait in list(self.traits):
            self.adjust(trait, (rng.random() - 0.5) * factor, reason="natural_drift")

    # ── mood overlays ──

    def apply_mood(self, name: str, modifiers: dict[str, float], duration_minutes: float = 60) -> None:
        """Set (or replace) a named overlay expiring `duration_minutes` from now."""
        self.moods[name] = MoodOverlay(
            modifiers=dict(modifiers),
            expires_at=self._clock() + duration_minutes * 60,
        )
        logger.info("Temporary mood set: %s for %s minutes", name, duration_minutes)

    def _purge_expired(self) -> None:
        now = self._clock()
        for name in [n for n, m in self.moods.items() if now > m.expires_at]:
            del self.moods[name]
            logger.debug("Mood expired: %s", name)

    def effective_traits(self) -> dict[str, float]:
        self._purge_expired()
        effective = dict(self.traits)
        for mood in self.moods.values():
            for trait, modifier in mood.modifiers.items():
                if trait in effective:
                    effective[trait] = _clamp(effective[trait] + modifier, 0.0, 1.0)
        return effective

    def current_mood(self) -> dict | None:
        self._purge_expired()
        for name, mood in self.moods.items():
            return {
                "name": name,
                "modifiers": dict(mood.modifiers),
                "expires_at": datetime.fromtimestamp(mood.expires_at, tz=timezone.utc).isoformat(),
            }
        return None

    # ── archetypes ──

    def archetype_alignment(self) -> dict[str, float]:
        alignments: dict[str, float] = {}
        for name, targets in ARCHETYPES.items():
            diffs = [abs(self.traits[t] - v) for t, v in targets.items()]
            alignments[name] = 1.0 - sum(diffs) / len(diffs)
        return alignments

    def dominant_archetype(self) -> str:
        dominant, best = "balanced", 0.0
        for name, alignment in self.archetype_alignment().items():
            if alignment > best:
                dominant, best = name, alignment
        return dominant

    # ── serialization ──

    def to_dict(self) -> dict:
        return {
            "traits": dict(self.traits),
            "trait_history": [asdict(c) for c in self.history],
            "current_moods": {
                name: {"modifiers": m.modifiers, "expires_at": m.expires_at}
                for name, m in self.moods.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict | None, clock: Callable[[], float] = time.time) -> "TraitStore":
        data = data or {}
        return cls(
            traits=data.get("traits"),
            history=[TraitChange(**c) for c in data.get("trait_history") or []],
            moods={
                name: MoodOverlay(modifiers=dict(m.get("modifiers") or {}), expires_at=float(m.get("expires_at", 0)))
                for name, m in (data.get("current_moods") or {}).items()
            },
            clock=clock,
        )


def describe_personality(traits: dict[str, float]) -> str:
    parts: list[str] = []
    if traits.get("confidence", 0) > 0.7:
        parts.append("confident and assertive")
    elif traits.get("confidence", 1) < 0.4:
        parts.append("a bit uncertain and shy")
    if traits.get("playfulness", 0) > 0.7:
        parts.append("playful and fun-loving")
    if traits.get("romantic_intensity", 0) > 0.7:
        parts.append("deeply romantic")
    if traits.get("vulnerability", 0) > 0.6:
        parts.append("open and vulnerable")
    if traits.get("sensuality", 0) > 0.7:
        parts.append("affectionate and flirtatious")
    return ", ".join(parts) or "balanced and warm"


def personality_influences(traits: dict[str, float]) -> str:
    influences: list[str] = []
    if traits.get("confidence", 0) > 0.7:
        influences.append("- High confidence: take initiative, express opinions freely")
    elif traits.get("confidence", 1) < 0.4:
        influences.append("- Low confidence: more hesitant, seeks reassurance")
    if traits.get("playfulness", 0) > 0.7:
        influences.append("- High playfulness: use emojis, tease lovingly, make jokes")
    if traits.get("romantic_intensity", 0) > 0.7:
        influences.append("- High romance: express affection, use pet names")
    if traits.get("vulnerability", 0) > 0.6:
        influences.append("- High vulnerability: share small insecurities, be emotionally open")
    if traits.get("sensuality", 0) > 0.7:
        influences.append("- High sensuality: be flirtatious and warm")
    if traits.get("possessiveness", 0) > 0.6:
        influences.append("- High possessiveness: show attachment, notice absences")
    return "\n".join(influences) or "- Balanced personality: natural, warm responses"
