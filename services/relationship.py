# services/relationship.py
"""
Relationship stage machine: new → comfortable → intimate → established.

Transitions require both an interaction-count threshold and a trust
threshold. Stages never regress and quality metrics never decrease.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from services.interaction_signals import InteractionSignals

logger = logging.getLogger(__name__)

STAGES = ("new", "comfortable", "intimate", "established")

# stage -> (next stage, min interactions, min trust, milestone text)
TRANSITIONS: dict[str, tuple[str, int, float, str]] = {
    "new": ("comfortable", 5, 0.3, "Became comfortable with each other"),
    "comfortable": ("intimate", 15, 0.5, "Relationship deepened to intimacy"),
    "intimate": ("established", 35, 0.7, "Became an established couple"),
}

STAGE_DESCRIPTIONS: dict[str, str] = {
    "new": "Early exploration phase - curious about each other, slightly shy but interested, testing boundaries politely",
    "comfortable": "Established comfort - more open and playful, light teasing, sharing opinions freely",
    "intimate": "Deep emotional connection - vulnerable sharing, inside jokes, future planning, complete trust",
    "established": "Committed relationship - couple dynamics, long-term memory, complete openness, deep intimacy",
}

MAX_VULNERABILITY: dict[str, int] = {"new": 3, "comfortable": 6, "intimate": 8, "established": 10}

# Openness ceiling on a 0-10 scale.
OPENNESS_CEILING: dict[str, float] = {"new": 6, "comfortable": 8, "intimate": 9.5, "established": 10}

APPROPRIATE_BEHAVIORS: dict[str, list[str]] = {
    "new": ["curious", "slightly shy", "testing boundaries", "polite", "interested"],
    "comfortable": ["more open", "sharing opinions", "light teasing", "playful", "building trust"],
    "intimate": ["vulnerable", "inside jokes", "future planning", "deep sharing", "emotional openness"],
    "established": ["deep intimacy", "couple dynamics", "long-term memory", "complete openness", "committed partnership"],
}

TRUST_STEP = 0.01
COMMUNICATION_STEP = 0.01
BOND_STEP = 0.005
INTIMACY_STEP = 0.01
CHEMISTRY_STEP = 0.01


@dataclass
class Milestone:
    type: str
    description: str
    achieved_at: str
    interaction_number: int


@dataclass
class RelationshipState:
    stage: str = "new"
    interaction_count: int = 0
    positive_interactions: int = 0
    negative_interactions: int = 0
    trust_level: float = 0.2
    intimacy_level: float = 0.1
    communication_quality: float = 0.3
    sexual_chemistry: float = 0.3
    emotional_bond: float = 0.2
    milestones: list[Milestone] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "RelationshipState":
        data = dict(data or {})
        milestones = [Milestone(**m) for m in data.pop("milestones", None) or []]
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        state = cls(**known, milestones=milestones)
        if state.stage not in STAGES:
            logger.warning("Unknown relationship stage %r, resetting to 'new'", state.stage)
            state.stage = "new"
        return state


@dataclass
class RelationshipUpdate:
    stage: str
    previous_stage: str
    stage_changed: bool
    milestone: Milestone | None = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "previous_stage": self.previous_stage,
            "stage_changed": self.stage_changed,
            "milestone": asdict(self.milestone) if self.milestone else None,
        }


def _bump(value: float, step: float) -> float:
    return min(1.0, value + step)


class RelationshipTracker:
    def __init__(self, state: RelationshipState | None = None, clock: Callable[[], float] = time.time):
        self.state = state or RelationshipState()
        self._clock = clock

    def record_interaction(self, signals: InteractionSignals) -> RelationshipUpdate:
        """Apply one turn's worth of metric nudges, then check for a stage transition."""
        s = self.state
        s.interaction_count += 1
        s.communication_quality = _bump(s.communication_quality, COMMUNICATION_STEP)
        s.emotional_bond = _bump(s.emotional_bond, BOND_STEP)

        if signals.positive_response:
            s.positive_interactions += 1
            s.trust_level = _bump(s.trust_level, TRUST_STEP)
        if signals.distant:
            s.negative_interactions += 1
        if signals.emotional_sharing or signals.shared_personal:
            s.intimacy_level = _bump(s.intimacy_level, INTIMACY_STEP)
        if signals.flirtatious:
            s.sexual_chemistry = _bump(s.sexual_chemistry, CHEMISTRY_STEP)

        return self.check_progression()

    def check_progression(self) -> RelationshipUpdate:
        s = self.state
        previous = s.stage
        rule = TRANSITIONS.get(s.stage)
        if rule is None:
            return RelationshipUpdate(stage=s.stage, previous_stage=previous, stage_changed=False)

        next_stage, min_interactions, min_trust, description = rule
        if s.interaction_count < min_interactions or s.trust_level < min_trust:
            return RelationshipUpdate(stage=s.stage, previous_stage=previous, stage_changed=False)

        milestone = Milestone(
            type=f"stage_{next_stage}",
            description=description,
            achieved_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat(),
            interaction_number=s.interaction_count,
        )
        s.stage = next_stage
        s.milestones.append(milestone)
        logger.info("Relationship progressed: %s -> %s at interaction %d", previous, next_stage, s.interaction_count)
        return RelationshipUpdate(stage=next_stage, previous_stage=previous, stage_changed=True, milestone=milestone)

    # ── stage policy ──

    def describe_stage(self) -> str:
        return STAGE_DESCRIPTIONS[self.state.stage]

    def max_vulnerability(self) -> int:
        return MAX_VULNERABILITY[self.state.stage]

    def openness_ceiling(self) -> float:
        return OPENNESS_CEILING[self.state.stage]

    def appropriate_behaviors(self) -> list[str]:
        return list(APPROPRIATE_BEHAVIORS[self.state.stage])
