# tests/test_relationship.py
from __future__ import annotations

import pytest

from conftest import FakeClock
from services.interaction_signals import InteractionSignals
from services.relationship import RelationshipState, RelationshipTracker


def test_new_relationship_defaults():
    tracker = RelationshipTracker()
    assert tracker.state.stage == "new"
    assert tracker.max_vulnerability() == 3
    assert tracker.openness_ceiling() == 6


def test_trust_only_rises_on_positive_signal():
    tracker = RelationshipTracker()
    tracker.record_interaction(InteractionSignals(message_length=20))
    assert tracker.state.trust_level == pytest.approx(0.2)
    assert tracker.state.communication_quality == pytest.approx(0.31)
    assert tracker.state.emotional_bond == pytest.approx(0.205)

    tracker.record_interaction(InteractionSignals(positive_response=True))
    assert tracker.state.trust_level == pytest.approx(0.21)
    assert tracker.state.positive_interactions == 1


def test_progresses_when_both_thresholds_met():
    tracker = RelationshipTracker(RelationshipState(interaction_count=4, trust_level=0.3), clock=FakeClock())
    update = tracker.record_interaction(InteractionSignals(positive_response=True))

    assert update.stage_changed is True
    assert update.previous_stage == "new"
    assert update.stage == "comfortable"
    assert update.milestone.type == "stage_comfortable"
    assert update.milestone.interaction_number == 5
    assert tracker.state.milestones[-1].description == "Became comfortable with each other"


def test_count_alone_does_not_progress():
    tracker = RelationshipTracker(RelationshipState(interaction_count=50, trust_level=0.25))
    update = tracker.record_interaction(InteractionSignals())
    assert update.stage_changed is False
    assert tracker.state.stage == "new"


def test_advances_at_most_one_stage_per_turn():
    tracker = RelationshipTracker(RelationshipState(interaction_count=100, trust_level=0.9))
    assert tracker.record_interaction(InteractionSignals()).stage == "comfortable"
    assert tracker.record_interaction(InteractionSignals()).stage == "intimate"
    assert tracker.record_interaction(InteractionSignals()).stage == "established"
    final = tracker.record_interaction(InteractionSignals())
    assert final.stage == "established"
    assert final.stage_changed is False


def test_metrics_are_capped_at_one():
    tracker = RelationshipTracker(RelationshipState(trust_level=1.0, sexual_chemistry=0.995))
    tracker.record_interaction(InteractionSignals(positive_response=True, flirtatious=True))
    assert tracker.state.trust_level == 1.0
    assert tracker.state.sexual_chemistry == 1.0


def test_from_dict_resets_unknown_stage():
    state = RelationshipState.from_dict({"stage": "married", "interaction_count": 3, "bogus": 1})
    assert state.stage == "new"
    assert state.interaction_count == 3


def test_round_trip_keeps_milestones():
    tracker = RelationshipTracker(RelationshipState(interaction_count=4, trust_level=0.3), clock=FakeClock())
    tracker.record_interaction(InteractionSignals())
    restored = RelationshipState.from_dict(tracker.state.to_dict())
    assert restored.stage == "comfortable"
    assert restored.milestones[0].type == "stage_comfortable"
