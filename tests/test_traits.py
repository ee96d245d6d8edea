# tests/test_traits.py
"""
Tests for trait clamping, interaction deltas, mood overlays and archetypes.
"""
from __future__ import annotations

import pytest

from conftest import FakeClock, FixedRandom
from services.interaction_signals import InteractionSignals
from services.traits import TRAIT_DEFAULTS, TRAIT_LIMITS, TraitStore, describe_personality


def test_defaults_within_limits():
    store = TraitStore()
    for name, value in store.traits.items():
        low, high = TRAIT_LIMITS[name]
        assert low <= value <= high
    assert store.traits == TRAIT_DEFAULTS


def test_adjust_clamps_to_upper_limit():
    store = TraitStore(clock=FakeClock())
    assert store.adjust("romantic_intensity", 0.5) is True
    assert store.traits["romantic_intensity"] == 1.0
    assert store.history[-1].new_value == 1.0


def test_adjust_below_minimum_is_rejected():
    store = TraitStore()
    assert store.adjust("empathy", 0.001) is False
    assert store.traits["empathy"] == 0.7
    assert store.history == []


def test_adjust_unknown_trait_is_ignored():
    store = TraitStore()
    before = dict(store.traits)

    assert store.adjust("charisma", 0.1) is False
    assert store.traits == before
    assert "charisma" not in store.traits
    assert store.history == []


def test_loaded_values_are_clamped():
    store = TraitStore(traits={"sensuality": 0.1, "unknown": 0.5})
    assert store.traits["sensuality"] == 0.7
    assert "unknown" not in store.traits


def test_support_given_raises_empathy():
    store = TraitStore()
    store.update_from_interaction(InteractionSignals(message_length=40), support_given=True)
    assert store.traits["empathy"] == pytest.approx(0.72)
    assert store.traits["emotional_intensity"] == pytest.approx(0.71)


def test_distant_signal_lowers_confidence():
    store = TraitStore()
    store.update_from_interaction(InteractionSignals(distant=True))
    assert store.traits["confidence"] == pytest.approx(0.69)
    assert store.traits["possessiveness"] == pytest.approx(0.32)


def test_mood_overlay_applies_then_expires():
    clock = FakeClock()
    store = TraitStore(clock=clock)
    store.apply_mood("comforting", {"empathy": 0.1, "playfulness": -0.1}, duration_minutes=60)

    effective = store.effective_traits()
    assert effective["empathy"] == pytest.approx(0.8)
    assert effective["playfulness"] == pytest.approx(0.5)
    assert store.traits["empathy"] == 0.7
    assert store.current_mood()["name"] == "comforting"

    clock.advance(3601)
    assert store.effective_traits()["empathy"] == 0.7
    assert store.current_mood() is None


def test_overlay_is_clamped_to_unit_range():
    store = TraitStore(traits={"romantic_intensity": 1.0})
    store.apply_mood("giddy", {"romantic_intensity": 0.5})
    assert store.effective_traits()["romantic_intensity"] == 1.0


def test_default_natural_drift_is_below_recording_threshold():
    store = TraitStore()
    store.natural_drift(rng=FixedRandom(1.0))
    assert store.traits == TRAIT_DEFAULTS


def test_round_trip_preserves_moods_and_history():
    clock = FakeClock()
    store = TraitStore(clock=clock)
    store.adjust("humor", 0.1, reason="test")
    store.apply_mood("cheerful", {"playfulness": 0.1})

    restored = TraitStore.from_dict(store.to_dict(), clock=clock)
    assert restored.traits == store.traits
    assert restored.history[0].reason == "test"
    assert restored.current_mood()["name"] == "cheerful"


def test_dominant_archetype():
    store = TraitStore(traits={"intelligence": 0.9, "curiosity": 0.85, "empathy": 0.8, "humor": 0.7})
    assert store.dominant_archetype() == "intellectual_companion"


def test_describe_personality_defaults():
    assert describe_personality({}) == "balanced and warm"
    assert "deeply romantic" in describe_personality(TRAIT_DEFAULTS)
