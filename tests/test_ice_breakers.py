# tests/test_ice_breakers.py
from __future__ import annotations

import json
from datetime import datetime

import pytest

from conftest import FakeClock, FakeProvider, FixedRandom
from services.companion_state import ConversationContext
from services.ice_breakers import (
    LATE_CHECK_IN,
    VALID_TYPES,
    IceBreakerGenerator,
    allowed_types,
    fallback_ice_breakers,
    filter_types,
    infer_type,
    parse_ice_breakers,
)
from services.relationship import RelationshipState
from services.response_generator import ResponseGenerator
from services.temporal import temporal_context


def _ctx(hour: int = 20, stage: str = "new") -> ConversationContext:
    return ConversationContext(
        user_id="u1",
        session_id="s1",
        user_message="",
        relationship=RelationshipState(stage=stage),
        temporal=temporal_context(datetime(2024, 3, 1, hour, 0)),
    )


def _service(settings, script) -> IceBreakerGenerator:
    return IceBreakerGenerator(ResponseGenerator(FakeProvider(script), settings, rng=FixedRandom(), clock=FakeClock()))


def test_parse_full_object():
    text = json.dumps({"ice_breakers": [
        {"text": "What made you smile today?", "type": "question", "mood": "warm"},
        {"text": "Come closer", "type": "intimate", "mood": "soft"},
    ]})
    items = parse_ice_breakers(text, "intimate")
    assert [i.type for i in items] == ["question", "intimate"]
    assert [i.priority for i in items] == [1, 2]
    assert all(i.id.startswith("ice_") for i in items)


def test_parse_bare_array_with_bad_type():
    items = parse_ice_breakers('[{"text": "you are amazing", "type": "weird"}]', "new")
    assert items[0].type == "compliment"
    assert items[0].priority == 2


def test_parse_numbered_lines():
    text = "Here are some ideas:\n1. How was your weekend?\n2) Tell me something silly about you"
    items = parse_ice_breakers(text, "comfortable")
    assert [i.text for i in items] == ["How was your weekend?", "Tell me something silly about you"]
    assert items[1].type == "playful"


def test_parse_garbage_returns_empty():
    assert parse_ice_breakers("", "new") == []


def test_infer_type():
    assert infer_type("do you like jazz") == "question"
    assert infer_type("I'm here for you always") == "supportive"
    assert infer_type("Just thinking") == "question"


def test_allowed_types_default_excludes_intimate():
    assert "intimate" not in allowed_types()
    assert allowed_types(["playful", "bogus", "flirty"], ["flirty"]) == ["playful"]


def test_late_night_fallback_leads_with_check_in():
    items = fallback_ice_breakers("new", "late_night", 4)
    assert items[0].text == LATE_CHECK_IN[0]
    assert len(items) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("stage", ["new", "comfortable", "intimate", "established"])
async def test_all_calls_failing_still_returns_count(settings, stage):
    failures = [RuntimeError("down")] * (1 + len(settings.fallback_models))
    items = await _service(settings, failures).generate(_ctx(stage=stage), count=3)

    assert len(items) == 3
    for item in items:
        assert item.id.startswith("ice_")
        assert item.type in VALID_TYPES
        assert item.priority >= 1


@pytest.mark.asyncio
async def test_late_night_check_in_survives_count(settings):
    failures = [RuntimeError("down")] * (1 + len(settings.fallback_models))
    items = await _service(settings, failures).generate(_ctx(hour=2), count=2)
    assert items[0].text == LATE_CHECK_IN[0]
    assert len(items) == 2


@pytest.mark.asyncio
async def test_model_output_is_filtered_and_trimmed(settings):
    text = json.dumps({"ice_breakers": [
        {"text": "What are you up to?", "type": "question"},
        {"text": "You look cute today", "type": "flirty"},
        {"text": "Tell me a secret?", "type": "question"},
        {"text": "Want to play a game?", "type": "playful"},
    ]})
    items = await _service(settings, [text]).generate(_ctx(), count=2, include_types=["question", "playful"])
    assert [i.text for i in items] == ["What are you up to?", "Tell me a secret?"]


@pytest.mark.asyncio
async def test_filter_that_empties_keeps_unfiltered(settings):
    failures = [RuntimeError("down")] * (1 + len(settings.fallback_models))
    items = await _service(settings, failures).generate(_ctx(), count=3, include_types=["flirty"])
    assert len(items) == 3


def test_preamble_only_output_parses_to_nothing():
    assert parse_ice_breakers("Sure! Here you go:\nIdeas:", "new") == []


def test_filter_tops_up_from_remaining_items():
    items = fallback_ice_breakers("established", "evening", 3)
    kept = filter_types(items, ["question", "flirty"], 3)

    assert [i.type for i in kept] == ["flirty", "intimate", "intimate"]
    assert len(filter_types(items, ["flirty"], 1)) == 1
