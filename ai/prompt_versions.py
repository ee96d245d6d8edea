# ai/prompt_versions.py
"""
Prompt version registry for A/B testing and rollback.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ai.prompt_builder import PromptContext, build_planner_messages, build_response_messages
from ai.response_parser import Plan

PROMPT_VERSION = "v1.0"


@dataclass(frozen=True)
class PromptBuilders:
    planner: Callable[[PromptContext], list[dict]]
    response: Callable[[PromptContext, Plan], list[dict]]


# Registry allows swapping prompt builders by version string
_BUILDERS: dict[str, PromptBuilders] = {
    "v1.0": PromptBuilders(planner=build_planner_messages, response=build_response_messages),
}


def get_prompt_builders(version: str = PROMPT_VERSION) -> PromptBuilders:
    """Return the planner/response builder pair for a given version."""
    return _BUILDERS.get(version, _BUILDERS[PROMPT_VERSION])
