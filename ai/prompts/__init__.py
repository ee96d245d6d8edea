# ai/prompts/__init__.py
from ai.prompts.system_aria import RESPONSE_INSTRUCTIONS, SYSTEM_ARIA
from ai.prompts.planner import PLANNER_PROMPT
from ai.prompts.time_guidance import PERSONALITY_TRAIT_EFFECTS, TIME_BEHAVIOR_GUIDANCE
from ai.prompts.ice_breaker import ICE_BREAKER_PROMPT, ICE_BREAKER_SYSTEM
from ai.prompts.boundaries import BOUNDARIES

__all__ = [
    "SYSTEM_ARIA",
    "RESPONSE_INSTRUCTIONS",
    "PLANNER_PROMPT",
    "TIME_BEHAVIOR_GUIDANCE",
    "PERSONALITY_TRAIT_EFFECTS",
    "ICE_BREAKER_PROMPT",
    "ICE_BREAKER_SYSTEM",
    "BOUNDARIES",
]
