# api/app/config.py
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application configuration.

    Loads environment variables from `.env` and provides
    typed access across API and services.
    """

    # ─────────────────────────────────────────────
    # Pydantic Settings Config
    # ─────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Database
    # ─────────────────────────────────────────────
    database_url: str
    database_echo: bool = False

    # ─────────────────────────────────────────────
    # Inference (OpenAI-compatible router)
    # ─────────────────────────────────────────────
    inference_api_key: str
    inference_base_url: str = "https://router.huggingface.co/v1"
    inference_timeout_seconds: float = 30.0
    use_streaming: bool = False

    primary_model: str = "Orenguteng/Llama-3.1-8B-Lexi-Uncensored-V2"
    fallback_models: list[str] = [
        "mistralai/Mixtral-8x7B-Instruct-v0.1",
        "NousResearch/Nous-Hermes-2-Mixtral-8x7B-DPO",
        "meta-llama/Llama-2-70b-chat-hf",
    ]

    planner_temperature: float = 0.7
    planner_max_tokens: int = 400
    response_temperature: float = 0.85
    response_max_tokens: int = 800
    response_top_p: float = 0.95
    ice_breaker_temperature: float = 0.8
    ice_breaker_max_tokens: int = 400

    # ─────────────────────────────────────────────
    # Circuit Breaker
    # ─────────────────────────────────────────────
    circuit_failure_threshold: int = 2
    circuit_failure_window_seconds: float = 300
    circuit_reset_seconds: float = 600

    # ─────────────────────────────────────────────
    # Companion
    # ─────────────────────────────────────────────
    companion_name: str = "Aria"
    prompt_version: str = "v1.0"
    credits_per_message: int = 1
    initial_credits: int = 100
    max_message_length: int = 1000
    max_history_length: int = 20
    natural_drift_every: int = 10
    natural_drift_factor: float = 0.002

    # ─────────────────────────────────────────────
    # API
    # ─────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000


# ─────────────────────────────────────────────
# Cached Settings Instance
# ─────────────────────────────────────────────
@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance so config
    is only loaded once per process.
    """
    return Settings()
