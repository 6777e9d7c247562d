from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # LLM config
    llm_provider: str = "anthropic"
    llm_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1024

    # Research config
    research_providers: list[str] = ["wikipedia", "duckduckgo"]
    research_max_results: int = 4
    research_timeout_seconds: float = 10.0
    research_user_agent: str = "research-companion/0.1"

    # Chunking / enrichment thresholds
    min_words_per_chunk: int = 5
    max_buffer_words: int = 100
    idle_timeout_ms: int = 3000
    queue_capacity: int = 20
    queue_trim_to: int = 10
    context_window_capacity: int = 5
    cooldown_ms: int = 200
    cycle_timeout_ms: int | None = None  # None keeps enrichment calls unbounded
    session_drain_timeout_seconds: float = 30.0

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
