"""Tests for Settings, ProcessorConfig, and the provider/state enums."""

from __future__ import annotations

import pytest

from src.config import Settings
from src.pipeline_config import LLMProvider, ProcessorConfig, ProcessorState, ResearchProvider

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestLLMProvider:
    def test_values(self) -> None:
        assert LLMProvider.ANTHROPIC.value == "anthropic"
        assert LLMProvider.OPENAI.value == "openai"

    def test_from_string(self) -> None:
        assert LLMProvider("openai") is LLMProvider.OPENAI

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            LLMProvider("invalid")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(LLMProvider.ANTHROPIC, str)


class TestResearchProvider:
    def test_values(self) -> None:
        assert ResearchProvider.WIKIPEDIA.value == "wikipedia"
        assert ResearchProvider.DUCKDUCKGO.value == "duckduckgo"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            ResearchProvider("bing")


class TestProcessorState:
    def test_values(self) -> None:
        assert {s.value for s in ProcessorState} == {"idle", "accumulating", "enriching"}


# ---------------------------------------------------------------------------
# ProcessorConfig tests
# ---------------------------------------------------------------------------


class TestProcessorConfig:
    def test_defaults(self) -> None:
        cfg = ProcessorConfig()
        assert cfg.min_words_per_chunk == 5
        assert cfg.max_buffer_words == 100
        assert cfg.idle_timeout_ms == 3000
        assert cfg.queue_capacity == 20
        assert cfg.queue_trim_to == 10
        assert cfg.context_window_capacity == 5
        assert cfg.cooldown_ms == 200
        assert cfg.cycle_timeout_ms is None

    def test_seconds_helpers(self) -> None:
        cfg = ProcessorConfig(idle_timeout_ms=1500, cooldown_ms=250, cycle_timeout_ms=2000)
        assert cfg.idle_timeout_seconds == 1.5
        assert cfg.cooldown_seconds == 0.25
        assert cfg.cycle_timeout_seconds == 2.0
        assert ProcessorConfig().cycle_timeout_seconds is None

    def test_immutable(self) -> None:
        cfg = ProcessorConfig()
        with pytest.raises(AttributeError):
            cfg.min_words_per_chunk = 10  # type: ignore[misc]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_words_per_chunk": 0},
            {"max_buffer_words": -1},
            {"idle_timeout_ms": 0},
            {"queue_capacity": 0},
            {"context_window_capacity": 0},
            {"cooldown_ms": -5},
            {"queue_capacity": 5, "queue_trim_to": 6},
            {"cycle_timeout_ms": 0},
        ],
    )
    def test_invalid_values_raise(self, overrides: dict[str, int]) -> None:
        with pytest.raises(ValueError):
            ProcessorConfig(**overrides)

    def test_zero_cooldown_allowed(self) -> None:
        assert ProcessorConfig(cooldown_ms=0).cooldown_seconds == 0

    def test_from_settings(self) -> None:
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None,
            min_words_per_chunk=25,
            idle_timeout_ms=5000,
            cooldown_ms=100,
            cycle_timeout_ms=30000,
        )
        cfg = ProcessorConfig.from_settings(settings)
        assert cfg.min_words_per_chunk == 25
        assert cfg.idle_timeout_ms == 5000
        assert cfg.cooldown_ms == 100
        assert cfg.cycle_timeout_ms == 30000
        assert cfg.queue_capacity == 20


class TestSettings:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MIN_WORDS_PER_CHUNK", "12")
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.min_words_per_chunk == 12
        assert settings.llm_provider == "openai"

    def test_research_defaults(self) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.research_providers == ["wikipedia", "duckduckgo"]
        assert settings.research_max_results == 4
