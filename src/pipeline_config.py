"""Pipeline configuration: provider enums, processor state and ProcessorConfig."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


class LLMProvider(str, Enum):
    """Available topic extraction backends."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ResearchProvider(str, Enum):
    """Available research lookup backends."""

    WIKIPEDIA = "wikipedia"
    DUCKDUCKGO = "duckduckgo"


class ProcessorState(str, Enum):
    """States of the conversation processor.

    IDLE: empty buffer, no cycle running.
    ACCUMULATING: buffer holds text below the cut threshold, no cycle running.
    ENRICHING: exactly one enrichment cycle is in flight.
    """

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    ENRICHING = "enriching"


@dataclass(frozen=True)
class ProcessorConfig:
    """Immutable configuration for the conversation processor.

    Defaults mirror the observed behaviour of the live pipeline.  Set
    ``cycle_timeout_ms`` to bound each enrichment cycle; ``None`` leaves
    external calls unbounded, so a hung call stalls the queue.
    """

    min_words_per_chunk: int = 5
    max_buffer_words: int = 100
    idle_timeout_ms: int = 3000
    queue_capacity: int = 20
    queue_trim_to: int = 10
    context_window_capacity: int = 5
    cooldown_ms: int = 200
    cycle_timeout_ms: int | None = None

    def __post_init__(self) -> None:
        for name in (
            "min_words_per_chunk",
            "max_buffer_words",
            "idle_timeout_ms",
            "queue_capacity",
            "queue_trim_to",
            "context_window_capacity",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must not be negative, got {self.cooldown_ms}")
        if self.queue_trim_to > self.queue_capacity:
            raise ValueError(
                f"queue_trim_to ({self.queue_trim_to}) exceeds "
                f"queue_capacity ({self.queue_capacity})"
            )
        if self.cycle_timeout_ms is not None and self.cycle_timeout_ms <= 0:
            raise ValueError(f"cycle_timeout_ms must be positive, got {self.cycle_timeout_ms}")

    @classmethod
    def from_settings(cls, settings: Settings) -> ProcessorConfig:
        """Build a config from application settings."""
        return cls(
            min_words_per_chunk=settings.min_words_per_chunk,
            max_buffer_words=settings.max_buffer_words,
            idle_timeout_ms=settings.idle_timeout_ms,
            queue_capacity=settings.queue_capacity,
            queue_trim_to=settings.queue_trim_to,
            context_window_capacity=settings.context_window_capacity,
            cooldown_ms=settings.cooldown_ms,
            cycle_timeout_ms=settings.cycle_timeout_ms,
        )

    @property
    def idle_timeout_seconds(self) -> float:
        return self.idle_timeout_ms / 1000

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_ms / 1000

    @property
    def cycle_timeout_seconds(self) -> float | None:
        if self.cycle_timeout_ms is None:
            return None
        return self.cycle_timeout_ms / 1000
