"""Data models for the conversation processor: chunks, events and status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from src.pipeline_config import ProcessorState
from src.research.models import ResearchResult


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Chunk:
    """Snapshot of the buffer text taken at a cut."""

    text: str
    sequence: int = 0
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ChunkEvent:
    """Published as soon as a chunk is cut, before enrichment."""

    text: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TopicsEvent:
    """Published when the topic extractor found anything in a chunk."""

    topics: list[str]
    questions: list[str]
    terms: list[str]
    chunk_text: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ResearchEvent:
    """Published when the research fetcher returned at least one summary."""

    summaries: list[ResearchResult]
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ProcessorStatus:
    """Point-in-time view of the processor."""

    buffer_word_count: int
    queue_length: int
    is_processing: bool
    last_processed_time: datetime | None
    state: ProcessorState = ProcessorState.IDLE
