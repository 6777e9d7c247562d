"""Pydantic request/response schemas for the Research Companion API."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from src.pipeline_config import ProcessorState
from src.processing.errors import EnrichmentError
from src.processing.events import ProcessorEvent
from src.processing.models import ChunkEvent, ProcessorStatus, ResearchEvent, TopicsEvent


class FragmentRequest(BaseModel):
    """Request body for the /api/fragments endpoint."""

    text: str
    type: str = "final"


class SessionResponse(BaseModel):
    """Response body for starting a session."""

    session_id: str
    started_at: datetime


class StopSessionResponse(BaseModel):
    """Response body for stopping a session."""

    session_id: str
    drained: bool


class FlushResponse(BaseModel):
    """Text of the chunk cut by a manual flush, if any."""

    chunk_text: str | None = None


class StatusResponse(BaseModel):
    """Response body for the /api/status endpoint."""

    session_id: str | None = None
    buffer_word_count: int = 0
    queue_length: int = 0
    is_processing: bool = False
    last_processed_time: datetime | None = None
    state: ProcessorState = ProcessorState.IDLE

    @classmethod
    def from_status(cls, session_id: str, status: ProcessorStatus) -> StatusResponse:
        return cls(session_id=session_id, **asdict(status))


class ResearchSummary(BaseModel):
    topic: str
    summary: str
    source: str
    url: str | None = None
    title: str | None = None
    timestamp: datetime


class ChunkMessage(BaseModel):
    event: Literal["chunk"] = "chunk"
    text: str
    timestamp: datetime


class TopicsMessage(BaseModel):
    event: Literal["topics"] = "topics"
    topics: list[str]
    questions: list[str]
    terms: list[str]
    chunk_text: str
    timestamp: datetime


class ResearchMessage(BaseModel):
    event: Literal["research"] = "research"
    summaries: list[ResearchSummary]
    timestamp: datetime


class ErrorMessage(BaseModel):
    event: Literal["error"] = "error"
    stage: str
    message: str
    chunk_text: str


def serialize_event(event: ProcessorEvent) -> dict[str, Any]:
    """Convert a processor event into a JSON-ready dict tagged with ``event``."""
    message: BaseModel
    if isinstance(event, ChunkEvent):
        message = ChunkMessage(text=event.text, timestamp=event.timestamp)
    elif isinstance(event, TopicsEvent):
        message = TopicsMessage(**asdict(event))
    elif isinstance(event, ResearchEvent):
        message = ResearchMessage(
            summaries=[ResearchSummary(**asdict(s)) for s in event.summaries],
            timestamp=event.timestamp,
        )
    elif isinstance(event, EnrichmentError):
        message = ErrorMessage(stage=event.stage, message=str(event), chunk_text=event.chunk_text)
    else:
        raise TypeError(f"Unknown event type: {type(event).__name__}")
    return message.model_dump(mode="json")
