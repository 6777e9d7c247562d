"""Conversation session endpoints: start/stop, fragments, flush, status, events."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect

from src.api.models import (
    FlushResponse,
    FragmentRequest,
    SessionResponse,
    StatusResponse,
    StopSessionResponse,
    serialize_event,
)
from src.config import settings
from src.extraction.extractor import get_topic_extractor
from src.pipeline_config import ProcessorConfig
from src.processing.events import QueueListener
from src.processing.processor import ConversationProcessor, ResearchFetcher, TopicExtractor
from src.research.fetcher import WebResearchFetcher

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class EnrichmentServices:
    """Backends handed to each new session's processor."""

    extractor: TopicExtractor
    fetcher: ResearchFetcher
    config: ProcessorConfig = field(default_factory=lambda: ProcessorConfig.from_settings(settings))


@dataclass
class ActiveSession:
    session_id: str
    processor: ConversationProcessor
    services: EnrichmentServices
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    listeners: list[QueueListener] = field(default_factory=list)


def get_enrichment_services() -> EnrichmentServices:
    """Build the default backends from settings.  Overridden in tests."""
    return EnrichmentServices(extractor=get_topic_extractor(), fetcher=WebResearchFetcher())


def _current_session(request: Request) -> ActiveSession:
    session: ActiveSession | None = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=409, detail="No active session")
    return session


async def close_session(session: ActiveSession, timeout: float | None) -> bool:
    """End *session*: flush, drain, then release listeners and backend clients."""
    drained = await session.processor.end_session(timeout=timeout)
    for listener in session.listeners:
        session.processor.events.unsubscribe(listener)
        listener.close()
    session.listeners.clear()

    for backend in (session.services.extractor, session.services.fetcher):
        aclose = getattr(backend, "aclose", None)
        if aclose is not None:
            await aclose()
    return drained


@router.post("/api/session/start", response_model=SessionResponse)
async def start_session(
    request: Request,
    services: Annotated[EnrichmentServices, Depends(get_enrichment_services)],
) -> SessionResponse:
    """Start a new conversation session, replacing any active one."""
    previous: ActiveSession | None = getattr(request.app.state, "session", None)
    if previous is not None:
        logger.info("Replacing active session %s", previous.session_id)
        previous.processor.clear()
        await close_session(previous, timeout=0)

    processor = ConversationProcessor(
        extractor=services.extractor,
        fetcher=services.fetcher,
        config=services.config,
    )
    processor.start_session()
    session = ActiveSession(
        session_id=uuid.uuid4().hex,
        processor=processor,
        services=services,
    )
    request.app.state.session = session
    return SessionResponse(session_id=session.session_id, started_at=session.started_at)


@router.post("/api/session/stop", response_model=StopSessionResponse)
async def stop_session(request: Request) -> StopSessionResponse:
    """Flush the trailing buffer, wait for queued chunks, and end the session."""
    session = _current_session(request)
    request.app.state.session = None
    drained = await close_session(session, timeout=settings.session_drain_timeout_seconds)
    return StopSessionResponse(session_id=session.session_id, drained=drained)


@router.post("/api/fragments", response_model=StatusResponse)
async def add_fragment(request: Request, body: FragmentRequest) -> StatusResponse:
    """Feed one transcript fragment into the active session."""
    session = _current_session(request)
    session.processor.add_fragment({"type": body.type, "text": body.text})
    return StatusResponse.from_status(session.session_id, session.processor.get_status())


@router.post("/api/flush", response_model=FlushResponse)
async def flush(request: Request) -> FlushResponse:
    """Cut the current buffer into a chunk immediately."""
    session = _current_session(request)
    chunk = session.processor.flush()
    return FlushResponse(chunk_text=chunk.text if chunk else None)


@router.get("/api/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    session: ActiveSession | None = getattr(request.app.state, "session", None)
    if session is None:
        return StatusResponse()
    return StatusResponse.from_status(session.session_id, session.processor.get_status())


@router.websocket("/api/events")
async def events(websocket: WebSocket) -> None:
    """Stream chunk/topics/research/error events of the active session as JSON."""
    session: ActiveSession | None = getattr(websocket.app.state, "session", None)
    await websocket.accept()
    if session is None:
        await websocket.close(code=1008, reason="No active session")
        return

    listener = QueueListener()
    session.listeners.append(listener)
    session.processor.events.subscribe(listener)
    try:
        while True:
            event = await listener.queue.get()
            if event is None:
                break
            await websocket.send_json(serialize_event(event))
        await websocket.close()
    except WebSocketDisconnect:
        logger.info("Event stream client disconnected")
    finally:
        session.processor.events.unsubscribe(listener)
        if listener in session.listeners:
            session.listeners.remove(listener)
