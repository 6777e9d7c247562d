"""Typed event publishing for the conversation processor."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, Union

from src.processing.errors import EnrichmentError
from src.processing.models import ChunkEvent, ResearchEvent, TopicsEvent

logger = logging.getLogger(__name__)

ProcessorEvent = Union[ChunkEvent, TopicsEvent, ResearchEvent, EnrichmentError]


class ProcessorListener(Protocol):
    """Receiver of processor events.  Methods are called on the event loop."""

    def on_chunk(self, event: ChunkEvent) -> None: ...

    def on_topics(self, event: TopicsEvent) -> None: ...

    def on_research(self, event: ResearchEvent) -> None: ...

    def on_error(self, error: EnrichmentError) -> None: ...


class CallbackListener:
    """Adapt plain callables to :class:`ProcessorListener`; missing ones are no-ops."""

    def __init__(
        self,
        on_chunk: Callable[[ChunkEvent], None] | None = None,
        on_topics: Callable[[TopicsEvent], None] | None = None,
        on_research: Callable[[ResearchEvent], None] | None = None,
        on_error: Callable[[EnrichmentError], None] | None = None,
    ) -> None:
        self._on_chunk = on_chunk
        self._on_topics = on_topics
        self._on_research = on_research
        self._on_error = on_error

    def on_chunk(self, event: ChunkEvent) -> None:
        if self._on_chunk:
            self._on_chunk(event)

    def on_topics(self, event: TopicsEvent) -> None:
        if self._on_topics:
            self._on_topics(event)

    def on_research(self, event: ResearchEvent) -> None:
        if self._on_research:
            self._on_research(event)

    def on_error(self, error: EnrichmentError) -> None:
        if self._on_error:
            self._on_error(error)


class QueueListener:
    """Push every event, in order, onto an unbounded asyncio queue.

    ``close()`` enqueues ``None`` so a consumer loop knows to stop.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[ProcessorEvent | None] = asyncio.Queue()

    def close(self) -> None:
        self.queue.put_nowait(None)

    def on_chunk(self, event: ChunkEvent) -> None:
        self.queue.put_nowait(event)

    def on_topics(self, event: TopicsEvent) -> None:
        self.queue.put_nowait(event)

    def on_research(self, event: ResearchEvent) -> None:
        self.queue.put_nowait(event)

    def on_error(self, error: EnrichmentError) -> None:
        self.queue.put_nowait(error)


class EventPublisher:
    """Fan events out to subscribed listeners.

    Every listener sees every event in publish order.  A listener that raises
    is logged and skipped; the remaining listeners still receive the event.
    """

    def __init__(self) -> None:
        self._listeners: list[ProcessorListener] = []

    def subscribe(self, listener: ProcessorListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ProcessorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish_chunk(self, event: ChunkEvent) -> None:
        self._dispatch("on_chunk", event)

    def publish_topics(self, event: TopicsEvent) -> None:
        self._dispatch("on_topics", event)

    def publish_research(self, event: ResearchEvent) -> None:
        self._dispatch("on_research", event)

    def publish_error(self, error: EnrichmentError) -> None:
        self._dispatch("on_error", error)

    def _dispatch(self, method: str, payload: ProcessorEvent) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, method)(payload)
            except Exception:
                logger.exception("Listener %r failed in %s", listener, method)
