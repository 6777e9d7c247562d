"""Conversation processor: fragments in, enriched chunk events out.

Fragments are accumulated into a buffer and cut into chunks once the buffer is
big enough or the speaker pauses.  Chunks wait in a bounded queue and are
enriched one at a time: topic extraction first, then a research lookup for the
topics found.  Results reach the outside world only through the
:class:`~src.processing.events.EventPublisher`.

The processor must be driven from a running asyncio event loop.  All state is
mutated on that loop, so no locks are needed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol, Union

from src.extraction.models import TopicResult
from src.pipeline_config import ProcessorConfig, ProcessorState
from src.processing.buffer import FragmentAccumulator
from src.processing.chunk_queue import ChunkQueue
from src.processing.context_window import ContextWindow
from src.processing.errors import (
    EnrichmentError,
    EnrichmentTimeoutError,
    ResearchFetchError,
    TopicExtractionError,
)
from src.processing.events import EventPublisher
from src.processing.filters import filter_research_candidates
from src.processing.idle_timer import IdleTrigger
from src.processing.models import (
    Chunk,
    ChunkEvent,
    ProcessorStatus,
    ResearchEvent,
    TopicsEvent,
)
from src.research.models import ResearchResult

logger = logging.getLogger(__name__)

Fragment = Union[str, Mapping[str, Any], None]

FINAL_FRAGMENT_TYPE = "final"


class TopicExtractor(Protocol):
    async def extract_topics(self, text: str) -> TopicResult: ...


class ResearchFetcher(Protocol):
    async def fetch_research_summaries(
        self,
        topics: list[str],
        live_context: str,
        prior_results: list[ResearchResult],
    ) -> list[ResearchResult]: ...


class ConversationProcessor:
    """Single-session streaming aggregator with single-flight enrichment.

    Create one instance per conversation session and subscribe listeners via
    :attr:`events`.

    Args:
        extractor: Topic extraction backend.
        fetcher: Research lookup backend.
        config: Thresholds and timings; defaults to :class:`ProcessorConfig`.
        publisher: Event publisher to use; a fresh one is created if omitted.
    """

    def __init__(
        self,
        extractor: TopicExtractor,
        fetcher: ResearchFetcher,
        config: ProcessorConfig | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.config = config or ProcessorConfig()
        self.extractor = extractor
        self.fetcher = fetcher
        self.events = publisher or EventPublisher()

        self._buffer = FragmentAccumulator(
            min_words=self.config.min_words_per_chunk,
            max_words=self.config.max_buffer_words,
        )
        self._queue = ChunkQueue(
            capacity=self.config.queue_capacity,
            trim_to=self.config.queue_trim_to,
        )
        self._context = ContextWindow(capacity=self.config.context_window_capacity)
        self._idle = IdleTrigger(self.config.idle_timeout_seconds, self._on_idle)

        self._state = ProcessorState.IDLE
        self._busy = False
        self._cycle_task: asyncio.Task[None] | None = None
        self._cooldown: asyncio.TimerHandle | None = None
        # Bumped by clear(); cycles started under an older generation are stale.
        self._generation = 0
        self._sequence = 0
        self._last_processed_time: datetime | None = None
        self._settled = asyncio.Event()
        self._settled.set()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._busy

    @property
    def buffer_text(self) -> str:
        return self._buffer.text

    @property
    def context_window(self) -> list[ResearchResult]:
        return self._context.entries

    @property
    def queued_chunks(self) -> list[Chunk]:
        return self._queue.snapshot()

    def add_fragment(self, fragment: Fragment) -> None:
        """Accumulate one transcript fragment.

        Bare strings and ``{"type": "final", "text": ...}`` mappings are
        accumulated; blank text and any other fragment type are ignored.
        Every accepted fragment re-arms the idle trigger.
        """
        text = _fragment_text(fragment)
        if text is None:
            return

        if self._buffer.append(text):
            self._cut()
        self._idle.reset()
        self._refresh_state()

    def flush(self) -> Chunk | None:
        """Cut the buffer into a chunk now, whatever its size.

        Returns:
            The new chunk, or ``None`` if the buffer was empty.
        """
        self._idle.cancel()
        return self._cut()

    def clear(self) -> None:
        """Drop all buffered, queued and in-flight work and the context window."""
        self._generation += 1
        self._idle.cancel()
        if self._cooldown is not None:
            self._cooldown.cancel()
            self._cooldown = None
        if self._cycle_task is not None and not self._cycle_task.done():
            self._cycle_task.cancel()
        self._cycle_task = None

        self._buffer.reset()
        self._queue.clear()
        self._context.clear()
        self._busy = False
        self._refresh_state()

    def get_status(self) -> ProcessorStatus:
        return ProcessorStatus(
            buffer_word_count=self._buffer.word_count,
            queue_length=len(self._queue),
            is_processing=self._busy,
            last_processed_time=self._last_processed_time,
            state=self._state,
        )

    def start_session(self) -> None:
        """Reset everything for a new conversation."""
        self.clear()
        self._sequence = 0
        self._last_processed_time = None
        logger.info("Conversation session started")

    async def end_session(self, timeout: float | None = None) -> bool:
        """Flush the trailing buffer and wait for queued work to finish.

        Args:
            timeout: Seconds to wait for the queue to drain.  ``None`` waits
                indefinitely.

        Returns:
            True if all work finished; False if the wait timed out, in which
            case the remaining work is discarded.
        """
        self.flush()
        drained = await self.drain(timeout)
        if not drained:
            logger.warning(
                "Session ended with %d chunk(s) still pending; discarding",
                len(self._queue) + int(self._busy),
            )
            self.clear()
        self._idle.cancel()
        logger.info("Conversation session ended")
        return drained

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until the queue is empty and no cycle or cooldown is pending."""
        try:
            async with asyncio.timeout(timeout):
                while not self._is_settled():
                    self._settled.clear()
                    await self._settled.wait()
        except TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def _on_idle(self) -> None:
        if self._buffer.is_empty():
            return
        logger.debug("Idle timeout reached with %d buffered word(s)", self._buffer.word_count)
        self._cut()

    def _cut(self) -> Chunk | None:
        if self._buffer.is_empty():
            return None

        self._sequence += 1
        chunk = Chunk(text=self._buffer.take(), sequence=self._sequence)
        self._last_processed_time = chunk.created_at

        for dropped in self._queue.enqueue(chunk):
            logger.debug("Evicted chunk #%d: %.50s", dropped.sequence, dropped.text)

        self.events.publish_chunk(ChunkEvent(text=chunk.text, timestamp=chunk.created_at))
        self._pump()
        return chunk

    # ------------------------------------------------------------------
    # Enrichment worker
    # ------------------------------------------------------------------

    def _pump(self) -> None:
        """Start the next enrichment cycle if the worker is free."""
        if self._busy or self._cooldown is not None:
            self._refresh_state()
            return

        chunk = self._queue.dequeue()
        if chunk is None:
            self._refresh_state()
            return

        self._busy = True
        self._refresh_state()
        loop = asyncio.get_running_loop()
        self._cycle_task = loop.create_task(self._run_cycle(chunk, self._generation))

    async def _run_cycle(self, chunk: Chunk, generation: int) -> None:
        try:
            async with asyncio.timeout(self.config.cycle_timeout_seconds):
                await self._enrich(chunk, generation)
        except TimeoutError as exc:
            error = EnrichmentTimeoutError(
                f"Enrichment cycle exceeded {self.config.cycle_timeout_ms} ms",
                chunk.text,
            )
            self._publish_error(error, exc, generation)
        except Exception as exc:
            # malformed backend payloads surface as events like backend failures
            error = EnrichmentError(f"Enrichment failed: {exc}", chunk.text)
            self._publish_error(error, exc, generation)
        finally:
            if generation == self._generation:
                self._finish_cycle()

    async def _enrich(self, chunk: Chunk, generation: int) -> None:
        logger.info("Processing chunk #%d: %.50s...", chunk.sequence, chunk.text)

        try:
            result = await self.extractor.extract_topics(chunk.text)
        except Exception as exc:
            error = TopicExtractionError(f"Topic extraction failed: {exc}", chunk.text)
            self._publish_error(error, exc, generation)
            return

        if generation != self._generation or result.is_empty:
            return

        self.events.publish_topics(
            TopicsEvent(
                topics=list(result.topics),
                questions=list(result.questions),
                terms=list(result.terms),
                chunk_text=chunk.text,
            )
        )

        candidates = filter_research_candidates(result)
        if not candidates:
            logger.debug("No research candidates left after filtering chunk #%d", chunk.sequence)
            return

        try:
            summaries = await self.fetcher.fetch_research_summaries(
                candidates,
                self._buffer.text,
                self._context.entries,
            )
        except Exception as exc:
            error = ResearchFetchError(f"Research lookup failed: {exc}", chunk.text)
            self._publish_error(error, exc, generation)
            return

        if generation != self._generation or not summaries:
            return

        self._context.append(summaries)
        self.events.publish_research(ResearchEvent(summaries=list(summaries)))

    def _publish_error(
        self, error: EnrichmentError, cause: BaseException, generation: int
    ) -> None:
        error.__cause__ = cause
        logger.error("Error processing chunk: %s", error, exc_info=cause)
        if generation == self._generation:
            self.events.publish_error(error)

    def _finish_cycle(self) -> None:
        self._busy = False
        self._cycle_task = None
        loop = asyncio.get_running_loop()
        self._cooldown = loop.call_later(self.config.cooldown_seconds, self._after_cooldown)
        self._refresh_state()

    def _after_cooldown(self) -> None:
        self._cooldown = None
        self._pump()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _is_settled(self) -> bool:
        return not self._busy and self._cooldown is None and not self._queue

    def _refresh_state(self) -> None:
        if self._busy:
            state = ProcessorState.ENRICHING
        elif not self._buffer.is_empty():
            state = ProcessorState.ACCUMULATING
        else:
            state = ProcessorState.IDLE

        if state is not self._state:
            logger.debug("Processor state %s -> %s", self._state.value, state.value)
            self._state = state

        if self._is_settled():
            self._settled.set()
        else:
            self._settled.clear()


def _fragment_text(fragment: Fragment) -> str | None:
    if fragment is None:
        return None
    if isinstance(fragment, Mapping):
        fragment_type = fragment.get("type", FINAL_FRAGMENT_TYPE)
        if fragment_type != FINAL_FRAGMENT_TYPE:
            logger.debug("Ignoring %s fragment", fragment_type)
            return None
        fragment = fragment.get("text")
        if not isinstance(fragment, str):
            return None
    if not fragment.strip():
        return None
    return fragment
