"""Bounded FIFO of chunks awaiting enrichment."""

from __future__ import annotations

import logging
from collections import deque

from src.processing.models import Chunk

logger = logging.getLogger(__name__)


class ChunkQueue:
    """FIFO with lossy backpressure.

    When an enqueue pushes the length past ``capacity`` the oldest chunks are
    dropped so that only the newest ``trim_to`` remain, and the queue starts
    shedding: it stays capped at ``trim_to`` until it has been drained empty.
    Enqueue never blocks and never rejects.
    """

    def __init__(self, capacity: int = 20, trim_to: int = 10) -> None:
        if trim_to > capacity:
            raise ValueError(f"trim_to ({trim_to}) exceeds capacity ({capacity})")
        self.capacity = capacity
        self.trim_to = trim_to
        self._items: deque[Chunk] = deque()
        self._shedding = False

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def shedding(self) -> bool:
        return self._shedding

    def enqueue(self, chunk: Chunk) -> list[Chunk]:
        """Append *chunk* and return any chunks evicted to stay within bounds."""
        self._items.append(chunk)
        limit = self.trim_to if self._shedding else self.capacity
        if len(self._items) <= limit:
            return []

        if not self._shedding:
            logger.warning(
                "Chunk queue exceeded %d entries; shedding oldest chunks down to %d",
                self.capacity,
                self.trim_to,
            )
            self._shedding = True

        evicted = [self._items.popleft() for _ in range(len(self._items) - self.trim_to)]
        logger.warning("Dropped %d queued chunk(s) to bound memory", len(evicted))
        return evicted

    def dequeue(self) -> Chunk | None:
        if not self._items:
            return None
        chunk = self._items.popleft()
        if not self._items and self._shedding:
            logger.info("Chunk queue drained; backlog recovered")
            self._shedding = False
        return chunk

    def snapshot(self) -> list[Chunk]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
        self._shedding = False
