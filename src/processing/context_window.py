"""Bounded history of recent research results."""

from __future__ import annotations

from collections.abc import Iterable

from src.research.models import ResearchResult


class ContextWindow:
    """Most recent research results, oldest first.

    No deduplication happens here; identical summaries are kept as separate
    entries.
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: list[ResearchResult] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[ResearchResult]:
        return list(self._entries)

    def append(self, results: Iterable[ResearchResult]) -> None:
        self._entries.extend(results)
        if len(self._entries) > self.capacity:
            del self._entries[: len(self._entries) - self.capacity]

    def clear(self) -> None:
        self._entries.clear()
