"""Data models for research lookups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class ResearchResult:
    """A short background summary for one topic."""

    topic: str
    summary: str
    source: str  # "wikipedia", "duckduckgo"
    url: str | None = None
    title: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
