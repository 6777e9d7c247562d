"""Errors published by the conversation processor.

These are never raised to callers of the processor.  They are delivered to
listeners through ``on_error``; the underlying library exception, if any, is
available as ``__cause__``.
"""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for a failed enrichment cycle."""

    stage = "enrichment"

    def __init__(self, message: str, chunk_text: str) -> None:
        super().__init__(message)
        self.chunk_text = chunk_text


class TopicExtractionError(EnrichmentError):
    stage = "topic_extraction"


class ResearchFetchError(EnrichmentError):
    stage = "research"


class EnrichmentTimeoutError(EnrichmentError):
    stage = "timeout"
