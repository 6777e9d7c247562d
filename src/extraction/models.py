"""Data models for topic extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TopicResult:
    """Topics, questions, and unfamiliar terms extracted from one chunk."""

    topics: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    terms: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.topics or self.questions or self.terms)
