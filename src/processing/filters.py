"""Text filters for transcript lines and research candidates."""

from __future__ import annotations

import re

from src.extraction.models import TopicResult

_NOISE_LINE_PATTERNS = [
    re.compile(r"^\[BLANK_AUDIO\]$"),
    re.compile(r"^\[INAUDIBLE\]$"),
    re.compile(r"^\s*\(.*\)\s*$"),  # sound effects like (sighs), (coughing)
    re.compile(r"^\s*-\s*$"),
    re.compile(r"^thanks for watching\.?$", re.IGNORECASE),
    re.compile(r"^\s*\[\d+K\s*$"),
    re.compile(r"^\s*\x1b\[.*$"),
    re.compile(r"^\s*$"),
]

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")
_ERASE_LINE = re.compile(r"\[\d+K")
_LEADING_DASH = re.compile(r"^\s*-\s*")
_WHITESPACE = re.compile(r"\s+")

# Markers whisper-style transcribers emit for non-speech audio.
NOISE_MARKERS: tuple[str, ...] = (
    "[blank_audio]",
    "[inaudible]",
    "[music]",
    "[silence]",
    "[noise]",
    "(inaudible)",
    "thanks for watching",
)

MIN_CANDIDATE_LENGTH = 3


def clean_transcript_line(line: str | None) -> str | None:
    """Normalise one transcriber output line.

    Returns ``None`` for lines that carry no speech: noise markers, sound
    effects, terminal control codes, or a single word repeated over and over.

    Args:
        line: Raw line as printed by the transcriber.

    Returns:
        The cleaned line, or ``None`` if it should be discarded.
    """
    if not line:
        return None

    if any(pattern.search(line) for pattern in _NOISE_LINE_PATTERNS):
        return None

    words = line.split(" ")
    if len(words) > 4:
        first_word = words[0].lower()
        repetitions = sum(1 for w in words if w.lower() == first_word)
        if repetitions > len(words) / 2:
            return None

    cleaned = _ANSI_ESCAPE.sub("", line)
    cleaned = _ERASE_LINE.sub("", cleaned)
    cleaned = _LEADING_DASH.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    return cleaned if len(cleaned) > 3 else None


def count_words(text: str) -> int:
    """Whitespace-delimited token count."""
    return len(text.split())


def is_noise(candidate: str) -> bool:
    lowered = candidate.lower()
    return any(marker in lowered for marker in NOISE_MARKERS)


def filter_research_candidates(result: TopicResult) -> list[str]:
    """Pick the strings worth a research lookup.

    All topics, plus the first question and the first term, minus anything
    too short or containing a transcription-noise marker.
    """
    candidates = [*result.topics, *result.questions[:1], *result.terms[:1]]
    filtered: list[str] = []
    for candidate in candidates:
        candidate = candidate.strip()
        if len(candidate) < MIN_CANDIDATE_LENGTH or is_noise(candidate):
            continue
        filtered.append(candidate)
    return filtered


def word_overlap_similarity(first: str, second: str) -> float:
    """Share of distinct words (longer than 2 chars) the two texts have in common."""
    if not first or not second:
        return 0.0

    words1 = {w for w in first.lower().split() if len(w) > 2}
    words2 = {w for w in second.lower().split() if len(w) > 2}

    if not words1 and not words2:
        return 1.0
    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / max(len(words1), len(words2))
