"""Fragment accumulation with a dual word-count threshold."""

from __future__ import annotations

from src.processing.filters import count_words


class FragmentAccumulator:
    """Running text buffer that knows when it is ready to be cut.

    A cut is due once the buffer holds ``min_words`` words, or ``max_words``
    words for a single oversized fragment.
    """

    def __init__(self, min_words: int, max_words: int) -> None:
        self.min_words = min_words
        self.max_words = max_words
        self._text = ""
        self._word_count = 0

    @property
    def text(self) -> str:
        return self._text.strip()

    @property
    def word_count(self) -> int:
        return self._word_count

    def is_empty(self) -> bool:
        return self._word_count == 0

    def append(self, fragment: str) -> bool:
        """Append a fragment and return whether a cut is now due."""
        self._text += " " + fragment
        self._word_count = count_words(self._text)
        return self.should_cut()

    def should_cut(self) -> bool:
        return self._word_count >= self.min_words or self._word_count >= self.max_words

    def take(self) -> str:
        """Return the trimmed buffer text and reset to empty."""
        text = self.text
        self.reset()
        return text

    def reset(self) -> None:
        self._text = ""
        self._word_count = 0
