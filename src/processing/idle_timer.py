"""Resettable single-shot timer on the running asyncio loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class IdleTrigger:
    """Fires ``callback`` once after ``delay`` seconds without a reset."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def reset(self) -> None:
        """Cancel any pending fire and re-arm. Must be called from the loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
