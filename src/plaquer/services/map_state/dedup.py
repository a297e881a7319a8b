"""Suppress repeated user-facing notifications within a time window."""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 2000


class ActionDeduplicator:
    def __init__(self, clock: Callable[[], float] = time.monotonic, window_ms: int = DEFAULT_WINDOW_MS) -> None:
        """``clock`` returns seconds from any monotonic origin."""
        self._clock = clock
        self.window_ms = window_ms
        self._last_emitted: dict[str, float] = {}

    def should_emit(self, key: str, window_ms: int | None = None) -> bool:
        window = self.window_ms if window_ms is None else window_ms
        now_ms = self._clock() * 1000.0
        last = self._last_emitted.get(key)
        if last is not None and now_ms - last < window:
            logger.debug(f"Suppressed duplicate notification: {key}")
            return False
        self._last_emitted[key] = now_ms
        return True

    def reset(self) -> None:
        self._last_emitted.clear()
