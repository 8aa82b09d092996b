from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)


class TTLCache:
    """Per-key cache whose entries expire ``ttl_seconds`` after being set.

    Owned by the application (``app.state.stats_cache``) and handed to
    request handlers through a dependency.
    """

    def __init__(
        self, ttl_seconds: float, timer: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._timer = timer
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._timer() - stored_at >= self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._timer(), value)

    def invalidate(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            logger.debug("Cache entry invalidated: %s", key)

    def clear(self) -> None:
        self._entries.clear()


def get_stats_cache(request: Request) -> TTLCache:
    return request.app.state.stats_cache
