"""In-memory cache of scrape results."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional

import structlog

from .models import ScrapeResult

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    result: ScrapeResult
    stored_at: float


class ResultCache:
    """Results keyed by target URL, proxy and month, fresh for ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    @staticmethod
    def key_for(url: str, proxy: Optional[str] = None, month: Optional[date] = None) -> str:
        month_key = f"-{month:%Y-%m}" if month else ""
        return f"{url}-{proxy or 'no-proxy'}{month_key}"

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[tuple[ScrapeResult, float]]:
        """Return ``(result, age_seconds)`` for a fresh entry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        age = self._clock() - entry.stored_at
        if age >= self._ttl:
            del self._entries[key]
            return None
        return entry.result, age

    def set(self, key: str, result: ScrapeResult) -> None:
        self._entries[key] = CacheEntry(result=result, stored_at=self._clock())

    def cleanup(self) -> int:
        """Drop stale entries; return how many were removed."""
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if now - entry.stored_at >= self._ttl]
        for key in stale:
            del self._entries[key]
        if stale:
            LOGGER.debug("cache.cleanup", removed=len(stale))
        return len(stale)
