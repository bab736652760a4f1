"""Bounded in-memory TTL cache for retrieved data."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Hashable

from krishisakha.models import RetrievedDatum, utcnow

CacheKey = tuple[str, str, str]


def make_key(data_type: str, location_key: str, crop: str | None = None) -> CacheKey:
    return (data_type, location_key, crop or "general")


@dataclass(frozen=True)
class _Entry:
    datum: RetrievedDatum
    expires_at: datetime


class RetrievalCache:
    """Process-wide cache shared by the retrieval agents.

    Expiry is checked on read, so an expired entry is never returned. Every hit
    is handed out with ``freshness="cached"``. When full, the least recently
    written entry is evicted.
    """

    def __init__(self, max_entries: int = 512, clock: Callable[[], datetime] = utcnow) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, _Entry] = OrderedDict()

    def get(self, key: Hashable) -> RetrievedDatum | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        datum = entry.datum
        return replace(datum, freshness="cached", cache_time=datum.cache_time or datum.timestamp)

    def put(self, key: Hashable, datum: RetrievedDatum, ttl: timedelta) -> None:
        self._entries.pop(key, None)
        self._entries[key] = _Entry(datum=datum, expires_at=self._clock() + ttl)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
