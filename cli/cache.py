"""Client-side query cache with per-tag expiry and explicit invalidation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

READINGS_TAG = "readings"
LATEST_TAG = "latest"
STATS_TAG = "stats"

DEFAULT_TTLS: Mapping[str, float] = {
    READINGS_TAG: 30.0,
    LATEST_TAG: 30.0,
    STATS_TAG: 60.0,
}

CacheKey = Tuple[str, Tuple[Tuple[str, str], ...]]


@dataclass
class _Entry:
    value: Any
    expires_at: float


def _key(tag: str, params: Optional[Mapping[str, Any]]) -> CacheKey:
    items = sorted((name, str(value)) for name, value in (params or {}).items() if value is not None)
    return tag, tuple(items)


class QueryCache:
    """Responses keyed by tag and query parameters.

    Each tag has its own time-to-live; tags without one are never cached.
    ``invalidate`` drops every entry under the given tags regardless of age.
    """

    def __init__(
        self,
        ttls: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls = dict(DEFAULT_TTLS if ttls is None else ttls)
        self._clock = clock
        self._entries: Dict[CacheKey, _Entry] = {}
        self._lock = Lock()

    def get(self, tag: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Any]:
        key = _key(tag, params)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def put(self, tag: str, value: Any, params: Optional[Mapping[str, Any]] = None) -> None:
        ttl = self._ttls.get(tag)
        if not ttl or ttl <= 0:
            return
        with self._lock:
            self._entries[_key(tag, params)] = _Entry(value=value, expires_at=self._clock() + ttl)

    def invalidate(self, *tags: str) -> None:
        targets = set(tags)
        with self._lock:
            for key in [key for key in self._entries if key[0] in targets]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
