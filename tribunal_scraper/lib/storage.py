"""Result cache used by the batch runner to skip already-extracted queries.

Entries are keyed by ``(bench, date, list_type)``. Expiry is checked on
every read, and the cache never holds more than ``max_entries`` items.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

from loguru import logger

CacheKey = Tuple[str, str, str]


class BaseResultCache:
    """Abstract cache interface used by the batch runner."""

    def get(self, key: CacheKey) -> Optional[Any]:  # pragma: no cover - trivial
        raise NotImplementedError()

    def put(self, key: CacheKey, value: Any) -> None:  # pragma: no cover - trivial
        raise NotImplementedError()


class TTLResultCache(BaseResultCache):
    """In-memory LRU cache whose entries expire `ttl_seconds` after insertion."""

    def __init__(
        self,
        ttl_seconds: float = 1800.0,
        max_entries: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, Tuple[float, Any]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None

    def get(self, key: CacheKey) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if self._clock() - stored_at >= self.ttl_seconds:
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def put(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")

    def clear(self) -> None:
        self._entries.clear()
