"""TTL caches used to throttle upstream load."""

import logging
import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXPLOSION_KEY = "explosion-candidates"
PRE_EXPLOSION_KEY = "pre-explosion-signals"
NEW_LISTINGS_KEY = "new-listings"


class TTLCache(Generic[T]):
    """Keyed store whose entries expire after a fixed number of seconds."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = max(float(ttl), 0.0)
        self._clock = clock
        self._store: Dict[str, Tuple[float, T]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[T]:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            logger.debug(f"Cache entry '{key}' expired")
            return None
        return value

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        lifetime = self._ttl if ttl is None else max(float(ttl), 0.0)
        self._store[key] = (self._clock() + lifetime, value)

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class CandidateCache:
    """
    Short-lived store for ranked results plus a long-lived store for the
    new-listing set.

    Concurrent misses on the same key each run their own scan; there is
    no locking.
    """

    def __init__(
        self,
        short_ttl: float = 120,
        long_ttl: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.short = TTLCache[Any](short_ttl, clock)
        self.long = TTLCache[Any](long_ttl, clock)
        logger.info(f"Candidate cache initialized (short={short_ttl}s, long={long_ttl}s)")

    def clear(self) -> None:
        self.short.clear()
        self.long.clear()
