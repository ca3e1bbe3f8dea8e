"""
In-memory cache with per-entry expiry.

Entries carry an absolute expiry instant taken from a monotonic clock. Expiry is
evaluated when an entry is read, so a stale entry is never returned even if the
background sweep has not run yet. The sweep only exists to bound memory held by
entries that are never read again.

Usage:
    with MemoryCache() as cache:
        cache.set("golang.org/x/mod@latest", info, ttl=300)
        value, found = cache.get("golang.org/x/mod@latest")

Thread Safety:
    All access goes through a single lock. Entries are immutable and replaced
    as a whole, so a reader always sees the value and the expiry of the same
    write.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from modinspect.constants import SWEEP_INTERVAL

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading after which it is stale."""

    value: V
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class MemoryCache(Generic[V]):
    """Key/value store with per-entry TTL and an optional periodic sweep."""

    def __init__(
        self,
        sweep_interval: float = SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            sweep_interval: Seconds between two background sweeps.
            clock: Monotonic clock, replaceable in tests.
        """
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.sweep_interval = sweep_interval

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def get(self, key: str) -> Tuple[Optional[V], bool]:
        """
        Look up a key.

        Returns:
            ``(value, True)`` for a live entry, ``(None, False)`` when the key
            is unknown or its entry has expired.
        """
        with self._lock:
            entry = self._entries.get(key)

        if entry is None or entry.expired(self._clock()):
            return None, False
        return entry.value, True

    def set(self, key: str, value: V, ttl: float) -> None:
        """
        Store a value, replacing any previous entry and its expiry.

        A ``ttl`` of zero or less stores an entry that is already expired.
        """
        if ttl <= 0:
            # Strictly in the past so that a read in the same clock tick misses
            expires_at = self._clock() - 1.0
        else:
            expires_at = self._clock() + ttl

        entry = CacheEntry(value=value, expires_at=expires_at)
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def sweep(self) -> int:
        """Drop expired entries. Returns the number of entries removed."""
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.debug(f"Swept {len(stale)} expired cache entries")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key)[1]

    # Lifecycle

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> "MemoryCache[V]":
        """Start the background sweep. Calling it twice is a no-op."""
        if self.running:
            return self

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="modinspect-cache-sweep", daemon=True
        )
        self._sweeper.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background sweep and wait for the thread to exit."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            self.sweep()

    def __enter__(self) -> "MemoryCache[V]":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
