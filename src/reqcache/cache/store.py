"""Thread-safe in-memory TTL store for serialised responses.

:class:`CacheStore` maps cache keys to JSON payloads, each with its own
time-to-live.  Expiry bookkeeping is delegated to
:class:`cachetools.TLRUCache`; expired entries are ignored on lookup and
removed either on access or by a background janitor thread that sweeps the
store every ``sweep_interval_seconds``.

``cachetools`` caches are not thread-safe and drop expired items while
reading, so every operation, lookups included, runs under one re-entrant
lock owned by the store.

Stores are constructed explicitly and injected into
:class:`~reqcache.client.cached.CachedRequest`.  Two clients share cached
entries only when they are given the same store instance.
"""

from __future__ import annotations

import math
import threading
import time
import weakref
from datetime import timedelta
from typing import Any, Callable, NamedTuple, Optional, Union

from cachetools import TLRUCache

from reqcache.models import CacheConfig
from reqcache.output import debug

NO_EXPIRATION = -1
"""TTL value for entries that never expire."""

TTL = Union[int, float, timedelta, None]


class CacheEntry(NamedTuple):
    """A stored payload and the TTL it was stored with, in seconds."""

    payload: bytes
    ttl: float


def _time_to_use(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


def normalize_ttl(ttl: TTL, default: float) -> float:
    """Convert a caller-supplied TTL to seconds.

    ``None`` and zero select *default*; negative values mean "never expire"
    and map to ``math.inf``.
    """
    if isinstance(ttl, timedelta):
        ttl = ttl.total_seconds()
    if ttl is None or ttl == 0:
        return float(default)
    if ttl < 0:
        return math.inf
    return float(ttl)


class _Janitor(threading.Thread):
    """Daemon thread that periodically sweeps expired entries.

    Holds only a weak reference to its store so an unreferenced store can
    be garbage collected; the thread exits once the store is gone or
    :meth:`stop` is called.
    """

    def __init__(self, store: CacheStore, interval: float) -> None:
        super().__init__(name="reqcache-janitor", daemon=True)
        self._store_ref = weakref.ref(store)
        self._interval = interval
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            store = self._store_ref()
            if store is None:
                return
            removed = store.expire()
            if removed:
                debug(f"Cache sweep removed {removed} expired entries")
            del store

    def stop(self) -> None:
        self._stopped.set()


class CacheStore:
    """In-memory key/value store with per-entry expiry.

    Args:
        config: Store settings.  Defaults to :class:`~reqcache.models.CacheConfig`.
        timer: Clock used for expiry, in seconds.  Tests inject a fake
            clock here instead of sleeping.

    Example::

        store = CacheStore(CacheConfig(default_ttl_seconds=60))
        store.set("key", b'{"id": 1}', ttl=30)
        store.get("key")  # b'{"id": 1}'
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CacheConfig()
        maxsize = self._config.max_entries or math.inf
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._janitor: Optional[_Janitor] = None
        if self._config.sweep_interval_seconds > 0:
            self._janitor = _Janitor(self, self._config.sweep_interval_seconds)
            self._janitor.start()
            weakref.finalize(self, self._janitor.stop)

    @property
    def default_ttl(self) -> float:
        """TTL in seconds applied when :meth:`set` is called without one."""
        return self._config.default_ttl_seconds

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[bytes]:
        """Return the payload stored under *key*, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.payload

    def set(self, key: str, payload: bytes, ttl: TTL = None) -> None:
        """Store *payload* under *key*, replacing any existing entry.

        Args:
            key: Cache key.
            payload: Serialised value.
            ttl: Seconds or :class:`~datetime.timedelta`.  ``None`` or ``0``
                uses :attr:`default_ttl`; a negative value never expires.
        """
        entry = CacheEntry(payload, normalize_ttl(ttl, self.default_ttl))
        with self._lock:
            self._cache[key] = entry

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._cache.clear()

    def expire(self) -> int:
        """Evict every expired entry and return how many this sweep removed.

        Entries already dropped by an earlier lookup are not counted.
        """
        with self._lock:
            return len(self._cache.expire())

    def stats(self) -> dict[str, Any]:
        """Return store statistics.

        Returns:
            A ``dict`` with ``size`` (unexpired entries), ``hits``,
            ``misses``, ``default_ttl_seconds``,
            ``sweep_interval_seconds`` and ``max_entries``.
        """
        with self._lock:
            self._cache.expire()
            return {
                "size": len(self._cache),
                "hits": self._hits,
                "misses": self._misses,
                "default_ttl_seconds": self._config.default_ttl_seconds,
                "sweep_interval_seconds": self._config.sweep_interval_seconds,
                "max_entries": self._config.max_entries,
            }

    def close(self) -> None:
        """Stop the janitor thread.  The store stays usable afterwards."""
        if self._janitor is not None:
            self._janitor.stop()
            self._janitor = None

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache
