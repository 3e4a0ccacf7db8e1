"""In-memory response caching for reqcache.

This package provides the two pieces the memoized request layer is built
from:

* :func:`generate_key` -- derives a deterministic cache key from a
  request's URL, query parameters and body.
* :class:`CacheStore` -- a thread-safe, TTL-bounded in-memory store with a
  background janitor that sweeps expired entries.

Both are consumed by :class:`~reqcache.client.cached.CachedRequest`.
Entries live only as long as the process; nothing is written to disk.
"""

from reqcache.cache.keys import encode_query, generate_key, serialize_body
from reqcache.cache.store import NO_EXPIRATION, CacheEntry, CacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "NO_EXPIRATION",
    "encode_query",
    "generate_key",
    "serialize_body",
]
