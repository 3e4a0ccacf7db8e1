"""reqcache -- typed JSON requests with an in-memory memoization cache.

The package wraps :mod:`httpx` with a small request executor that decodes
JSON responses into caller-supplied types and classifies failures through a
pluggable hook, plus a cache-aside layer that memoizes successful GET/POST
results in a thread-safe TTL store.

Typical use::

    from reqcache import CachedRequest, CacheStore

    store = CacheStore()
    with CachedRequest.init_json_client("https://api.example.com", cache=store) as api:
        user = api.get_with_cache("users/1", result=User, ttl=60)

Modules:
    client: Request executor and memoized request layer.
    cache: Cache key derivation and the TTL store.
    models: Pydantic configuration models and the request descriptor.
    config: Environment and file based configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr diagnostics with Rich support.
    app: The ``reqcache`` developer CLI.
"""

__version__ = "0.1.0"

from reqcache.cache import NO_EXPIRATION, CacheStore  # noqa: E402
from reqcache.client import CachedRequest, Request  # noqa: E402

__all__ = ["CacheStore", "CachedRequest", "NO_EXPIRATION", "Request", "__version__"]
