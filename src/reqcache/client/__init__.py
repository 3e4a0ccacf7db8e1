"""HTTP client module for reqcache.

Classes:
    :class:`Request` -- executes one GET/POST and decodes the JSON body
    into a caller-supplied type, with pluggable error classification.
    :class:`CachedRequest` -- adds ``get_with_cache`` / ``post_with_cache``
    backed by a :class:`~reqcache.cache.CacheStore`.

Both are context managers and accept the same core parameters: a base
URL, default headers, an optional :class:`httpx.Client` and an optional
error handler.

Example::

    from reqcache.client import CachedRequest

    with CachedRequest.init_json_client("https://api.example.com") as api:
        latest = api.get_with_cache("blocks/latest", ttl=30)
"""

from reqcache.client.cached import CachedRequest
from reqcache.client.request import JSON_HEADERS, Request
from reqcache.client.response import (
    ErrorHandler,
    default_error_handler,
    status_error_handler,
)

__all__ = [
    "CachedRequest",
    "ErrorHandler",
    "JSON_HEADERS",
    "Request",
    "default_error_handler",
    "status_error_handler",
]
