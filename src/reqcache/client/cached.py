"""Memoized GET/POST on top of :class:`~reqcache.client.request.Request`.

:class:`CachedRequest` adds cache-aside entry points: the cache key of the
call is computed, a stored payload is decoded straight into the result when
present, and otherwise the real request is made and its result stored with
the caller's TTL.

Cache trouble never reaches the caller.  A payload that no longer decodes
into the requested type counts as a miss, and a result that cannot be
re-encoded is returned without being cached.  Only errors of the underlying
request propagate, and they leave the store untouched.

There is no single-flight: concurrent misses on one key each make the
network call and the last write wins.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from pydantic import ValidationError

from reqcache.cache.store import TTL, CacheStore
from reqcache.client.request import Request
from reqcache.client.response import ErrorHandler, get_adapter
from reqcache.exceptions import RequestBuildError
from reqcache.models import CacheConfig, HTTPMethod, RequestConfig, RequestDescriptor
from reqcache.output import debug, warning

_MISS = object()


class CachedRequest(Request):
    """A :class:`Request` with ``get_with_cache`` / ``post_with_cache``.

    Args:
        base_url: Prefix joined with every request path.
        headers: Headers sent with every request.
        http_client: Transport to use (see :class:`Request`).
        error_handler: Error classification hook (see :class:`Request`).
        config: Settings for a client created here.
        cache: Store holding memoized results.  Pass the same store to
            several executors to share entries between them; when omitted
            a private store is created and closed by :meth:`close`.
        cache_config: Settings for a private store; ignored when *cache*
            is given.

    Example::

        store = CacheStore()
        api = CachedRequest.init_json_client("https://api.example.com", cache=store)
        user = api.get_with_cache("users/1", result=User, ttl=60)
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Mapping[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
        error_handler: Optional[ErrorHandler] = None,
        config: Optional[RequestConfig] = None,
        cache: Optional[CacheStore] = None,
        cache_config: Optional[CacheConfig] = None,
    ) -> None:
        super().__init__(
            base_url,
            headers=headers,
            http_client=http_client,
            error_handler=error_handler,
            config=config,
        )
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else CacheStore(cache_config)

    def close(self) -> None:
        """Close the client and, if created here, the cache store."""
        super().close()
        if self._owns_cache:
            self.cache.close()

    # ------------------------------------------------------------------ #
    # Keys
    # ------------------------------------------------------------------ #

    def describe(
        self,
        method: HTTPMethod,
        path: str = "",
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> RequestDescriptor:
        """Return the :class:`~reqcache.models.RequestDescriptor` of a call."""
        return RequestDescriptor(
            base_url=self.base_url,
            path=path,
            method=method,
            query=dict(query) if query is not None else None,
            body=body,
        )

    def generate_key(
        self,
        path: str = "",
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        method: HTTPMethod = HTTPMethod.GET,
    ) -> str:
        """Return the cache key for *path*, *query* and *body*.

        *method* is recorded on the descriptor but is not part of the key.

        Raises:
            RequestBuildError: If *body* cannot be serialised.
        """
        descriptor = self.describe(method, path, query, body)
        try:
            return descriptor.cache_key()
        except ValueError as exc:
            raise RequestBuildError(
                f"cannot encode request body: {exc}",
                {"method": method.value, "url": descriptor.url},
            ) from exc

    def invalidate(
        self,
        path: str = "",
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> None:
        """Drop the cached result for a call, if any."""
        self.cache.delete(self.generate_key(path, query, body))

    # ------------------------------------------------------------------ #
    # Cached request methods
    # ------------------------------------------------------------------ #

    def get_with_cache(
        self,
        path: str = "",
        query: Optional[Mapping[str, Any]] = None,
        result: Any = None,
        ttl: TTL = None,
    ) -> Any:
        """GET with memoization.

        Args:
            path: Path appended to :attr:`base_url`.
            query: Query parameters.
            result: Type to decode the body into.
            ttl: Lifetime of a stored result, in seconds or as a
                :class:`~datetime.timedelta`.  ``None`` uses the store's
                default; a negative value never expires.

        Returns:
            The decoded result, from the cache when possible.

        Raises:
            ReqcacheError: Only errors of the underlying :meth:`get`.
        """
        key = self.generate_key(path, query)
        value = self._load(key, result)
        if value is not _MISS:
            return value

        value = self.get(path, query, result)
        self._save(key, value, result, ttl)
        return value

    def post_with_cache(
        self,
        path: str = "",
        body: Any = None,
        result: Any = None,
        ttl: TTL = None,
    ) -> Any:
        """POST with memoization, keyed on the path and the JSON body.

        See :meth:`get_with_cache` for the arguments and error behaviour.
        """
        key = self.generate_key(path, body=body, method=HTTPMethod.POST)
        value = self._load(key, result)
        if value is not _MISS:
            return value

        value = self.post(path, body, result)
        self._save(key, value, result, ttl)
        return value

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _load(self, key: str, result: Any) -> Any:
        """Decode the entry under *key*, or return ``_MISS``."""
        payload = self.cache.get(key)
        if payload is None:
            debug(f"Cache miss: {key}")
            return _MISS
        try:
            value = get_adapter(result).validate_json(payload)
        except ValidationError as exc:
            debug(f"Cache entry {key} does not decode, refetching: {exc.error_count()} errors")
            return _MISS
        debug(f"Cache hit: {key}")
        return value

    def _save(self, key: str, value: Any, result: Any, ttl: TTL) -> None:
        """Store *value* under *key*; encoding failures are logged, not raised.

        Models are written with their field aliases so the payload decodes
        back through the same adapter.  An empty body is stored as ``null``.
        """
        if value is None:
            self.cache.set(key, b"null", ttl)
            return
        try:
            payload = get_adapter(result).dump_json(value, by_alias=True)
        except ValueError as exc:
            warning(f"client cache cannot encode result for {key}: {exc}")
            return
        self.cache.set(key, payload, ttl)
