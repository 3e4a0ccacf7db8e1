"""Response decoding and error classification.

This module bridges raw :class:`httpx.Response` objects and typed results:

* :func:`get_adapter` -- the :class:`pydantic.TypeAdapter` used to decode a
  JSON body into a caller-supplied result type and to re-encode the result
  for the cache.
* :func:`default_error_handler` and :func:`status_error_handler` -- ready-made
  error-classification hooks for :class:`~reqcache.client.request.Request`.

An error handler is any callable ``(response, url) -> Exception | None``.
It runs after the transport round trip and before the body is consumed;
returning an exception marks the call as failed.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Optional

import httpx
from pydantic import TypeAdapter

from reqcache.exceptions import AuthError, NotFoundError, ServerError

ErrorHandler = Callable[[httpx.Response, str], Optional[Exception]]


@functools.lru_cache(maxsize=256)
def _cached_adapter(result: Any) -> TypeAdapter[Any]:
    return TypeAdapter(result)


def get_adapter(result: Any = None) -> TypeAdapter[Any]:
    """Return a :class:`~pydantic.TypeAdapter` for *result*.

    Args:
        result: A type understood by pydantic (a ``BaseModel`` subclass,
            ``list[Model]``, ``dict[str, int]``, a dataclass, ...) or ``None``
            for plain JSON values.
    """
    if result is None:
        result = Any
    try:
        return _cached_adapter(result)
    except TypeError:
        # unhashable annotation
        return TypeAdapter(result)


def default_error_handler(response: httpx.Response, url: str) -> Optional[Exception]:
    """Accept every response.  Non-2xx status codes are not errors."""
    return None


def status_error_handler(response: httpx.Response, url: str) -> Optional[Exception]:
    """Map HTTP error status codes to reqcache exceptions.

    * 401 / 403 -> :class:`~reqcache.exceptions.AuthError`
    * 404 -> :class:`~reqcache.exceptions.NotFoundError`
    * any other status >= 400 -> :class:`~reqcache.exceptions.ServerError`

    The message includes a ``message``, ``error`` or ``detail`` field from a
    JSON error body when one is present, else the first 200 characters of
    the body text.  Reading the body here is safe: httpx keeps the content,
    so the executor's own read afterwards does not hit the network again.
    """
    status = response.status_code
    if status < 400:
        return None

    try:
        response.read()
        detail = response.json()
    except httpx.HTTPError:
        # body unavailable, report the status alone
        detail = None
    except ValueError:
        detail = response.text[:200]

    if isinstance(detail, dict):
        msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
    else:
        msg = str(detail) if detail else ""

    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix
    params = {"status_code": status}

    if status in (401, 403):
        return AuthError(full_msg, params)
    if status == 404:
        return NotFoundError(full_msg, params)
    return ServerError(full_msg, params)
