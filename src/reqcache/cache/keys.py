"""Cache key derivation from a request's identity.

A key is the URL-safe base64 encoding of a SHA-1 digest over the target URL,
a ``?``, the canonically encoded query string and the compact JSON encoding
of the body.  The ``?`` is present even when there is no query, so
``generate_key(url)`` and ``generate_key(url, {})`` agree.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from pydantic import TypeAdapter

_BODY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


def join_url(base_url: str, path: str) -> str:
    """Return *base_url* when *path* is empty, else ``base_url/path``."""
    if not path:
        return base_url
    return f"{base_url}/{path}"


def encode_query(query: Optional[Mapping[str, Any]]) -> str:
    """URL-encode *query* with keys in sorted order.

    A value may be a scalar or a list/tuple of values; list values keep the
    caller's order.  ``None`` and an empty mapping both encode to ``""``.
    """
    if not query:
        return ""
    pairs = []
    for key in sorted(query):
        value = query[key]
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return urlencode(pairs)


def serialize_body(body: Any) -> bytes:
    """Return the compact JSON encoding of *body*, or ``b""`` for ``None``.

    Pydantic models, dataclasses and plain JSON values are all accepted.

    Raises:
        ValueError: If *body* is not JSON-serialisable.
    """
    if body is None:
        return b""
    return _BODY_ADAPTER.dump_json(body, by_alias=True)


def generate_key(
    url: str,
    query: Optional[Mapping[str, Any]] = None,
    body: Any = None,
) -> str:
    """Derive the cache key for a request.

    Args:
        url: The fully-qualified target (base URL joined with the path).
        query: Optional query parameters.
        body: Optional request body.

    Returns:
        A 28-character URL-safe base64 string.
    """
    request_url = "?".join([url, encode_query(query)])
    digest = hashlib.sha1(request_url.encode("utf-8") + serialize_body(body)).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")
