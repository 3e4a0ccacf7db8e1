"""Pydantic models shared across reqcache modules.

**Configuration models** -- loaded from JSON, environment variables or CLI
flags by :mod:`reqcache.config`:
    :class:`RequestConfig`, :class:`CacheConfig` and :class:`ClientConfig`.

**Request identity** -- :class:`HTTPMethod` and :class:`RequestDescriptor`,
the method/path/query/body tuple a cache key is derived from.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to the underlying :class:`httpx.Client`."""

    timeout: float = Field(default=15.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")


class CacheConfig(BaseModel):
    """In-memory cache store settings."""

    default_ttl_seconds: float = Field(
        default=300, gt=0, description="TTL used when a call does not pass one"
    )
    sweep_interval_seconds: float = Field(
        default=300,
        ge=0,
        description="Seconds between janitor sweeps; 0 disables the janitor",
    )
    max_entries: Optional[int] = Field(
        default=None, gt=0, description="Entry limit; None means unbounded"
    )


class ClientConfig(BaseModel):
    """Everything needed to build a :class:`~reqcache.client.CachedRequest`.

    Example::

        ClientConfig(
            base_url="https://api.example.com/v1",
            headers={"X-API-Key": "secret"},
            json=True,
            cache=CacheConfig(default_ttl_seconds=60),
        )
    """

    model_config = ConfigDict(populate_by_name=True)

    base_url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    json_headers: bool = Field(
        default=False,
        alias="json",
        description="Send Content-Type and Accept application/json headers",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Request identity ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods with a cached entry point."""

    GET = "GET"
    POST = "POST"


class RequestDescriptor(BaseModel):
    """The identity of one outbound call.

    Used to build the target URL and to derive the cache key; never
    persisted.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    path: str = ""
    method: HTTPMethod = HTTPMethod.GET
    query: Optional[dict[str, Any]] = None
    body: Any = None

    @property
    def url(self) -> str:
        """The base URL joined with the path, without the query string."""
        from reqcache.cache.keys import join_url

        return join_url(self.base_url, self.path)

    def cache_key(self) -> str:
        """Return the cache key for this descriptor."""
        from reqcache.cache.keys import generate_key

        return generate_key(self.url, self.query, self.body)
