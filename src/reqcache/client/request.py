"""Request executor: one HTTP call in, one typed result out.

This module provides :class:`Request`, a thin layer over
:class:`httpx.Client` that:

- **Builds URLs** from a configured base URL, a relative path and an
  optional query mapping (see :func:`~reqcache.cache.keys.encode_query`).
- **Injects headers** from a caller-mutable ``headers`` dict into every
  outgoing request.
- **Classifies failures** through a pluggable error handler that sees the
  raw response before its body is read.
- **Decodes JSON** bodies into a caller-supplied result type with
  :class:`pydantic.TypeAdapter`.  An empty body yields ``None``.

Every failure is raised as a :class:`~reqcache.exceptions.ReqcacheError`
subclass whose ``params`` carry the method and URL of the call.  Nothing is
retried and nothing is cached here; see
:class:`~reqcache.client.cached.CachedRequest` for the memoized variant.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from pydantic import ValidationError

from reqcache.cache.keys import encode_query, join_url, serialize_body
from reqcache.client.response import ErrorHandler, default_error_handler, get_adapter
from reqcache.exceptions import (
    ConnectionError_,
    DecodeError,
    ReqcacheError,
    RequestBuildError,
    ResponseError,
    ResponseReadError,
)
from reqcache.models import RequestConfig
from reqcache.output import debug

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class Request:
    """Executor for JSON requests against one base URL.

    Args:
        base_url: Prefix joined with every request path.
        headers: Headers sent with every request.  Stored as a plain dict
            on :attr:`headers` and may be changed between calls.
        http_client: Transport to use.  When omitted an
            :class:`httpx.Client` is created from *config* and closed by
            :meth:`close`; a supplied client is left open.
        error_handler: ``(response, url) -> Exception | None`` hook, called
            before the body is read.  Defaults to
            :func:`~reqcache.client.response.default_error_handler`.
        config: Timeout, SSL and redirect settings for a client created
            here.

    Example::

        with Request.init_json_client("https://api.example.com/v1") as r:
            block = r.get("blocks/latest", {"page": 1}, result=Block)
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Mapping[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
        error_handler: Optional[ErrorHandler] = None,
        config: Optional[RequestConfig] = None,
    ) -> None:
        self.base_url = base_url
        self.headers: dict[str, str] = dict(headers or {})
        self.error_handler: ErrorHandler = error_handler or default_error_handler
        self._owns_client = http_client is None
        if http_client is None:
            config = config or RequestConfig()
            http_client = httpx.Client(
                timeout=config.timeout,
                verify=config.verify_ssl,
                follow_redirects=config.follow_redirects,
            )
        self._client = http_client

    @classmethod
    def init_client(cls, base_url: str, **kwargs: Any) -> Request:
        """Create an executor with no default headers."""
        return cls(base_url, **kwargs)

    @classmethod
    def init_json_client(cls, base_url: str, **kwargs: Any) -> Request:
        """Create an executor that sends and accepts ``application/json``."""
        headers = {**JSON_HEADERS, **(kwargs.pop("headers", None) or {})}
        return cls(base_url, headers=headers, **kwargs)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Request:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying client if this executor created it."""
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def set_timeout(self, seconds: float) -> None:
        """Set the timeout of the underlying client, in seconds."""
        self._client.timeout = httpx.Timeout(seconds)

    def get_base(self, path: str) -> str:
        """Return the base URL joined with *path*."""
        return join_url(self.base_url, path)

    def get(
        self,
        path: str = "",
        query: Optional[Mapping[str, Any]] = None,
        result: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a GET request and decode the response.

        Args:
            path: Path appended to :attr:`base_url`.
            query: Query parameters.  Values may be scalars or lists.
            result: Type to decode the body into; ``None`` returns plain
                JSON values.
            timeout: Per-call timeout in seconds, overriding the client's.

        Returns:
            The decoded body, or ``None`` for an empty body.

        Raises:
            ReqcacheError: See :meth:`execute`.
        """
        uri = self.get_base(path)
        query_str = encode_query(query)
        if query_str:
            uri = f"{uri}?{query_str}"
        return self.execute("GET", uri, result=result, timeout=timeout)

    def post(
        self,
        path: str = "",
        body: Any = None,
        result: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a POST request with a JSON body and decode the response.

        Args:
            path: Path appended to :attr:`base_url`.
            body: JSON-serialisable payload (dict, list, pydantic model...).
                ``None`` sends no body.
            result: Type to decode the body into.
            timeout: Per-call timeout in seconds.

        Raises:
            RequestBuildError: If *body* cannot be serialised.
            ReqcacheError: See :meth:`execute`.
        """
        uri = self.get_base(path)
        content: Optional[bytes] = None
        if body is not None:
            try:
                content = serialize_body(body)
            except ValueError as exc:
                raise RequestBuildError(
                    f"cannot encode request body: {exc}", {"method": "POST", "url": uri}
                ) from exc
        return self.execute("POST", uri, content=content, result=result, timeout=timeout)

    def execute(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        result: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send any HTTP request and decode its JSON response.

        The configured :attr:`headers` are attached, the request is sent,
        and :attr:`error_handler` inspects the response before the body is
        read.  A non-2xx status is only an error if the handler says so.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            content: Raw request body.
            result: Type to decode the body into.
            timeout: Per-call timeout in seconds.

        Returns:
            The decoded body, or ``None`` for an empty body.

        Raises:
            RequestBuildError: Malformed URL or method.
            ConnectionError_: DNS, connection or timeout failure.
            ResponseError: The error handler returned or raised a
                non-reqcache exception.  A :class:`ReqcacheError` from the
                handler is raised as-is with the call's params merged in.
            ResponseReadError: The body stream failed.
            DecodeError: The body is not valid JSON for *result*.
        """
        params = {"method": method, "url": url}

        try:
            request = self._client.build_request(
                method,
                url,
                content=content,
                headers=self.headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as exc:
            raise RequestBuildError(f"cannot build request: {exc}", params) from exc
        if request.url.scheme not in ("http", "https"):
            raise RequestBuildError(
                f"unsupported URL scheme {request.url.scheme!r}", params
            )

        debug(f"{method} {url}")
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"request failed: {exc}", params) from exc

        try:
            try:
                err = self.error_handler(response, url)
            except ReqcacheError as exc:
                raise exc.with_params(params)
            except Exception as exc:
                raise ResponseError(
                    f"error handler failed: {str(exc) or type(exc).__name__}", params
                ) from exc
            if err is not None:
                if isinstance(err, ReqcacheError):
                    raise err.with_params(params)
                raise ResponseError(str(err) or type(err).__name__, params) from err
            try:
                body = response.read()
            except httpx.HTTPError as exc:
                raise ResponseReadError(f"cannot read response: {exc}", params) from exc
        finally:
            response.close()

        if not body:
            return None
        try:
            return get_adapter(result).validate_json(body)
        except ValidationError as exc:
            raise DecodeError(f"cannot decode response: {exc}", params) from exc
