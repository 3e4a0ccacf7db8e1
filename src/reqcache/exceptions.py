"""Exception hierarchy for reqcache.

All exceptions inherit from :class:`ReqcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`reqcache.exit_codes`
and a ``params`` mapping with the context of the failing call (``method``
and ``url`` for everything raised by the request executor).  The original
cause is always chained with ``raise ... from exc``.

Subclass hierarchy::

    ReqcacheError (exit 1)
    +-- InvalidUsageError    (exit 2)
    +-- RequestBuildError    (exit 2)
    +-- AuthError            (exit 3)
    +-- NotFoundError        (exit 4)
    +-- ResponseError        (exit 5)
    |   +-- ServerError      (exit 5)
    +-- ConnectionError_     (exit 6)
    +-- ResponseReadError    (exit 6)
    +-- DecodeError          (exit 7)
    +-- ConfigError          (exit 1)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from reqcache.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class ReqcacheError(Exception):
    """Base exception for all reqcache errors.

    Args:
        message: Human-readable error description.
        params: Contextual parameters of the failing call.  Rendered after
            the message by :meth:`__str__`.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        params: Optional[Mapping[str, Any]] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.params: dict[str, Any] = dict(params or {})
        if exit_code is not None:
            self.exit_code = exit_code

    def with_params(self, params: Mapping[str, Any]) -> ReqcacheError:
        """Merge *params* into this error without overwriting existing keys."""
        for key, value in params.items():
            self.params.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.params:
            return self.message
        rendered = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.message} ({rendered})"


class InvalidUsageError(ReqcacheError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class RequestBuildError(ReqcacheError):
    """Raised when a request cannot be constructed (malformed URL, method or body)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(ReqcacheError):
    """Raised by :func:`~reqcache.client.response.status_error_handler` on HTTP 401/403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(ReqcacheError):
    """Raised by :func:`~reqcache.client.response.status_error_handler` on HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ResponseError(ReqcacheError):
    """Raised when the error handler rejects a response with a non-reqcache exception."""

    exit_code = EXIT_SERVER_ERROR


class ServerError(ResponseError):
    """Raised by :func:`~reqcache.client.response.status_error_handler` on other 4xx/5xx."""


class ConnectionError_(ReqcacheError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ResponseReadError(ReqcacheError):
    """Raised when the response body stream cannot be read to the end."""

    exit_code = EXIT_CONNECTION_ERROR


class DecodeError(ReqcacheError):
    """Raised when a non-empty body is malformed JSON or does not fit the result type."""

    exit_code = EXIT_DECODE_ERROR


class ConfigError(ReqcacheError):
    """Raised for configuration problems (invalid JSON file, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE
