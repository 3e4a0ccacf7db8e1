"""Numeric process exit codes used by the ``reqcache`` console script.

Each constant maps to a failure stage of a request and is referenced by the
corresponding :class:`~reqcache.exceptions.ReqcacheError` subclass.  Shell
wrappers can inspect the exit code to tell a refused connection from a
malformed response without parsing stderr.

Example::

    $ reqcache --base-url http://localhost:9 get health
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- nothing listening on the port
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or a request that could not be constructed."""

EXIT_AUTH_FAILURE = 3
"""The remote API rejected the credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The error handler classified the response as a failure."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DECODE_ERROR = 7
"""The response body was not valid JSON for the requested result type."""
