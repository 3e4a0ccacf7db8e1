"""Typer application and entry point for the ``reqcache`` developer CLI.

The CLI issues memoized requests from the command line, mostly to inspect
how an API behaves behind the cache: ``--repeat`` sends the same call
several times through one store, and ``--verbose`` shows which calls were
served from it.  HTTP error statuses are mapped to exit codes with
:func:`~reqcache.client.response.status_error_handler`.

Examples::

    reqcache --base-url https://api.example.com get users -q page=2
    reqcache --base-url https://api.example.com -v get users --repeat 3 --ttl 10
    reqcache --base-url https://api.example.com post search --body '{"q": "x"}'
    reqcache --base-url https://api.example.com key users -q page=2

See Also:
    :mod:`reqcache.config`: Configuration resolved in :func:`main_callback`.
    :mod:`reqcache.output`: Output initialised in :func:`main_callback`.
"""

from __future__ import annotations

import json
import signal
import sys
from typing import Any, Callable, Optional

import typer

from reqcache import __version__
from reqcache.client import CachedRequest, status_error_handler
from reqcache.config import build_client, resolve_config
from reqcache.exceptions import InvalidUsageError, ReqcacheError
from reqcache.exit_codes import EXIT_GENERIC_FAILURE
from reqcache.models import ClientConfig, HTTPMethod, RequestDescriptor
from reqcache.output import (
    OutputFormat,
    OutputManager,
    debug,
    error,
    format_response,
    print_data,
    set_output,
)


app = typer.Typer(
    name="reqcache",
    help="Send JSON requests through an in-memory response cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"reqcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Base URL of the API."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="JSON config file."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Request timeout in seconds."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Plain JSON output, even on a terminal."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show requests and cache hits."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~reqcache.output.OutputManager` and stores
    the resolved :class:`~reqcache.models.ClientConfig` in ``ctx.obj``.
    """
    output = OutputManager(
        format=OutputFormat.JSON if json_output else OutputFormat.AUTO,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)

    try:
        config = resolve_config(
            cli_base_url=base_url, cli_timeout=timeout, config_path=config_path
        )
    except ReqcacheError as exc:
        error(str(exc))
        raise typer.Exit(exc.exit_code)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("get")
def get_command(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Path relative to the base URL."),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-q", help="Query parameter as key=value (repeatable)."
    ),
    ttl: Optional[float] = typer.Option(
        None, "--ttl", help="Cache TTL in seconds; negative never expires."
    ),
    repeat: int = typer.Option(1, "--repeat", "-r", min=1, help="Send the call N times."),
) -> None:
    """Send a memoized GET request and print the JSON response."""
    params = _parse_query(query)
    _run(ctx, repeat, lambda api: api.get_with_cache(path, params, ttl=ttl))


@app.command("post")
def post_command(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Path relative to the base URL."),
    body: Optional[str] = typer.Option(None, "--body", help="JSON request body."),
    ttl: Optional[float] = typer.Option(
        None, "--ttl", help="Cache TTL in seconds; negative never expires."
    ),
    repeat: int = typer.Option(1, "--repeat", "-r", min=1, help="Send the call N times."),
) -> None:
    """Send a memoized POST request and print the JSON response."""
    payload = _parse_body(body)
    _run(ctx, repeat, lambda api: api.post_with_cache(path, payload, ttl=ttl))


@app.command("key")
def key_command(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Path relative to the base URL."),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-q", help="Query parameter as key=value (repeatable)."
    ),
    body: Optional[str] = typer.Option(None, "--body", help="JSON request body."),
) -> None:
    """Print the cache key a request would be stored under."""
    config: ClientConfig = ctx.obj["config"]
    payload = _parse_body(body)
    descriptor = RequestDescriptor(
        base_url=config.base_url,
        path=path,
        method=HTTPMethod.POST if payload is not None else HTTPMethod.GET,
        query=_parse_query(query),
        body=payload,
    )
    try:
        print_data(descriptor.cache_key())
    except ValueError as exc:
        error(f"cannot encode request body: {exc}")
        raise typer.Exit(InvalidUsageError.exit_code)


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _run(ctx: typer.Context, repeat: int, call: Callable[[CachedRequest], Any]) -> None:
    """Run *call* *repeat* times through one client and print the last result."""
    config: ClientConfig = ctx.obj["config"]
    if not config.base_url:
        error("No base URL: pass --base-url or set REQCACHE_BASE_URL")
        raise typer.Exit(InvalidUsageError.exit_code)

    with build_client(config) as api:
        api.error_handler = status_error_handler
        try:
            result = None
            for _ in range(repeat):
                result = call(api)
        except ReqcacheError as exc:
            error(str(exc))
            raise typer.Exit(exc.exit_code)
        debug(f"Cache stats: {api.cache.stats()}")
    format_response(result)


def _parse_query(values: Optional[list[str]]) -> Optional[dict[str, list[str]]]:
    """Turn repeated ``key=value`` flags into a multi-value mapping."""
    if not values:
        return None
    query: dict[str, list[str]] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            error(f"Invalid query parameter {item!r}, expected key=value")
            raise typer.Exit(InvalidUsageError.exit_code)
        query.setdefault(key, []).append(value)
    return query


def _parse_body(body: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``reqcache`` console script.

    :class:`~reqcache.exceptions.ReqcacheError` instances that escape a
    command exit with the error's ``exit_code``; anything else is reported
    and exits with :data:`~reqcache.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except ReqcacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error: {exc!r}")
        sys.exit(EXIT_GENERIC_FAILURE)
