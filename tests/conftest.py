"""Shared test fixtures for reqcache.

Provides a fake clock for TTL tests, a counting ``httpx.MockTransport``
handler, a factory for cached clients wired to that transport, and
isolation of configuration and output state.  These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from reqcache.cache import CacheStore
from reqcache.client import CachedRequest
from reqcache.models import CacheConfig
from reqcache.output import OutputManager, reset_output, set_output


BASE_URL = "https://api.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once a test's capture ends.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a verbose, colourless output manager so debug lines are printed."""
    output = OutputManager(no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Clock and transport helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock for :class:`CacheStore` expiry."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingHandler:
    """MockTransport handler that records every request it serves.

    Args:
        responder: Builds the response for a request.  May raise an
            ``httpx`` exception to simulate a transport failure.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self._responder = responder
        self._lock = threading.Lock()
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        return self._responder(request)


def json_handler(data: Any, status_code: int = 200) -> CountingHandler:
    """A handler that always answers with *data* as JSON."""
    return CountingHandler(lambda request: httpx.Response(status_code, json=data))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> CacheStore:
    """A store on the fake clock with the janitor disabled."""
    s = CacheStore(CacheConfig(default_ttl_seconds=300, sweep_interval_seconds=0), timer=clock)
    yield s
    s.close()


@pytest.fixture
def make_api(store: CacheStore) -> Callable[..., CachedRequest]:
    """Factory for :class:`CachedRequest` instances on a mock transport.

    Uses the shared ``store`` fixture unless ``cache=`` is passed.
    """
    created: list[CachedRequest] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> CachedRequest:
        kwargs.setdefault("cache", store)
        api = CachedRequest(
            kwargs.pop("base_url", BASE_URL),
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            **kwargs,
        )
        created.append(api)
        return api

    yield factory
    for api in created:
        api.close()
        api._client.close()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at tmp_path, clears all REQCACHE_* environment
    variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in [
        "REQCACHE_BASE_URL",
        "REQCACHE_TIMEOUT",
        "REQCACHE_CACHE_TTL",
        "REQCACHE_CONFIG",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
