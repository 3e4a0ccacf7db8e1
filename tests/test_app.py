"""Tests for the reqcache CLI."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from reqcache import __version__
from reqcache import app as app_module
from reqcache.app import app, main
from reqcache.cache import CacheStore
from reqcache.client import CachedRequest
from reqcache.exceptions import DecodeError
from reqcache.models import ClientConfig

from conftest import BASE_URL, CountingHandler, json_handler

runner = CliRunner()


@pytest.fixture
def serve(monkeypatch: pytest.MonkeyPatch, isolated_config: Path, store: CacheStore):
    """Route the CLI's client through a mock transport.

    Returns a function that installs a handler and returns it.
    """

    def install(handler: CountingHandler) -> CountingHandler:
        def fake_build_client(config: ClientConfig, cache=None) -> CachedRequest:
            return CachedRequest(
                config.base_url,
                headers=config.headers,
                http_client=httpx.Client(transport=httpx.MockTransport(handler)),
                cache=store,
            )

        monkeypatch.setattr(app_module, "build_client", fake_build_client)
        return handler

    return install


def _invoke(*args: str):
    return runner.invoke(app, ["--no-color", "--base-url", BASE_URL, *args])


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"reqcache {__version__}" in result.stdout

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    def test_bad_env_value_exits_with_config_error(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REQCACHE_TIMEOUT", "later")
        result = _invoke("get", "users")
        assert result.exit_code == 1
        assert "REQCACHE_TIMEOUT" in result.output

    def test_missing_base_url(self, serve) -> None:
        handler = serve(json_handler({}))
        result = runner.invoke(app, ["--no-color", "get", "users"])
        assert result.exit_code == 2
        assert "No base URL" in result.output
        assert handler.calls == 0

    def test_base_url_from_env(self, serve, monkeypatch: pytest.MonkeyPatch) -> None:
        handler = serve(json_handler({"ok": True}))
        monkeypatch.setenv("REQCACHE_BASE_URL", "https://env.example.com")
        result = runner.invoke(app, ["--no-color", "get", "ping"])
        assert result.exit_code == 0
        assert str(handler.requests[0].url) == "https://env.example.com/ping"


# ---------------------------------------------------------------------------
# get
# ---------------------------------------------------------------------------


class TestGetCommand:
    def test_prints_json(self, serve) -> None:
        serve(json_handler({"id": 1, "name": "ada"}))
        result = _invoke("get", "users/1")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": 1, "name": "ada"}

    def test_repeated_query_parameters(self, serve) -> None:
        handler = serve(json_handler([]))
        result = _invoke("get", "users", "-q", "tag=b", "-q", "page=2", "-q", "tag=a")
        assert result.exit_code == 0
        assert str(handler.requests[0].url) == f"{BASE_URL}/users?page=2&tag=b&tag=a"

    def test_repeat_is_served_from_cache(self, serve) -> None:
        handler = serve(json_handler({"id": 1}))
        result = runner.invoke(
            app, ["--no-color", "-v", "--base-url", BASE_URL, "get", "users/1", "--repeat", "3"]
        )
        assert result.exit_code == 0
        assert handler.calls == 1
        assert result.output.count("Cache hit") == 2

    def test_empty_body_prints_nothing(self, serve) -> None:
        serve(CountingHandler(lambda request: httpx.Response(204)))
        result = _invoke("get", "ping")
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_invalid_query_parameter(self, serve) -> None:
        handler = serve(json_handler({}))
        result = _invoke("get", "users", "-q", "page")
        assert result.exit_code == 2
        assert "expected key=value" in result.output
        assert handler.calls == 0

    @pytest.mark.parametrize(
        "status,exit_code",
        [(401, 3), (403, 3), (404, 4), (500, 5), (422, 5)],
    )
    def test_http_errors_map_to_exit_codes(self, serve, status: int, exit_code: int) -> None:
        serve(json_handler({"message": "nope"}, status_code=status))
        result = _invoke("get", "users/9")
        assert result.exit_code == exit_code
        assert f"HTTP {status}: nope" in result.output

    def test_connection_failure(self, serve) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        serve(CountingHandler(refuse))
        result = _invoke("get", "users")
        assert result.exit_code == 6
        assert "connection refused" in result.output

    def test_malformed_body(self, serve) -> None:
        serve(CountingHandler(lambda request: httpx.Response(200, content=b"<html>")))
        result = _invoke("get", "users")
        assert result.exit_code == 7


# ---------------------------------------------------------------------------
# post
# ---------------------------------------------------------------------------


class TestPostCommand:
    def test_sends_json_body(self, serve) -> None:
        handler = serve(CountingHandler(lambda request: httpx.Response(200, content=request.content)))
        result = _invoke("post", "search", "--body", '{"q": "x"}')
        assert result.exit_code == 0
        assert json.loads(handler.requests[0].content) == {"q": "x"}
        assert json.loads(result.stdout) == {"q": "x"}

    def test_non_json_body_is_sent_as_string(self, serve) -> None:
        handler = serve(json_handler({}))
        result = _invoke("post", "echo", "--body", "hello")
        assert result.exit_code == 0
        assert handler.requests[0].content == b'"hello"'

    def test_repeat_is_served_from_cache(self, serve) -> None:
        handler = serve(json_handler({"ok": True}))
        result = _invoke("post", "search", "--body", '{"q": "x"}', "--repeat", "2")
        assert result.exit_code == 0
        assert handler.calls == 1


# ---------------------------------------------------------------------------
# key
# ---------------------------------------------------------------------------


class TestKeyCommand:
    def test_key_without_query(self, isolated_config: Path) -> None:
        result = _invoke("key", "users")
        assert result.exit_code == 0
        assert result.stdout.strip() == "ugItDn7DOT_X-ChiT4oKlFY45l8="

    def test_key_with_query(self, isolated_config: Path) -> None:
        result = _invoke("key", "users", "-q", "b=x", "-q", "a=1", "-q", "b=y")
        assert result.stdout.strip() == "31EHL4KPsBg3ZekqokZu-dumEK8="

    def test_key_with_body(self, isolated_config: Path) -> None:
        result = _invoke("key", "search", "--body", '{"q": "x", "n": 1}')
        assert result.stdout.strip() == "lZpZdgklrdyz6SEvk_OteDFH5R8="

    def test_key_matches_what_get_stores(self, serve, store: CacheStore) -> None:
        serve(json_handler({"id": 1}))
        _invoke("get", "users", "-q", "a=1")
        key = _invoke("key", "users", "-q", "a=1").stdout.strip()
        assert key in store


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(app_module, "_setup_signal_handlers", lambda: None)

    def test_reqcache_error_exit_code(self, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        def boom() -> None:
            raise DecodeError("bad body")

        monkeypatch.setattr(app_module, "app", boom)
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 7
        assert "bad body" in capsys.readouterr().err

    def test_unexpected_error(self, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        def boom() -> None:
            raise RuntimeError("kaboom")

        monkeypatch.setattr(app_module, "app", boom)
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "Unexpected error" in capsys.readouterr().err

    def test_keyboard_interrupt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def interrupted() -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr(app_module, "app", interrupted)
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 130
