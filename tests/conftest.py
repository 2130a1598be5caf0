"""Shared test fixtures for storyworker.

Provides an isolated config environment, a quiet global output manager, a
scriptable fake HTTP server built on :class:`httpx.MockTransport`, and the
cache storage / network client / config trio most component tests need.
These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from storyworker.cache import CacheStorage
from storyworker.client import NetworkClient
from storyworker.models import WorkerConfig
from storyworker.output import OutputManager, reset_output, set_output


APP_ORIGIN = "http://localhost:8080"
API_ORIGIN = "https://story-api.dicoding.dev"


# ---------------------------------------------------------------------------
# Global output state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear STORYWORKER_* variables.

    Returns:
        The tmp_path root directory (also the working directory).
    """
    monkeypatch.setattr("storyworker.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "STORYWORKER_VERSION",
        "STORYWORKER_API_ORIGIN",
        "STORYWORKER_APP_ORIGIN",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Fake network
# ---------------------------------------------------------------------------


class FakeServer:
    """Scriptable request handler for :class:`httpx.MockTransport`.

    Routes map absolute URLs to ``(status, body, headers)``. Unknown URLs
    answer 404. Setting :attr:`offline` makes every request fail with
    :class:`httpx.ConnectError`; :attr:`failing` does the same for
    selected URLs only.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, dict[str, str]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.offline = False
        self.failing: set[str] = set()

    def route(
        self,
        url: str,
        status: int = 200,
        body: bytes | str = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body, headers or {"content-type": "text/plain"})

    def json_route(self, url: str, data: Any, status: int = 200) -> None:
        self.route(url, status, json.dumps(data), {"content-type": "application/json"})

    def urls_called(self) -> list[str]:
        return [url for _, url in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append((request.method, url))
        if self.offline or url in self.failing:
            raise httpx.ConnectError("network unreachable", request=request)
        status, body, headers = self.routes.get(url, (404, b"not found", {}))
        return httpx.Response(status, content=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> WorkerConfig:
    """Config with fixed origins and the default v1 store names."""
    return WorkerConfig(app_origin=APP_ORIGIN, api_origin=API_ORIGIN)


@pytest.fixture
def storage(tmp_path: Path) -> CacheStorage:
    s = CacheStorage(tmp_path / "stores")
    yield s
    s.close()


@pytest.fixture
def network(server: FakeServer, config: WorkerConfig) -> NetworkClient:
    """A network client (not yet entered) that talks to *server*."""
    return NetworkClient(config.app_origin, config.request, transport=server.transport())
