"""Shared test fixtures for storefront-client.

Provides isolated config/data directories, a temp-dir credential store, a
fake clock for cache ages, output management and :class:`FakeApi`, a
recording route table served through :class:`httpx.MockTransport`.
These fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from storefront_client.auth.credential_store import CredentialStore
from storefront_client.models import QueryConfig, Settings
from storefront_client.output import OutputFormat, OutputManager, reset_output, set_output


BASE_URL = "http://api.test/api/v1"
API_PREFIX = "/api/v1"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a stale manager would
    write to a closed file.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME / XDG_DATA_HOME at tmp_path and clear STOREFRONT_* vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("STOREFRONT_API_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    """A CredentialStore backed by a disposable directory."""
    credential_store = CredentialStore(tmp_path / "session")
    yield credential_store
    credential_store.close()


@pytest.fixture
def settings() -> Settings:
    """Settings aimed at the fake API, with zero retry backoff."""
    return Settings(base_url=BASE_URL, query=QueryConfig(retry_delay=0))


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------

Route = Callable[[httpx.Request], httpx.Response]


class FakeApi:
    """Route table for :class:`httpx.MockTransport` that records every request.

    Paths are given without the ``/api/v1`` prefix.  Unknown routes answer
    404 with the API's error envelope.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status: int = 200,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if json is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=json)

        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"error": {"message": "Not found"}})
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path == API_PREFIX + path
        ]


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
