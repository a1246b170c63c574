"""Shared test fixtures for fixturecache.

Provides a recording fake transport, store factories rooted in
``tmp_path``, config isolation, and output-state resets. These fixtures
are discovered by pytest and available to every test module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from fixturecache.cache.store import CacheStore
from fixturecache.output import OutputFormat, OutputManager, reset_output, set_output

FIXED_NOW = 1_700_000_000
"""Unix time returned by the stores' injected clock."""


class RecordingTransport:
    """Transport returning a canned response and recording every request.

    Attributes mirror the response it returns so a test can change them
    between fetches.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"hello, world",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers or {})
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            headers=self.headers,
            content=self.body,
            request=request,
        )


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> int:
    """The fixed Unix time the test stores stamp entries with."""
    return FIXED_NOW


@pytest.fixture
def transport_factory() -> type[RecordingTransport]:
    """The :class:`RecordingTransport` class, for tests needing several transports."""
    return RecordingTransport


@pytest.fixture
def transport() -> RecordingTransport:
    """A transport answering ``200 hello, world``."""
    return RecordingTransport()


@pytest.fixture
def make_store(tmp_path: Path) -> Callable[..., CacheStore]:
    """Factory for stores rooted at ``tmp_path / "cache"`` with a fixed clock."""

    def _make(transport: RecordingTransport, **kwargs) -> CacheStore:
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return CacheStore(tmp_path / "cache", transport=transport, **kwargs)

    return _make


@pytest.fixture
def store(make_store, transport: RecordingTransport) -> CacheStore:
    """A store with ``max_error_version=2`` in front of :func:`transport`."""
    return make_store(transport, max_error_version=2)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at ``tmp_path`` subdirectories, clears all
    FIXTURECACHE_* variables, and changes into ``tmp_path``.
    """
    monkeypatch.setattr("fixturecache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["FIXTURECACHE_ROOT", "FIXTURECACHE_MAX_ERROR_VERSION"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN OutputManager for tests that don't check output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
