"""Test fixtures for the docs index."""

from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path
from typing import Callable

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


class FakeResponse:
    """Decodes like ``requests.Response``: the charset comes from the headers."""

    def __init__(
        self,
        text: str = "",
        status_code: int = 200,
        content_type: str = "text/plain",
        content: bytes | None = None,
    ) -> None:
        self.content = text.encode("utf-8") if content is None else content
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"
        self.headers = CaseInsensitiveDict({"content-type": content_type})
        self.encoding = get_encoding_from_headers(self.headers)

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")


class FakeSession:
    """Stands in for ``requests.Session``; unknown URLs raise a connection error."""

    def __init__(self, responses: dict[str, FakeResponse] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.closed = False

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append((url, dict(headers or {})))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if url not in self.responses:
            raise requests.ConnectionError(f"cannot reach {url}")
        return self.responses[url]

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    monkeypatch.delenv("DOCIDX_CONFIG", raising=False)

    from docs_index.core import config

    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture
def settings():
    from docs_index.core.config import Settings

    return Settings(watch_enabled=False)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def failures() -> list:
    return []


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    root.mkdir()
    (root / "a.md").write_text("Hello world", encoding="utf-8")
    (root / "b.md").write_text("Goodbye", encoding="utf-8")
    return root


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll ``predicate`` until it holds; returns its final value."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()
