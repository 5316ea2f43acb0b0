"""Registry of configured local and online sources."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from docs_index.core.errors import NotFoundError
from docs_index.models.entities import LocalSource, OnlineSource


class SourceRegistry:
    """Local sources keyed by root, online sources keyed by URL.

    Both keep registration order.
    """

    def __init__(self) -> None:
        self._local: dict[Path, LocalSource] = {}
        self._online: dict[str, OnlineSource] = {}

    def add_local(self, source: LocalSource) -> LocalSource | None:
        previous = self._local.pop(source.root, None)
        self._local[source.root] = source
        return previous

    def add_online(self, source: OnlineSource) -> OnlineSource | None:
        """Register ``source``, replacing any earlier one for the same URL."""
        previous = self._online.get(source.url)
        self._online[source.url] = source
        return previous

    def get_online(self, url: str) -> OnlineSource:
        try:
            return self._online[url]
        except KeyError:
            raise NotFoundError(f"Online source not found: {url}") from None

    def remove_online(self, url: str) -> OnlineSource:
        source = self.get_online(url)
        del self._online[url]
        return source

    def is_current(self, source: OnlineSource) -> bool:
        return self._online.get(source.url) is source

    def local_sources(self) -> list[LocalSource]:
        return [replace(source) for source in self._local.values()]

    def online_sources(self) -> list[OnlineSource]:
        """Snapshot copies in registration order."""
        return [replace(source) for source in self._online.values()]

    def iter_online(self) -> list[OnlineSource]:
        return list(self._online.values())

    def clear(self) -> None:
        self._local.clear()
        self._online.clear()


__all__ = ["SourceRegistry"]
