"""Loaders turning local files into document records."""

from __future__ import annotations

import asyncio
import fnmatch
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from docs_index.core.logging import get_logger
from docs_index.ingest.frontmatter import describe, split_front_matter
from docs_index.ingest.types import IndexResult
from docs_index.models.entities import DocumentRecord
from docs_index.store.cache import DocumentCache

logger = get_logger(__name__)


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()
    mime_type: str = "text/plain"

    def can_load(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def load(self, path: Path) -> DocumentRecord:
        stat = path.stat()
        text = path.read_text(encoding="utf-8")
        metadata, body = split_front_matter(text)
        return DocumentRecord(
            key=str(path),
            name=path.name,
            description=describe(metadata),
            mime_type=self.mime_type,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            content=body,
            metadata=metadata,
            is_online=False,
        )


class MarkdownLoader(BaseLoader):
    suffixes = (".md", ".mdx")
    mime_type = "text/markdown"


class TextLoader(BaseLoader):
    suffixes = (".txt",)
    mime_type = "text/plain"


class RestructuredTextLoader(BaseLoader):
    suffixes = (".rst",)
    mime_type = "text/x-rst"


class AsciiDocLoader(BaseLoader):
    suffixes = (".adoc",)
    mime_type = "text/asciidoc"


class LoaderRegistry:
    """Registry that selects an appropriate loader for a path.

    Unknown suffixes are read as plain text.
    """

    def __init__(self) -> None:
        self._fallback = TextLoader()
        self._loaders: list[BaseLoader] = [
            MarkdownLoader(),
            self._fallback,
            RestructuredTextLoader(),
            AsciiDocLoader(),
        ]

    def for_path(self, path: Path) -> BaseLoader:
        for loader in self._loaders:
            if loader.can_load(path):
                return loader
        return self._fallback

    def mime_type(self, path: Path) -> str:
        return self.for_path(path).mime_type

    def load(self, path: Path) -> DocumentRecord:
        return self.for_path(path).load(path)


class FileIndexer:
    """Parse local files and write the resulting records to the cache."""

    def __init__(self, cache: DocumentCache, registry: LoaderRegistry | None = None) -> None:
        self.cache = cache
        self.registry = registry or LoaderRegistry()

    async def index(self, path: Path) -> IndexResult:
        """Index one file; failures leave any previous record in place."""
        normalized = path.expanduser().resolve()
        try:
            record = await asyncio.to_thread(self.registry.load, normalized)
        except Exception as exc:
            logger.debug("Failed to index %s: %s", normalized, exc)
            return IndexResult(key=str(normalized), status="error", detail=str(exc))
        self.cache.put(record.key, record)
        logger.debug("Indexed %s", record.key)
        return IndexResult(key=record.key, status="indexed")

    def remove(self, path: Path) -> IndexResult:
        key = str(path.expanduser().resolve())
        if self.cache.delete(key):
            return IndexResult(key=key, status="removed")
        return IndexResult(key=key, status="skipped", detail="not indexed")


def iter_source_files(root: Path, patterns: Sequence[str], ignore_dirs: Iterable[str]) -> Iterator[Path]:
    """Yield files under ``root`` matching ``patterns`` in sorted order."""
    ignored = set(ignore_dirs)
    name_patterns = [_basename_pattern(pattern) for pattern in patterns]
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in ignored)
        for filename in sorted(filenames):
            if any(fnmatch.fnmatch(filename.lower(), pattern) for pattern in name_patterns):
                yield Path(dirpath, filename).resolve()


def _basename_pattern(pattern: str) -> str:
    return pattern.rsplit("/", 1)[-1].lower()


__all__ = [
    "BaseLoader",
    "MarkdownLoader",
    "TextLoader",
    "RestructuredTextLoader",
    "AsciiDocLoader",
    "LoaderRegistry",
    "FileIndexer",
    "iter_source_files",
]
