"""Internal dataclasses representing indexed documents and their sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

ContentTypeHint = Literal["markdown", "html", "auto"]

LOCAL_PATTERNS: tuple[str, ...] = (
    "**/*.md",
    "**/*.mdx",
    "**/*.txt",
    "**/*.rst",
    "**/*.adoc",
)


@dataclass(slots=True)
class DocumentRecord:
    key: str
    name: str
    description: str | None
    mime_type: str
    last_modified: datetime
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    is_online: bool = False
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.key,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
            "lastModified": self.last_modified.isoformat(),
            "metadata": self.metadata,
            "isOnline": self.is_online,
            "url": self.url,
        }


@dataclass(slots=True)
class LocalSource:
    name: str
    root: Path
    patterns: tuple[str, ...] = LOCAL_PATTERNS


@dataclass(slots=True)
class OnlineSource:
    name: str
    url: str
    refresh_interval: float = 60
    content_type: ContentTypeHint = "auto"
    last_fetched: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "refreshInterval": self.refresh_interval,
            "contentType": self.content_type,
            "lastFetched": self.last_fetched.isoformat() if self.last_fetched else None,
        }


@dataclass(slots=True)
class SearchResult:
    """A ranked hit returned by the search engine."""

    record: DocumentRecord
    score: int
    limit: int
    matches: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.record.to_dict(),
            "score": self.score,
            "limit": self.limit,
            "matches": list(self.matches),
        }


@dataclass(slots=True)
class Resource:
    uri: str
    name: str
    description: str
    mime_type: str


__all__ = [
    "ContentTypeHint",
    "LOCAL_PATTERNS",
    "DocumentRecord",
    "LocalSource",
    "OnlineSource",
    "SearchResult",
    "Resource",
]
