"""Exceptions raised by boundary operations."""

from __future__ import annotations


class DocsIndexError(Exception):
    """Base class for all docs index errors."""


class NotFoundError(DocsIndexError, LookupError):
    """A document, file or online source is not known."""


class InvalidSourceError(DocsIndexError, ValueError):
    """A source path or URI cannot be used."""


class FrontMatterError(DocsIndexError):
    """The leading frontmatter block could not be parsed."""


class FetchError(DocsIndexError):
    """An online document could not be retrieved."""

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.detail = detail


__all__ = [
    "DocsIndexError",
    "NotFoundError",
    "InvalidSourceError",
    "FrontMatterError",
    "FetchError",
]
