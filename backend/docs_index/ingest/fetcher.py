"""Fetch online documentation and normalise it into document records."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

import requests
from bs4 import BeautifulSoup
from markdownify import ATX, markdownify

from docs_index.core.errors import FetchError
from docs_index.core.logging import get_logger
from docs_index.core.metrics import FETCH_COUNT
from docs_index.ingest.frontmatter import describe, split_front_matter
from docs_index.models.entities import ContentTypeHint, DocumentRecord, OnlineSource

logger = get_logger(__name__)

STRIP_SELECTORS = "script, style, nav, header, footer, .sidebar, .menu"
MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    ".content",
    ".documentation",
    ".docs",
    "#content",
)


@dataclass(slots=True)
class FetchOutcome:
    """Result of fetching one online source."""

    url: str
    record: DocumentRecord | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def classify_content(body: str, declared_type: str, hint: ContentTypeHint) -> tuple[str, str]:
    """Return ``(text, detected_type)`` for a response body."""
    declared = declared_type.lower()
    if hint == "markdown" or (hint == "auto" and "markdown" in declared):
        return body, "markdown"
    if "html" in declared or hint == "html":
        return html_to_markdown(body), "html->markdown"
    return body, "text"


def html_to_markdown(html: str) -> str:
    """Extract the main content region of an HTML page as markdown."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(STRIP_SELECTORS):
        # nested matches are already gone with their ancestor
        if not element.decomposed:
            element.decompose()
    selected = None
    for selector in MAIN_CONTENT_SELECTORS:
        selected = soup.select_one(selector)
        if selected is not None:
            break
    if selected is None:
        selected = soup.body or soup
    inner_html = selected.decode_contents()
    return markdownify(inner_html, heading_style=ATX, code_language="").strip()


class OnlineFetcher:
    """Retrieve online sources over HTTP.

    Requests run in a worker thread so the event loop keeps serving other jobs.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        user_agent: str = "docs-index",
        timeout: float = 30.0,
    ) -> None:
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.timeout = timeout

    async def fetch(self, source: OnlineSource) -> FetchOutcome:
        """Fetch ``source``; errors are reported in the outcome, never raised."""
        logger.info("Fetching online documentation %s", source.url)
        try:
            record = await asyncio.to_thread(self.fetch_record, source)
        except Exception as exc:
            FETCH_COUNT.labels(outcome="error").inc()
            logger.debug("Error fetching online documentation %s: %s", source.url, exc)
            return FetchOutcome(url=source.url, error=str(exc))
        FETCH_COUNT.labels(outcome="ok").inc()
        return FetchOutcome(url=source.url, record=record)

    def fetch_record(self, source: OnlineSource) -> DocumentRecord:
        response = self.session.get(
            source.url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        if not 200 <= response.status_code < 300:
            raise FetchError(source.url, f"HTTP {response.status_code}: {response.reason}")
        declared_type = response.headers.get("content-type", "")
        if "charset" not in declared_type.lower():
            # requests assumes ISO-8859-1 for text/* without a charset
            response.encoding = "utf-8"
        text, detected_type = classify_content(response.text, declared_type, source.content_type)
        return build_online_record(source, text, detected_type)

    def close(self) -> None:
        """Close the HTTP session if this fetcher created it."""
        if self._owns_session:
            self.session.close()


def build_online_record(
    source: OnlineSource,
    text: str,
    detected_type: str,
    fetched_at: datetime | None = None,
) -> DocumentRecord:
    fetched_at = fetched_at or datetime.now(tz=timezone.utc)
    metadata, body = split_front_matter(text)
    metadata.update(
        {
            "source": "online",
            "originalUrl": source.url,
            "fetchedAt": fetched_at.isoformat(),
            "contentType": detected_type,
        }
    )
    return DocumentRecord(
        key=source.url,
        name=source.name,
        description=describe(metadata) or f"Online documentation: {source.name}",
        mime_type="text/markdown",
        last_modified=fetched_at,
        content=body,
        metadata=metadata,
        is_online=True,
        url=source.url,
    )


__all__ = [
    "FetchOutcome",
    "OnlineFetcher",
    "classify_content",
    "html_to_markdown",
    "build_online_record",
]
