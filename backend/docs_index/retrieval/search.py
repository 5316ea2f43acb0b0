"""Keyword scoring over cached documents."""

from __future__ import annotations

from typing import Iterable

from docs_index.models.entities import DocumentRecord, SearchResult
from docs_index.store.cache import DocumentCache

EXACT_MATCH_SCORE = 10
TERM_SCORE = 1
TITLE_BOOST = 5
ONLINE_BOOST = 2


def composite_text(record: DocumentRecord) -> str:
    """Lowercased text a record is matched against."""
    metadata = " ".join(str(value) for value in record.metadata.values())
    return " ".join([record.name, record.description or "", record.content, metadata]).lower()


def query_terms(query: str) -> list[str]:
    """Distinct lowercased whitespace-separated terms, in query order."""
    return list(dict.fromkeys(query.lower().split()))


def score_record(record: DocumentRecord, query: str) -> tuple[int, list[str]]:
    """Return the score of ``record`` for ``query`` and the match descriptions."""
    query_lower = query.lower()
    searchable = composite_text(record)
    matches: list[str] = []
    score = 0

    if query_lower in searchable:
        matches.append(f'Exact match: "{query}"')
        score += EXACT_MATCH_SCORE

    for term in query_terms(query):
        if term in searchable:
            matches.append(f'Contains: "{term}"')
            score += TERM_SCORE

    if query_lower in record.name.lower() or (
        record.description and query_lower in record.description.lower()
    ):
        score += TITLE_BOOST

    if record.is_online:
        score += ONLINE_BOOST

    return score, matches


class SearchEngine:
    """Ranks cache contents against a keyword query."""

    def __init__(self, cache: DocumentCache, default_limit: int = 10) -> None:
        self.cache = cache
        self.default_limit = default_limit

    def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        top_k = self.default_limit if limit is None else limit
        if top_k <= 0 or not query.strip():
            return []
        return rank(self.cache.list(), query, top_k)


def rank(records: Iterable[DocumentRecord], query: str, limit: int) -> list[SearchResult]:
    results: list[SearchResult] = []
    for record in records:
        if not record.content:
            continue
        score, matches = score_record(record, query)
        if score > 0:
            results.append(SearchResult(record=record, score=score, limit=limit, matches=matches))
    results.sort(key=lambda item: (-item.score, item.record.key))
    return results[:limit]


__all__ = [
    "SearchEngine",
    "composite_text",
    "query_terms",
    "score_record",
    "rank",
]
