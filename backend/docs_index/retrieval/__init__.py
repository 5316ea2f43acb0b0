"""Retrieval components."""

from .search import SearchEngine, rank, score_record

__all__ = ["SearchEngine", "rank", "score_record"]
