"""In-memory keyed store of document records."""

from __future__ import annotations

from typing import Iterator

from docs_index.core.metrics import DOCUMENT_COUNT
from docs_index.models.entities import DocumentRecord


class DocumentCache:
    """Holds exactly one record per key.

    Every method completes without suspending, so a reader on the event loop
    never observes a partially written record.
    """

    def __init__(self) -> None:
        self._records: dict[str, DocumentRecord] = {}

    def put(self, key: str, record: DocumentRecord) -> None:
        self._records[key] = record
        DOCUMENT_COUNT.set(len(self._records))

    def get(self, key: str) -> DocumentRecord | None:
        return self._records.get(key)

    def delete(self, key: str) -> bool:
        removed = self._records.pop(key, None) is not None
        DOCUMENT_COUNT.set(len(self._records))
        return removed

    def list(self) -> list[DocumentRecord]:
        return list(self._records.values())

    def clear(self) -> None:
        self._records.clear()
        DOCUMENT_COUNT.set(0)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DocumentRecord]:
        return iter(self.list())


__all__ = ["DocumentCache"]
