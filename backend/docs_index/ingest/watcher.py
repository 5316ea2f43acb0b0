"""Filesystem watcher that emits index and remove jobs."""

from __future__ import annotations

import fnmatch
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Sequence

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from docs_index.ingest.types import JobKind, WatchCallback


@dataclass
class WatchedSource:
    root: Path
    patterns: list[str]
    ignore_dirs: list[str]
    callback: WatchCallback

    def ignores(self, path: Path) -> bool:
        try:
            parts = path.relative_to(self.root).parts
        except ValueError:
            return True
        return any(part in self.ignore_dirs for part in parts[:-1])

    def matches(self, path: Path) -> bool:
        name = path.name.lower()
        return any(fnmatch.fnmatch(name, pattern.lower()) for pattern in self.patterns)


class SourceEventHandler(PatternMatchingEventHandler):
    """Translate filesystem events for one source into jobs."""

    def __init__(self, source: WatchedSource) -> None:
        super().__init__(
            patterns=source.patterns,
            ignore_patterns=[f"*/{name}/*" for name in source.ignore_dirs],
            ignore_directories=True,
            case_sensitive=False,
        )
        self.source = source

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit("index", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._emit("index", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # either side may fall outside the patterns, e.g. a rename to "guide.md.bak"
        if self.source.matches(_as_path(event.src_path)):
            self._emit("remove", event.src_path)
        if self.source.matches(_as_path(event.dest_path)):
            self._emit("index", event.dest_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit("remove", event.src_path)

    def _emit(self, kind: JobKind, raw: str | bytes) -> None:
        path = _as_path(raw)
        if self.source.ignores(path):
            return
        self.source.callback(kind, path)


class Watcher:
    """High-level wrapper around a watchdog observer, one watch per source root."""

    def __init__(self, observer: BaseObserver | None = None) -> None:
        self._observer: BaseObserver = observer or Observer()
        self._lock = threading.Lock()
        self._watches: Dict[Path, ObservedWatch] = {}
        self._started = False

    def add_source(
        self,
        root: Path,
        callback: WatchCallback,
        patterns: Sequence[str],
        ignore_dirs: Sequence[str] = (),
    ) -> None:
        normalized = root.expanduser().resolve()
        watched = WatchedSource(
            root=normalized,
            patterns=list(patterns),
            ignore_dirs=list(ignore_dirs),
            callback=callback,
        )
        handler = SourceEventHandler(watched)
        with self._lock:
            previous = self._watches.pop(normalized, None)
            if previous is not None:
                self._observer.unschedule(previous)
            self._watches[normalized] = self._observer.schedule(
                handler, str(normalized), recursive=True
            )

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._observer.start()
            self._started = True

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._observer.stop()
            self._observer.join(timeout=5)
            self._started = False

    def close(self) -> None:
        self.stop()
        with self._lock:
            self._observer.unschedule_all()
            self._watches.clear()


def _as_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="surrogateescape")
    return Path(raw).resolve()


__all__ = ["Watcher", "WatchedSource", "SourceEventHandler"]
