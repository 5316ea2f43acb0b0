"""Jobs and results exchanged with the update loop."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal

JobKind = Literal["index", "remove", "fetch"]


@dataclass(slots=True)
class Job:
    """A unit of cache mutation posted by a producer."""

    kind: JobKind
    target: str
    origin: str = "direct"
    done: asyncio.Future | None = field(default=None, compare=False)


@dataclass(slots=True)
class IndexResult:
    """Outcome for a single indexed path, removal or fetch."""

    key: str
    status: Literal["indexed", "removed", "fetched", "skipped", "error"]
    detail: str | None = None
    origin: str = "direct"

    @property
    def ok(self) -> bool:
        return self.status != "error"


FailureSink = Callable[[IndexResult], None]
WatchCallback = Callable[[JobKind, Path], None]


__all__ = ["Job", "JobKind", "IndexResult", "FailureSink", "WatchCallback"]
