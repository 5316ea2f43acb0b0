"""Documentation manager: owns the cache, sources, watchers and timers."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Sequence

import requests

from docs_index.core.config import Settings, get_settings
from docs_index.core.errors import DocsIndexError, InvalidSourceError, NotFoundError
from docs_index.core.logging import get_logger
from docs_index.core.metrics import INDEX_EVENTS
from docs_index.ingest.fetcher import OnlineFetcher
from docs_index.ingest.loaders import FileIndexer, iter_source_files
from docs_index.ingest.registry import SourceRegistry
from docs_index.ingest.scheduler import RefreshScheduler
from docs_index.ingest.types import FailureSink, IndexResult, Job, JobKind
from docs_index.ingest.watcher import Watcher
from docs_index.models.dto import OnlineSourceRequest
from docs_index.models.entities import (
    ContentTypeHint,
    DocumentRecord,
    LocalSource,
    OnlineSource,
    Resource,
    SearchResult,
)
from docs_index.retrieval import SearchEngine
from docs_index.store.cache import DocumentCache

logger = get_logger(__name__)

DOC_URI_PREFIX = "doc://"


def log_failure(result: IndexResult) -> None:
    """Default failure sink."""
    logger.warning(
        "Failed to update %s: %s",
        result.key,
        result.detail,
        extra={"ctx_key": result.key, "ctx_origin": result.origin},
    )


class DocumentationManager:
    """Live documentation index over local directories and online pages.

    Every cache write made by indexing or fetching runs on a single consumer
    task fed by an ``asyncio.Queue``. Watch events, refresh ticks and direct
    operations all post jobs to that queue, so writes for one key are applied
    in the order they were posted.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: requests.Session | None = None,
        fetcher: OnlineFetcher | None = None,
        watcher: Watcher | None = None,
        failure_sink: FailureSink | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache = DocumentCache()
        self.registry = SourceRegistry()
        self.indexer = FileIndexer(self.cache)
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or OnlineFetcher(
            session=session,
            user_agent=self.settings.user_agent,
            timeout=self.settings.fetch_timeout,
        )
        self.watcher = watcher or Watcher()
        self.scheduler = RefreshScheduler(self._on_refresh_tick)
        self.search_engine = SearchEngine(self.cache, default_limit=self.settings.search_limit)
        self._failure_sink = failure_sink or log_failure
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[Job] | None = None
        self._worker: asyncio.Task | None = None
        self._disposed = False

    async def __aenter__(self) -> "DocumentationManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # Lifecycle --------------------------------------------------------

    async def start(self) -> None:
        if self._disposed:
            raise DocsIndexError("Documentation manager has been disposed")
        if self._worker is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._consume(self._queue), name="docs-index-updates")
        if self.settings.watch_enabled:
            self.watcher.start()

    async def dispose(self) -> None:
        """Cancel timers, close watchers, stop the update loop and clear the cache."""
        if self._disposed:
            return
        self._disposed = True
        await self.scheduler.close()
        await asyncio.to_thread(self.watcher.close)
        if self._worker is not None:
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None
        self._cancel_pending()
        self.cache.clear()
        self.registry.clear()
        if self._owns_fetcher:
            self.fetcher.close()

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def drain(self) -> None:
        """Wait until every queued job has been applied."""
        if self._queue is not None and not self._disposed:
            await self._queue.join()

    # Local sources ----------------------------------------------------

    async def add_local_source(self, path: str | Path, name: str) -> list[IndexResult]:
        """Scan a directory and keep watching it for changes."""
        await self.start()
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise NotFoundError(f"Documentation source does not exist: {root}")
        if not root.is_dir():
            raise InvalidSourceError(f"Documentation source must be a directory: {root}")

        source = LocalSource(name=name, root=root)
        self.registry.add_local(source)
        if self.settings.watch_enabled:
            self.watcher.add_source(
                root,
                self._on_watch_event,
                patterns=self.settings.watch_patterns,
                ignore_dirs=self.settings.watch_ignore_dirs,
            )
        paths = await asyncio.to_thread(
            lambda: list(iter_source_files(root, source.patterns, self.settings.watch_ignore_dirs))
        )
        logger.info("Indexing %s files for source %s", len(paths), name)
        return await self._submit_all("index", [str(item) for item in paths])

    def list_local_sources(self) -> list[LocalSource]:
        return self.registry.local_sources()

    async def load_default_sources(self, base: str | Path | None = None) -> list[str]:
        """Register common documentation locations found under ``base``."""
        await self.start()
        base_path = Path(base or Path.cwd()).expanduser().resolve()
        added: list[str] = []
        for dirname in self.settings.default_source_dirs:
            candidate = base_path / dirname
            if candidate.is_dir():
                await self.add_local_source(candidate, candidate.name)
                added.append(str(candidate))
        top_level = sorted(item for item in base_path.glob("*.md") if item.is_file())
        for result in await self._submit_all("index", [str(item) for item in top_level]):
            if result.ok:
                added.append(result.key)
        return added

    # Online sources ---------------------------------------------------

    async def add_online_source(
        self,
        url: str,
        name: str,
        refresh_interval: float | None = None,
        content_type: ContentTypeHint = "auto",
    ) -> IndexResult:
        """Register an online source and fetch it immediately.

        A failed fetch is logged and returned, never raised.
        """
        await self.start()
        request = OnlineSourceRequest(
            url=url,
            name=name,
            refresh_interval=self.settings.refresh_interval if refresh_interval is None else refresh_interval,
            content_type=content_type,
        )
        source = OnlineSource(
            name=request.name,
            url=request.url,
            refresh_interval=request.refresh_interval,
            content_type=request.content_type,
        )
        if self.registry.add_online(source) is not None:
            self.scheduler.cancel(source.url)
        result = await self._submit("fetch", source.url)
        if self.registry.is_current(source):
            self.scheduler.schedule(source.url, source.refresh_interval)
        return result

    def list_online_sources(self) -> list[OnlineSource]:
        return self.registry.online_sources()

    async def refresh_online(self, url: str | None = None) -> list[IndexResult]:
        """Re-fetch one online source, or all of them in registration order."""
        await self.start()
        if url is not None:
            self.registry.get_online(url)
            return [await self._submit("fetch", url)]
        return await self._submit_all("fetch", [source.url for source in self.registry.iter_online()])

    def remove_online_source(self, url: str) -> None:
        self.registry.get_online(url)
        self.scheduler.cancel(url)
        self.registry.remove_online(url)
        self.cache.delete(url)
        logger.info("Removed online documentation source %s", url)

    # Reads ------------------------------------------------------------

    def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        return self.search_engine.search(query, limit)

    async def get_content(self, key: str) -> str:
        """Return the body of a cached document, indexing local files on demand."""
        record = self._lookup(key)
        if record is not None:
            return record.content
        if not _is_url(key):
            path = Path(key).expanduser().resolve()
            if await asyncio.to_thread(path.is_file):
                await self.start()
                await self._submit("index", str(path))
                record = self.cache.get(str(path))
                if record is not None:
                    return record.content
        raise NotFoundError(f"Documentation file not found: {key}")

    def list_files(self, filter: str | None = None) -> list[DocumentRecord]:
        """All records, online first then by name; ``*`` wildcards in ``filter``."""
        records = self.cache.list()
        if filter:
            pattern = compile_filter(filter)
            records = [
                record
                for record in records
                if any(pattern.fullmatch(value) for value in (record.key, record.name, record.url or ""))
            ]
        return sorted(records, key=lambda record: (not record.is_online, record.name.lower(), record.key))

    def list_resources(self) -> list[Resource]:
        return [
            Resource(
                uri=record.url if record.is_online and record.url else f"{DOC_URI_PREFIX}{record.key}",
                name=record.name,
                description=record.description or f"Documentation file: {record.name}",
                mime_type=record.mime_type,
            )
            for record in self.list_files()
        ]

    async def read_resource(self, uri: str) -> str:
        if uri.startswith(DOC_URI_PREFIX):
            return await self.get_content(uri[len(DOC_URI_PREFIX) :])
        if _is_url(uri):
            return await self.get_content(uri)
        raise InvalidSourceError(f"Unsupported URI scheme: {uri}")

    # Update loop ------------------------------------------------------

    def _lookup(self, key: str) -> DocumentRecord | None:
        record = self.cache.get(key)
        if record is None and not _is_url(key):
            record = self.cache.get(str(Path(key).expanduser().resolve()))
        return record

    def _on_watch_event(self, kind: JobKind, path: Path) -> None:
        """Runs on the watchdog thread."""
        loop = self._loop
        if self._disposed or loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, Job(kind=kind, target=str(path), origin="watch"))
        except RuntimeError:
            logger.debug("Dropped %s event for %s after shutdown", kind, path)

    def _on_refresh_tick(self, url: str) -> None:
        self._enqueue(Job(kind="fetch", target=url, origin="timer"))

    def _enqueue(self, job: Job) -> None:
        if self._disposed or self._queue is None:
            if job.done is not None:
                job.done.cancel()
            return
        self._queue.put_nowait(job)

    async def _submit(self, kind: JobKind, target: str) -> IndexResult:
        await self.start()
        job = Job(kind=kind, target=target, done=asyncio.get_running_loop().create_future())
        self._enqueue(job)
        return await job.done

    async def _submit_all(self, kind: JobKind, targets: Sequence[str]) -> list[IndexResult]:
        await self.start()
        loop = asyncio.get_running_loop()
        jobs = [Job(kind=kind, target=target, done=loop.create_future()) for target in targets]
        for job in jobs:
            self._enqueue(job)
        return list(await asyncio.gather(*(job.done for job in jobs)))

    async def _consume(self, queue: asyncio.Queue[Job]) -> None:
        while True:
            job = await queue.get()
            try:
                result = await self._apply(job)
            except asyncio.CancelledError:
                if job.done is not None:
                    job.done.cancel()
                raise
            except Exception as exc:
                logger.exception("Unexpected failure applying %s job for %s", job.kind, job.target)
                result = IndexResult(key=job.target, status="error", detail=str(exc))
            finally:
                queue.task_done()
            result.origin = job.origin
            INDEX_EVENTS.labels(kind=job.kind, outcome=result.status).inc()
            if not result.ok:
                self._failure_sink(result)
            if job.done is not None and not job.done.done():
                job.done.set_result(result)

    async def _apply(self, job: Job) -> IndexResult:
        if job.kind == "index":
            return await self.indexer.index(Path(job.target))
        if job.kind == "remove":
            return self.indexer.remove(Path(job.target))
        return await self._fetch(job.target)

    async def _fetch(self, url: str) -> IndexResult:
        try:
            source = self.registry.get_online(url)
        except NotFoundError:
            return IndexResult(key=url, status="skipped", detail="source not registered")
        outcome = await self.fetcher.fetch(source)
        if outcome.record is None:
            return IndexResult(key=url, status="error", detail=outcome.error)
        if self._disposed or not self.registry.is_current(source):
            logger.info("Discarding fetch of %s: source removed while in flight", url)
            return IndexResult(key=url, status="skipped", detail="source removed")
        self.cache.put(url, outcome.record)
        source.last_fetched = outcome.record.last_modified
        logger.info("Fetched and indexed %s", source.name)
        return IndexResult(key=url, status="fetched")

    def _cancel_pending(self) -> None:
        if self._queue is None:
            return
        while not self._queue.empty():
            job = self._queue.get_nowait()
            self._queue.task_done()
            if job.done is not None:
                job.done.cancel()


def compile_filter(filter: str) -> re.Pattern[str]:
    """Translate a ``*`` wildcard filter into a case-insensitive regex."""
    parts = (".*" if char == "*" else re.escape(char) for char in filter)
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


__all__ = ["DocumentationManager", "compile_filter", "log_failure"]
