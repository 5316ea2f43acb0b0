"""Tests for the documentation manager operations."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest
from watchdog.events import FileMovedEvent

from conftest import FakeResponse, FakeSession, wait_for
from docs_index.core.errors import DocsIndexError, InvalidSourceError, NotFoundError
from docs_index.ingest.watcher import SourceEventHandler, WatchedSource
from docs_index.manager import DocumentationManager, compile_filter

URL = "https://docs.example.com/page"


@pytest.fixture
def manager_factory(settings, session, failures):
    def build(**overrides) -> DocumentationManager:
        chosen = overrides.pop("settings", settings)
        options = {"session": session, "failure_sink": failures.append}
        options.update(overrides)
        return DocumentationManager(chosen, **options)

    return build


@pytest.mark.asyncio
async def test_local_source_scenario(manager_factory, docs_dir: Path) -> None:
    async with manager_factory() as manager:
        results = await manager.add_local_source(docs_dir, "guide")

        assert [result.status for result in results] == ["indexed", "indexed"]
        hits = manager.search("hello")
        assert [hit.record.name for hit in hits] == ["a.md"]
        assert hits[0].score >= 10
        assert hits[0].record.key == str(docs_dir.resolve() / "a.md")


@pytest.mark.asyncio
async def test_add_local_source_rejects_bad_paths(manager_factory, tmp_path: Path) -> None:
    some_file = tmp_path / "file.md"
    some_file.write_text("x")
    async with manager_factory() as manager:
        with pytest.raises(NotFoundError):
            await manager.add_local_source(tmp_path / "missing", "nope")
        with pytest.raises(InvalidSourceError):
            await manager.add_local_source(some_file, "file")
        assert manager.list_local_sources() == []


@pytest.mark.asyncio
async def test_frontmatter_round_trip(manager_factory, tmp_path: Path) -> None:
    doc = tmp_path / "x.md"
    doc.write_text('---\ndescription: "x"\n---\nHello', encoding="utf-8")
    async with manager_factory() as manager:
        assert await manager.get_content(str(doc)) == "Hello"
        [record] = manager.list_files()
        assert record.description == "x"


@pytest.mark.asyncio
async def test_get_content_unknown_key(manager_factory, tmp_path: Path) -> None:
    async with manager_factory() as manager:
        with pytest.raises(NotFoundError):
            await manager.get_content(str(tmp_path / "absent.md"))
        with pytest.raises(NotFoundError):
            await manager.get_content("https://nowhere.test/doc")


@pytest.mark.asyncio
async def test_bad_file_does_not_abort_scan(manager_factory, docs_dir: Path, failures: list) -> None:
    (docs_dir / "broken.md").write_text("---\nkey: [oops\n---\nbody", encoding="utf-8")
    async with manager_factory() as manager:
        results = await manager.add_local_source(docs_dir, "guide")
        assert sorted(result.status for result in results) == ["error", "indexed", "indexed"]
        assert len(manager.cache) == 2
        assert [failure.key for failure in failures] == [str(docs_dir.resolve() / "broken.md")]


@pytest.mark.asyncio
async def test_online_html_source(manager_factory, session: FakeSession) -> None:
    session.responses[URL] = FakeResponse("<html><body><main>Hi</main></body></html>", content_type="text/plain")
    async with manager_factory() as manager:
        result = await manager.add_online_source(URL, "X", content_type="html", refresh_interval=0)

        assert result.status == "fetched"
        assert await manager.get_content(URL) == "Hi"
        [source] = manager.list_online_sources()
        assert source.last_fetched is not None
        assert not manager.scheduler.has_timer(URL)


@pytest.mark.asyncio
async def test_failed_initial_fetch_is_not_raised(manager_factory, failures: list) -> None:
    async with manager_factory() as manager:
        result = await manager.add_online_source(URL, "X", refresh_interval=0)

        assert result.status == "error"
        assert URL not in manager.cache
        assert [source.url for source in manager.list_online_sources()] == [URL]
        assert manager.list_online_sources()[0].last_fetched is None
        assert failures[0].key == URL
        assert failures[0].origin == "direct"


@pytest.mark.asyncio
async def test_invalid_online_options(manager_factory) -> None:
    async with manager_factory() as manager:
        with pytest.raises(ValueError):
            await manager.add_online_source(URL, "X", refresh_interval=-1)
        with pytest.raises(ValueError):
            await manager.add_online_source(URL, "X", content_type="pdf")
        assert manager.list_online_sources() == []


@pytest.mark.asyncio
async def test_remove_unknown_source_leaves_state(manager_factory, session: FakeSession) -> None:
    session.responses[URL] = FakeResponse("text")
    async with manager_factory() as manager:
        await manager.add_online_source(URL, "X", refresh_interval=30)
        with pytest.raises(NotFoundError):
            manager.remove_online_source("https://other.test")
        assert URL in manager.cache
        assert manager.scheduler.has_timer(URL)


@pytest.mark.asyncio
async def test_remove_cancels_timer_and_entry(manager_factory, session: FakeSession) -> None:
    session.responses[URL] = FakeResponse("text")
    async with manager_factory() as manager:
        await manager.add_online_source(URL, "X", refresh_interval=30)
        manager.remove_online_source(URL)
        assert URL not in manager.cache
        assert not manager.scheduler.has_timer(URL)
        assert manager.list_online_sources() == []


@pytest.mark.asyncio
async def test_scheduled_refresh_stops_after_removal(manager_factory, session: FakeSession) -> None:
    session.responses[URL] = FakeResponse("v1")
    async with manager_factory() as manager:
        await manager.add_online_source(URL, "X", refresh_interval=0.0005)
        session.responses[URL] = FakeResponse("v2")

        assert await wait_for(lambda: len(session.calls) >= 3)
        await manager.drain()
        assert manager.cache.get(URL).content == "v2"

        manager.remove_online_source(URL)
        await manager.drain()
        calls = len(session.calls)
        await asyncio.sleep(0.15)
        assert len(session.calls) == calls
        assert URL not in manager.cache


@pytest.mark.asyncio
async def test_refresh_one_and_all(manager_factory, session: FakeSession) -> None:
    other = "https://docs.example.com/other"
    session.responses[URL] = FakeResponse("one")
    session.responses[other] = FakeResponse("two")
    async with manager_factory() as manager:
        await manager.add_online_source(URL, "One", refresh_interval=0)
        await manager.add_online_source(other, "Two", refresh_interval=0)
        session.calls.clear()

        await manager.refresh_online(other)
        assert [call[0] for call in session.calls] == [other]

        session.responses[URL] = FakeResponse("one, updated")
        results = await manager.refresh_online()
        assert [result.key for result in results] == [URL, other]
        assert [call[0] for call in session.calls[1:]] == [URL, other]
        assert await manager.get_content(URL) == "one, updated"

        with pytest.raises(NotFoundError):
            await manager.refresh_online("https://unknown.test")


@pytest.mark.asyncio
async def test_refresh_all_survives_one_failure(manager_factory, session: FakeSession, failures: list) -> None:
    good = "https://docs.example.com/good"
    session.responses[good] = FakeResponse("fine")
    async with manager_factory() as manager:
        await manager.add_online_source(URL, "Broken", refresh_interval=0)
        await manager.add_online_source(good, "Good", refresh_interval=0)
        failures.clear()

        results = await manager.refresh_online()

        assert [result.status for result in results] == ["error", "fetched"]
        assert [failure.key for failure in failures] == [URL]


@pytest.mark.asyncio
async def test_fetch_in_flight_during_removal_is_discarded(manager_factory, session: FakeSession) -> None:
    session.responses[URL] = FakeResponse("late content")
    session.gate = threading.Event()
    async with manager_factory() as manager:
        task = asyncio.create_task(manager.add_online_source(URL, "X", refresh_interval=5))
        assert await wait_for(session.entered.is_set)

        manager.remove_online_source(URL)
        session.gate.set()
        result = await task

        assert result.status == "skipped"
        assert URL not in manager.cache
        assert not manager.scheduler.has_timer(URL)


@pytest.mark.asyncio
async def test_list_files_orders_and_filters(manager_factory, session: FakeSession, docs_dir: Path) -> None:
    (docs_dir / "notes.txt").write_text("notes", encoding="utf-8")
    session.responses[URL] = FakeResponse("# Remote", content_type="text/markdown")
    async with manager_factory() as manager:
        await manager.add_local_source(docs_dir, "guide")
        await manager.add_online_source(URL, "zeta.md", refresh_interval=0)

        assert [record.name for record in manager.list_files()] == ["zeta.md", "a.md", "b.md", "notes.txt"]
        assert [record.name for record in manager.list_files("*.md")] == ["zeta.md", "a.md", "b.md"]
        assert [record.name for record in manager.list_files("*NOTES*")] == ["notes.txt"]
        assert [record.name for record in manager.list_files("*docs.example.com*")] == ["zeta.md"]


def test_compile_filter_is_anchored() -> None:
    pattern = compile_filter("*.md")
    assert pattern.fullmatch("guide.MD")
    assert not pattern.fullmatch("guide.mdx")
    assert not pattern.fullmatch("a+b.txt")


@pytest.mark.asyncio
async def test_resources(manager_factory, session: FakeSession, docs_dir: Path) -> None:
    session.responses[URL] = FakeResponse("remote body")
    async with manager_factory() as manager:
        await manager.add_local_source(docs_dir, "guide")
        await manager.add_online_source(URL, "Remote", refresh_interval=0)

        resources = manager.list_resources()
        assert resources[0].uri == URL
        local = resources[1]
        assert local.uri == f"doc://{docs_dir.resolve() / 'a.md'}"
        assert local.description == "Documentation file: a.md"

        assert await manager.read_resource(local.uri) == "Hello world"
        assert await manager.read_resource(URL) == "remote body"
        with pytest.raises(InvalidSourceError):
            await manager.read_resource("ftp://example.com/doc")


@pytest.mark.asyncio
async def test_watch_events_update_cache(manager_factory, docs_dir: Path) -> None:
    async with manager_factory() as manager:
        await manager.add_local_source(docs_dir, "guide")
        new_file = docs_dir.resolve() / "c.md"
        new_file.write_text("Fresh page", encoding="utf-8")

        manager._on_watch_event("index", new_file)
        await wait_for(lambda: str(new_file) in manager.cache)
        await manager.drain()
        assert manager.cache.get(str(new_file)).content == "Fresh page"

        manager._on_watch_event("remove", docs_dir.resolve() / "a.md")
        await wait_for(lambda: str(docs_dir.resolve() / "a.md") not in manager.cache)
        assert manager.search("hello") == []


@pytest.mark.asyncio
async def test_real_watcher_sees_changes(manager_factory, docs_dir: Path) -> None:
    from docs_index.core.config import Settings

    watched = Settings(watch_enabled=True)
    async with manager_factory(settings=watched) as manager:
        await manager.add_local_source(docs_dir, "guide")
        root = docs_dir.resolve()

        live = root / "live.md"
        live.write_text("Live edit", encoding="utf-8")
        assert await wait_for(lambda: getattr(manager.cache.get(str(live)), "content", None) == "Live edit")

        (root / "b.md").unlink()
        assert await wait_for(lambda: str(root / "b.md") not in manager.cache)

        ignored = root / "node_modules"
        ignored.mkdir()
        (ignored / "pkg.md").write_text("vendored", encoding="utf-8")
        await asyncio.sleep(0.3)
        assert str(ignored / "pkg.md") not in manager.cache


@pytest.mark.asyncio
async def test_load_default_sources(manager_factory, tmp_path: Path) -> None:
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "guide.md").write_text("Guide", encoding="utf-8")
    (tmp_path / "README.md").write_text("Readme", encoding="utf-8")
    async with manager_factory() as manager:
        added = await manager.load_default_sources(tmp_path)

        assert str(tmp_path.resolve() / "docs") in added
        assert str(tmp_path.resolve() / "README.md") in added
        assert sorted(record.name for record in manager.list_files()) == ["README.md", "guide.md"]


@pytest.mark.asyncio
async def test_dispose_releases_everything(manager_factory, session: FakeSession, docs_dir: Path) -> None:
    session.responses[URL] = FakeResponse("text")
    manager = manager_factory()
    await manager.add_local_source(docs_dir, "guide")
    await manager.add_online_source(URL, "X", refresh_interval=0.0005)

    await manager.dispose()

    assert len(manager.cache) == 0
    assert manager.scheduler.urls == []
    assert manager.list_online_sources() == []
    assert not session.closed
    calls = len(session.calls)
    manager._on_watch_event("index", docs_dir / "a.md")
    await asyncio.sleep(0.1)
    assert len(session.calls) == calls
    assert len(manager.cache) == 0
    with pytest.raises(DocsIndexError):
        await manager.add_local_source(docs_dir, "again")
    await manager.dispose()


@pytest.mark.asyncio
async def test_jobs_start_the_update_loop(manager_factory, docs_dir: Path) -> None:
    manager = manager_factory()
    try:
        result = await manager._submit("index", str(docs_dir / "a.md"))
        assert result.status == "indexed"
    finally:
        await manager.dispose()

    with pytest.raises(DocsIndexError):
        await manager._submit("index", str(docs_dir / "a.md"))


@pytest.mark.asyncio
async def test_rename_to_unwatched_name_drops_record(manager_factory, docs_dir: Path) -> None:
    async with manager_factory() as manager:
        await manager.add_local_source(docs_dir, "guide")
        source = WatchedSource(
            root=docs_dir.resolve(),
            patterns=manager.settings.watch_patterns,
            ignore_dirs=manager.settings.watch_ignore_dirs,
            callback=manager._on_watch_event,
        )
        (docs_dir / "a.md").rename(docs_dir / "a.md.bak")
        SourceEventHandler(source).dispatch(FileMovedEvent(str(docs_dir / "a.md"), str(docs_dir / "a.md.bak")))

        assert await wait_for(lambda: len(manager.cache) == 1)
        await manager.drain()
        assert [record.name for record in manager.list_files()] == ["b.md"]
