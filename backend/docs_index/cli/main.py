"""CLI entrypoint for the docs index."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

import orjson
import typer

from docs_index.core.config import Settings
from docs_index.core.errors import DocsIndexError
from docs_index.core.logging import configure_logging
from docs_index.manager import DocumentationManager

app = typer.Typer(name="docs-index", help="Live documentation index command-line interface")

PathOption = typer.Option(None, "--path", "-p", help="Documentation directory to index")
UrlOption = typer.Option(None, "--url", "-u", help="Online documentation URL to fetch")
DefaultsOption = typer.Option(False, "--defaults", help="Also index docs/, doc/, guides/ ... under the CWD")


def _echo_json(payload: Any) -> None:
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2, default=str).decode("utf-8"))


def _run(
    paths: Optional[List[Path]],
    urls: Optional[List[str]],
    defaults: bool,
    action: Callable[[DocumentationManager], Awaitable[Any]],
    watch: bool = False,
) -> Any:
    settings = Settings.from_yaml()
    configure_logging(settings.log_level, use_json=settings.log_json)
    if not watch:
        settings.watch_enabled = False

    async def main() -> Any:
        async with DocumentationManager(settings) as manager:
            if defaults:
                await manager.load_default_sources()
            for path in paths or []:
                await manager.add_local_source(path, path.name)
            for url in urls or []:
                await manager.add_online_source(url, url, refresh_interval=settings.refresh_interval if watch else 0)
            return await action(manager)

    try:
        return asyncio.run(main())
    except DocsIndexError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Keywords to search for"),
    limit: int = typer.Option(10, "--limit", "-k", help="Number of results to return"),
    path: Optional[List[Path]] = PathOption,
    url: Optional[List[str]] = UrlOption,
    defaults: bool = DefaultsOption,
) -> None:
    """Search indexed documentation."""

    async def action(manager: DocumentationManager) -> None:
        _echo_json([result.to_dict() for result in manager.search(query, limit)])

    _run(path, url, defaults, action)


@app.command("list")
def list_files(
    filter: Optional[str] = typer.Option(None, "--filter", "-f", help="Wildcard filter, e.g. '*.md'"),
    path: Optional[List[Path]] = PathOption,
    url: Optional[List[str]] = UrlOption,
    defaults: bool = DefaultsOption,
) -> None:
    """List indexed documents."""

    async def action(manager: DocumentationManager) -> None:
        _echo_json([record.to_dict() for record in manager.list_files(filter)])

    _run(path, url, defaults, action)


@app.command()
def show(
    key: str = typer.Argument(..., help="File path or URL"),
    path: Optional[List[Path]] = PathOption,
    url: Optional[List[str]] = UrlOption,
) -> None:
    """Print the body of one document."""

    async def action(manager: DocumentationManager) -> None:
        typer.echo(await manager.get_content(key))

    _run(path, url, False, action)


@app.command()
def watch(
    path: Optional[List[Path]] = PathOption,
    url: Optional[List[str]] = UrlOption,
    defaults: bool = DefaultsOption,
    interval: float = typer.Option(10.0, "--report-every", help="Seconds between document count reports"),
) -> None:
    """Keep sources indexed until interrupted."""

    async def action(manager: DocumentationManager) -> None:
        while True:
            typer.echo(f"{len(manager.cache)} documents indexed", err=True)
            await asyncio.sleep(interval)

    try:
        _run(path, url, defaults, action, watch=True)
    except KeyboardInterrupt:
        typer.echo("Stopped", err=True)


if __name__ == "__main__":
    app()
