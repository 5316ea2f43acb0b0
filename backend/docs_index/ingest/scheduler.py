"""Repeating refresh timers for online sources."""

from __future__ import annotations

import asyncio
from typing import Callable, Dict

from docs_index.core.logging import get_logger

logger = get_logger(__name__)

TickCallback = Callable[[str], None]


class RefreshScheduler:
    """One asyncio task per URL, posting a tick every ``interval`` minutes."""

    def __init__(self, on_tick: TickCallback) -> None:
        self._on_tick = on_tick
        self._timers: Dict[str, asyncio.Task] = {}

    def schedule(self, url: str, interval_minutes: float) -> bool:
        """(Re)start the timer for ``url``; returns False when disabled."""
        self.cancel(url)
        if interval_minutes <= 0:
            return False
        period = interval_minutes * 60
        self._timers[url] = asyncio.get_running_loop().create_task(
            self._run(url, period), name=f"refresh:{url}"
        )
        logger.debug("Scheduled refresh of %s every %.1fs", url, period)
        return True

    def cancel(self, url: str) -> bool:
        task = self._timers.pop(url, None)
        if task is None:
            return False
        task.cancel()
        return True

    def has_timer(self, url: str) -> bool:
        return url in self._timers

    @property
    def urls(self) -> list[str]:
        return list(self._timers)

    async def close(self) -> None:
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, url: str, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            self._on_tick(url)


__all__ = ["RefreshScheduler", "TickCallback"]
