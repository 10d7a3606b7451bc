"""
Single-shot asyncio timer: every `trigger` restarts the countdown, only the last call runs.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger


class Debouncer:
    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]], name: str = "debounce"):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """True while a call is waiting out its delay."""
        return self._task is not None and not self._task.done()

    @property
    def running(self) -> bool:
        return self._running is not None and not self._running.done()

    def trigger(self, *args: Any) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire(args), name=self.name)

    def cancel(self) -> None:
        """Drop a scheduled call. A callback that already started is left to finish."""
        if self.pending:
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Wait for a scheduled or running call, if any, to finish."""
        tasks = {t for t in (self._task, self._running) if t is not None and not t.done()}
        if tasks:
            await asyncio.wait(tasks)

    async def _fire(self, args: tuple) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.current_task()
        if self._task is task:
            self._task = None
        self._running = task
        try:
            await self.callback(*args)
        except Exception as e:
            logger.error(f"Debounced callback {self.name} failed: {e}")
        finally:
            if self._running is task:
                self._running = None
