"""Coalesce bursts of map notifications into one settled evaluation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class DebounceScheduler:
    """Run an async callback once notifications stop for ``delay`` seconds.

    Every :meth:`schedule` call re-arms the timer, so a burst of idle
    events collapses into a single run. The callback takes no
    arguments: it must read whatever state it needs when it fires,
    never from values captured at schedule time.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        delay: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self._delay = max(0.0, float(delay))
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> None:
        """Run a pending evaluation now instead of waiting for the timer."""
        if self._handle is None:
            return
        self.cancel()
        await self._callback()

    async def wait_idle(self) -> None:
        """Wait for callbacks that already fired to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception:
            # Nothing awaits a timer-fired task; log instead of losing the error.
            _logger.exception("Debounced evaluation failed")
