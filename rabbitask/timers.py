"""Event-loop timers owned by the object that starts them.

Both timers must be cancelled by their owner (``cancel()`` / ``close()`` or the
async context manager) so they never outlive it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger("rabbitask.timers")


class Debouncer:
    """Delays *callback* until *delay* seconds pass without a new ``call``."""

    def __init__(self, delay: float, callback: Callable[[Any], None]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, value: Any) -> None:
        self.cancel()
        if self.delay <= 0:
            self._callback(value)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to wait on (synchronous caller): apply right away.
            self._callback(value)
            return
        self._handle = loop.call_later(self.delay, self._fire, value)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, value: Any) -> None:
        self._handle = None
        self._callback(value)


class RepeatingTimer:
    """Calls *tick* every *interval* seconds until it returns ``False`` or is cancelled.

    The first tick runs immediately on ``start()``.
    """

    def __init__(self, interval: float, tick: Callable[[], Optional[bool]], name: str = "timer"):
        self.interval = interval
        self.name = name
        self._tick = tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def cancel(self) -> None:
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            try:
                keep_going = self._tick()
            except Exception:
                logger.exception("Timer '%s' tick failed; stopping", self.name)
                return
            if keep_going is False:
                return
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> "RepeatingTimer":
        self.start()
        return self

    async def __aexit__(self, *_) -> None:
        self.cancel()
