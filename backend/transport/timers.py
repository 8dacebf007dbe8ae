"""
Cancelable timers.

Responsibilities:
- One-shot and repeating timers behind a small Scheduler protocol
- Every timer returns a TimerHandle; cancel() is idempotent
- Monotonic clock for latency measurement

Components never touch asyncio directly; they receive a Scheduler by
injection so tests can drive time by hand.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Protocol

from observability.logger import ComponentLogger


TimerCallback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle: ...

    def call_every(self, interval_ms: int, callback: TimerCallback) -> TimerHandle: ...

    def time_ms(self) -> int: ...


# ---------------------------------------------------------------------
# asyncio implementation
# ---------------------------------------------------------------------

class _TaskHandle:
    """TimerHandle backed by an asyncio task."""

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None

    def bind(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> None:
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()


class AsyncioScheduler:
    """
    Scheduler on the running asyncio loop.

    Callbacks run on the loop thread, one at a time. A callback that raises
    is logged and, for repeating timers, the next tick still happens.
    Must be used from inside a running event loop.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self._log = ComponentLogger("scheduler", debug=debug)

    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        handle = _TaskHandle()

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(delay_ms / 1000.0)
            except asyncio.CancelledError:
                # Timer was cancelled - this is normal
                return
            self._run(callback)

        handle.bind(asyncio.create_task(_timer_task()))
        return handle

    def call_every(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")

        handle = _TaskHandle()

        async def _interval_task() -> None:
            try:
                while True:
                    await asyncio.sleep(interval_ms / 1000.0)
                    self._run(callback)
            except asyncio.CancelledError:
                return

        handle.bind(asyncio.create_task(_interval_task()))
        return handle

    def time_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def _run(self, callback: TimerCallback) -> None:
        try:
            callback()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error(
                "TIMER_CALLBACK_FAILED",
                callback=getattr(callback, "__qualname__", repr(callback)),
                error=repr(e),
            )
