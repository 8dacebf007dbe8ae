# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring

from __future__ import annotations

from typing import Any, Callable

import pytest

from transport.errors import SocketNotOpenError
from transport.events import Event, EventType
from transport.socket import SocketHandlers

from spec import CLOSE_NORMAL


# ---------------------------------------------------------------------
# Manual clock / scheduler
# ---------------------------------------------------------------------

class FakeTimer:
    def __init__(self, due_ms: int, callback: Callable[[], None], interval_ms: int | None) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.interval_ms = interval_ms
        self.cancelled = False
        self.fired = 0

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and (self.interval_ms is not None or self.fired == 0)


class FakeScheduler:
    """Time only moves when advance() is called."""

    def __init__(self) -> None:
        self.now_ms = 0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now_ms + delay_ms, callback, None)
        self.timers.append(timer)
        return timer

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now_ms + interval_ms, callback, interval_ms)
        self.timers.append(timer)
        return timer

    def time_ms(self) -> int:
        return self.now_ms

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.active]

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [t for t in self.pending() if t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due_ms)
            self.now_ms = timer.due_ms
            timer.fired += 1
            if timer.interval_ms is not None:
                timer.due_ms += timer.interval_ms
            timer.callback()
        self.now_ms = target


# ---------------------------------------------------------------------
# Fake socket
# ---------------------------------------------------------------------

class FakeSocket:
    def __init__(self, url: str, handlers: SocketHandlers) -> None:
        self.url = url
        self.handlers = handlers
        self.sent: list[str] = []
        self.is_open = False
        self.closed_with: tuple[int, str] | None = None
        self.fail_sends = False

    # Socket protocol
    def send(self, data: str) -> None:
        if not self.is_open:
            raise SocketNotOpenError("socket is not open")
        if self.fail_sends:
            raise OSError("broken pipe")
        self.sent.append(data)

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        self.is_open = False
        self.closed_with = (code, reason)

    # Test drivers
    def server_open(self) -> None:
        self.is_open = True
        self.handlers.on_open()

    def server_message(self, raw: str | bytes) -> None:
        self.handlers.on_message(raw)

    def server_close(self, code: int, reason: str = "") -> None:
        self.is_open = False
        self.handlers.on_close(code, reason)


class FakeSocketFactory:
    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.fail_next: Exception | None = None

    def __call__(self, url: str, handlers: SocketHandlers) -> FakeSocket:
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        socket = FakeSocket(url, handlers)
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


# ---------------------------------------------------------------------
# Event recorder
# ---------------------------------------------------------------------

class EventRecorder:
    def __init__(self) -> None:
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def of(self, event_type: EventType) -> list[Any]:
        return [e for e in self.events if e.event_type is event_type]

    def types(self) -> list[EventType]:
        return [e.event_type for e in self.events]


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def sockets() -> FakeSocketFactory:
    return FakeSocketFactory()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture(autouse=True)
def _quiet_logger(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    from observability import logger  # pylint: disable=import-outside-toplevel

    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    return lines
