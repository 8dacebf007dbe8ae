"""
Typed publish/subscribe registry.

- Listeners are keyed by EventType and kept in subscription order
- emit() iterates a snapshot, so (un)subscribing during dispatch is safe
- A listener that raises is logged and skipped; the others still run and
  the caller of emit() never sees the exception
"""

from __future__ import annotations

from typing import Callable

from observability.logger import ComponentLogger
from transport.events import Event, EventType


Listener = Callable[[Event], None]


class _OnceListener:
    """Wrapper that unsubscribes itself before the first delivery."""

    def __init__(self, emitter: EventEmitter, event_type: EventType, listener: Listener) -> None:
        self._emitter = emitter
        self._event_type = event_type
        self.listener = listener

    def __call__(self, event: Event) -> None:
        self._emitter.off(self._event_type, self)
        self.listener(event)


class EventEmitter:
    """Per-connection listener registry."""

    def __init__(self, *, debug: bool = False) -> None:
        # dict used as an ordered set
        self._listeners: dict[EventType, dict[Listener, None]] = {}
        self._log = ComponentLogger("emitter", debug=debug)

    def on(self, event_type: EventType, listener: Listener) -> None:
        self._listeners.setdefault(event_type, {})[listener] = None

    def off(self, event_type: EventType, listener: Listener) -> None:
        """
        Remove a listener. Also removes a pending once() registration of the
        same callable. Unknown listeners are ignored.
        """
        registered = self._listeners.get(event_type)
        if not registered:
            return

        for entry in list(registered):
            if entry == listener or (
                isinstance(entry, _OnceListener) and entry.listener == listener
            ):
                del registered[entry]

        if not registered:
            del self._listeners[event_type]

    def once(self, event_type: EventType, listener: Listener) -> None:
        self.on(event_type, _OnceListener(self, event_type, listener))

    def emit(self, event: Event) -> None:
        registered = self._listeners.get(event.event_type)
        if not registered:
            return

        for listener in tuple(registered):
            try:
                listener(event)
            except Exception as e:  # pylint: disable=broad-exception-caught
                self._log.error(
                    "LISTENER_FAILED",
                    event=event.event_type.value,
                    error=repr(e),
                )

    def listener_count(self, event_type: EventType | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, {}))
        return sum(len(v) for v in self._listeners.values())

    def clear(self) -> None:
        self._listeners.clear()
