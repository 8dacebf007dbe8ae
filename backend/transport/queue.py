"""
Bounded outbound message queue.

- Strict FIFO: enqueue order == flush order
- Holds opaque payloads while the connection is down
- Overflow keeps the most recent: the OLDEST entry is evicted to admit
  the newest, and the evicted entry's on_error gets QueueOverflowError
- flush() drains atomically; re-delivery is the caller's job
- Deterministic, synchronous behavior
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Optional

from observability.logger import ComponentLogger
from transport.errors import QueueClearedError, QueueOverflowError


OnSuccess = Callable[[], None]
OnError = Callable[[Exception], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class QueuedMessage:
    """One outbound payload waiting for a connection."""
    payload: Any
    enqueued_at_ms: int
    on_success: OnSuccess | None = None
    on_error: OnError | None = None


@dataclass
class DropCounters:
    """Drop counters for observability."""
    overflow: int = 0
    cleared: int = 0


class MessageQueue:
    """
    Bounded FIFO of QueuedMessage.

    max_size == 0 admits nothing: every enqueue drops the new entry.
    """

    def __init__(self, *, max_size: int, debug: bool = False) -> None:
        if max_size < 0:
            raise ValueError("max_size must be >= 0")

        self._max_size = max_size
        self._messages: Deque[QueuedMessage] = deque()
        self.drops: DropCounters = DropCounters()
        self._log = ComponentLogger("message_queue", debug=debug)

    # -------------------------
    # Core queue operations
    # -------------------------

    def enqueue(
        self,
        payload: Any,
        *,
        on_success: OnSuccess | None = None,
        on_error: OnError | None = None,
    ) -> QueuedMessage:
        """Append a payload, evicting the oldest entry first if at capacity."""
        message = QueuedMessage(
            payload=payload,
            enqueued_at_ms=_now_ms(),
            on_success=on_success,
            on_error=on_error,
        )

        if self._max_size == 0:
            self.drops.overflow += 1
            self._notify(message, QueueOverflowError("Message dropped: queue capacity is 0"))
            return message

        if len(self._messages) >= self._max_size:
            dropped = self._messages.popleft()
            self.drops.overflow += 1
            self._log.debug("QUEUE_OVERFLOW", size=len(self._messages))
            self._notify(dropped, QueueOverflowError("Message dropped: queue overflow"))

        self._messages.append(message)
        self._log.debug("MESSAGE_QUEUED", size=len(self._messages))
        return message

    def flush(self) -> list[QueuedMessage]:
        """Remove and return every entry in enqueue order."""
        messages = list(self._messages)
        self._messages.clear()
        self._log.debug("QUEUE_FLUSHED", count=len(messages))
        return messages

    def dequeue(self) -> Optional[QueuedMessage]:
        """Remove the oldest entry. Returns None if queue is empty."""
        if not self._messages:
            return None
        return self._messages.popleft()

    def peek(self) -> Optional[QueuedMessage]:
        return self._messages[0] if self._messages else None

    def clear(self, *, notify_errors: bool = False) -> None:
        """
        Drop all entries.

        Callbacks are NOT invoked unless notify_errors=True, in which case
        each on_error receives QueueClearedError.
        """
        dropped = list(self._messages)
        self._messages.clear()
        self.drops.cleared += len(dropped)

        if notify_errors:
            for message in dropped:
                self._notify(message, QueueClearedError("Queue cleared"))

        self._log.debug("QUEUE_CLEARED", count=len(dropped))

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def size(self) -> int:
        return len(self._messages)

    @property
    def max_size(self) -> int:
        return self._max_size

    def is_empty(self) -> bool:
        return not self._messages

    def is_full(self) -> bool:
        return len(self._messages) >= self._max_size

    def snapshot(self) -> dict[str, int]:
        """Lightweight snapshot for logging / metrics."""
        return {
            "size": len(self._messages),
            "max_size": self._max_size,
            "dropped_overflow": self.drops.overflow,
            "dropped_cleared": self.drops.cleared,
        }

    # -------------------------
    # Internal
    # -------------------------

    def _notify(self, message: QueuedMessage, error: Exception) -> None:
        if message.on_error is None:
            return
        try:
            message.on_error(error)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("ON_ERROR_CALLBACK_FAILED", error=repr(e))
