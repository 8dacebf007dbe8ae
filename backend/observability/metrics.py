"""
Connection metrics (counters and gauges).

Responsibilities:
- Passive counter/gauge store updated by the connection core
- Latency tracked as a bounded sliding window (average + last)
- Assemble an immutable snapshot on demand

Design notes:
- queue_size and current_reconnect_delay_ms are NOT pushed in; they are
  pulled from injected getters at read time so they are never stale
- Timestamps are wall-clock ms (ts_ms) for correlation with log lines
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Any, Callable, Deque

from spec import LATENCY_WINDOW_SIZE


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _zero() -> int:
    return 0


# -----------------------------------------------------------------------------
# Snapshot
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only view of the connection metrics at one instant."""

    connected_at_ms: int | None
    disconnected_at_ms: int | None
    messages_sent: int
    messages_received: int
    reconnect_attempts: int
    reconnect_successes: int
    errors: int
    current_reconnect_delay_ms: int
    queue_size: int
    average_latency_ms: int
    last_latency_ms: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------

class ConnectionMetrics:
    """
    Counter/gauge store for one connection.

    Every record_* method is O(1) and side-effect free beyond the counter.
    """

    def __init__(
        self,
        *,
        queue_size: Callable[[], int] = _zero,
        reconnect_delay_ms: Callable[[], int] = _zero,
        latency_window: int = LATENCY_WINDOW_SIZE,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if latency_window <= 0:
            raise ValueError("latency_window must be > 0")

        self._queue_size = queue_size
        self._reconnect_delay_ms = reconnect_delay_ms
        self._clock = clock

        self._connected_at_ms: int | None = None
        self._disconnected_at_ms: int | None = None
        self._messages_sent = 0
        self._messages_received = 0
        self._reconnect_attempts = 0
        self._reconnect_successes = 0
        self._errors = 0
        self._latencies: Deque[int] = deque(maxlen=latency_window)
        self._last_latency_ms = 0

    # -------------------------
    # Recording
    # -------------------------

    def record_connect(self) -> None:
        self._connected_at_ms = self._clock()

    def record_disconnect(self) -> None:
        self._disconnected_at_ms = self._clock()

    def record_message_sent(self) -> None:
        self._messages_sent += 1

    def record_message_received(self) -> None:
        self._messages_received += 1

    def record_reconnect_attempt(self) -> None:
        self._reconnect_attempts += 1

    def record_reconnect_success(self) -> None:
        self._reconnect_successes += 1

    def record_error(self) -> None:
        self._errors += 1

    def record_latency(self, latency_ms: int) -> None:
        """Push one heartbeat round-trip sample; oldest falls out of the window."""
        self._last_latency_ms = latency_ms
        self._latencies.append(latency_ms)

    # -------------------------
    # Derived values
    # -------------------------

    @property
    def average_latency_ms(self) -> int:
        if not self._latencies:
            return 0
        return round(sum(self._latencies) / len(self._latencies))

    @property
    def last_latency_ms(self) -> int:
        return self._last_latency_ms

    def connection_duration_ms(self) -> int | None:
        """
        Duration of the current (or last) connection.

        None if never connected. If still connected, measured up to now.
        """
        if self._connected_at_ms is None:
            return None
        end = self._disconnected_at_ms
        if end is None or end < self._connected_at_ms:
            end = self._clock()
        return end - self._connected_at_ms

    def get_metrics(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            connected_at_ms=self._connected_at_ms,
            disconnected_at_ms=self._disconnected_at_ms,
            messages_sent=self._messages_sent,
            messages_received=self._messages_received,
            reconnect_attempts=self._reconnect_attempts,
            reconnect_successes=self._reconnect_successes,
            errors=self._errors,
            current_reconnect_delay_ms=self._reconnect_delay_ms(),
            queue_size=self._queue_size(),
            average_latency_ms=self.average_latency_ms,
            last_latency_ms=self._last_latency_ms,
        )

    # -------------------------
    # Reset
    # -------------------------

    def reset(self) -> None:
        """Zero every counter (live gauges are unaffected, they are pulled)."""
        self._connected_at_ms = None
        self._disconnected_at_ms = None
        self._messages_sent = 0
        self._messages_received = 0
        self._reconnect_attempts = 0
        self._reconnect_successes = 0
        self._errors = 0
        self._latencies.clear()
        self._last_latency_ms = 0

    def reset_reconnect_counters(self) -> None:
        self._reconnect_attempts = 0
        self._reconnect_successes = 0
