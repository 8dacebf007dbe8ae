"""
Heartbeat (application-level liveness) manager.

Responsibilities:
- Call send_ping() every interval_ms while running
- Arm a timeout_ms deadline after each successful ping
- handle_pong() cancels the deadline and reports round-trip latency
- On a missed deadline, call on_timeout() exactly once

Non-responsibilities:
- NO socket access (send_ping is injected)
- NO close/reconnect decisions (on_timeout is the caller's signal)
"""

from __future__ import annotations

from typing import Callable

from observability.logger import ComponentLogger
from transport.timers import Scheduler, TimerHandle

from spec import DEFAULT_HEARTBEAT_INTERVAL_MS, DEFAULT_HEARTBEAT_TIMEOUT_MS


SendPingFn = Callable[[], bool]
OnTimeoutFn = Callable[[], None]
OnPongFn = Callable[[int], None]


class HeartbeatManager:
    """
    Periodic ping/pong with timeout detection.

    interval_ms == 0 disables the heartbeat; start() is then a no-op.

    State while running:
    - _last_ping_ms: monotonic time of the outstanding ping (None if none)
    - _timeout: pending deadline timer (None if no ping outstanding)

    If a tick happens while a deadline is already pending, the earlier
    deadline stands; it is not pushed back by the newer ping.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        interval_ms: int = DEFAULT_HEARTBEAT_INTERVAL_MS,
        timeout_ms: int = DEFAULT_HEARTBEAT_TIMEOUT_MS,
        debug: bool = False,
    ) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

        self._scheduler = scheduler
        self._interval_ms = interval_ms
        self._timeout_ms = timeout_ms
        self._log = ComponentLogger("heartbeat", debug=debug)

        self._send_ping: SendPingFn | None = None
        self._on_timeout: OnTimeoutFn | None = None
        self._on_pong: OnPongFn | None = None

        self._interval: TimerHandle | None = None
        self._timeout: TimerHandle | None = None
        self._last_ping_ms: int | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._interval_ms > 0

    @property
    def running(self) -> bool:
        return self._interval is not None

    def start(
        self,
        send_ping: SendPingFn,
        on_timeout: OnTimeoutFn,
        on_pong: OnPongFn | None = None,
    ) -> None:
        """(Re)start the heartbeat. Restarting drops any outstanding ping."""
        self.stop()

        if not self.enabled:
            self._log.debug("HEARTBEAT_DISABLED")
            return

        self._send_ping = send_ping
        self._on_timeout = on_timeout
        self._on_pong = on_pong
        self._interval = self._scheduler.call_every(self._interval_ms, self._tick)

        self._log.debug("HEARTBEAT_STARTED", interval_ms=self._interval_ms)

    def stop(self) -> None:
        """Cancel both timers and forget the callbacks. Safe when not running."""
        was_running = self.running

        if self._interval is not None:
            self._interval.cancel()
            self._interval = None
        self._cancel_timeout()

        self._send_ping = None
        self._on_timeout = None
        self._on_pong = None
        self._last_ping_ms = None

        if was_running:
            self._log.debug("HEARTBEAT_STOPPED")

    def handle_pong(self) -> None:
        """PONG arrived: clear the deadline and report latency if a ping is outstanding."""
        self._cancel_timeout()

        sent_at = self._last_ping_ms
        if sent_at is None:
            return
        self._last_ping_ms = None

        latency_ms = max(0, self._scheduler.time_ms() - sent_at)
        self._log.debug("PONG_RECEIVED", latency_ms=latency_ms)

        if self._on_pong is not None:
            self._on_pong(latency_ms)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        send_ping = self._send_ping
        if send_ping is None:
            return

        sent_at = self._scheduler.time_ms()
        try:
            sent = send_ping()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("PING_FAILED", error=repr(e))
            return

        if not sent:
            # Skip this tick; the next one tries again
            self._log.debug("PING_NOT_SENT")
            return

        self._last_ping_ms = sent_at
        self._log.debug("PING_SENT")

        if self._timeout is None:
            self._timeout = self._scheduler.call_later(self._timeout_ms, self._expire)

    def _expire(self) -> None:
        self._timeout = None
        on_timeout = self._on_timeout
        self._log.debug("HEARTBEAT_TIMEOUT", timeout_ms=self._timeout_ms)
        if on_timeout is not None:
            on_timeout()

    def _cancel_timeout(self) -> None:
        timeout = self._timeout
        self._timeout = None
        if timeout is not None:
            timeout.cancel()
