"""
Reconnection policy and scheduler.

Purpose:
- BackoffPolicy: pure backoff arithmetic (no timers, no side effects)
- ReconnectionManager: owns attempt_count / current delay and the single
  pending reconnection timer

Backoff is multiplicative and deterministic (no jitter), so a policy of
1000ms x2 capped at 8000ms always yields 1000, 2000, 4000, 8000, 8000, ...
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from observability.logger import ComponentLogger
from transport.timers import Scheduler, TimerHandle

from spec import (
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_MAX_RECONNECT_DELAY_MS,
    DEFAULT_RECONNECT_DELAY_MS,
    DEFAULT_RECONNECT_DELAY_MULTIPLIER,
)


ReconnectFn = Callable[[], None]
OnAttemptFn = Callable[[int, int, int], None]
OnExhaustedFn = Callable[[], None]


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class BackoffPolicy:
    """
    Immutable backoff rules.

    Semantics:
    - max_attempts == 0 disables reconnection entirely
    - delay_for() is the delay actually waited (capped at max_delay_ms)
    - next_delay() is the base for the following attempt (floored to ms,
      capped at max_delay_ms)
    """

    max_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS
    initial_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_RECONNECT_DELAY_MS
    multiplier: float = DEFAULT_RECONNECT_DELAY_MULTIPLIER

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")

    def allows(self, attempt_count: int) -> bool:
        """True if another attempt may be scheduled after attempt_count attempts."""
        return attempt_count < self.max_attempts

    def delay_for(self, current_delay_ms: int) -> int:
        return min(current_delay_ms, self.max_delay_ms)

    def next_delay(self, current_delay_ms: int) -> int:
        return min(int(current_delay_ms * self.multiplier), self.max_delay_ms)


# =============================================================================
# State
# =============================================================================

@dataclass(frozen=True)
class ReconnectionState:
    """Immutable snapshot of the manager."""
    attempt_count: int
    max_attempts: int
    current_delay_ms: int
    scheduled: bool


# =============================================================================
# Manager
# =============================================================================

class ReconnectionManager:
    """
    Schedules reconnection attempts with exponential backoff.

    Lifecycle:
    1. Connection closes unexpectedly -> schedule(reconnect, on_attempt, on_exhausted)
    2. on_attempt(attempt, max_attempts, delay_ms) fires immediately
    3. After delay_ms the timer calls reconnect()
    4a. Socket opens -> reset()
    4b. Socket closes again -> schedule(...) again, with a longer delay
    5. Out of attempts -> on_exhausted() and nothing else

    cancel() stops a pending timer without touching the counters.
    The manager never touches the socket; it only calls reconnect().
    """

    def __init__(
        self,
        *,
        policy: BackoffPolicy,
        scheduler: Scheduler,
        debug: bool = False,
    ) -> None:
        self._policy = policy
        self._scheduler = scheduler
        self._log = ComponentLogger("reconnection", debug=debug)

        self._attempt_count = 0
        self._current_delay_ms = policy.initial_delay_ms
        self._timer: TimerHandle | None = None
        self._reconnect: ReconnectFn | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def schedule(
        self,
        reconnect: ReconnectFn,
        on_attempt: OnAttemptFn | None = None,
        on_exhausted: OnExhaustedFn | None = None,
    ) -> bool:
        """
        Schedule the next attempt.

        Returns:
            True if an attempt was scheduled, False if attempts are exhausted
            (on_exhausted has been called).
        """
        if not self._policy.allows(self._attempt_count):
            self._log.debug(
                "RECONNECT_EXHAUSTED",
                attempts=self._attempt_count,
                max_attempts=self._policy.max_attempts,
            )
            if on_exhausted is not None:
                on_exhausted()
            return False

        # A newer schedule replaces a pending one
        self._cancel_timer()

        self._attempt_count += 1
        delay_ms = self._policy.delay_for(self._current_delay_ms)
        self._reconnect = reconnect

        self._log.debug(
            "RECONNECT_SCHEDULED",
            attempt=self._attempt_count,
            max_attempts=self._policy.max_attempts,
            delay_ms=delay_ms,
        )

        if on_attempt is not None:
            on_attempt(self._attempt_count, self._policy.max_attempts, delay_ms)

        self._timer = self._scheduler.call_later(delay_ms, self._fire)
        self._current_delay_ms = self._policy.next_delay(self._current_delay_ms)
        return True

    def cancel(self) -> None:
        """Drop the pending timer, keep attempt_count and delay."""
        if self._timer is not None:
            self._log.debug("RECONNECT_CANCELLED", attempt=self._attempt_count)
        self._cancel_timer()
        self._reconnect = None

    def reset(self) -> None:
        """Back to zero attempts and the initial delay. Called on successful connect."""
        self.cancel()
        self._attempt_count = 0
        self._current_delay_ms = self._policy.initial_delay_ms

    def state(self) -> ReconnectionState:
        return ReconnectionState(
            attempt_count=self._attempt_count,
            max_attempts=self._policy.max_attempts,
            current_delay_ms=self._current_delay_ms,
            scheduled=self.scheduled,
        )

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    @property
    def current_delay_ms(self) -> int:
        return self._current_delay_ms

    @property
    def max_attempts(self) -> int:
        return self._policy.max_attempts

    @property
    def is_exhausted(self) -> bool:
        return not self._policy.allows(self._attempt_count)

    @property
    def scheduled(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fire(self) -> None:
        reconnect = self._reconnect
        self._timer = None
        self._reconnect = None

        if reconnect is not None:
            self._log.debug("RECONNECT_EXECUTING", attempt=self._attempt_count)
            reconnect()

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()
