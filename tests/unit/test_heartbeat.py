# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from transport.heartbeat import HeartbeatManager


class PingRecorder:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.pings = 0
        self.timeouts = 0
        self.latencies: list[int] = []

    def send_ping(self) -> bool:
        self.pings += 1
        return self.result

    def on_timeout(self) -> None:
        self.timeouts += 1


def start(manager: HeartbeatManager, rec: PingRecorder) -> None:
    manager.start(rec.send_ping, rec.on_timeout, rec.latencies.append)


# ---------------------------------------------------------------------
# Enable / disable
# ---------------------------------------------------------------------

def test_zero_interval_disables(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=0, timeout_ms=1000)
    rec = PingRecorder()

    start(manager, rec)
    scheduler.advance(60_000)

    assert not manager.enabled
    assert not manager.running
    assert rec.pings == 0


def test_invalid_values_rejected(scheduler):
    with pytest.raises(ValueError):
        HeartbeatManager(scheduler=scheduler, interval_ms=-1, timeout_ms=1000)
    with pytest.raises(ValueError):
        HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=0)


# ---------------------------------------------------------------------
# Ping / pong
# ---------------------------------------------------------------------

def test_pings_every_interval(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=5000)
    rec = PingRecorder()
    start(manager, rec)

    scheduler.advance(999)
    assert rec.pings == 0

    scheduler.advance(1)
    assert rec.pings == 1

    manager.handle_pong()
    scheduler.advance(2000)
    assert rec.pings == 3


def test_pong_reports_latency_and_clears_deadline(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder()
    start(manager, rec)

    scheduler.advance(1000)
    scheduler.advance(120)
    manager.handle_pong()

    assert rec.latencies == [120]

    scheduler.advance(800)
    assert rec.timeouts == 0


def test_pong_without_outstanding_ping_is_ignored(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder()
    start(manager, rec)

    manager.handle_pong()

    assert rec.latencies == []


# ---------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------

def test_missed_pong_times_out_once(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder()
    start(manager, rec)

    scheduler.advance(1500)
    assert rec.timeouts == 1

    # Caller normally stops the heartbeat here
    manager.stop()
    scheduler.advance(10_000)
    assert rec.timeouts == 1


def test_earliest_deadline_stands_across_ticks(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=1500)
    rec = PingRecorder()
    start(manager, rec)

    # ping at 1000 arms deadline 2500; ping at 2000 does not push it back
    scheduler.advance(2400)
    assert rec.pings == 2
    assert rec.timeouts == 0

    scheduler.advance(100)
    assert rec.timeouts == 1


def test_unsent_ping_arms_no_deadline(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder(result=False)
    start(manager, rec)

    scheduler.advance(5000)

    assert rec.pings == 5
    assert rec.timeouts == 0


def test_raising_send_ping_skips_tick(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    timeouts: list[bool] = []

    def broken() -> bool:
        raise OSError("socket gone")

    manager.start(broken, lambda: timeouts.append(True))
    scheduler.advance(3000)

    assert timeouts == []
    assert manager.running


# ---------------------------------------------------------------------
# Stop / restart
# ---------------------------------------------------------------------

def test_stop_cancels_everything(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder()
    start(manager, rec)

    scheduler.advance(1000)
    manager.stop()
    scheduler.advance(10_000)

    assert rec.pings == 1
    assert rec.timeouts == 0
    assert scheduler.pending() == []


def test_restart_drops_outstanding_ping(scheduler):
    manager = HeartbeatManager(scheduler=scheduler, interval_ms=1000, timeout_ms=500)
    rec = PingRecorder()
    start(manager, rec)

    scheduler.advance(1000)
    start(manager, rec)
    manager.handle_pong()

    assert rec.latencies == []
    assert len(scheduler.pending()) == 1
