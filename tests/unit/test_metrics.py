# pylint: disable=missing-module-docstring,missing-function-docstring

from observability.metrics import ConnectionMetrics


class Clock:
    def __init__(self) -> None:
        self.now = 1_000

    def __call__(self) -> int:
        return self.now


def test_fresh_snapshot_is_zeroed():
    snapshot = ConnectionMetrics().get_metrics()

    assert snapshot.connected_at_ms is None
    assert snapshot.disconnected_at_ms is None
    assert snapshot.messages_sent == 0
    assert snapshot.errors == 0
    assert snapshot.average_latency_ms == 0
    assert snapshot.last_latency_ms == 0


def test_counters():
    metrics = ConnectionMetrics()

    metrics.record_message_sent()
    metrics.record_message_sent()
    metrics.record_message_received()
    metrics.record_reconnect_attempt()
    metrics.record_reconnect_success()
    metrics.record_error()

    snapshot = metrics.get_metrics()
    assert snapshot.messages_sent == 2
    assert snapshot.messages_received == 1
    assert snapshot.reconnect_attempts == 1
    assert snapshot.reconnect_successes == 1
    assert snapshot.errors == 1


def test_gauges_are_read_live():
    size = [0]
    metrics = ConnectionMetrics(queue_size=lambda: size[0], reconnect_delay_ms=lambda: 4000)

    assert metrics.get_metrics().queue_size == 0
    size[0] = 7
    snapshot = metrics.get_metrics()
    assert snapshot.queue_size == 7
    assert snapshot.current_reconnect_delay_ms == 4000


# ---------------------------------------------------------------------
# Latency window
# ---------------------------------------------------------------------

def test_latency_average_over_window():
    metrics = ConnectionMetrics(latency_window=3)

    for sample in (10, 20, 30, 100):
        metrics.record_latency(sample)

    # 10 fell out of the window
    assert metrics.average_latency_ms == 50
    assert metrics.last_latency_ms == 100


def test_latency_average_is_rounded():
    metrics = ConnectionMetrics()
    metrics.record_latency(10)
    metrics.record_latency(11)

    assert metrics.get_metrics().average_latency_ms in (10, 11)


# ---------------------------------------------------------------------
# Timestamps / duration
# ---------------------------------------------------------------------

def test_connection_duration():
    clock = Clock()
    metrics = ConnectionMetrics(clock=clock)
    assert metrics.connection_duration_ms() is None

    metrics.record_connect()
    clock.now += 250
    assert metrics.connection_duration_ms() == 250

    metrics.record_disconnect()
    clock.now += 1000
    assert metrics.connection_duration_ms() == 250


def test_reset_and_reset_reconnect_counters():
    metrics = ConnectionMetrics()
    metrics.record_connect()
    metrics.record_message_sent()
    metrics.record_reconnect_attempt()
    metrics.record_reconnect_success()

    metrics.reset_reconnect_counters()
    snapshot = metrics.get_metrics()
    assert snapshot.reconnect_attempts == 0
    assert snapshot.reconnect_successes == 0
    assert snapshot.messages_sent == 1

    metrics.reset()
    assert metrics.get_metrics().to_dict() == ConnectionMetrics().get_metrics().to_dict()
