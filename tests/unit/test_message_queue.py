# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from transport.errors import QueueClearedError, QueueOverflowError
from transport.queue import MessageQueue


# ---------------------------------------------------------------------
# FIFO
# ---------------------------------------------------------------------

def test_flush_returns_enqueue_order_and_empties():
    q = MessageQueue(max_size=10)

    q.enqueue("A")
    q.enqueue("B")
    q.enqueue("C")

    assert [m.payload for m in q.flush()] == ["A", "B", "C"]
    assert q.is_empty()
    assert len(q) == 0
    assert q.flush() == []


def test_peek_and_dequeue():
    q = MessageQueue(max_size=10)
    assert q.peek() is None
    assert q.dequeue() is None

    q.enqueue({"type": "MOVE"})
    q.enqueue({"type": "JUMP"})

    peeked = q.peek()
    assert peeked is not None and peeked.payload == {"type": "MOVE"}
    assert q.size == 2

    first = q.dequeue()
    assert first is not None and first.payload == {"type": "MOVE"}
    assert q.size == 1


def test_entries_keep_callbacks():
    q = MessageQueue(max_size=1)
    calls: list[str] = []

    message = q.enqueue("x", on_success=lambda: calls.append("ok"))

    assert message.on_success is not None
    assert message.on_error is None
    message.on_success()
    assert calls == ["ok"]


# ---------------------------------------------------------------------
# Overflow
# ---------------------------------------------------------------------

def test_overflow_evicts_oldest_and_notifies_it():
    q = MessageQueue(max_size=2)
    errors: list[Exception] = []

    q.enqueue("A", on_error=errors.append)
    q.enqueue("B")
    q.enqueue("C")

    assert [m.payload for m in q.flush()] == ["B", "C"]
    assert len(errors) == 1
    assert isinstance(errors[0], QueueOverflowError)
    assert q.drops.overflow == 1


def test_size_never_exceeds_max():
    q = MessageQueue(max_size=3)
    for i in range(10):
        q.enqueue(i)
        assert q.size <= 3

    assert q.is_full()
    assert [m.payload for m in q.flush()] == [7, 8, 9]


def test_zero_capacity_drops_everything():
    q = MessageQueue(max_size=0)
    errors: list[Exception] = []

    q.enqueue("A", on_error=errors.append)

    assert q.is_empty()
    assert q.is_full()
    assert len(errors) == 1
    assert isinstance(errors[0], QueueOverflowError)


def test_raising_on_error_is_contained():
    q = MessageQueue(max_size=1)

    def boom(_: Exception) -> None:
        raise RuntimeError("callback bug")

    q.enqueue("A", on_error=boom)
    q.enqueue("B")

    assert [m.payload for m in q.flush()] == ["B"]


def test_negative_max_size_rejected():
    with pytest.raises(ValueError):
        MessageQueue(max_size=-1)


# ---------------------------------------------------------------------
# Clear
# ---------------------------------------------------------------------

def test_clear_is_silent_by_default():
    q = MessageQueue(max_size=5)
    errors: list[Exception] = []

    q.enqueue("A", on_error=errors.append)
    q.enqueue("B", on_error=errors.append)
    q.clear()

    assert q.is_empty()
    assert errors == []
    assert q.drops.cleared == 2


def test_clear_can_notify_errors():
    q = MessageQueue(max_size=5)
    errors: list[Exception] = []

    q.enqueue("A", on_error=errors.append)
    q.enqueue("B", on_error=errors.append)
    q.clear(notify_errors=True)

    assert len(errors) == 2
    assert all(isinstance(e, QueueClearedError) for e in errors)


def test_snapshot():
    q = MessageQueue(max_size=1)
    q.enqueue("A")
    q.enqueue("B")

    assert q.snapshot() == {
        "size": 1,
        "max_size": 1,
        "dropped_overflow": 1,
        "dropped_cleared": 0,
    }
