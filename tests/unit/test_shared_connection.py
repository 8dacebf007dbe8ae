# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from transport import shared


@pytest.fixture(autouse=True)
def _reset_shared():
    yield
    shared.teardown_connection()


def test_get_before_init_raises():
    with pytest.raises(RuntimeError):
        shared.get_connection()


def test_init_is_idempotent(scheduler, sockets):
    first = shared.init_connection(socket_factory=sockets, scheduler=scheduler)
    second = shared.init_connection(socket_factory=sockets, scheduler=scheduler)

    assert first is second
    assert shared.get_connection() is first


def test_teardown_destroys_and_forgets(scheduler, sockets):
    connection = shared.init_connection(socket_factory=sockets, scheduler=scheduler)

    shared.teardown_connection()

    assert connection.destroyed
    with pytest.raises(RuntimeError):
        shared.get_connection()
