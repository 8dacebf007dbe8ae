"""
Process-wide Connection handle.

For clients that genuinely need one shared connection (UI panels, key
bindings and the state reducer all talking to the same server).

Lifecycle:
- init_connection() once at startup
- get_connection() anywhere afterwards
- teardown_connection() at shutdown (destroys and forgets the instance)

Nothing is created lazily: get_connection() before init is an error.
"""

from __future__ import annotations

from typing import Any

from config import TransportConfig
from transport.connection import Connection


_CONNECTION: Connection | None = None


def init_connection(config: TransportConfig | None = None, **deps: Any) -> Connection:
    """
    Create the shared Connection.

    Safe to call multiple times; subsequent calls return the existing
    instance and ignore their arguments. deps are forwarded to Connection
    (socket_factory, scheduler, serializer).
    """
    global _CONNECTION
    if _CONNECTION is None:
        _CONNECTION = Connection(config, **deps)
    return _CONNECTION


def get_connection() -> Connection:
    if _CONNECTION is None:
        raise RuntimeError("Connection not initialized. Call init_connection() at startup.")
    return _CONNECTION


def teardown_connection() -> None:
    """Destroy the shared Connection (if any) and clear the handle."""
    global _CONNECTION
    connection = _CONNECTION
    _CONNECTION = None
    if connection is not None:
        connection.destroy()
