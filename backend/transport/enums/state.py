"""
Connection state enumeration.

Rules:
- Exactly one state is active at a time.
- Only Connection writes the state, and only through its transition helper.
- No behavior, no helper methods, no side effects.
"""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """
    Lifecycle of the single server connection.

    CONNECTING:   socket opening, connection timeout armed
    CONNECTED:    socket open, heartbeat running, queue drained
    CLOSING:      caller-initiated close in progress
    CLOSED:       no socket, no pending reconnection
    RECONNECTING: no socket, reconnection timer pending
    """

    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
    RECONNECTING = "RECONNECTING"
