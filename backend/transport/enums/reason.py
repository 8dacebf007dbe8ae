"""
Disconnect reason and error kind enumerations.

Both are carried on events; neither encodes behavior.
"""

from __future__ import annotations

from enum import Enum


class DisconnectReason(str, Enum):
    """
    Why the connection closed.

    MANUAL:        disconnect() / destroy() was called
    NETWORK_ERROR: abnormal closure (1006) or socket creation failure
    SERVER_CLOSED: server closed with a normal/going-away/protocol code
    TIMEOUT:       connection-establish timeout or heartbeat liveness timeout
    UNKNOWN:       anything else
    """

    MANUAL = "MANUAL"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_CLOSED = "SERVER_CLOSED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class ErrorKind(str, Enum):
    """
    Error taxonomy surfaced through the `error` event.

    Only CONNECTION (reconnection exhausted) is terminal; the others are
    recovered locally and never tear down the connection.
    """

    CONNECTION = "connection"
    SEND = "send"
    PARSE = "parse"
    UNKNOWN = "unknown"
