"""
Typed lifecycle events published by the connection.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- Events are ephemeral; nothing retains them after dispatch.
- Every event carries event_type (discriminant) and ts_ms (wall clock).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from transport.enums.reason import DisconnectReason, ErrorKind
from transport.enums.state import ConnectionState


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """Event kinds a collaborator can subscribe to."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    ERROR = "error"
    RECONNECT_ATTEMPT = "reconnect_attempt"
    STATE_CHANGE = "state_change"
    MESSAGE_SENT = "message_sent"
    AUTH_CHANGE = "auth_change"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: wall-clock timestamp at emission
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Lifecycle
# =============================================================================

@dataclass(frozen=True)
class Connected(Event):
    """Socket opened. attempts = reconnection attempts it took (0 = first try)."""
    attempts: int


@dataclass(frozen=True)
class Disconnected(Event):
    """Socket closed, for whatever reason."""
    reason: DisconnectReason
    code: int
    reason_text: str
    was_authenticated: bool


@dataclass(frozen=True)
class StateChange(Event):
    """One state machine transition."""
    previous: ConnectionState
    current: ConnectionState


@dataclass(frozen=True)
class ReconnectAttempt(Event):
    """A reconnection attempt was scheduled to run after delay_ms."""
    attempt: int
    max_attempts: int
    delay_ms: int


@dataclass(frozen=True)
class AuthChange(Event):
    """Authenticated flag flipped (edge-triggered)."""
    is_authenticated: bool


# =============================================================================
# Traffic
# =============================================================================

@dataclass(frozen=True)
class Message(Event):
    """
    Inbound frame for collaborators.

    data: parsed JSON value (opaque to the transport)
    raw:  wire text as received
    """
    data: Any
    raw: str


@dataclass(frozen=True)
class MessageSent(Event):
    """Outbound payload handed to the socket."""
    payload: Any
    serialized: str


# =============================================================================
# Errors
# =============================================================================

@dataclass(frozen=True)
class Error(Event):
    """
    Something went wrong.

    kind CONNECTION: socket could not be created, or reconnection is
    exhausted (terminal). SEND and PARSE are transient and leave the
    connection up.
    """
    kind: ErrorKind
    message: str
    error: BaseException | None = None
