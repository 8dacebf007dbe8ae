"""
Transport exception hierarchy.

These are values handed to on_error callbacks and error events. The only
ones raised across the public boundary are TransportDestroyedError
(connect()/send() after destroy()).
"""

from __future__ import annotations


class TransportError(Exception):
    """Base class for transport errors."""


class TransportDestroyedError(TransportError):
    """The connection was destroyed; it cannot be used again."""


class NotConnectedError(TransportError):
    """Not connected and queuing was disallowed."""


class QueueFullError(TransportError):
    """Not connected and the outbound queue is at capacity."""


class QueueOverflowError(TransportError):
    """A queued message was evicted to admit a newer one."""


class QueueClearedError(TransportError):
    """A queued message was discarded by clear(notify_errors=True)."""


class SocketNotOpenError(TransportError):
    """send() on a socket that is not open (yet, or any more)."""
