"""
Resilient connection to the authoritative game server.

Responsibilities:
- Own the single socket and the ConnectionState machine
- Wire MessageQueue, ConnectionMetrics, HeartbeatManager and
  ReconnectionManager together
- Expose connect / disconnect / send / subscribe / destroy
- Publish every transition and notable occurrence as a typed event

NOT responsible for:
- Interpreting payloads (they are opaque both ways)
- Rendering, input, or game-state reduction (collaborators subscribe)
- Authentication beyond forwarding an opaque token

Threading model:
- Single-threaded. Every transition is driven by exactly one public call,
  one socket callback, or one timer callback on the same event loop.
- Public calls never block; they return a definite result or "queued".
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from config import TransportConfig
from observability.logger import ComponentLogger
from observability.metrics import ConnectionMetrics, MetricsSnapshot
from protocol.frames import (
    FrameDecodeError,
    FrameEncodeError,
    Serializer,
    decode_frame,
    encode_payload,
    frame_type,
    is_pong,
    json_serializer,
    ping_frame,
)
from transport.emitter import EventEmitter, Listener
from transport.enums.reason import DisconnectReason, ErrorKind
from transport.enums.state import ConnectionState
from transport.errors import (
    NotConnectedError,
    QueueFullError,
    TransportDestroyedError,
)
from transport.events import (
    AuthChange,
    Connected,
    Disconnected,
    Error,
    Event,
    EventType,
    Message,
    MessageSent,
    ReconnectAttempt,
    StateChange,
)
from transport.heartbeat import HeartbeatManager
from transport.queue import MessageQueue, OnError, OnSuccess
from transport.reconnection import BackoffPolicy, ReconnectionManager
from transport.socket import (
    Socket,
    SocketFactory,
    SocketHandlers,
    websockets_socket_factory,
)
from transport.timers import AsyncioScheduler, Scheduler, TimerHandle

from spec import (
    CLOSE_ABNORMAL,
    CLOSE_NORMAL,
    SERVER_CLOSE_CODE_MAX,
    SERVER_CLOSE_CODE_MIN,
)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    """Wall-clock milliseconds for event timestamps."""
    return time.time_ns() // 1_000_000


# ------------------------------------------------------------------
# Send result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class SendResult:
    """
    Outcome of Connection.send().

    success: handed to the socket
    queued:  parked in the outbound queue until the next connect
    error:   human-readable reason when neither
    """
    success: bool
    queued: bool
    ts_ms: int
    error: str | None = None


# ------------------------------------------------------------------
# Connection
# ------------------------------------------------------------------

class Connection:
    """
    One client == one Connection == at most one live socket.

    Collaborators construct it with a TransportConfig, subscribe to events,
    call connect(), and send opaque payloads. The scheduler, socket factory
    and serializer are injectable; defaults use asyncio and `websockets`.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        socket_factory: SocketFactory | None = None,
        scheduler: Scheduler | None = None,
        serializer: Serializer = json_serializer,
    ) -> None:
        self._config = config or TransportConfig()
        debug = self._config.debug

        self._scheduler = scheduler or AsyncioScheduler(debug=debug)
        self._socket_factory = socket_factory or websockets_socket_factory(
            headers=self._config.handshake_headers(),
            debug=debug,
        )
        self._serializer = serializer
        self._log = ComponentLogger("connection", debug=debug)

        # Components
        self._queue = MessageQueue(max_size=self._config.max_queue_size, debug=debug)
        self._reconnection = ReconnectionManager(
            policy=BackoffPolicy(
                max_attempts=self._config.max_reconnect_attempts,
                initial_delay_ms=self._config.reconnect_delay_ms,
                max_delay_ms=self._config.max_reconnect_delay_ms,
                multiplier=self._config.reconnect_delay_multiplier,
            ),
            scheduler=self._scheduler,
            debug=debug,
        )
        self._heartbeat = HeartbeatManager(
            scheduler=self._scheduler,
            interval_ms=self._config.heartbeat_interval_ms,
            timeout_ms=self._config.heartbeat_timeout_ms,
            debug=debug,
        )
        self._metrics = ConnectionMetrics(
            queue_size=lambda: self._queue.size,
            reconnect_delay_ms=lambda: self._reconnection.current_delay_ms,
        )
        self._emitter = EventEmitter(debug=debug)

        # Socket ownership
        self._socket: Socket | None = None
        self._socket_generation = 0
        self._connection_timeout: TimerHandle | None = None

        # Flags
        self._state = ConnectionState.CLOSED
        self._authenticated = False
        self._manual_disconnect = False
        self._destroyed = False

        self._log.debug("CONNECTION_INITIALIZED", url=self._config.resolve_url())

    # ------------------------------------------------------------------
    # Public API: connection
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the socket.

        No-op if already CONNECTING or CONNECTED.

        Raises:
            TransportDestroyedError after destroy().
        """
        self._ensure_alive()

        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            self._log.debug("CONNECT_IGNORED", state=self._state.value)
            return

        self._manual_disconnect = False
        self._reconnection.cancel()
        self._set_state(ConnectionState.CONNECTING)
        self._open_socket()

    def disconnect(self) -> None:
        """Caller-initiated close. Suppresses auto-reconnection until connect()."""
        self._manual_disconnect = True
        self._reconnection.cancel()
        self._heartbeat.stop()
        self._close_socket(code=CLOSE_NORMAL, reason=DisconnectReason.MANUAL)

    def destroy(self) -> None:
        """
        Terminal teardown. Idempotent.

        Leaves no timers, no listeners, no queued messages. Afterwards
        connect() and send() raise TransportDestroyedError.
        """
        if self._destroyed:
            return

        self.disconnect()
        self._destroyed = True
        self._emitter.clear()
        self._queue.clear()
        self._log.debug("CONNECTION_DESTROYED")

    # ------------------------------------------------------------------
    # Public API: messaging
    # ------------------------------------------------------------------

    def send(
        self,
        payload: Any,
        *,
        queue: bool = True,
        on_success: OnSuccess | None = None,
        on_error: OnError | None = None,
    ) -> SendResult:
        """
        Send an opaque payload.

        CONNECTED: serialize and transmit now; on_success/on_error run
        before this returns.
        Otherwise: enqueue (queue=True, queue not full) and report queued,
        or fail and call on_error.

        Raises:
            TransportDestroyedError after destroy().
        """
        self._ensure_alive()
        ts_ms = _now_ms()

        socket = self._socket
        if self._state is not ConnectionState.CONNECTED or socket is None:
            if queue and not self._queue.is_full():
                self._queue.enqueue(payload, on_success=on_success, on_error=on_error)
                return SendResult(success=False, queued=True, ts_ms=ts_ms)

            error = (
                QueueFullError("Not connected to server and queue is full")
                if queue
                else NotConnectedError("Not connected to server")
            )
            self._invoke_on_error(on_error, error)
            return SendResult(success=False, queued=False, ts_ms=ts_ms, error=str(error))

        try:
            serialized = encode_payload(payload, self._serializer)
            socket.send(serialized)
        except Exception as e:  # pylint: disable=broad-exception-caught
            message = f"Failed to send message: {e}"
            self._metrics.record_error()
            self._log.error(
                "SEND_FAILED",
                error=repr(e),
                serialization=isinstance(e, FrameEncodeError),
            )
            self._emit(Error(
                event_type=EventType.ERROR,
                ts_ms=ts_ms,
                kind=ErrorKind.SEND,
                message=message,
                error=e,
            ))
            self._invoke_on_error(on_error, e)
            return SendResult(success=False, queued=False, ts_ms=ts_ms, error=message)

        self._metrics.record_message_sent()
        self._emit(MessageSent(
            event_type=EventType.MESSAGE_SENT,
            ts_ms=ts_ms,
            payload=payload,
            serialized=serialized,
        ))
        self._invoke_on_success(on_success)
        self._log.debug("MESSAGE_SENT", bytes=len(serialized))

        return SendResult(success=True, queued=False, ts_ms=ts_ms)

    def clear_queue(self) -> None:
        self._queue.clear()
        self._log.debug("QUEUE_CLEARED")

    # ------------------------------------------------------------------
    # Public API: events
    # ------------------------------------------------------------------

    def on(self, event_type: EventType, listener: Listener) -> None:
        self._emitter.on(event_type, listener)

    def off(self, event_type: EventType, listener: Listener) -> None:
        self._emitter.off(event_type, listener)

    def once(self, event_type: EventType, listener: Listener) -> None:
        self._emitter.once(event_type, listener)

    # ------------------------------------------------------------------
    # Public API: auth / state / metrics
    # ------------------------------------------------------------------

    def set_authenticated(self, is_authenticated: bool) -> None:
        """Edge-triggered: auth_change fires only when the value changes."""
        if self._authenticated == is_authenticated:
            return
        self._authenticated = is_authenticated
        self._emit(AuthChange(
            event_type=EventType.AUTH_CHANGE,
            ts_ms=_now_ms(),
            is_authenticated=is_authenticated,
        ))
        self._log.debug("AUTH_CHANGED", is_authenticated=is_authenticated)

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def get_metrics(self) -> MetricsSnapshot:
        return self._metrics.get_metrics()

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def _open_socket(self) -> None:
        url = self._config.resolve_url()
        stale = self._socket
        if stale is not None:
            self._socket = None
            try:
                stale.close(CLOSE_NORMAL, "superseded")
            except Exception as e:  # pylint: disable=broad-exception-caught
                self._log.error("SOCKET_CLOSE_FAILED", error=repr(e))

        self._socket_generation += 1
        generation = self._socket_generation

        handlers = SocketHandlers(
            on_open=lambda: self._on_socket_open(generation),
            on_message=lambda raw: self._on_socket_message(generation, raw),
            on_close=lambda code, reason: self._on_socket_close(generation, code, reason),
        )

        self._log.debug("SOCKET_OPENING", url=url)
        try:
            self._socket = self._socket_factory(url, handlers)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._socket = None
            self._metrics.record_error()
            self._log.error("SOCKET_CREATE_FAILED", url=url, error=repr(e))
            self._emit(Error(
                event_type=EventType.ERROR,
                ts_ms=_now_ms(),
                kind=ErrorKind.CONNECTION,
                message=f"Failed to create socket: {e}",
                error=e,
            ))
            self._handle_close(
                code=CLOSE_ABNORMAL,
                reason_text=str(e),
                forced_reason=DisconnectReason.NETWORK_ERROR,
            )
            return

        self._connection_timeout = self._scheduler.call_later(
            self._config.connection_timeout_ms,
            self._on_connection_timeout,
        )

    def _close_socket(self, *, code: int, reason: DisconnectReason) -> None:
        """
        Detach and close the current socket, then run close handling now.

        Callbacks still in flight from the detached socket are ignored.
        With no socket attached this only settles the state to CLOSED.
        """
        self._cancel_connection_timeout()
        self._heartbeat.stop()

        socket = self._socket
        if socket is None:
            self._set_state(ConnectionState.CLOSED)
            return

        if reason is DisconnectReason.MANUAL:
            self._set_state(ConnectionState.CLOSING)

        self._socket = None
        try:
            socket.close(code, reason.value)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("SOCKET_CLOSE_FAILED", error=repr(e))

        self._handle_close(code=code, reason_text=reason.value, forced_reason=reason)

    def _is_current(self, generation: int) -> bool:
        return generation == self._socket_generation and self._socket is not None

    # ------------------------------------------------------------------
    # Socket callbacks
    # ------------------------------------------------------------------

    def _on_socket_open(self, generation: int) -> None:
        if not self._is_current(generation):
            return

        self._cancel_connection_timeout()
        self._set_state(ConnectionState.CONNECTED)
        self._metrics.record_connect()

        attempts = self._reconnection.attempt_count
        if attempts > 0:
            self._metrics.record_reconnect_success()
        self._reconnection.reset()

        self._emit(Connected(
            event_type=EventType.CONNECTED,
            ts_ms=_now_ms(),
            attempts=attempts,
        ))
        self._log.debug("CONNECTED", attempts=attempts)

        self._start_heartbeat()
        self._flush_queue()

    def _on_socket_message(self, generation: int, raw: str | bytes) -> None:
        if not self._is_current(generation):
            return

        ts_ms = _now_ms()
        self._metrics.record_message_received()

        try:
            data = decode_frame(raw)
        except FrameDecodeError as e:
            self._metrics.record_error()
            self._log.error("FRAME_PARSE_FAILED", error=str(e))
            self._emit(Error(
                event_type=EventType.ERROR,
                ts_ms=ts_ms,
                kind=ErrorKind.PARSE,
                message=f"Failed to parse message: {e}",
                error=e,
            ))
            return

        if is_pong(data):
            self._heartbeat.handle_pong()
            return

        text = raw if isinstance(raw, str) else bytes(raw).decode("utf-8")
        self._emit(Message(
            event_type=EventType.MESSAGE,
            ts_ms=ts_ms,
            data=data,
            raw=text,
        ))
        self._log.debug("MESSAGE_RECEIVED", frame_type=frame_type(data))

    def _on_socket_close(self, generation: int, code: int, reason_text: str) -> None:
        if not self._is_current(generation):
            return

        self._socket = None
        self._handle_close(code=code, reason_text=reason_text, forced_reason=None)

    def _handle_close(
        self,
        *,
        code: int,
        reason_text: str,
        forced_reason: DisconnectReason | None,
    ) -> None:
        self._cancel_connection_timeout()
        self._heartbeat.stop()
        self._metrics.record_disconnect()

        was_authenticated = self._authenticated
        self._authenticated = False

        reason = self._disconnect_reason(code, forced_reason)
        self._set_state(ConnectionState.CLOSED)

        self._emit(Disconnected(
            event_type=EventType.DISCONNECTED,
            ts_ms=_now_ms(),
            reason=reason,
            code=code,
            reason_text=reason_text,
            was_authenticated=was_authenticated,
        ))
        self._log.debug("DISCONNECTED", code=code, reason=reason.value)

        # A disconnected listener may already have called connect()
        if self._state is not ConnectionState.CLOSED:
            return

        if not self._manual_disconnect and self._config.auto_reconnect:
            self._schedule_reconnect()

    def _disconnect_reason(
        self,
        code: int,
        forced_reason: DisconnectReason | None,
    ) -> DisconnectReason:
        if self._manual_disconnect:
            return DisconnectReason.MANUAL
        if forced_reason is not None:
            return forced_reason
        if code == CLOSE_ABNORMAL:
            return DisconnectReason.NETWORK_ERROR
        if SERVER_CLOSE_CODE_MIN <= code <= SERVER_CLOSE_CODE_MAX:
            return DisconnectReason.SERVER_CLOSED
        return DisconnectReason.UNKNOWN

    def _on_connection_timeout(self) -> None:
        self._connection_timeout = None
        if self._state is not ConnectionState.CONNECTING:
            return

        self._log.debug("CONNECTION_TIMEOUT", timeout_ms=self._config.connection_timeout_ms)
        self._close_socket(code=CLOSE_NORMAL, reason=DisconnectReason.TIMEOUT)

    def _cancel_connection_timeout(self) -> None:
        timer = self._connection_timeout
        self._connection_timeout = None
        if timer is not None:
            timer.cancel()

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        self._set_state(ConnectionState.RECONNECTING)
        self._reconnection.schedule(
            self._reconnect,
            self._on_reconnect_attempt,
            self._on_reconnect_exhausted,
        )

    def _reconnect(self) -> None:
        if self._destroyed:
            return
        self.connect()

    def _on_reconnect_attempt(self, attempt: int, max_attempts: int, delay_ms: int) -> None:
        self._metrics.record_reconnect_attempt()
        self._emit(ReconnectAttempt(
            event_type=EventType.RECONNECT_ATTEMPT,
            ts_ms=_now_ms(),
            attempt=attempt,
            max_attempts=max_attempts,
            delay_ms=delay_ms,
        ))
        self._log.debug(
            "RECONNECT_ATTEMPT",
            attempt=attempt,
            max_attempts=max_attempts,
            delay_ms=delay_ms,
        )

    def _on_reconnect_exhausted(self) -> None:
        self._set_state(ConnectionState.CLOSED)
        self._log.error(
            "RECONNECT_EXHAUSTED",
            max_attempts=self._reconnection.max_attempts,
        )
        self._emit(Error(
            event_type=EventType.ERROR,
            ts_ms=_now_ms(),
            kind=ErrorKind.CONNECTION,
            message="Maximum reconnection attempts exceeded",
        ))

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        if not self._heartbeat.enabled:
            self._log.debug("HEARTBEAT_DISABLED")
            return

        self._heartbeat.start(
            self._send_ping,
            self._on_heartbeat_timeout,
            self._metrics.record_latency,
        )

    def _send_ping(self) -> bool:
        socket = self._socket
        if self._state is not ConnectionState.CONNECTED or socket is None:
            return False

        try:
            socket.send(ping_frame())
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._metrics.record_error()
            self._emit(Error(
                event_type=EventType.ERROR,
                ts_ms=_now_ms(),
                kind=ErrorKind.SEND,
                message=f"Failed to send heartbeat ping: {e}",
                error=e,
            ))
            return False
        return True

    def _on_heartbeat_timeout(self) -> None:
        self._log.debug("HEARTBEAT_TIMEOUT")
        self._close_socket(code=CLOSE_NORMAL, reason=DisconnectReason.TIMEOUT)

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def _flush_queue(self) -> None:
        if self._queue.is_empty():
            return

        messages = self._queue.flush()
        self._log.debug("QUEUE_FLUSHING", count=len(messages))

        for message in messages:
            result = self.send(
                message.payload,
                on_success=message.on_success,
                on_error=message.on_error,
            )
            if not result.success and not result.queued:
                self._log.error("QUEUED_MESSAGE_FAILED", error=result.error)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise TransportDestroyedError("Connection has been destroyed")

    def _set_state(self, new_state: ConnectionState) -> None:
        if self._state is new_state:
            return

        previous = self._state
        self._state = new_state

        self._emit(StateChange(
            event_type=EventType.STATE_CHANGE,
            ts_ms=_now_ms(),
            previous=previous,
            current=new_state,
        ))
        self._log.debug("STATE_CHANGED", previous=previous.value, current=new_state.value)

    def _emit(self, event: Event) -> None:
        self._emitter.emit(event)

    def _invoke_on_success(self, on_success: OnSuccess | None) -> None:
        if on_success is None:
            return
        try:
            on_success()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("ON_SUCCESS_CALLBACK_FAILED", error=repr(e))

    def _invoke_on_error(self, on_error: OnError | None, error: Exception) -> None:
        if on_error is None:
            return
        try:
            on_error(error)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("ON_ERROR_CALLBACK_FAILED", error=repr(e))
