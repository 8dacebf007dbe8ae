"""
Loopback gateway for the development game server.

Responsibilities:
- Answer heartbeat PINGs with PONG
- Acknowledge every other JSON command (echoing it back)
- Report malformed frames without dropping the connection

Still NOT responsible for:
- Any game rules or state
- Authentication
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

from uuid import uuid4

from observability.logger import log_event
from protocol.frames import FrameDecodeError, decode_frame, frame_type

from spec import FRAME_TYPE_ACK, FRAME_TYPE_ERROR, FRAME_TYPE_PING, FRAME_TYPE_PONG


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """JSON messages to send back to the client, in order."""
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# LoopbackGateway
# ------------------------------------------------------------------

class LoopbackGateway:
    """One gateway == one client websocket."""

    def __init__(self, *, debug: bool = False) -> None:
        self.session_id: str | None = None
        self.commands_seen = 0
        self._debug = debug

    def on_ws_connect(self) -> GatewayResult:
        self.session_id = _new_session_id()
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            "session_id": self.session_id,
        })
        return GatewayResult(outbound_json=({
            "type": "SESSION_INIT",
            "session_id": self.session_id,
        },))

    def on_ws_disconnect(self, reason: str | None = None) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            "session_id": self.session_id,
            "reason": reason,
            "commands_seen": self.commands_seen,
        })

    def on_frame(self, payload: str | bytes) -> GatewayResult:
        """One inbound frame. Binary frames are accepted if they hold UTF-8 JSON."""
        try:
            data = decode_frame(payload)
        except FrameDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session_id,
                "error": str(e),
                "payload_preview": payload[:100] if isinstance(payload, str) else repr(payload[:100]),
            })
            return GatewayResult(outbound_json=({
                "type": FRAME_TYPE_ERROR,
                "reason": "malformed_json",
            },))

        if frame_type(data) == FRAME_TYPE_PING:
            return GatewayResult(outbound_json=({
                "type": FRAME_TYPE_PONG,
                "ts_ms": _now_ms(),
            },))

        self.commands_seen += 1
        if self._debug:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "COMMAND_RECEIVED",
                "session_id": self.session_id,
                "command_preview": json.dumps(data)[:100],
            })

        return GatewayResult(outbound_json=({
            "type": FRAME_TYPE_ACK,
            "seq": self.commands_seen,
            "command": data,
        },))
