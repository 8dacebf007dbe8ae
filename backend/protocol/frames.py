# backend/protocol/frames.py
"""
JSON text framing for the game server connection.

- Outbound: the caller's opaque command, serialized verbatim by the
  supplied serializer (default: compact json.dumps)
- Heartbeat control frame out: {"type":"PING"}
- Control frame in: {"type":"PONG", ...}, consumed by the transport
- Any other inbound JSON value is forwarded untouched

Usage example:

    text = encode_payload(command)
    socket.send(text)

    data = decode_frame(raw)
    if is_pong(data):
        heartbeat.handle_pong()
"""

from __future__ import annotations

import json
from typing import Any, Callable

from spec import FRAME_TYPE_PING, FRAME_TYPE_PONG


Serializer = Callable[[Any], str]


# -------------------------
# Exceptions
# -------------------------

class FrameError(Exception):
    """Base class for framing errors."""


class FrameDecodeError(FrameError):
    """Inbound frame is not valid UTF-8 JSON."""


class FrameEncodeError(FrameError):
    """Outbound payload could not be serialized to text."""


# -------------------------
# Encoding
# -------------------------

def json_serializer(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def encode_payload(payload: Any, serializer: Serializer = json_serializer) -> str:
    """
    Serialize an opaque payload to a text frame.

    Raises:
        FrameEncodeError wrapping whatever the serializer raised,
        or if it returned something other than str.
    """
    try:
        text = serializer(payload)
    except Exception as e:  # pylint: disable=broad-exception-caught
        raise FrameEncodeError(f"serialization failed: {e}") from e

    if not isinstance(text, str):
        raise FrameEncodeError(
            f"serializer returned {type(text).__name__}, expected str"
        )
    return text


def ping_frame() -> str:
    return json_serializer({"type": FRAME_TYPE_PING})


# -------------------------
# Decoding
# -------------------------

def decode_frame(raw: str | bytes) -> Any:
    """
    Parse one inbound text frame.

    Raises:
        FrameDecodeError on invalid UTF-8, invalid JSON, or JSON the parser
        refuses (oversized integer literals, nesting past the recursion limit).
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"invalid utf-8: {e}") from e

    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError is a ValueError
        raise FrameDecodeError(f"invalid json: {e}") from e


def is_pong(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == FRAME_TYPE_PONG


def frame_type(data: Any) -> str | None:
    """`type` field of an object frame, None for anything else."""
    if isinstance(data, dict):
        value = data.get("type")
        return value if isinstance(value, str) else None
    return None
