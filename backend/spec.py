"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for transport behavior defaults.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Config defaults, close codes and control frames are imported from here.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Reconnection (exponential backoff, no jitter)
# =============================================================================

DEFAULT_MAX_RECONNECT_ATTEMPTS: Final[int] = 10
DEFAULT_RECONNECT_DELAY_MS: Final[int] = 1_000
DEFAULT_MAX_RECONNECT_DELAY_MS: Final[int] = 30_000
DEFAULT_RECONNECT_DELAY_MULTIPLIER: Final[float] = 1.5
DEFAULT_AUTO_RECONNECT: Final[bool] = True

# =============================================================================
# Connection establishment
# =============================================================================

DEFAULT_CONNECTION_TIMEOUT_MS: Final[int] = 10_000

# =============================================================================
# Heartbeat (0 = disabled)
# =============================================================================

DEFAULT_HEARTBEAT_INTERVAL_MS: Final[int] = 0
DEFAULT_HEARTBEAT_TIMEOUT_MS: Final[int] = 10_000

# =============================================================================
# Outbound queue
# =============================================================================

DEFAULT_MAX_QUEUE_SIZE: Final[int] = 100

# =============================================================================
# Metrics
# =============================================================================

LATENCY_WINDOW_SIZE: Final[int] = 10

# =============================================================================
# WebSocket close codes (RFC 6455)
# =============================================================================

CLOSE_NORMAL: Final[int] = 1000
CLOSE_ABNORMAL: Final[int] = 1006

# Codes treated as "server closed the session" when not manual
SERVER_CLOSE_CODE_MIN: Final[int] = 1000
SERVER_CLOSE_CODE_MAX: Final[int] = 1003

# =============================================================================
# Control frames (JSON text)
# =============================================================================

FRAME_TYPE_PING: Final[str] = "PING"
FRAME_TYPE_PONG: Final[str] = "PONG"
FRAME_TYPE_ACK: Final[str] = "ACK"
FRAME_TYPE_ERROR: Final[str] = "ERROR"

# =============================================================================
# Endpoint resolution
# =============================================================================

DEV_PROXY_PORT: Final[int] = 3000
BACKEND_PORT: Final[int] = 8080
WS_PATH: Final[str] = "/ws"
DEFAULT_ORIGIN_HOST: Final[str] = "localhost"

# Max inbound frame size accepted by the websocket adapter
MAX_FRAME_BYTES: Final[int] = 2**22
