"""
Transport configuration.

Responsibilities:
- Hold every tunable of the connection core
- Read environment variables
- Provide a typed, immutable config object
- Resolve the server endpoint when no explicit url is configured

Non-responsibilities:
- No connection logic
- No protocol constants (see spec.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from spec import (
    BACKEND_PORT,
    DEFAULT_AUTO_RECONNECT,
    DEFAULT_CONNECTION_TIMEOUT_MS,
    DEFAULT_HEARTBEAT_INTERVAL_MS,
    DEFAULT_HEARTBEAT_TIMEOUT_MS,
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_MAX_RECONNECT_DELAY_MS,
    DEFAULT_ORIGIN_HOST,
    DEFAULT_RECONNECT_DELAY_MS,
    DEFAULT_RECONNECT_DELAY_MULTIPLIER,
    DEV_PROXY_PORT,
    WS_PATH,
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return default if raw is None else int(raw)


def default_url(*, host: str, port: int | None, secure: bool = False) -> str:
    """
    Derive the websocket endpoint from the client's own origin.

    Development (origin on the dev proxy port): same host/port, /ws path.
    Otherwise: connect straight to the backend port on the same host.
    """
    scheme = "wss" if secure else "ws"
    if port == DEV_PROXY_PORT:
        return f"{scheme}://{host}:{port}{WS_PATH}"
    return f"{scheme}://{host}:{BACKEND_PORT}{WS_PATH}"


@dataclass(frozen=True)
class TransportConfig:
    """
    Immutable transport configuration.

    Constructed once by the embedding client and passed to Connection.
    All durations are milliseconds.
    """

    # ------------------------------------------------------------------
    # Endpoint
    # ------------------------------------------------------------------

    url: str = ""
    origin_host: str = DEFAULT_ORIGIN_HOST
    origin_port: int | None = None
    secure: bool = False
    auth_token: str | None = None

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    max_reconnect_delay_ms: int = DEFAULT_MAX_RECONNECT_DELAY_MS
    reconnect_delay_multiplier: float = DEFAULT_RECONNECT_DELAY_MULTIPLIER
    auto_reconnect: bool = DEFAULT_AUTO_RECONNECT

    # ------------------------------------------------------------------
    # Timeouts / liveness
    # ------------------------------------------------------------------

    connection_timeout_ms: int = DEFAULT_CONNECTION_TIMEOUT_MS
    heartbeat_interval_ms: int = DEFAULT_HEARTBEAT_INTERVAL_MS
    heartbeat_timeout_ms: int = DEFAULT_HEARTBEAT_TIMEOUT_MS

    # ------------------------------------------------------------------
    # Queue / observability
    # ------------------------------------------------------------------

    max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE
    debug: bool = False

    def __post_init__(self) -> None:
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")
        if self.reconnect_delay_ms < 0:
            raise ValueError("reconnect_delay_ms must be >= 0")
        if self.max_reconnect_delay_ms < self.reconnect_delay_ms:
            raise ValueError("max_reconnect_delay_ms must be >= reconnect_delay_ms")
        if self.reconnect_delay_multiplier < 1.0:
            raise ValueError("reconnect_delay_multiplier must be >= 1.0")
        if self.connection_timeout_ms <= 0:
            raise ValueError("connection_timeout_ms must be > 0")
        if self.heartbeat_interval_ms < 0:
            raise ValueError("heartbeat_interval_ms must be >= 0")
        if self.heartbeat_timeout_ms <= 0:
            raise ValueError("heartbeat_timeout_ms must be > 0")
        if self.max_queue_size < 0:
            raise ValueError("max_queue_size must be >= 0")

    def resolve_url(self) -> str:
        """Explicit url if configured, else derived from the origin."""
        if self.url:
            return self.url
        return default_url(
            host=self.origin_host,
            port=self.origin_port,
            secure=self.secure,
        )

    def handshake_headers(self) -> dict[str, str]:
        """Headers forwarded on the websocket handshake (opaque token only)."""
        if not self.auth_token:
            return {}
        return {"Authorization": f"Bearer {self.auth_token}"}

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> TransportConfig:
        """
        Load configuration from GAME_WS_* environment variables.

        Unset variables fall back to spec.py defaults.

        Raises:
            ValueError on malformed numbers or invalid combinations.
        """
        origin_port = os.environ.get("GAME_WS_ORIGIN_PORT")
        return TransportConfig(
            url=os.environ.get("GAME_WS_URL", ""),
            origin_host=os.environ.get("GAME_WS_ORIGIN_HOST", DEFAULT_ORIGIN_HOST),
            origin_port=int(origin_port) if origin_port else None,
            secure=_env_bool("GAME_WS_SECURE", False),
            auth_token=os.environ.get("GAME_WS_AUTH_TOKEN"),

            max_reconnect_attempts=_env_int(
                "GAME_WS_MAX_RECONNECT_ATTEMPTS", DEFAULT_MAX_RECONNECT_ATTEMPTS
            ),
            reconnect_delay_ms=_env_int(
                "GAME_WS_RECONNECT_DELAY_MS", DEFAULT_RECONNECT_DELAY_MS
            ),
            max_reconnect_delay_ms=_env_int(
                "GAME_WS_MAX_RECONNECT_DELAY_MS", DEFAULT_MAX_RECONNECT_DELAY_MS
            ),
            reconnect_delay_multiplier=float(os.environ.get(
                "GAME_WS_RECONNECT_DELAY_MULTIPLIER",
                DEFAULT_RECONNECT_DELAY_MULTIPLIER,
            )),
            auto_reconnect=_env_bool("GAME_WS_AUTO_RECONNECT", DEFAULT_AUTO_RECONNECT),

            connection_timeout_ms=_env_int(
                "GAME_WS_CONNECTION_TIMEOUT_MS", DEFAULT_CONNECTION_TIMEOUT_MS
            ),
            heartbeat_interval_ms=_env_int(
                "GAME_WS_HEARTBEAT_INTERVAL_MS", DEFAULT_HEARTBEAT_INTERVAL_MS
            ),
            heartbeat_timeout_ms=_env_int(
                "GAME_WS_HEARTBEAT_TIMEOUT_MS", DEFAULT_HEARTBEAT_TIMEOUT_MS
            ),

            max_queue_size=_env_int("GAME_WS_MAX_QUEUE_SIZE", DEFAULT_MAX_QUEUE_SIZE),
            debug=_env_bool("GAME_WS_DEBUG", False),
        )


@dataclass(frozen=True)
class ServerConfig:
    """
    Immutable configuration for the local development game server.

    Constructed once at process startup by server.app.create_app().
    """

    env: str
    host: str
    port: int
    log_level: str
    debug: bool

    @staticmethod
    def load_from_env() -> ServerConfig:
        return ServerConfig(
            env=os.environ.get("ENV", "dev"),
            host=os.environ.get("GAME_SERVER_HOST", "0.0.0.0"),
            port=_env_int("GAME_SERVER_PORT", BACKEND_PORT),
            log_level=os.environ.get("LOG_LEVEL", "info"),
            debug=_env_bool("GAME_SERVER_DEBUG", False),
        )
