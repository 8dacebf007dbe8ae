# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from config import ServerConfig, TransportConfig, default_url


# ---------------------------------------------------------------------
# Endpoint resolution
# ---------------------------------------------------------------------

def test_dev_proxy_origin_keeps_host_and_port():
    assert default_url(host="localhost", port=3000) == "ws://localhost:3000/ws"


def test_other_origin_targets_backend_port():
    assert default_url(host="game.example", port=443, secure=True) == "wss://game.example:8080/ws"
    assert default_url(host="localhost", port=None) == "ws://localhost:8080/ws"


def test_explicit_url_wins():
    config = TransportConfig(url="ws://server:9000/play", origin_port=3000)
    assert config.resolve_url() == "ws://server:9000/play"


def test_handshake_headers_carry_bearer_token():
    assert TransportConfig().handshake_headers() == {}
    assert TransportConfig(auth_token="abc").handshake_headers() == {
        "Authorization": "Bearer abc",
    }


# ---------------------------------------------------------------------
# Defaults / validation
# ---------------------------------------------------------------------

def test_defaults():
    config = TransportConfig()

    assert config.max_reconnect_attempts == 10
    assert config.reconnect_delay_ms == 1000
    assert config.max_reconnect_delay_ms == 30000
    assert config.reconnect_delay_multiplier == 1.5
    assert config.auto_reconnect is True
    assert config.connection_timeout_ms == 10000
    assert config.heartbeat_interval_ms == 0
    assert config.heartbeat_timeout_ms == 10000
    assert config.max_queue_size == 100
    assert config.debug is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_reconnect_attempts": -1},
        {"reconnect_delay_ms": 5000, "max_reconnect_delay_ms": 1000},
        {"reconnect_delay_multiplier": 0.9},
        {"connection_timeout_ms": 0},
        {"heartbeat_interval_ms": -1},
        {"max_queue_size": -1},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        TransportConfig(**kwargs)


# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------

def test_transport_load_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GAME_WS_URL", "ws://example:1234/ws")
    monkeypatch.setenv("GAME_WS_AUTH_TOKEN", "tok")
    monkeypatch.setenv("GAME_WS_MAX_RECONNECT_ATTEMPTS", "3")
    monkeypatch.setenv("GAME_WS_RECONNECT_DELAY_MULTIPLIER", "2")
    monkeypatch.setenv("GAME_WS_AUTO_RECONNECT", "false")
    monkeypatch.setenv("GAME_WS_HEARTBEAT_INTERVAL_MS", "15000")
    monkeypatch.setenv("GAME_WS_DEBUG", "1")

    config = TransportConfig.load_from_env()

    assert config.resolve_url() == "ws://example:1234/ws"
    assert config.auth_token == "tok"
    assert config.max_reconnect_attempts == 3
    assert config.reconnect_delay_multiplier == 2.0
    assert config.auto_reconnect is False
    assert config.heartbeat_interval_ms == 15000
    assert config.debug is True


def test_transport_load_from_env_rejects_malformed_numbers(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GAME_WS_MAX_QUEUE_SIZE", "lots")
    with pytest.raises(ValueError):
        TransportConfig.load_from_env()


def test_server_load_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("GAME_SERVER_PORT", raising=False)
    monkeypatch.setenv("GAME_SERVER_DEBUG", "yes")

    config = ServerConfig.load_from_env()

    assert config.port == 8080
    assert config.debug is True
