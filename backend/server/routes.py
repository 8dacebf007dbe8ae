"""
Route registration for the development game server.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire LoopbackGateway to the WebSocket lifecycle
- Pull configuration from app.state
"""

from __future__ import annotations

import json

from fastapi import WebSocket, WebSocketDisconnect, FastAPI

from observability.logger import log_event
from server.gateway import LoopbackGateway, GatewayResult

from spec import WS_PATH


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket(WS_PATH)
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = LoopbackGateway(debug=app.state.config.debug)

        try:
            await _flush_gateway_result(ws, gateway.on_ws_connect())

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    await _flush_gateway_result(ws, gateway.on_frame(msg["text"]))

                elif msg.get("bytes") is not None:
                    await _flush_gateway_result(ws, gateway.on_frame(msg["bytes"]))

        except WebSocketDisconnect:
            gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            gateway.on_ws_disconnect(reason="server_error")


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))
