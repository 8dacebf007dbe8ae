"""
Message-oriented socket seam.

Core model:
- Connection owns exactly one Socket at a time and is the only caller.
- A Socket reports lifecycle through SocketHandlers callbacks:
    on_open()                 handshake completed
    on_message(raw)           one inbound text frame
    on_close(code, reason)    exactly once per socket, including a failed
                              handshake (reported as 1006)
- send() is synchronous and FIFO; it raises SocketNotOpenError when the
  socket is not open. Transmission failures surface as on_close.

WebsocketsSocket is the production implementation on the `websockets`
asyncio client. Tests substitute a fake through the SocketFactory seam.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Protocol

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from observability.logger import ComponentLogger
from transport.errors import SocketNotOpenError

from spec import CLOSE_ABNORMAL, CLOSE_NORMAL, MAX_FRAME_BYTES


@dataclass(frozen=True)
class SocketHandlers:
    on_open: Callable[[], None]
    on_message: Callable[[str | bytes], None]
    on_close: Callable[[int, str], None]


class Socket(Protocol):
    def send(self, data: str) -> None: ...

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None: ...


SocketFactory = Callable[[str, SocketHandlers], Socket]


class WebsocketsSocket:
    """
    One websocket connection attempt and its lifetime.

    Construction starts the handshake in a background task; the object is
    single-use. Must be created inside a running event loop.
    """

    def __init__(
        self,
        url: str,
        handlers: SocketHandlers,
        *,
        headers: dict[str, str] | None = None,
        max_size: int = MAX_FRAME_BYTES,
        debug: bool = False,
    ) -> None:
        self._url = url
        self._handlers = handlers
        self._headers = headers or {}
        self._max_size = max_size
        self._log = ComponentLogger("socket", debug=debug)

        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._closing = False
        self._requested_close: tuple[int, str] | None = None
        self._close_task: asyncio.Task[None] | None = None

        self._task: asyncio.Task[None] = asyncio.create_task(self._run())

    # -------------------------------------------------------------------------
    # Socket protocol
    # -------------------------------------------------------------------------

    def send(self, data: str) -> None:
        if self._ws is None or self._closing:
            raise SocketNotOpenError("socket is not open")
        self._outbox.put_nowait(data)

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if self._closing:
            return
        self._closing = True
        self._requested_close = (code, reason)

        ws = self._ws
        if ws is None:
            # Still handshaking: abandon the attempt
            self._task.cancel()
            return

        self._close_task = asyncio.create_task(ws.close(code=code, reason=reason))

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        code, reason = CLOSE_ABNORMAL, ""
        writer: asyncio.Task[None] | None = None

        try:
            async with ws_connect(
                self._url,
                additional_headers=self._headers,
                max_size=self._max_size,
                open_timeout=None,
                ping_interval=None,
            ) as ws:
                self._ws = ws
                writer = asyncio.create_task(self._write_loop(ws))
                self._log.debug("SOCKET_OPEN", url=self._url)
                self._handlers.on_open()

                try:
                    async for raw in ws:
                        self._handlers.on_message(raw)
                except ConnectionClosed:
                    pass

                code = ws.close_code if ws.close_code is not None else CLOSE_ABNORMAL
                reason = ws.close_reason or ""
                if self._requested_close is not None:
                    code, reason = self._requested_close

        except asyncio.CancelledError:
            if self._requested_close is not None:
                code, reason = self._requested_close

        except (OSError, InvalidHandshake, InvalidURI, TimeoutError) as e:
            self._log.debug("SOCKET_CONNECT_FAILED", url=self._url, error=repr(e))
            reason = str(e)

        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log.error("SOCKET_LOOP_FAILED", url=self._url, error=repr(e))
            code, reason = CLOSE_ABNORMAL, str(e)

        finally:
            if writer is not None and not writer.done():
                writer.cancel()
            self._ws = None
            self._closing = True

            # Reported on every exit path, exactly once
            self._log.debug("SOCKET_CLOSED", code=code, reason=reason)
            self._handlers.on_close(code, reason)

    async def _write_loop(self, ws: ClientConnection) -> None:
        while True:
            data = await self._outbox.get()
            try:
                await ws.send(data)
            except ConnectionClosed:
                return


def websockets_socket_factory(
    *,
    headers: dict[str, str] | None = None,
    debug: bool = False,
) -> SocketFactory:
    """SocketFactory producing WebsocketsSocket with fixed handshake headers."""

    def _factory(url: str, handlers: SocketHandlers) -> Socket:
        return WebsocketsSocket(url, handlers, headers=headers, debug=debug)

    return _factory
