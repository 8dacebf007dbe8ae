"""
Connection probe.

Connects to a game server with the full transport stack, prints every
event as one JSON line, optionally sends a command, and exits after
--duration seconds.

    cd backend && PYTHONPATH=. python ../tools/probe_connection.py --url ws://localhost:8080/ws \
        --send '{"type":"MOVE","dx":1}' --heartbeat-ms 2000 --debug
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any

from config import TransportConfig
from observability.logger import log_event
from transport.connection import Connection
from transport.events import Event, EventType


def _event_line(event: Event) -> dict[str, Any]:
    line = asdict(event)
    line["event_type"] = f"PROBE_{event.event_type.value.upper()}"
    return line


async def run_probe(args: argparse.Namespace) -> int:
    config = TransportConfig(
        url=args.url,
        auth_token=args.token,
        heartbeat_interval_ms=args.heartbeat_ms,
        max_reconnect_attempts=args.max_attempts,
        debug=args.debug,
    )
    connection = Connection(config)

    for event_type in EventType:
        connection.on(event_type, lambda event: log_event(_event_line(event)))

    if args.send is not None:
        command = json.loads(args.send)
        connection.once(EventType.CONNECTED, lambda _event: connection.send(command))

    connection.connect()
    try:
        await asyncio.sleep(args.duration)
    finally:
        metrics = connection.get_metrics().to_dict()
        connection.destroy()

    log_event({"event_type": "PROBE_METRICS", **metrics})
    return 0 if metrics["connected_at_ms"] is not None else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Probe a game server websocket.")
    parser.add_argument("--url", default="", help="ws:// endpoint (default: derived from origin)")
    parser.add_argument("--token", default=None, help="opaque auth token (Bearer header)")
    parser.add_argument("--send", default=None, help="JSON command to send once connected")
    parser.add_argument("--duration", type=float, default=5.0, help="seconds to stay connected")
    parser.add_argument("--heartbeat-ms", type=int, default=0)
    parser.add_argument("--max-attempts", type=int, default=3)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    sys.exit(asyncio.run(run_probe(args)))


if __name__ == "__main__":
    main()
