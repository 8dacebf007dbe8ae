"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging

ComponentLogger is the per-component front end used by the transport:
debug lines are gated on the config `debug` flag, error lines always go out.
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    This function:
    - Serializes to JSON (non-serializable values fall back to repr)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"), default=repr)
    except (TypeError, ValueError) as e:
        # Last-resort fallback, logging must never crash the transport
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


class ComponentLogger:
    """
    Stamps ts_ms and component name onto every line.

    Usage:
        log = ComponentLogger("heartbeat", debug=config.debug)
        log.debug("PING_SENT")
        log.error("LISTENER_FAILED", error=repr(exc))
    """

    def __init__(self, component: str, *, debug: bool = False) -> None:
        self._component = component
        self._debug = debug

    @property
    def enabled(self) -> bool:
        return self._debug

    def debug(self, event_type: str, **fields: Any) -> None:
        if self._debug:
            self._write(event_type, fields)

    def error(self, event_type: str, **fields: Any) -> None:
        self._write(event_type, fields)

    def _write(self, event_type: str, fields: dict[str, Any]) -> None:
        log_event({
            "ts_ms": time.time_ns() // 1_000_000,
            "component": self._component,
            "event_type": event_type,
            **fields,
        })
