"""Shared structured JSON logging helpers."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Callable


EventLogger = Callable[[str, dict[str, Any]], None]


def emit_json_event(
    event_type: str,
    *,
    run_id: str | None,
    level: str = "info",
    **payload: Any,
) -> str:
    """Emit one JSON event line to stdout and return the rendered line."""
    event: dict[str, Any] = {
        "event_type": event_type,
        "level": level,
        "timestamp": datetime.now(UTC).isoformat(),
        "run_id": run_id,
    }
    event.update(payload)
    line = json.dumps(event, ensure_ascii=True, sort_keys=True, default=str)
    print(line)
    return line


def default_event_logger(event_type: str, payload: dict[str, Any]) -> None:
    """Event sink used by the canonicalizer when the caller supplies none."""
    fields = dict(payload)
    run_id = fields.pop("run_id", None)
    level = fields.pop("level", "info")
    emit_json_event(event_type, run_id=run_id, level=level, **fields)


def silent_event_logger(event_type: str, payload: dict[str, Any]) -> None:
    """Discard events (library callers that log elsewhere)."""
    _ = (event_type, payload)
