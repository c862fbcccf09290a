"""One structured `fetch` event per HTTP request made by the default fetcher."""

from __future__ import annotations

from typing import Any

from core.models import FetchLog
from core.structured_logging import emit_json_event


def fetch_log_to_dict(fetch_log: FetchLog) -> dict[str, Any]:
    """JSON-safe view of a FetchLog; keys mirror the fetch_log table columns."""
    return {
        "id": fetch_log.id,
        "url": fetch_log.url,
        "method": fetch_log.method,
        "status_code": fetch_log.status_code,
        "final_url": fetch_log.final_url,
        "latency_ms": fetch_log.latency_ms,
        "bytes_received": fetch_log.bytes_received,
        "error_code": fetch_log.error_code.value if fetch_log.error_code else None,
        "created_at": fetch_log.created_at.isoformat(),
    }


def emit_fetch_log(fetch_log: FetchLog, run_id: str | None = None) -> str:
    """Print the fetch event (warning level when no response came back) and return the line."""
    return emit_json_event(
        "fetch",
        run_id=run_id,
        level="warning" if fetch_log.error_code else "info",
        component="fetcher",
        **fetch_log_to_dict(fetch_log),
    )
