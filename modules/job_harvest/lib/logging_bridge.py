"""
Structured activity/error records for the harvester.

Records go to the service's daily JSONL files when `service.logging_utils` is
importable (it always is inside this repo), else to the stdlib loggers
`job_harvest.activity` / `job_harvest.error`. Writing a record never raises.
"""

from __future__ import annotations

import logging
from typing import Any

try:
    from service import logging_utils as _sink
except ImportError:
    _sink = None

_REDACTED = "***REDACTED***"

# Top-level keys only; the service writer scrubs nested structures itself.
_SECRET_KEYS = frozenset({"password", "secret", "token", "apikey", "api_key", "authorization", "bearer", "cookie", "service_role_key"})

_FALLBACK = {
    "activity": (logging.getLogger("job_harvest.activity"), logging.INFO),
    "error": (logging.getLogger("job_harvest.error"), logging.ERROR),
}


def _scrub(record: dict[str, Any]) -> dict[str, Any]:
    return {
        k: _REDACTED if str(k).lower() in _SECRET_KEYS or str(k).lower().endswith("_secret") else v
        for k, v in record.items()
    }


def _emit(kind: str, record: dict[str, Any]) -> None:
    payload = _scrub(record)
    writer = getattr(_sink, f"write_{kind}_log", None) if _sink else None
    if writer is not None:
        try:
            writer(payload)
            return
        except Exception:
            logging.getLogger(__name__).debug("%s log write failed; using stdlib logging", kind, exc_info=True)
    logger, level = _FALLBACK[kind]
    logger.log(level, "%s", payload)


def activity(record: dict[str, Any]) -> None:
    """One progress record (start, page, summary...)."""
    _emit("activity", record)


def error(record: dict[str, Any]) -> None:
    """One failure record that did not stop the run."""
    _emit("error", record)
