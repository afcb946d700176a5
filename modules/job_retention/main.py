from __future__ import annotations

import logging
from typing import Any

from modules.job_harvest.lib import db
from modules.job_harvest.lib.config import DEFAULT_SQLITE_PATH, ConfigError
from modules.job_harvest.lib.logging_bridge import activity as log_activity
from modules.job_harvest.lib.utils import getenv_str

DEFAULT_DAYS_TO_KEEP = 5

log = logging.getLogger(__name__)


def run(**kwargs: Any) -> dict:
    """
    Delete stored jobs older than the retention window.

    kwargs:
      sqlite_path: str   (env JOB_HARVEST_SQLITE_PATH)
      days: int = 5      (env JOB_RETENTION_DAYS)

    Returns {"ok": True, "deleted": n, "remaining": m, "cutoff": iso}; adds a
    "message" when nothing was old enough. Store errors propagate.
    """
    sqlite_path = str(kwargs.get("sqlite_path") or getenv_str("JOB_HARVEST_SQLITE_PATH") or DEFAULT_SQLITE_PATH)
    raw_days = kwargs.get("days")
    if raw_days is None or raw_days == "":
        raw_days = getenv_str("JOB_RETENTION_DAYS", str(DEFAULT_DAYS_TO_KEEP))
    try:
        days = int(raw_days)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'days' must be an integer (got {raw_days!r})") from e
    if days < 0:
        raise ConfigError("'days' cannot be negative.")

    log.info("deleting jobs older than %d days from %s", days, sqlite_path)
    result = db.purge_older_than(sqlite_path, days)

    body: dict[str, Any] = {"ok": True, **result}
    if result["deleted"] == 0:
        body["message"] = "No old data to delete"

    log_activity({
        "component": "job_retention.main",
        "op": "purge",
        "days": days,
        **result,
    })
    return body
