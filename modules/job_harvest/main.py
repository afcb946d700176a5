from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(**kwargs: Any) -> dict:
    """
    Entry point for the 'job_harvest' module: one bounded harvesting pass.

    Accepts kwargs (from the runner / HTTP trigger / CLI), including:
      site: str | None = None          # restrict to one known site id
      sqlite_path: str = "/app/local/state/jobs.db"
      max_total_items: int = 15
      detail_concurrency: int = 1
      skip_network: bool = False
      (see Settings.from_env_and_kwargs for the rest)

    Returns the response body:
      - {"ok": True, "collected": n, "inserted": m}, or
      - {"ok": True, "message": "No items fetched"}
    Unexpected failures propagate; the caller reports them.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "job_harvest.main",
        "op": "start",
        "site": settings.site,
        "sqlite_path": settings.sqlite_path,
    })

    summary = _run_engine(settings)
    return summary.response_body()
