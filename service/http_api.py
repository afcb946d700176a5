# service/http_api.py
"""
HTTP trigger surface.

Each request runs exactly one module pass through the runner and answers with
the module's JSON body. There is no background loop: the process owns nothing
between requests.

Routes
------
POST /harvest      optional JSON {"site": "<id>"}        -> harvest body
GET  /harvest      ?site=<id>                            -> same
POST /retention    optional JSON {"days": n}             -> retention body
GET  /healthz                                            -> {"ok": true}

Failures, malformed request bodies included, answer 500 with
{"ok": false, "error": "<message>"}.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from service import logging_utils as L
from service import runner as _runner

logger = logging.getLogger(__name__)


class HarvestRequest(BaseModel):
    site: Optional[str] = None


class RetentionRequest(BaseModel):
    days: Optional[int] = None


def _timeout_sec() -> Optional[int]:
    raw = os.getenv("JOB_HARVEST_RUN_TIMEOUT_SEC", "").strip()
    return int(raw) if raw.isdigit() and int(raw) > 0 else None


def _run(module: str, kwargs: dict[str, Any]) -> JSONResponse:
    try:
        result = _runner.run_module_once(
            module,
            kwargs=kwargs,
            trigger_type="http",
            timeout_sec=_timeout_sec(),
        )
    except Exception as e:
        logger.error("%s failed: %s", module, e)
        try:
            L.write_error_log({"where": "http_api", "module": module, "kwargs": kwargs, "error": repr(e)})
        except Exception:
            logger.exception("could not write error log")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
    return JSONResponse(status_code=200, content=result.meta or {"ok": True})


async def _bad_request_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unparseable or mistyped bodies answer like any other failed run."""
    errors = exc.errors()
    message = "; ".join(str(e.get("msg", "")) for e in errors) or "invalid request body"
    logger.warning("rejected %s %s: %s", request.method, request.url.path, message)
    try:
        L.write_error_log({"where": "http_api", "path": request.url.path, "error": message})
    except Exception:
        logger.exception("could not write error log")
    return JSONResponse(status_code=500, content={"ok": False, "error": message})


def create_app() -> FastAPI:
    app = FastAPI(title="job_harvest", docs_url=None, redoc_url=None)
    app.add_exception_handler(RequestValidationError, _bad_request_body)

    @app.get("/healthz")
    def healthz() -> dict:
        return {"ok": True}

    @app.post("/harvest")
    def harvest(body: Optional[HarvestRequest] = None) -> JSONResponse:
        site = body.site if body else None
        return _run("job_harvest", {"site": site} if site else {})

    @app.get("/harvest")
    def harvest_get(site: Optional[str] = None) -> JSONResponse:
        return _run("job_harvest", {"site": site} if site else {})

    @app.post("/retention")
    def retention(body: Optional[RetentionRequest] = None) -> JSONResponse:
        days = body.days if body else None
        return _run("job_retention", {"days": days} if days is not None else {})

    return app


app = create_app()
