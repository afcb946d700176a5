# service/runner.py
"""
One-shot execution of a module's `run(**kwargs)`.

Both triggers (CLI and HTTP) come through `run_module_once`, so every run
leaves exactly one activity record carrying its run_id, kwargs and outcome.
"""
from __future__ import annotations

import importlib
import json
import logging
import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from service import logging_utils

log = logging.getLogger(__name__)

# Short names accepted wherever a module path is expected.
MODULE_ALIASES: dict[str, str] = {
    "job_harvest": "modules.job_harvest.main",
    "job_retention": "modules.job_retention.main",
}

_TRUE_WORDS = frozenset({"true", "t", "yes", "y"})
_FALSE_WORDS = frozenset({"false", "f", "no", "n"})


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def resolve_module_path(module: str) -> str:
    """'job_harvest' -> 'modules.job_harvest.main'; dotted paths pass through."""
    name = (module or "").strip()
    if name in MODULE_ALIASES:
        return MODULE_ALIASES[name]
    with_main = f"{name}.main"
    return with_main if with_main in MODULE_ALIASES.values() else name


# ------------------------------ kwargs coercion ------------------------------
def _coerce_scalar(text: str) -> Any:
    """'yes' -> True, '5' -> 5, '0.25' -> 0.25; anything else unchanged."""
    word = text.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def _looks_like_json(text: str) -> bool:
    return len(text) >= 2 and (text[0], text[-1]) in (("{", "}"), ("[", "]"))


def _normalize_kwargs_types(kwargs: dict[str, object] | None) -> dict[str, object]:
    """
    String kwargs arrive untyped from query strings and `k=v` pairs.

    A key ending in `_env` names an environment variable and takes its value
    as-is (empty when unset). Other strings are parsed as a JSON object/array
    when they look like one, else coerced as bool or number when they spell one.
    """
    out: dict[str, object] = {}
    for key, value in (kwargs or {}).items():
        if not isinstance(value, str):
            out[key] = value
        elif str(key).endswith("_env"):
            out[key] = os.getenv(value.strip(), "")
        else:
            text = value.strip()
            parsed: Any = text
            if _looks_like_json(text):
                try:
                    parsed = json.loads(text)
                except ValueError:
                    parsed = text
            out[key] = _coerce_scalar(parsed) if isinstance(parsed, str) else parsed
    return out


# --------------------------------- Results -----------------------------------
@dataclass
class RunResult:
    ok: bool
    message: str
    meta: dict[str, Any] = field(default_factory=dict)
    run_id: str = ""


def _coerce_result(value: Any) -> RunResult:
    """A module returns its response body (dict) or None for a bare success."""
    if value is None:
        return RunResult(ok=True, message="OK")
    if not isinstance(value, dict):
        raise TypeError(f"module run() returned {type(value).__name__}; expected dict or None")
    return RunResult(ok=bool(value.get("ok", True)), message=str(value.get("message", "OK")), meta=value)


@dataclass
class _Invocation:
    module_path: str
    kwargs: dict[str, object]
    trigger_type: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: str = field(default_factory=now_iso)

    def target(self):
        mod = importlib.import_module(self.module_path)
        fn = getattr(mod, "run", None)
        if not callable(fn):
            raise AttributeError(f"{self.module_path} has no callable run(**kwargs)")
        return fn

    def record(self, result: RunResult, elapsed_ms: int) -> None:
        entry = {
            "ts": now_iso(),
            "run_id": self.run_id,
            "module": self.module_path,
            "trigger_type": self.trigger_type,
            "started_at": self.started_at,
            "ok": result.ok,
            "message": result.message,
            "duration_ms": elapsed_ms,
            "kwargs": self.kwargs,
            "meta": result.meta,
        }
        try:
            logging_utils.write_activity_log(entry)
        except OSError as e:
            log.warning("activity log write failed (%s); run %s: %s", e, self.run_id, entry)


# -------------------------------- Public API ---------------------------------
def run_module_once(
    module: str,
    kwargs: dict[str, object] | None = None,
    trigger_type: str = "manual",
    timeout_sec: int | None = None,
) -> RunResult:
    """
    Execute a module's run(**kwargs) once and record one activity line.

    The module's exception (or TimeoutError once `timeout_sec` elapses) is
    re-raised after the record is written; callers map it to an exit code or
    an HTTP 500. A timed-out worker thread keeps running in the background.
    """
    inv = _Invocation(resolve_module_path(module), _normalize_kwargs_types(kwargs), trigger_type)
    fn = inv.target()

    failure: BaseException | None = None
    t0 = time.monotonic()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"run-{inv.run_id[:8]}")
    try:
        future = pool.submit(fn, **inv.kwargs)
        result = _coerce_result(future.result(timeout=timeout_sec or None))
    except FutureTimeout:
        failure = TimeoutError(f"Module run timed out after {timeout_sec}s")
        result = RunResult(ok=False, message=str(failure), meta={"timeout_sec": timeout_sec})
    except Exception as e:
        failure = e
        result = RunResult(ok=False, message=str(e), meta={"exception_type": type(e).__name__})
    finally:
        pool.shutdown(wait=False)

    result.run_id = inv.run_id
    inv.record(result, int((time.monotonic() - t0) * 1000))
    if failure is not None:
        raise failure
    return result
