# service/cli.py
"""
Command-line entrypoints for the harvester.

Subcommands
-----------
serve [--host H] [--port P]
    - Serves the HTTP trigger (service.http_api) with uvicorn

run MODULE [--kwargs k=v ...]
    - Runs one module through service.runner
    - Prints the module's JSON body; rc 0 on success, 1 on failure

list-sites
    - Prints the configured site registry
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from service import logging_utils as L
from service import runner as _runner

LOG = logging.getLogger("service.cli")


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging() -> None:
    if logging.getLogger().handlers:
        return
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    logging.basicConfig(level=level if isinstance(level, int) else logging.INFO, format=_LOG_FORMAT)


# --------------------------------- Helpers -----------------------------------
def _kwargs_from_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """`site=lancers max_total_items=5` -> {"site": "lancers", "max_total_items": 5}."""
    parsed: dict[str, Any] = {}
    for item in pairs:
        key, sep, text = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected key=value, got {item!r}")
        text = text.strip()
        try:
            parsed[key] = json.loads(text)
        except ValueError:
            parsed[key] = text
    return parsed


def _print_table(rows: Iterable[Sequence[str]], headers: Sequence[str]) -> None:
    """Boxed plain-text table; column widths fit the widest cell."""
    body = [[str(c) for c in r] for r in rows]
    widths = [max([len(h)] + [len(r[i]) for r in body]) for i, h in enumerate(headers)]
    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def line(cells: Sequence[str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    print("\n".join([sep, line(headers), sep, *(line(r) for r in body), sep]))


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


# -------------------------------- Commands -----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    kwargs = _kwargs_from_pairs(args.kwargs or ())
    LOG.debug("run %s %s", args.module, kwargs)
    started = time.monotonic()

    try:
        result = _runner.run_module_once(
            module=args.module,
            kwargs=kwargs,
            trigger_type="adhoc",
            timeout_sec=args.timeout,
        )
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        print(json.dumps({"ok": False, "error": str(e)}, ensure_ascii=False))
        print(f"FAILURE ({type(e).__name__}): {e}", file=sys.stderr)
        L.write_error_log({"where": "cli.run", "module": args.module, "kwargs": kwargs, "error": repr(e), "duration_ms": elapsed_ms})
        return 1

    print(json.dumps(result.meta or {"ok": result.ok}, ensure_ascii=False))
    return 0 if result.ok else 1


def cmd_list_sites(args: argparse.Namespace) -> int:
    from modules.job_harvest.lib.config import Settings

    try:
        settings = Settings.from_env_and_kwargs({"sites_path": args.sites_path} if args.sites_path else {})
        sites = settings.site_registry().values()
    except Exception as e:
        LOG.exception("Failed to load sites: %s", e)
        print(f"ERROR: failed to load sites: {e}", file=sys.stderr)
        return 1

    rows = [(s.key, ",".join(map(str, s.pages)), str(s.max_items_per_page), s.base_url) for s in sites]
    if not rows:
        print("No sites configured.")
        return 0
    _print_table(rows, headers=("SITE", "PAGES", "PER PAGE", "ENTRY URL"))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP trigger until interrupted (uvicorn handles SIGINT/SIGTERM)."""
    import uvicorn

    L.write_activity_log({"ts": _now_iso(), "event": "serve_start", "host": args.host, "port": args.port})
    try:
        uvicorn.run("service.http_api:app", host=args.host, port=args.port, log_level=os.getenv("LOG_LEVEL", "info").lower())
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        LOG.exception("Fatal error in serve: %s", e)
        return 1
    L.write_activity_log({"ts": _now_iso(), "event": "serve_stop"})
    return 0


# --------------------------------- Parser ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-harvest", description="Freelance job harvester tools.")
    commands = parser.add_subparsers(dest="cmd", required=True)

    serve = commands.add_parser("serve", help="Serve the HTTP trigger.")
    serve.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    serve.set_defaults(func=cmd_serve)

    run = commands.add_parser("run", help="Run one module now and print its JSON body.")
    run.add_argument("module", help="job_harvest, job_retention, or a dotted module path.")
    run.add_argument("--kwargs", metavar="KEY=VALUE", nargs="*", help="Module keyword arguments; values may be JSON.")
    run.add_argument("--timeout", type=int, default=None, help="Give up waiting after this many seconds.")
    run.set_defaults(func=cmd_run)

    sites = commands.add_parser("list-sites", help="Show the site registry.")
    sites.add_argument("--sites-path", default=None, help="JSON sites file overriding the built-in registry.")
    sites.set_defaults(func=cmd_list_sites)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    _configure_logging()
    args = _build_parser().parse_args(None if argv is None else list(argv))
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
