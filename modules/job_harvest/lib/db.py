"""
SQLite store for harvested jobs.

One row per canonical URL. Writes run inside BEGIN IMMEDIATE so concurrent
harvest and retention runs serialize on the file lock instead of failing
half-way.
"""
from __future__ import annotations

import contextlib
import logging
import os
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from .logging_bridge import error as log_error
from .models import HarvestedRecord
from .utils import iso_utc, now_iso

log = logging.getLogger(__name__)

CONTENT_COLUMNS = ("title", "source_host", "detail", "price", "period", "skills", "other", "reserved")

_UPSERT_SQL = f"""
    INSERT INTO jobs (canonical_url, {", ".join(CONTENT_COLUMNS)}, created_at, updated_at)
    VALUES (:canonical_url, {", ".join(":" + c for c in CONTENT_COLUMNS)}, :ts, :ts)
    ON CONFLICT(canonical_url) DO UPDATE SET
      {", ".join(f"{c} = excluded.{c}" for c in CONTENT_COLUMNS)},
      updated_at = excluded.updated_at
"""

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS jobs (
      id           INTEGER PRIMARY KEY,
      canonical_url TEXT NOT NULL UNIQUE CHECK (canonical_url <> ''),
      title        TEXT NOT NULL CHECK (title <> ''),
      source_host  TEXT NOT NULL DEFAULT '',
      detail       TEXT NOT NULL DEFAULT '' CHECK (length(detail) <= 4000),
      price        TEXT NOT NULL DEFAULT '' CHECK (length(price) <= 1000),
      period       TEXT NOT NULL DEFAULT '' CHECK (length(period) <= 1000),
      skills       TEXT NOT NULL DEFAULT '' CHECK (length(skills) <= 2000),
      other        TEXT NOT NULL DEFAULT '' CHECK (length(other) <= 2000),
      reserved     TEXT NOT NULL DEFAULT '',
      created_at   TEXT NOT NULL,
      updated_at   TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_jobs_created_at ON jobs (created_at)",
)

_PRAGMAS = ("journal_mode=WAL", "synchronous=NORMAL", "temp_store=MEMORY", "cache_size=-8000")


# ---- Connections ------------------------------------------------------------


@contextlib.contextmanager
def _session(sqlite_path: str) -> Iterator[sqlite3.Connection]:
    """Autocommit connection with pragmas applied and the schema in place."""
    # isolation_level=None: transactions are opened explicitly by _transaction
    conn = sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)
    try:
        for pragma in _PRAGMAS:
            conn.execute(f"PRAGMA {pragma}")
        for stmt in _SCHEMA:
            conn.execute(stmt)
        yield conn
    finally:
        conn.close()


@contextlib.contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Cursor]:
    cur = conn.cursor()
    cur.execute("BEGIN IMMEDIATE")
    try:
        yield cur
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


# ---- Writes -----------------------------------------------------------------


def init_db(sqlite_path: str) -> None:
    """Create the parent directory, the file and the schema if missing. Idempotent."""
    os.makedirs(os.path.dirname(os.path.abspath(sqlite_path)) or ".", exist_ok=True)
    with _session(sqlite_path):
        pass


def upsert_many(sqlite_path: str, rows: Sequence[dict[str, Any]]) -> int:
    """
    Insert-or-update every row in one transaction (all or nothing).
    Conflict target is canonical_url; created_at keeps its first value.
    Returns the number of rows written. Raises on failure.
    """
    return _write_rows(sqlite_path, rows)


def upsert_one(sqlite_path: str, row: dict[str, Any]) -> None:
    """Single-row upsert; raises on failure."""
    _write_rows(sqlite_path, [row])


def _write_rows(sqlite_path: str, rows: Sequence[dict[str, Any]]) -> int:
    if not rows:
        return 0
    ts = now_iso()
    with _session(sqlite_path) as conn, _transaction(conn) as cur:
        cur.executemany(_UPSERT_SQL, [{**row, "ts": ts} for row in rows])
    return len(rows)


def persist(sqlite_path: str, records: Iterable[HarvestedRecord], *, chunk_size: int = 100) -> int:
    """
    Store deduplicated records in chunks and return how many rows the store
    confirmed. Never raises.

    A chunk is first written with one bulk upsert. If that fails the chunk is
    retried row by row; rows that still fail are logged and skipped.
    """
    try:
        init_db(sqlite_path)
    except Exception as e:
        log_error({"component": "job_harvest.db", "op": "init_db", "sqlite_path": sqlite_path, "error": repr(e)})
        return 0

    rows: list[dict[str, Any]] = []
    for rec in records:
        row = rec.as_row()
        if not row["canonical_url"] or not (row["title"] or "").strip():
            log.warning("skipping row without title or URL: %r", row["canonical_url"] or row["title"])
            continue
        rows.append(row)

    size = max(1, int(chunk_size))
    total = 0
    for start in range(0, len(rows), size):
        chunk = rows[start : start + size]
        try:
            total += _persist_chunk(sqlite_path, chunk)
        except Exception as e:
            log_error({
                "component": "job_harvest.db",
                "op": "persist_chunk",
                "chunk_start": start,
                "error": repr(e),
            })

    log.info("upsert finished: total_inserted=%d", total)
    return total


def _persist_chunk(sqlite_path: str, chunk: list[dict[str, Any]]) -> int:
    try:
        return upsert_many(sqlite_path, chunk)
    except Exception as e:
        log.warning("chunk of %d failed (%r); retrying row by row", len(chunk), e)

    stored = 0
    for row in chunk:
        try:
            upsert_one(sqlite_path, row)
        except Exception as e:
            log_error({
                "component": "job_harvest.db",
                "op": "upsert_row",
                "canonical_url": row.get("canonical_url"),
                "error": repr(e),
            })
        else:
            stored += 1
    return stored


def purge_older_than(sqlite_path: str, days: int) -> dict[str, Any]:
    """
    Delete rows whose created_at is more than `days` days old.
    Returns {"deleted": n, "remaining": m, "cutoff": iso}. Raises on failure.
    """
    init_db(sqlite_path)
    cutoff = iso_utc(datetime.now(timezone.utc) - timedelta(days=days))
    with _session(sqlite_path) as conn:
        with _transaction(conn) as cur:
            cur.execute("DELETE FROM jobs WHERE created_at < ?", (cutoff,))
            deleted = cur.rowcount
        (remaining,) = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
    return {"deleted": int(deleted), "remaining": int(remaining or 0), "cutoff": cutoff}


# ---- Reads and maintenance --------------------------------------------------


def count_rows(sqlite_path: str) -> int:
    """Rows in jobs; 0 when the file does not exist yet."""
    if not os.path.exists(sqlite_path):
        return 0
    with _session(sqlite_path) as conn:
        (n,) = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
    return int(n or 0)


def fetch_jobs(sqlite_path: str, limit: int = 15) -> list[dict[str, Any]]:
    """Newest rows first, as dicts."""
    if not os.path.exists(sqlite_path):
        return []
    with _session(sqlite_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute("SELECT * FROM jobs ORDER BY created_at DESC, id DESC LIMIT ?", (int(limit),)).fetchall()
    return [dict(r) for r in rows]


def reset_db(sqlite_path: str) -> None:
    """Delete the database file and its WAL/SHM siblings; missing files are fine."""
    for suffix in ("", "-wal", "-shm"):
        with contextlib.suppress(FileNotFoundError):
            os.remove(sqlite_path + suffix)
