from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urljoin, urlsplit

_MULTI_WS = re.compile(r"\s{2,}")
_ANY_WS = re.compile(r"\s+")
_INLINE_WS = re.compile(r"[ \t]+")


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix (second precision, so stored
    values compare correctly as strings).
    """
    return iso_utc(datetime.now(timezone.utc))


def iso_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def getenv_str(name: str, default: str | None = None) -> str | None:
    """
    Typed wrapper for environment access.
    """
    val = os.getenv(name)
    return val if val is not None else default


def squash(text: str | None) -> str:
    """Trim and fold runs of whitespace the way scraped cells need it."""
    if not text:
        return ""
    return _INLINE_WS.sub(" ", _MULTI_WS.sub(" ", text.strip()))


def collapse_ws(text: str | None) -> str:
    """Trim and collapse every whitespace run to a single space (titles)."""
    if not text:
        return ""
    return _ANY_WS.sub(" ", text).strip()


def to_absolute(href: str, base: str) -> str:
    try:
        return urljoin(base, href)
    except ValueError:
        return href


def host_from_url(url: str) -> str:
    """Hostname without a leading 'www.' (e.g. 'crowdworks.jp')."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return url
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host
