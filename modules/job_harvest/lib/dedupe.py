from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import urlsplit

from .models import HarvestedRecord

log = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def canonical_url(url: str | None) -> str:
    """
    Identity key of a posting: scheme://host/path with no query, fragment,
    credentials, default port or trailing slash. Strings that don't parse as
    absolute URLs are only trimmed and lose a trailing slash.
    """
    if not url or not isinstance(url, str):
        return ""
    raw = url.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.removesuffix("/")
    if not parts.scheme or not parts.hostname:
        return raw.removesuffix("/")
    scheme = parts.scheme.lower()
    host = f"[{parts.hostname}]" if ":" in parts.hostname else parts.hostname
    try:
        port = parts.port
    except ValueError:
        return raw.removesuffix("/")
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}{parts.path}".removesuffix("/")


def dedupe(records: Iterable[HarvestedRecord]) -> list[HarvestedRecord]:
    """
    Collapse records sharing a canonical URL; the later one replaces the
    earlier entirely. Records whose URL canonicalizes to "" are dropped.
    """
    by_key: dict[str, HarvestedRecord] = {}
    seen = 0
    for rec in records:
        seen += 1
        key = canonical_url(rec.url)
        if not key:
            log.warning("dropping record without usable URL: %r", rec.title)
            continue
        by_key[key] = rec.with_url(key)

    log.info("deduped rows: original=%d, deduped=%d", seen, len(by_key))
    return list(by_key.values())
