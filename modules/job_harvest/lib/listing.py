from __future__ import annotations

import logging

from . import logging_bridge
from .config import SiteConfig, Settings
from .http_client import FetchError, HttpClient, HttpStatusError
from .models import CandidateItem
from .scrapers import registry

log = logging.getLogger(__name__)


def extract_listing(site: SiteConfig, page: int, *, client: HttpClient, settings: Settings) -> list[CandidateItem]:
    """
    Candidate (title, URL) pairs from listing page `page` of `site`.

    Never raises: fetch failures, non-2xx answers and parser surprises all
    degrade to an empty list (which the engine reads as "no more pages").
    """
    url = site.base_url
    try:
        strategy = registry.get(site.key)
        url = strategy.page_url(site, page)
        html = client.fetch_text(
            url,
            referer=site.base_url,
            timeout=settings.list_timeout,
            retries=settings.fetch_retries,
            backoff_base=settings.backoff_base,
        )
        items = strategy.parse_listing(site, html)
    except HttpStatusError as e:
        log.warning("list fetch non-ok %s for %s", e.status, url)
        return []
    except FetchError as e:
        _log_failure(site, page, url, e)
        return []
    except Exception as e:
        log.exception("listing extraction failed for %s", url)
        _log_failure(site, page, url, e)
        return []

    log.info("%s: extracted %d items from page %d", site.key, len(items), page)
    return items


def _log_failure(site: SiteConfig, page: int, url: str, exc: BaseException) -> None:
    logging_bridge.error({
        "component": "job_harvest.listing",
        "op": "extract_listing",
        "site": site.key,
        "page": page,
        "url": url,
        "error": repr(exc),
    })
