from __future__ import annotations

import logging

from .config import SiteConfig, Settings
from .http_client import FetchError, HttpClient
from .models import EMPTY_FIELDS, StructuredFields
from .scrapers import registry
from .structure import structure_detail

log = logging.getLogger(__name__)


def extract_detail(url: str, site: SiteConfig, *, client: HttpClient, settings: Settings) -> StructuredFields:
    """
    Fetch one posting's detail page and structure its text.
    Never raises; any failure yields the all-empty record.
    """
    try:
        strategy = registry.get(site.key)
        if strategy.skip_detail(url):
            log.debug("%s: skipping non-posting URL %s", site.key, url)
            return EMPTY_FIELDS

        html = client.fetch_text(
            url,
            referer=site.base_url,
            timeout=settings.detail_timeout,
            retries=settings.fetch_retries,
            backoff_base=settings.backoff_base,
        )
        return structure_detail(strategy.parse_detail(html))
    except FetchError as e:
        log.warning("detail fetch failed for %s: %s", url, e)
    except Exception:
        log.exception("detail extraction failed for %s", url)
    return EMPTY_FIELDS
