"""
Engine for one harvesting pass: walk sites and pages, pull details, then
dedupe and persist the whole batch once.

Features:
  - Global item cap across all sites, checked before every site and page
  - An empty listing page ends that site's page loop
  - Bounded detail concurrency (politeness knob, default 1)
  - Politeness delay after every processed page
  - Dependency injection for testability (`client`, `sleep`)
  - Structured activity records via `logging_bridge`
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable

from . import db, logging_bridge
from .config import Settings, SiteConfig
from .dedupe import dedupe
from .detail import extract_detail
from .dispatch import run_bounded, successes
from .http_client import HttpClient
from .listing import extract_listing
from .models import CandidateItem, HarvestedRecord, HarvestSummary
from .utils import host_from_url

log = logging.getLogger(__name__)


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    client: HttpClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> HarvestSummary:
    """
    Run one complete harvesting pass.

    Args:
        settings: validated configuration (sites, caps, timeouts, DB path).
        client: optional HTTP client override (tests inject a fake).
        sleep: optional sleep override for the politeness delay.

    Returns:
        HarvestSummary with collected/deduped/inserted counts.
    """
    start_ns = time.perf_counter_ns()
    sites = settings.selected_sites()

    if settings.site and not settings.site_is_known():
        log.warning("unknown site %r requested; running all sites", settings.site)

    logging_bridge.activity({
        "component": "job_harvest.engine",
        "op": "start",
        "sites": [s.key for s in sites],
        "max_total_items": settings.max_total_items,
        "detail_concurrency": settings.detail_concurrency,
        "skip_network": settings.skip_network,
    })

    summary = HarvestSummary()
    if settings.skip_network:
        logging_bridge.activity({
            "component": "job_harvest.engine",
            "op": "skipped",
            "reason": "skip_network",
        })
        return summary

    own_client = client is None
    if client is None:
        client = HttpClient(
            timeout=settings.list_timeout,
            retries=settings.fetch_retries,
            backoff_base=settings.backoff_base,
        )

    # -------------------------------------------------------------------------
    # COLLECT: site -> page -> details, into one cross-site buffer
    # -------------------------------------------------------------------------
    buffer: list[HarvestedRecord] = []
    try:
        for site in sites:
            if len(buffer) >= settings.max_total_items:
                break
            log.info("starting %s", site.key)
            summary.by_site.setdefault(site.key, 0)

            for page in site.pages:
                if len(buffer) >= settings.max_total_items:
                    break

                candidates = extract_listing(site, page, client=client, settings=settings)
                if not candidates:
                    log.info("%s: no items on page %d; moving on", site.key, page)
                    break

                candidates = candidates[: settings.max_total_items - len(buffer)]
                worker = functools.partial(_harvest_item, site=site, client=client, settings=settings)
                outcomes = run_bounded(candidates, worker, settings.detail_concurrency)
                records = successes(outcomes)

                failed = len(outcomes) - len(records)
                if failed:
                    logging_bridge.error({
                        "component": "job_harvest.engine",
                        "op": "dispatch",
                        "site": site.key,
                        "page": page,
                        "failed": failed,
                        "errors": [repr(o) for o in outcomes if isinstance(o, Exception)][:5],
                    })

                buffer.extend(records)
                summary.by_site[site.key] += len(records)
                logging_bridge.activity({
                    "component": "job_harvest.engine",
                    "op": "page",
                    "site": site.key,
                    "page": page,
                    "candidates": len(candidates),
                    "harvested": len(records),
                    "total": len(buffer),
                })

                sleep(settings.page_delay)
    finally:
        if own_client:
            client.close()

    # -------------------------------------------------------------------------
    # DEDUPE + PERSIST (exactly once, over the whole batch)
    # -------------------------------------------------------------------------
    summary.collected = len(buffer)
    if buffer:
        log.info("collected total rows: %d (will dedupe & upsert)", len(buffer))
        unique = dedupe(buffer)
        summary.deduped = len(unique)
        summary.inserted = db.persist(settings.sqlite_path, unique, chunk_size=settings.chunk_size)

    summary.duration_ms = int((time.perf_counter_ns() - start_ns) // 1_000_000)

    # -------------------------------------------------------------------------
    # SUMMARY LOG (always emitted)
    # -------------------------------------------------------------------------
    logging_bridge.activity({
        "component": "job_harvest.engine",
        "op": "summary",
        "collected": summary.collected,
        "deduped": summary.deduped,
        "inserted": summary.inserted,
        "by_site": summary.by_site,
        "duration_ms": summary.duration_ms,
    })
    return summary


# =============================================================================
# HELPER: one candidate -> one record
# =============================================================================
def _harvest_item(
    item: CandidateItem,
    *,
    site: SiteConfig,
    client: HttpClient,
    settings: Settings,
) -> HarvestedRecord:
    fields = extract_detail(item.url, site, client=client, settings=settings)
    return HarvestedRecord(
        url=item.url,
        title=item.title,
        source_host=host_from_url(site.base_url),
        fields=fields,
    )
