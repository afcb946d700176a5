# modules/job_harvest/lib/scrapers/crowdworks.py
from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..config import SiteConfig
from ..models import CandidateItem
from ..utils import collapse_ws
from .base import RawDetail, SiteStrategy, make_soup, meta_description, select_listing, text_of
from .registry import register

log = logging.getLogger(__name__)

JOB_URL = "https://crowdworks.jp/public/jobs/{id}"
_PAGE_PARAM = re.compile(r"(\?page=\d+)?$")


def page_url(site: SiteConfig, page: int) -> str:
    if page > 1:
        return _PAGE_PARAM.sub(f"?page={page}", site.base_url, count=1)
    return site.base_url


def parse_listing(site: SiteConfig, html: str) -> list[CandidateItem]:
    """
    The search page is a Vue app whose initial state sits, JSON-encoded, in
    the `data` attribute of #vue-container. Use it when present; otherwise
    scrape the rendered list with the configured selectors.
    """
    soup = make_soup(html)

    container = soup.select_one("#vue-container")
    offers = _job_offers(container.get("data") if container is not None else None)
    if offers:
        log.info("crowdworks: found %d jobs via embedded data", len(offers))
        out: list[CandidateItem] = []
        for entry in offers[: site.max_items_per_page]:
            offer = entry.get("job_offer") if isinstance(entry, dict) else None
            if not isinstance(offer, dict):
                continue
            title = collapse_ws(str(offer.get("title") or ""))
            job_id = str(offer.get("id") or "").strip()
            if title and job_id:
                out.append(CandidateItem(title=title, url=JOB_URL.format(id=job_id)))
        return out

    return select_listing(site, soup)


def _job_offers(raw: Any) -> list[Any]:
    """Return searchResult.job_offers from the embedded payload, or [] if absent/unparsable."""
    if not raw:
        return []
    try:
        data = json.loads(str(raw))
    except ValueError:
        log.debug("crowdworks: embedded data is not JSON; falling back to selectors")
        return []
    if not isinstance(data, dict):
        return []
    result = data.get("searchResult")
    offers = result.get("job_offers") if isinstance(result, dict) else None
    return offers if isinstance(offers, list) else []


def parse_detail(html: str) -> RawDetail:
    """
    The description is the first cell of .job_offer_detail_table; budget,
    deadline and the rest are th/td rows in the summary tables.
    """
    soup = make_soup(html)
    raw = RawDetail(meta_description=meta_description(soup))

    raw.add("仕事の詳細", text_of(soup.select_one(".job_offer_detail_table td")))
    for row in soup.select(".job_offer_summary table.summary tbody tr, .detail_information tbody tr"):
        raw.add(text_of(row.find("th")), text_of(row.find("td")))

    raw.body = text_of(soup.select_one(".job_offer_detail_table"))
    return raw


STRATEGY = register(
    SiteStrategy(
        key="crowdworks",
        page_url=page_url,
        parse_listing=parse_listing,
        parse_detail=parse_detail,
    )
)
