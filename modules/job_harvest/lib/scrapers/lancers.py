# modules/job_harvest/lib/scrapers/lancers.py
from __future__ import annotations

import re

from ..config import SiteConfig
from ..models import CandidateItem
from .base import RawDetail, SiteStrategy, make_soup, meta_description, select_listing, text_of
from .registry import register

_PAGE_PARAM = re.compile(r"(&page=\d+)?$")


def page_url(site: SiteConfig, page: int) -> str:
    # The entry URL already carries a query string, so paging is one more '&' param.
    if page > 1:
        return _PAGE_PARAM.sub(f"&page={page}", site.base_url, count=1)
    return site.base_url


def parse_listing(site: SiteConfig, html: str) -> list[CandidateItem]:
    return select_listing(site, make_soup(html))


def parse_detail(html: str) -> RawDetail:
    """Lancers lays the brief out as a stack of <dl> definition lists."""
    soup = make_soup(html)
    raw = RawDetail(meta_description=meta_description(soup))

    for dl in soup.select("dl.c-definition-list"):
        raw.add(text_of(dl.find("dt")), text_of(dl.find("dd")))

    raw.body = text_of(soup.select_one(".p-article__body, .c-article__body"))
    return raw


def skip_detail(url: str) -> bool:
    # Landing pages (/lp/...) show up in search results but are not postings
    return "/lp/" in url


STRATEGY = register(
    SiteStrategy(
        key="lancers",
        page_url=page_url,
        parse_listing=parse_listing,
        parse_detail=parse_detail,
        skip_detail=skip_detail,
    )
)
