# modules/job_harvest/lib/scrapers/freelance_start.py
from __future__ import annotations

from ..config import SiteConfig
from ..models import CandidateItem
from .base import RawDetail, SiteStrategy, joined_text, make_soup, meta_description, select_listing, text_of
from .registry import register


def page_url(site: SiteConfig, page: int) -> str:
    if page > 1:
        return f"{site.base_url}?page={page}"
    return site.base_url


def parse_listing(site: SiteConfig, html: str) -> list[CandidateItem]:
    # Cards carry the detail URL in a data-url attribute (see SiteConfig.link_attr)
    return select_listing(site, make_soup(html))


def parse_detail(html: str) -> RawDetail:
    """
    Detail pages show the rate in a salary box, then a run of
    `.section` blocks each with a heading and a body.
    """
    soup = make_soup(html)
    raw = RawDetail(meta_description=meta_description(soup))

    salary = text_of(soup.select_one(".salary-info .salary"))
    unit = text_of(soup.select_one(".salary-info .salary-unit"))
    if salary:
        raw.add("単価", f"{salary}{unit}")

    for section in soup.select(".section"):
        title = joined_text(section.select("h2.section-title, h3.card-head"))
        content = joined_text(el for el in section.select(".description, .content, p, div") if el.name not in ("h2", "h3"))
        raw.add(title, content)

    raw.body = text_of(soup.select_one(".job-detail-body, .card-body"))
    return raw


STRATEGY = register(
    SiteStrategy(
        key="freelance-start",
        page_url=page_url,
        parse_listing=parse_listing,
        parse_detail=parse_detail,
    )
)
