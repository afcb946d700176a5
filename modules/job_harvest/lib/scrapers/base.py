from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag  # pip install beautifulsoup4 html5lib

from ..config import SiteConfig
from ..models import CandidateItem
from ..utils import collapse_ws, squash, to_absolute

log = logging.getLogger(__name__)


class ScraperError(Exception):
    """Base exception for strategy lookup/registration failures."""


@dataclass
class RawDetail:
    """
    What a detail page boils down to before structuring:
    labeled (header, content) sections, else an unlabeled body blob,
    else the page's meta description.
    """

    sections: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""
    meta_description: str = ""

    def add(self, header: str, content: str) -> None:
        header, content = squash(header), squash(content)
        if header and content:
            self.sections.append((header, content))


@dataclass(frozen=True)
class SiteStrategy:
    """
    The pure functions that make one site scrapeable.

    Contract:
      - page_url(site, page) -> URL of listing page `page` (1-based)
      - parse_listing(site, html) -> candidates in document order
      - parse_detail(html) -> RawDetail
      - skip_detail(url) -> True for URLs that are known not to be postings
      None of them perform I/O; fetching is the caller's job.
    """

    key: str
    page_url: Callable[[SiteConfig, int], str]
    parse_listing: Callable[[SiteConfig, str], list[CandidateItem]]
    parse_detail: Callable[[str], RawDetail]
    skip_detail: Callable[[str], bool] = lambda url: False


# ---- shared helpers ----------------------------------------------------------


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html5lib")


def text_of(el: Tag | None) -> str:
    return squash(el.get_text()) if el is not None else ""


def joined_text(elements: Iterable[Tag]) -> str:
    """
    Concatenated text of the outermost matches only, so nested matches
    (a <p> inside a matched <div>) are not counted twice.
    """
    picked = list(elements)
    ids = {id(el) for el in picked}
    outer = [el for el in picked if not any(id(p) in ids for p in el.parents)]
    return squash(" ".join(el.get_text() for el in outer))


def meta_description(soup: BeautifulSoup) -> str:
    el = soup.select_one('meta[name="description"]')
    if el is None:
        return ""
    return str(el.get("content") or "").strip()


def select_listing(site: SiteConfig, soup: BeautifulSoup) -> list[CandidateItem]:
    """
    Selector-driven listing extraction shared by every site:
    list nodes -> capped -> (title, absolute link), both required.
    """
    nodes = soup.select(site.list_selector)
    log.info("%s: found %d nodes with selector %r", site.key, len(nodes), site.list_selector)

    out: list[CandidateItem] = []
    for node in nodes[: site.max_items_per_page]:
        title_el = node.select_one(site.title_selector)
        title = collapse_ws(title_el.get_text() if title_el is not None else "")

        if site.link_attr:
            href = node.get(site.link_attr) or ""
        else:
            link_el = node.select_one(site.link_selector or "a")
            href = (link_el.get("href") if link_el is not None else "") or ""
        href = str(href).strip()

        if title and href:
            out.append(CandidateItem(title=title, url=to_absolute(href, site.base_url)))
    return out
