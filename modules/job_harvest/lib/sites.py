"""
Built-in site registry.

Each entry is immutable and lives for the whole process. A JSON file with the
same shape (see config.parse_sites_list) can replace the built-ins, but every
site key must still have a registered extraction strategy.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .config import DEFAULT_MAX_ITEMS_PER_PAGE, DEFAULT_PAGES, ConfigError, SiteConfig, parse_sites_list

DEFAULT_SITES: tuple[SiteConfig, ...] = (
    SiteConfig(
        key="freelance-start",
        base_url="https://freelance-start.com/jobs",
        list_selector=".card.job-top-list-card.ajax-job-link",
        title_selector="h3.card-head",
        link_attr="data-url",
        pages=DEFAULT_PAGES,
        max_items_per_page=DEFAULT_MAX_ITEMS_PER_PAGE,
    ),
    SiteConfig(
        key="lancers",
        base_url=(
            "https://www.lancers.jp/work/search/system?open=1&ref=header_menu&show_description=1"
            "&sort=client&work_rank%5B0%5D=2&work_rank%5B1%5D=3&work_rank%5B2%5D=0&category=0"
        ),
        list_selector=".p-search-job-media.c-media.c-media--item",
        title_selector="a.p-search-job-media__title",
        link_selector="a.p-search-job-media__title",
        pages=DEFAULT_PAGES,
        max_items_per_page=DEFAULT_MAX_ITEMS_PER_PAGE,
    ),
    SiteConfig(
        key="crowdworks",
        base_url="https://crowdworks.jp/public/jobs/group/development",
        list_selector="li[data-v-4ec52cea]",
        title_selector="h3.hJvZi a",
        link_selector="h3.hJvZi a",
        pages=DEFAULT_PAGES,
        max_items_per_page=DEFAULT_MAX_ITEMS_PER_PAGE,
    ),
)


def build_registry(sites: Iterable[SiteConfig]) -> Mapping[str, SiteConfig]:
    """Freeze sites into a read-only mapping keyed by site id (order kept)."""
    from .scrapers.registry import has

    out: dict[str, SiteConfig] = {}
    for site in sites:
        if site.key in out:
            raise ConfigError(f"Duplicate site key {site.key!r}.")
        if not has(site.key):
            raise ConfigError(f"No extraction strategy registered for site {site.key!r}.")
        out[site.key] = site
    return MappingProxyType(out)


def load_sites(path: str | None = None) -> Mapping[str, SiteConfig]:
    """Return the built-in registry, or the one described by the JSON file at `path`."""
    if not path:
        return build_registry(DEFAULT_SITES)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"job_harvest sites file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"job_harvest sites file is invalid JSON: {path}") from e

    sites = parse_sites_list(data)
    if not sites:
        raise ConfigError(f"No sites found in {path}")
    return build_registry(sites)
