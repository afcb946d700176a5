from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .utils import getenv_str, truthy

DEFAULT_SQLITE_PATH = "/app/local/state/jobs.db"

# Tuning knobs (kept low on purpose: the sources are small job boards)
DEFAULT_PAGES = (1,)
DEFAULT_MAX_ITEMS_PER_PAGE = 15
DEFAULT_MAX_TOTAL_ITEMS = 15
DEFAULT_DETAIL_CONCURRENCY = 1
DEFAULT_LIST_TIMEOUT = 10.0
DEFAULT_DETAIL_TIMEOUT = 6.0
DEFAULT_FETCH_RETRIES = 2
DEFAULT_BACKOFF_BASE = 0.5
DEFAULT_CHUNK_SIZE = 100
DEFAULT_PAGE_DELAY = 0.3


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env/site files cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class SiteConfig:
    """
    Static description of one source site.
    - key: site identifier, also the strategy key (e.g. "lancers")
    - base_url: listing entry URL; also the Referer and the base for relative links
    - link_attr / link_selector: exactly one says where a list item's link lives
    """

    key: str
    base_url: str
    list_selector: str
    title_selector: str
    link_attr: str | None = None
    link_selector: str | None = None
    pages: tuple[int, ...] = DEFAULT_PAGES
    max_items_per_page: int = DEFAULT_MAX_ITEMS_PER_PAGE


@dataclass
class Settings:
    """
    Canonical configuration for one 'job_harvest' pass.

    Values come from kwargs first, then JOB_HARVEST_* environment variables,
    then the defaults above. The site registry is the built-in one unless
    `sites_path` points at a JSON list of site objects.
    """

    sqlite_path: str = DEFAULT_SQLITE_PATH
    sites_path: str | None = None
    site: str | None = None  # restrict the run to one site when known

    max_total_items: int = DEFAULT_MAX_TOTAL_ITEMS
    max_items_per_page: int | None = None  # override every site's cap
    pages: tuple[int, ...] | None = None  # override every site's pages

    detail_concurrency: int = DEFAULT_DETAIL_CONCURRENCY
    list_timeout: float = DEFAULT_LIST_TIMEOUT
    detail_timeout: float = DEFAULT_DETAIL_TIMEOUT
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    backoff_base: float = DEFAULT_BACKOFF_BASE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    page_delay: float = DEFAULT_PAGE_DELAY
    skip_network: bool = False

    _sites: Mapping[str, SiteConfig] | None = field(default=None, repr=False)

    # ------------- convenience -------------
    def site_registry(self) -> Mapping[str, SiteConfig]:
        """Read-only mapping of every configured site, loaded once."""
        if self._sites is None:
            from .sites import load_sites

            self._sites = load_sites(self.sites_path)
        return self._sites

    def selected_sites(self) -> list[SiteConfig]:
        """
        Sites this run visits, in registry order, with page/cap overrides applied.
        An unknown `site` falls back to every site (the caller logs it).
        """
        registry = self.site_registry()
        if self.site and self.site in registry:
            chosen = [registry[self.site]]
        else:
            chosen = list(registry.values())

        overrides: dict[str, Any] = {}
        if self.pages:
            overrides["pages"] = tuple(self.pages)
        if self.max_items_per_page:
            overrides["max_items_per_page"] = self.max_items_per_page
        return [replace(s, **overrides) for s in chosen] if overrides else chosen

    def site_is_known(self) -> bool:
        return bool(self.site) and self.site in self.site_registry()

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs with validation.

        Expected kwargs (all optional):

            sqlite_path: str        (env JOB_HARVEST_SQLITE_PATH)
            sites_path: str         (env JOB_HARVEST_SITES_PATH)
            site: str               restrict to one site id
            max_total_items: int = 15
            max_items_per_page: int
            pages: list[int]
            detail_concurrency: int = 1
            list_timeout / detail_timeout: float seconds (10.0 / 6.0)
            fetch_retries: int = 2
            backoff_base: float seconds = 0.5
            chunk_size: int = 100
            page_delay: float seconds = 0.3
            skip_network: bool = false
        """
        kw = dict(kwargs or {})

        def pick(name: str) -> Any:
            val = kw.get(name)
            if val is None or val == "":
                val = getenv_str(f"JOB_HARVEST_{name.upper()}")
            return None if val == "" else val

        try:
            settings = cls(
                sqlite_path=str(pick("sqlite_path") or DEFAULT_SQLITE_PATH),
                sites_path=_opt_str(pick("sites_path")),
                site=_opt_str(pick("site")),
                max_total_items=_int(pick("max_total_items"), DEFAULT_MAX_TOTAL_ITEMS),
                max_items_per_page=_int(pick("max_items_per_page"), None),
                pages=_pages(pick("pages")),
                detail_concurrency=_int(pick("detail_concurrency"), DEFAULT_DETAIL_CONCURRENCY),
                list_timeout=_float(pick("list_timeout"), DEFAULT_LIST_TIMEOUT),
                detail_timeout=_float(pick("detail_timeout"), DEFAULT_DETAIL_TIMEOUT),
                fetch_retries=_int(pick("fetch_retries"), DEFAULT_FETCH_RETRIES),
                backoff_base=_float(pick("backoff_base"), DEFAULT_BACKOFF_BASE),
                chunk_size=_int(pick("chunk_size"), DEFAULT_CHUNK_SIZE),
                page_delay=_float(pick("page_delay"), DEFAULT_PAGE_DELAY),
                skip_network=truthy(pick("skip_network")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid job_harvest setting: {e}") from e

        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _int(v: Any, default: int | None) -> int | None:
    if v is None:
        return default
    return int(v)


def _float(v: Any, default: float) -> float:
    if v is None:
        return default
    return float(v)


def _pages(v: Any) -> tuple[int, ...] | None:
    """Accept [1, 2], "1,2" or a single number."""
    if v is None:
        return None
    if isinstance(v, str):
        parts = [p.strip() for p in v.split(",") if p.strip()]
        return tuple(int(p) for p in parts) or None
    if isinstance(v, (list, tuple)):
        return tuple(int(p) for p in v) or None
    return (int(v),)


def parse_sites_list(value: Any) -> list[SiteConfig]:
    """
    Parse a flat list into SiteConfig objects.
    Accepts: [{"key": "...", "base_url": "...", "list_selector": "...",
               "title_selector": "...", "link_attr"|"link_selector": "...",
               "pages": [1], "max_items_per_page": 15}, ...]
    """
    if not value:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of site objects.")
    allowed = {f for f in SiteConfig.__dataclass_fields__}
    out: list[SiteConfig] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigError(f"Site[{i}] must be an object.")
        unknown = set(item) - allowed
        if unknown:
            raise ConfigError(f"Site[{i}] has unknown keys: {sorted(unknown)}")
        missing = [k for k in ("key", "base_url", "list_selector", "title_selector") if not item.get(k)]
        if missing:
            raise ConfigError(f"Site[{i}] requires {missing}.")
        if not (item.get("link_attr") or item.get("link_selector")):
            raise ConfigError(f"Site[{i}] needs 'link_attr' or 'link_selector'.")
        pages = _pages(item.get("pages")) or DEFAULT_PAGES
        out.append(
            SiteConfig(
                key=str(item["key"]).strip(),
                base_url=str(item["base_url"]).strip(),
                list_selector=str(item["list_selector"]),
                title_selector=str(item["title_selector"]),
                link_attr=_opt_str(item.get("link_attr")),
                link_selector=_opt_str(item.get("link_selector")),
                pages=pages,
                max_items_per_page=int(item.get("max_items_per_page") or DEFAULT_MAX_ITEMS_PER_PAGE),
            )
        )
    return out


def _validate_settings(s: Settings) -> None:
    if not s.sqlite_path.strip():
        raise ConfigError("'sqlite_path' cannot be empty.")
    if s.max_total_items <= 0:
        raise ConfigError("'max_total_items' must be >= 1.")
    if s.max_items_per_page is not None and s.max_items_per_page <= 0:
        raise ConfigError("'max_items_per_page' must be >= 1.")
    if s.pages is not None and any(p <= 0 for p in s.pages):
        raise ConfigError("'pages' must be positive page numbers.")
    if s.detail_concurrency <= 0:
        raise ConfigError("'detail_concurrency' must be >= 1.")
    if s.list_timeout <= 0 or s.detail_timeout <= 0:
        raise ConfigError("Timeouts must be > 0 seconds.")
    if s.fetch_retries < 0:
        raise ConfigError("'fetch_retries' cannot be negative.")
    if s.backoff_base < 0 or s.page_delay < 0:
        raise ConfigError("'backoff_base' and 'page_delay' cannot be negative.")
    if s.chunk_size <= 0:
        raise ConfigError("'chunk_size' must be >= 1.")

    # Load the registry now so a broken sites file fails fast
    if not s.site_registry():
        raise ConfigError("No sites configured.")
