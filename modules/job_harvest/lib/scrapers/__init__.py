# modules/job_harvest/lib/scrapers/__init__.py
from __future__ import annotations

# Importing the site modules registers their strategies.
from . import crowdworks, freelance_start, lancers
from .base import RawDetail, ScraperError, SiteStrategy
from .registry import all_keys, get, has, register

__all__ = [
    "RawDetail",
    "ScraperError",
    "SiteStrategy",
    "all_keys",
    "crowdworks",
    "freelance_start",
    "get",
    "has",
    "lancers",
    "register",
]
