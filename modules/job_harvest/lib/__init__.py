# modules/job_harvest/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings, SiteConfig
from .engine import run_once
from .models import CandidateItem, HarvestedRecord, HarvestSummary, StructuredFields

__all__ = [
    "CandidateItem",
    "ConfigError",
    "HarvestSummary",
    "HarvestedRecord",
    "Settings",
    "SiteConfig",
    "StructuredFields",
    "run_once",
]
