from __future__ import annotations

from .base import ScraperError, SiteStrategy

# In-process registry: site key -> strategy
_REGISTRY: dict[str, SiteStrategy] = {}


def register(strategy: SiteStrategy) -> SiteStrategy:
    """
    Register a site strategy under its key.
    Re-registering the same object is a no-op; a different one is rejected.
    """
    key = (strategy.key or "").strip().lower()
    if not key:
        raise ScraperError(f"Cannot register strategy {strategy!r}: missing/empty 'key'.")
    if key in _REGISTRY and _REGISTRY[key] is not strategy:
        raise ScraperError(f"Site {key!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = strategy
    return strategy


def get(key: str) -> SiteStrategy:
    """
    Look up a strategy by site key (case-insensitive).
    Raises ScraperError if not found.
    """
    k = (key or "").strip().lower()
    if k not in _REGISTRY:
        raise ScraperError(f"No strategy registered for site {key!r}.")
    return _REGISTRY[k]


def has(key: str) -> bool:
    return (key or "").strip().lower() in _REGISTRY


def all_keys() -> list[str]:
    """Registered site keys in registration order (debugging/tests)."""
    return list(_REGISTRY)
