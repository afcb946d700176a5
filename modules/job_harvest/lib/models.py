from __future__ import annotations

from dataclasses import dataclass, field, replace

# Per-field caps (characters) applied after all concatenation.
FIELD_CAPS: dict[str, int] = {
    "detail": 4000,
    "price": 1000,
    "period": 1000,
    "skills": 2000,
    "other": 2000,
    "reserved": 0,
}


@dataclass(frozen=True)
class CandidateItem:
    """One (title, absolute URL) pair lifted off a listing page."""

    title: str
    url: str


@dataclass(frozen=True)
class StructuredFields:
    """
    Semantic buckets a posting's free text is classified into.
    Absent data is the empty string, never None.
    """

    detail: str = ""
    price: str = ""
    period: str = ""
    skills: str = ""
    other: str = ""
    reserved: str = ""

    def capped(self) -> StructuredFields:
        """Return a copy with every field trimmed and cut to its cap."""
        return StructuredFields(**{name: cap_text(getattr(self, name), cap) for name, cap in FIELD_CAPS.items()})

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in FIELD_CAPS)

    def as_dict(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in FIELD_CAPS}


EMPTY_FIELDS = StructuredFields()


@dataclass(frozen=True)
class HarvestedRecord:
    """
    A posting ready for the store. `url` becomes the canonical URL once the
    batch has been through dedupe.
    """

    url: str
    title: str
    source_host: str
    fields: StructuredFields = EMPTY_FIELDS

    def with_url(self, url: str) -> HarvestedRecord:
        return replace(self, url=url)

    def as_row(self) -> dict[str, str]:
        """Flatten to the `jobs` table columns (caps re-applied)."""
        return {
            "canonical_url": self.url,
            "title": self.title,
            "source_host": self.source_host,
            **self.fields.capped().as_dict(),
        }


@dataclass
class HarvestSummary:
    """
    Outcome of one harvesting pass.
    - collected: records produced before dedupe
    - deduped:   records left after dedupe
    - inserted:  rows the store confirmed
    """

    collected: int = 0
    deduped: int = 0
    inserted: int = 0
    by_site: dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0

    def response_body(self) -> dict:
        if self.collected == 0:
            return {"ok": True, "message": "No items fetched"}
        return {"ok": True, "collected": self.collected, "inserted": self.inserted}


def cap_text(value: str | None, cap: int) -> str:
    if not value:
        return ""
    return value.strip()[:cap].strip()
