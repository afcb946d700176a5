"""
Text-to-field structuring.

Detail pages from every site are first reduced to one text with
`--- header ---` markers between labeled sections. That text is split back on
the markers and each section is routed to a field by keyword match on its
header. The process is site-agnostic and deterministic: the keyword table is
ordered and the first matching field wins.
"""

from __future__ import annotations

import re

from .models import StructuredFields
from .scrapers.base import RawDetail

# Ordered: first field whose keywords occur in the header wins.
KEYWORD_TABLE: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("price", ("単価", "予算", "報酬")),
    ("period", ("期間", "納期", "稼働時間")),
    ("skills", ("スキル", "経験", "条件")),
    ("detail", ("内容", "詳細", "概要", "職務")),
)

_MARKER_SPLIT = re.compile(r"---.*?---")
_MARKER_HEADER = re.compile(r"---(.*?)---")


def render_sections(raw: RawDetail) -> str:
    """
    Serialize a RawDetail to the marker text the structurer reads:
    sections first, then the unlabeled body, then the meta description.
    """
    if raw.sections:
        return "\n\n".join(f"--- {header} ---\n{content}" for header, content in raw.sections)
    return raw.body or raw.meta_description or ""


def classify_header(header: str) -> str:
    for name, keywords in KEYWORD_TABLE:
        if any(kw in header for kw in keywords):
            return name
    return "other"


def structure_text(full_text: str | None) -> StructuredFields:
    """Split marker text into sections and route each one to a field; caps applied last."""
    if not full_text:
        return StructuredFields()

    sections = _MARKER_SPLIT.split(full_text)
    headers = [m.strip() for m in _MARKER_HEADER.findall(full_text)]

    if not headers and len(sections) > 1:
        # Markers were seen by the splitter but no header could be read back
        return StructuredFields(detail=full_text).capped()

    buckets: dict[str, str] = {"detail": "", "price": "", "period": "", "skills": "", "other": ""}
    initial = sections[0].strip() if sections else ""

    if not headers:
        buckets["detail"] = initial
    else:
        for idx, header in enumerate(headers):
            content = sections[idx + 1].strip() if idx + 1 < len(sections) else ""
            if not content:
                continue
            target = classify_header(header)
            section_text = f"{header}\n{content}"
            buckets[target] = f"{buckets[target]}\n\n{section_text}" if buckets[target] else section_text

        if initial:
            if not buckets["detail"]:
                buckets["detail"] = initial
            else:
                buckets["other"] = f"{initial}\n\n{buckets['other']}".strip()

    return StructuredFields(**buckets).capped()


def structure_detail(raw: RawDetail) -> StructuredFields:
    return structure_text(render_sections(raw))
