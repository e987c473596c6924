from __future__ import annotations

import re
from typing import Any, Sequence

REF_HEADER_PATTERN = re.compile(
    r"(?:^|\n)(?:##\s*)?(?:References|Bibliography|Works Cited|Reference List|Endnotes)[ \t]*(?:\n|$)",
    re.IGNORECASE,
)
_MARKER = re.compile(r"\[\d+\]")
_MARKER_SPLIT = re.compile(r"(\[\d+\])")

ABSTRACT_PATTERN = re.compile(r"Abstract", re.IGNORECASE)


def _find_reference_start(pages: Sequence[str]) -> tuple[int, int] | None:
    """(page index, char offset just past the heading).

    The last page carrying a heading wins; within that page, its first heading.
    """
    for page_idx in range(len(pages) - 1, -1, -1):
        m = REF_HEADER_PATTERN.search(pages[page_idx] or "")
        if m is not None:
            return page_idx, m.end()
    return None


def _split_numbered(block: str, min_len: int) -> list[str]:
    parts = [p for p in _MARKER_SPLIT.split(block) if p.strip()]
    out: list[str] = []
    current = ""
    for part in parts:
        if _MARKER.fullmatch(part):
            if current.strip():
                out.append(current.strip())
            current = part
        else:
            current += part
    if current.strip():
        out.append(current.strip())
    return [r for r in out if len(r) >= min_len]


def extract_references(pages: Sequence[str], cfg: dict[str, Any] | None = None) -> list[str]:
    """Split the trailing bibliography of a rendered document into citations."""
    cfg = cfg or {}
    min_len = int(cfg.get("min_entry_length", 10))

    start = _find_reference_start(pages)
    if start is None:
        return []
    page_idx, offset = start

    raw = pages[page_idx][offset:]
    for text in pages[page_idx + 1 :]:
        raw += "\n" + (text or "")

    references: list[str] = []
    for block in re.split(r"\n\n+", raw):
        clean = block.replace("\n", " ").strip()
        if len(clean) < min_len:
            continue
        if len(_MARKER.findall(clean)) > 1:
            references.extend(_split_numbered(clean, min_len))
        else:
            references.append(clean)
    return references


def extract_abstract(first_page_text: str, cfg: dict[str, Any] | None = None) -> str:
    cfg = cfg or {}
    max_len = int(cfg.get("abstract_max_chars", 1000))
    fallback_len = int(cfg.get("abstract_fallback_chars", 500))

    text = first_page_text or ""
    if not text.strip():
        return ""
    m = ABSTRACT_PATTERN.search(text)
    if m is not None:
        abstract = text[m.end() :].strip()[:max_len]
        abstract = re.sub(r"^[:.\-\s]+", "", abstract)
        return abstract + "..."
    return text[:fallback_len] + "..."
