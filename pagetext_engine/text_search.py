"""Plain in-document phrase search over reading-order page text.

Each page gets a flat text plus a per-character map back to the fragment
(and character within it) that produced it, so hits can be highlighted on
the fragments themselves.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .renderer import ends_with_wrap_hyphen
from .types import Fragment, PageLayout, index_fragments

CharRef = tuple[int, int]  # (fragment index, char index within fragment text)


@dataclass
class PageTextIndex:
    text: str = ""
    char_map: list[CharRef | None] = field(default_factory=list)

    def fragments_between(self, start: int, end: int) -> list[int]:
        out: list[int] = []
        for ref in self.char_map[max(0, start) : max(0, end)]:
            if ref is not None and ref[0] not in out:
                out.append(ref[0])
        return out


@dataclass(frozen=True)
class TextHit:
    start_page_index: int
    start_char_index: int
    end_page_index: int
    end_char_index: int


def build_text_index(
    fragments: Sequence[Fragment],
    layout: PageLayout,
    cfg: dict[str, Any] | None = None,
) -> PageTextIndex:
    cfg = cfg or {}
    space_gap = float(cfg.get("word_gap", 2.0))
    by_index = index_fragments(fragments)

    chars: list[str] = []
    char_map: list[CharRef | None] = []
    prev: Fragment | None = None
    for block in layout.blocks:
        for line in block.lines:
            line_started = False
            for idx in line.fragment_indices:
                f = by_index[idx]
                if not f.text.strip():
                    continue
                if prev is not None:
                    if not line_started:
                        if ends_with_wrap_hyphen("".join(chars[-2:])):
                            chars.pop()
                            char_map.pop()
                        else:
                            chars.append(" ")
                            char_map.append(None)
                    elif f.x > prev.x_end + space_gap:
                        chars.append(" ")
                        char_map.append(None)
                for k, ch in enumerate(f.text):
                    chars.append(ch)
                    char_map.append((idx, k))
                prev = f
                line_started = True
    return PageTextIndex(text="".join(chars), char_map=char_map)


def _locate(page_starts: list[int], abs_index: int) -> tuple[int, int]:
    page_index = len(page_starts) - 1
    for i, start in enumerate(page_starts):
        nxt = page_starts[i + 1] if i + 1 < len(page_starts) else None
        if abs_index >= start and (nxt is None or abs_index < nxt):
            page_index = i
            break
    return page_index, abs_index - page_starts[page_index]


def search_text(indexes: Sequence[PageTextIndex], query: str, cfg: dict[str, Any] | None = None) -> list[TextHit]:
    """Find a phrase in the document.

    Short queries (up to max_exact_words) return every exact,
    case-insensitive occurrence. When nothing is found, long queries are
    matched as "first three words ... last three words" across the whole
    document, and finally the first two words alone.
    """
    cfg = cfg or {}
    max_exact_words = int(cfg.get("max_exact_words", 5))
    span_min_words = int(cfg.get("span_min_words", 6))

    query = (query or "").strip()
    words = query.split()
    if not words:
        return []

    hits: list[TextHit] = []
    lowered_query = query.lower()
    if len(words) <= max_exact_words:
        for page_index, idx in enumerate(indexes):
            text = idx.text.lower()
            start = text.find(lowered_query)
            while start != -1:
                hits.append(TextHit(page_index, start, page_index, start + len(query)))
                start = text.find(lowered_query, start + 1)
    if hits or len(words) < 2:
        return hits

    full_text = "\n".join(idx.text for idx in indexes).lower()
    page_starts: list[int] = []
    offset = 0
    for idx in indexes:
        page_starts.append(offset)
        offset += len(idx.text) + 1

    if len(words) >= span_min_words:
        start_phrase = " ".join(words[:3]).lower()
        end_phrase = " ".join(words[-3:]).lower()
        search_from = 0
        while search_from < len(full_text):
            start = full_text.find(start_phrase, search_from)
            if start == -1:
                break
            end = full_text.find(end_phrase, start + len(start_phrase))
            if end == -1:
                break
            intervening = full_text.find(start_phrase, start + 1)
            if intervening != -1 and intervening < end:
                search_from = intervening
                continue
            sp, sc = _locate(page_starts, start)
            ep, ec = _locate(page_starts, end + len(end_phrase))
            return [TextHit(sp, sc, ep, ec)]

    prefix = " ".join(words[:2]).lower()
    start = full_text.find(prefix)
    if start != -1:
        sp, sc = _locate(page_starts, start)
        ep, ec = _locate(page_starts, start + len(prefix))
        return [TextHit(sp, sc, ep, ec)]
    return []


def hit_fragments(indexes: Sequence[PageTextIndex], hit: TextHit, page_index: int) -> list[int]:
    """Fragment indices a hit covers on one page."""
    if not (hit.start_page_index <= page_index <= hit.end_page_index):
        return []
    idx = indexes[page_index]
    start = hit.start_char_index if page_index == hit.start_page_index else 0
    end = hit.end_char_index if page_index == hit.end_page_index else len(idx.text)
    return idx.fragments_between(start, end)
