from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

ROLE_HEADER = "header"
ROLE_LEFT = "left"
ROLE_RIGHT = "right"
ROLE_SINGLE = "single"


@dataclass(frozen=True)
class Page:
    page_index: int  # 0-based
    page_id: str  # e.g. page_003
    source_ref: str  # e.g. paper.pdf#page=3


@dataclass(frozen=True)
class Fragment:
    """One decoded text run. y grows upward (PDF user space)."""

    text: str
    origin: tuple[float, float]
    width: float
    height: float
    source_index: int  # position in decoder order, unique per page
    font_id: str | None = None

    @property
    def x(self) -> float:
        return float(self.origin[0])

    @property
    def y(self) -> float:
        return float(self.origin[1])

    @property
    def x_end(self) -> float:
        return self.x + float(self.width)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "width": float(self.width),
            "height": float(self.height),
            "font_id": self.font_id,
            "source_index": self.source_index,
        }


@dataclass(frozen=True)
class ColumnBounds:
    left_column_end: float
    right_column_start: float
    is_two_column: bool

    @property
    def gap_width(self) -> float:
        return self.right_column_start - self.left_column_end


@dataclass
class Line:
    y: float  # reference baseline (first fragment seen)
    height: float  # max fragment height seen
    fragment_indices: list[int] = field(default_factory=list)
    x0: float = 0.0
    x1: float = 0.0


@dataclass
class Block:
    role: str
    lines: list[Line] = field(default_factory=list)

    @property
    def fragment_indices(self) -> list[int]:
        out: list[int] = []
        for line in self.lines:
            out.extend(line.fragment_indices)
        return out

    @property
    def top(self) -> float:
        return max((ln.y for ln in self.lines), default=0.0)


@dataclass
class PageLayout:
    columns: ColumnBounds
    blocks: list[Block]
    order: list[int]  # ReadingOrder: fragment source indices

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": {
                "left_column_end": self.columns.left_column_end,
                "right_column_start": self.columns.right_column_start,
                "is_two_column": self.columns.is_two_column,
            },
            "blocks": [
                {
                    "role": b.role,
                    "lines": [ln.fragment_indices for ln in b.lines],
                }
                for b in self.blocks
            ],
            "reading_order": list(self.order),
        }


@dataclass(frozen=True)
class WordToken:
    normalized_word: str
    raw_word: str
    fragment_index: int
    char_start: int
    char_end: int  # exclusive
    global_index: int


@dataclass
class MatchResult:
    matched_tokens: list[WordToken]
    score: float
    match_ratio: float
    start_word_index: int
    end_word_index: int

    @property
    def fragment_indices(self) -> list[int]:
        """Fragments to highlight, first occurrence order, no duplicates."""
        seen: list[int] = []
        for t in self.matched_tokens:
            if t.fragment_index not in seen:
                seen.append(t.fragment_index)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 4),
            "match_ratio": round(self.match_ratio, 4),
            "start_word_index": self.start_word_index,
            "end_word_index": self.end_word_index,
            "fragment_indices": self.fragment_indices,
            "matched_words": [t.raw_word for t in self.matched_tokens],
        }


@dataclass
class FuzzySearchResult:
    page_number: int  # 1-based
    match: MatchResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "match": self.match.to_dict() if self.match is not None else None,
        }


def index_fragments(fragments: Iterable[Fragment]) -> dict[int, Fragment]:
    """Key fragments by source_index; a repeated index is an error, never a silent overwrite."""
    by_index: dict[int, Fragment] = {}
    for f in fragments:
        if f.source_index in by_index:
            raise ValueError(f"duplicate fragment source_index: {f.source_index}")
        by_index[f.source_index] = f
    return by_index
