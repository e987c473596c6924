"""Reading-order assembly.

Headers (fragments straddling the column gap) are read first, then the left
column top to bottom, then the right column. Columns are never interleaved
by absolute y.
"""
from __future__ import annotations

from typing import Any, Sequence

from .columns import SIDE_LEFT, SIDE_RIGHT, classify_fragment, detect_columns
from .config import EngineConfig
from .lines import build_blocks, build_lines
from .types import ROLE_HEADER, ROLE_LEFT, ROLE_RIGHT, ROLE_SINGLE, Block, Fragment, PageLayout, index_fragments


def _blocks_for(
    by_index: dict[int, Fragment],
    indices: list[int],
    role: str,
    lines_cfg: dict[str, Any],
) -> list[Block]:
    if not indices:
        return []
    lines = build_lines(by_index, indices, lines_cfg)
    blocks = build_blocks(lines, role, lines_cfg)
    blocks.sort(key=lambda b: -b.top)
    return blocks


def assemble_blocks(headers: list[Block], left: list[Block], right: list[Block]) -> list[Block]:
    return [*headers, *left, *right]


def build_page_layout(fragments: Sequence[Fragment], cfg: EngineConfig | None = None) -> PageLayout:
    """Column detection, line/paragraph grouping and ordering for one page."""
    cfg = cfg or EngineConfig()
    by_index = index_fragments(fragments)
    columns = detect_columns(list(by_index.values()), cfg.columns)

    if not columns.is_two_column:
        blocks = _blocks_for(by_index, list(by_index), ROLE_SINGLE, cfg.lines)
    else:
        buckets: dict[str, list[int]] = {ROLE_HEADER: [], ROLE_LEFT: [], ROLE_RIGHT: []}
        for idx, f in by_index.items():
            side = classify_fragment(f, columns)
            if side == SIDE_LEFT:
                buckets[ROLE_LEFT].append(idx)
            elif side == SIDE_RIGHT:
                buckets[ROLE_RIGHT].append(idx)
            else:
                buckets[ROLE_HEADER].append(idx)
        blocks = assemble_blocks(
            _blocks_for(by_index, buckets[ROLE_HEADER], ROLE_HEADER, cfg.lines),
            _blocks_for(by_index, buckets[ROLE_LEFT], ROLE_LEFT, cfg.lines),
            _blocks_for(by_index, buckets[ROLE_RIGHT], ROLE_RIGHT, cfg.lines),
        )

    order: list[int] = []
    for b in blocks:
        order.extend(b.fragment_indices)
    return PageLayout(columns=columns, blocks=blocks, order=order)
