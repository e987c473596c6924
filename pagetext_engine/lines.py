from __future__ import annotations

from typing import Any, Mapping, Sequence

from .types import Block, Fragment, Line


def build_lines(
    fragments: Mapping[int, Fragment],
    indices: Sequence[int],
    cfg: dict[str, Any] | None = None,
) -> list[Line]:
    """Group fragments into visual lines, top of page first."""
    cfg = cfg or {}
    height_ratio = float(cfg.get("line_height_ratio", 0.5))
    min_tolerance = float(cfg.get("min_line_tolerance", 4.0))

    ordered = sorted(indices, key=lambda i: (-fragments[i].y, fragments[i].x, i))

    lines: list[Line] = []
    for idx in ordered:
        f = fragments[idx]
        h = max(0.0, float(f.height))
        if lines:
            cur = lines[-1]
            tolerance = max(h * height_ratio, cur.height * height_ratio, min_tolerance)
            if abs(cur.y - f.y) <= tolerance:
                cur.fragment_indices.append(idx)
                cur.height = max(cur.height, h)
                cur.x0 = min(cur.x0, f.x)
                cur.x1 = max(cur.x1, f.x_end)
                continue
        lines.append(Line(y=f.y, height=h, fragment_indices=[idx], x0=f.x, x1=f.x_end))

    for line in lines:
        line.fragment_indices.sort(key=lambda i: (fragments[i].x, i))
    return lines


def build_blocks(lines: Sequence[Line], role: str, cfg: dict[str, Any] | None = None) -> list[Block]:
    """Join consecutive lines into paragraphs unless a large vertical break separates them."""
    cfg = cfg or {}
    gap_ratio = float(cfg.get("paragraph_gap_ratio", 1.5))
    negative_slack = float(cfg.get("negative_gap_slack", 10.0))

    blocks: list[Block] = []
    prev: Line | None = None
    for line in lines:
        if prev is None:
            blocks.append(Block(role=role, lines=[line]))
        else:
            gap = prev.y - line.y
            if gap > prev.height * gap_ratio or gap < -negative_slack:
                blocks.append(Block(role=role, lines=[line]))
            else:
                blocks[-1].lines.append(line)
        prev = line
    return blocks
