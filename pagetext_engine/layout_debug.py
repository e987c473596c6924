"""Layout debug overlay.

Draws each fragment box on a blank page-sized canvas, coloured by the role
of its block, with the fragment's rank in the reading order next to it.
Two-column pages get the detected gap shaded. Meant for eyeballing why a
page reads in the wrong order.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from PIL import Image, ImageDraw, ImageFont

from .types import ROLE_HEADER, ROLE_LEFT, ROLE_RIGHT, ROLE_SINGLE, Fragment, PageLayout, index_fragments


@dataclass
class LayoutDebugConfig:
    scale: float = 2.0
    margin: float = 10.0
    line_width: int = 1
    colors: dict[str, str] = field(default_factory=lambda: {
        ROLE_HEADER: "#D62728",  # red
        ROLE_LEFT: "#1F77B4",  # blue
        ROLE_RIGHT: "#2CA02C",  # green
        ROLE_SINGLE: "#555555",  # gray
        "gap": "#FFF2A8",
    })

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LayoutDebugConfig":
        data = data or {}
        cfg = cls()
        cfg.scale = float(data.get("scale", cfg.scale))
        cfg.margin = float(data.get("margin", cfg.margin))
        cfg.line_width = int(data.get("line_width", cfg.line_width))
        cfg.colors.update(data.get("colors", {}) or {})
        return cfg


def render_layout_debug(
    fragments: Sequence[Fragment],
    layout: PageLayout,
    out_path: str | Path | None = None,
    cfg: LayoutDebugConfig | None = None,
) -> Image.Image:
    cfg = cfg or LayoutDebugConfig()
    s = cfg.scale
    by_index = index_fragments(fragments)

    if by_index:
        page_w = max(f.x_end for f in by_index.values()) + cfg.margin
        page_top = max(f.y + f.height for f in by_index.values()) + cfg.margin
    else:
        page_w = page_top = cfg.margin
    w = max(1, int(math.ceil(page_w * s)))
    h = max(1, int(math.ceil(page_top * s)))

    img = Image.new("RGB", (w, h), color=(255, 255, 255))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    if layout.columns.is_two_column:
        draw.rectangle(
            [layout.columns.left_column_end * s, 0, layout.columns.right_column_start * s, h],
            fill=cfg.colors["gap"],
        )

    rank = {idx: i for i, idx in enumerate(layout.order)}
    for block in layout.blocks:
        color = cfg.colors.get(block.role, cfg.colors[ROLE_SINGLE])
        for idx in block.fragment_indices:
            f = by_index[idx]
            x0 = f.x * s
            x1 = max(x0 + 1, f.x_end * s)
            y0 = (page_top - f.y - f.height) * s  # flip: PDF y grows upward
            y1 = max(y0 + 1, (page_top - f.y) * s)
            draw.rectangle([x0, y0, x1, y1], outline=color, width=cfg.line_width)
            draw.text((x0 + 1, y0 + 1), str(rank.get(idx, "?")), fill=color, font=font)

    if out_path is not None:
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
        img.save(out_path, format="PNG")
    return img
