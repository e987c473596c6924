from __future__ import annotations

from typing import Any, Mapping, Sequence

from .types import Block, Fragment, PageLayout, index_fragments
from .utils import mode_height

HEADING_MARKER = "## "


def ends_with_wrap_hyphen(text: str) -> bool:
    """True for 'recon-' style endings; a lone dash or ' -' is left alone."""
    return len(text) >= 2 and text.endswith("-") and text[-2].isalnum()


def _block_height(block: Block, by_index: Mapping[int, Fragment], default: float) -> float:
    return mode_height((by_index[i].height for i in block.fragment_indices), default=default)


def render_page_text(
    fragments: Sequence[Fragment],
    layout: PageLayout,
    cfg: dict[str, Any] | None = None,
) -> str:
    """Flatten a page into text following its reading order.

    Paragraphs are separated by a blank line; headings (blocks whose dominant
    height clearly exceeds the body size) get a markdown marker; a word split
    by a hyphen at a line wrap is joined back together.
    """
    cfg = cfg or {}
    heading_ratio = float(cfg.get("heading_height_ratio", 1.2))
    space_gap = float(cfg.get("word_gap", 2.0))
    default_height = float(cfg.get("default_body_height", 12.0))

    by_index = index_fragments(fragments)
    body = mode_height((f.height for f in by_index.values() if f.text.strip()), default=default_height)

    out = ""
    prev: Fragment | None = None
    for block in layout.blocks:
        heading = _block_height(block, by_index, default_height) > body * heading_ratio
        block_started = False
        for line in block.lines:
            line_started = False
            for idx in line.fragment_indices:
                f = by_index[idx]
                if not f.text.strip():
                    continue
                if prev is None:
                    if heading:
                        out += HEADING_MARKER
                elif not block_started:
                    out += "\n\n"
                    if heading:
                        out += HEADING_MARKER
                elif not line_started:
                    if ends_with_wrap_hyphen(out):
                        out = out[:-1]
                    else:
                        out += "\n"
                elif f.x - prev.x_end > space_gap:
                    out += " "
                out += f.text
                prev = f
                block_started = True
                line_started = True
    return out
