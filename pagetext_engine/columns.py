"""Column boundary detection.

The canonical method builds an occupancy histogram over the page's
horizontal extent and looks for the widest empty run in the central band.
A bucket counts as empty when at most a small noise floor of fragments
touch it, so a title spanning both columns does not hide the gap; such
fragments are classified as straddlers afterwards.

The midpoint bisection is the older heuristic and is only used when
``columns.method`` is set to ``"midpoint"``.
"""
from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from .types import ColumnBounds, Fragment

SIDE_LEFT = "left"
SIDE_RIGHT = "right"
SIDE_STRADDLE = "straddle"

_EPS = 1e-6


def _page_extent(fragments: Sequence[Fragment]) -> tuple[float, float]:
    left = min(f.x for f in fragments)
    right = max(f.x_end for f in fragments)
    return left, right


def _single_column(fragments: Sequence[Fragment]) -> ColumnBounds:
    if not fragments:
        return ColumnBounds(left_column_end=0.0, right_column_start=0.0, is_two_column=False)
    _, right = _page_extent(fragments)
    return ColumnBounds(left_column_end=right, right_column_start=right, is_two_column=False)


def occupancy_histogram(fragments: Sequence[Fragment], left: float, right: float, buckets: int) -> np.ndarray:
    """Count, per bucket, how many fragments' horizontal spans touch it."""
    hist = np.zeros(buckets, dtype=np.int32)
    span = right - left
    if span <= 0:
        return hist
    scale = buckets / span
    for f in fragments:
        start = int(math.floor((f.x - left) * scale))
        end = int(math.ceil((f.x_end - left) * scale)) - 1
        start = max(0, min(buckets - 1, start))
        end = max(start, min(buckets - 1, end))
        hist[start : end + 1] += 1
    return hist


def widest_empty_run(empty: np.ndarray, lo: int, hi: int) -> tuple[int, int] | None:
    """Widest run of True in empty[lo:hi]; returns inclusive (start, end) bucket indices."""
    best: tuple[int, int] | None = None
    run_start = -1
    for i in range(lo, hi):
        if empty[i]:
            if run_start < 0:
                run_start = i
            if best is None or (i - run_start) > (best[1] - best[0]):
                best = (run_start, i)
        else:
            run_start = -1
    return best


def classify_fragment(f: Fragment, bounds: ColumnBounds) -> str:
    if f.x_end <= bounds.left_column_end + _EPS:
        return SIDE_LEFT
    if f.x >= bounds.right_column_start - _EPS:
        return SIDE_RIGHT
    return SIDE_STRADDLE


def detect_columns_histogram(fragments: Sequence[Fragment], cfg: dict[str, Any] | None = None) -> ColumnBounds:
    cfg = cfg or {}
    if not fragments:
        return _single_column(fragments)

    buckets = max(500, int(cfg.get("histogram_buckets", 500)))
    window_lo, window_hi = cfg.get("gap_search_window", [0.2, 0.8])
    min_gap_width = float(cfg.get("min_gap_width", 20.0))
    min_side_ratio = float(cfg.get("min_side_ratio", 0.15))
    max_straddle_ratio = float(cfg.get("max_straddle_ratio", 0.20))
    noise_ratio = float(cfg.get("gap_noise_ratio", 0.10))

    left, right = _page_extent(fragments)
    span = right - left
    if span <= min_gap_width:
        return _single_column(fragments)

    hist = occupancy_histogram(fragments, left, right, buckets)
    noise_floor = int(len(fragments) * noise_ratio)
    empty = hist <= noise_floor

    lo = int(buckets * float(window_lo))
    hi = int(math.ceil(buckets * float(window_hi)))
    run = widest_empty_run(empty, lo, hi)
    if run is None:
        return _single_column(fragments)

    bucket_width = span / buckets
    candidate = ColumnBounds(
        left_column_end=left + run[0] * bucket_width,
        right_column_start=left + (run[1] + 1) * bucket_width,
        is_two_column=True,
    )
    if candidate.gap_width < min_gap_width:
        return _single_column(fragments)

    sides = [classify_fragment(f, candidate) for f in fragments]
    n = float(len(fragments))
    n_left = sides.count(SIDE_LEFT)
    n_right = sides.count(SIDE_RIGHT)
    n_straddle = sides.count(SIDE_STRADDLE)

    if n_left / n < min_side_ratio or n_right / n < min_side_ratio:
        return _single_column(fragments)
    if n_straddle / n >= max_straddle_ratio:
        return _single_column(fragments)
    return candidate


def detect_columns_midpoint(fragments: Sequence[Fragment], cfg: dict[str, Any] | None = None) -> ColumnBounds:
    """Bisect at the middle of the page extent (legacy heuristic)."""
    cfg = cfg or {}
    if not fragments:
        return _single_column(fragments)
    max_straddle_ratio = float(cfg.get("max_straddle_ratio", 0.20))

    left, right = _page_extent(fragments)
    mid = (left + right) / 2.0
    crossers = sum(1 for f in fragments if f.x < mid < f.x_end)
    if crossers / float(len(fragments)) >= max_straddle_ratio:
        return _single_column(fragments)
    return ColumnBounds(left_column_end=mid, right_column_start=mid, is_two_column=True)


def detect_columns(fragments: Sequence[Fragment], cfg: dict[str, Any] | None = None) -> ColumnBounds:
    cfg = cfg or {}
    if str(cfg.get("method", "histogram")) == "midpoint":
        return detect_columns_midpoint(fragments, cfg)
    return detect_columns_histogram(fragments, cfg)
