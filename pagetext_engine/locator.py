"""Anchor-based quote location inside one page's word stream.

A quote produced upstream rarely matches the page verbatim, and its first
word is often a common one ("the", "in"), so several query words are tried
as anchors. From every page position matching an anchor the alignment is
extended backward and forward independently; each candidate is scored by
how much of the quote it covers and how tightly packed the matches are.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Sequence

from .fuzzy import fuzzy_word_match
from .types import MatchResult, WordToken


@dataclass(frozen=True)
class LocatorConfig:
    min_match_ratio: float = 0.45
    max_window_multiplier: float = 2.5
    max_skip_gap: int = 4
    ratio_weight: float = 0.7
    density_weight: float = 0.3

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LocatorConfig":
        data = data or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def anchor_indices(query_len: int) -> list[int]:
    out = [0]
    if query_len > 2:
        out.append(1)
    if query_len > 4:
        out.append(2)
    return out


def _extend_backward(
    page_words: Sequence[WordToken],
    query_words: Sequence[str],
    anchor_q: int,
    anchor_p: int,
    multiplier: float,
) -> list[WordToken]:
    matched: list[WordToken] = []
    q = anchor_q - 1
    p = anchor_p - 1
    limit = max(0, anchor_p - int(math.ceil(anchor_q * multiplier)))
    while q >= 0 and p >= limit:
        if fuzzy_word_match(page_words[p].normalized_word, query_words[q]):
            matched.append(page_words[p])
            q -= 1
        p -= 1
    matched.reverse()
    return matched


def _extend_forward(
    page_words: Sequence[WordToken],
    query_words: Sequence[str],
    anchor_q: int,
    anchor_p: int,
    multiplier: float,
    max_skip_gap: int,
) -> list[WordToken]:
    matched: list[WordToken] = []
    q = anchor_q + 1
    p = anchor_p + 1
    limit = min(len(page_words), anchor_p + int(math.ceil((len(query_words) - anchor_q) * multiplier)))
    skips = 0
    while q < len(query_words) and p < limit:
        word = page_words[p].normalized_word
        if fuzzy_word_match(word, query_words[q]):
            matched.append(page_words[p])
            q += 1
            skips = 0
        else:
            skips += 1
            if skips > max_skip_gap:
                # resync: drop one query word and retry on this page word
                if q + 1 < len(query_words) and fuzzy_word_match(word, query_words[q + 1]):
                    matched.append(page_words[p])
                    q += 2
                    skips = 0
                else:
                    break
        p += 1
    return matched


def score_candidate(
    matched: Sequence[WordToken],
    query_len: int,
    cfg: LocatorConfig,
) -> tuple[float, float] | None:
    """(score, match_ratio) or None when the candidate is rejected."""
    match_ratio = len(matched) / float(query_len)
    if match_ratio < cfg.min_match_ratio:
        return None
    span = matched[-1].global_index - matched[0].global_index + 1
    if span > query_len * cfg.max_window_multiplier:
        return None
    density = len(matched) / float(max(span, 1))
    return match_ratio * cfg.ratio_weight + density * cfg.density_weight, match_ratio


def find_best_match(
    page_words: Sequence[WordToken],
    query_words: Sequence[str],
    cfg: LocatorConfig | None = None,
) -> MatchResult | None:
    cfg = cfg or LocatorConfig()
    if not page_words or not query_words:
        return None

    best: MatchResult | None = None
    for anchor_q in anchor_indices(len(query_words)):
        anchor = query_words[anchor_q]
        for anchor_p, token in enumerate(page_words):
            if not fuzzy_word_match(token.normalized_word, anchor):
                continue

            matched = _extend_backward(page_words, query_words, anchor_q, anchor_p, cfg.max_window_multiplier)
            matched.append(token)
            matched.extend(
                _extend_forward(
                    page_words,
                    query_words,
                    anchor_q,
                    anchor_p,
                    cfg.max_window_multiplier,
                    cfg.max_skip_gap,
                )
            )

            scored = score_candidate(matched, len(query_words), cfg)
            if scored is None:
                continue
            score, ratio = scored
            if best is None or score > best.score:
                best = MatchResult(
                    matched_tokens=matched,
                    score=score,
                    match_ratio=ratio,
                    start_word_index=matched[0].global_index,
                    end_word_index=matched[-1].global_index,
                )
    return best
