"""Locate a quote across the pages of a document.

Pages are tried nearest-first around the hinted page (target, then +/-1,
then +/-2) and finally in document order. The first page whose best
candidate reaches the acceptance score wins. Every page is tokenized and
searched at most once per request.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Any, Callable, Protocol, Sequence

from .locator import LocatorConfig, find_best_match
from .tokenizer import tokenize_query
from .types import FuzzySearchResult, MatchResult, WordToken

logger = logging.getLogger(__name__)

PageWordsLoader = Callable[[int], Sequence[WordToken]]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class SearchConfig:
    accept_score: float = 0.40
    min_query_words: int = 2
    neighbourhood_radius: int = 2
    max_workers: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SearchConfig":
        data = data or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def neighbourhood_tiers(target_page: int, radius: int) -> list[list[int]]:
    """[[t], [t-1, t+1], [t-2, t+2], ...] (unfiltered)."""
    tiers = [[target_page]]
    for d in range(1, radius + 1):
        tiers.append([target_page - d, target_page + d])
    return tiers


def _cancelled(cancel: CancelToken | None) -> bool:
    return cancel is not None and cancel.is_set()


class _PageSearch:
    def __init__(
        self,
        load_words: PageWordsLoader,
        query_words: list[str],
        num_pages: int,
        cfg: SearchConfig,
        locator_cfg: LocatorConfig,
    ):
        self.load_words = load_words
        self.query_words = query_words
        self.num_pages = num_pages
        self.cfg = cfg
        self.locator_cfg = locator_cfg
        self.visited: set[int] = set()

    def claim(self, page_number: int) -> bool:
        if page_number < 1 or page_number > self.num_pages or page_number in self.visited:
            return False
        self.visited.add(page_number)
        return True

    def search(self, page_number: int) -> MatchResult | None:
        try:
            words = self.load_words(page_number)
        except Exception as e:
            # a page that cannot be decoded counts as empty
            logger.warning("page %d skipped during quote search: %s", page_number, e)
            return None
        if not words:
            return None
        match = find_best_match(words, self.query_words, self.locator_cfg)
        if match is not None and match.score >= self.cfg.accept_score:
            return match
        return None


def fuzzy_find_in_document(
    load_words: PageWordsLoader,
    target_page: int,
    quote: str,
    num_pages: int,
    cfg: SearchConfig | None = None,
    locator_cfg: LocatorConfig | None = None,
    cancel: CancelToken | None = None,
) -> FuzzySearchResult:
    """Resolve (page hint, quote) to a page and, when found, the matched words.

    load_words(page_number) returns the reading-order word stream of a
    1-based page. A result with match=None means: navigate to the page
    without highlighting.
    """
    cfg = cfg or SearchConfig()
    locator_cfg = locator_cfg or LocatorConfig()

    query_words = tokenize_query(quote)
    if len(query_words) < cfg.min_query_words:
        return FuzzySearchResult(page_number=target_page, match=None)

    ps = _PageSearch(load_words, query_words, num_pages, cfg, locator_cfg)
    tiers = neighbourhood_tiers(target_page, cfg.neighbourhood_radius)

    if cfg.max_workers > 1:
        found = _search_neighbourhood_parallel(ps, tiers, cfg.max_workers, cancel)
    else:
        found = _search_neighbourhood(ps, tiers, cancel)
    if found is not None:
        return found
    if _cancelled(cancel):
        return FuzzySearchResult(page_number=target_page, match=None)

    for page_number in range(1, num_pages + 1):
        if _cancelled(cancel):
            logger.info("quote search cancelled after %d pages", len(ps.visited))
            return FuzzySearchResult(page_number=target_page, match=None)
        if not ps.claim(page_number):
            continue
        match = ps.search(page_number)
        if match is not None:
            return FuzzySearchResult(page_number=page_number, match=match)

    logger.debug("no acceptable match for quote (hint page %d, %d pages searched)", target_page, len(ps.visited))
    return FuzzySearchResult(page_number=target_page, match=None)


def _search_neighbourhood(
    ps: _PageSearch,
    tiers: list[list[int]],
    cancel: CancelToken | None,
) -> FuzzySearchResult | None:
    for tier in tiers:
        for page_number in tier:
            if _cancelled(cancel):
                return None
            if not ps.claim(page_number):
                continue
            match = ps.search(page_number)
            if match is not None:
                return FuzzySearchResult(page_number=page_number, match=match)
    return None


def _search_neighbourhood_parallel(
    ps: _PageSearch,
    tiers: list[list[int]],
    max_workers: int,
    cancel: CancelToken | None,
) -> FuzzySearchResult | None:
    if _cancelled(cancel):
        return None
    pages = [p for tier in tiers for p in tier if ps.claim(p)]
    if not pages:
        return None
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = dict(zip(pages, pool.map(ps.search, pages)))
    # tier order still decides the winner
    for page_number in pages:
        match = results.get(page_number)
        if match is not None:
            return FuzzySearchResult(page_number=page_number, match=match)
    return None
