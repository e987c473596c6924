"""Multi-page quote search, the document session and phrase search.

Tests cover:
1. Nearest-first page order and the document-order fallback
2. Each page searched at most once per request
3. Short queries, cancellation, undecodable pages
4. Parallel neighbourhood search keeps tier precedence
5. Session caching and invalidation on document change
6. Exact / span / prefix phrase search with fragment mapping
"""
from __future__ import annotations

import threading

import pytest

from pagetext_engine.cache import STORE_FRAGMENTS, PageCache
from pagetext_engine.search import SearchConfig, fuzzy_find_in_document, neighbourhood_tiers
from pagetext_engine.session import DocumentSession
from pagetext_engine.text_search import PageTextIndex, build_text_index, hit_fragments, search_text
from pagetext_engine.reading_order import build_page_layout
from pagetext_engine.renderer import render_page_text
from pagetext_engine.tokenizer import tokenize_fragments

from conftest import make_fragment

QUOTE = "the quick brown fox jumps"
FILLER = "lorem ipsum dolor sit amet consectetur adipiscing elit"


def _words(text: str):
    return tokenize_fragments([make_fragment(text, 50.0, 700.0, 400.0, index=0)], [0])


class CountingLoader:
    """Page-words loader that records every page it is asked for."""

    def __init__(self, pages: dict[int, str], failing: tuple[int, ...] = (), on_load=None):
        self.pages = pages
        self.failing = failing
        self.on_load = on_load
        self.calls: list[int] = []

    def __call__(self, page_number: int):
        self.calls.append(page_number)
        if self.on_load is not None:
            self.on_load(page_number)
        if page_number in self.failing:
            raise RuntimeError(f"cannot decode page {page_number}")
        return _words(self.pages.get(page_number, FILLER))


class FlagToken:
    def __init__(self, is_set: bool = False):
        self.flag = is_set

    def is_set(self) -> bool:
        return self.flag


# ═══════════════════════════════════════════════════════════════════════════════
# FALLBACK CONTROLLER
# ═══════════════════════════════════════════════════════════════════════════════

class TestFuzzyFindInDocument:
    def test_visits_neighbourhood_nearest_first(self):
        loader = CountingLoader({7: f"some text before {QUOTE} and after"})
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10)
        assert result.page_number == 7
        assert result.match is not None
        assert loader.calls == [5, 4, 6, 3, 7]

    def test_falls_back_to_document_order(self):
        loader = CountingLoader({5: QUOTE})
        result = fuzzy_find_in_document(loader, 1, QUOTE, 6)
        assert result.page_number == 5
        assert loader.calls == [1, 2, 3, 4, 5]

    def test_not_found_searches_each_page_once(self):
        loader = CountingLoader({})
        result = fuzzy_find_in_document(loader, 3, QUOTE, 8)
        assert result.page_number == 3
        assert result.match is None
        assert sorted(loader.calls) == list(range(1, 9))
        assert len(loader.calls) == len(set(loader.calls))

    def test_short_query_navigates_only(self):
        loader = CountingLoader({2: QUOTE})
        result = fuzzy_find_in_document(loader, 2, "fox", 5)
        assert result.page_number == 2
        assert result.match is None
        assert loader.calls == []

    def test_cancelled_before_start(self):
        loader = CountingLoader({7: QUOTE})
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10, cancel=FlagToken(True))
        assert (result.page_number, result.match) == (5, None)
        assert loader.calls == []

    def test_cancelled_mid_search(self):
        token = FlagToken()

        def cancel_after_first(_page):
            token.flag = True

        loader = CountingLoader({7: QUOTE}, on_load=cancel_after_first)
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10, cancel=token)
        assert (result.page_number, result.match) == (5, None)
        assert loader.calls == [5]

    def test_undecodable_page_is_skipped(self):
        loader = CountingLoader({7: QUOTE}, failing=(4,))
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10)
        assert result.page_number == 7
        assert loader.calls.count(4) == 1

    def test_acceptance_threshold(self):
        loader = CountingLoader({1: QUOTE})
        cfg = SearchConfig(accept_score=1.5)
        result = fuzzy_find_in_document(loader, 1, QUOTE, 3, cfg=cfg)
        assert result.match is None

    def test_parallel_keeps_tier_precedence(self):
        loader = CountingLoader({4: QUOTE, 6: QUOTE})
        cfg = SearchConfig(max_workers=4)
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10, cfg=cfg)
        assert result.page_number == 4
        assert sorted(loader.calls) == [3, 4, 5, 6, 7]

    def test_parallel_falls_back_to_document_order(self):
        loader = CountingLoader({9: QUOTE})
        cfg = SearchConfig(max_workers=3)
        result = fuzzy_find_in_document(loader, 5, QUOTE, 10, cfg=cfg)
        assert result.page_number == 9
        assert len(loader.calls) == len(set(loader.calls))

    def test_tiers(self):
        assert neighbourhood_tiers(5, 2) == [[5], [4, 6], [3, 7]]

    def test_config_from_dict(self):
        cfg = SearchConfig.from_dict({"accept_score": 0.5, "max_exact_words": 5})
        assert cfg.accept_score == 0.5
        assert cfg.min_query_words == 2

    def test_result_to_dict(self):
        loader = CountingLoader({1: QUOTE})
        d = fuzzy_find_in_document(loader, 1, QUOTE, 1).to_dict()
        assert d["page_number"] == 1
        assert d["match"]["matched_words"] == QUOTE.split()
        assert d["match"]["fragment_indices"] == [0]


# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT SESSION
# ═══════════════════════════════════════════════════════════════════════════════

class FragmentSource:
    def __init__(self, texts: list[str]):
        self.texts = texts
        self.calls: list[int] = []
        self.lock = threading.Lock()

    def __call__(self, page_index: int):
        with self.lock:
            self.calls.append(page_index)
        text = self.texts[page_index]
        if text is None:
            raise ValueError("broken page")
        return [make_fragment(text, 50.0, 700.0, 400.0, index=0)]


class TestDocumentSession:
    def test_locate_uses_cache(self):
        source = FragmentSource([FILLER, FILLER, QUOTE])
        session = DocumentSession(document_id="doc-a", page_count=3, load_fragments=source)

        first = session.locate_quote(1, QUOTE)
        second = session.locate_quote(2, QUOTE)
        assert first.page_number == second.page_number == 3
        assert sorted(source.calls) == [0, 1, 2]

    def test_open_other_document_drops_cache(self):
        source = FragmentSource([QUOTE])
        session = DocumentSession(document_id="doc-a", page_count=1, load_fragments=source)
        session.page_text(1)
        assert session.cache.size(STORE_FRAGMENTS) == 1

        other = FragmentSource([FILLER])
        session.open("doc-b", 1, other)
        assert session.cache.size(STORE_FRAGMENTS) == 0
        assert session.page_text(1) == FILLER
        assert other.calls == [0]

    def test_reopen_same_document_keeps_cache(self):
        source = FragmentSource([QUOTE])
        session = DocumentSession(document_id="doc-a", page_count=1, load_fragments=source)
        session.page_words(1)
        session.open("doc-a", 1, source)
        session.page_words(1)
        assert source.calls == [0]

    def test_broken_page_is_empty(self):
        source = FragmentSource([None, QUOTE])
        session = DocumentSession(document_id="doc-a", page_count=2, load_fragments=source)
        assert session.page_text(1) == ""
        result = session.locate_quote(1, QUOTE)
        assert result.page_number == 2

    def test_out_of_range_page(self):
        session = DocumentSession(document_id="doc-a", page_count=1, load_fragments=FragmentSource([QUOTE]))
        assert session.fragments(0) == []
        assert session.fragments(2) == []

    def test_references_and_abstract(self):
        source = FragmentSource(["Abstract We study things", "References"])
        session = DocumentSession(document_id="doc-a", page_count=2, load_fragments=source)
        assert session.abstract().startswith("We study things")
        assert session.references() == []

    def test_search_text(self):
        source = FragmentSource([FILLER, QUOTE])
        session = DocumentSession(document_id="doc-a", page_count=2, load_fragments=source)
        hits = session.search_text("brown fox")
        assert len(hits) == 1
        assert hits[0].start_page_index == 1


class TestPageCache:
    def test_none_builder_result_not_cached(self):
        cache = PageCache("doc")
        calls = []

        def build():
            calls.append(1)
            return None

        cache.get_or_build("x", 1, build)
        cache.get_or_build("x", 1, build)
        assert len(calls) == 2

    def test_bind_and_clear(self):
        cache = PageCache("doc")
        cache.put("x", 1, "value")
        cache.bind("doc")
        assert cache.get("x", 1) == "value"
        cache.bind("other")
        assert cache.get("x", 1) is None
        cache.put("x", 1, "value")
        cache.clear()
        assert cache.size("x") == 0


# ═══════════════════════════════════════════════════════════════════════════════
# PHRASE SEARCH
# ═══════════════════════════════════════════════════════════════════════════════

def _index(text: str, fragment: int = 0) -> PageTextIndex:
    return PageTextIndex(text=text, char_map=[(fragment, k) for k in range(len(text))])


class TestSearchText:
    def test_index_joins_wrapped_word(self):
        frags = [
            make_fragment("Deep learning has recon-", 50.0, 700.0, 200.0, index=0),
            make_fragment("structed many fields.", 50.0, 688.0, 200.0, index=1),
        ]
        idx = build_text_index(frags, build_page_layout(frags))
        assert idx.text == "Deep learning has reconstructed many fields."
        assert len(idx.char_map) == len(idx.text)

        hits = search_text([idx], "reconstructed")
        assert len(hits) == 1
        assert hit_fragments([idx], hits[0], 0) == [0, 1]

    def test_index_matches_rendered_text_around_blank_fragments(self):
        frags = [
            make_fragment("Hello", 50.0, 700.0, 30.0, index=0),
            make_fragment("   ", 80.0, 700.0, 5.0, index=1),
            make_fragment("world", 85.0, 700.0, 30.0, index=2),
        ]
        layout = build_page_layout(frags)
        idx = build_text_index(frags, layout)
        assert idx.text == render_page_text(frags, layout) == "Hello world"
        assert idx.char_map[5] is None

    def test_exact_is_case_insensitive(self):
        hits = search_text([_index("the cat and The cat")], "the cat")
        assert [(h.start_char_index, h.end_char_index) for h in hits] == [(0, 7), (12, 19)]

    def test_span_across_pages(self):
        indexes = [_index("alpha beta gamma delta", 0), _index("epsilon zeta eta theta", 3)]
        hits = search_text(indexes, "alpha beta gamma something zeta eta theta")
        assert len(hits) == 1
        hit = hits[0]
        assert (hit.start_page_index, hit.start_char_index) == (0, 0)
        assert (hit.end_page_index, hit.end_char_index) == (1, len("epsilon zeta eta theta"))
        assert hit_fragments(indexes, hit, 0) == [0]
        assert hit_fragments(indexes, hit, 1) == [3]

    def test_prefix_fallback(self):
        hits = search_text([_index("alpha beta gamma delta")], "alpha beta omega omega omega omega")
        assert len(hits) == 1
        assert (hits[0].start_char_index, hits[0].end_char_index) == (0, len("alpha beta"))

    def test_nothing_found(self):
        assert search_text([_index("alpha beta")], "zeta") == []
        assert search_text([_index("alpha beta")], "   ") == []

    def test_hit_outside_page(self):
        indexes = [_index("alpha beta"), _index("gamma")]
        hit = search_text(indexes, "alpha")[0]
        assert hit_fragments(indexes, hit, 1) == []
