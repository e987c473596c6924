"""Word tokens, tiered word matching and the anchor locator."""
from __future__ import annotations

import itertools

import pytest

from pagetext_engine.fuzzy import fuzzy_word_match, within_one_edit
from pagetext_engine.locator import LocatorConfig, anchor_indices, find_best_match
from pagetext_engine.tokenizer import normalize_word, tokenize_fragments, tokenize_query

from conftest import make_fragment


def _page_words(*texts: str):
    frags = [make_fragment(t, 50.0, 700.0 - 12 * i, 200.0, index=i) for i, t in enumerate(texts)]
    return tokenize_fragments(frags, range(len(frags)))


# ═══════════════════════════════════════════════════════════════════════════════
# TOKENIZER
# ═══════════════════════════════════════════════════════════════════════════════

class TestTokenizer:
    def test_normalize_word(self):
        assert normalize_word("Quick,") == "quick"
        assert normalize_word("(state-of-the-art)") == "state-of-the-art"
        assert normalize_word("...") == ""

    def test_query(self):
        assert tokenize_query("  The qick -- brown fox. ") == ["the", "qick", "brown", "fox"]

    def test_follows_reading_order(self):
        frags = [
            make_fragment("The quick,", 50.0, 700.0, 100.0, index=0),
            make_fragment("brown fox!", 50.0, 688.0, 100.0, index=1),
        ]
        tokens = tokenize_fragments(frags, [1, 0])
        assert [t.normalized_word for t in tokens] == ["brown", "fox", "the", "quick"]
        assert [t.global_index for t in tokens] == [0, 1, 2, 3]
        assert [t.fragment_index for t in tokens] == [1, 1, 0, 0]

    def test_offsets_point_into_fragment(self):
        frags = [make_fragment("The quick,", 50.0, 700.0, 100.0, index=0)]
        quick = tokenize_fragments(frags, [0])[1]
        assert (quick.char_start, quick.char_end) == (4, 10)
        assert quick.raw_word == "quick,"

    def test_blank_fragments_skipped(self):
        frags = [
            make_fragment("   ", 50.0, 700.0, 10.0, index=0),
            make_fragment("word", 60.0, 700.0, 20.0, index=1),
        ]
        tokens = tokenize_fragments(frags, [0, 1])
        assert [(t.normalized_word, t.global_index) for t in tokens] == [("word", 0)]


# ═══════════════════════════════════════════════════════════════════════════════
# FUZZY WORD MATCH
# ═══════════════════════════════════════════════════════════════════════════════

class TestFuzzyWordMatch:
    @pytest.mark.parametrize(
        "a,b",
        [
            ("fox", "fox"),
            ("don't", "dont"),
            ("state-of-the-art", "stateoftheart"),
            ("model", "models"),
            ("qick", "quick"),
            ("color", "colar"),
        ],
    )
    def test_matches(self, a, b):
        assert fuzzy_word_match(a, b)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("ab", "abc"),
            ("an", "a"),
            ("quick", "qiuck"),
            ("brown", "lorem"),
            ("", "word"),
            ("word", ""),
        ],
    )
    def test_rejects(self, a, b):
        assert not fuzzy_word_match(a, b)

    def test_symmetric(self):
        words = ["the", "qick", "quick", "models", "model", "dont", "don't", "ab", "abc", "colar"]
        for a, b in itertools.product(words, repeat=2):
            assert fuzzy_word_match(a, b) == fuzzy_word_match(b, a)

    def test_reflexive(self):
        for w in ["a", "of", "fox", "state-of-the-art", "42"]:
            assert fuzzy_word_match(w, w)

    def test_within_one_edit(self):
        assert within_one_edit("abc", "abd")
        assert within_one_edit("abc", "abxc")
        assert not within_one_edit("abc", "xyz")
        assert not within_one_edit("abc", "abcde")


# ═══════════════════════════════════════════════════════════════════════════════
# ANCHOR LOCATOR
# ═══════════════════════════════════════════════════════════════════════════════

class TestFindBestMatch:
    def test_typo_in_query(self):
        words = _page_words("The quick brown fox jumps")
        match = find_best_match(words, tokenize_query("the qick brown fox"))
        assert match is not None
        assert match.match_ratio >= 0.75
        assert len(match.matched_tokens) == 4
        assert [t.raw_word for t in match.matched_tokens] == ["The", "quick", "brown", "fox"]
        assert match.fragment_indices == [0]

    def test_skips_inserted_words(self):
        words = _page_words("the quick and very", "brown fox")
        match = find_best_match(words, tokenize_query("the quick brown fox"))
        assert match is not None
        assert (match.start_word_index, match.end_word_index) == (0, 5)
        assert match.match_ratio == pytest.approx(1.0)
        assert match.score == pytest.approx(0.7 + 0.3 * 4 / 6)
        assert match.fragment_indices == [0, 1]

    def test_first_query_word_missing(self):
        """Later anchors recover when the first query word is absent."""
        words = _page_words("quick brown fox jumps over")
        match = find_best_match(words, tokenize_query("zebra quick brown fox jumps"))
        assert match is not None
        assert [t.normalized_word for t in match.matched_tokens] == ["quick", "brown", "fox", "jumps"]

    def test_no_match(self):
        words = _page_words("The quick brown fox jumps")
        assert find_best_match(words, tokenize_query("completely unrelated words here")) is None

    def test_empty_inputs(self):
        assert find_best_match([], ["fox"]) is None
        assert find_best_match(_page_words("fox"), []) is None

    def test_custom_threshold(self):
        words = _page_words("The quick brown fox jumps")
        strict = LocatorConfig(min_match_ratio=1.01)
        assert find_best_match(words, tokenize_query("the quick brown fox"), strict) is None

    def test_config_from_dict_ignores_unknown(self):
        cfg = LocatorConfig.from_dict({"min_match_ratio": 0.6, "unknown": 1})
        assert cfg.min_match_ratio == 0.6
        assert cfg.max_skip_gap == 4

    def test_anchor_indices(self):
        assert anchor_indices(1) == [0]
        assert anchor_indices(3) == [0, 1]
        assert anchor_indices(5) == [0, 1, 2]
