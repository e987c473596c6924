"""Tiered approximate word equality for extraction noise.

Tiers, cheapest and strictest first:
1. exact
2. equal after removing every non-alphanumeric (hyphens, apostrophes)
3. containment, both sides at least 3 chars (plurals, OCR fragments)
4. one edit apart, both sides at least 3 chars (OCR typos)
"""
from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[\W_]+")

MIN_FUZZY_LENGTH = 3


def collapse(word: str) -> str:
    return _NON_ALNUM.sub("", word)


def within_one_edit(a: str, b: str) -> bool:
    """At most one substitution (same length) or one insertion (length differs by one)."""
    if abs(len(a) - len(b)) > 1:
        return False
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)

    diffs = 0
    if len(shorter) == len(longer):
        for x, y in zip(shorter, longer):
            if x != y:
                diffs += 1
                if diffs > 1:
                    return False
        return True

    si = li = 0
    while si < len(shorter) and li < len(longer):
        if shorter[si] != longer[li]:
            diffs += 1
            if diffs > 1:
                return False
            li += 1
        else:
            si += 1
            li += 1
    return True


def fuzzy_word_match(word1: str, word2: str) -> bool:
    """Compare two already-normalized words."""
    if not word1 or not word2:
        return False

    if word1 == word2:
        return True

    c1 = collapse(word1)
    c2 = collapse(word2)
    if c1 and c1 == c2:
        return True

    if len(c1) < MIN_FUZZY_LENGTH or len(c2) < MIN_FUZZY_LENGTH:
        return False

    if c1 in c2 or c2 in c1:
        return True

    return within_one_edit(c1, c2)
