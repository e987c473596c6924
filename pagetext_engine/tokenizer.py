from __future__ import annotations

import re
from typing import Iterable, Mapping, Sequence

from .types import Fragment, WordToken, index_fragments

_EDGE_PUNCT = re.compile(r"^[\W_]+|[\W_]+$")
_WORD = re.compile(r"\S+")


def normalize_word(word: str) -> str:
    """Lowercase and strip leading/trailing non-alphanumerics ('' if nothing is left)."""
    return _EDGE_PUNCT.sub("", word.lower())


def tokenize_query(text: str) -> list[str]:
    words = (normalize_word(w) for w in (text or "").split())
    return [w for w in words if w]


def tokenize_fragments(fragments: Sequence[Fragment] | Mapping[int, Fragment], order: Iterable[int]) -> list[WordToken]:
    """Word stream of a page, walked in reading order.

    global_index is the rank of the word in this stream; offsets point into
    the fragment's original text.
    """
    if isinstance(fragments, Mapping):
        by_index = fragments
    else:
        by_index = index_fragments(fragments)

    tokens: list[WordToken] = []
    for idx in order:
        f = by_index.get(idx)
        if f is None or not f.text or not f.text.strip():
            continue
        for m in _WORD.finditer(f.text):
            normalized = normalize_word(m.group(0))
            if not normalized:
                continue
            tokens.append(
                WordToken(
                    normalized_word=normalized,
                    raw_word=m.group(0),
                    fragment_index=idx,
                    char_start=m.start(),
                    char_end=m.end(),
                    global_index=len(tokens),
                )
            )
    return tokens
