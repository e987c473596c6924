from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .cache import STORE_FRAGMENTS, STORE_LAYOUT, STORE_TEXT, STORE_TEXT_INDEX, STORE_WORDS, PageCache
from .config import EngineConfig
from .locator import LocatorConfig
from .page_provider import FragmentProvider
from .reading_order import build_page_layout
from .references import extract_abstract, extract_references
from .renderer import render_page_text
from .search import CancelToken, SearchConfig, fuzzy_find_in_document
from .text_search import PageTextIndex, TextHit, build_text_index, search_text
from .tokenizer import tokenize_fragments
from .types import Fragment, FuzzySearchResult, PageLayout, WordToken

logger = logging.getLogger(__name__)

FragmentLoader = Callable[[int], Sequence[Fragment]]  # 0-based page index


@dataclass
class DocumentSession:
    """The currently open document and everything derived from it.

    Page numbers are 1-based. All derived data lives in ``cache``, which is
    rebound (and emptied) whenever a different document is opened.
    """

    document_id: str
    page_count: int
    load_fragments: FragmentLoader
    cfg: EngineConfig = field(default_factory=EngineConfig)
    cache: PageCache = field(default_factory=PageCache)

    def __post_init__(self) -> None:
        self.cache.bind(self.document_id)

    @classmethod
    def from_provider(cls, provider: FragmentProvider, cfg: EngineConfig | None = None) -> "DocumentSession":
        return cls(
            document_id=provider.document_id,
            page_count=provider.page_count(),
            load_fragments=provider.load_page,
            cfg=cfg or EngineConfig(),
        )

    def open(self, document_id: str, page_count: int, load_fragments: FragmentLoader) -> None:
        self.document_id = document_id
        self.page_count = page_count
        self.load_fragments = load_fragments
        self.cache.bind(document_id)

    def fragments(self, page_number: int) -> list[Fragment]:
        if page_number < 1 or page_number > self.page_count:
            return []
        try:
            return list(self.load_fragments(page_number - 1))
        except Exception as e:
            logger.warning("page %d could not be decoded, treating as empty: %s", page_number, e)
            return []

    def _page(self, page_number: int) -> tuple[list[Fragment], PageLayout]:
        frags = self.cache.get_or_build(STORE_FRAGMENTS, page_number, lambda: self.fragments(page_number))
        layout = self.cache.get_or_build(STORE_LAYOUT, page_number, lambda: build_page_layout(frags, self.cfg))
        return frags, layout

    def layout(self, page_number: int) -> PageLayout:
        return self._page(page_number)[1]

    def page_text(self, page_number: int) -> str:
        def build() -> str:
            frags, layout = self._page(page_number)
            return render_page_text(frags, layout, self.cfg.render)

        return self.cache.get_or_build(STORE_TEXT, page_number, build)

    def page_words(self, page_number: int) -> list[WordToken]:
        def build() -> list[WordToken]:
            frags, layout = self._page(page_number)
            return tokenize_fragments(frags, layout.order)

        return self.cache.get_or_build(STORE_WORDS, page_number, build)

    def text_index(self, page_number: int) -> PageTextIndex:
        def build() -> PageTextIndex:
            frags, layout = self._page(page_number)
            return build_text_index(frags, layout, self.cfg.render)

        return self.cache.get_or_build(STORE_TEXT_INDEX, page_number, build)

    def locate_quote(self, page_hint: int, quote: str, cancel: CancelToken | None = None) -> FuzzySearchResult:
        return fuzzy_find_in_document(
            self.page_words,
            page_hint,
            quote,
            self.page_count,
            cfg=SearchConfig.from_dict(self.cfg.search),
            locator_cfg=LocatorConfig.from_dict(self.cfg.locate),
            cancel=cancel,
        )

    def page_texts(self) -> list[str]:
        return [self.page_text(p) for p in range(1, self.page_count + 1)]

    def references(self) -> list[str]:
        return extract_references(self.page_texts(), self.cfg.references)

    def abstract(self) -> str:
        if self.page_count < 1:
            return ""
        return extract_abstract(self.page_text(1), self.cfg.references)

    def search_text(self, query: str) -> list[TextHit]:
        indexes = [self.text_index(p) for p in range(1, self.page_count + 1)]
        return search_text(indexes, query, self.cfg.search)
