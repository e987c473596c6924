from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

T = TypeVar("T")

STORE_FRAGMENTS = "fragments"
STORE_LAYOUT = "layout"
STORE_TEXT = "text"
STORE_WORDS = "words"
STORE_TEXT_INDEX = "text_index"


@dataclass
class PageCache:
    """Per-document memo of derived page structures.

    Entries are keyed by (store, page number) and belong to exactly one
    document; binding a different document id drops everything.
    """

    document_id: str | None = None
    _stores: dict[str, dict[int, Any]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def bind(self, document_id: str) -> None:
        with self._lock:
            if document_id != self.document_id:
                self._stores.clear()
                self.document_id = document_id

    def clear(self) -> None:
        with self._lock:
            self._stores.clear()

    def get(self, store: str, page_number: int) -> Any | None:
        with self._lock:
            return self._stores.get(store, {}).get(page_number)

    def put(self, store: str, page_number: int, value: Any) -> None:
        with self._lock:
            self._stores.setdefault(store, {})[page_number] = value

    def get_or_build(self, store: str, page_number: int, builder: Callable[[], T]) -> T:
        cached = self.get(store, page_number)
        if cached is not None:
            return cached
        value = builder()
        self.put(store, page_number, value)
        return value

    def size(self, store: str) -> int:
        with self._lock:
            return len(self._stores.get(store, {}))
