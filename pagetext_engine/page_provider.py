from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .types import Fragment, Page
from .utils import file_sha1, load_json

INPUT_TYPES = ("pdf", "json")


def fragment_from_dict(d: dict[str, Any], source_index: int) -> Fragment:
    if "origin" in d:
        x, y = d["origin"]
    else:
        x, y = d.get("x", 0.0), d.get("y", 0.0)
    return Fragment(
        text=str(d.get("text") or d.get("str") or ""),
        origin=(float(x), float(y)),
        width=float(d.get("width", 0.0) or 0.0),
        height=float(d.get("height", 0.0) or 0.0),
        font_id=d.get("font_id", d.get("fontName")),
        source_index=source_index,
    )


@dataclass
class FragmentProvider:
    """Decoder adapter: positioned text runs per page, in decoder order.

    pdf  -> PyMuPDF spans, flipped so y grows upward (origin at page bottom)
    json -> {"pages": [{"fragments": [{"text", "x", "y", "width", "height", "font_id"}]}]}
    """

    input_path: str
    input_type: str  # pdf|json
    _doc: Any = field(default=None, repr=False)
    _pages_json: list[Any] | None = field(default=None, repr=False)
    _document_id: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.input_type not in INPUT_TYPES:
            raise ValueError(f"Unknown input_type: {self.input_type}")

    @property
    def document_id(self) -> str:
        if self._document_id is None:
            self._document_id = file_sha1(self.input_path)
        return self._document_id

    def _open_pdf(self) -> Any:
        if self._doc is None:
            try:
                import fitz  # PyMuPDF
            except Exception as e:  # pragma: no cover
                raise RuntimeError("PyMuPDF is required for --type pdf. Install pymupdf.") from e
            self._doc = fitz.open(Path(self.input_path))
        return self._doc

    def _json_pages(self) -> list[Any]:
        if self._pages_json is None:
            data = load_json(self.input_path)
            pages = data.get("pages", []) if isinstance(data, dict) else data
            self._pages_json = list(pages or [])
        return self._pages_json

    def page_count(self) -> int:
        if self.input_type == "pdf":
            return int(self._open_pdf().page_count)
        return len(self._json_pages())

    def pages(self) -> list[Page]:
        name = Path(self.input_path).name
        out = []
        for i in range(self.page_count()):
            page_num = i + 1
            out.append(Page(page_index=i, page_id=f"page_{page_num:03d}", source_ref=f"{name}#page={page_num}"))
        return out

    def load_page(self, page_index: int) -> list[Fragment]:
        """Fragments of a 0-based page. Raises when the page cannot be decoded."""
        if self.input_type == "pdf":
            return self._load_pdf_page(page_index)
        return self._load_json_page(page_index)

    def _load_json_page(self, page_index: int) -> list[Fragment]:
        raw = self._json_pages()[page_index]
        items = raw.get("fragments", []) if isinstance(raw, dict) else raw
        return [fragment_from_dict(d, i) for i, d in enumerate(items or [])]

    def _load_pdf_page(self, page_index: int) -> list[Fragment]:
        doc = self._open_pdf()
        page = doc.load_page(page_index)
        page_h = float(page.rect.height)
        data = page.get_text("dict")

        frags: list[Fragment] = []
        for block in data.get("blocks", []):
            if block.get("type", 0) != 0:
                continue  # image block
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    x0, y0, x1, y1 = span["bbox"]
                    _, baseline = span.get("origin", (x0, y1))
                    frags.append(
                        Fragment(
                            text=span.get("text", ""),
                            origin=(float(x0), page_h - float(baseline)),
                            width=float(x1 - x0),
                            height=float(y1 - y0),
                            font_id=span.get("font"),
                            source_index=len(frags),
                        )
                    )
        return frags

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None
