from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .config import EngineConfig
from .job import JobPaths, empty_metrics, record_error
from .layout_debug import LayoutDebugConfig, render_layout_debug
from .page_provider import FragmentProvider
from .reading_order import build_page_layout
from .references import extract_abstract, extract_references
from .renderer import render_page_text
from .tokenizer import tokenize_fragments
from .types import Fragment, Page
from .utils import write_json, write_text
from .writer import JobWriter

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    input_path: str
    input_type: str
    debug_images: bool = False


class DocumentPipeline:
    """Batch layout pass over a whole document.

    Per page: reading order, rendered text and (optionally) a debug overlay.
    Then the bibliography and abstract from the rendered pages. A page that
    fails at any stage is recorded in errors.jsonl and kept as an empty page.
    """

    def __init__(self, paths: JobPaths, cfg: EngineConfig, opts: RunOptions):
        self.paths = paths
        self.cfg = cfg
        self.opts = opts
        self.provider = FragmentProvider(input_path=opts.input_path, input_type=opts.input_type)
        self.debug_cfg = LayoutDebugConfig.from_dict(cfg.debug)
        self.writer = JobWriter(paths=paths)

    def _load_fragments(self, page: Page, metrics: dict[str, Any]) -> list[Fragment]:
        try:
            return self.provider.load_page(page.page_index)
        except Exception as e:
            metrics["pages_failed"] += 1
            record_error(self.paths, page_id=page.page_id, stage="decode", message=str(e))
            logger.warning("%s: decode failed, treating as empty: %s", page.page_id, e)
            return []

    def _process_page(self, page: Page, metrics: dict[str, Any]) -> tuple[dict[str, Any], str]:
        fragments = self._load_fragments(page, metrics)
        layout = build_page_layout(fragments, self.cfg)
        text = render_page_text(fragments, layout, self.cfg.render)
        words = tokenize_fragments(fragments, layout.order)

        text_rel = f"pages/{page.page_id}.md"
        write_text(self.paths.job_dir / text_rel, text)
        stage = layout.to_dict()
        stage.update({"page_id": page.page_id, "fragment_count": len(fragments)})
        write_json(self.paths.stage_layout_dir / f"{page.page_id}.json", stage)

        debug_rel: str | None = None
        if self.opts.debug_images:
            try:
                debug_rel = f"debug/{page.page_id}.png"
                render_layout_debug(fragments, layout, self.paths.job_dir / debug_rel, self.debug_cfg)
                metrics["debug_images_written"] += 1
            except Exception as e:
                record_error(self.paths, page_id=page.page_id, stage="debug_image", message=str(e))
                debug_rel = None

        metrics["fragments_total"] += len(fragments)
        metrics["words_total"] += len(words)
        if not fragments:
            metrics["pages_empty"] += 1
        if layout.columns.is_two_column:
            metrics["pages_two_column"] += 1

        entry = {
            "page_number": page.page_index + 1,
            "page_id": page.page_id,
            "source_ref": page.source_ref,
            "fragment_count": len(fragments),
            "word_count": len(words),
            "is_two_column": layout.columns.is_two_column,
            "left_column_end": layout.columns.left_column_end,
            "right_column_start": layout.columns.right_column_start,
            "reading_order": list(layout.order),
            "text_path": text_rel,
            "debug_image_path": debug_rel,
        }
        return entry, text

    def run(self, job_id: str) -> None:
        metrics = empty_metrics()
        pages_out: list[dict[str, Any]] = []
        texts: list[str] = []

        job_meta = {
            "job_id": job_id,
            "input": {"type": self.opts.input_type, "path": self.opts.input_path},
            "created_at": metrics["created_at"],
        }

        try:
            job_meta["document_id"] = self.provider.document_id
            pages = self.provider.pages()
        except Exception as e:
            record_error(self.paths, page_id="", stage="open", message=str(e))
            pages = []

        for page in pages:
            metrics["pages_total"] += 1
            try:
                entry, text = self._process_page(page, metrics)
                pages_out.append(entry)
                texts.append(text)
                metrics["pages_processed"] += 1
            except Exception as e:
                record_error(self.paths, page_id=page.page_id, stage="page", message=str(e))
                texts.append("")

        references: list[str] = []
        abstract = ""
        try:
            references = extract_references(texts, self.cfg.references)
            abstract = extract_abstract(texts[0], self.cfg.references) if texts else ""
        except Exception as e:
            record_error(self.paths, page_id="", stage="references", message=str(e))
        metrics["references_total"] = len(references)

        self.provider.close()
        self.writer.write_final(
            job_meta=job_meta,
            pages=pages_out,
            references=references,
            abstract=abstract,
            metrics=metrics,
        )
