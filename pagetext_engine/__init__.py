"""Reading-order reconstruction and quote location for positioned PDF text.

This package focuses on:
- per-page reading order (column detection, lines, blocks)
- plain text with paragraph breaks and heading markers
- reference list and abstract extraction
- fuzzy quote location across pages

Rendering PDFs to images and OCR are out of scope.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
