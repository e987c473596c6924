"""Shared synthetic pages for the layout and search tests."""
from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import pytest

from pagetext_engine.types import Fragment


def make_fragment(text: str, x: float, y: float, width: float, height: float = 10.0, index: int = 0) -> Fragment:
    return Fragment(text=text, origin=(x, y), width=width, height=height, source_index=index)


@pytest.fixture
def workspace_dir() -> Path:
    """Create temporary workspace."""
    tmp = tempfile.mkdtemp()
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def two_column_page() -> list[Fragment]:
    """10 left + 10 right fragments, decoder order interleaved, header last.

    Left column spans x 50..270, right column x 320..540, the title spans
    both columns at the top of the page.
    """
    frags: list[Fragment] = []
    for k in range(10):
        y = 700.0 - 12.0 * k
        frags.append(make_fragment(f"left line {k}", 50.0, y, 220.0, index=2 * k))
        frags.append(make_fragment(f"right line {k}", 320.0, y, 220.0, index=2 * k + 1))
    frags.append(make_fragment("A Title Across Both Columns", 100.0, 750.0, 400.0, height=20.0, index=20))
    return frags


@pytest.fixture
def single_column_page() -> list[Fragment]:
    """Ragged single-column prose: each line split at a different x."""
    frags: list[Fragment] = []
    for k in range(10):
        y = 700.0 - 12.0 * k
        split = 200.0 + 20.0 * k
        frags.append(make_fragment(f"words {k}a", 50.0, y, split - 50.0, index=2 * k))
        frags.append(make_fragment(f"words {k}b", split + 5.0, y, 540.0 - split - 5.0, index=2 * k + 1))
    return frags
