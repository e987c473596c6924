from __future__ import annotations

import hashlib
import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def ensure_dir(path: str | Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def file_sha1(path: str | Path, chunk_size: int = 1 << 20) -> str:
    """Stable document identity: sha1 over the file bytes."""
    h = hashlib.sha1(usedforsecurity=False)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def mode_height(heights: Iterable[float], default: float = 12.0) -> float:
    """Most common rounded height; ties go to the smaller height."""
    counts = Counter(int(round(h)) for h in heights if h and h > 0)
    if not counts:
        return default
    best = max(counts.items(), key=lambda kv: (kv[1], -kv[0]))
    return float(best[0]) or default


def write_json(path: str | Path, data: Any) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def write_text(path: str | Path, text: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def append_jsonl(path: str | Path, obj: dict[str, Any]) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(obj, ensure_ascii=False) + "\n")


def load_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def ensure_job_relative_path(job_dir: str | Path, rel_path: str | Path, *, field: str = "path") -> Path:
    """Resolve a job-relative path; reject absolute paths, '..' segments and escapes."""
    base = Path(job_dir).resolve()
    rel_str = str(rel_path or "").strip().replace("\\", "/")
    if not rel_str:
        raise ValueError(f"unsafe_{field}: empty")

    p = Path(rel_str)
    if p.is_absolute() or p.drive:
        raise ValueError(f"unsafe_{field}: absolute_or_drive_path: {rel_str}")
    if any(part == ".." for part in p.parts):
        raise ValueError(f"unsafe_{field}: parent_traversal: {rel_str}")

    abs_p = (base / p).resolve()
    if abs_p != base and base not in abs_p.parents:
        raise ValueError(f"unsafe_{field}: escapes_job_dir: {rel_str}")
    return abs_p
