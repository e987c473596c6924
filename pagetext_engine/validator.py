from __future__ import annotations

from pathlib import Path
from typing import Any

from .utils import ensure_job_relative_path, load_json


def _validate_page_entry(job_dir: Path, idx: int, page: Any, errors: list[str]) -> int:
    """Return 1 when the entry is invalid, 0 otherwise."""
    if not isinstance(page, dict):
        errors.append(f"result.json: invalid page[{idx}]: not an object")
        return 1

    bad = 0
    for k in ("page_number", "page_id", "fragment_count", "is_two_column", "reading_order", "text_path"):
        if k not in page:
            errors.append(f"result.json: page[{idx}] missing field {k}")
            bad = 1
    if bad:
        return 1

    rel = page.get("text_path")
    try:
        p = ensure_job_relative_path(job_dir, str(rel), field="text_path")
        if not p.exists():
            errors.append(f"missing page text: page_id={page.get('page_id')} path={rel}")
            bad = 1
    except ValueError as e:
        errors.append(f"unsafe text_path: page_id={page.get('page_id')} path={rel} error={e}")
        bad = 1

    order = page.get("reading_order")
    try:
        n = int(page.get("fragment_count"))
        if not isinstance(order, list) or sorted(int(i) for i in order) != list(range(n)):
            errors.append(f"result.json: page[{idx}] reading_order is not a permutation of {n} fragments")
            bad = 1
    except (TypeError, ValueError):
        errors.append(f"result.json: page[{idx}] fragment_count/reading_order must be ints")
        bad = 1
    return bad


def validate_job_dir(job_dir: str | Path) -> tuple[bool, dict[str, Any]]:
    job_dir = Path(job_dir)
    errors: list[str] = []

    missing_contract_files = 0
    invalid_pages = 0

    for f in ("result.json", "metrics.json", "errors.jsonl"):
        p = job_dir / f
        if not p.exists():
            missing_contract_files += 1
            errors.append(f"missing: {p}")

    try:
        result = load_json(job_dir / "result.json")
        job_obj = result.get("job") if isinstance(result, dict) else None
        if not isinstance(job_obj, dict):
            errors.append("result.json: missing/invalid job object")
        else:
            for k in ("job_id", "input", "created_at"):
                if k not in job_obj:
                    errors.append(f"result.json: job missing field {k}")

        pages = result.get("pages", []) if isinstance(result, dict) else []
        for idx, page in enumerate(pages):
            invalid_pages += _validate_page_entry(job_dir, idx, page, errors)

        refs = result.get("references") if isinstance(result, dict) else None
        if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
            errors.append("result.json: references must be a list of strings")
    except Exception as e:
        errors.append(f"failed to read result.json: {e}")
        invalid_pages += 1

    try:
        metrics = load_json(job_dir / "metrics.json")
        if not isinstance(metrics, dict):
            errors.append("metrics.json: must be an object")
        else:
            if metrics.get("finished") is not True:
                errors.append("metrics.json: job not finished (finished!=true)")
            pt = int(metrics.get("pages_total") or 0)
            pp = int(metrics.get("pages_processed") or 0)
            if pp < 0 or pt < 0 or pp > pt:
                errors.append(f"metrics.json: invalid pages_processed/pages_total: {pp}/{pt}")
    except Exception as e:
        errors.append(f"failed to read metrics.json: {e}")

    summary: dict[str, Any] = {
        "missing_contract_files": missing_contract_files,
        "invalid_pages": invalid_pages,
        "errors": errors,
    }
    return not errors, summary
