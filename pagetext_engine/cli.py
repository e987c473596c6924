from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from .config import load_config
from .job import create_job_dirs, init_job_outputs, new_job_id, snapshot_input
from .page_provider import INPUT_TYPES, FragmentProvider
from .pipeline import DocumentPipeline, RunOptions
from .session import DocumentSession
from .text_search import hit_fragments
from .utils import load_json
from .validator import validate_job_dir

DEFAULT_CONFIG = str(Path("config") / "default.json")


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", required=True, help="Input path (pdf file or fragments json)")
    p.add_argument("--type", required=True, choices=list(INPUT_TYPES), help="Input type")
    p.add_argument("--config", default=DEFAULT_CONFIG, help="Config path")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pagetext_engine")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Rebuild reading order and page text for a document")
    _add_input_args(run)
    run.add_argument("--workspace", default="./workspace", help="Workspace root")
    run.add_argument("--debug-images", action="store_true", help="Write layout overlay PNGs per page")

    loc = sub.add_parser("locate", help="Find a quote near a page hint")
    _add_input_args(loc)
    loc.add_argument("--page", required=True, type=int, help="1-based page hint")
    loc.add_argument("--quote", required=True, help="Quote text to locate")

    search = sub.add_parser("search", help="Phrase search over the rebuilt page text")
    _add_input_args(search)
    search.add_argument("--query", required=True, help="Phrase to search for")

    refs = sub.add_parser("references", help="Print references stored for a job")
    refs.add_argument("--job-dir", required=True, help="Job directory (workspace/jobs/<job_id>)")

    validate = sub.add_parser("validate", help="Validate Output Contract + referenced file paths")
    validate.add_argument("--job-dir", required=True, help="Job directory (workspace/jobs/<job_id>)")

    return p


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _open_session(args: argparse.Namespace) -> tuple[FragmentProvider, DocumentSession]:
    provider = FragmentProvider(input_path=args.input, input_type=args.type)
    session = DocumentSession.from_provider(provider, load_config(args.config))
    return provider, session


def cmd_run(args: argparse.Namespace) -> int:
    job_id = new_job_id()
    paths = create_job_dirs(args.workspace, job_id)
    init_job_outputs(paths)
    snapshot_input(paths, args.input)

    cfg = load_config(args.config)
    opts = RunOptions(input_path=args.input, input_type=args.type, debug_images=bool(args.debug_images))

    DocumentPipeline(paths=paths, cfg=cfg, opts=opts).run(job_id=job_id)
    print(str(paths.job_dir))
    return 0


def cmd_locate(args: argparse.Namespace) -> int:
    try:
        provider, session = _open_session(args)
        try:
            result = session.locate_quote(int(args.page), args.quote)
        finally:
            provider.close()
    except Exception as e:
        print(f"locate_failed: {e}")
        return 1
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0 if result.match is not None else 3


def cmd_search(args: argparse.Namespace) -> int:
    try:
        provider, session = _open_session(args)
        try:
            indexes = [session.text_index(p) for p in range(1, session.page_count + 1)]
            hits = session.search_text(args.query)
        finally:
            provider.close()
    except Exception as e:
        print(f"search_failed: {e}")
        return 1

    out: list[dict[str, Any]] = []
    for hit in hits:
        pages = range(hit.start_page_index, hit.end_page_index + 1)
        out.append(
            {
                "start": [hit.start_page_index + 1, hit.start_char_index],
                "end": [hit.end_page_index + 1, hit.end_char_index],
                "fragments": {str(p + 1): hit_fragments(indexes, hit, p) for p in pages},
            }
        )
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


def cmd_references(args: argparse.Namespace) -> int:
    try:
        result = load_json(Path(args.job_dir) / "result.json")
    except Exception as e:
        print(f"references_failed: {e}")
        return 1
    for ref in result.get("references", []):
        print(ref)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    ok, summary = validate_job_dir(args.job_dir)
    if not ok:
        print("validate_failed")
        for e in summary.get("errors", []):
            print(e)
        return 1
    print("validate_ok")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(bool(args.verbose))

    if args.command == "run":
        return cmd_run(args)

    if args.command == "locate":
        return cmd_locate(args)

    if args.command == "search":
        return cmd_search(args)

    if args.command == "references":
        return cmd_references(args)

    if args.command == "validate":
        return cmd_validate(args)

    raise SystemExit(2)


if __name__ == "__main__":
    raise SystemExit(main())
