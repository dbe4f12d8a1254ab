#!/usr/bin/env python3
"""Profile a document: sentence, paragraph and line boundary tables.

Profiles a plain-text file, or a document held in a DuckDB document store,
and writes the profile JSON to stdout with status messages to stderr.

Usage:
    python3 scripts/profile_document.py --input paper.txt --stats --sections
    python3 scripts/profile_document.py --input paper.txt \
      --db docs.duckdb --doc-ref paper-1 --store
    python3 scripts/profile_document.py --db docs.duckdb --doc-ref paper-1
    python3 scripts/profile_document.py --input paper.txt --stats --locate 1200
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import orjson

from verbatim.config import DEFAULT_CONFIG, EngineConfig, load_engine_config
from verbatim.document_store import DocumentStore, StoreSchemaError
from verbatim.profile_types import (
    DocumentProfile,
    line_index_at,
    paragraph_index_at,
    profile_to_dict,
    sentence_index_at,
)
from verbatim.profiler import analyze_document, profile_summary
from verbatim.quotes import get_line
from verbatim.sections import detect_sections

log = logging.getLogger("profile_document")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Profile a document's sentence, paragraph and line structure."
    )
    parser.add_argument("--input", type=Path, default=None, help="Plain-text document")
    parser.add_argument("--db", type=Path, default=None, help="Path to documents.duckdb")
    parser.add_argument("--doc-ref", default=None, help="Document reference in the store")
    parser.add_argument(
        "--store",
        action="store_true",
        help="Ingest --input into the store under --doc-ref (creates the db)",
    )
    parser.add_argument(
        "--stats", action="store_true", help="Print summary counts instead of the full profile"
    )
    parser.add_argument(
        "--sections", action="store_true", help="Include the detected section profile"
    )
    parser.add_argument(
        "--locate",
        type=int,
        action="append",
        default=None,
        metavar="OFFSET",
        help="Report the line, sentence and paragraph holding a character offset (repeatable)",
    )
    parser.add_argument("--config", type=Path, default=None, help="EngineConfig JSON overrides")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def locate(profile: DocumentProfile, text: str, offset: int) -> dict[str, Any]:
    """1-based line, sentence and paragraph containing ``offset``; None outside the text."""
    line = line_index_at(profile, offset)
    sentence = sentence_index_at(profile, offset)
    paragraph = paragraph_index_at(profile, offset)
    return {
        "offset": offset,
        "line": None if line is None else line + 1,
        "line_text": None if line is None else get_line(text, line + 1),
        "sentence": None if sentence is None else sentence + 1,
        "paragraph": None if paragraph is None else paragraph + 1,
    }


def _load(args: argparse.Namespace, config: EngineConfig) -> tuple[str, DocumentProfile]:
    if args.store:
        if args.input is None or args.db is None or not args.doc_ref:
            raise ValueError("--store needs --input, --db and --doc-ref")
        text = args.input.read_text(encoding="utf-8")
        with DocumentStore(args.db, create_if_missing=True, config=config) as store:
            profile = store.put_document(args.doc_ref, text)
        log.info("Stored %s in %s", args.doc_ref, args.db)
        return text, profile

    if args.input is not None:
        text = args.input.read_text(encoding="utf-8")
        return text, analyze_document(text, config)

    if args.db is None or not args.doc_ref:
        raise ValueError("give --input, or --db with --doc-ref")
    with DocumentStore(args.db, config=config) as store:
        content = store.get_full_content(args.doc_ref)
        profile = store.get_profile(args.doc_ref)
    if content is None or profile is None:
        raise LookupError(f"document not found: {args.doc_ref}")
    return content, profile


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = load_engine_config(args.config) if args.config else DEFAULT_CONFIG
        text, profile = _load(args, config)
    except (OSError, ValueError, LookupError, StoreSchemaError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    out: dict[str, Any] = profile_summary(profile) if args.stats else profile_to_dict(profile)
    if args.sections:
        out["sections"] = asdict(detect_sections(text, config))
    if args.locate:
        out["locate"] = [locate(profile, text, offset) for offset in args.locate]

    log.info(
        "%d sentences, %d paragraphs, %d lines",
        profile.sentence_count, profile.paragraph_count, profile.line_count,
    )
    dump_json(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
