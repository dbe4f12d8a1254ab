#!/usr/bin/env python3
"""Answer a retrieval request with literal text from one document.

Resolves a free-form request ("the third sentence", "sentences 4 through 9",
"the methods", "every mention of 'p < 0.05'") against a plain-text file or a
document in a DuckDB store. Prints the literal answer (or the result JSON with
--json) to stdout; status messages go to stderr.

Exit codes: 0 found, 1 not found / partial / ambiguous, 2 usage or storage error.

Usage:
    python3 scripts/quote_reader.py --input paper.txt --request "the last 2 sentences"
    python3 scripts/quote_reader.py --db docs.duckdb --doc-ref paper-1 \
      --request "first and last paragraphs" --json
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from verbatim.config import DEFAULT_CONFIG, EngineConfig, load_engine_config
from verbatim.document_store import DocumentStore, StoreSchemaError, load_document
from verbatim.profile_types import DocumentProfile
from verbatim.profiler import analyze_document
from verbatim.resolver import resolve_request
from verbatim.retrieval_types import result_to_dict

log = logging.getLogger("quote_reader")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Retrieve literal text from a document for a natural-language request."
    )
    parser.add_argument("--request", required=True, help="What to retrieve")
    parser.add_argument("--input", type=Path, default=None, help="Plain-text document")
    parser.add_argument("--db", type=Path, default=None, help="Path to documents.duckdb")
    parser.add_argument("--doc-ref", default=None, help="Document reference in the store")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--config", type=Path, default=None, help="EngineConfig JSON overrides")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _load(args: argparse.Namespace, config: EngineConfig) -> tuple[str, DocumentProfile]:
    if args.input is not None:
        text = args.input.read_text(encoding="utf-8")
        return text, analyze_document(text, config)
    if args.db is None or not args.doc_ref:
        raise ValueError("give --input, or --db with --doc-ref")
    with DocumentStore(args.db, config=config) as store:
        loaded = load_document(store, args.doc_ref)
    if loaded is None:
        raise LookupError(f"document not found: {args.doc_ref}")
    return loaded


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

    result = resolve_request(args.request, profile, text, config)
    log.debug("mode=%s status=%s", result.mode, result.status)

    if args.json:
        dump_json(result_to_dict(result))
    else:
        print(result.text)
    return 0 if result.found else 1


if __name__ == "__main__":
    raise SystemExit(main())
