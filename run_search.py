#!/usr/bin/env python3
"""
run_search.py — Score documents against rules from the command line.

Usage:
    python run_search.py --rules rules/berita_acara.rules doc1.txt doc2.txt
    python run_search.py --expr 'sequence { "^A", "^B" }' doc.txt
    python run_search.py --rules rules/ --json docs/*.txt     # rule directory
    python run_search.py --rules rules/ --workers 4 big.txt   # parallel scans

Exit status: 0 ok, 1 unreadable document, 2 rule/expression error.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from docsearch.compiler import compile as compile_pattern
from docsearch.engine import MatchEngine
from docsearch.errors import CompileError, RuleFileError
from docsearch.logging import get_logger, setup_logging
from docsearch.rules import Rule, RuleBook

logger = get_logger("cli")


def read_lines(path: Path) -> list[str]:
    """Read a document as UTF-8 lines, replacing undecodable bytes."""
    return path.read_text(encoding="utf-8", errors="replace").splitlines()


def load_book(args, engine: MatchEngine) -> RuleBook:
    if args.expr:
        pattern = compile_pattern(args.expr)
        rule = Rule(id="expr", name="expr", description="", source=args.expr, pattern=pattern)
        return RuleBook([rule], engine=engine)
    rules_path = Path(args.rules)
    if rules_path.is_dir():
        return RuleBook.from_directory(rules_path, engine=engine)
    return RuleBook.from_file(rules_path, engine=engine)


def format_text(path: str, results) -> str:
    lines = [path]
    for r in results:
        mark = "MATCH" if r.matched else "     "
        lines.append(f"  {mark} {r.rule_id:<32} score={r.score} (threshold {r.threshold})")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="docsearch rule runner")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--rules", help="Rule file, or directory of *.rules files")
    source.add_argument("--expr", help="A single rule expression to evaluate")
    parser.add_argument("documents", nargs="+", help="Text documents to score")
    parser.add_argument("--json", action="store_true", help="Output JSON lines")
    parser.add_argument(
        "--matched-only", action="store_true",
        help="Only report rules whose score reaches their threshold",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Worker threads for line scans (default: DOCSEARCH_WORKERS)",
    )
    parser.add_argument("--log-format", default="text", choices=("json", "text"))
    args = parser.parse_args(argv)

    setup_logging(fmt=args.log_format)
    engine = MatchEngine(workers=args.workers) if args.workers else MatchEngine()

    try:
        book = load_book(args, engine)
    except CompileError as exc:
        print(f"error: {exc}", file=sys.stderr)
        pointer = exc.pointer()
        if pointer:
            print(pointer, file=sys.stderr)
        return 2
    except (RuleFileError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    status = 0
    with engine:
        for doc in args.documents:
            path = Path(doc)
            try:
                lines = read_lines(path)
            except OSError as exc:
                logger.error(f"Cannot read {doc}", extra={"path": doc, "error": str(exc)})
                status = 1
                continue

            results = book.classify(lines)
            if args.matched_only:
                results = [r for r in results if r.matched]

            if args.json:
                print(json.dumps({
                    "document": doc,
                    "lines_count": len(lines),
                    "results": [r.to_dict() for r in results],
                }))
            else:
                print(format_text(doc, results))

    return status


if __name__ == "__main__":
    sys.exit(main())
