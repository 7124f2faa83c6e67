"""
Rule Book — Named Rules Loaded From Rule Files

A rule file holds one or more rules separated by '---' lines. Each rule
is a few `key: value` header lines followed by the DSL expression.

Format:
    ---
    id: SEARCH_WARRANT
    name: Berita acara penggeledahan badan
    description: Body-search record heading followed by the warrant line
    threshold: 1

    all {
        any { "^BER.TA ACARA PENGGELEDAHAN BADAN", "^BER.TA ACARA$" },
        sequence { "^BER.TA ACARA$", ".*PENGGELEDAHAN.*" },
    }
    ---

`id` is required. `threshold` defaults to 1. Header lines starting with
'#' are comments. Error locations are line numbers in the rule file.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence as SequenceType

from docsearch.compiler import Compiler, compiler as default_compiler
from docsearch.engine import MatchEngine, engine as default_engine
from docsearch.errors import CompileError, RuleFileError
from docsearch.logging import get_logger
from docsearch.pattern import Pattern

logger = get_logger("rules")

_HEADER = re.compile(r"^(id|name|description|threshold)\s*:\s*(.*)$", re.IGNORECASE)
_RULE_ID = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")
_SEPARATOR = re.compile(r"^\s*---\s*$")


@dataclass(frozen=True)
class Rule:
    """A named, compiled pattern with a match threshold."""
    id: str
    name: str
    description: str
    source: str
    pattern: Pattern = field(repr=False, compare=False)
    threshold: int = 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "threshold": self.threshold,
            "source": self.source,
        }


@dataclass(frozen=True)
class RuleScore:
    """Result of evaluating one rule against one document."""
    rule_id: str
    name: str
    score: int
    threshold: int

    @property
    def matched(self) -> bool:
        return self.score >= self.threshold

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "score": self.score,
            "threshold": self.threshold,
            "matched": self.matched,
        }


# ============================================================
# PARSING
# ============================================================

def parse_rules(
    content: str,
    compiler: Compiler = default_compiler,
) -> list[Rule]:
    """
    Parse rule file content into compiled rules.

    Raises:
        RuleFileError: malformed header, missing or duplicate id.
        CompileError: a rule's expression does not compile.
    """
    rules: list[Rule] = []
    seen: set[str] = set()

    for start_line, block in _split_blocks(content):
        rule = _parse_block(block, start_line, compiler)
        if rule is None:
            continue
        if rule.id in seen:
            raise RuleFileError(f"duplicate rule id '{rule.id}'", start_line)
        seen.add(rule.id)
        rules.append(rule)

    return rules


def _split_blocks(content: str) -> list[tuple[int, list[str]]]:
    """Split on '---' lines. Returns (first line number, lines) per block."""
    blocks = []
    current: list[str] = []
    start = 1
    for number, line in enumerate(content.split("\n"), start=1):
        if _SEPARATOR.match(line):
            blocks.append((start, current))
            current = []
            start = number + 1
        else:
            current.append(line)
    blocks.append((start, current))
    return blocks


def _parse_block(
    lines: list[str], start_line: int, compiler: Compiler,
) -> Optional[Rule]:
    """Parse a single rule block. Returns None for blank/comment-only blocks."""
    metadata: dict[str, str] = {}
    body_start = None

    for offset, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _HEADER.match(stripped)
        if match:
            metadata[match.group(1).lower()] = match.group(2).strip()
        else:
            # First non-header, non-empty line starts the expression
            body_start = offset
            break

    if body_start is None:
        if metadata:
            raise RuleFileError(
                f"rule '{metadata.get('id', '?')}' has no expression", start_line,
            )
        return None

    rule_id = metadata.get("id", "")
    if not rule_id:
        raise RuleFileError("rule is missing an 'id' header", start_line)
    if not _RULE_ID.match(rule_id):
        raise RuleFileError(f"invalid rule id '{rule_id}'", start_line)

    threshold_raw = metadata.get("threshold", "1")
    try:
        threshold = int(threshold_raw)
    except ValueError:
        raise RuleFileError(
            f"rule '{rule_id}': threshold must be an integer, got '{threshold_raw}'",
            start_line,
        ) from None
    if threshold < 1:
        raise RuleFileError(f"rule '{rule_id}': threshold must be >= 1", start_line)

    source = "\n".join(lines[body_start:]).strip("\n")
    first_line = start_line + body_start
    try:
        pattern = compiler.compile(source, first_line=first_line)
    except CompileError as exc:
        logger.warning(
            f"Rule {rule_id} failed to compile",
            extra={"rule_id": rule_id, "error": exc.message,
                   "line": exc.location.line if exc.location else None},
        )
        raise exc.with_context(f"rule '{rule_id}'") from exc.__cause__

    return Rule(
        id=rule_id,
        name=metadata.get("name", rule_id),
        description=metadata.get("description", ""),
        source=source,
        pattern=pattern,
        threshold=threshold,
    )


# ============================================================
# RULE BOOK
# ============================================================

def pick_best(results: SequenceType[RuleScore]) -> Optional[RuleScore]:
    """Highest-scoring matched result; ties go to the earlier one."""
    best = None
    for result in results:
        if result.matched and (best is None or result.score > best.score):
            best = result
    return best


class RuleBook:
    """An ordered set of rules evaluated together against a document."""

    def __init__(self, rules: SequenceType[Rule] = (), engine: MatchEngine = default_engine):
        self._rules: dict[str, Rule] = {}
        self._engine = engine
        for rule in rules:
            self.add(rule)

    @classmethod
    def from_file(
        cls,
        filepath: str | Path,
        compiler: Compiler = default_compiler,
        engine: MatchEngine = default_engine,
    ) -> "RuleBook":
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Rule file not found: {filepath}")
        rules = parse_rules(filepath.read_text(encoding="utf-8"), compiler)
        logger.info(
            f"Loaded rule book {filepath.name}",
            extra={"rules_count": len(rules), "path": str(filepath)},
        )
        return cls(rules, engine=engine)

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        compiler: Compiler = default_compiler,
        engine: MatchEngine = default_engine,
    ) -> "RuleBook":
        """Load every *.rules file in a directory, in name order."""
        book = cls(engine=engine)
        for filepath in sorted(Path(directory).glob("*.rules")):
            for rule in parse_rules(filepath.read_text(encoding="utf-8"), compiler):
                if book.get(rule.id) is not None:
                    raise RuleFileError(
                        f"{filepath.name}: duplicate rule id '{rule.id}' "
                        f"(already defined in an earlier file)"
                    )
                book.add(rule)
        logger.info(
            f"Loaded rule directory {directory}",
            extra={"rules_count": len(book), "path": str(directory)},
        )
        return book

    def add(self, rule: Rule) -> None:
        if rule.id in self._rules:
            raise RuleFileError(f"duplicate rule id '{rule.id}'")
        self._rules[rule.id] = rule

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules.values())

    def score(self, rule_id: str, lines: SequenceType[str]) -> RuleScore:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise KeyError(rule_id)
        return self._score(rule, lines)

    def classify(self, lines: SequenceType[str]) -> list[RuleScore]:
        """Score every rule against the document, in book order."""
        start = time.perf_counter()
        scores = [self._score(rule, lines) for rule in self._rules.values()]
        logger.debug(
            "Classified document",
            extra={
                "lines_count": len(lines),
                "rules_count": len(scores),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return scores

    def best_match(self, lines: SequenceType[str]) -> Optional[RuleScore]:
        """Highest-scoring matched rule; ties go to the earlier rule."""
        return pick_best(self.classify(lines))

    def _score(self, rule: Rule, lines: SequenceType[str]) -> RuleScore:
        return RuleScore(
            rule_id=rule.id,
            name=rule.name,
            score=self._engine.evaluate(rule.pattern, lines),
            threshold=rule.threshold,
        )
