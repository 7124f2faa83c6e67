"""
Compiler — DSL Source to Pattern Tree

Two phases:
  1. syntax.parse() turns source text into an AST
  2. Compiler lowers the AST into Literal / Sequence / Conjunction /
     Disjunction nodes, resolving every string + flags into one
     compiled regex from the shared cache

Compilation is all-or-nothing: the first error aborts and no partial
tree escapes.

Usage:
    from docsearch.compiler import compile
    pattern = compile('all { "^SURAT PERINTAH"i, sequence { "a", "b" } }')
"""

from __future__ import annotations

import re

from docsearch.cache import RegexCache, regex_cache
from docsearch.errors import CompileError, RegexError
from docsearch.pattern import Conjunction, Disjunction, Literal, Pattern, Sequence
from docsearch.syntax import BlockNode, Node, Parser, StringNode

# Inline global flags Python's re accepts on str patterns
SUPPORTED_FLAGS = "aimsux"

# A leading global-flag group already present in the pattern text
_LEADING_FLAGS = re.compile(r"^\(\?([aiLmsux]+)\)")


def compose_flags(pattern: str, flags: str) -> str:
    """
    Bake `flags` into `pattern` as a single leading inline group.

    "abc", "i"       -> "(?i)abc"
    "(?m)abc", "i"   -> "(?mi)abc"
    """
    if not flags:
        return pattern
    existing = _LEADING_FLAGS.match(pattern)
    if existing:
        flags = existing.group(1) + flags
        pattern = pattern[existing.end():]
    unique = "".join(dict.fromkeys(flags))
    return f"(?{unique}){pattern}"


class Compiler:
    """Lowers parsed DSL into an immutable Pattern tree."""

    def __init__(self, cache: RegexCache = regex_cache):
        self._cache = cache

    def compile(self, source: str, first_line: int = 1) -> Pattern:
        """
        Compile DSL source.

        Args:
            source: The rule expression.
            first_line: Line number of the first source line, for rules
                embedded in larger files. Error locations use it.

        Raises:
            CompileError: malformed syntax or unsupported flags.
            RegexError: a literal is not a valid regex.
        """
        parser = Parser(source, first_line)
        node = parser.parse()
        return self._lower(node, parser)

    def _lower(self, node: Node, parser: Parser) -> Pattern:
        if isinstance(node, StringNode):
            return Literal(self._regex(node, parser))

        if node.kind == "any":
            return Disjunction(tuple(
                Literal(self._regex(child, parser)) for child in node.children
            ))
        if node.kind == "all":
            return Conjunction(tuple(
                self._lower(child, parser) for child in node.children
            ))
        if node.kind == "sequence":
            return Sequence(tuple(
                self._regex(child, parser) for child in node.children
            ))
        raise CompileError(f"unknown block kind '{node.kind}'", node.location)

    def _regex(self, node: Node, parser: Parser) -> re.Pattern:
        if not isinstance(node, StringNode):
            # The parser already enforces this for flat blocks
            raise CompileError(
                "expected string literal",
                node.location,
                parser.source_line(node.location.line),
            )

        unsupported = [f for f in node.flags if f not in SUPPORTED_FLAGS]
        if unsupported:
            raise CompileError(
                f"unsupported regex flag '{unsupported[0]}' "
                f"(supported: {', '.join(SUPPORTED_FLAGS)})",
                node.location,
                parser.source_line(node.location.line),
            )

        text = compose_flags(node.pattern, node.flags)
        try:
            return self._cache.get_or_compile(text)
        except re.error as exc:
            raise RegexError(
                f"invalid regex {node.pattern!r}: {exc}",
                pattern=node.pattern,
                flags=node.flags,
                location=node.location,
                source_line=parser.source_line(node.location.line),
            ) from exc


# Singleton — shares the application regex cache
compiler = Compiler()


def compile(source: str, first_line: int = 1) -> Pattern:
    """Compile DSL source with the shared compiler."""
    return compiler.compile(source, first_line)
