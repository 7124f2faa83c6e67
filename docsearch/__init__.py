"""
docsearch — Rule DSL for Scoring Documents Line by Line

Human-authored rules built from regexes combined with any / all /
sequence blocks, compiled once and evaluated against many documents.

Public API:
  - compile:    DSL source -> immutable Pattern tree (raises CompileError)
  - evaluate:   (Pattern, lines) -> occurrence count
  - MatchEngine: configurable engine (worker pool, parallel threshold)
  - RuleBook:   named, thresholded rules loaded from rule files

Usage:
    from docsearch import compile, evaluate
    pattern = compile('sequence { "^BERITA ACARA$"i, "PENGGELEDAHAN" }')
    score = evaluate(pattern, text.splitlines())
"""

__version__ = "0.3.0"

from docsearch.errors import CompileError, RegexError, RuleFileError, Location
from docsearch.pattern import Literal, Sequence, Conjunction, Disjunction, Pattern
from docsearch.syntax import parse
from docsearch.compiler import Compiler, compile
from docsearch.engine import MatchEngine, evaluate
from docsearch.cache import RegexCache, regex_cache
from docsearch.rules import Rule, RuleBook, RuleScore, parse_rules

__all__ = [
    "CompileError",
    "RegexError",
    "RuleFileError",
    "Location",
    "Literal",
    "Sequence",
    "Conjunction",
    "Disjunction",
    "Pattern",
    "parse",
    "Compiler",
    "compile",
    "MatchEngine",
    "evaluate",
    "RegexCache",
    "regex_cache",
    "Rule",
    "RuleBook",
    "RuleScore",
    "parse_rules",
]
