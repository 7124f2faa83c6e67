"""
Tests for the matching engine — occurrence counting semantics.

Every test runs twice: once on a serial engine and once on a pool engine
whose threshold is low enough that every scan is chunked. Both must
agree on every count.
"""

import random
import re

import pytest

from docsearch.compiler import compile
from docsearch.engine import MatchEngine, evaluate
from docsearch.pattern import Conjunction, Disjunction, Literal, Sequence


@pytest.fixture(params=["serial", "parallel"], scope="module")
def engine(request):
    if request.param == "serial":
        eng = MatchEngine(workers=1)
    else:
        eng = MatchEngine(workers=3, parallel_threshold=1)
    yield eng
    eng.close()


# Search-warrant record from an Indonesian police file
WARRANT_PAGE = [
    "BER.TA ACARA PENGGELEDAHAN BADAN",
    "BER.TA ACARA",
    "PENGGELEDAHAN",
    "BER.TA ACARA PENG",
    "Berdasarkan Surat Perintah Penggeledahan Badan",
]

WARRANT_RULE = """
all {
    any {
        "^BER.TA ACARA PENGGELEDAHAN BADAN",
        "^BER.TA ACARA$",
        "^BER.TA ACARA PENG"
    },
    sequence {
        "^BER.TA ACARA$",
        ".*PENGGELEDAHAN.*"
    },
    sequence {
        "^BER.TA ACARA PENG",
        "Berdasarkan Surat Perintah Penggeledahan Badan"
    }
}
"""


class TestLiteral:

    def test_anchored_match(self, engine):
        assert engine.evaluate(compile('"^ABC$"'), ["ABC", "xyz"]) == 1

    def test_lines_are_trimmed(self, engine):
        assert engine.evaluate(compile('"^ABC$"'), ["  ABC\t", "ABC "]) == 2

    def test_search_not_fullmatch(self, engine):
        assert engine.evaluate(compile('"ACARA"'), ["BERITA ACARA PENYITAAN"]) == 1

    def test_case_sensitive_by_default(self, engine):
        assert engine.evaluate(compile('"hi"'), ["hi", "HI"]) == 1

    def test_case_insensitive_flag(self, engine):
        assert engine.evaluate(compile('"hi"i'), ["hi", "HI"]) == 2

    def test_order_does_not_matter(self, engine):
        lines = ["a1", "b", "a2", "c", "a3"]
        pattern = compile('"^a"')
        shuffled = list(lines)
        random.Random(7).shuffle(shuffled)
        assert engine.evaluate(pattern, lines) == engine.evaluate(pattern, shuffled) == 3

    def test_hand_built_literal(self, engine):
        assert engine.evaluate(Literal(re.compile(r"\d")), ["a1", "b", "2"]) == 2


class TestSequence:

    def test_window_match(self, engine):
        assert engine.evaluate(compile('sequence { "A", "B" }'), ["A", "B", "C"]) == 1

    def test_order_matters(self, engine):
        assert engine.evaluate(compile('sequence { "B", "A" }'), ["A", "B", "C"]) == 0

    def test_overlapping_windows(self, engine):
        assert engine.evaluate(compile('sequence { "A", "A" }'), ["A", "A", "A"]) == 2

    def test_must_be_contiguous(self, engine):
        assert engine.evaluate(compile('sequence { "A", "B" }'), ["A", "x", "B"]) == 0

    def test_three_wide(self, engine):
        lines = ["A", "B", "C", "A", "B", "C", "A", "B"]
        assert engine.evaluate(compile('seq { "A", "B", "C" }'), lines) == 2

    def test_longer_than_document(self, engine):
        assert engine.evaluate(compile('sequence { "a", "a", "a" }'), ["a", "a"]) == 0

    def test_window_lines_trimmed(self, engine):
        pattern = compile('sequence { "^A$", "^B$" }')
        assert engine.evaluate(pattern, [" A ", "\tB"]) == 1

    @pytest.mark.parametrize("lines", [
        [],
        ["x"],
        ["x", "y", "X", "xx"],
        ["  x  ", "nope", "x"],
    ])
    def test_single_regex_equals_literal(self, engine, lines):
        assert (
            engine.evaluate(compile('sequence { "x"i }'), lines)
            == engine.evaluate(compile('"x"i'), lines)
        )


class TestConjunction:

    def test_minimum_of_children(self, engine):
        lines = ["a", "a", "b", "b", "b"]
        assert engine.evaluate(compile('all { "a", "b" }'), lines) == 2

    def test_zero_child_gives_zero(self, engine):
        assert engine.evaluate(compile('all { "a", "zzz", "a" }'), ["a", "a"]) == 0

    def test_single_child(self, engine):
        assert engine.evaluate(compile('all { "a" }'), ["a", "a", "b"]) == 2

    def test_warrant_rule(self, engine):
        assert engine.evaluate(compile(WARRANT_RULE), WARRANT_PAGE) == 1

    def test_warrant_rule_parts(self, engine):
        pattern = compile(WARRANT_RULE)
        counts = [engine.evaluate(child, WARRANT_PAGE) for child in pattern.children]
        assert counts == [4, 1, 1]


class TestDisjunction:

    def test_sum_of_children(self, engine):
        lines = ["a", "a", "b", "b", "b"]
        assert engine.evaluate(compile('any { "a", "b" }'), lines) == 5

    def test_no_deduplication(self, engine):
        assert engine.evaluate(compile('any { "x", "x"i }'), ["x"]) == 2

    def test_nested_under_all(self, engine):
        lines = ["a", "b", "c", "c"]
        assert engine.evaluate(compile('all { any { "a", "b" }, "c" }'), lines) == 2

    def test_hand_built_nested_disjunction(self, engine):
        a = Literal(re.compile("a"))
        tree = Disjunction((Conjunction((a,)), Sequence((re.compile("a"), re.compile("b")))))
        assert engine.evaluate(tree, ["a", "b", "a"]) == 3


class TestBoundaries:

    @pytest.mark.parametrize("source", [
        '"a"',
        'sequence { "a" }',
        'sequence { "a", "b" }',
        'all { "a", "b" }',
        'any { "a", "b" }',
    ])
    def test_empty_document(self, engine, source):
        assert engine.evaluate(compile(source), []) == 0

    def test_accepts_tuple_of_lines(self, engine):
        assert engine.evaluate(compile('"a"'), ("a", "b", "a")) == 2

    def test_rejects_plain_string(self, engine):
        with pytest.raises(TypeError):
            engine.evaluate(compile('"a"'), "a\nb")

    def test_rejects_non_pattern(self, engine):
        with pytest.raises(TypeError):
            engine.evaluate(object(), ["a"])

    def test_idempotent(self, engine):
        pattern = compile(WARRANT_RULE)
        first = engine.evaluate(pattern, WARRANT_PAGE)
        second = engine.evaluate(pattern, WARRANT_PAGE)
        assert first == second

    def test_input_not_mutated(self, engine):
        lines = ["  a  ", "b"]
        engine.evaluate(compile('"^a$"'), lines)
        assert lines == ["  a  ", "b"]


class TestParallelAgreement:
    """Chunked scans must count exactly what a serial scan counts."""

    SOURCES = [
        '"^row 1"',
        'sequence { "7$", "8$" }',
        'sequence { "^row", "^row", "^row" }',
        'all { "5", any { "^row 9", "0$" } }',
    ]

    @pytest.mark.parametrize("size", [1, 2, 3, 10, 97, 500])
    def test_agrees_with_serial(self, size):
        lines = [f"row {i}" for i in range(size)]
        serial = MatchEngine(workers=1)
        with MatchEngine(workers=4, parallel_threshold=1) as pooled:
            for source in self.SOURCES:
                pattern = compile(source)
                assert pooled.evaluate(pattern, lines) == serial.evaluate(pattern, lines)

    def test_below_threshold_never_starts_pool(self):
        eng = MatchEngine(workers=4, parallel_threshold=1000)
        eng.evaluate(compile('"a"'), ["a"] * 10)
        assert eng._executor is None

    def test_pool_restarts_after_close(self):
        eng = MatchEngine(workers=2, parallel_threshold=1)
        pattern = compile('"a"')
        assert eng.evaluate(pattern, ["a", "a", "b"]) == 2
        eng.close()
        assert eng.evaluate(pattern, ["a", "a", "b"]) == 2
        eng.close()

    def test_workers_floor(self):
        assert MatchEngine(workers=0).workers == 1


class TestModuleEvaluate:

    def test_shared_engine(self):
        assert evaluate(compile('"^x"'), ["x", "xx", "y"]) == 2
