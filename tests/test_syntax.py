"""
Tests for the DSL tokenizer and parser.

Covers the four surface forms, the flat-only restriction on `any` and
`sequence`, and that every syntax error points at the right token.
"""

import pytest

from docsearch.errors import CompileError, Location
from docsearch.syntax import BlockNode, StringNode, parse


class TestStrings:

    def test_bare_string(self):
        node = parse('"^ABC$"')
        assert node == StringNode("^ABC$", "", Location(1, 1))

    def test_flag_suffix(self):
        node = parse('"hi"im')
        assert node.pattern == "hi"
        assert node.flags == "im"

    def test_body_kept_verbatim(self):
        node = parse(r'"\d+\s*PASAL"')
        assert node.pattern == r"\d+\s*PASAL"

    def test_escaped_quote_does_not_close(self):
        node = parse(r'"say \"hi\""')
        assert node.pattern == r'say \"hi\"'
        assert node.flags == ""

    def test_surrounding_whitespace_ignored(self):
        node = parse('\n\n   "x"   \n')
        assert node.location == Location(3, 4)


class TestBlocks:

    def test_all_with_nested_blocks(self):
        node = parse('all { "a", any { "b", "c" }, sequence { "d", "e" } }')
        assert isinstance(node, BlockNode)
        assert node.kind == "all"
        assert [type(c) for c in node.children] == [StringNode, BlockNode, BlockNode]
        assert node.children[1].kind == "any"
        assert node.children[2].kind == "sequence"

    def test_seq_alias(self):
        node = parse('seq { "a", "b" }')
        assert node.kind == "sequence"

    def test_sequence_keeps_order(self):
        node = parse('sequence { "first", "second", "third" }')
        assert [c.pattern for c in node.children] == ["first", "second", "third"]

    def test_trailing_comma(self):
        node = parse('any { "a", "b", }')
        assert len(node.children) == 2

    def test_comments(self):
        node = parse(
            "// heading rules\n"
            "all {\n"
            '    "a", // first\n'
            '    "b"\n'
            "}\n"
        )
        assert [c.pattern for c in node.children] == ["a", "b"]

    def test_block_location(self):
        node = parse('all {\n  any { "a" }\n}')
        assert node.location == Location(1, 1)
        assert node.children[0].location == Location(2, 3)

    def test_deep_nesting(self):
        node = parse('all { all { all { "x" } } }')
        assert node.children[0].children[0].children[0].pattern == "x"


class TestErrors:

    def _error(self, source, **kwargs) -> CompileError:
        with pytest.raises(CompileError) as exc_info:
            parse(source, **kwargs)
        return exc_info.value

    def test_unknown_combinator(self):
        err = self._error('none { "a" }')
        assert "unknown combinator 'none'" in err.message
        assert err.location == Location(1, 1)

    def test_keywords_are_case_sensitive(self):
        err = self._error('ALL { "a" }')
        assert "unknown combinator 'ALL'" in err.message

    def test_any_rejects_nested_block(self):
        err = self._error('any { all { "a" } }')
        assert "accepts only string literals" in err.message
        assert err.location == Location(1, 7)

    def test_sequence_rejects_nested_block(self):
        err = self._error('sequence { "a", seq { "b" } }')
        assert "'sequence' accepts only string literals" in err.message

    def test_unexpected_character(self):
        err = self._error('sequence { "a", 42 }')
        assert "unexpected character '4'" in err.message
        assert err.location == Location(1, 17)

    @pytest.mark.parametrize("source", ['all { }', 'any {}', 'sequence {\n}'])
    def test_empty_block(self, source):
        err = self._error(source)
        assert "at least one pattern" in err.message
        assert err.location == Location(1, 1)

    def test_missing_comma(self):
        err = self._error('all { "a" "b" }')
        assert "expected ',' or '}'" in err.message
        assert err.location == Location(1, 11)

    def test_missing_brace(self):
        err = self._error('all "a"')
        assert "expected '{' after 'all'" in err.message

    def test_unclosed_block(self):
        err = self._error('all { "a",')
        assert "end of input" in err.message

    def test_unterminated_string(self):
        err = self._error('all { "abc }')
        assert "unterminated string literal" in err.message
        assert err.location == Location(1, 7)

    def test_string_cannot_span_lines(self):
        err = self._error('"abc\ndef"')
        assert "unterminated" in err.message

    def test_trailing_input(self):
        err = self._error('"a" "b"')
        assert "after expression" in err.message
        assert err.location == Location(1, 5)

    def test_empty_source(self):
        err = self._error("   // nothing here\n")
        assert "empty rule" in err.message

    def test_multiline_location_and_pointer(self):
        err = self._error('all {\n  "a",\n  bogus { "b" }\n}')
        assert err.location == Location(3, 3)
        assert err.source_line == '  bogus { "b" }'
        assert err.pointer() == '  bogus { "b" }\n  ^'
        assert str(err).startswith("line 3, column 3:")

    def test_first_line_offset(self):
        err = self._error('\nfoo { "a" }', first_line=10)
        assert err.location == Location(11, 1)
        assert err.source_line == 'foo { "a" }'

    def test_to_dict(self):
        err = self._error('any { all { "a" } }')
        assert err.to_dict() == {
            "message": err.message,
            "line": 1,
            "column": 7,
        }
