"""
Syntax — Tokenizer and Parser for the Rule DSL

Grammar:

    expr     := string | block
    block    := keyword "{" [ item ("," item)* [","] ] "}"
    keyword  := "any" | "all" | "sequence" | "seq"
    string   := '"' body '"' [flags]

`all` items are full expressions. `any` and `sequence` items must be
plain strings. Flags are the letters glued to the closing quote
("abc"i). String bodies are kept verbatim as regex text; a backslash
only stops the next character from closing the string.

`//` starts a comment that runs to the end of the line.

Example:

    all {
        any { "^BER.TA ACARA$", "^BER.TA ACARA PENG" },
        sequence { "^BER.TA ACARA$", ".*PENGGELEDAHAN.*"i },
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from docsearch.errors import CompileError, Location

# Keyword -> canonical block kind
KEYWORDS = {
    "any": "any",
    "all": "all",
    "sequence": "sequence",
    "seq": "sequence",
}

# Block kinds whose items must be plain strings
FLAT_BLOCKS = frozenset({"any", "sequence"})


# ============================================================
# AST
# ============================================================

@dataclass(frozen=True)
class StringNode:
    """A regex literal with its flag suffix."""
    pattern: str
    flags: str
    location: Location


@dataclass(frozen=True)
class BlockNode:
    """A combinator block: any / all / sequence."""
    kind: str
    children: tuple["Node", ...]
    location: Location


Node = Union[StringNode, BlockNode]


# ============================================================
# TOKENIZER
# ============================================================

@dataclass(frozen=True)
class Token:
    kind: str       # "string", "ident", "{", "}", ",", "eof"
    value: str
    location: Location
    flags: str = ""


class Tokenizer:
    """Turns DSL source into a flat list of tokens."""

    def __init__(self, source: str, first_line: int = 1):
        self._source = source
        self._lines = source.split("\n")
        self._first_line = first_line
        self._pos = 0
        self._line = first_line
        self._line_start = 0

    def source_line(self, line: int) -> str:
        index = line - self._first_line
        if 0 <= index < len(self._lines):
            return self._lines[index].rstrip("\r")
        return ""

    def error(self, message: str, location: Location) -> CompileError:
        return CompileError(message, location, self.source_line(location.line))

    def _location(self) -> Location:
        return Location(self._line, self._pos - self._line_start + 1)

    def _newline(self) -> None:
        self._line += 1
        self._line_start = self._pos

    def tokenize(self) -> list[Token]:
        tokens = []
        src = self._source
        while True:
            self._skip_blank()
            if self._pos >= len(src):
                tokens.append(Token("eof", "", self._location()))
                return tokens

            ch = src[self._pos]
            loc = self._location()
            if ch in "{},":
                self._pos += 1
                tokens.append(Token(ch, ch, loc))
            elif ch == '"':
                tokens.append(self._read_string(loc))
            elif ch.isalpha() or ch == "_":
                start = self._pos
                while self._pos < len(src) and (src[self._pos].isalnum() or src[self._pos] == "_"):
                    self._pos += 1
                tokens.append(Token("ident", src[start:self._pos], loc))
            else:
                raise self.error(f"unexpected character {ch!r}", loc)

    def _skip_blank(self) -> None:
        src = self._source
        while self._pos < len(src):
            ch = src[self._pos]
            if ch == "\n":
                self._pos += 1
                self._newline()
            elif ch.isspace():
                self._pos += 1
            elif src.startswith("//", self._pos):
                end = src.find("\n", self._pos)
                self._pos = len(src) if end == -1 else end
            else:
                return

    def _read_string(self, loc: Location) -> Token:
        src = self._source
        self._pos += 1  # opening quote
        start = self._pos
        while True:
            if self._pos >= len(src) or src[self._pos] == "\n":
                raise self.error("unterminated string literal", loc)
            ch = src[self._pos]
            if ch == "\\" and self._pos + 1 < len(src) and src[self._pos + 1] != "\n":
                self._pos += 2
                continue
            if ch == '"':
                break
            self._pos += 1

        body = src[start:self._pos]
        self._pos += 1  # closing quote

        flag_start = self._pos
        while self._pos < len(src) and src[self._pos].isalpha():
            self._pos += 1
        return Token("string", body, loc, flags=src[flag_start:self._pos])


# ============================================================
# PARSER
# ============================================================

class Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, source: str, first_line: int = 1):
        self._tokenizer = Tokenizer(source, first_line)
        self._tokens = self._tokenizer.tokenize()
        self._index = 0

    def source_line(self, line: int) -> str:
        return self._tokenizer.source_line(line)

    def parse(self) -> Node:
        """Parse exactly one expression; anything after it is an error."""
        if self._peek().kind == "eof":
            raise self._error("empty rule: expected a string literal or combinator")
        node = self._expr()
        if self._peek().kind != "eof":
            raise self._error(f"unexpected {self._describe(self._peek())} after expression")
        return node

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.kind != "eof":
            self._index += 1
        return token

    def _error(self, message: str, token: Token | None = None) -> CompileError:
        token = token or self._peek()
        return self._tokenizer.error(message, token.location)

    @staticmethod
    def _describe(token: Token) -> str:
        if token.kind == "eof":
            return "end of input"
        if token.kind == "string":
            return "string literal"
        if token.kind == "ident":
            return f"identifier '{token.value}'"
        return f"'{token.value}'"

    def _expr(self) -> Node:
        token = self._peek()
        if token.kind == "string":
            return self._string()
        if token.kind == "ident":
            return self._block()
        raise self._error(
            f"expected string literal or combinator, found {self._describe(token)}"
        )

    def _string(self) -> StringNode:
        token = self._advance()
        return StringNode(token.value, token.flags, token.location)

    def _block(self) -> BlockNode:
        keyword = self._advance()
        kind = KEYWORDS.get(keyword.value)
        if kind is None:
            raise self._error(
                f"unknown combinator '{keyword.value}' "
                f"(expected one of: any, all, sequence)",
                keyword,
            )

        if self._peek().kind != "{":
            raise self._error(
                f"expected '{{' after '{keyword.value}', "
                f"found {self._describe(self._peek())}"
            )
        self._advance()

        children: list[Node] = []
        while self._peek().kind != "}":
            children.append(self._item(kind, keyword.value))
            if self._peek().kind == ",":
                self._advance()
            elif self._peek().kind != "}":
                raise self._error(
                    f"expected ',' or '}}' in '{keyword.value}' block, "
                    f"found {self._describe(self._peek())}"
                )
        self._advance()

        if not children:
            raise self._error(
                f"'{keyword.value}' block must contain at least one pattern", keyword
            )
        return BlockNode(kind, tuple(children), keyword.location)

    def _item(self, kind: str, keyword: str) -> Node:
        token = self._peek()
        if kind not in FLAT_BLOCKS:
            return self._expr()
        if token.kind == "string":
            return self._string()
        if token.kind == "ident":
            raise self._error(
                f"'{keyword}' accepts only string literals, "
                f"not nested '{token.value}' blocks"
            )
        raise self._error(
            f"expected string literal in '{keyword}' block, "
            f"found {self._describe(token)}"
        )


def parse(source: str, first_line: int = 1) -> Node:
    """Parse DSL source into an AST. Raises CompileError."""
    return Parser(source, first_line).parse()
