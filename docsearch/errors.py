"""
Errors — Compile-Time Failures

Everything that can go wrong with a rule goes wrong here, before a
single document is read. Evaluation itself has no error class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Location:
    """1-based position inside DSL source."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class CompileError(Exception):
    """Malformed rule source. Raised before any pattern is built."""

    def __init__(
        self,
        message: str,
        location: Optional[Location] = None,
        source_line: str = "",
    ):
        self.message = message
        self.location = location
        self.source_line = source_line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.location}: {self.message}"

    def pointer(self) -> str:
        """The offending source line with a caret under the column."""
        if self.location is None or not self.source_line:
            return ""
        caret = " " * (self.location.column - 1) + "^"
        return f"{self.source_line}\n{caret}"

    def with_context(self, prefix: str) -> "CompileError":
        """Same error with `prefix` prepended to the message."""
        return CompileError(f"{prefix}: {self.message}", self.location, self.source_line)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "line": self.location.line if self.location else None,
            "column": self.location.column if self.location else None,
        }


class RegexError(CompileError):
    """A literal's pattern (with its flags applied) is not a valid regex."""

    def __init__(
        self,
        message: str,
        pattern: str,
        flags: str = "",
        location: Optional[Location] = None,
        source_line: str = "",
    ):
        self.pattern = pattern
        self.flags = flags
        super().__init__(message, location, source_line)

    def with_context(self, prefix: str) -> "RegexError":
        return RegexError(
            f"{prefix}: {self.message}",
            self.pattern,
            self.flags,
            self.location,
            self.source_line,
        )


class RuleFileError(ValueError):
    """A rule file block has a malformed header."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)
