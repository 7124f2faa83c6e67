"""
Pattern — The Compiled Match Tree

Four node shapes, all frozen:

  Literal      one regex, checked line by line
  Sequence     ordered regexes, checked against consecutive lines
  Conjunction  every child must hold; score is the weakest child
  Disjunction  any child contributes; scores add up

Trees are built by the compiler and never mutated afterwards. The
compiled regexes they hold come from the shared regex cache, so the
same object may sit in many nodes across many rules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Literal:
    """Matches a single (trimmed) line against one regex."""
    regex: re.Pattern

    @property
    def source(self) -> str:
        return self.regex.pattern


@dataclass(frozen=True)
class Sequence:
    """Matches a contiguous run of lines, position i against regexes[i]."""
    regexes: tuple[re.Pattern, ...]

    def __post_init__(self):
        # Accept any iterable but store a tuple
        object.__setattr__(self, "regexes", tuple(self.regexes))
        if not self.regexes:
            raise ValueError("Sequence requires at least one regex")

    def __len__(self) -> int:
        return len(self.regexes)


@dataclass(frozen=True)
class Conjunction:
    """All children must hold. Score = min of child scores."""
    children: tuple["Pattern", ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        if not self.children:
            raise ValueError("Conjunction requires at least one child")


@dataclass(frozen=True)
class Disjunction:
    """Children contribute independently. Score = sum of child scores."""
    children: tuple["Pattern", ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        if not self.children:
            raise ValueError("Disjunction requires at least one child")


Pattern = Union[Literal, Sequence, Conjunction, Disjunction]

