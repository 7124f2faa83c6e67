"""
Matching Engine — Occurrence Counting

Given a compiled Pattern and a document's lines, count occurrences:

  Literal(r)           lines (trimmed) that r matches
  Sequence([r0..rk])   start positions s where line s+i matches r_i for
                       every i; overlapping windows all count. A
                       one-regex Sequence takes the Literal path.
  Conjunction(ps)      min of child counts
  Disjunction(ps)      sum of child counts, no deduplication

Evaluation is pure. Lines are trimmed once per call and only read after
that, so line and window scans can be split across a thread pool.

Usage:
    from docsearch.engine import evaluate
    score = evaluate(pattern, text.splitlines())
"""

from __future__ import annotations

import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence as SequenceType

from docsearch.config import settings
from docsearch.logging import get_logger
from docsearch.pattern import Conjunction, Disjunction, Literal, Pattern, Sequence

logger = get_logger("engine")


class MatchEngine:
    """
    Evaluates patterns against line sequences.

    With workers > 1, scans over documents of at least
    `parallel_threshold` lines are cut into one contiguous chunk per
    worker and counted on a shared ThreadPoolExecutor. The pool is
    created on first use.
    """

    def __init__(
        self,
        workers: int = settings.WORKERS,
        parallel_threshold: int = settings.PARALLEL_THRESHOLD,
    ):
        self._workers = max(1, workers)
        self._threshold = max(1, parallel_threshold)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @property
    def workers(self) -> int:
        return self._workers

    def evaluate(self, pattern: Pattern, lines: SequenceType[str]) -> int:
        """Return the occurrence count of `pattern` in `lines`."""
        if isinstance(lines, str):
            raise TypeError("evaluate() takes a sequence of lines, not a str")
        trimmed = [line.strip() for line in lines]
        return self._occurrences(pattern, trimmed)

    def close(self) -> None:
        """Shut down the worker pool, if one was started."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------
    # Recursive evaluation
    # ------------------------------------------------------------

    def _occurrences(self, pattern: Pattern, lines: list[str]) -> int:
        if isinstance(pattern, Literal):
            return self._count_lines(pattern.regex, lines)

        if isinstance(pattern, Sequence):
            if len(pattern.regexes) == 1:
                return self._count_lines(pattern.regexes[0], lines)
            return self._count_windows(pattern.regexes, lines)

        if isinstance(pattern, Conjunction):
            lowest = None
            for child in pattern.children:
                count = self._occurrences(child, lines)
                if lowest is None or count < lowest:
                    lowest = count
                if lowest == 0:
                    break
            return lowest

        if isinstance(pattern, Disjunction):
            return sum(self._occurrences(child, lines) for child in pattern.children)

        raise TypeError(f"not a pattern: {type(pattern).__name__}")

    # ------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------

    def _count_lines(self, regex: re.Pattern, lines: list[str]) -> int:
        search = regex.search

        def count(start: int, stop: int) -> int:
            return sum(1 for line in lines[start:stop] if search(line))

        return self._scan(count, len(lines))

    def _count_windows(self, regexes: tuple[re.Pattern, ...], lines: list[str]) -> int:
        width = len(regexes)
        positions = len(lines) - width + 1
        if positions <= 0:
            return 0
        searches = [r.search for r in regexes]

        def count(start: int, stop: int) -> int:
            matched = 0
            for s in range(start, stop):
                if all(search(lines[s + i]) for i, search in enumerate(searches)):
                    matched += 1
            return matched

        return self._scan(count, positions)

    def _scan(self, count: Callable[[int, int], int], total: int) -> int:
        """Run count(start, stop) over [0, total), in chunks when worthwhile."""
        if self._workers == 1 or total < self._threshold:
            return count(0, total)

        size = -(-total // self._workers)  # ceil
        bounds = [(lo, min(lo + size, total)) for lo in range(0, total, size)]
        executor = self._get_executor()
        return sum(executor.map(lambda b: count(*b), bounds))

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._workers, thread_name_prefix="docsearch_"
                )
                logger.debug("Started match worker pool", extra={"workers": self._workers})
            return self._executor


# Singleton — configured from settings
engine = MatchEngine()


def evaluate(pattern: Pattern, lines: SequenceType[str]) -> int:
    """Evaluate with the shared engine."""
    return engine.evaluate(pattern, lines)
