"""
Regex Cache

Compiles each distinct regex text once and hands every caller the same
compiled object. Key = the composed pattern text (flags already baked in
as an inline group), so "(?i)abc" and "abc" are separate entries.

Rules are usually registered once at startup and then evaluated against
thousands of documents; compiling here means no regex is ever compiled
on the evaluation path.

Thread-safe via threading.Lock.

Usage:
    from docsearch.cache import regex_cache
    regex = regex_cache.get_or_compile("(?i)^search warrant")
"""

from __future__ import annotations

import re
import threading

from docsearch.config import settings


class RegexCache:
    """Thread-safe compile-once cache with oldest-first eviction."""

    def __init__(self, max_entries: int = 4096):
        self._cache: dict[str, re.Pattern] = {}
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_or_compile(self, pattern: str) -> re.Pattern:
        """
        Return the shared compiled regex for `pattern`.

        Raises re.error if the pattern does not compile. Failed patterns
        are not cached.
        """
        with self._lock:
            compiled = self._cache.get(pattern)
            if compiled is not None:
                self._hits += 1
                return compiled

            self._misses += 1
            compiled = re.compile(pattern)

            # dicts keep insertion order, so the first key is the oldest.
            # Evicted regexes stay alive in whatever trees hold them.
            if len(self._cache) >= self._max_entries:
                del self._cache[next(iter(self._cache))]

            self._cache[pattern] = compiled
            return compiled

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._cache

    @property
    def stats(self) -> dict:
        """Cache hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


# Singleton — shared across the application
regex_cache = RegexCache(max_entries=settings.REGEX_CACHE_SIZE)
