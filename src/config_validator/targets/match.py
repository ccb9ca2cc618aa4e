"""Glob matching for constraint match criteria."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Pattern

__all__ = ["glob_match", "any_glob_match"]


@lru_cache(maxsize=512)
def _compile(pattern: str, separator: str) -> Pattern[str]:
    """Translate a glob into a regex.

    ``**`` matches across separators, ``*`` and ``?`` stay within one
    segment.
    """
    sep = re.escape(separator)
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append(f"[^{sep}]*")
        elif char == "?":
            parts.append(f"[^{sep}]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("^" + "".join(parts) + "$")


def glob_match(pattern: str, value: str, separator: str = "/") -> bool:
    return bool(_compile(pattern, separator).match(value))


def any_glob_match(patterns: Iterable[str], value: str, separator: str = "/") -> bool:
    return any(glob_match(pattern, value, separator) for pattern in patterns)
