"""Glob matching for file paths and import specifiers.

Supported syntax:

- ``**`` matches any number of path segments, including none; a trailing
  ``/**`` also matches the directory itself
- ``*`` matches within a single segment (never crosses ``/``)
- ``?`` matches one character other than ``/``
- ``{a,b}`` matches either alternative (alternatives may nest)

Backslashes in paths are normalized to forward slashes before matching.
"""

from __future__ import annotations

import functools
import re


def _translate(pattern: str) -> str:
    """Translate a glob *pattern* into an anchored regular expression source."""
    parts: list[str] = []
    depth = 0
    i = 0
    n = len(pattern)

    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    parts.append("(?:.*/)?")
                    i += 1
                elif i == n and parts and parts[-1] == "/":
                    # trailing "/**" also matches the directory itself
                    parts[-1] = "(?:/.*)?"
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "{":
            depth += 1
            parts.append("(?:")
        elif char == "}" and depth > 0:
            depth -= 1
            parts.append(")")
        elif char == "," and depth > 0:
            parts.append("|")
        else:
            parts.append(re.escape(char))
        i += 1

    if depth != 0:
        msg = f"Malformed glob '{pattern}': unbalanced '{{'"
        raise ValueError(msg)

    return "^" + "".join(parts) + "$"


@functools.lru_cache(maxsize=1024)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile *pattern* into a regex, raising ``ValueError`` when it is malformed."""
    if not pattern or not pattern.strip():
        msg = "Malformed glob: pattern must be a non-empty string"
        raise ValueError(msg)
    return re.compile(_translate(pattern.replace("\\", "/")))


def validate_glob(pattern: str) -> None:
    """Raise ``ValueError`` if *pattern* cannot be compiled."""
    compile_glob(pattern)


def match_glob(pattern: str, path: str) -> bool:
    """Return True if *path* matches the glob *pattern*.

    Example::

        match_glob("src/**/*.ts", "src/index.ts")         # True
        match_glob("src/**/*.ts", "src/a/b/index.ts")     # True
        match_glob("src/{a,b}/*.js", "src/c/test.js")     # False
    """
    return compile_glob(pattern).match(path.replace("\\", "/")) is not None


def match_any(patterns: tuple[str, ...] | list[str], path: str) -> bool:
    """Return True if *path* matches at least one of *patterns*."""
    return any(match_glob(pattern, path) for pattern in patterns)
