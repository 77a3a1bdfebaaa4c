"""Glob matching for ignore patterns and per-pattern thresholds.

Supported syntax:

- ``**`` matches across directory separators (``**/`` may match nothing)
- ``*`` and ``?`` never match ``/``
- ``[abc]`` / ``[!abc]`` character classes
- ``{a,b}`` alternation (may nest)

Paths and patterns are compared with forward slashes only.
"""

from __future__ import annotations

import re
from functools import lru_cache


class GlobSyntaxError(ValueError):
    """Raised when a glob pattern cannot be compiled."""


def normalize_path(path: str) -> str:
    """Use forward slashes and drop a leading ``./``."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile *pattern* into an anchored regular expression.

    Raises:
        GlobSyntaxError: If the pattern is empty or has unbalanced brackets.
    """
    if not pattern or not pattern.strip():
        raise GlobSyntaxError("Glob pattern must not be empty")
    body = _translate(normalize_path(pattern), pattern)
    return re.compile(f"^{body}$")


def glob_match(pattern: str, path: str) -> bool:
    """Return True if *path* matches *pattern*."""
    return compile_glob(pattern).match(normalize_path(path)) is not None


def match_any(patterns: list[str] | tuple[str, ...], path: str) -> str | None:
    """Return the first pattern matching *path*, or ``None``."""
    normalized = normalize_path(path)
    for pattern in patterns:
        if compile_glob(pattern).match(normalized):
            return pattern
    return None


def _translate(pattern: str, original: str) -> str:
    parts: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                i += 2
                if i < n and pattern[i] == "/":
                    parts.append("(?:.*/)?")
                    i += 1
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 2 if i + 1 < n and pattern[i + 1] in "!^" else i + 1)
            if end == -1:
                raise GlobSyntaxError(f"Unbalanced '[' in glob pattern {original!r}")
            content = pattern[i + 1 : end]
            if content[:1] in ("!", "^"):
                content = "^" + content[1:]
            parts.append("[" + content.replace("\\", "\\\\") + "]")
            i = end
        elif ch == "{":
            end = _matching_brace(pattern, i, original)
            alternatives = _split_alternatives(pattern[i + 1 : end])
            parts.append(
                "(?:" + "|".join(_translate(alt, original) for alt in alternatives) + ")"
            )
            i = end
        elif ch == "}":
            raise GlobSyntaxError(f"Unbalanced '}}' in glob pattern {original!r}")
        else:
            parts.append(re.escape(ch))
        i += 1
    return "".join(parts)


def _matching_brace(pattern: str, start: int, original: str) -> int:
    depth = 0
    for index in range(start, len(pattern)):
        if pattern[index] == "{":
            depth += 1
        elif pattern[index] == "}":
            depth -= 1
            if depth == 0:
                return index
    raise GlobSyntaxError(f"Unbalanced '{{' in glob pattern {original!r}")


def _split_alternatives(body: str) -> list[str]:
    alternatives: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "," and depth == 0:
            alternatives.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    alternatives.append("".join(current))
    return alternatives
