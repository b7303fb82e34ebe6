"""Gitignore-style glob matching with case-normalized, segment-aware semantics."""

import re
from functools import lru_cache
from typing import Optional

_GLOB_CHARS = frozenset("*?[")


def has_glob(text: str) -> bool:
    return any(char in _GLOB_CHARS for char in text)


def _translate(glob: str) -> str:
    out: list[str] = []
    index = 0
    length = len(glob)
    while index < length:
        char = glob[index]
        if char == "*":
            while index + 1 < length and glob[index + 1] == "*":
                index += 1
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = index + 1
            negate = end < length and glob[end] in "!^"
            if negate:
                end += 1
            if end < length and glob[end] == "]":
                end += 1
            while end < length and glob[end] != "]":
                end += 1
            if end >= length:
                raise ValueError(f"unclosed character class in {glob!r}")
            body = glob[index + 1 + int(negate):end]
            escaped = "".join(f"\\{c}" if c in "\\^[]" else c for c in body)
            out.append(f"[^/{escaped}]" if negate else f"[{escaped}]")
            index = end
        elif char == "\\" and index + 1 < length:
            index += 1
            out.append(re.escape(glob[index]))
        else:
            out.append(re.escape(char))
        index += 1
    return "".join(out)


@lru_cache(maxsize=4096)
def _compile(glob: str) -> Optional[re.Pattern]:
    try:
        return re.compile(_translate(glob), re.DOTALL)
    except (ValueError, re.error):
        return None


def pattern_error(pattern: str) -> Optional[str]:
    """Describe why ``pattern`` can never match, or ``None`` when it is valid."""
    for segment in pattern.split("/"):
        try:
            re.compile(_translate(segment))
        except (ValueError, re.error) as exc:
            return str(exc)
    return None


def glob_match(glob: str, name: str) -> bool:
    compiled = _compile(glob)
    if compiled is None:
        return False
    return compiled.fullmatch(name) is not None


def _segments_match(pattern_parts: list[str], path_parts: list[str]) -> bool:
    if not pattern_parts:
        return not path_parts
    head = pattern_parts[0]
    if head == "**":
        rest = pattern_parts[1:]
        return any(
            _segments_match(rest, path_parts[start:])
            for start in range(len(path_parts) + 1)
        )
    if not path_parts:
        return False
    return glob_match(head, path_parts[0]) and _segments_match(
        pattern_parts[1:], path_parts[1:]
    )


def _match_double_star(pattern: str, path: str) -> bool:
    path_parts = path.split("/")

    if pattern.startswith("**/") and pattern.endswith("/**") and pattern.count("**") == 2:
        middle = pattern[3:-3]
        if middle and "/" not in middle:
            return any(glob_match(middle, part) for part in path_parts)

    parts = pattern.split("**")
    prefix, suffix = (parts[0], parts[1]) if len(parts) == 2 else ("", "")
    bounded = len(parts) == 2 and (not prefix or prefix.endswith("/")) and (
        not suffix or suffix.startswith("/")
    )
    if not bounded:
        return _segments_match(pattern.split("/"), path_parts)

    rest = path_parts
    if prefix:
        prefix_parts = prefix[:-1].split("/")
        if len(path_parts) < len(prefix_parts):
            return False
        for glob, part in zip(prefix_parts, path_parts):
            if not glob_match(glob, part):
                return False
        rest = path_parts[len(prefix_parts):]

    suffix = suffix.lstrip("/")
    if not suffix:
        return True
    if not rest:
        return False
    if "/" not in suffix:
        return glob_match(suffix, rest[-1])

    suffix_parts = suffix.split("/")
    for start in range(len(rest) - len(suffix_parts) + 1):
        window = rest[start:start + len(suffix_parts)]
        if all(glob_match(glob, part) for glob, part in zip(suffix_parts, window)):
            return True
    return False


def match_pattern(pattern: str, path: str) -> bool:
    """Match a gitignore-style ``pattern`` against a ``/``-separated path.

    Both sides are lower-cased. A pattern without ``/`` also matches any
    single path component, a trailing ``/`` selects a directory's contents,
    and a literal prefix before ``**`` only matches on a directory boundary.
    """
    pattern = pattern.lower()
    path = path.lower()
    if pattern.endswith("/"):
        pattern = f"{pattern}**"

    if "**" in pattern:
        return _match_double_star(pattern, path)

    if glob_match(pattern, path):
        return True
    if "/" not in pattern:
        return any(glob_match(pattern, part) for part in path.split("/"))
    return False


def static_prefix(pattern: str) -> str:
    """Leading path segments of ``pattern`` that contain no glob characters."""
    segments: list[str] = []
    for segment in pattern.split("/"):
        if has_glob(segment):
            break
        segments.append(segment)
    return "/".join(segments)
