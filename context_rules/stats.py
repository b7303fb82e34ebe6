"""Composition statistics for resolved hot and cold file sets."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable

from context_rules.constants import (
    BYTES_PER_TOKEN,
    DEFAULT_TOP_FILES,
    LANGUAGE_BY_EXTENSION,
    TOKEN_BUCKETS,
)
from context_rules.results import ResolutionResult

logger = logging.getLogger(__name__)


def estimate_tokens(size: int) -> int:
    return size // BYTES_PER_TOKEN


def language_for(path: Path) -> str:
    suffix = path.suffix.lower()
    if not suffix:
        return "Other"
    return LANGUAGE_BY_EXTENSION.get(suffix, f"Other ({suffix[1:]})")


def format_token_count(tokens: int) -> str:
    if tokens < 1000:
        return str(tokens)
    if tokens < 1_000_000:
        return f"{tokens / 1000:.1f}k"
    return f"{tokens / 1_000_000:.1f}M"


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} bytes"
    for unit, scale in (("KB", 1024), ("MB", 1024**2)):
        if size < scale * 1024:
            return f"{size / scale:.1f} {unit}"
    return f"{size / 1024**3:.1f} GB"


def _percent(part: int, whole: int) -> float:
    return part * 100 / whole if whole else 0.0


@dataclass
class FileStats:
    path: Path
    tokens: int
    size: int
    percentage: float = 0.0


def file_stats(path: Path) -> FileStats:
    """Size and token estimate of ``path``; unreadable files count as empty."""
    try:
        size = path.stat().st_size
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return FileStats(path=path, tokens=0, size=0)
    return FileStats(path=path, tokens=estimate_tokens(size), size=size)


@dataclass
class LanguageStats:
    name: str
    file_count: int = 0
    total_tokens: int = 0
    percentage: float = 0.0


@dataclass
class TokenBucket:
    label: str
    file_count: int = 0
    percentage: float = 0.0


@dataclass
class ContextStats:
    context_type: str
    total_files: int = 0
    total_tokens: int = 0
    total_size: int = 0
    languages: dict[str, LanguageStats] = field(default_factory=dict)
    largest_files: list[FileStats] = field(default_factory=list)
    distribution: list[TokenBucket] = field(default_factory=list)
    avg_tokens: int = 0
    median_tokens: int = 0

    def languages_by_tokens(self) -> list[LanguageStats]:
        return sorted(self.languages.values(), key=lambda item: (-item.total_tokens, item.name))

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for item in payload["largest_files"]:
            item["path"] = str(item["path"])
        return payload


def _median(values: list[int]) -> int:
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) // 2
    return ordered[middle]


def _distribution(token_counts: list[int]) -> list[TokenBucket]:
    buckets: list[TokenBucket] = []
    for low, high, label in TOKEN_BUCKETS:
        count = sum(1 for tokens in token_counts if tokens >= low and (high is None or tokens < high))
        buckets.append(TokenBucket(label=label, file_count=count, percentage=_percent(count, len(token_counts))))
    return buckets


def collect_stats(context_type: str, files: Iterable[Path], top_n: int = DEFAULT_TOP_FILES) -> ContextStats:
    """Break a file set down by language, token estimate and size.

    Tokens are estimated at four bytes per token. Files that cannot be
    stat'ed still count towards ``total_files`` but contribute nothing else.
    """
    paths = list(files)
    stats = ContextStats(context_type=context_type, total_files=len(paths))
    if not paths:
        return stats

    measured: list[FileStats] = []
    for path in paths:
        try:
            size = path.stat().st_size
        except OSError as exc:
            logger.debug("Skipping %s in stats: %s", path, exc)
            continue
        item = FileStats(path=path, tokens=estimate_tokens(size), size=size)
        measured.append(item)
        stats.total_tokens += item.tokens
        stats.total_size += item.size

        name = language_for(path)
        language = stats.languages.setdefault(name, LanguageStats(name=name))
        language.file_count += 1
        language.total_tokens += item.tokens

    for language in stats.languages.values():
        language.percentage = _percent(language.total_tokens, stats.total_tokens)

    measured.sort(key=lambda item: (-item.tokens, item.path))
    stats.largest_files = measured[: max(top_n, 0)]
    for item in stats.largest_files:
        item.percentage = _percent(item.tokens, stats.total_tokens)

    token_counts = [item.tokens for item in measured]
    stats.distribution = _distribution(token_counts)
    if token_counts:
        stats.avg_tokens = stats.total_tokens // len(token_counts)
        stats.median_tokens = _median(token_counts)
    return stats


def result_stats(result: ResolutionResult, top_n: int = DEFAULT_TOP_FILES) -> list[ContextStats]:
    """Statistics for the non-empty hot and cold sets of ``result``, hot first."""
    collected: list[ContextStats] = []
    for context_type, files in (("hot", result.hot_files()), ("cold", result.cold_files())):
        if files:
            collected.append(collect_stats(context_type, files, top_n=top_n))
    return collected
