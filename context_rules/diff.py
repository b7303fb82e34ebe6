"""Compare the files included by two rule sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from context_rules.engine import ResolutionEngine
from context_rules.errors import ImportNotFoundError
from context_rules.results import ResolutionResult
from context_rules.rules.repository import RulesRepository
from context_rules.stats import FileStats, file_stats

logger = logging.getLogger(__name__)

EMPTY_COMPARISONS = ("", "empty")
CURRENT_COMPARISON = "current"


@dataclass
class ContextDiff:
    added: list[FileStats] = field(default_factory=list)
    removed: list[FileStats] = field(default_factory=list)
    current_files: int = 0
    compare_files: int = 0
    current_tokens: int = 0
    compare_tokens: int = 0
    current_size: int = 0
    compare_size: int = 0

    @property
    def file_delta(self) -> int:
        return self.current_files - self.compare_files

    @property
    def token_delta(self) -> int:
        return self.current_tokens - self.compare_tokens

    @property
    def size_delta(self) -> int:
        return self.current_size - self.compare_size

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def _by_tokens(items: list[FileStats]) -> list[FileStats]:
    return sorted(items, key=lambda item: (-item.tokens, item.path))


def diff_files(current: Iterable[Path], compare: Iterable[Path]) -> ContextDiff:
    """Files in ``current`` but not ``compare`` are added; the reverse are removed."""
    current_stats = {path: file_stats(path) for path in current}
    compare_stats = {path: file_stats(path) for path in compare}

    return ContextDiff(
        added=_by_tokens([item for path, item in current_stats.items() if path not in compare_stats]),
        removed=_by_tokens([item for path, item in compare_stats.items() if path not in current_stats]),
        current_files=len(current_stats),
        compare_files=len(compare_stats),
        current_tokens=sum(item.tokens for item in current_stats.values()),
        compare_tokens=sum(item.tokens for item in compare_stats.values()),
        current_size=sum(item.size for item in current_stats.values()),
        compare_size=sum(item.size for item in compare_stats.values()),
    )


def diff_against_ruleset(engine: ResolutionEngine, current: ResolutionResult, ruleset: str) -> ContextDiff:
    """Diff the included files of ``current`` against a named ruleset.

    ``empty`` (or an empty name) compares against no files and ``current``
    against ``current`` itself. Any other name is looked up in the working
    directory's ``.cx/`` and ``.cx.work/`` directories and resolved with
    ``engine``. Raises ``ImportNotFoundError`` when the ruleset is missing.
    """
    included = current.included_files()
    if ruleset in EMPTY_COMPARISONS:
        return diff_files(included, [])
    if ruleset == CURRENT_COMPARISON:
        return diff_files(included, included)

    path = RulesRepository(engine.work_dir).find_ruleset(ruleset)
    if path is None:
        raise ImportNotFoundError(ruleset, detail="ruleset not found")
    logger.debug("Comparing against ruleset %s at %s", ruleset, path)
    return diff_files(included, engine.resolve_file(path).included_files())
