"""Per-line attribution of file dispositions."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True, order=True)
class FilteredMatch:
    """A file another line also matched but did not win."""

    path: Path
    winning_line: int


@dataclass
class AttributionTable:
    included: dict[int, list[Path]] = field(default_factory=dict)
    excluded: dict[int, list[Path]] = field(default_factory=dict)
    filtered: dict[int, list[FilteredMatch]] = field(default_factory=dict)

    def included_for(self, line: int) -> list[Path]:
        return self.included.get(line, [])

    def excluded_for(self, line: int) -> list[Path]:
        return self.excluded.get(line, [])

    def filtered_for(self, line: int) -> list[FilteredMatch]:
        return self.filtered.get(line, [])

    def lines(self) -> list[int]:
        return sorted({*self.included, *self.excluded, *self.filtered})

    def line_for(self, path: Path) -> Optional[int]:
        for table in (self.included, self.excluded):
            for line, paths in table.items():
                if path in paths:
                    return line
        return None


class AttributionBuilder:
    def __init__(self) -> None:
        self._included: dict[int, set[Path]] = defaultdict(set)
        self._excluded: dict[int, set[Path]] = defaultdict(set)
        self._filtered: dict[int, set[FilteredMatch]] = defaultdict(set)

    def include(self, line: int, path: Path) -> None:
        self._included[line].add(path)

    def exclude(self, line: int, path: Path) -> None:
        self._excluded[line].add(path)

    def supersede(self, line: int, path: Path, winning_line: int) -> None:
        self._filtered[line].add(FilteredMatch(path=path, winning_line=winning_line))

    def build(self) -> AttributionTable:
        return AttributionTable(
            included={line: sorted(paths) for line, paths in sorted(self._included.items())},
            excluded={line: sorted(paths) for line, paths in sorted(self._excluded.items())},
            filtered={line: sorted(matches) for line, matches in sorted(self._filtered.items())},
        )
