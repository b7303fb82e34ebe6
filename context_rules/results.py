from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from context_rules.attribution import AttributionTable
from context_rules.cache import CachePolicy
from context_rules.models import FileStatus, ResolutionWarning, ResolvedFile
from context_rules.rules.models import RuleEntry


@dataclass
class ResolutionResult:
    files: list[ResolvedFile] = field(default_factory=list)
    attribution: AttributionTable = field(default_factory=AttributionTable)
    cache_policy: CachePolicy = field(default_factory=CachePolicy)
    view_patterns: list[str] = field(default_factory=list)
    warnings: list[ResolutionWarning] = field(default_factory=list)
    entries: list[RuleEntry] = field(default_factory=list)

    def by_status(self, status: FileStatus) -> list[Path]:
        return [item.path for item in self.files if item.status == status]

    def hot_files(self) -> list[Path]:
        return self.by_status(FileStatus.INCLUDED_HOT)

    def cold_files(self) -> list[Path]:
        return self.by_status(FileStatus.INCLUDED_COLD)

    def included_files(self) -> list[Path]:
        return [item.path for item in self.files if item.status.is_included]

    def excluded_files(self) -> list[Path]:
        return self.by_status(FileStatus.EXCLUDED_BY_RULE)

    def ignored_entries(self) -> list[ResolvedFile]:
        return [item for item in self.files if item.status == FileStatus.IGNORED_BY_VCS]

    def file_for(self, path: Path) -> Optional[ResolvedFile]:
        for item in self.files:
            if item.path == path:
                return item
        return None

    def status_of(self, path: Path) -> Optional[FileStatus]:
        item = self.file_for(path)
        return item.status if item is not None else None

    def counts(self) -> dict[FileStatus, int]:
        counter = Counter(item.status for item in self.files)
        return {status: counter.get(status, 0) for status in FileStatus}
