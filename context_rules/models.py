from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class Section(str, Enum):
    HOT = "hot"
    COLD = "cold"


class FileStatus(str, Enum):
    INCLUDED_HOT = "included_hot"
    INCLUDED_COLD = "included_cold"
    EXCLUDED_BY_RULE = "excluded_by_rule"
    IGNORED_BY_VCS = "ignored_by_vcs"
    OMITTED_NO_MATCH = "omitted_no_match"

    @property
    def is_included(self) -> bool:
        return self in (FileStatus.INCLUDED_HOT, FileStatus.INCLUDED_COLD)


SECTION_STATUS = {
    Section.HOT: FileStatus.INCLUDED_HOT,
    Section.COLD: FileStatus.INCLUDED_COLD,
}


class WarningKind(str, Enum):
    ALIAS_NOT_FOUND = "alias_not_found"
    IMPORT_NOT_FOUND = "import_not_found"
    UNSAFE_PATH = "unsafe_path"
    INVALID_DIRECTIVE = "invalid_directive"
    INVALID_PATTERN = "invalid_pattern"
    REPOSITORY = "repository"
    FILESYSTEM = "filesystem"


@dataclass(frozen=True)
class ResolutionWarning:
    kind: WarningKind
    message: str
    line: Optional[int] = None
    rule: Optional[str] = None

    def __str__(self) -> str:
        location = f"line {self.line}: " if self.line is not None else ""
        return f"{location}{self.message}"


@dataclass(frozen=True)
class ResolvedFile:
    path: Path
    status: FileStatus
    winning_line: Optional[int] = None
    is_directory: bool = False

    def as_dict(self) -> dict:
        return {
            "path": str(self.path),
            "status": self.status.value,
            "winning_line": self.winning_line,
            "is_directory": self.is_directory,
        }
