"""Single-pass filesystem walk with ignored-directory pruning."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from context_rules.constants import (
    ALWAYS_PRUNED_DIRS,
    BINARY_CONTROL_RATIO,
    BINARY_EXTENSIONS,
    BINARY_SNIFF_BYTES,
    EXECUTABLE_MAGIC,
    TEXT_EXTENSIONS,
    TEXT_FILENAMES,
    WORKTREES_DIRNAME,
)
from context_rules.errors import FilesystemError
from context_rules.ignore import IgnoreOracle

logger = logging.getLogger(__name__)

_TEXT_CONTROL_BYTES = frozenset(b"\t\n\r\f\b\x1b")


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    ignored: bool = False
    is_directory: bool = False


def is_binary_file(path: Path) -> bool:
    """Guess whether ``path`` is binary from its name and first bytes.

    Raises ``OSError`` when the file cannot be read.
    """
    suffix = path.suffix.lower()
    if suffix in BINARY_EXTENSIONS:
        return True
    if suffix in TEXT_EXTENSIONS or path.name.lower() in TEXT_FILENAMES:
        return False

    with path.open("rb") as handle:
        head = handle.read(BINARY_SNIFF_BYTES)
    if not head:
        return False
    if any(head.startswith(magic) for magic in EXECUTABLE_MAGIC):
        return True
    if b"\0" in head:
        return True
    control = sum(1 for byte in head if byte < 32 and byte not in _TEXT_CONTROL_BYTES)
    return control / len(head) > BINARY_CONTROL_RATIO


class FileWalker:
    def __init__(
        self,
        oracle: IgnoreOracle,
        include_worktrees: bool = False,
        on_error: Optional[Callable[[FilesystemError], None]] = None,
    ) -> None:
        self._oracle = oracle
        self._include_worktrees = include_worktrees
        self._on_error = on_error

    def _report(self, error: OSError) -> None:
        path = Path(error.filename) if error.filename else Path(".")
        failure = FilesystemError(path, error.strerror or str(error))
        logger.warning("%s", failure)
        if self._on_error is not None:
            self._on_error(failure)

    def _prunes(self, name: str, inside_worktree: bool) -> bool:
        if name in ALWAYS_PRUNED_DIRS:
            return True
        return name == WORKTREES_DIRNAME and not (self._include_worktrees or inside_worktree)

    def walk(self, root: Path) -> Iterator[WalkEntry]:
        """Yield every file under ``root`` plus one entry per ignored directory.

        Ignored directories are never descended into.
        """
        if root.is_file():
            yield WalkEntry(root, ignored=self._file_ignored(root))
            return
        if self._oracle.is_directory_ignored(root):
            yield WalkEntry(root, ignored=True, is_directory=True)
            return

        inside_worktree = WORKTREES_DIRNAME in root.parts
        for current, dir_names, file_names in os.walk(str(root), topdown=True, onerror=self._report):
            current_path = Path(current)
            kept: list[str] = []
            for name in sorted(dir_names):
                if self._prunes(name, inside_worktree):
                    continue
                directory = current_path / name
                if directory.is_symlink():
                    continue
                if self._oracle.is_directory_ignored(directory):
                    yield WalkEntry(directory, ignored=True, is_directory=True)
                    continue
                kept.append(name)
            dir_names[:] = kept

            for name in sorted(file_names):
                path = current_path / name
                yield WalkEntry(path, ignored=self._file_ignored(path))

    def _file_ignored(self, path: Path) -> bool:
        return self._oracle.is_file_ignored(path) and not self._oracle.is_file_tracked(path)
