"""Version-control ignore oracles used to prune the filesystem walk."""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import pathspec

from context_rules.constants import GIT_DIRNAME
from context_rules.utils import is_under, normalize_path, relative_posix

logger = logging.getLogger(__name__)

GITIGNORE_FILENAME = ".gitignore"


class IgnoreOracle(ABC):
    @abstractmethod
    def is_directory_ignored(self, path: Path) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_file_ignored(self, path: Path) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_file_tracked(self, path: Path) -> bool:
        raise NotImplementedError


class NullIgnoreOracle(IgnoreOracle):
    def is_directory_ignored(self, path: Path) -> bool:
        return False

    def is_file_ignored(self, path: Path) -> bool:
        return False

    def is_file_tracked(self, path: Path) -> bool:
        return False


@dataclass
class _RepositoryIgnores:
    root: Path
    ignored_dirs: set[Path] = field(default_factory=set)
    ignored_files: set[Path] = field(default_factory=set)
    tracked: set[Path] = field(default_factory=set)

    def has_ignored_ancestor(self, path: Path) -> bool:
        for parent in path.parents:
            if parent in self.ignored_dirs:
                return True
            if parent == self.root:
                return False
        return False


class GitIgnoreOracle(IgnoreOracle):
    """Asks ``git`` once per repository for its ignored and tracked paths."""

    def __init__(self, git_binary: str = "git") -> None:
        self._git = git_binary
        self._repo_roots: dict[Path, Optional[Path]] = {}
        self._repositories: dict[Path, Optional[_RepositoryIgnores]] = {}

    def _find_repo_root(self, directory: Path) -> Optional[Path]:
        if directory in self._repo_roots:
            return self._repo_roots[directory]
        found: Optional[Path] = None
        for candidate in (directory, *directory.parents):
            if (candidate / GIT_DIRNAME).exists():
                found = candidate
                break
        self._repo_roots[directory] = found
        return found

    def _git_lines(self, root: Path, args: Sequence[str]) -> list[str]:
        completed = subprocess.run(
            [self._git, "-C", str(root), *args],
            capture_output=True,
            check=False,
        )
        if completed.returncode != 0:
            detail = completed.stderr.decode("utf-8", errors="replace").strip()
            raise OSError(f"git {' '.join(args)} failed: {detail}")
        output = completed.stdout.decode("utf-8", errors="replace")
        return [line for line in output.split("\0") if line]

    def _load(self, root: Path) -> Optional[_RepositoryIgnores]:
        state = _RepositoryIgnores(root=root)
        try:
            for entry in self._git_lines(
                root,
                ["ls-files", "-z", "--others", "--ignored", "--exclude-standard", "--directory"],
            ):
                if entry.endswith("/"):
                    state.ignored_dirs.add(root / entry.rstrip("/"))
                else:
                    state.ignored_files.add(root / entry)
            state.tracked = {root / entry for entry in self._git_lines(root, ["ls-files", "-z"])}
        except OSError as exc:
            logger.warning("Could not read git ignore state for %s: %s", root, exc)
            return None
        logger.debug(
            "git ignore state for %s: %d dirs, %d files, %d tracked",
            root,
            len(state.ignored_dirs),
            len(state.ignored_files),
            len(state.tracked),
        )
        return state

    def _repository_for(self, directory: Path) -> Optional[_RepositoryIgnores]:
        root = self._find_repo_root(normalize_path(directory))
        if root is None:
            return None
        if root not in self._repositories:
            self._repositories[root] = self._load(root)
        return self._repositories[root]

    def is_directory_ignored(self, path: Path) -> bool:
        normalized = normalize_path(path)
        state = self._repository_for(normalized)
        if state is None:
            return False
        return normalized in state.ignored_dirs or state.has_ignored_ancestor(normalized)

    def is_file_ignored(self, path: Path) -> bool:
        normalized = normalize_path(path)
        state = self._repository_for(normalized.parent)
        if state is None:
            return False
        return normalized in state.ignored_files or state.has_ignored_ancestor(normalized)

    def is_file_tracked(self, path: Path) -> bool:
        normalized = normalize_path(path)
        state = self._repository_for(normalized.parent)
        return state is not None and normalized in state.tracked


class PathspecIgnoreOracle(IgnoreOracle):
    """Evaluates nested ``.gitignore`` files below ``root`` without git."""

    def __init__(self, root: Path, extra_patterns: Sequence[str] = ()) -> None:
        self._root = normalize_path(root)
        self._extra = pathspec.GitIgnoreSpec.from_lines(list(extra_patterns)) if extra_patterns else None
        self._specs: dict[Path, Optional[pathspec.GitIgnoreSpec]] = {}
        self._dir_results: dict[Path, bool] = {}

    def _spec_for(self, directory: Path) -> Optional[pathspec.GitIgnoreSpec]:
        if directory not in self._specs:
            gitignore = directory / GITIGNORE_FILENAME
            spec = None
            if gitignore.is_file():
                lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
                spec = pathspec.GitIgnoreSpec.from_lines(lines)
            self._specs[directory] = spec
        return self._specs[directory]

    def _matches(self, path: Path, is_dir: bool) -> bool:
        suffix = "/" if is_dir else ""
        if self._extra is not None and self._extra.match_file(relative_posix(path, self._root) + suffix):
            return True
        directory = path.parent
        while True:
            spec = self._spec_for(directory)
            if spec is not None and spec.match_file(relative_posix(path, directory) + suffix):
                return True
            if directory == self._root or directory == directory.parent:
                return False
            directory = directory.parent

    def is_directory_ignored(self, path: Path) -> bool:
        normalized = normalize_path(path)
        if normalized == self._root or not is_under(normalized, self._root):
            return False
        if normalized not in self._dir_results:
            self._dir_results[normalized] = self.is_directory_ignored(
                normalized.parent
            ) or self._matches(normalized, is_dir=True)
        return self._dir_results[normalized]

    def is_file_ignored(self, path: Path) -> bool:
        normalized = normalize_path(path)
        if not is_under(normalized, self._root):
            return False
        return self.is_directory_ignored(normalized.parent) or self._matches(normalized, is_dir=False)

    def is_file_tracked(self, path: Path) -> bool:
        return False


def default_ignore_oracle() -> IgnoreOracle:
    return GitIgnoreOracle()
