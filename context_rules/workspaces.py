import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from context_rules.constants import (
    DESCRIPTOR_WORKSPACES_KEY,
    GIT_DIRNAME,
    PROJECT_DESCRIPTOR_FILENAME,
    WORKSPACE_IGNORED_DIRS,
    WORKTREES_DIRNAME,
)
from context_rules.utils import is_under, normalize_path, read_yaml_safe

logger = logging.getLogger(__name__)


class ProjectKind(str, Enum):
    PROJECT = "project"
    ECOSYSTEM = "ecosystem"
    WORKTREE = "worktree"
    ECOSYSTEM_WORKTREE = "ecosystem_worktree"


@dataclass(frozen=True)
class ProjectNode:
    name: str
    path: Path
    depth: int = 0
    parent_ecosystem_path: Optional[Path] = None
    parent_project_path: Optional[Path] = None
    is_worktree: bool = False
    is_ecosystem: bool = False

    @property
    def kind(self) -> ProjectKind:
        if self.is_worktree:
            return ProjectKind.ECOSYSTEM_WORKTREE if self.is_ecosystem else ProjectKind.WORKTREE
        return ProjectKind.ECOSYSTEM if self.is_ecosystem else ProjectKind.PROJECT


@dataclass(frozen=True)
class ProjectMatch:
    root: Path
    ecosystem_root: Optional[Path] = None
    worktree_root: Optional[Path] = None


class ProjectRegistry(ABC):
    @abstractmethod
    def all_projects(self) -> list[ProjectNode]:
        raise NotImplementedError

    @property
    @abstractmethod
    def roots(self) -> list[Path]:
        """Directories that rules may reference through aliases and imports."""
        raise NotImplementedError

    def find_by_path(self, path: Path) -> Optional[ProjectNode]:
        normalized = normalize_path(path)
        containing = [node for node in self.all_projects() if is_under(normalized, node.path)]
        if not containing:
            return None
        return max(containing, key=lambda node: len(node.path.parts))

    def find_project(self, name_or_path: str) -> Optional[ProjectMatch]:
        if "/" in name_or_path or name_or_path.startswith(("~", ".")):
            node = self.find_by_path(Path(name_or_path))
        else:
            named = [node for node in self.all_projects() if node.name == name_or_path and not node.is_worktree]
            node = min(named, key=lambda item: item.depth) if named else None
        if node is None:
            return None
        if node.is_worktree and node.parent_project_path is not None:
            return ProjectMatch(
                root=node.parent_project_path,
                ecosystem_root=node.parent_ecosystem_path,
                worktree_root=node.path,
            )
        return ProjectMatch(root=node.path, ecosystem_root=node.parent_ecosystem_path)


class WorkspaceService:
    def is_project_dir(self, path: Path) -> bool:
        return (path / GIT_DIRNAME).exists() or (path / PROJECT_DESCRIPTOR_FILENAME).is_file()

    def declares_workspaces(self, path: Path) -> bool:
        payload, error = read_yaml_safe(path / PROJECT_DESCRIPTOR_FILENAME)
        if error is not None:
            logger.warning("Could not read %s: %s", path / PROJECT_DESCRIPTOR_FILENAME, error)
            return False
        return isinstance(payload, dict) and bool(payload.get(DESCRIPTOR_WORKSPACES_KEY))

    def discover_git_repos(self, workspace_path: Path) -> list[Path]:
        return sorted({node.path for node in self.discover_projects(workspace_path) if not node.is_worktree})

    def discover_projects(self, workspace_path: Path) -> list[ProjectNode]:
        root = normalize_path(workspace_path)
        if not root.is_dir():
            return []
        if self.is_project_dir(root):
            nodes = self._project_nodes(root, depth=0, parent_ecosystem=None)
        else:
            nodes = self._child_nodes(root, depth=0, parent_ecosystem=None)
        return sorted(nodes, key=lambda node: (node.depth, str(node.path)))

    def _child_project_dirs(self, directory: Path) -> list[Path]:
        found: list[Path] = []
        for current, dir_names, _ in os.walk(str(directory), topdown=True):
            current_path = Path(current)
            if current_path != directory and self.is_project_dir(current_path):
                found.append(current_path)
                dir_names[:] = []
                continue
            dir_names[:] = [
                name
                for name in sorted(dir_names)
                if not name.startswith(".") and name not in WORKSPACE_IGNORED_DIRS
            ]
        return found

    def _child_nodes(
        self, directory: Path, depth: int, parent_ecosystem: Optional[Path]
    ) -> list[ProjectNode]:
        nodes: list[ProjectNode] = []
        for child in self._child_project_dirs(directory):
            nodes.extend(self._project_nodes(child, depth, parent_ecosystem))
        return nodes

    def _project_nodes(
        self,
        path: Path,
        depth: int,
        parent_ecosystem: Optional[Path],
        parent_project: Optional[Path] = None,
    ) -> list[ProjectNode]:
        children = self._child_nodes(path, depth + 1, parent_ecosystem=path)
        is_ecosystem = bool(children) or self.declares_workspaces(path)
        node = ProjectNode(
            name=path.name,
            path=path,
            depth=depth,
            parent_ecosystem_path=parent_ecosystem,
            parent_project_path=parent_project,
            is_worktree=parent_project is not None,
            is_ecosystem=is_ecosystem,
        )
        nodes = [node, *children]
        if parent_project is None:
            nodes.extend(self._worktree_nodes(path, depth, parent_ecosystem))
        return nodes

    def _worktree_nodes(
        self, project: Path, depth: int, parent_ecosystem: Optional[Path]
    ) -> list[ProjectNode]:
        worktrees_dir = project / WORKTREES_DIRNAME
        if not worktrees_dir.is_dir():
            return []
        nodes: list[ProjectNode] = []
        for child in sorted(worktrees_dir.iterdir()):
            if child.is_dir() and not child.name.startswith("."):
                nodes.extend(
                    self._project_nodes(child, depth + 1, parent_ecosystem, parent_project=project)
                )
        return nodes


class WorkspaceRegistry(ProjectRegistry):
    def __init__(self, nodes: Iterable[ProjectNode], workspace_roots: Iterable[Path] = ()) -> None:
        self._nodes = list(nodes)
        self._workspace_roots = [normalize_path(root) for root in workspace_roots]

    @classmethod
    def discover(
        cls, workspace_roots: Iterable[Path], service: Optional[WorkspaceService] = None
    ) -> "WorkspaceRegistry":
        service = service or WorkspaceService()
        roots = list(workspace_roots)
        nodes: list[ProjectNode] = []
        seen: set[Path] = set()
        for root in roots:
            for node in service.discover_projects(root):
                if node.path in seen:
                    continue
                seen.add(node.path)
                nodes.append(node)
        logger.debug("Discovered %d projects in %d workspaces", len(nodes), len(roots))
        return cls(nodes, roots)

    def all_projects(self) -> list[ProjectNode]:
        return list(self._nodes)

    @property
    def roots(self) -> list[Path]:
        return [*self._workspace_roots, *(node.path for node in self._nodes)]
