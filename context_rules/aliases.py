"""Resolve ``@alias:`` references to project directories."""

import logging
from pathlib import Path
from typing import Callable, Optional

from context_rules.errors import AliasNotFoundError
from context_rules.rules.models import AliasReference
from context_rules.rules.parser import parse_rules
from context_rules.utils import normalize_path
from context_rules.workspaces import ProjectNode, ProjectRegistry

logger = logging.getLogger(__name__)

MAX_ALIAS_COMPONENTS = 3


def _first(nodes: list[ProjectNode], predicate: Callable[[ProjectNode], bool]) -> Optional[ProjectNode]:
    for node in nodes:
        if predicate(node):
            return node
    return None


class AliasResolver:
    def __init__(self, registry: Optional[ProjectRegistry], work_dir: Path) -> None:
        self._registry = registry
        self._work_dir = normalize_path(work_dir)

    def _named(self, name: str) -> list[ProjectNode]:
        if self._registry is None:
            return []
        return [node for node in self._registry.all_projects() if node.name == name]

    def resolve(self, alias: str) -> Path:
        components = alias.split(":")
        if len(components) > MAX_ALIAS_COMPONENTS or not all(components):
            raise AliasNotFoundError(alias, "expected 1 to 3 colon-separated names")
        if self._registry is None:
            raise AliasNotFoundError(alias, "no project registry configured")

        if len(components) == 1:
            node = self._resolve_single(components[0])
        elif len(components) == 2:
            node = self._resolve_pair(*components)
        else:
            node = self._resolve_triple(*components)
        if node is None:
            raise AliasNotFoundError(alias)
        logger.debug("alias %s -> %s", alias, node.path)
        return node.path

    def _resolve_single(self, name: str) -> Optional[ProjectNode]:
        matches = [node for node in self._named(name) if not node.is_worktree]
        if not matches:
            return None

        current = self._registry.find_by_path(self._work_dir) if self._registry else None
        if current is not None:
            if current.is_ecosystem:
                child = _first(matches, lambda node: node.parent_ecosystem_path == current.path)
                if child is not None:
                    return child
            if current.parent_ecosystem_path is not None:
                sibling = _first(
                    matches, lambda node: node.parent_ecosystem_path == current.parent_ecosystem_path
                )
                if sibling is not None:
                    return sibling

        top_level = _first(matches, lambda node: node.depth == 0)
        if top_level is not None:
            return top_level
        return min(matches, key=lambda node: node.depth)

    def _resolve_pair(self, first: str, second: str) -> Optional[ProjectNode]:
        for ecosystem in self._named(first):
            if ecosystem.is_worktree or not ecosystem.is_ecosystem:
                continue
            child = _first(
                self._named(second),
                lambda node: not node.is_worktree and node.parent_ecosystem_path == ecosystem.path,
            )
            if child is not None:
                return child

        for project in self._named(first):
            if project.is_worktree:
                continue
            worktree = _first(
                self._named(second),
                lambda node: node.is_worktree and node.parent_project_path == project.path,
            )
            if worktree is not None:
                return worktree

        for worktree in self._named(first):
            if not worktree.is_worktree:
                continue
            child = _first(
                self._named(second),
                lambda node: node.parent_ecosystem_path == worktree.path,
            )
            if child is not None:
                return child
        return None

    def _resolve_triple(self, first: str, second: str, third: str) -> Optional[ProjectNode]:
        for ecosystem in self._named(first):
            if ecosystem.is_worktree or not ecosystem.is_ecosystem:
                continue
            for project in self._named(second):
                if project.parent_ecosystem_path == ecosystem.path and not project.is_worktree:
                    worktree = _first(
                        self._named(third),
                        lambda node: node.is_worktree and node.parent_project_path == project.path,
                    )
                    if worktree is not None:
                        return worktree
                if project.is_worktree and project.parent_project_path == ecosystem.path:
                    child = _first(
                        self._named(third),
                        lambda node: node.parent_ecosystem_path == project.path,
                    )
                    if child is not None:
                        return child
        return None

    def pattern_for(self, reference: AliasReference, root: Path) -> str:
        base = root.as_posix()
        subpath = reference.subpath
        if not subpath:
            return f"{base}/**" if root.is_dir() else base
        if subpath.startswith("/"):
            return f"{base}{subpath}"
        return f"{base}/{subpath}"

    def resolve_line(self, line: str) -> str:
        """Rewrite a single alias line into a plain pattern line.

        The exclusion prefix and any search directive are preserved; other
        lines are returned unchanged.
        """
        document = parse_rules(line)
        references = [item for item in document.items if isinstance(item, AliasReference)]
        if not references:
            return line
        reference = references[0]
        text = self.pattern_for(reference, self.resolve(reference.alias))
        if reference.is_exclude:
            text = f"!{text}"
        if reference.directive is not None:
            text = f"{text} {reference.directive.render()}"
        return text
