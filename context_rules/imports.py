"""Expand aliases, ruleset imports and ``@default`` imports into plain rule entries."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Optional

from context_rules.aliases import AliasResolver
from context_rules.constants import DEFAULT_RULESET_NAME
from context_rules.errors import (
    AliasNotFoundError,
    ContextRulesError,
    ImportNotFoundError,
    InvalidConfigError,
    ParseError,
    RepositoryError,
    UnsafePathRejectedError,
)
from context_rules.models import ResolutionWarning, Section, WarningKind
from context_rules.remote import RepositoryProvider, remote_alias_to_url
from context_rules.rules.models import (
    AliasReference,
    DefaultImport,
    ItemKind,
    RemoteReference,
    RuleEntry,
    RuleItem,
    RulesDocument,
    RulesetImport,
)
from context_rules.rules.parser import entries_from_pattern, parse_rules_file
from context_rules.rules.repository import RulesRepository
from context_rules.safety import PathSafetyGate
from context_rules.utils import compact_home_path, normalize_path

logger = logging.getLogger(__name__)

_ERROR_KINDS: dict[type, WarningKind] = {
    AliasNotFoundError: WarningKind.ALIAS_NOT_FOUND,
    ImportNotFoundError: WarningKind.IMPORT_NOT_FOUND,
    InvalidConfigError: WarningKind.IMPORT_NOT_FOUND,
    ParseError: WarningKind.IMPORT_NOT_FOUND,
    UnsafePathRejectedError: WarningKind.UNSAFE_PATH,
    RepositoryError: WarningKind.REPOSITORY,
}


def warning_kind_for(error: ContextRulesError) -> WarningKind:
    for error_type, kind in _ERROR_KINDS.items():
        if isinstance(error, error_type):
            return kind
    return WarningKind.FILESYSTEM


@dataclass
class ExpansionContext:
    visited: set[Path] = field(default_factory=set)
    warnings: list[ResolutionWarning] = field(default_factory=list)
    view_patterns: list[str] = field(default_factory=list)

    def warn(self, kind: WarningKind, message: str, line: Optional[int], rule: Optional[str]) -> None:
        logger.warning("line %s: %s", line, message)
        self.warnings.append(ResolutionWarning(kind=kind, message=message, line=line, rule=rule))


@dataclass(frozen=True)
class _Scope:
    """Where an item sits: the directory ``@default`` paths resolve against,
    the project its relative patterns belong to, and the root-document line
    and section imported entries are attributed to."""

    base_dir: Path
    project_root: Optional[Path] = None
    line: Optional[int] = None
    section: Optional[Section] = None
    origin: Optional[Path] = None

    def attribute(self, entry: RuleEntry) -> RuleEntry:
        if self.line is None or self.section is None:
            return entry
        return entry.attributed_to(self.line, self.section)

    def line_for(self, item_line: int) -> int:
        return self.line if self.line is not None else item_line

    def rebase(self, pattern: str) -> str:
        if self.project_root is None or pattern.startswith("/"):
            return pattern
        root = self.project_root.as_posix()
        if pattern.startswith("../"):
            return os.path.normpath(f"{root}/{pattern}")
        if "/" in pattern:
            return f"{root}/{pattern}"
        return f"{root}/**/{pattern}"


class RuleExpander:
    def __init__(
        self,
        work_dir: Path,
        aliases: AliasResolver,
        safety: PathSafetyGate,
        repositories: Optional[RepositoryProvider] = None,
    ) -> None:
        self._work_dir = normalize_path(work_dir)
        self._aliases = aliases
        self._safety = safety
        self._repositories = repositories
        self._handlers: dict[ItemKind, Callable[..., list[RuleEntry]]] = {
            ItemKind.PATTERN: self._expand_pattern,
            ItemKind.ALIAS: self._expand_alias,
            ItemKind.REMOTE: self._expand_remote,
            ItemKind.RULESET_IMPORT: self._expand_ruleset_import,
            ItemKind.DEFAULT_IMPORT: self._expand_default_import,
        }

    def expand(
        self,
        document: RulesDocument,
        context: ExpansionContext,
        source_path: Optional[Path] = None,
    ) -> list[RuleEntry]:
        """Return the document's entries in evaluation order: hot, then cold."""
        base_dir = self._work_dir
        if source_path is not None:
            normalized = normalize_path(source_path)
            context.visited.add(normalized)
            base_dir = normalized.parent

        for view_rule in document.view_rules:
            context.view_patterns.append(self._resolve_view(view_rule, context))

        entries = self._expand_items(document.items, _Scope(base_dir=base_dir), context)
        hot = [entry for entry in entries if entry.section == Section.HOT]
        cold = [entry for entry in entries if entry.section == Section.COLD]
        return hot + cold

    def expand_item(self, item: RuleItem, context: ExpansionContext) -> list[RuleEntry]:
        return self._handlers[item.kind](item, _Scope(base_dir=self._work_dir), context)

    def _expand_items(
        self, items: list[RuleItem], scope: _Scope, context: ExpansionContext
    ) -> list[RuleEntry]:
        entries: list[RuleEntry] = []
        for item in items:
            entries.extend(self._handlers[item.kind](item, scope, context))
        return entries

    def _resolve_view(self, view_rule: str, context: ExpansionContext) -> str:
        if not view_rule.startswith("@"):
            return view_rule
        try:
            return self._aliases.resolve_line(view_rule)
        except AliasNotFoundError as exc:
            context.warn(WarningKind.ALIAS_NOT_FOUND, str(exc), None, view_rule)
            return view_rule

    def _expand_pattern(self, item: RuleEntry, scope: _Scope, context: ExpansionContext) -> list[RuleEntry]:
        rebased = scope.rebase(item.pattern)
        entry = replace(item, pattern=rebased) if rebased != item.pattern else item
        return [scope.attribute(entry)]

    def _entries_for(
        self,
        pattern: str,
        is_exclude: bool,
        item: AliasReference | RemoteReference,
        scope: _Scope,
    ) -> list[RuleEntry]:
        text = f"!{pattern}" if is_exclude else pattern
        entries = entries_from_pattern(
            text, item.section, item.source_line, item.directive, scope.origin
        )
        return [scope.attribute(entry) for entry in entries]

    def _expand_alias(self, item: AliasReference, scope: _Scope, context: ExpansionContext) -> list[RuleEntry]:
        try:
            root = self._safety.check_root(self._aliases.resolve(item.alias))
        except (AliasNotFoundError, UnsafePathRejectedError) as exc:
            context.warn(warning_kind_for(exc), str(exc), scope.line_for(item.source_line), item.raw)
            return []
        return self._entries_for(self._aliases.pattern_for(item, root), item.is_exclude, item, scope)

    def _checkout(self, url: str, version: Optional[str]) -> Path:
        if self._repositories is None:
            raise RepositoryError(url, "no repository provider configured")
        self._safety.allow(self._repositories.checkout_root)
        return self._safety.check_root(self._repositories.ensure(url, version))

    def _expand_remote(self, item: RemoteReference, scope: _Scope, context: ExpansionContext) -> list[RuleEntry]:
        try:
            root = self._checkout(item.url, item.version)
        except (RepositoryError, UnsafePathRejectedError) as exc:
            context.warn(warning_kind_for(exc), str(exc), scope.line_for(item.source_line), item.raw)
            return []
        pattern = f"{root.as_posix()}/{item.subpath}" if item.subpath else f"{root.as_posix()}/**"
        return self._entries_for(pattern, item.is_exclude, item, scope)

    def _expand_ruleset_import(
        self, item: RulesetImport, scope: _Scope, context: ExpansionContext
    ) -> list[RuleEntry]:
        line = scope.line_for(item.source_line)
        section = scope.section or item.section
        try:
            if item.is_remote:
                rule = remote_alias_to_url(item.alias)
                if rule is None:
                    raise AliasNotFoundError(item.alias, "malformed repository alias")
                root = self._checkout(rule.url, rule.version)
            else:
                root = self._safety.check_root(self._aliases.resolve(item.alias))

            rules_file = RulesRepository(root).find_ruleset(item.ruleset)
            if rules_file is None:
                if item.is_remote and item.ruleset == DEFAULT_RULESET_NAME:
                    entries = entries_from_pattern(f"{root.as_posix()}/**", section, line)
                    return [scope.attribute(entry) for entry in entries]
                raise ImportNotFoundError(root, f"ruleset '{item.ruleset}' not found")
            return self._expand_file(rules_file, root, line, section, context)
        except (
            AliasNotFoundError,
            ImportNotFoundError,
            RepositoryError,
            UnsafePathRejectedError,
        ) as exc:
            context.warn(warning_kind_for(exc), str(exc), line, f"@a:{item.identifier}")
            return []

    def _expand_default_import(
        self, item: DefaultImport, scope: _Scope, context: ExpansionContext
    ) -> list[RuleEntry]:
        line = scope.line_for(item.source_line)
        section = scope.section or item.section
        target = Path(os.path.expanduser(item.path))
        if not target.is_absolute():
            target = scope.base_dir / target
        try:
            root = self._safety.check_root(target)
            repository = RulesRepository(root)
            rules_file = repository.default_rules_path()
            if rules_file is None:
                raise ImportNotFoundError(
                    repository.descriptor_path, "no context.default_rules_path configured"
                )
            if not rules_file.is_file():
                raise ImportNotFoundError(rules_file)
            return self._expand_file(rules_file, root, line, section, context)
        except (ImportNotFoundError, InvalidConfigError, UnsafePathRejectedError) as exc:
            context.warn(warning_kind_for(exc), str(exc), line, f"@default: {item.path}")
            return []

    def _expand_file(
        self,
        rules_file: Path,
        project_root: Path,
        line: int,
        section: Section,
        context: ExpansionContext,
    ) -> list[RuleEntry]:
        key = normalize_path(rules_file)
        if key in context.visited:
            logger.debug("Skipping already expanded rules file %s", key)
            return []
        context.visited.add(key)

        try:
            document = parse_rules_file(key)
        except ParseError as exc:
            context.warn(
                WarningKind.IMPORT_NOT_FOUND,
                f"{compact_home_path(key)}: {exc}",
                line,
                None,
            )
            return []
        except OSError as exc:
            context.warn(WarningKind.FILESYSTEM, f"{compact_home_path(key)}: {exc}", line, None)
            return []

        for warning in document.warnings:
            context.warn(warning.kind, f"{compact_home_path(key)}: {warning}", line, warning.rule)
        for view_rule in document.view_rules:
            view = self._resolve_view(view_rule, context)
            context.view_patterns.append(
                _Scope(base_dir=key.parent, project_root=project_root).rebase(view)
            )

        nested = _Scope(
            base_dir=key.parent,
            project_root=project_root,
            line=line,
            section=section,
            origin=key,
        )
        return self._expand_items(document.items, nested, context)
