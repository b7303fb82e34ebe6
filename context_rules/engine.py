"""Turn rules text into a classified, attributed set of files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from context_rules.aliases import AliasResolver
from context_rules.attribution import AttributionBuilder
from context_rules.constants import (
    ALWAYS_PRUNED_DIRS,
    GLOBAL_DIRECTIVE_PREFIXES,
    SECTION_SEPARATOR,
    WORKTREES_DIRNAME,
)
from context_rules.directives import DirectiveFilter
from context_rules.errors import FilesystemError, UnsafePathRejectedError
from context_rules.ignore import IgnoreOracle, default_ignore_oracle
from context_rules.imports import ExpansionContext, RuleExpander
from context_rules.models import (
    SECTION_STATUS,
    FileStatus,
    ResolutionWarning,
    ResolvedFile,
    WarningKind,
)
from context_rules.patterns import has_glob, match_pattern, pattern_error, static_prefix
from context_rules.remote import RepositoryProvider
from context_rules.results import ResolutionResult
from context_rules.rules.models import RuleEntry, RulesDocument
from context_rules.rules.parser import parse_rules
from context_rules.rules.repository import RulesRepository
from context_rules.safety import PathSafetyGate
from context_rules.utils import compact_home_path, is_under, normalize_path, relative_posix
from context_rules.walker import FileWalker, is_binary_file
from context_rules.workspaces import ProjectRegistry

logger = logging.getLogger(__name__)

_VIEW_PREFIX_RE = re.compile(r"^@(?:view|v):\s*")


@dataclass
class _Evaluation:
    """Mutable state of one classification pass."""

    entries: list[RuleEntry]
    include_binary: bool
    warnings: list[ResolutionWarning]
    forced_files: set[Path] = field(default_factory=set)
    files: dict[Path, ResolvedFile] = field(default_factory=dict)
    attribution: AttributionBuilder = field(default_factory=AttributionBuilder)
    directives: DirectiveFilter = field(default_factory=DirectiveFilter)

    def warn(self, kind: WarningKind, message: str, line: Optional[int] = None, rule: Optional[str] = None) -> None:
        logger.warning("%s", message)
        self.warnings.append(ResolutionWarning(kind=kind, message=message, line=line, rule=rule))


class ResolutionEngine:
    def __init__(
        self,
        work_dir: Path,
        registry: Optional[ProjectRegistry] = None,
        ignore_oracle: Optional[IgnoreOracle] = None,
        repositories: Optional[RepositoryProvider] = None,
    ) -> None:
        self._work_dir = normalize_path(work_dir)
        self._registry = registry
        self._oracle = ignore_oracle or default_ignore_oracle()
        self._repositories = repositories

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    def _safety_gate(self) -> PathSafetyGate:
        roots: list[Path] = []
        if self._registry is not None:
            roots.extend(self._registry.roots)
        if self._repositories is not None:
            roots.append(self._repositories.checkout_root)
        return PathSafetyGate(self._work_dir, roots)

    def _expander(self, safety: PathSafetyGate) -> RuleExpander:
        aliases = AliasResolver(self._registry, self._work_dir)
        return RuleExpander(self._work_dir, aliases, safety, self._repositories)

    def resolve(self, rules_text: str, source_path: Optional[Path] = None) -> ResolutionResult:
        """Resolve a rules document against the filesystem.

        Raises ``ParseError`` when the document itself is malformed; every
        other problem is reported as a warning on the result.
        """
        document = parse_rules(rules_text, origin=source_path)
        safety = self._safety_gate()
        context = ExpansionContext(warnings=list(document.warnings))
        entries = self._expander(safety).expand(document, context, source_path)

        evaluation = _Evaluation(
            entries=[],
            include_binary=document.include_binary,
            warnings=context.warnings,
        )
        evaluation.entries = self._prepare(entries, safety, evaluation)
        self._classify_all(evaluation)

        result = ResolutionResult(
            files=sorted(evaluation.files.values(), key=lambda item: item.path),
            attribution=evaluation.attribution.build(),
            cache_policy=document.cache_policy,
            view_patterns=context.view_patterns,
            warnings=evaluation.warnings,
            entries=evaluation.entries,
        )
        logger.debug(
            "Resolved %d entries into %d hot and %d cold files",
            len(result.entries),
            len(result.hot_files()),
            len(result.cold_files()),
        )
        return result

    def resolve_file(self, rules_path: Path) -> ResolutionResult:
        return self.resolve(rules_path.read_text(encoding="utf-8"), source_path=rules_path)

    def resolve_active(self, active_source: Optional[str] = None) -> ResolutionResult:
        text, path = RulesRepository(self._work_dir).load_active_rules(active_source)
        return self.resolve(text, source_path=path)

    def resolve_single_line(
        self,
        pattern: str,
        context_text: Optional[str] = None,
        line_number: int = 0,
    ) -> list[Path]:
        """Files a single rule line would include.

        Lines of ``context_text`` before ``line_number`` decide the section
        and the active global search directive.
        """
        line = _VIEW_PREFIX_RE.sub("", pattern.strip())
        if not line or line.startswith(("#", "!")):
            return []

        preamble: list[str] = []
        if context_text and line_number > 0:
            for raw in context_text.splitlines()[: line_number - 1]:
                stripped = raw.strip()
                if stripped == SECTION_SEPARATOR or stripped.startswith(GLOBAL_DIRECTIVE_PREFIXES):
                    preamble.append(stripped)
        target_line = len(preamble) + 1
        document: RulesDocument = parse_rules("\n".join([*preamble, line]))

        safety = self._safety_gate()
        expander = self._expander(safety)
        context = ExpansionContext()
        entries: list[RuleEntry] = []
        for item in document.items:
            if item.source_line == target_line:
                entries.extend(expander.expand_item(item, context))

        evaluation = _Evaluation(
            entries=[],
            include_binary=document.include_binary,
            warnings=context.warnings,
        )
        evaluation.entries = self._prepare(
            [entry for entry in entries if not entry.is_exclude], safety, evaluation
        )
        self._classify_all(evaluation)
        return sorted(
            item.path for item in evaluation.files.values() if item.status.is_included
        )

    def _absolute_for(self, pattern: str) -> Path:
        if pattern.startswith("/"):
            return Path(pattern)
        return self._work_dir / pattern

    def _prepare(
        self, entries: list[RuleEntry], safety: PathSafetyGate, evaluation: _Evaluation
    ) -> list[RuleEntry]:
        prepared: list[RuleEntry] = []
        reported: set[str] = set()
        for entry in entries:
            if entry.is_absolute or entry.is_parent_relative:
                try:
                    safety.check_pattern(entry.pattern)
                except UnsafePathRejectedError as exc:
                    evaluation.warn(WarningKind.UNSAFE_PATH, str(exc), entry.source_line, entry.render())
                    continue

            error = pattern_error(entry.pattern)
            if error is not None:
                if entry.pattern not in reported:
                    reported.add(entry.pattern)
                    evaluation.warn(
                        WarningKind.INVALID_PATTERN,
                        f"pattern {entry.pattern!r} can never match ({error})",
                        entry.source_line,
                        entry.render(),
                    )
                continue

            if entry.is_absolute:
                entry = self._canonical_absolute(entry)

            if not has_glob(entry.pattern):
                candidate = self._absolute_for(entry.pattern.rstrip("/") or "/")
                if candidate.is_dir() and not (entry.is_exclude and entry.is_floating):
                    entry = replace(entry, pattern=f"{entry.pattern.rstrip('/')}/**")
                elif candidate.is_file() and not entry.is_exclude:
                    evaluation.forced_files.add(normalize_path(candidate))
            prepared.append(entry)
        return prepared

    def _canonical_absolute(self, entry: RuleEntry) -> RuleEntry:
        base = static_prefix(entry.pattern)
        if not base or not Path(base).exists():
            return entry
        canonical = normalize_path(base).as_posix()
        if canonical == base:
            return entry
        return replace(entry, pattern=f"{canonical}{entry.pattern[len(base):]}")

    def _walk_roots(self, entries: list[RuleEntry]) -> list[Path]:
        roots = [self._work_dir]
        for entry in entries:
            if entry.is_exclude or not (entry.is_absolute or entry.is_parent_relative):
                continue
            base = normalize_path(self._absolute_for(static_prefix(entry.pattern) or "/"))
            if base.is_file():
                base = base.parent
            if base.is_dir():
                roots.append(base)

        selected: list[Path] = []
        for root in sorted(set(roots), key=lambda item: len(item.parts)):
            if any(self._covered_by(root, walked) for walked in selected):
                continue
            selected.append(root)
        return selected

    def _covered_by(self, root: Path, walked: Path) -> bool:
        if not is_under(root, walked):
            return False
        between = root.relative_to(walked).parts
        return not any(part in ALWAYS_PRUNED_DIRS or part == WORKTREES_DIRNAME for part in between)

    def _classify_all(self, evaluation: _Evaluation) -> None:
        include_worktrees = any(
            WORKTREES_DIRNAME in entry.pattern for entry in evaluation.entries if not entry.is_exclude
        )

        def report(error: FilesystemError) -> None:
            evaluation.warnings.append(
                ResolutionWarning(kind=WarningKind.FILESYSTEM, message=str(error))
            )

        walker = FileWalker(self._oracle, include_worktrees=include_worktrees, on_error=report)
        seen: set[Path] = set()
        for root in self._walk_roots(evaluation.entries):
            for walked in walker.walk(root):
                if walked.path in seen:
                    continue
                seen.add(walked.path)
                if walked.ignored and walked.path not in evaluation.forced_files:
                    evaluation.files[walked.path] = ResolvedFile(
                        walked.path, FileStatus.IGNORED_BY_VCS, is_directory=walked.is_directory
                    )
                    continue
                self._classify_file(walked.path, evaluation)

        for forced in sorted(evaluation.forced_files - seen):
            self._classify_file(forced, evaluation)

    def _classify_file(self, path: Path, evaluation: _Evaluation) -> None:
        relative = relative_posix(path, self._work_dir)
        is_external = relative == ".." or relative.startswith("../")
        absolute = path.as_posix()
        display = absolute if is_external else relative

        winners: list[RuleEntry] = []
        for entry in evaluation.entries:
            if not entry.is_exclude and entry.is_floating and is_external:
                continue
            target = absolute if entry.is_absolute else relative
            if not match_pattern(entry.pattern, target):
                continue
            if not entry.is_exclude and entry.directive is not None:
                try:
                    passed = evaluation.directives.passes(entry.directive, path, display)
                except FilesystemError as exc:
                    evaluation.warn(WarningKind.FILESYSTEM, str(exc), entry.source_line, entry.render())
                    return
                if not passed:
                    continue
            winners.append(entry)

        inclusions = [entry for entry in winners if not entry.is_exclude]
        if not inclusions:
            evaluation.files[path] = ResolvedFile(path, FileStatus.OMITTED_NO_MATCH)
            return

        last = winners[-1]
        if last.is_exclude:
            evaluation.files[path] = ResolvedFile(path, FileStatus.EXCLUDED_BY_RULE, last.source_line)
            evaluation.attribution.exclude(last.source_line, path)
            return

        if not evaluation.include_binary:
            try:
                binary = is_binary_file(path)
            except OSError as exc:
                evaluation.warn(
                    WarningKind.FILESYSTEM,
                    f"Cannot read {compact_home_path(path)}: {exc.strerror or exc}",
                )
                return
            if binary:
                evaluation.files[path] = ResolvedFile(path, FileStatus.OMITTED_NO_MATCH)
                return

        evaluation.files[path] = ResolvedFile(path, SECTION_STATUS[last.section], last.source_line)
        evaluation.attribution.include(last.source_line, path)
        for entry in inclusions:
            if entry.source_line != last.source_line:
                evaluation.attribution.supersede(entry.source_line, path, last.source_line)
