"""Parse rules documents into typed, line-numbered items."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from context_rules.cache import parse_duration
from context_rules.constants import (
    BINARY_EXCLUDE_PATTERN,
    BINARY_INCLUDE_PATTERN,
    SECTION_SEPARATOR,
)
from context_rules.errors import ParseError
from context_rules.models import ResolutionWarning, Section, WarningKind
from context_rules.remote import is_remote_rule, parse_git_alias, parse_git_rule
from context_rules.rules.models import (
    AliasReference,
    DefaultImport,
    DirectiveKind,
    RemoteReference,
    RuleEntry,
    RulesDocument,
    RulesetImport,
    SearchDirective,
)

logger = logging.getLogger(__name__)

_INLINE_DIRECTIVE_RE = re.compile(r"\s@(find|grep):\s*")
_GLOBAL_DIRECTIVE_RE = re.compile(r"^@(find|grep):\s*(.*)$")
_VIEW_RE = re.compile(r"^@(?:view|v):\s*(.*)$")
_DEFAULT_RE = re.compile(r"^@default:\s*(.*)$")
_ALIAS_PREFIX_RE = re.compile(r"^(!?)\s*@(?:alias|a):")
_ALIAS_RE = re.compile(
    r"^(?P<exclude>!?)\s*@(?:alias|a):(?P<alias>[^/\s@*?\[]+)(?P<subpath>/.*|[*?\[].*)?$"
)
_IMPORT_RE = re.compile(r"^@(?:alias|a):(?P<alias>\S+?)::(?P<ruleset>\S*)$")
_EXPIRE_RE = re.compile(r"^@expire-time(?:\s+(.*))?$")
_UNKNOWN_DIRECTIVE_RE = re.compile(r"^!?@[\w-]+:")

_FLAG_DIRECTIVES = {
    "@freeze-cache": "freeze_cache",
    "@no-expire": "no_expire",
    "@disable-cache": "disable_cache",
}


def parse_quoted(text: str) -> Optional[str]:
    value = text.strip()
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return None
    return value[1:-1]


def parse_search_directive(line: str) -> tuple[str, Optional[SearchDirective], bool]:
    """Split ``base @find: "query"`` into its base pattern and directive.

    Returns ``(base, directive, ok)``. ``ok`` is false when a directive
    marker is present but its query is not a quoted string; the caller then
    keeps the whole line as a literal pattern.
    """
    match = _INLINE_DIRECTIVE_RE.search(line)
    if match is None:
        return line, None, True

    query = parse_quoted(line[match.end():])
    if query is None:
        return line, None, False
    base = line[: match.start()].strip()
    return base, SearchDirective(kind=DirectiveKind(match.group(1)), query=query), True


def split_by_comma(text: str) -> list[str]:
    """Split on commas that are not nested inside braces."""
    parts: list[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(text[start:index])
            start = index + 1
    parts.append(text[start:])
    return parts


def expand_braces(pattern: str) -> list[str]:
    """Shell-style brace expansion, recursive; unmatched braces are literal."""
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    end = -1
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index
                break
    if end == -1:
        return [pattern]

    prefix = pattern[:start]
    suffix = pattern[end + 1:]
    results: list[str] = []
    for option in split_by_comma(pattern[start + 1:end]):
        results.extend(expand_braces(f"{prefix}{option}{suffix}"))
    return results


def entries_from_pattern(
    text: str,
    section: Section,
    line: int,
    directive: Optional[SearchDirective] = None,
    origin: Optional[Path] = None,
) -> list[RuleEntry]:
    entries: list[RuleEntry] = []
    for expanded in expand_braces(text):
        is_exclude = expanded.startswith("!")
        pattern = expanded[1:].strip() if is_exclude else expanded
        while pattern.startswith("./"):
            pattern = pattern[2:]
        if not pattern:
            continue
        entries.append(
            RuleEntry(
                pattern=pattern,
                is_exclude=is_exclude,
                section=section,
                source_line=line,
                directive=directive,
                origin=origin,
                origin_line=line if origin is not None else None,
            )
        )
    return entries


@dataclass
class _ParseState:
    section: Section = Section.HOT
    directive: Optional[SearchDirective] = None


class RulesParser:
    def __init__(self, origin: Optional[Path] = None) -> None:
        self._origin = origin

    def parse(self, text: str) -> RulesDocument:
        document = RulesDocument()
        state = _ParseState()
        for number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line == SECTION_SEPARATOR:
                state.section = Section.COLD
                continue
            self._parse_line(line, number, state, document)
        return document

    def _warn(
        self, document: RulesDocument, kind: WarningKind, message: str, line: int, rule: str
    ) -> None:
        logger.warning("line %d: %s", line, message)
        document.warnings.append(
            ResolutionWarning(kind=kind, message=message, line=line, rule=rule)
        )

    def _parse_line(
        self, line: str, number: int, state: _ParseState, document: RulesDocument
    ) -> None:
        if self._parse_cache_directive(line, number, document):
            return

        if line in (BINARY_INCLUDE_PATTERN, f"!{BINARY_EXCLUDE_PATTERN}"):
            document.include_binary = True
            return

        view = _VIEW_RE.match(line)
        if view is not None:
            if view.group(1).strip():
                document.view_rules.append(view.group(1).strip())
            else:
                self._warn(document, WarningKind.INVALID_DIRECTIVE, "empty @view directive", number, line)
            return

        global_directive = _GLOBAL_DIRECTIVE_RE.match(line)
        if global_directive is not None:
            query = parse_quoted(global_directive.group(2))
            if query is None:
                self._warn(
                    document,
                    WarningKind.INVALID_DIRECTIVE,
                    f"@{global_directive.group(1)} query must be a quoted string",
                    number,
                    line,
                )
                return
            state.directive = SearchDirective(DirectiveKind(global_directive.group(1)), query)
            return

        default = _DEFAULT_RE.match(line)
        if default is not None:
            path = default.group(1).strip()
            if not path:
                self._warn(document, WarningKind.INVALID_DIRECTIVE, "empty @default directive", number, line)
                return
            document.items.append(DefaultImport(path=path, section=state.section, source_line=number))
            return

        alias_prefix = _ALIAS_PREFIX_RE.match(line)
        if alias_prefix is not None:
            self._parse_alias_line(line, number, state, document, alias_prefix.group(1) == "!")
            return

        if _UNKNOWN_DIRECTIVE_RE.match(line):
            self._warn(document, WarningKind.INVALID_DIRECTIVE, f"unsupported directive: {line}", number, line)
            return

        base, directive, ok = parse_search_directive(line)
        if not ok:
            self._warn(
                document,
                WarningKind.INVALID_DIRECTIVE,
                "search directive query must be a quoted string; line kept as a literal pattern",
                number,
                line,
            )
        if directive is None:
            directive = state.directive

        if is_remote_rule(base):
            self._parse_remote(base, base, directive, number, state, document)
            return

        document.items.extend(
            entries_from_pattern(base, state.section, number, directive, self._origin)
        )

    def _parse_cache_directive(self, line: str, number: int, document: RulesDocument) -> bool:
        flag = _FLAG_DIRECTIVES.get(line)
        if flag is not None:
            document.cache_policy = replace(document.cache_policy, **{flag: True})
            return True

        expire = _EXPIRE_RE.match(line)
        if expire is None:
            return False
        value = (expire.group(1) or "").strip()
        if not value:
            self._warn(document, WarningKind.INVALID_DIRECTIVE, "@expire-time without a duration", number, line)
            return True
        try:
            duration = parse_duration(value)
        except ValueError as exc:
            raise ParseError(number, f"invalid @expire-time duration {value!r} ({exc})")
        if duration.total_seconds() <= 0:
            self._warn(
                document,
                WarningKind.INVALID_DIRECTIVE,
                f"@expire-time {value} is not positive; default expiry kept",
                number,
                line,
            )
            return True
        document.cache_policy = replace(document.cache_policy, expire_time=duration)
        return True

    def _parse_alias_line(
        self,
        line: str,
        number: int,
        state: _ParseState,
        document: RulesDocument,
        is_exclude: bool,
    ) -> None:
        if "::" in line:
            if is_exclude:
                self._warn(
                    document,
                    WarningKind.INVALID_DIRECTIVE,
                    "ruleset imports cannot be negated",
                    number,
                    line,
                )
                return
            match = _IMPORT_RE.match(line)
            if match is None or not match.group("ruleset"):
                self._warn(document, WarningKind.INVALID_DIRECTIVE, f"malformed ruleset import: {line}", number, line)
                return
            document.items.append(
                RulesetImport(
                    identifier=f"{match.group('alias')}::{match.group('ruleset')}",
                    alias=match.group("alias"),
                    ruleset=match.group("ruleset"),
                    section=state.section,
                    source_line=number,
                )
            )
            return

        base, directive, ok = parse_search_directive(line)
        if not ok:
            self._warn(document, WarningKind.INVALID_DIRECTIVE, "search directive query must be a quoted string", number, line)
            return
        if directive is None:
            directive = state.directive

        git_alias = parse_git_alias(base)
        if git_alias is not None:
            self._parse_remote(git_alias, line, directive, number, state, document)
            return

        match = _ALIAS_RE.match(base)
        if match is None:
            self._warn(document, WarningKind.INVALID_DIRECTIVE, f"malformed alias: {line}", number, line)
            return
        document.items.append(
            AliasReference(
                alias=match.group("alias"),
                subpath=match.group("subpath") or "",
                is_exclude=is_exclude,
                section=state.section,
                source_line=number,
                raw=line,
                directive=directive,
            )
        )

    def _parse_remote(
        self,
        rule: str,
        raw: str,
        directive: Optional[SearchDirective],
        number: int,
        state: _ParseState,
        document: RulesDocument,
    ) -> None:
        is_exclude = rule.startswith("!")
        parsed = parse_git_rule(rule.lstrip("!").strip())
        if parsed is None:
            self._warn(document, WarningKind.INVALID_DIRECTIVE, f"unrecognized repository reference: {raw}", number, raw)
            return
        document.items.append(
            RemoteReference(
                url=parsed.url,
                version=parsed.version,
                subpath=parsed.subpath,
                is_exclude=is_exclude,
                section=state.section,
                source_line=number,
                raw=raw,
                directive=directive,
            )
        )


def parse_rules(text: str, origin: Optional[Path] = None) -> RulesDocument:
    return RulesParser(origin=origin).parse(text)


def parse_rules_file(path: Path) -> RulesDocument:
    return parse_rules(path.read_text(encoding="utf-8"), origin=path)
