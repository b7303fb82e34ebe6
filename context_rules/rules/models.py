"""Typed items produced by the rules document parser."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional, Union

from context_rules.cache import CachePolicy
from context_rules.models import ResolutionWarning, Section


class DirectiveKind(str, Enum):
    FIND = "find"
    GREP = "grep"


class ItemKind(str, Enum):
    PATTERN = "pattern"
    ALIAS = "alias"
    REMOTE = "remote"
    RULESET_IMPORT = "ruleset_import"
    DEFAULT_IMPORT = "default_import"


@dataclass(frozen=True)
class SearchDirective:
    kind: DirectiveKind
    query: str

    def render(self) -> str:
        return f'@{self.kind.value}: "{self.query}"'


@dataclass(frozen=True)
class RuleEntry:
    kind: ClassVar[ItemKind] = ItemKind.PATTERN

    pattern: str
    is_exclude: bool
    section: Section
    source_line: int
    directive: Optional[SearchDirective] = None
    origin: Optional[Path] = None
    origin_line: Optional[int] = None

    @property
    def is_floating(self) -> bool:
        return "/" not in self.pattern

    @property
    def is_absolute(self) -> bool:
        return self.pattern.startswith("/")

    @property
    def is_parent_relative(self) -> bool:
        return self.pattern.startswith("../")

    def render(self) -> str:
        text = f"!{self.pattern}" if self.is_exclude else self.pattern
        if self.directive is not None:
            text = f"{text} {self.directive.render()}"
        return text

    def attributed_to(self, line: int, section: Section) -> RuleEntry:
        return replace(self, source_line=line, section=section)


@dataclass(frozen=True)
class AliasReference:
    kind: ClassVar[ItemKind] = ItemKind.ALIAS

    alias: str
    subpath: str
    is_exclude: bool
    section: Section
    source_line: int
    raw: str
    directive: Optional[SearchDirective] = None


@dataclass(frozen=True)
class RemoteReference:
    kind: ClassVar[ItemKind] = ItemKind.REMOTE

    url: str
    version: Optional[str]
    subpath: str
    is_exclude: bool
    section: Section
    source_line: int
    raw: str
    directive: Optional[SearchDirective] = None


@dataclass(frozen=True)
class RulesetImport:
    kind: ClassVar[ItemKind] = ItemKind.RULESET_IMPORT

    identifier: str
    alias: str
    ruleset: str
    section: Section
    source_line: int

    @property
    def is_remote(self) -> bool:
        return self.alias.startswith("git:")


@dataclass(frozen=True)
class DefaultImport:
    kind: ClassVar[ItemKind] = ItemKind.DEFAULT_IMPORT

    path: str
    section: Section
    source_line: int


RuleItem = Union[RuleEntry, AliasReference, RemoteReference, RulesetImport, DefaultImport]


@dataclass
class RulesDocument:
    items: list[RuleItem] = field(default_factory=list)
    cache_policy: CachePolicy = field(default_factory=CachePolicy)
    view_rules: list[str] = field(default_factory=list)
    warnings: list[ResolutionWarning] = field(default_factory=list)
    include_binary: bool = False

    def entries(self) -> list[RuleEntry]:
        return [item for item in self.items if isinstance(item, RuleEntry)]
