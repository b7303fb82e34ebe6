"""Remote repository references and the provider that materializes them."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from context_rules.constants import GITHUB_URL_PREFIX

_GIT_ALIAS_RE = re.compile(
    r"^(?P<exclude>!?)\s*@(?:alias|a):git:(?P<owner>[^/\s]+)/(?P<repo>[^/@\s]+)"
    r"(?:@(?P<version>[^/\s]+))?(?P<subpath>/\S*)?$"
)
_HTTPS_RE = re.compile(
    r"^(?P<scheme>https?)://(?P<host>[^/\s]+)/(?P<owner>[^/\s]+)/(?P<repo>[^/@\s]+?)(?:\.git)?"
    r"(?:@(?P<version>[^/\s]+))?(?P<subpath>/\S*)?$"
)
_SSH_RE = re.compile(
    r"^git@(?P<host>[^:\s]+):(?P<owner>[^/\s]+)/(?P<repo>[^/@\s]+?)(?:\.git)?"
    r"(?:@(?P<version>[^/\s]+))?(?P<subpath>/\S*)?$"
)


@dataclass(frozen=True)
class GitRule:
    url: str
    version: Optional[str]
    subpath: str


def is_remote_rule(rule: str) -> bool:
    text = rule.lstrip("!").strip()
    return text.startswith(("https://", "http://", "git@"))


def parse_git_alias(rule: str) -> Optional[str]:
    """Rewrite ``@a:git:owner/repo[@ver][/glob]`` into a GitHub URL rule."""
    match = _GIT_ALIAS_RE.match(rule)
    if match is None:
        return None
    url = f"{GITHUB_URL_PREFIX}{match.group('owner')}/{match.group('repo')}"
    if match.group("version"):
        url = f"{url}@{match.group('version')}"
    return f"{match.group('exclude')}{url}{match.group('subpath') or ''}"


def parse_git_rule(rule: str) -> Optional[GitRule]:
    match = _HTTPS_RE.match(rule)
    if match is not None:
        url = f"{match.group('scheme')}://{match.group('host')}/{match.group('owner')}/{match.group('repo')}"
    else:
        match = _SSH_RE.match(rule)
        if match is None:
            return None
        url = f"git@{match.group('host')}:{match.group('owner')}/{match.group('repo')}.git"
    subpath = (match.group("subpath") or "").lstrip("/")
    return GitRule(url=url, version=match.group("version"), subpath=subpath)


def remote_alias_to_url(alias: str) -> Optional[GitRule]:
    """Resolve the alias part of ``git:owner/repo[@ver]::ruleset`` imports."""
    rewritten = parse_git_alias(f"@a:{alias}")
    if rewritten is None:
        return None
    return parse_git_rule(rewritten)


class RepositoryProvider(ABC):
    """Materializes remote repositories as local checkouts."""

    @property
    @abstractmethod
    def checkout_root(self) -> Path:
        raise NotImplementedError

    @abstractmethod
    def ensure(self, url: str, version: Optional[str] = None) -> Path:
        """Return the local checkout path; raise ``RepositoryError`` on failure."""
        raise NotImplementedError
