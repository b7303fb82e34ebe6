"""Cache-control directives for the cold context artifact."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from context_rules.constants import DEFAULT_CACHE_TTL


_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as ``90s``, ``1h30m`` or ``1.5h``.

    Raises ``ValueError`` for malformed input.
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")

    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]
    if value == "0":
        return timedelta(0)

    seconds = 0.0
    position = 0
    while position < len(value):
        match = _DURATION_PART_RE.match(value, position)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position == 0:
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(seconds=sign * seconds)


def format_duration(value: timedelta) -> str:
    total = int(value.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return "".join(parts)


class CacheAction(str, Enum):
    BYPASS = "bypass"
    GENERATE = "generate"
    REGENERATE = "regenerate"
    REUSE = "reuse"


@dataclass(frozen=True)
class CacheArtifact:
    created_at: datetime


@dataclass(frozen=True)
class CacheDecision:
    action: CacheAction
    reason: str


@dataclass(frozen=True)
class CachePolicy:
    freeze_cache: bool = False
    no_expire: bool = False
    disable_cache: bool = False
    expire_time: Optional[timedelta] = None

    @property
    def effective_ttl(self) -> Optional[timedelta]:
        if self.no_expire or self.freeze_cache:
            return None
        if self.expire_time is not None:
            return self.expire_time
        return DEFAULT_CACHE_TTL

    def describe(self) -> str:
        if self.disable_cache:
            return "disabled"
        flags = []
        if self.freeze_cache:
            flags.append("frozen")
        ttl = self.effective_ttl
        flags.append("no expiry" if ttl is None else f"ttl {format_duration(ttl)}")
        return ", ".join(flags)

    def evaluate(
        self,
        artifact: Optional[CacheArtifact],
        now: datetime,
        sources_changed: bool = False,
        regenerate: bool = False,
    ) -> CacheDecision:
        if self.disable_cache:
            return CacheDecision(CacheAction.BYPASS, "caching disabled by @disable-cache")
        if artifact is None:
            return CacheDecision(CacheAction.GENERATE, "no cached artifact")
        if regenerate:
            return CacheDecision(CacheAction.GENERATE, "regeneration requested")
        if self.freeze_cache:
            return CacheDecision(CacheAction.REUSE, "cache frozen by @freeze-cache")

        ttl = self.effective_ttl
        if ttl is not None and now - artifact.created_at >= ttl:
            return CacheDecision(
                CacheAction.REGENERATE, f"artifact older than {format_duration(ttl)}"
            )
        if sources_changed:
            return CacheDecision(CacheAction.REGENERATE, "cold sources changed")
        return CacheDecision(CacheAction.REUSE, "artifact is fresh")
