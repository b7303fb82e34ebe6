"""Locate rulesets, project descriptors and the active rules file of a project."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from context_rules.constants import (
    ACTIVE_RULES_RELPATH,
    DESCRIPTOR_CONTEXT_KEY,
    DESCRIPTOR_DEFAULT_RULES_KEY,
    LEGACY_RULES_FILENAME,
    PROJECT_DESCRIPTOR_FILENAME,
    RULESET_DIRNAMES,
    RULESET_SUFFIX,
)
from context_rules.errors import InvalidConfigError
from context_rules.utils import read_yaml_safe

logger = logging.getLogger(__name__)


class RulesRepository:
    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    @property
    def rules_dirs(self) -> list[Path]:
        return [self._root / name for name in RULESET_DIRNAMES]

    @property
    def descriptor_path(self) -> Path:
        return self._root / PROJECT_DESCRIPTOR_FILENAME

    def list_rulesets(self) -> list[str]:
        names: list[str] = []
        for rules_dir in self.rules_dirs:
            if not rules_dir.is_dir():
                continue
            for child in sorted(rules_dir.iterdir()):
                if child.suffix == RULESET_SUFFIX and not child.name.startswith("."):
                    if child.stem not in names:
                        names.append(child.stem)
        return names

    def find_ruleset(self, name: str) -> Optional[Path]:
        for rules_dir in self.rules_dirs:
            path = rules_dir / f"{name}{RULESET_SUFFIX}"
            if path.is_file():
                return path
        return None

    def load_descriptor(self) -> dict[str, Any]:
        payload, error = read_yaml_safe(self.descriptor_path)
        if error is not None:
            raise InvalidConfigError(self.descriptor_path, error)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise InvalidConfigError(self.descriptor_path, "must be a mapping")
        return payload

    def default_rules_path(self) -> Optional[Path]:
        context = self.load_descriptor().get(DESCRIPTOR_CONTEXT_KEY)
        if not isinstance(context, dict):
            return None
        value = context.get(DESCRIPTOR_DEFAULT_RULES_KEY)
        if not isinstance(value, str) or not value.strip():
            return None
        return self._root / value.strip()

    def active_rules_path(self, active_source: Optional[str] = None) -> Optional[Path]:
        """Pick the rules file to resolve.

        An explicit ``active_source`` (relative to the project root) wins,
        then ``.grove/rules``, the legacy ``.grovectx`` and finally the
        descriptor's default rules path.
        """
        if active_source:
            candidate = Path(active_source).expanduser()
            if not candidate.is_absolute():
                candidate = self._root / candidate
            return candidate if candidate.is_file() else None

        for relative in (ACTIVE_RULES_RELPATH, LEGACY_RULES_FILENAME):
            candidate = self._root / relative
            if candidate.is_file():
                return candidate

        try:
            default = self.default_rules_path()
        except InvalidConfigError as exc:
            logger.warning("%s", exc)
            return None
        if default is not None and default.is_file():
            return default
        return None

    def load_active_rules(self, active_source: Optional[str] = None) -> tuple[str, Optional[Path]]:
        path = self.active_rules_path(active_source)
        if path is None:
            return "", None
        return path.read_text(encoding="utf-8"), path
