import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from context_rules.constants import APP_NAME, MAX_PARENT_TRAVERSALS, SYSTEM_DIRS
from context_rules.errors import UnsafePathRejectedError
from context_rules.patterns import static_prefix
from context_rules.utils import is_under, normalize_path

logger = logging.getLogger(__name__)

_HIDDEN_SYSTEM_MARKERS = ("/.Trash", "/.cache", "/.config")


def home_config_root() -> Path:
    return Path.home() / ".config" / APP_NAME


def _system_dir_for(path: str) -> Optional[str]:
    for system_dir in SYSTEM_DIRS:
        separator = "\\" if "\\" in system_dir else "/"
        if path == system_dir or path.startswith(f"{system_dir}{separator}"):
            return system_dir
    return None


class PathSafetyGate:
    """Rejects rules and alias targets that reach outside known workspaces."""

    def __init__(
        self,
        work_dir: Path,
        allowed_roots: Iterable[Path] = (),
        home: Optional[Path] = None,
    ) -> None:
        self._work_dir = normalize_path(work_dir)
        self._home = home or Path.home()
        self._allowed: list[Path] = []
        for root in (self._work_dir, home_config_root(), *allowed_roots):
            self.allow(root)

    @property
    def allowed_roots(self) -> list[Path]:
        return list(self._allowed)

    def allow(self, root: Path) -> None:
        normalized = normalize_path(root)
        if normalized not in self._allowed:
            self._allowed.append(normalized)

    def is_path_allowed(self, path: Path) -> bool:
        normalized = normalize_path(path)
        return any(is_under(normalized, root) for root in self._allowed)

    def check_root(self, path: Path) -> Path:
        """Validate an alias, import or checkout root and return its normalized form."""
        normalized = normalize_path(path)
        system_dir = _system_dir_for(str(normalized))
        if system_dir is not None:
            raise UnsafePathRejectedError(normalized, f"system directory {system_dir}")
        if not self.is_path_allowed(normalized):
            raise UnsafePathRejectedError(normalized, "outside of known workspaces")
        return normalized

    def check_pattern(self, pattern: str) -> None:
        """Structural checks for absolute and parent-relative patterns."""
        traversals = pattern.count("../")
        if traversals > MAX_PARENT_TRAVERSALS:
            raise UnsafePathRejectedError(
                pattern,
                f"too many parent directory traversals (max {MAX_PARENT_TRAVERSALS})",
            )
        if pattern in ("**", "/**") or pattern.startswith("../../../"):
            raise UnsafePathRejectedError(pattern, "pattern is too broad")

        base = static_prefix(pattern) or "/"
        if base.startswith("/"):
            absolute = os.path.normpath(base)
        else:
            absolute = os.path.normpath(os.path.join(str(self._work_dir), base))

        home_parts = self._home.parts
        if len(absolute) < len(str(self._home)) and len(Path(absolute).parts) < len(home_parts) - 1:
            raise UnsafePathRejectedError(pattern, "too far above the home directory")

        system_dir = _system_dir_for(absolute)
        if system_dir is not None:
            raise UnsafePathRejectedError(pattern, f"system directory {system_dir}")

        if traversals > 0 and any(marker in pattern for marker in _HIDDEN_SYSTEM_MARKERS):
            raise UnsafePathRejectedError(pattern, "hidden system directory")
