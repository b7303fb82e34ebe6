from pathlib import Path
from typing import Union

from context_rules.errors import FilesystemError
from context_rules.rules.models import DirectiveKind, SearchDirective


class DirectiveFilter:
    """Evaluates ``@find``/``@grep`` directives, reading each file at most once."""

    def __init__(self) -> None:
        self._contents: dict[Path, Union[str, FilesystemError]] = {}

    def content(self, path: Path) -> str:
        cached = self._contents.get(path)
        if cached is None:
            try:
                cached = path.read_bytes().decode("utf-8", errors="replace")
            except OSError as exc:
                cached = FilesystemError(path, exc.strerror or str(exc))
            self._contents[path] = cached
        if isinstance(cached, FilesystemError):
            raise cached
        return cached

    def passes(self, directive: SearchDirective, path: Path, display_path: str) -> bool:
        if directive.kind == DirectiveKind.FIND:
            return directive.query in display_path
        return directive.query in self.content(path)
