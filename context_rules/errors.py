from pathlib import Path


class ContextRulesError(Exception):
    """Base user-facing resolution error."""


class ParseError(ContextRulesError):
    def __init__(self, line: int, message: str) -> None:
        self.line = line
        self.message = message
        super().__init__(f"line {line}: {message}")


class AliasNotFoundError(ContextRulesError):
    def __init__(self, alias: str, detail: str = "no matching project") -> None:
        self.alias = alias
        self.detail = detail
        super().__init__(f"Alias not found: {alias} ({detail})")


class ContextPathError(ContextRulesError):
    def __init__(self, path: Path | str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class ImportNotFoundError(ContextPathError):
    def __init__(self, path: Path | str, detail: str = "rules file not found") -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Import not found ({detail})")


class UnsafePathRejectedError(ContextPathError):
    def __init__(self, path: Path | str, reason: str) -> None:
        self.reason = reason
        super().__init__(path=path, message=f"Unsafe path rejected ({reason})")


class RepositoryError(ContextPathError):
    def __init__(self, url: str, detail: str) -> None:
        self.detail = detail
        super().__init__(path=url, message=f"Repository unavailable ({detail})")


class FilesystemError(ContextPathError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Filesystem error ({detail})")


class InvalidConfigError(ContextPathError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config ({detail})")
