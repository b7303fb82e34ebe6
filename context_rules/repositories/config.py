from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator

from context_rules.errors import InvalidConfigError
from context_rules.repositories.base import IConfigRepository
from context_rules.safety import home_config_root
from context_rules.utils import read_json_safe, write_json
from context_rules.workspaces import WorkspaceRegistry, WorkspaceService

WORKSPACES_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["name", "path"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "path": {"type": "string", "minLength": 1},
        },
        "additionalProperties": False,
    },
}


def _schema_error_message(error: Any) -> str:
    path = ".".join([str(part) for part in error.path])
    return f"{error.message} at {path}" if path else str(error.message)


class ConfigRepository(IConfigRepository):
    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root or home_config_root()
        self._validator = Draft202012Validator(WORKSPACES_SCHEMA)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def workspaces_path(self) -> Path:
        return self.root / "workspaces.json"

    def load_workspaces(self) -> list[dict[str, str]]:
        payload, error = read_json_safe(self.workspaces_path)
        if error is not None:
            raise InvalidConfigError(self.workspaces_path, f"invalid JSON ({error})")
        if payload is None:
            return []
        schema_error = next(iter(self._validator.iter_errors(payload)), None)
        if schema_error is not None:
            raise InvalidConfigError(self.workspaces_path, _schema_error_message(schema_error))

        result: list[dict[str, str]] = []
        seen_names: set[str] = set()
        for item in payload:
            normalized_name = item["name"].strip()
            normalized_path = str(Path(item["path"]).expanduser().resolve())
            if not normalized_name or normalized_name in seen_names:
                continue
            result.append({"name": normalized_name, "path": normalized_path})
            seen_names.add(normalized_name)
        return result

    def save_workspaces(self, workspaces: list[dict[str, str]]) -> None:
        serialized = sorted(
            [{"name": item["name"], "path": item["path"]} for item in workspaces],
            key=lambda item: item["name"].lower(),
        )
        write_json(self.workspaces_path, serialized)

    def add_workspace(self, name: str, path: Path) -> None:
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("Workspace name cannot be empty")
        normalized_path = path.expanduser().resolve()
        if not normalized_path.exists() or not normalized_path.is_dir():
            raise ValueError(f"Workspace path does not exist or is not a directory: {normalized_path}")

        workspaces = self.load_workspaces()
        for item in workspaces:
            if item["name"] == normalized_name:
                raise ValueError(f"Workspace name already exists: {normalized_name}")
            if Path(item["path"]) == normalized_path:
                raise ValueError(f"Workspace path already exists: {normalized_path}")

        workspaces.append({"name": normalized_name, "path": str(normalized_path)})
        self.save_workspaces(workspaces)

    def remove_workspace(self, name: str) -> bool:
        target_name = name.strip()
        workspaces = self.load_workspaces()
        kept = [item for item in workspaces if item["name"] != target_name]
        if len(kept) == len(workspaces):
            return False
        self.save_workspaces(kept)
        return True

    def workspace_paths(self) -> list[Path]:
        return [Path(item["path"]) for item in self.load_workspaces()]

    def build_registry(self, service: Optional[WorkspaceService] = None) -> WorkspaceRegistry:
        return WorkspaceRegistry.discover(self.workspace_paths(), service=service)
