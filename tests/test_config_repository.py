from pathlib import Path

import pytest

from context_rules.errors import InvalidConfigError
from context_rules.repositories import ConfigRepository


def test_load_workspaces_missing_file(config_root: Path) -> None:
    assert ConfigRepository().load_workspaces() == []
    assert ConfigRepository().root == config_root


def test_add_and_remove_workspace(tmp_path: Path, config_root: Path) -> None:
    workspace = tmp_path / "ws"
    workspace.mkdir()
    repository = ConfigRepository()

    repository.add_workspace("main", workspace)

    assert repository.load_workspaces() == [{"name": "main", "path": str(workspace.resolve())}]
    assert (config_root / "workspaces.json").is_file()
    assert repository.remove_workspace("main") is True
    assert repository.remove_workspace("main") is False
    assert repository.load_workspaces() == []


@pytest.mark.parametrize("name", ["", "   "])
def test_add_workspace_rejects_empty_name(tmp_path: Path, name: str) -> None:
    with pytest.raises(ValueError):
        ConfigRepository().add_workspace(name, tmp_path)


def test_add_workspace_rejects_duplicates(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    repository = ConfigRepository()
    repository.add_workspace("main", first)

    with pytest.raises(ValueError, match="name already exists"):
        repository.add_workspace("main", second)
    with pytest.raises(ValueError, match="path already exists"):
        repository.add_workspace("other", first)


def test_add_workspace_rejects_missing_path(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        ConfigRepository().add_workspace("ghost", tmp_path / "missing")


def test_invalid_json_raises(config_root: Path) -> None:
    config_root.mkdir(parents=True)
    (config_root / "workspaces.json").write_text("{oops", encoding="utf-8")

    with pytest.raises(InvalidConfigError, match="invalid JSON"):
        ConfigRepository().load_workspaces()


def test_schema_violation_raises(config_root: Path, write_json) -> None:
    write_json(config_root / "workspaces.json", [{"name": "main"}])

    with pytest.raises(InvalidConfigError) as excinfo:
        ConfigRepository().load_workspaces()

    assert "'path' is a required property" in str(excinfo.value)


def test_duplicate_names_are_dropped_on_load(tmp_path: Path, config_root: Path, write_json) -> None:
    write_json(
        config_root / "workspaces.json",
        [{"name": "main", "path": str(tmp_path / "a")}, {"name": "main", "path": str(tmp_path / "b")}],
    )

    loaded = ConfigRepository().load_workspaces()

    assert [item["path"] for item in loaded] == [str((tmp_path / "a").resolve())]


def test_build_registry_discovers_projects(tmp_path: Path) -> None:
    workspace = tmp_path / "ws"
    (workspace / "api" / ".git").mkdir(parents=True)
    repository = ConfigRepository()
    repository.add_workspace("main", workspace)

    registry = repository.build_registry()

    assert [node.name for node in registry.all_projects()] == ["api"]
    assert workspace.resolve() in registry.roots
