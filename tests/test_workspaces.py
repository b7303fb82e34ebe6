from pathlib import Path

import pytest

from context_rules.workspaces import (
    ProjectKind,
    ProjectMatch,
    WorkspaceRegistry,
    WorkspaceService,
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    (root / "eco").mkdir(parents=True)
    (root / "eco" / "grove.yml").write_text("workspaces:\n  - '*'\n", encoding="utf-8")
    (root / "eco" / "api" / ".git").mkdir(parents=True)
    (root / "eco" / "web" / ".git").mkdir(parents=True)
    (root / "standalone" / ".git").mkdir(parents=True)
    (root / "standalone" / ".grove-worktrees" / "feature").mkdir(parents=True)
    (root / "standalone" / ".grove-worktrees" / "feature" / ".git").write_text(
        "gitdir: ../../.git/worktrees/feature\n", encoding="utf-8"
    )
    (root / "notes").mkdir()
    return root.resolve()


def test_list_workspace_repos_finds_git_subdirectories(tmp_path: Path) -> None:
    workspace_service = WorkspaceService()
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    (workspace / "repo-one" / ".git").mkdir(parents=True)
    (workspace / "nested" / "repo-two" / ".git").mkdir(parents=True)
    (workspace / "not-a-repo").mkdir()

    repos = workspace_service.discover_git_repos(workspace)

    assert repos == [
        (workspace / "nested" / "repo-two").resolve(),
        (workspace / "repo-one").resolve(),
    ]


def test_discover_git_repos_skips_dotfile_and_dependency_dirs(tmp_path: Path) -> None:
    workspace_service = WorkspaceService()
    workspace = tmp_path / "workspace"
    (workspace / ".hidden" / "repo" / ".git").mkdir(parents=True)
    (workspace / "node_modules" / "dep" / ".git").mkdir(parents=True)
    (workspace / "real" / ".git").mkdir(parents=True)

    repos = workspace_service.discover_git_repos(workspace)

    assert repos == [(workspace / "real").resolve()]


def test_discover_projects_builds_hierarchy(workspace: Path) -> None:
    nodes = {node.name: node for node in WorkspaceService().discover_projects(workspace)}

    assert set(nodes) == {"eco", "api", "web", "standalone", "feature"}
    assert nodes["eco"].kind == ProjectKind.ECOSYSTEM
    assert nodes["eco"].depth == 0
    assert nodes["api"].parent_ecosystem_path == workspace / "eco"
    assert nodes["api"].depth == 1
    assert nodes["standalone"].kind == ProjectKind.PROJECT
    assert nodes["feature"].kind == ProjectKind.WORKTREE
    assert nodes["feature"].parent_project_path == workspace / "standalone"


def test_declared_workspaces_mark_ecosystem_without_children(tmp_path: Path) -> None:
    root = tmp_path / "lonely"
    root.mkdir()
    (root / "grove.yml").write_text("workspaces: ['packages/*']\n", encoding="utf-8")

    nodes = WorkspaceService().discover_projects(root)

    assert len(nodes) == 1
    assert nodes[0].is_ecosystem is True


def test_registry_find_by_path_prefers_deepest(workspace: Path) -> None:
    registry = WorkspaceRegistry.discover([workspace])

    node = registry.find_by_path(workspace / "eco" / "api" / "src" / "main.go")

    assert node is not None
    assert node.name == "api"
    assert registry.find_by_path(workspace / "notes") is None


def test_registry_find_project_by_name_and_path(workspace: Path) -> None:
    registry = WorkspaceRegistry.discover([workspace])

    assert registry.find_project("api") == ProjectMatch(
        root=workspace / "eco" / "api", ecosystem_root=workspace / "eco"
    )
    worktree = workspace / "standalone" / ".grove-worktrees" / "feature"
    assert registry.find_project(str(worktree)) == ProjectMatch(
        root=workspace / "standalone", worktree_root=worktree
    )
    assert registry.find_project("missing") is None


def test_registry_roots_include_workspaces_and_projects(workspace: Path) -> None:
    registry = WorkspaceRegistry.discover([workspace, workspace])

    assert registry.roots[0] == workspace
    assert workspace / "eco" / "api" in registry.roots
    assert len(registry.all_projects()) == 5
