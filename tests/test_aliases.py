from pathlib import Path

import pytest

from context_rules.aliases import AliasResolver
from context_rules.errors import AliasNotFoundError
from context_rules.workspaces import ProjectNode, WorkspaceRegistry


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = (tmp_path / "ws").resolve()
    for relative in (
        "eco/api/src",
        "eco/web",
        "eco/api/.grove-worktrees/fix",
        "eco/.grove-worktrees/eco-wt/api",
        "other-eco/api",
        "tool/.grove-worktrees/feat",
    ):
        (root / relative).mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def registry(workspace: Path) -> WorkspaceRegistry:
    eco = workspace / "eco"
    other = workspace / "other-eco"
    eco_wt = eco / ".grove-worktrees" / "eco-wt"
    nodes = [
        ProjectNode("eco", eco, depth=0, is_ecosystem=True),
        ProjectNode("api", eco / "api", depth=1, parent_ecosystem_path=eco),
        ProjectNode("web", eco / "web", depth=1, parent_ecosystem_path=eco),
        ProjectNode(
            "fix",
            eco / "api" / ".grove-worktrees" / "fix",
            depth=2,
            parent_ecosystem_path=eco,
            parent_project_path=eco / "api",
            is_worktree=True,
        ),
        ProjectNode(
            "eco-wt", eco_wt, depth=1, parent_project_path=eco, is_worktree=True, is_ecosystem=True
        ),
        ProjectNode("api", eco_wt / "api", depth=2, parent_ecosystem_path=eco_wt),
        ProjectNode("other-eco", other, depth=0, is_ecosystem=True),
        ProjectNode("api", other / "api", depth=1, parent_ecosystem_path=other),
        ProjectNode("tool", workspace / "tool", depth=0),
        ProjectNode(
            "feat",
            workspace / "tool" / ".grove-worktrees" / "feat",
            depth=1,
            parent_project_path=workspace / "tool",
            is_worktree=True,
        ),
    ]
    return WorkspaceRegistry(nodes, [workspace])


def test_single_component_prefers_sibling(registry: WorkspaceRegistry, workspace: Path) -> None:
    resolver = AliasResolver(registry, workspace / "eco" / "web")

    assert resolver.resolve("api") == workspace / "eco" / "api"


def test_single_component_prefers_child_of_current_ecosystem(
    registry: WorkspaceRegistry, workspace: Path
) -> None:
    resolver = AliasResolver(registry, workspace / "other-eco")

    assert resolver.resolve("api") == workspace / "other-eco" / "api"


def test_single_component_falls_back_to_top_level(registry: WorkspaceRegistry, workspace: Path) -> None:
    resolver = AliasResolver(registry, workspace / "eco" / "web")

    assert resolver.resolve("tool") == workspace / "tool"
    assert resolver.resolve("web") == workspace / "eco" / "web"


def test_two_components(registry: WorkspaceRegistry, workspace: Path) -> None:
    resolver = AliasResolver(registry, workspace / "tool")

    assert resolver.resolve("eco:api") == workspace / "eco" / "api"
    assert resolver.resolve("other-eco:api") == workspace / "other-eco" / "api"
    assert resolver.resolve("tool:feat") == workspace / "tool" / ".grove-worktrees" / "feat"
    assert resolver.resolve("eco-wt:api") == workspace / "eco" / ".grove-worktrees" / "eco-wt" / "api"


def test_three_components(registry: WorkspaceRegistry, workspace: Path) -> None:
    resolver = AliasResolver(registry, workspace / "tool")

    assert resolver.resolve("eco:api:fix") == workspace / "eco" / "api" / ".grove-worktrees" / "fix"
    assert (
        resolver.resolve("eco:eco-wt:api")
        == workspace / "eco" / ".grove-worktrees" / "eco-wt" / "api"
    )


@pytest.mark.parametrize("alias", ["a:b:c:d", "missing", "eco:missing", "eco::api", "tool:api"])
def test_unresolvable_aliases(registry: WorkspaceRegistry, workspace: Path, alias: str) -> None:
    resolver = AliasResolver(registry, workspace / "tool")

    with pytest.raises(AliasNotFoundError):
        resolver.resolve(alias)


def test_resolver_without_registry(tmp_path: Path) -> None:
    with pytest.raises(AliasNotFoundError) as excinfo:
        AliasResolver(None, tmp_path).resolve("api")

    assert "no project registry" in str(excinfo.value)


def test_resolve_line_keeps_exclusion_and_directive(registry: WorkspaceRegistry, workspace: Path) -> None:
    resolver = AliasResolver(registry, workspace / "tool")
    api = (workspace / "eco" / "api").as_posix()
    web = (workspace / "eco" / "web").as_posix()

    assert resolver.resolve_line("!@a:eco:api/src/**/*.go") == f"!{api}/src/**/*.go"
    assert resolver.resolve_line('@a:web @grep: "TODO"') == f'{web}/** @grep: "TODO"'
    assert resolver.resolve_line("@alias:eco:api*.md") == f"{api}/*.md"
    assert resolver.resolve_line("src/**") == "src/**"
