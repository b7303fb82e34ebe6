from pathlib import Path
from typing import Optional

import pytest

from context_rules.attribution import FilteredMatch
from context_rules.errors import ParseError, RepositoryError
from context_rules.ignore import PathspecIgnoreOracle
from context_rules.models import FileStatus, WarningKind
from context_rules.remote import RepositoryProvider
from context_rules.workspaces import WorkspaceRegistry


def test_end_to_end_hot_cold_and_exclusions(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(
        project_dir,
        {"main.go": "package main\n", "main_test.go": "package main\n", "README.md": "# readme\n"},
    )

    result = make_engine(root).resolve("*.go\n!*_test.go\n---\nREADME.md\n")

    assert result.hot_files() == [root / "main.go"]
    assert result.cold_files() == [root / "README.md"]
    assert result.excluded_files() == [root / "main_test.go"]
    assert result.attribution.included_for(1) == [root / "main.go"]
    assert result.attribution.excluded_for(2) == [root / "main_test.go"]
    assert result.attribution.included_for(4) == [root / "README.md"]
    assert result.file_for(root / "README.md").winning_line == 4


def test_last_match_wins(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"a.go": "", "a_test.go": ""})
    engine = make_engine(root)

    excluded_last = engine.resolve("*.go\n!*_test.go")
    included_last = engine.resolve("!*_test.go\n*.go")

    assert excluded_last.status_of(root / "a_test.go") == FileStatus.EXCLUDED_BY_RULE
    assert included_last.status_of(root / "a_test.go") == FileStatus.INCLUDED_HOT
    assert included_last.file_for(root / "a_test.go").winning_line == 2


def test_cold_rule_overrides_hot_rule(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"src/main.go": "", "src/lib.go": ""})

    result = make_engine(root).resolve("src/**\n---\nsrc/lib.go")

    assert result.status_of(root / "src" / "lib.go") == FileStatus.INCLUDED_COLD
    assert result.status_of(root / "src" / "main.go") == FileStatus.INCLUDED_HOT
    assert result.attribution.filtered_for(1) == [FilteredMatch(root / "src" / "lib.go", 3)]
    assert set(result.hot_files()).isdisjoint(result.cold_files())


def test_cold_exclusion_removes_hot_file(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"main.go": "", "util.go": ""})

    result = make_engine(root).resolve("*.go\n---\n!main.go")

    assert result.status_of(root / "main.go") == FileStatus.EXCLUDED_BY_RULE
    assert result.hot_files() == [root / "util.go"]


def test_resolution_is_idempotent(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"a.go": "TODO\n", "b/c.md": "", "d.txt": ""})
    engine = make_engine(root)
    rules = '*.go @grep: "TODO"\n**/*.md\n---\n*.txt\n'

    first = engine.resolve(rules)
    second = engine.resolve(rules)

    assert first.files == second.files
    assert first.attribution == second.attribution


def test_ignored_directories_are_reported_once(make_tree, make_engine, project_dir: Path) -> None:
    files = {".gitignore": "node_modules/\ndist/\n", "src/app.js": ""}
    for index in range(50):
        files[f"node_modules/pkg{index}/index.js"] = ""
        files[f"dist/chunk{index}.js"] = ""
    root = make_tree(project_dir, files)

    result = make_engine(root, oracle=PathspecIgnoreOracle(root)).resolve("**/*.js")

    ignored = result.ignored_entries()
    assert sorted(item.path for item in ignored) == [root / "dist", root / "node_modules"]
    assert all(item.is_directory for item in ignored)
    assert result.included_files() == [root / "src" / "app.js"]


def test_exact_file_rule_overrides_ignore(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(
        project_dir,
        {".gitignore": "*.env\n", "config/app.env": "KEY=1\n", "config/other.env": "KEY=2\n"},
    )
    oracle = PathspecIgnoreOracle(root)

    result = make_engine(root, oracle=oracle).resolve("config/app.env\n**/*.env")

    assert result.status_of(root / "config" / "app.env") == FileStatus.INCLUDED_HOT
    assert result.status_of(root / "config" / "other.env") == FileStatus.IGNORED_BY_VCS


def test_directive_filtering_and_attribution(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"a.go": "// TODO: refactor\n", "b.go": "// done\n"})

    result = make_engine(root).resolve('*.go\n*.go @grep: "TODO"')

    attribution = result.attribution
    assert attribution.included_for(1) == [root / "b.go"]
    assert attribution.included_for(2) == [root / "a.go"]
    assert attribution.filtered_for(1) == [FilteredMatch(root / "a.go", 2)]
    assert attribution.filtered_for(2) == []


def test_find_directive_matches_relative_path(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(
        project_dir,
        {"api/handlers/user.go": "", "api/models/user.go": "", "cmd/handlers.go": ""},
    )

    result = make_engine(root).resolve('**/*.go @find: "handlers"')

    assert result.included_files() == [
        root / "api" / "handlers" / "user.go",
        root / "cmd" / "handlers.go",
    ]


def test_global_directive_applies_to_following_rules(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"a.py": "import os\n", "b.py": "print(1)\n", "c.md": "import\n"})

    result = make_engine(root).resolve('@grep: "import"\n*.py\n')

    assert result.included_files() == [root / "a.py"]


def test_brace_expansion(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"src/a/x.go": "", "src/b/y.md": "", "src/c/z.go": ""})

    result = make_engine(root).resolve("src/{a,b}/**")

    assert result.included_files() == [root / "src" / "a" / "x.go", root / "src" / "b" / "y.md"]
    assert result.status_of(root / "src" / "c" / "z.go") == FileStatus.OMITTED_NO_MATCH


def test_directory_pattern_includes_contents(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"docs/guide/intro.md": "", "docs/index.md": "", "main.go": ""})

    result = make_engine(root).resolve("docs")

    assert result.included_files() == [root / "docs" / "guide" / "intro.md", root / "docs" / "index.md"]


def test_parent_relative_patterns_reach_sibling_projects(make_tree, make_engine, tmp_path: Path) -> None:
    sibling = make_tree(tmp_path / "sib", {"docs/a.go": "", "docs/b.md": "", "src/c.go": ""})
    root = make_tree(tmp_path / "proj", {"main.go": ""})

    result = make_engine(root).resolve("../sib/docs/**\n*.go")

    assert result.included_files() == [root / "main.go", sibling / "docs" / "a.go", sibling / "docs" / "b.md"]
    assert result.attribution.filtered_for(1) == []
    assert result.status_of(sibling / "src" / "c.go") is None


def test_unsafe_patterns_become_warnings(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"main.go": ""})

    result = make_engine(root).resolve("/etc/**\n../../../x/**\n*.go")

    assert [warning.kind for warning in result.warnings] == [
        WarningKind.UNSAFE_PATH,
        WarningKind.UNSAFE_PATH,
    ]
    assert [warning.line for warning in result.warnings] == [1, 2]
    assert result.included_files() == [root / "main.go"]


def test_invalid_pattern_is_reported_once(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"main.go": ""})

    result = make_engine(root).resolve("src/[abc\nsrc/[abc\n*.go")

    assert [warning.kind for warning in result.warnings] == [WarningKind.INVALID_PATTERN]
    assert result.included_files() == [root / "main.go"]


def test_binary_files_skipped_unless_enabled(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"assets/logo.png": b"\x89PNG\r\n", "assets/notes.txt": "hi\n"})
    engine = make_engine(root)

    default = engine.resolve("assets/**")
    with_binary = engine.resolve("binary:include\nassets/**")

    assert default.included_files() == [root / "assets" / "notes.txt"]
    assert default.status_of(root / "assets" / "logo.png") == FileStatus.OMITTED_NO_MATCH
    assert with_binary.included_files() == [root / "assets" / "logo.png", root / "assets" / "notes.txt"]


def test_excluded_binary_keeps_exclusion_attribution(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"assets/logo.png": b"\x89PNG\r\n", "assets/notes.txt": "hi\n"})

    result = make_engine(root).resolve("assets/**\n!*.png")

    logo = root / "assets" / "logo.png"
    assert result.status_of(logo) == FileStatus.EXCLUDED_BY_RULE
    assert result.attribution.excluded_for(2) == [logo]


def test_scoped_package_dirs_and_dot_slash_patterns(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(
        project_dir,
        {"@types/node/index.d.ts": "", "@scope/pkg/a.ts": "", "src/a.go": ""},
    )

    result = make_engine(root).resolve("@types/**\n@scope/pkg/*.ts\n./src/*.go")

    assert result.warnings == []
    assert result.included_files() == [
        root / "@scope" / "pkg" / "a.ts",
        root / "@types" / "node" / "index.d.ts",
        root / "src" / "a.go",
    ]


def test_worktrees_only_walked_when_named(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"main.go": "", ".grove-worktrees/feat/main.go": ""})
    engine = make_engine(root)

    floating = engine.resolve("**/*.go")
    explicit = engine.resolve(".grove-worktrees/feat/**")

    assert floating.included_files() == [root / "main.go"]
    assert explicit.included_files() == [root / ".grove-worktrees" / "feat" / "main.go"]


def test_alias_rules_resolve_through_registry(make_tree, make_engine, tmp_path: Path) -> None:
    workspace = make_tree(
        tmp_path / "ws",
        {
            "api/.git/HEAD": "",
            "api/src/server.go": "",
            "api/src/server_test.go": "",
            "app/.git/HEAD": "",
            "app/main.go": "",
        },
    )
    registry = WorkspaceRegistry.discover([workspace])
    engine = make_engine(workspace / "app", registry=registry)

    result = engine.resolve("@a:api/src/**\n!@a:api/src/*_test.go\n@a:nope")

    assert result.included_files() == [workspace / "api" / "src" / "server.go"]
    assert result.excluded_files() == [workspace / "api" / "src" / "server_test.go"]
    assert [warning.kind for warning in result.warnings] == [WarningKind.ALIAS_NOT_FOUND]
    assert result.warnings[0].line == 3


def test_ruleset_import_attributes_files_to_import_line(make_tree, make_engine, tmp_path: Path) -> None:
    workspace = make_tree(
        tmp_path / "ws",
        {
            "api/.git/HEAD": "",
            "api/.cx/backend.rules": "src/**/*.go\n!src/**/*_test.go\n",
            "api/src/server.go": "",
            "api/src/server_test.go": "",
            "app/.git/HEAD": "",
            "app/main.go": "",
        },
    )
    registry = WorkspaceRegistry.discover([workspace])
    engine = make_engine(workspace / "app", registry=registry)

    result = engine.resolve("*.go\n---\n@a:api::backend")

    api = workspace / "api" / "src"
    assert result.attribution.included_for(3) == [api / "server.go"]
    assert result.attribution.excluded_for(3) == [api / "server_test.go"]
    assert result.status_of(api / "server.go") == FileStatus.INCLUDED_COLD
    assert result.hot_files() == [workspace / "app" / "main.go"]


def test_circular_default_imports_include_each_file_once(make_tree, make_engine, tmp_path: Path) -> None:
    workspace = make_tree(
        tmp_path / "ws",
        {
            "a/grove.yml": "context:\n  default_rules_path: default.rules\n",
            "a/default.rules": "*.txt\n@default: ../b\n",
            "a/x.txt": "",
            "b/grove.yml": "context:\n  default_rules_path: default.rules\n",
            "b/default.rules": "*.md\n@default: ../a\n",
            "b/y.md": "",
        },
    )
    registry = WorkspaceRegistry.discover([workspace])

    result = make_engine(workspace / "a", registry=registry).resolve_file(workspace / "a" / "default.rules")

    assert result.included_files() == [workspace / "a" / "x.txt", workspace / "b" / "y.md"]
    assert result.warnings == []


def test_parse_errors_propagate(make_engine, project_dir: Path) -> None:
    with pytest.raises(ParseError):
        make_engine(project_dir).resolve("@expire-time never")


def test_cache_policy_and_views_are_returned(make_engine, project_dir: Path) -> None:
    result = make_engine(project_dir).resolve("@freeze-cache\n@view: docs/**\n*.md")

    assert result.cache_policy.freeze_cache is True
    assert result.view_patterns == ["docs/**"]


class _FakeRepositories(RepositoryProvider):
    def __init__(self, root: Path, fail: bool = False) -> None:
        self._root = root
        self._fail = fail
        self.requests: list[tuple[str, Optional[str]]] = []

    @property
    def checkout_root(self) -> Path:
        return self._root

    def ensure(self, url: str, version: Optional[str] = None) -> Path:
        self.requests.append((url, version))
        if self._fail:
            raise RepositoryError(url, "clone failed")
        return self._root / "owner" / "repo"


def test_remote_rules_use_repository_provider(make_tree, make_engine, tmp_path: Path) -> None:
    checkouts = make_tree(
        tmp_path / "checkouts",
        {"owner/repo/src/lib.go": "", "owner/repo/README.md": ""},
    )
    root = make_tree(tmp_path / "proj", {"main.go": ""})
    repositories = _FakeRepositories(checkouts)

    result = make_engine(root, repositories=repositories).resolve("@a:git:owner/repo@v1/src/**")

    assert result.included_files() == [checkouts / "owner" / "repo" / "src" / "lib.go"]
    assert repositories.requests == [("https://github.com/owner/repo", "v1")]


def test_remote_rules_without_provider_warn(make_tree, make_engine, project_dir: Path) -> None:
    root = make_tree(project_dir, {"main.go": ""})

    result = make_engine(root).resolve("https://github.com/owner/repo\n*.go")

    assert [warning.kind for warning in result.warnings] == [WarningKind.REPOSITORY]
    assert result.included_files() == [root / "main.go"]


def test_remote_checkout_failure_warns(make_tree, make_engine, tmp_path: Path) -> None:
    root = make_tree(tmp_path / "proj", {"main.go": ""})
    repositories = _FakeRepositories(tmp_path / "checkouts", fail=True)

    result = make_engine(root, repositories=repositories).resolve("@a:git:owner/repo::default")

    assert [warning.kind for warning in result.warnings] == [WarningKind.REPOSITORY]
