import pytest

from context_rules.patterns import has_glob, match_pattern, pattern_error, static_prefix


@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("*.go", "main.go", True),
        ("*.go", "pkg/util/helper.go", True),
        ("*.GO", "Main.go", True),
        ("src/*.go", "src/main.go", True),
        ("src/*.go", "src/pkg/main.go", False),
        ("tests", "pkg/tests/unit.py", True),
        ("file?.txt", "file1.txt", True),
        ("file[0-9].txt", "filea.txt", False),
        ("file[!0-9].txt", "filea.txt", True),
        ("build/", "build/out/app.js", True),
    ],
)
def test_match_pattern_single_star(pattern: str, path: str, expected: bool) -> None:
    assert match_pattern(pattern, path) is expected


@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("**/*.go", "a/b/c.go", True),
        ("**/*.go", "c.go", True),
        ("my-repo/**", "my-repo/x.txt", True),
        ("my-repo/**", "my-repo-other/x.txt", False),
        ("**/node_modules/**", "web/node_modules/pkg/index.js", True),
        ("**/node_modules/**", "web/src/index.js", False),
        ("src/**/*_test.go", "src/a/b/x_test.go", True),
        ("src/**/*_test.go", "src/x_test.go", True),
        ("src/**/*_test.go", "lib/x_test.go", False),
        ("docs/**/api/*.md", "docs/v1/api/index.md", True),
        ("docs/**/api/*.md", "docs/v1/guide/index.md", False),
        ("a/**/b/**/c.txt", "a/x/b/y/z/c.txt", True),
        ("a/**/b/**/c.txt", "a/x/y/c.txt", False),
        ("/abs/proj/**", "/abs/proj/src/main.go", True),
        ("/abs/proj/**", "/abs/project/src/main.go", False),
    ],
)
def test_match_pattern_double_star(pattern: str, path: str, expected: bool) -> None:
    assert match_pattern(pattern, path) is expected


def test_unclosed_character_class_never_matches() -> None:
    assert pattern_error("src/[abc") is not None
    assert match_pattern("[abc", "a") is False


def test_valid_pattern_has_no_error() -> None:
    assert pattern_error("src/**/*.{go}") is None
    assert pattern_error("file[!0-9].txt") is None


def test_has_glob() -> None:
    assert has_glob("src/*.go")
    assert has_glob("file?.txt")
    assert has_glob("[ab]")
    assert not has_glob("src/main.go")


def test_static_prefix_stops_at_first_glob_segment() -> None:
    assert static_prefix("src/**/x.go") == "src"
    assert static_prefix("/abs/proj/*.go") == "/abs/proj"
    assert static_prefix("../sib/docs/**") == "../sib/docs"
    assert static_prefix("*.go") == ""
