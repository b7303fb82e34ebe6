import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from context_rules.constants import DEFAULT_TOP_FILES
from context_rules.diff import diff_against_ruleset
from context_rules.engine import ResolutionEngine
from context_rules.errors import ContextRulesError, InvalidConfigError, ParseError
from context_rules.ignore import GitIgnoreOracle
from context_rules.repositories import ConfigRepository
from context_rules.rules.repository import RulesRepository
from context_rules.stats import result_stats
from context_rules.tui import ResolutionConsoleUI
from context_rules.utils import compact_home_path
from context_rules.workspaces import WorkspaceRegistry, WorkspaceService


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _rules_options(func: Callable) -> Callable:
    func = click.option(
        "--active-source",
        default=None,
        help="Rules file relative to the working directory (overrides .grove/rules).",
    )(func)
    func = click.option(
        "--rules-file",
        type=click.Path(path_type=Path, dir_okay=False, exists=True),
        default=None,
        help="Resolve this rules file instead of the project's active rules.",
    )(func)
    return func


def _registry() -> WorkspaceRegistry:
    try:
        return ConfigRepository().build_registry()
    except InvalidConfigError as exc:
        raise click.ClickException(str(exc))


def _engine(obj: Dict[str, Any]) -> ResolutionEngine:
    return ResolutionEngine(
        obj["work_dir"],
        registry=_registry(),
        ignore_oracle=GitIgnoreOracle(),
    )


def _load_rules(
    engine: ResolutionEngine, rules_file: Optional[Path], active_source: Optional[str]
) -> tuple[str, Optional[Path]]:
    if rules_file is not None:
        return rules_file.read_text(encoding="utf-8"), rules_file.resolve()
    text, path = RulesRepository(engine.work_dir).load_active_rules(active_source)
    if path is None:
        raise click.ClickException(
            f"No rules file found in {compact_home_path(engine.work_dir)} "
            "(expected .grove/rules, .grovectx or a grove.yml default)."
        )
    return text, path


def _resolve(obj: Dict[str, Any], rules_file: Optional[Path], active_source: Optional[str]):
    engine = _engine(obj)
    text, path = _load_rules(engine, rules_file, active_source)
    try:
        result = engine.resolve(text, source_path=path)
    except ParseError as exc:
        raise click.ClickException(f"Invalid rules in {compact_home_path(path or '')}: {exc}")
    return engine, result, path


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-C",
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Project directory to resolve rules in (defaults to the current directory).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, work_dir: Optional[Path]) -> None:
    """Resolve context rules into hot and cold file sets."""
    _configure_logging(verbose)
    ctx.obj = {"work_dir": (work_dir or Path.cwd()).resolve()}


@cli.command(help="Resolve the rules and list classified files.")
@_rules_options
@click.option("--show-omitted", is_flag=True, help="Also list files no rule matched.")
@click.option("--show-ignored", is_flag=True, help="Also list files ignored by version control.")
@click.option("--strict", is_flag=True, help="Exit with status 1 when warnings were reported.")
@click.pass_obj
def resolve(
    obj: Dict[str, Any],
    rules_file: Optional[Path],
    active_source: Optional[str],
    show_omitted: bool,
    show_ignored: bool,
    strict: bool,
) -> None:
    ui = ResolutionConsoleUI(Console())
    engine, result, path = _resolve(obj, rules_file, active_source)
    ui.render_resolution(
        result,
        engine.work_dir,
        source=compact_home_path(path) if path else "-",
        show_omitted=show_omitted,
        show_ignored=show_ignored,
    )
    if strict and result.warnings:
        raise click.exceptions.Exit(1)


@cli.command(help="Explain which rule line is responsible for each file.")
@_rules_options
@click.option("--line", "line_number", type=int, default=None, help="Show the files of a single rule line.")
@click.pass_obj
def explain(
    obj: Dict[str, Any],
    rules_file: Optional[Path],
    active_source: Optional[str],
    line_number: Optional[int],
) -> None:
    ui = ResolutionConsoleUI(Console())
    engine, result, _ = _resolve(obj, rules_file, active_source)
    ui.render_attribution(result, engine.work_dir, line=line_number)


@cli.command("line", help="Print the files a single rule line would include.")
@click.argument("pattern")
@click.option(
    "--rules-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=True),
    default=None,
    help="Rules file providing the line's section and global directives.",
)
@click.option("--line-number", type=int, default=0, help="1-based line of PATTERN in the rules file.")
@click.pass_obj
def line_command(
    obj: Dict[str, Any], pattern: str, rules_file: Optional[Path], line_number: int
) -> None:
    engine = _engine(obj)
    context_text = rules_file.read_text(encoding="utf-8") if rules_file is not None else None
    try:
        paths = engine.resolve_single_line(pattern, context_text, line_number)
    except ContextRulesError as exc:
        raise click.ClickException(str(exc))
    for path in paths:
        click.echo(str(path))


@cli.command(help="Break the hot and cold file sets down by language and token estimate.")
@_rules_options
@click.option(
    "--top",
    "top_n",
    type=click.IntRange(min=0),
    default=DEFAULT_TOP_FILES,
    show_default=True,
    help="Number of largest files to show.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the statistics as JSON.")
@click.pass_obj
def stats(
    obj: Dict[str, Any],
    rules_file: Optional[Path],
    active_source: Optional[str],
    top_n: int,
    as_json: bool,
) -> None:
    engine, result, _ = _resolve(obj, rules_file, active_source)
    collected = result_stats(result, top_n=top_n)
    if as_json:
        click.echo(json.dumps([item.as_dict() for item in collected], indent=2))
        return
    ResolutionConsoleUI(Console()).render_stats(collected, engine.work_dir)


@cli.command(help="Compare the included files with a named ruleset ('empty' by default).")
@click.argument("ruleset", default="empty")
@_rules_options
@click.pass_obj
def diff(
    obj: Dict[str, Any],
    ruleset: str,
    rules_file: Optional[Path],
    active_source: Optional[str],
) -> None:
    engine, result, _ = _resolve(obj, rules_file, active_source)
    try:
        changes = diff_against_ruleset(engine, result, ruleset)
    except ContextRulesError as exc:
        raise click.ClickException(str(exc))
    ResolutionConsoleUI(Console()).render_diff(changes, ruleset, engine.work_dir)


@cli.command(help="List projects discovered in the configured workspaces.")
def projects() -> None:
    ui = ResolutionConsoleUI(Console())
    ui.render_projects(_registry().all_projects())


@cli.group(help="Manage workspace roots that aliases and imports resolve against.")
def workspaces() -> None:
    pass


@workspaces.command("add", help="Add a workspace by name and path.")
@click.argument("name")
@click.argument("path", type=click.Path(path_type=Path))
def workspaces_add(name: str, path: Path) -> None:
    ui = ResolutionConsoleUI(Console())
    try:
        ConfigRepository().add_workspace(name, path)
    except (ValueError, InvalidConfigError) as exc:
        raise click.ClickException(str(exc))
    ui.render_workspace_saved(name, str(path.expanduser().resolve()))


@workspaces.command("remove", help="Remove a workspace from config by name.")
@click.argument("name")
def workspaces_remove(name: str) -> None:
    ui = ResolutionConsoleUI(Console())
    config = ConfigRepository()
    try:
        existing = {item["name"]: item["path"] for item in config.load_workspaces()}
        removed = config.remove_workspace(name)
    except InvalidConfigError as exc:
        raise click.ClickException(str(exc))
    if not removed:
        raise click.ClickException(f"Workspace not found: {name}")
    ui.render_workspace_saved(name, existing.get(name, ""), removed=True)


@workspaces.command("list", help="List configured workspaces and discovered projects.")
def workspaces_list() -> None:
    ui = ResolutionConsoleUI(Console())
    workspace_service = WorkspaceService()
    try:
        configured = ConfigRepository().load_workspaces()
    except InvalidConfigError as exc:
        raise click.ClickException(str(exc))

    overview: list[dict] = []
    for item in configured:
        workspace_path = Path(item["path"])
        repos: list[str] = []
        if workspace_path.exists() and workspace_path.is_dir():
            repos = [
                str(path.relative_to(workspace_path)) or "."
                for path in workspace_service.discover_git_repos(workspace_path)
            ]
        overview.append({"name": item["name"], "path": item["path"], "repos": repos})

    ui.render_workspaces_overview(overview)


def main() -> int:
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.ClickException as exc:
        exc.show()
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
