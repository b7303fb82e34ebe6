from pathlib import Path
from typing import Optional

from rich.console import Console

from context_rules.diff import ContextDiff
from context_rules.models import FileStatus, ResolutionWarning
from context_rules.results import ResolutionResult
from context_rules.stats import ContextStats
from context_rules.tui.enums import UIStyle
from context_rules.tui.sections import UISection
from context_rules.tui.tables import (
    AttributionView,
    DiffView,
    ProjectTable,
    ResolutionTable,
    StatsView,
    WorkspaceTable,
    display_path,
)
from context_rules.utils import compact_home_path, compact_home_paths_in_text
from context_rules.workspaces import ProjectNode


class ResolutionConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_resolution(
        self,
        result: ResolutionResult,
        work_dir: Path,
        source: str,
        show_omitted: bool = False,
        show_ignored: bool = False,
    ) -> None:
        self.console.print(
            UISection.wrap(
                "resolution overview",
                ResolutionTable.summary_block(result, source=source),
                style=UIStyle.BLUE.value,
            )
        )

        shown = {FileStatus.INCLUDED_HOT, FileStatus.INCLUDED_COLD, FileStatus.EXCLUDED_BY_RULE}
        if show_omitted:
            shown.add(FileStatus.OMITTED_NO_MATCH)
        if show_ignored:
            shown.add(FileStatus.IGNORED_BY_VCS)
        files = [item for item in result.files if item.status in shown]

        if files:
            self.console.print(
                UISection.wrap(
                    "files",
                    ResolutionTable.files_table(files, work_dir),
                    style=UIStyle.CYAN.value,
                )
            )
        else:
            self.console.print(
                UISection.note("files", "No files matched the rules.", style=UIStyle.DIM.value)
            )

        if result.view_patterns:
            self.console.print(
                UISection.bullets(
                    "view",
                    [compact_home_paths_in_text(item) for item in result.view_patterns],
                    style=UIStyle.DIM.value,
                )
            )
        self.render_warnings(result.warnings)

    def render_attribution(self, result: ResolutionResult, work_dir: Path, line: Optional[int] = None) -> None:
        if line is None:
            self.console.print(
                UISection.wrap(
                    "attribution",
                    AttributionView.lines_table(result.attribution, result.entries),
                    style=UIStyle.BLUE.value,
                )
            )
            self.render_warnings(result.warnings)
            return

        attribution = result.attribution
        sections = [
            ("included", [display_path(path, work_dir) for path in attribution.included_for(line)], UIStyle.GREEN),
            ("excluded", [display_path(path, work_dir) for path in attribution.excluded_for(line)], UIStyle.MAGENTA),
            (
                "superseded",
                [
                    f"{display_path(match.path, work_dir)} (won by line {match.winning_line})"
                    for match in attribution.filtered_for(line)
                ],
                UIStyle.DIM,
            ),
        ]
        for title, items, style in sections:
            if items:
                self.console.print(UISection.bullets(f"line {line}: {title}", items, style=style.value))
        if not any(items for _, items, _ in sections):
            self.console.print(
                UISection.note(f"line {line}", "No files attributed to this line.", style=UIStyle.DIM.value)
            )

    def render_stats(self, collected: list[ContextStats], work_dir: Path) -> None:
        if not collected:
            self.console.print(
                UISection.note("stats", "No files in context. Check your rules file.", style=UIStyle.YELLOW.value)
            )
            return

        for stats in collected:
            title = "hot context" if stats.context_type == "hot" else "cold (cached) context"
            self.console.print(
                UISection.wrap(title, StatsView.summary_block(stats), style=UIStyle.BLUE.value)
            )
            self.console.print(
                UISection.wrap(f"{title}: languages", StatsView.languages_table(stats), style=UIStyle.CYAN.value)
            )
            if stats.largest_files:
                self.console.print(
                    UISection.wrap(
                        f"{title}: largest files",
                        StatsView.largest_files_table(stats, work_dir),
                        style=UIStyle.CYAN.value,
                    )
                )
            self.console.print(
                UISection.wrap(
                    f"{title}: token distribution",
                    StatsView.distribution_table(stats),
                    style=UIStyle.DIM.value,
                )
            )

    def render_diff(self, diff: ContextDiff, compare_name: str, work_dir: Path) -> None:
        subtitle = f"current vs {compare_name}"
        if diff.is_empty:
            self.console.print(
                UISection.note("diff", f"No differences with '{compare_name}'.", style=UIStyle.DIM.value)
            )
        else:
            self.console.print(
                UISection.wrap(
                    "diff",
                    DiffView.changes_table(diff, work_dir),
                    style=UIStyle.CYAN.value,
                    subtitle=subtitle,
                )
            )
        self.console.print(
            UISection.wrap("diff summary", DiffView.summary_block(diff), style=UIStyle.BLUE.value)
        )

    def render_warnings(self, warnings: list[ResolutionWarning]) -> None:
        if not warnings:
            return
        self.console.print(
            UISection.bullets(
                "warnings",
                [compact_home_paths_in_text(str(item)) for item in warnings],
                style=UIStyle.YELLOW.value,
            )
        )

    def render_workspace_saved(self, name: str, path: str, removed: bool = False) -> None:
        verb = "removed" if removed else "added"
        border_style = UIStyle.YELLOW.value if removed else UIStyle.GREEN.value
        self.console.print(
            UISection.note(
                "workspace",
                f"Workspace {verb}: [bold]{name}[/bold]\n{compact_home_path(path)}",
                style=border_style,
            )
        )

    def render_workspaces_overview(self, items: list[dict]) -> None:
        if not items:
            self.console.print(
                UISection.note("workspaces", "No workspaces configured.", style=UIStyle.YELLOW.value)
            )
            return

        self.console.print(
            UISection.wrap("workspaces", WorkspaceTable.overview_table(items), style=UIStyle.BLUE.value)
        )
        self.console.print(
            UISection.wrap(
                "workspace projects",
                WorkspaceTable.repos_table(items),
                style=UIStyle.CYAN.value,
            )
        )

    def render_projects(self, nodes: list[ProjectNode]) -> None:
        if not nodes:
            self.console.print(
                UISection.note(
                    "projects",
                    "No projects discovered. Add a workspace first:\n- context-rules workspaces add <name> <path>",
                    style=UIStyle.YELLOW.value,
                )
            )
            return
        self.console.print(
            UISection.wrap("projects", ProjectTable.projects_table(nodes), style=UIStyle.BLUE.value)
        )
