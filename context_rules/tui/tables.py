from pathlib import Path

from rich.markup import escape
from rich.table import Column, Table

from context_rules.attribution import AttributionTable
from context_rules.diff import ContextDiff
from context_rules.models import FileStatus, ResolvedFile
from context_rules.results import ResolutionResult
from context_rules.rules.models import RuleEntry
from context_rules.stats import ContextStats, format_bytes, format_token_count
from context_rules.tui.enums import FILE_STATUS_LABEL, FILE_STATUS_STYLE, UIStyle
from context_rules.utils import compact_home_path, is_under
from context_rules.workspaces import ProjectNode


def display_path(path: Path, work_dir: Path) -> str:
    if is_under(path, work_dir):
        return path.relative_to(work_dir).as_posix() or "."
    return compact_home_path(path)


class ResolutionTable:
    @staticmethod
    def summary_block(result: ResolutionResult, source: str):
        counts = result.counts()
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Rules", source)
        for status in FileStatus:
            style = FILE_STATUS_STYLE[status]
            table.add_row(
                FILE_STATUS_LABEL[status].capitalize(),
                f"[{style}]{counts[status]}[/{style}]",
            )
        table.add_row("Cache", result.cache_policy.describe())
        return table

    @staticmethod
    def files_table(files: list[ResolvedFile], work_dir: Path) -> Table:
        table = Table(
            Column(header="Status", width=10),
            Column(header="Line", width=6, justify="right"),
            Column(header="Path", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for item in files:
            style = FILE_STATUS_STYLE.get(item.status, UIStyle.WHITE.value)
            label = FILE_STATUS_LABEL[item.status]
            path_text = display_path(item.path, work_dir)
            if item.is_directory:
                path_text = f"{path_text}/"
            line = str(item.winning_line) if item.winning_line is not None else ""
            table.add_row(f"[{style}]{label}[/{style}]", line, escape(path_text))
        return table


class AttributionView:
    @staticmethod
    def lines_table(attribution: AttributionTable, entries: list[RuleEntry]) -> Table:
        rules_by_line: dict[int, list[str]] = {}
        for entry in entries:
            rendered = rules_by_line.setdefault(entry.source_line, [])
            if entry.render() not in rendered:
                rendered.append(entry.render())

        table = Table(
            Column(header="Line", width=6, justify="right"),
            Column(header="Rule", overflow="fold", ratio=3),
            Column(header="Included", width=9, justify="right"),
            Column(header="Excluded", width=9, justify="right"),
            Column(header="Superseded", width=11, justify="right"),
            expand=True,
            header_style="bold",
        )
        for line in sorted({*rules_by_line, *attribution.lines()}):
            table.add_row(
                str(line),
                escape("\n".join(rules_by_line.get(line, []))),
                f"[{UIStyle.GREEN.value}]{len(attribution.included_for(line))}[/{UIStyle.GREEN.value}]",
                f"[{UIStyle.MAGENTA.value}]{len(attribution.excluded_for(line))}[/{UIStyle.MAGENTA.value}]",
                f"[{UIStyle.DIM.value}]{len(attribution.filtered_for(line))}[/{UIStyle.DIM.value}]",
            )
        return table


class WorkspaceTable:
    @staticmethod
    def overview_table(items: list[dict]) -> Table:
        table = Table(
            Column(header="Workspace", width=24),
            Column(header="Path", overflow="ellipsis"),
            Column(header="Projects", width=9, justify="right"),
            expand=True,
            header_style="bold",
        )
        for item in items:
            table.add_row(item["name"], compact_home_path(item["path"]), str(len(item["repos"])))
        return table

    @staticmethod
    def repos_table(items: list[dict]) -> Table:
        table = Table(
            Column(header="Workspace", width=24),
            Column(header="Projects", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for item in items:
            table.add_row(item["name"], "\n".join(item["repos"]) or "-")
        return table


class ProjectTable:
    @staticmethod
    def projects_table(nodes: list[ProjectNode]) -> Table:
        table = Table(
            Column(header="Name", width=24),
            Column(header="Kind", width=20),
            Column(header="Depth", width=6, justify="right"),
            Column(header="Path", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for node in nodes:
            table.add_row(node.name, node.kind.value, str(node.depth), compact_home_path(node.path))
        return table


class StatsView:
    @staticmethod
    def summary_block(stats: ContextStats):
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Files", str(stats.total_files))
        table.add_row("Tokens", f"~{format_token_count(stats.total_tokens)}")
        table.add_row("Size", format_bytes(stats.total_size))
        table.add_row("Average", f"{format_token_count(stats.avg_tokens)} tokens/file")
        table.add_row("Median", f"{format_token_count(stats.median_tokens)} tokens/file")
        return table

    @staticmethod
    def languages_table(stats: ContextStats) -> Table:
        table = Table(
            Column(header="Language", width=20),
            Column(header="Share", width=7, justify="right"),
            Column(header="Tokens", width=9, justify="right"),
            Column(header="Files", width=6, justify="right"),
            expand=True,
            header_style="bold",
        )
        for language in stats.languages_by_tokens():
            table.add_row(
                escape(language.name),
                f"{language.percentage:.1f}%",
                format_token_count(language.total_tokens),
                str(language.file_count),
            )
        return table

    @staticmethod
    def largest_files_table(stats: ContextStats, work_dir: Path) -> Table:
        table = Table(
            Column(header="#", width=3, justify="right"),
            Column(header="Path", overflow="fold"),
            Column(header="Tokens", width=9, justify="right"),
            Column(header="Share", width=7, justify="right"),
            expand=True,
            header_style="bold",
        )
        for index, item in enumerate(stats.largest_files, start=1):
            if item.tokens > 10000:
                style = UIStyle.RED.value
            elif item.tokens > 5000:
                style = UIStyle.YELLOW.value
            else:
                style = UIStyle.CYAN.value
            table.add_row(
                str(index),
                escape(display_path(item.path, work_dir)),
                f"[{style}]{format_token_count(item.tokens)}[/{style}]",
                f"{item.percentage:.1f}%",
            )
        return table

    @staticmethod
    def distribution_table(stats: ContextStats) -> Table:
        table = Table(
            Column(header="Range", width=15),
            Column(header="Files", width=6, justify="right"),
            Column(header="Share", width=7, justify="right"),
            Column(header=""),
            expand=True,
            header_style="bold",
        )
        for bucket in stats.distribution:
            bar = "█" * int(bucket.percentage / 5)
            table.add_row(
                escape(bucket.label),
                str(bucket.file_count),
                f"{bucket.percentage:.1f}%",
                f"[{UIStyle.GREEN.value}]{bar}[/{UIStyle.GREEN.value}]",
            )
        return table


class DiffView:
    @staticmethod
    def changes_table(diff: ContextDiff, work_dir: Path) -> Table:
        table = Table(
            Column(header="", width=2),
            Column(header="Path", overflow="fold"),
            Column(header="Tokens", width=9, justify="right"),
            expand=True,
            header_style="bold",
        )
        for marker, style, items in (("+", UIStyle.GREEN, diff.added), ("-", UIStyle.RED, diff.removed)):
            for item in items:
                table.add_row(
                    f"[{style.value}]{marker}[/{style.value}]",
                    escape(display_path(item.path, work_dir)),
                    format_token_count(item.tokens),
                )
        return table

    @staticmethod
    def summary_block(diff: ContextDiff):
        def _signed(delta: int, text: str) -> str:
            return f"+{text}" if delta > 0 else (f"-{text}" if delta < 0 else text)

        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row(
            "Files",
            f"{diff.compare_files} → {diff.current_files} ({_signed(diff.file_delta, str(abs(diff.file_delta)))})",
        )
        table.add_row(
            "Tokens",
            f"{format_token_count(diff.compare_tokens)} → {format_token_count(diff.current_tokens)} "
            f"({_signed(diff.token_delta, format_token_count(abs(diff.token_delta)))})",
        )
        table.add_row(
            "Size",
            f"{format_bytes(diff.compare_size)} → {format_bytes(diff.current_size)} "
            f"({_signed(diff.size_delta, format_bytes(abs(diff.size_delta)))})",
        )
        return table
