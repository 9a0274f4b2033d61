"""Console presentation of ordered diagnostics."""

from __future__ import annotations

import os
from collections import Counter
from pathlib import Path
from typing import AbstractSet, Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .adapters import FileLineReader
from .config import LintLensConfig
from .git import BlameInfo, DiffRange, GitClient, LineHistory
from .highlight import caret_line, highlight_range, workspace_snippet
from .models import DiagnosticRecord, DiagnosticSource, DiffBlock, Severity

console = Console()

_SEVERITY_LABELS: Dict[Severity, str] = {
    Severity.ERROR: "[ERROR]",
    Severity.WARNING: "[WARN ]",
    Severity.INFO: "[INFO ]",
}
_SEVERITY_STYLES: Dict[Severity, str] = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "bold yellow",
    Severity.INFO: "bold blue",
}


def display_path(path: str, cwd: Path) -> str:
    try:
        return os.path.relpath(path, cwd).replace(os.sep, "/")
    except ValueError:
        return path


def print_header(record: DiagnosticRecord, cwd: Path) -> None:
    header = Text()
    header.append(_SEVERITY_LABELS[record.severity], style=_SEVERITY_STYLES[record.severity])
    header.append(f" {display_path(record.file_path, cwd)}:{record.line}:{record.column}", style="cyan")
    header.append(f" {record.rule_label} ({record.source.value})", style="dim")
    header.append(f" - {record.message}")
    console.print()
    console.print(header)


def print_diff_block(block: DiffBlock) -> None:
    console.print(block.heading, style="dim", markup=False, highlight=False)
    for line in block.lines:
        style = None
        if line.startswith("+"):
            style = "green"
        elif line.startswith("-"):
            style = "red"
        elif line.lstrip().startswith("^"):
            style = "bold red"
        console.print(line, style=style, markup=False, highlight=False)
    console.print(block.footer, style="dim", markup=False, highlight=False)


def print_workspace_context(
    record: DiagnosticRecord,
    lines: List[str],
    tab_width: int,
    skip: AbstractSet[int] = frozenset(),
) -> None:
    """Numbered working-tree lines with a caret under the reported column.

    Lines in *skip* were already printed from a diff block.
    """
    rows = workspace_snippet(lines, record.line, skip=skip)
    if not rows:
        return
    console.print("--- workspace ---", style="dim", markup=False, highlight=False)
    for row in rows:
        console.print(row, markup=False, highlight=False)
        if row.startswith(f"{record.line:>4} | "):
            text = lines[record.line - 1]
            caret = caret_line(text, highlight_range(record, text, tab_width), tab_width)
            console.print(" " * 7 + caret.rstrip(), style="bold red", markup=False, highlight=False)


def print_blame(info: BlameInfo, record: DiagnosticRecord, cwd: Path) -> None:
    path = display_path(record.file_path, cwd)
    console.print(f"--- git blame (line {record.line}) ---", style="dim", markup=False, highlight=False)
    if not info.committed:
        console.print("Not committed yet", style="italic", markup=False, highlight=False)
        return
    console.print(
        f"commit {info.short_hash} ({info.date})  Author: {info.author}",
        markup=False,
        highlight=False,
    )
    console.print(f"summary: {info.summary}", markup=False, highlight=False)
    console.print(f"Command: git blame -L {record.line},{record.line} -- {path}", style="dim", markup=False)


def print_history(history: LineHistory, record: DiagnosticRecord, cwd: Path) -> None:
    """Recent commits that changed the diagnostic's line."""
    path = display_path(record.file_path, cwd)
    console.print(
        "--- history (recent line updates) -------------------------",
        style="dim",
        markup=False,
        highlight=False,
    )
    for entry in history.entries:
        console.print(
            f"--- commit {entry.short_hash} ({entry.date}) -------------------------",
            style="dim",
            markup=False,
            highlight=False,
        )
        console.print(f"summary: {entry.summary}", markup=False, highlight=False)
        console.print(f"git show {entry.short_hash} -- {path} | cat", style="dim", markup=False)
        if not entry.patch:
            console.print(f"(code for commit {entry.short_hash} is not available)", style="italic", markup=False)
        for row in entry.patch:
            style = "green" if row.startswith("+") else "red" if row.startswith("-") else None
            console.print(row, style=style, markup=False, highlight=False)
    console.print(f"Total commits for line: {history.total_commits}", markup=False, highlight=False)
    console.print(f"Full list: git log --follow -- {path} | cat", style="dim", markup=False)


def print_statistics(diagnostics: Sequence[DiagnosticRecord], shown: int) -> None:
    """Summary table of counts per tool and severity."""
    counts = Counter((d.source, d.severity) for d in diagnostics)

    table = Table(title="\nSummary", show_header=True, show_lines=False)
    table.add_column("Tool", style="cyan", width=12)
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Info", justify="right")
    for source in DiagnosticSource:
        row = [counts[(source, sev)] for sev in (Severity.ERROR, Severity.WARNING, Severity.INFO)]
        if any(row):
            table.add_row(source.value, *(str(n) for n in row))
    console.print(table)

    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    warnings = sum(1 for d in diagnostics if d.severity == Severity.WARNING)
    console.print(
        f"Total: {errors} errors, {warnings} warnings "
        f"({shown} of {len(diagnostics)} diagnostics shown)."
    )


def render_report(
    ordered: Sequence[DiagnosticRecord],
    config: LintLensConfig,
    cwd: Path,
    git: Optional[GitClient] = None,
    diff_range: Optional[DiffRange] = None,
    reader: Optional[FileLineReader] = None,
) -> int:
    """Print the first ``config.max_messages`` diagnostics and the summary.

    Returns:
        Number of diagnostics printed in detail.
    """
    reader = reader or FileLineReader()
    shown = list(ordered[: config.max_messages])
    for record in shown:
        print_header(record, cwd)

        block = None
        if git is not None and diff_range is not None:
            block = git.diff_block_for(record, diff_range, config.diff_context, config.tab_width)
        skip: AbstractSet[int] = frozenset()
        if block is not None:
            print_diff_block(block)
            skip = block.head_line_numbers
        lines = reader.lines(record.file_path)
        if lines:
            print_workspace_context(record, lines, config.tab_width, skip=skip)

        if git is not None and config.show_blame:
            info = git.blame_line(record.file_path, record.line)
            if info is not None:
                print_blame(info, record, cwd)
        if git is not None and config.history_limit > 0:
            history = git.line_history(record.file_path, record.line, config.history_limit)
            if history is not None:
                print_history(history, record, cwd)

    print_statistics(ordered, len(shown))
    return len(shown)
