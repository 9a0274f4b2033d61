"""Typer-based CLI for lintlens."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import LintLensConfig, load_config
from .errors import LintLensError
from .git import GitClient
from .linters import LintRun, load_saved_outputs, run_linters
from .models import Severity
from .render import console, render_report
from .semantic import build_semantic_model
from .sorting import order_diagnostics

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="🔎 lintlens: Python lint results ordered root cause first, with diff context.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def configure_logging(verbose: bool = False) -> None:
    """Send ``lintlens`` log records to stderr through rich."""
    level = logging.DEBUG if verbose else logging.WARNING
    package_logger = logging.getLogger("lintlens")
    package_logger.setLevel(level)
    package_logger.propagate = False

    # avoid duplicate handlers when the app is invoked repeatedly
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=verbose)
    handler.setLevel(level)
    package_logger.addHandler(handler)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"lintlens v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr."),
):
    """lintlens: run pycodestyle, ruff and pyright and show root causes first."""
    configure_logging(verbose)


# ===================================================================
# Shared pipeline
# ===================================================================

def _load_settings(
    root: Path,
    config_path: Optional[Path],
    **overrides,
) -> LintLensConfig:
    try:
        return load_config(root, config_path).merged(**overrides)
    except LintLensError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2)


def _present(run: LintRun, config: LintLensConfig, root: Path, use_git: bool) -> int:
    """Order, render and compute the exit code for one lint run."""
    if not run.diagnostics:
        console.print("[green]✅ No diagnostics reported.[/green]")
        return 0

    model = build_semantic_model(root) if config.semantic_ordering else None
    ordered = order_diagnostics(run.diagnostics, model)

    git = GitClient(root) if use_git else None
    diff_range = git.resolve_diff_range(config.upstream) if git is not None else None
    render_report(ordered, config, Path.cwd(), git=git, diff_range=diff_range)

    return 1 if any(d.severity >= Severity.WARNING for d in run.diagnostics) else 0


# ===================================================================
# Commands
# ===================================================================

@app.command("check")
def check(
    paths: Optional[List[str]] = typer.Argument(None, help="Files or directories to lint (default: project root)."),
    root: Path = typer.Option(Path("."), "--root", "-r", exists=True, file_okay=False, help="Project root."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Explicit lintlens TOML file."),
    tools: Optional[List[str]] = typer.Option(None, "--tool", "-t", help="Tool to run; repeat for several."),
    max_messages: Optional[int] = typer.Option(None, "--max", "-n", help="Diagnostics shown in detail."),
    diff_context: Optional[int] = typer.Option(None, "--context", "-U", help="Unified diff context lines."),
    upstream: Optional[str] = typer.Option(None, "--upstream", help="Revision to diff against."),
    no_semantic: bool = typer.Option(False, "--no-semantic", help="Skip dependency ordering."),
    no_blame: bool = typer.Option(False, "--no-blame", help="Do not show git blame."),
    history_limit: Optional[int] = typer.Option(None, "--history", help="Commits of line history shown (0 hides it)."),
    no_git: bool = typer.Option(False, "--no-git", help="Do not call git at all."),
):
    """Run the lint tools and print diagnostics, root causes first."""
    root = root.resolve()
    config = _load_settings(
        root,
        config_path,
        tools=tools or None,
        max_messages=max_messages,
        diff_context=diff_context,
        upstream=upstream,
        semantic_ordering=False if no_semantic else None,
        show_blame=False if no_blame else None,
        history_limit=history_limit,
    )

    run = run_linters(paths or [str(root)], config.tools, root, tab_width=config.tab_width)
    if run.tools_missing:
        console.print(f"[yellow]Not installed: {', '.join(run.tools_missing)}[/yellow]")
    if not run.tools_run:
        console.print("[red]No lint tool could be run.[/red]")
        raise typer.Exit(2)

    raise typer.Exit(_present(run, config, root, use_git=not no_git))


@app.command("order")
def order(
    ruff_json: Optional[Path] = typer.Option(None, "--ruff-json", exists=True, dir_okay=False, help="Saved `ruff check --output-format json` output."),
    pyright_json: Optional[Path] = typer.Option(None, "--pyright-json", exists=True, dir_okay=False, help="Saved `pyright --outputjson` output."),
    pycodestyle: Optional[Path] = typer.Option(None, "--pycodestyle", exists=True, dir_okay=False, help="Saved pycodestyle output."),
    root: Path = typer.Option(Path("."), "--root", "-r", exists=True, file_okay=False, help="Project root."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Explicit lintlens TOML file."),
    max_messages: Optional[int] = typer.Option(None, "--max", "-n", help="Diagnostics shown in detail."),
    no_semantic: bool = typer.Option(False, "--no-semantic", help="Skip dependency ordering."),
    no_git: bool = typer.Option(False, "--no-git", help="Do not call git at all."),
):
    """Order and print diagnostics from previously saved tool outputs."""
    if ruff_json is None and pyright_json is None and pycodestyle is None:
        raise typer.BadParameter("Provide at least one of --ruff-json, --pyright-json, --pycodestyle.")

    root = root.resolve()
    config = _load_settings(
        root,
        config_path,
        max_messages=max_messages,
        semantic_ordering=False if no_semantic else None,
    )
    try:
        run = load_saved_outputs(ruff_json, pyright_json, pycodestyle, base_dir=root, tab_width=config.tab_width)
    except LintLensError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2)

    raise typer.Exit(_present(run, config, root, use_git=not no_git))


if __name__ == "__main__":
    app()
