"""Run the installed lint tools and collect their diagnostics."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .adapters import (
    FileLineReader,
    parse_pycodestyle_output,
    parse_pyright_json,
    parse_ruff_json,
)
from .columns import TAB_WIDTH
from .errors import ParseError
from .models import DiagnosticRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120

# tool name -> (argv prefix, parser)
_TOOL_COMMANDS: Dict[str, Tuple[List[str], Callable[..., List[DiagnosticRecord]]]] = {
    "pycodestyle": (["pycodestyle"], parse_pycodestyle_output),
    "ruff": (["ruff", "check", "--output-format=json", "--no-fix"], parse_ruff_json),
    "pyright": (["pyright", "--outputjson"], parse_pyright_json),
}


@dataclass
class LintRun:
    """Diagnostics gathered from one invocation of the tools."""

    diagnostics: List[DiagnosticRecord] = field(default_factory=list)
    tools_run: List[str] = field(default_factory=list)
    tools_missing: List[str] = field(default_factory=list)
    tools_failed: List[str] = field(default_factory=list)


def _run_tool(cmd: List[str], cwd: Path, timeout: int) -> Tuple[str, str, int]:
    """Run a tool and return (stdout, stderr, returncode)."""
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout, cwd=str(cwd),
        )
        return result.stdout, result.stderr, result.returncode
    except subprocess.TimeoutExpired:
        logger.warning("%s timed out after %ds", cmd[0], timeout)
        return "", "", -1
    except FileNotFoundError:
        return "", "", -1


def run_linters(
    paths: Sequence[str],
    tools: Sequence[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
    tab_width: int = TAB_WIDTH,
) -> LintRun:
    """Invoke each requested tool on *paths* and parse what it prints.

    Tools that are not installed are skipped.  A tool whose output cannot be
    parsed is recorded in ``tools_failed``; the others still contribute.
    """
    run = LintRun()
    targets = list(paths) or ["."]
    reader = FileLineReader()

    for tool in tools:
        if tool not in _TOOL_COMMANDS:
            logger.warning("Unknown tool %r skipped", tool)
            continue
        if shutil.which(tool) is None:
            logger.info("%s is not installed, skipping", tool)
            run.tools_missing.append(tool)
            continue

        argv, parser = _TOOL_COMMANDS[tool]
        stdout, stderr, code = _run_tool(argv + targets, cwd, timeout)
        if code == -1:
            run.tools_failed.append(tool)
            continue
        try:
            records = parser(stdout, base_dir=str(cwd), line_reader=reader, tab_width=tab_width)
        except ParseError as exc:
            logger.warning("%s: %s", tool, exc)
            if stderr.strip():
                logger.debug("%s stderr: %s", tool, stderr.strip())
            run.tools_failed.append(tool)
            continue

        logger.debug("%s reported %d diagnostics", tool, len(records))
        run.diagnostics.extend(records)
        run.tools_run.append(tool)

    return run


def load_saved_outputs(
    ruff_json: Optional[Path] = None,
    pyright_json: Optional[Path] = None,
    pycodestyle: Optional[Path] = None,
    base_dir: Optional[Path] = None,
    tab_width: int = TAB_WIDTH,
) -> LintRun:
    """Build a ``LintRun`` from tool outputs saved to files.

    Raises:
        ParseError: A saved file does not hold the expected format.
    """
    run = LintRun()
    reader = FileLineReader()
    base = str(base_dir) if base_dir is not None else None
    for tool, path in (("pycodestyle", pycodestyle), ("ruff", ruff_json), ("pyright", pyright_json)):
        if path is None:
            continue
        parser = _TOOL_COMMANDS[tool][1]
        raw = Path(path).read_text(encoding="utf-8")
        run.diagnostics.extend(parser(raw, base_dir=base, line_reader=reader, tab_width=tab_width))
        run.tools_run.append(tool)
    return run
