"""Parsers from native tool output to ``DiagnosticRecord`` lists.

Each parser is pure: it takes the raw text a tool printed and returns
records with absolute file paths and 1-based positions.

Python tools count columns in characters.  When a *line_reader* is given,
character columns on lines containing tabs are converted to the visual
columns the rest of the pipeline works with.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tokenize
from typing import Any, Callable, Dict, List, Optional

from .columns import TAB_WIDTH, visual_column_at
from .errors import ParseError
from .models import DiagnosticRecord, DiagnosticSource, Severity

logger = logging.getLogger(__name__)

LineReader = Callable[[str, int], Optional[str]]

_PYCODESTYLE_RE = re.compile(
    r"^(?P<path>.+?):(?P<row>\d+):(?P<col>\d+): (?P<code>[A-Z]+\d+) (?P<message>.*)$"
)

_PYRIGHT_SEVERITY: Dict[str, Severity] = {
    "error": Severity.ERROR,
    "warning": Severity.WARNING,
    "information": Severity.INFO,
    "hint": Severity.INFO,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _absolute(path: str, base_dir: Optional[str]) -> str:
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), path))


def _visual(
    path: str,
    line: int,
    char_column: int,
    line_reader: Optional[LineReader],
    tab_width: int,
) -> int:
    """Convert a 1-based character column to a 1-based visual column."""
    char_column = max(1, char_column)
    if line_reader is None:
        return char_column
    text = line_reader(path, line)
    if not text or "\t" not in text:
        return char_column
    return visual_column_at(text, char_column - 1, tab_width) + 1


def _ruff_severity(code: Optional[str]) -> Severity:
    """``F`` (pyflakes) and ``E9`` (syntax/io) codes are errors."""
    if not code:
        return Severity.WARNING
    code = code.upper()
    if code.startswith("F") or code.startswith("E9"):
        return Severity.ERROR
    return Severity.WARNING


def _pycodestyle_severity(code: str) -> Severity:
    return Severity.ERROR if code.upper().startswith("E9") else Severity.WARNING


def _load_json(raw: str, parser_name: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(raw, parser_name) from exc


# ---------------------------------------------------------------------------
# ruff
# ---------------------------------------------------------------------------

def parse_ruff_json(
    raw: str,
    base_dir: Optional[str] = None,
    line_reader: Optional[LineReader] = None,
    tab_width: int = TAB_WIDTH,
) -> List[DiagnosticRecord]:
    """Parse ``ruff check --output-format json`` output.

    Expected shape (list of objects)::

        [{"code": "F821", "message": "...", "filename": "...",
          "location": {"row": 1, "column": 1},
          "end_location": {"row": 1, "column": 4}}]

    Returns an empty list for empty input.
    Raises ``ParseError`` on invalid JSON.
    """
    if not raw or not raw.strip():
        return []
    entries = _load_json(raw, "ruff_json")
    if not isinstance(entries, list):
        raise ParseError(raw, "ruff_json")

    records: List[DiagnosticRecord] = []
    for entry in entries:
        path = _absolute(entry.get("filename", ""), base_dir)
        loc = entry.get("location") or {}
        end = entry.get("end_location") or {}
        code = entry.get("code") or entry.get("rule")
        line = max(1, int(loc.get("row", 1)))
        end_line = end.get("row")
        end_column = end.get("column")
        records.append(DiagnosticRecord(
            file_path=path,
            line=line,
            column=_visual(path, line, int(loc.get("column", 1)), line_reader, tab_width),
            severity=_ruff_severity(code),
            message=entry.get("message", ""),
            rule=str(code) if code else None,
            source=DiagnosticSource.RUFF,
            end_line=end_line,
            end_column=(
                _visual(path, end_line, int(end_column), line_reader, tab_width)
                if end_line is not None and end_column is not None else None
            ),
        ))
    return records


# ---------------------------------------------------------------------------
# pyright
# ---------------------------------------------------------------------------

def parse_pyright_json(
    raw: str,
    base_dir: Optional[str] = None,
    line_reader: Optional[LineReader] = None,
    tab_width: int = TAB_WIDTH,
) -> List[DiagnosticRecord]:
    """Parse ``pyright --outputjson`` output.

    Expected shape::

        {"generalDiagnostics": [
            {"file": "...", "severity": "error", "message": "...",
             "range": {"start": {"line": 0, "character": 0},
                       "end": {"line": 0, "character": 3}},
             "rule": "reportUndefinedVariable"}
        ]}

    pyright positions are 0-based and are shifted to 1-based here.
    """
    if not raw or not raw.strip():
        return []
    data = _load_json(raw, "pyright_json")
    if not isinstance(data, dict):
        raise ParseError(raw, "pyright_json")

    entries = data.get("generalDiagnostics", [])
    if not isinstance(entries, list):
        entries = []

    records: List[DiagnosticRecord] = []
    for entry in entries:
        path = _absolute(entry.get("file", ""), base_dir)
        rng = entry.get("range") or {}
        start = rng.get("start") or {}
        end = rng.get("end")
        line = int(start.get("line", 0)) + 1
        end_line = end_column = None
        if end:
            end_line = int(end.get("line", 0)) + 1
            end_column = _visual(path, end_line, int(end.get("character", 0)) + 1, line_reader, tab_width)
        records.append(DiagnosticRecord(
            file_path=path,
            line=line,
            column=_visual(path, line, int(start.get("character", 0)) + 1, line_reader, tab_width),
            severity=_PYRIGHT_SEVERITY.get(str(entry.get("severity", "error")).lower(), Severity.WARNING),
            message=entry.get("message", ""),
            rule=entry.get("rule"),
            source=DiagnosticSource.PYRIGHT,
            end_line=end_line,
            end_column=end_column,
        ))
    return records


# ---------------------------------------------------------------------------
# pycodestyle
# ---------------------------------------------------------------------------

def parse_pycodestyle_output(
    raw: str,
    base_dir: Optional[str] = None,
    line_reader: Optional[LineReader] = None,
    tab_width: int = TAB_WIDTH,
) -> List[DiagnosticRecord]:
    """Parse pycodestyle's default ``path:row:col: CODE message`` lines.

    Lines that do not match (``--show-source`` excerpts, statistics) are
    skipped.
    """
    records: List[DiagnosticRecord] = []
    for row in re.split(r"\r?\n", raw or ""):
        match = _PYCODESTYLE_RE.match(row)
        if match is None:
            if row.strip():
                logger.debug("Skipping pycodestyle line: %r", row)
            continue
        path = _absolute(match.group("path"), base_dir)
        line = max(1, int(match.group("row")))
        code = match.group("code")
        records.append(DiagnosticRecord(
            file_path=path,
            line=line,
            column=_visual(path, line, int(match.group("col")), line_reader, tab_width),
            severity=_pycodestyle_severity(code),
            message=match.group("message"),
            rule=code,
            source=DiagnosticSource.PYCODESTYLE,
        ))
    return records


class FileLineReader:
    """Caching ``LineReader`` over files on disk."""

    def __init__(self) -> None:
        self._cache: Dict[str, List[str]] = {}

    def lines(self, path: str) -> List[str]:
        if path not in self._cache:
            try:
                with tokenize.open(path) as fh:
                    self._cache[path] = fh.read().splitlines()
            except (OSError, SyntaxError, UnicodeDecodeError) as exc:
                logger.debug("Cannot read %s: %s", path, exc)
                self._cache[path] = []
        return self._cache[path]

    def __call__(self, path: str, line: int) -> Optional[str]:
        lines = self.lines(path)
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return None
