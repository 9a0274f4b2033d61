"""Core data models shared by the ordering engine and the presentation shell."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .errors import InvalidArgumentError


class Severity(enum.IntEnum):
    """Diagnostic severity; higher values are more severe."""

    INFO = 0
    WARNING = 1
    ERROR = 2


class DiagnosticSource(str, enum.Enum):
    """Upstream tool that produced a diagnostic."""

    PYCODESTYLE = "pycodestyle"
    RUFF = "ruff"
    PYRIGHT = "pyright"


@dataclass(frozen=True)
class DiagnosticRecord:
    """A single reported problem at a file position.

    ``column`` is 1-based and visual: a tab advances to the next tab stop,
    which is how the upstream tools count.
    """

    file_path: str
    line: int
    column: int
    severity: Severity
    message: str
    rule: Optional[str]
    source: DiagnosticSource
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    def __post_init__(self) -> None:
        if self.line < 1:
            raise InvalidArgumentError("line", self.line, "at least 1")
        if self.column < 1:
            raise InvalidArgumentError("column", self.column, "at least 1")

    @property
    def rule_label(self) -> str:
        return self.rule or "no-rule"

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}"


def diagnostic_identity(record: DiagnosticRecord) -> str:
    """Return the graph key of *record*.

    Two records at the same site with the same tool and rule share a key
    and are ranked as one node.
    """
    return (
        f"{os.path.abspath(record.file_path)}:{record.line}:{record.column}:"
        f"{record.source.value}:{record.rule_label}"
    )


@dataclass(frozen=True)
class DiffLineView:
    """One physical line of a unified-diff hunk."""

    raw: str
    symbol: Optional[str]
    head_line_number: Optional[int]
    content: str


@dataclass(frozen=True)
class DiffSnippet:
    """One hunk plus the index of the line matching the requested HEAD line."""

    header: str
    lines: Tuple[DiffLineView, ...]
    pointer_index: Optional[int]

    @property
    def pointer_line(self) -> Optional[DiffLineView]:
        if self.pointer_index is None:
            return None
        return self.lines[self.pointer_index]


@dataclass(frozen=True)
class SnippetPick:
    """Snippet chosen from a list of candidate diffs."""

    snippet: DiffSnippet
    index: int


@dataclass(frozen=True)
class DependencyEdge:
    """``source`` should be presented before ``target``."""

    source: str
    target: str


RankMap = Dict[str, int]


@dataclass(frozen=True)
class HighlightRange:
    """Half-open range of real (0-based) columns to underline."""

    start: int
    end: int


@dataclass
class DiffBlock:
    """A rendered-ready excerpt of a diff around one diagnostic."""

    heading: str
    lines: List[str]
    footer: str
    head_line_numbers: Set[int] = field(default_factory=set)
