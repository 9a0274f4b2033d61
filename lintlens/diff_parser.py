"""Unified-diff parsing: locate the hunk that shows a given HEAD line."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .errors import InvalidArgumentError
from .models import DiffLineView, DiffSnippet, SnippetPick

logger = logging.getLogger(__name__)

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_LINE_SPLIT_RE = re.compile(r"\r?\n")

# Lines that exist in HEAD and therefore advance the new-file counter.
_HEAD_SYMBOLS = ("+", " ")


def _require_positive_line(target_line: int) -> None:
    if target_line < 1:
        raise InvalidArgumentError("target_line", target_line, "positive")


def parse_hunk_start(header: str) -> int:
    """Return the new-file start line declared by a ``@@`` header.

    Unparsable headers yield ``0``, which never matches a real line.
    """
    match = _HUNK_HEADER_RE.match(header)
    if match is None:
        logger.debug("Unparsable hunk header: %r", header)
        return 0
    return int(match.group(1))


class _HunkState:
    """Lines and pointer of the hunk currently being scanned."""

    __slots__ = ("header", "lines", "pointer", "head_line")

    def __init__(self, header: str) -> None:
        self.header = header
        self.lines: List[DiffLineView] = []
        self.pointer: Optional[int] = None
        self.head_line = parse_hunk_start(header)

    def add(self, raw: str, target_line: int) -> None:
        symbol = raw[0] if raw else None
        head_line_number: Optional[int] = None
        if symbol in _HEAD_SYMBOLS:
            head_line_number = self.head_line
            self.head_line += 1

        self.lines.append(DiffLineView(
            raw=raw,
            symbol=symbol,
            head_line_number=head_line_number,
            content=raw[1:] if symbol else raw,
        ))
        if head_line_number == target_line:
            self.pointer = len(self.lines) - 1

    def finish(self) -> Optional[DiffSnippet]:
        if self.pointer is None:
            return None
        return DiffSnippet(header=self.header, lines=tuple(self.lines), pointer_index=self.pointer)


def extract_snippet(diff_text: str, target_line: int) -> Optional[DiffSnippet]:
    """Return the first hunk of *diff_text* containing HEAD line *target_line*.

    Context lines carry HEAD numbers too, so an unchanged line inside a hunk
    is found as well.  Returns ``None`` when no hunk reaches the line.
    """
    _require_positive_line(target_line)

    hunk: Optional[_HunkState] = None
    for raw in _LINE_SPLIT_RE.split(diff_text):
        if raw.startswith("@@"):
            if hunk is not None:
                snippet = hunk.finish()
                if snippet is not None:
                    return snippet
            hunk = _HunkState(raw)
            continue
        if hunk is None:
            # file headers (diff --git, ---, +++) precede the first hunk
            continue
        hunk.add(raw, target_line)

    return hunk.finish() if hunk is not None else None


def pick_snippet_for_line(candidates: Sequence[str], target_line: int) -> Optional[SnippetPick]:
    """Try each candidate diff in priority order.

    Args:
        candidates: Diff texts, e.g. upstream, workspace, then index diff.
        target_line: HEAD line number (1-based).

    Returns:
        The first snippet found with the position of its candidate in
        *candidates*, or ``None``.
    """
    _require_positive_line(target_line)

    for index, diff_text in enumerate(candidates):
        if not diff_text or not diff_text.strip():
            continue
        snippet = extract_snippet(diff_text, target_line)
        if snippet is not None:
            return SnippetPick(snippet=snippet, index=index)
    return None
