"""Caret placement and compact diff excerpts for a single diagnostic."""

from __future__ import annotations

import re
from typing import AbstractSet, List, Optional, Sequence

from .columns import TAB_WIDTH, expand_tabs, real_column_from_visual, visual_column_at
from .models import DiagnosticRecord, DiffBlock, DiffSnippet, HighlightRange

# Identifier quoted in a message, e.g. ``"foo" is not defined``.
_QUOTED_IDENT_RE = re.compile(r"[\"']([A-Za-z0-9_$]+)[\"']")
_WORD_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

CONTEXT_BEFORE = 2
CONTEXT_AFTER = 2
EARLIER_OMITTED = "       ... (earlier lines omitted)"
LATER_OMITTED = "       ... (later lines omitted)"
FOOTER = "   |-----------------------------------------------------------"

# symbol, space, four-wide label, space, "|", space
_CARET_PREFIX = " " * 9


def _clamp(start: int, end: int, length: int) -> HighlightRange:
    start = max(0, min(start, length))
    return HighlightRange(start, max(start, min(length, end)))


def _word_at(line_text: str, index: int) -> Optional[str]:
    """Identifier starting exactly at *index*, or ``None``."""
    if index > 0 and (line_text[index - 1].isalnum() or line_text[index - 1] in "_$"):
        return None
    match = _WORD_RE.match(line_text, index)
    return match.group(0) if match else None


def highlight_range(
    record: DiagnosticRecord,
    line_text: str,
    tab_width: int = TAB_WIDTH,
) -> HighlightRange:
    """Real column range to underline on *line_text* for *record*.

    The range always starts at the reported column.  Without an end column
    it covers one character, or the whole identifier when the message quotes
    the identifier that starts there.
    """
    visual_start = max(0, record.column - 1)
    start = real_column_from_visual(line_text, visual_start, tab_width)

    if record.end_column is not None:
        visual_end = max(visual_start, record.end_column - 1)
        end = real_column_from_visual(line_text, visual_end, tab_width)
    else:
        end = start + 1
        match = _QUOTED_IDENT_RE.search(record.message)
        if match and _word_at(line_text, start) == match.group(1):
            end = start + len(match.group(1))
    return _clamp(start, end, len(line_text))


def caret_line(line_text: str, highlight: HighlightRange, tab_width: int = TAB_WIDTH) -> str:
    """``^`` marks under *highlight*, aligned with the tab-expanded line."""
    expanded = expand_tabs(line_text, tab_width)
    visual_start = visual_column_at(line_text, highlight.start, tab_width)
    visual_end = max(visual_start + 1, visual_column_at(line_text, highlight.end, tab_width))
    capped_end = min(len(expanded), visual_end)
    caret = " " * min(visual_start, len(expanded)) + "^" * max(1, capped_end - visual_start)
    return caret.ljust(len(expanded))


def build_diff_block(
    record: DiagnosticRecord,
    snippet: DiffSnippet,
    descriptor: str,
    context_lines: int,
    tab_width: int = TAB_WIDTH,
) -> Optional[DiffBlock]:
    """Render a few lines around the snippet pointer with a caret line.

    Args:
        record: Diagnostic being displayed.
        snippet: Hunk whose pointer is the diagnostic's line.
        descriptor: Which diff produced the hunk, e.g. ``"workspace"``.
        context_lines: Unified context the diff was generated with.
        tab_width: Tab stop width used by the reporting tool.

    Returns:
        The block, or ``None`` if the snippet has no pointer.
    """
    pointer = snippet.pointer_line
    if pointer is None or snippet.pointer_index is None:
        return None
    pointer_index = snippet.pointer_index

    start = max(0, pointer_index - CONTEXT_BEFORE)
    end = min(len(snippet.lines), pointer_index + CONTEXT_AFTER + 1)

    head_line_numbers = set()
    lines: List[str] = [snippet.header]
    if start > 0:
        lines.append(EARLIER_OMITTED)
    for index in range(start, end):
        view = snippet.lines[index]
        label = f"{view.head_line_number:>4}" if view.head_line_number is not None else "    "
        if view.head_line_number is not None:
            head_line_numbers.add(view.head_line_number)
        lines.append(f"{view.symbol or ' '} {label} | {expand_tabs(view.content, tab_width)}")
        if index == pointer_index:
            rng = highlight_range(record, pointer.content, tab_width)
            lines.append(_CARET_PREFIX + caret_line(pointer.content, rng, tab_width))
    if end < len(snippet.lines):
        lines.append(LATER_OMITTED)

    context = context_lines if context_lines > 0 else 3
    return DiffBlock(
        heading=f"--- git diff ({descriptor}, U={context}) -------------------------",
        lines=lines,
        footer=FOOTER,
        head_line_numbers=head_line_numbers,
    )


def workspace_snippet(
    lines: Sequence[str],
    center_line: int,
    context: int = 2,
    skip: AbstractSet[int] = frozenset(),
) -> List[str]:
    """Numbered lines around *center_line* (1-based) from the working tree.

    Line numbers in *skip*, typically those already shown in a diff block,
    are left out.
    """
    start = max(0, center_line - context - 1)
    end = min(len(lines), center_line + context)
    return [
        f"{index + 1:>4} | {lines[index]}"
        for index in range(start, end)
        if index + 1 not in skip
    ]
