"""Visual/real column conversion for lines that may contain tabs.

Lint tools report columns as if a tab advanced to the next fixed tab stop,
while the line text holds a single ``\\t`` character.  These helpers convert
between the two so that carets line up under the reported position.

All functions are pure and operate on the original (unexpanded) text.
"""

from __future__ import annotations

from .errors import InvalidArgumentError

TAB_WIDTH = 8


def _advance(char: str, visual: int, tab_width: int) -> int:
    if char == "\t":
        return (visual // tab_width + 1) * tab_width
    return visual + 1


def real_column_from_visual(line_text: str, visual_column: int, tab_width: int = TAB_WIDTH) -> int:
    """Return the character index at which *visual_column* is first reached.

    Args:
        line_text: Line content without any diff prefix.
        visual_column: 0-based visual column.
        tab_width: Width of a tab stop.

    Returns:
        0-based index into *line_text*; ``len(line_text)`` when the column lies
        beyond the end of the line.

    Example: ``real_column_from_visual("x\\ty", 8)`` is ``2``, the index of ``y``.
    """
    if visual_column < 0:
        raise InvalidArgumentError("visual_column", visual_column, "non-negative")

    visual = 0
    for index, char in enumerate(line_text):
        if visual >= visual_column:
            return index
        visual = _advance(char, visual, tab_width)
    return len(line_text)


def visual_column_at(line_text: str, real_index: int, tab_width: int = TAB_WIDTH) -> int:
    """Return the 0-based visual column of the character at *real_index*.

    *real_index* is clamped to ``[0, len(line_text)]``.
    """
    limit = max(0, min(real_index, len(line_text)))
    visual = 0
    for char in line_text[:limit]:
        visual = _advance(char, visual, tab_width)
    return visual


def expand_tabs(line_text: str, tab_width: int = TAB_WIDTH) -> str:
    """Replace each tab with spaces up to the next tab stop (display only)."""
    parts = []
    visual = 0
    for char in line_text:
        if char == "\t":
            spaces = tab_width - (visual % tab_width)
            parts.append(" " * spaces)
            visual += spaces
        else:
            parts.append(char)
            visual += 1
    return "".join(parts)
