"""Tests for caret placement and diff block rendering."""

import textwrap

from lintlens.diff_parser import extract_snippet
from lintlens.highlight import (
    EARLIER_OMITTED,
    LATER_OMITTED,
    build_diff_block,
    caret_line,
    highlight_range,
    workspace_snippet,
)
from lintlens.models import HighlightRange


class TestHighlightRange:
    """Tests for highlight_range."""

    def test_single_character_by_default(self, make_diagnostic):
        record = make_diagnostic(column=5, message="line too long")
        assert highlight_range(record, "x = foo(bar)") == HighlightRange(4, 5)

    def test_end_column(self, make_diagnostic):
        record = make_diagnostic(column=5, end_column=8, message="bad call")
        assert highlight_range(record, "x = foo(bar)") == HighlightRange(4, 7)

    def test_tab_indented_line(self, make_diagnostic):
        """Visual column 9 after a leading tab is the first real character."""
        record = make_diagnostic(column=9, message="problem")
        assert highlight_range(record, "\treturn x") == HighlightRange(1, 2)

    def test_quoted_identifier_extends_range(self, make_diagnostic):
        record = make_diagnostic(column=9, message='"bar" is not defined')
        assert highlight_range(record, "x = foo(bar)") == HighlightRange(8, 11)

    def test_quoted_identifier_not_at_column(self, make_diagnostic):
        """The range never moves away from the reported column."""
        record = make_diagnostic(column=1, message='"bar" is not defined')
        assert highlight_range(record, "x = foo(bar)") == HighlightRange(0, 1)

    def test_name_earlier_on_line_is_ignored(self, make_diagnostic):
        record = make_diagnostic(column=13, end_column=14, message='"x" is not defined')
        assert highlight_range(record, "x_val = foo(x)") == HighlightRange(12, 13)

    def test_quoted_identifier_needs_word_boundary(self, make_diagnostic):
        """A quoted name that is only a prefix of the word at the column is not used."""
        record = make_diagnostic(column=1, message='"x" is not defined')
        assert highlight_range(record, "x_val = 1") == HighlightRange(0, 1)

    def test_end_column_wins_over_quoted_identifier(self, make_diagnostic):
        record = make_diagnostic(column=9, end_column=10, message='"bar" is not defined')
        assert highlight_range(record, "x = foo(bar)") == HighlightRange(8, 9)

    def test_quoted_identifier_not_on_line(self, make_diagnostic):
        record = make_diagnostic(column=1, message="'missing' is unknown")
        assert highlight_range(record, "x = 1") == HighlightRange(0, 1)

    def test_column_past_end_is_clamped(self, make_diagnostic):
        record = make_diagnostic(column=40, message="W291 trailing whitespace")
        rng = highlight_range(record, "abc")
        assert rng == HighlightRange(3, 3)
        assert 0 <= rng.start <= rng.end <= len("abc")


class TestCaretLine:
    """Tests for caret_line."""

    def test_plain_text(self):
        assert caret_line("x = foo(bar)", HighlightRange(8, 11)) == "        ^^^         "[: len("x = foo(bar)")]

    def test_aligned_after_tab(self):
        """The caret sits under the expanded position of the character."""
        caret = caret_line("\treturn x", HighlightRange(8, 9))
        assert caret.index("^") == 8 + len("return ")
        assert len(caret) == len("\treturn x".expandtabs(8))

    def test_at_least_one_caret(self):
        assert "^" in caret_line("", HighlightRange(0, 1))

    def test_caret_at_end_of_line(self):
        assert caret_line("abc", HighlightRange(3, 3)) == "   ^"


class TestBuildDiffBlock:
    """Tests for build_diff_block."""

    def test_sample_hunk(self, sample_diff, make_diagnostic):
        snippet = extract_snippet(sample_diff, 11)
        record = make_diagnostic(line=11, column=1)

        block = build_diff_block(record, snippet, "workspace", 3)

        assert block.heading.startswith("--- git diff (workspace, U=3) ")
        assert block.lines[0] == "@@ -1,3 +10,3 @@"
        assert block.lines[1] == "    10 | a"
        assert block.lines[2] == "-      | b"
        assert block.lines[3] == "+   11 | c"
        assert block.lines[4] == "         ^"
        assert block.lines[5] == "    12 | d"
        assert block.head_line_numbers == {10, 11, 12}

    def test_long_hunk_is_windowed(self, make_diagnostic):
        body = "".join(f" line{n}\n" for n in range(1, 11))
        snippet = extract_snippet("@@ -1,10 +1,10 @@\n" + body, 6)
        record = make_diagnostic(line=6, column=1)

        block = build_diff_block(record, snippet, "HEAD", 0)

        assert block.heading.startswith("--- git diff (HEAD, U=3) ")
        assert block.lines[1] == EARLIER_OMITTED
        assert block.lines[-1] == LATER_OMITTED
        numbered = [line for line in block.lines if "|" in line]
        assert [line.split("|")[0].strip() for line in numbered] == ["4", "5", "6", "7", "8"]
        assert block.head_line_numbers == {4, 5, 6, 7, 8}

    def test_tabs_are_expanded_for_display(self, make_diagnostic):
        diff = textwrap.dedent("""\
            @@ -1 +1 @@
            +\tvalue = 1
            """)
        snippet = extract_snippet(diff, 1)
        record = make_diagnostic(line=1, column=9, message="'value' is unused")

        block = build_diff_block(record, snippet, "index", 3)

        assert block.lines[1] == "+    1 |         value = 1"
        assert block.lines[2].index("^") == len("+    1 | ") + 8
        assert block.lines[2].count("^") == len("value")


def test_workspace_snippet():
    lines = ["one", "two", "three", "four", "five", "six"]
    assert workspace_snippet(lines, 1) == ["   1 | one", "   2 | two", "   3 | three"]
    assert workspace_snippet(lines, 4) == [
        "   2 | two",
        "   3 | three",
        "   4 | four",
        "   5 | five",
        "   6 | six",
    ]
    assert workspace_snippet(lines, 6, context=0) == ["   6 | six"]


def test_workspace_snippet_skips_lines_shown_in_diff():
    lines = ["one", "two", "three", "four", "five"]
    assert workspace_snippet(lines, 3, skip={2, 3}) == ["   1 | one", "   4 | four", "   5 | five"]
