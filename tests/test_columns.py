"""Tests for visual/real column conversion."""

import pytest

from lintlens.columns import TAB_WIDTH, expand_tabs, real_column_from_visual, visual_column_at
from lintlens.errors import InvalidArgumentError


class TestRealColumnFromVisual:
    """Tests for real_column_from_visual."""

    @pytest.mark.parametrize("text", ["", "x", "hello world", "def f(a, b): return a+b"])
    def test_tab_free_text_is_identity_up_to_length(self, text):
        """Without tabs the real column is the visual column, capped at the line length."""
        for visual in range(len(text) + 5):
            assert real_column_from_visual(text, visual) == min(visual, len(text))

    def test_tab_jumps_to_next_stop(self):
        """A tab covers every visual column up to the next multiple of eight."""
        text = "x\ty"
        assert real_column_from_visual(text, 1) == 1
        assert real_column_from_visual(text, 5) == 2
        assert real_column_from_visual(text, 8) == 2
        assert real_column_from_visual(text, 9) == 3

    def test_leading_tab(self):
        """Column 8 of a tab-indented line is the first non-tab character."""
        assert real_column_from_visual("\treturn x", 8) == 1

    @pytest.mark.parametrize("text", ["\t\tfoo", "a\tb\tc", "  \t x", "\t"])
    def test_monotone_in_visual_column(self, text):
        """Increasing the visual column never moves the real column backwards."""
        results = [real_column_from_visual(text, v) for v in range(30)]
        assert results == sorted(results)

    @pytest.mark.parametrize("text", ["\t\tfoo", "a\tb\tc", "ab\tcd"])
    def test_round_trip_within_one_tab(self, text):
        """Mapping back lands at or after the requested column, within a tab width."""
        width = len(text.expandtabs(TAB_WIDTH))
        for visual in range(width):
            real = real_column_from_visual(text, visual)
            back = visual_column_at(text, real)
            assert visual <= back < visual + TAB_WIDTH

    def test_custom_tab_width(self):
        """The tab width is configurable."""
        assert real_column_from_visual("\tx", 4, tab_width=4) == 1

    def test_negative_visual_column_rejected(self):
        """A negative visual column is a caller bug."""
        with pytest.raises(InvalidArgumentError):
            real_column_from_visual("abc", -1)


class TestVisualColumnAt:
    """Tests for visual_column_at."""

    def test_counts_widths_before_index(self):
        assert visual_column_at("a\tb", 0) == 0
        assert visual_column_at("a\tb", 1) == 1
        assert visual_column_at("a\tb", 2) == 8

    def test_index_is_clamped(self):
        assert visual_column_at("abc", 99) == 3
        assert visual_column_at("abc", -4) == 0


def test_expand_tabs_matches_str_expandtabs():
    """Display expansion agrees with Python's own tab expansion."""
    for text in ["\tx", "ab\tc\t", "no tabs", "\t\t"]:
        assert expand_tabs(text) == text.expandtabs(TAB_WIDTH)
