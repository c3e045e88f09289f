"""Tests for docscan.postprocessing — clean_text()."""

import pytest

from docscan.postprocessing import clean_text


# ── Line endings and whitespace ───────────────────────────────────────────────


class TestWhitespace:
    def test_crlf_normalised(self):
        assert clean_text("a\r\nb\rc") == "a\nb\nc"

    def test_trailing_spaces_stripped_per_line(self):
        assert clean_text("first   \nsecond\t") == "first\nsecond"

    def test_leading_indentation_kept(self):
        assert clean_text("Total:\n    12.50") == "Total:\n    12.50"

    def test_outer_whitespace_trimmed(self):
        assert clean_text("\n\n  text  \n\n") == "text"

    def test_empty(self):
        assert clean_text("") == ""


# ── Blank-line runs ───────────────────────────────────────────────────────────


class TestBlankLines:
    def test_runs_collapse_to_one_blank_line(self):
        assert clean_text("a\n\n\n\nb") == "a\n\nb"

    def test_single_blank_line_kept(self):
        assert clean_text("a\n\nb") == "a\n\nb"

    def test_whitespace_only_lines_count_as_blank(self):
        assert clean_text("a\n  \n \n\nb") == "a\n\nb"


# ── Code fences ───────────────────────────────────────────────────────────────


class TestCodeFence:
    @pytest.mark.parametrize("opening", ["```", "```text", "```plain-text"])
    def test_wrapping_fence_removed(self, opening):
        assert clean_text(f"{opening}\nLine one\nLine two\n```") == "Line one\nLine two"

    def test_fence_with_surrounding_whitespace(self):
        assert clean_text("\n```\nbody\n```\n") == "body"

    def test_inner_fence_untouched(self):
        text = "Before\n```\ncode\n```\nAfter"
        assert clean_text(text) == text
