"""Tests for liveterm.utils -- tokenizing, width measurement, row splitting."""

from __future__ import annotations

from liveterm.utils import (
    Token,
    char_width,
    extract_ansi_token,
    line_row_count,
    split_line_to_rows,
    split_logical_lines,
    split_to_rows,
    strip_ansi,
    tokenize,
    update_sgr_state,
    visible_width,
)

RED = "\x1b[31m"
BOLD = "\x1b[1m"
RESET = "\x1b[0m"


# ---------------------------------------------------------------------------
# extract_ansi_token
# ---------------------------------------------------------------------------


class TestExtractAnsiToken:
    """Recognise CSI, OSC and two-character escape sequences."""

    def test_not_an_escape(self) -> None:
        assert extract_ansi_token("abc", 0) is None

    def test_index_past_end(self) -> None:
        assert extract_ansi_token("abc", 3) is None

    def test_csi_sgr(self) -> None:
        assert extract_ansi_token(f"{RED}hi", 0) == (RED, 5)

    def test_csi_at_offset(self) -> None:
        text = f"ab{BOLD}c"
        assert extract_ansi_token(text, 2) == (BOLD, 2 + len(BOLD))

    def test_csi_private_mode(self) -> None:
        assert extract_ansi_token("\x1b[?2026h", 0) == ("\x1b[?2026h", 8)

    def test_osc_terminated_by_bel(self) -> None:
        seq = "\x1b]8;;https://example.com\x07"
        assert extract_ansi_token(seq + "link", 0) == (seq, len(seq))

    def test_osc_terminated_by_st(self) -> None:
        seq = "\x1b]8;;https://example.com\x1b\\"
        assert extract_ansi_token(seq + "link", 0) == (seq, len(seq))

    def test_unterminated_csi_consumes_rest(self) -> None:
        assert extract_ansi_token("\x1b[31", 0) == ("\x1b[31", 4)

    def test_unterminated_osc_consumes_rest(self) -> None:
        text = "\x1b]8;;https://example.com"
        assert extract_ansi_token(text, 0) == (text, len(text))

    def test_other_escape_is_two_characters(self) -> None:
        assert extract_ansi_token("\x1b(B", 0) == ("\x1b(", 2)

    def test_lone_trailing_escape(self) -> None:
        assert extract_ansi_token("a\x1b", 1) == ("\x1b", 2)


# ---------------------------------------------------------------------------
# Width
# ---------------------------------------------------------------------------


class TestCharWidth:
    def test_ascii(self) -> None:
        assert char_width("a") == 1

    def test_wide_cjk(self) -> None:
        assert char_width("\u4e16") == 2

    def test_combining_mark_is_zero(self) -> None:
        assert char_width("\u0301") == 0

    def test_control_is_zero(self) -> None:
        assert char_width("\x07") == 0
        assert char_width("\t") == 0

    def test_empty(self) -> None:
        assert char_width("") == 0


class TestVisibleWidth:
    """Measure the visible terminal width of text."""

    def test_plain_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty_string(self) -> None:
        assert visible_width("") == 0

    def test_ansi_codes_do_not_count(self) -> None:
        assert visible_width(f"{BOLD}hi{RESET}") == 2

    def test_mixed_ascii_and_wide(self) -> None:
        # "A" (1) + U+4E16 (2) + "B" (1) = 4
        assert visible_width("A\u4e16B") == 4

    def test_osc8_hyperlink_does_not_count(self) -> None:
        text = "\x1b]8;;https://example.com\x07link\x1b]8;;\x07"
        assert visible_width(text) == 4

    def test_combining_sequence(self) -> None:
        # "e" + combining acute accent renders as one column.
        assert visible_width("e\u0301") == 1


class TestTokenize:
    def test_splits_escapes_and_characters(self) -> None:
        tokens = list(tokenize(f"{RED}a\u4e16"))
        assert tokens == [
            Token(RED, 0, is_escape=True),
            Token("a", 1),
            Token("\u4e16", 2),
        ]

    def test_empty(self) -> None:
        assert list(tokenize("")) == []


class TestStripAnsi:
    def test_removes_sgr_and_osc(self) -> None:
        text = f"{RED}red{RESET} \x1b]8;;u\x07link\x1b]8;;\x07"
        assert strip_ansi(text) == "red link"

    def test_plain_text_unchanged(self) -> None:
        assert strip_ansi("plain") == "plain"


# ---------------------------------------------------------------------------
# SGR state
# ---------------------------------------------------------------------------


class TestUpdateSgrState:
    def test_style_is_appended(self) -> None:
        assert update_sgr_state(RED, BOLD) == RED + BOLD

    def test_reset_clears(self) -> None:
        assert update_sgr_state(RED + BOLD, RESET) == ""

    def test_empty_params_clear(self) -> None:
        assert update_sgr_state(RED, "\x1b[m") == ""

    def test_reset_with_other_codes_replaces(self) -> None:
        assert update_sgr_state(RED, "\x1b[0;32m") == "\x1b[0;32m"

    def test_non_sgr_sequence_ignored(self) -> None:
        assert update_sgr_state(RED, "\x1b[2K") == RED
        assert update_sgr_state(RED, "\x1b]8;;u\x07") == RED


# ---------------------------------------------------------------------------
# Row splitting
# ---------------------------------------------------------------------------


class TestSplitLogicalLines:
    def test_trailing_newline_dropped(self) -> None:
        assert split_logical_lines("a\nb\n") == ["a", "b"]

    def test_inner_blank_lines_kept(self) -> None:
        assert split_logical_lines("a\n\nb") == ["a", "", "b"]

    def test_empty(self) -> None:
        assert split_logical_lines("") == []


class TestSplitToRows:
    def test_empty_input_is_one_empty_row(self) -> None:
        assert split_to_rows("", 80) == [""]

    def test_lines_within_width(self) -> None:
        assert split_to_rows("a\nb\n", 80) == ["a", "b"]

    def test_wraps_at_width(self) -> None:
        assert split_to_rows("abcdef", 3) == ["abc", "def"]
        assert split_to_rows("abcd", 3) == ["abc", "d"]

    def test_wide_character_moves_to_next_row(self) -> None:
        assert split_to_rows("a\u4e16\u4e16", 3) == ["a\u4e16", "\u4e16"]

    def test_style_reopened_on_wrapped_row(self) -> None:
        rows = split_to_rows(f"{RED}abcdef{RESET}", 3)
        assert rows == [f"{RED}abc", f"{RED}def{RESET}"]

    def test_style_carries_across_logical_lines(self) -> None:
        assert split_to_rows(f"{BOLD}ab\ncd", 80) == [f"{BOLD}ab", f"{BOLD}cd"]

    def test_reset_stops_carry(self) -> None:
        assert split_to_rows(f"{RED}ab{RESET}cd", 2) == [f"{RED}ab{RESET}", "cd"]

    def test_unterminated_escape_ends_at_line_break(self) -> None:
        assert split_to_rows("\x1b[31\nb", 80) == ["\x1b[31", "b"]

    def test_non_positive_width_does_not_split(self) -> None:
        assert split_to_rows("abcdef", 0) == ["abcdef"]
        assert split_to_rows("abcdef", -1) == ["abcdef"]

    def test_row_count_matches_line_count_when_lines_fit(self) -> None:
        text = "short\n\u4e16\u4e16\u4e16\n\nexactly-ten"
        assert len(split_to_rows(text, 10)) == 4

    def test_split_line_returns_active_style(self) -> None:
        rows, active = split_line_to_rows(f"x{RED}y", 80)
        assert rows == [f"x{RED}y"]
        assert active == RED


class TestLineRowCount:
    def test_fits(self) -> None:
        assert line_row_count("abc", 3) == 1

    def test_empty_line_takes_one_row(self) -> None:
        assert line_row_count("", 3) == 1

    def test_wraps(self) -> None:
        assert line_row_count("abcdef", 3) == 2
        assert line_row_count("abcdefg", 3) == 3

    def test_escapes_do_not_count(self) -> None:
        assert line_row_count(f"{RED}abc{RESET}", 3) == 1

    def test_wide_characters_follow_wrap_rule(self) -> None:
        # "ab" + wide + wide: the first wide character does not fit after
        # "ab", so three rows are needed even though the width is only 6.
        assert line_row_count("ab\u4e16\u4e16", 3) == 3
        assert line_row_count("ab\u4e16\u4e16", 3) == len(
            split_to_rows("ab\u4e16\u4e16", 3)
        )

    def test_non_positive_width(self) -> None:
        assert line_row_count("abcdef", 0) == 1
