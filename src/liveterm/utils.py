"""Terminal text utilities: escape tokenizing, width measurement, row splitting.

Provides the tokenizer that separates escape sequences from visible
characters, codepoint-level display width measurement, SGR state tracking, and
the row splitter that turns logical lines into physical terminal rows while
carrying the active style across wrap points.

Width accounting is per codepoint.  Grapheme clusters made of several
codepoints (ZWJ emoji sequences, flags) are measured as the sum of their parts,
which can overcount compared to what a terminal actually draws.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

import wcwidth as _wcwidth

ESC = "\x1b"
BEL = "\x07"


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    """A single unit of a styled string.

    Escape tokens carry the full sequence and have zero width.  Character
    tokens carry one codepoint and its display width.
    """

    text: str
    width: int
    is_escape: bool = False


# ---------------------------------------------------------------------------
# extract_ansi_token
# ---------------------------------------------------------------------------


def extract_ansi_token(text: str, index: int) -> tuple[str, int] | None:
    """Extract an escape sequence starting at *index* in *text*.

    Returns ``(token, next_index)`` or ``None`` if *text[index]* is not ESC.

    Handles:
    * CSI sequences: ``ESC[`` ... final byte in ``@``..``~``
    * OSC sequences: ``ESC]`` ... ``BEL`` / ``ESC\\``
    * Any other ``ESC x`` pair, passed through as two characters

    A sequence without a terminator consumes the rest of *text*.
    """
    if index >= len(text) or text[index] != ESC:
        return None

    if index + 1 >= len(text):
        return (ESC, index + 1)

    next_ch = text[index + 1]

    # CSI: ESC[ <params> <final>
    if next_ch == "[":
        i = index + 2
        while i < len(text):
            ch = text[i]
            i += 1
            if "@" <= ch <= "~":
                break
        return (text[index:i], i)

    # OSC: ESC] ... (BEL | ESC\)
    if next_ch == "]":
        i = index + 2
        while i < len(text):
            ch = text[i]
            if ch == BEL:
                i += 1
                break
            if ch == ESC and i + 1 < len(text) and text[i + 1] == "\\":
                i += 2
                break
            i += 1
        return (text[index:i], i)

    return (text[index : index + 2], index + 2)


# ---------------------------------------------------------------------------
# Width
# ---------------------------------------------------------------------------


def char_width(ch: str) -> int:
    """Return the terminal display width of a single codepoint.

    Control characters and zero-width marks are 0, wide (East Asian wide or
    fullwidth) characters are 2, everything else is 1.
    """
    if not ch:
        return 0
    cp = ord(ch)
    if 0x20 <= cp < 0x7F:
        return 1
    if cp < 0x20 or 0x7F <= cp <= 0x9F:
        return 0
    return max(_wcwidth.wcwidth(ch), 0)


def tokenize(text: str) -> Iterator[Token]:
    """Split *text* into escape tokens and single-character tokens."""
    i = 0
    while i < len(text):
        extracted = extract_ansi_token(text, i)
        if extracted is not None:
            token, i = extracted
            yield Token(token, 0, is_escape=True)
            continue
        ch = text[i]
        yield Token(ch, char_width(ch))
        i += 1


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*, ignoring escapes."""
    if not text:
        return 0
    if ESC not in text and text.isascii() and text.isprintable():
        return len(text)
    return sum(token.width for token in tokenize(text))


def strip_ansi(text: str) -> str:
    """Remove every escape sequence from *text*."""
    if ESC not in text:
        return text
    return "".join(token.text for token in tokenize(text) if not token.is_escape)


# ---------------------------------------------------------------------------
# SGR state
# ---------------------------------------------------------------------------


def update_sgr_state(current: str, sequence: str) -> str:
    """Return the active SGR string after applying *sequence* to *current*.

    Non-SGR sequences leave the state unchanged.  ``ESC[m`` and any parameter
    list containing ``0`` reset the state; when the reset is combined with
    other codes the sequence itself becomes the new state.  Anything else is
    appended.
    """
    if not sequence.startswith(ESC + "[") or not sequence.endswith("m"):
        return current
    body = sequence[2:-1]
    if not body:
        return ""
    codes = body.split(";")
    if "0" in codes:
        if any(code != "0" for code in codes):
            return sequence
        return ""
    return current + sequence


# ---------------------------------------------------------------------------
# Row splitting
# ---------------------------------------------------------------------------


def split_line_to_rows(
    line: str,
    width: int,
    active_sgr: str = "",
) -> tuple[list[str], str]:
    """Split one logical line (no newlines) into physical rows.

    *active_sgr* is the style carried in from previous lines.  Every row
    starts with the style active at its first column.  Returns the rows and
    the active style at the end of the line.
    """
    if width <= 0:
        return ([active_sgr + line], active_sgr)

    rows: list[str] = []
    current: list[str] = [active_sgr]
    current_width = 0

    for token in tokenize(line):
        if token.is_escape:
            current.append(token.text)
            active_sgr = update_sgr_state(active_sgr, token.text)
            continue

        if current_width + token.width > width and current_width > 0:
            rows.append("".join(current))
            current = [active_sgr]
            current_width = 0

        current.append(token.text)
        current_width += token.width

    rows.append("".join(current))
    return (rows, active_sgr)


def split_logical_lines(text: str) -> list[str]:
    """Split *text* on newlines, dropping the empty tail of a final newline."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def split_to_rows(text: str, width: int) -> list[str]:
    """Convert *text* into physical rows at *width* columns.

    Style state is tracked across the whole text so that a colour opened on
    one line continues onto wrapped rows and following lines.  Empty input
    yields a single empty row.
    """
    active_sgr = ""
    rows: list[str] = []
    for line in split_logical_lines(text):
        line_rows, active_sgr = split_line_to_rows(line, width, active_sgr)
        rows.extend(line_rows)
    if not rows:
        rows.append("")
    return rows


def line_row_count(line: str, width: int) -> int:
    """Return how many physical rows *line* occupies at *width* columns.

    Follows the same wrap rule as :func:`split_line_to_rows`, so a wide
    character that does not fit at the end of a row pushes a new row even
    when the total width would suggest otherwise.
    """
    if width <= 0:
        return 1
    total = visible_width(line)
    if total <= width:
        return 1
    if line.isascii() and ESC not in line and line.isprintable():
        return math.ceil(total / width)

    rows = 1
    current_width = 0
    for token in tokenize(line):
        if current_width + token.width > width and current_width > 0:
            rows += 1
            current_width = 0
        current_width += token.width
    return rows
