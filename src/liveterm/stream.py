"""Append-only Markdown streaming for scrollback-safe output.

``MarkdownStreamer`` accepts Markdown deltas as they arrive and returns styled
text that can be written straight to the terminal.  Complete lines are
rendered immediately; multi-line constructs whose rendering depends on later
lines (fenced code blocks and tables) are held back until they are complete.
Nothing is ever redrawn and the cursor is never moved, so the output is safe
to let scroll away.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Literal

Spacing = Literal["preserve", "single", "tight"]

_FENCE_START_RE = re.compile(r"^(`{3,}|~{3,})")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?(?:\s*:?-+:?\s*\|)+\s*:?-+:?\s*\|?$")
_NON_TABLE_CHAR_RE = re.compile(r"[^\s|]")
_LEADING_NEWLINES_RE = re.compile(r"^\n+")


@dataclass(frozen=True)
class Fence:
    char: str
    length: int


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def fence_start(line: str) -> Fence | None:
    """Return the fence opened by *line*, or ``None``."""
    match = _FENCE_START_RE.match(line.lstrip())
    if match is None:
        return None
    token = match.group(1)
    return Fence(char=token[0], length=len(token))


def is_fence_end(line: str, fence: Fence) -> bool:
    """Return ``True`` if *line* closes *fence*.

    A closing fence uses the same character, is at least as long as the
    opening one, and carries nothing but trailing whitespace.
    """
    stripped = line.strip()
    if len(stripped) < fence.length:
        return False
    return stripped == fence.char * len(stripped)


def looks_like_table_row(line: str) -> bool:
    return "|" in line and _NON_TABLE_CHAR_RE.search(line) is not None


def is_table_separator(line: str) -> bool:
    """Match separator rows such as ``| --- | :--: |`` or ``--- | ---``."""
    trimmed = line.strip()
    if "-" not in trimmed:
        return False
    return _TABLE_SEPARATOR_RE.match(trimmed) is not None


def normalize_fragment(rendered: str) -> str:
    """Strip leading newlines and make sure the fragment ends with one.

    Renderers often put a blank line before block elements such as headings
    when rendering whole documents; in a stream that doubles the spacing.
    """
    trimmed = _LEADING_NEWLINES_RE.sub("", rendered)
    if trimmed.endswith("\n"):
        return trimmed
    return trimmed + "\n"


# ---------------------------------------------------------------------------
# MarkdownStreamer
# ---------------------------------------------------------------------------


class MarkdownStreamer:
    """Incrementally render Markdown deltas into append-only output.

    Args:
        render: Renders a Markdown fragment (one line or one complete block)
            to styled text.  Must be pure and must not move the cursor.
        spacing: How blank lines are emitted.  ``"preserve"`` keeps them all,
            ``"single"`` collapses runs to one, ``"tight"`` drops them.
    """

    def __init__(
        self,
        render: Callable[[str], str],
        spacing: Spacing = "single",
    ) -> None:
        if spacing not in ("preserve", "single", "tight"):
            raise ValueError(f"Unknown spacing mode: {spacing!r}")
        self._render = render
        self.spacing: Spacing = spacing
        self.reset()

    def reset(self) -> None:
        """Drop buffered input and any pending fence/table state."""
        self._buffer = ""
        self._blank_streak = 0
        self._held_header: str | None = None
        self._in_table = False
        self._table_buffer = ""
        self._fence: Fence | None = None
        self._fence_buffer = ""

    # -- public -------------------------------------------------------------

    def push(self, delta: str) -> str:
        """Add a Markdown delta; return the output for completed lines."""
        if not delta:
            return ""
        self._buffer += normalize_newlines(delta)
        out: list[str] = []
        while True:
            idx = self._buffer.find("\n")
            if idx < 0:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1 :]
            out.append(self._process_line(line))
        return "".join(out)

    def finish(self, final_delta: str | None = None) -> str:
        """Flush everything still buffered, including unterminated blocks."""
        out: list[str] = []
        if final_delta:
            out.append(self.push(final_delta))
        if self._buffer:
            out.append(self._process_line(self._buffer))
            self._buffer = ""
        out.append(self._flush_held_header())
        out.append(self._flush_fence())
        out.append(self._flush_table())
        return "".join(out)

    # -- emitting -----------------------------------------------------------

    def _emit_blank_line(self) -> str:
        if self.spacing == "tight":
            return ""
        if self.spacing == "single" and self._blank_streak >= 1:
            return ""
        self._blank_streak += 1
        return "\n"

    def _emit_rendered(self, markdown: str) -> str:
        if not markdown:
            return ""
        self._blank_streak = 0
        return normalize_fragment(self._render(markdown))

    def _flush_held_header(self) -> str:
        if self._held_header is None:
            return ""
        markdown = self._held_header
        self._held_header = None
        return self._emit_rendered(markdown)

    def _flush_table(self) -> str:
        if not self._in_table:
            return ""
        self._in_table = False
        markdown = self._table_buffer
        self._table_buffer = ""
        return self._emit_rendered(markdown)

    def _flush_fence(self) -> str:
        if self._fence is None:
            return ""
        self._fence = None
        markdown = self._fence_buffer
        self._fence_buffer = ""
        return self._emit_rendered(markdown)

    # -- line state machine -------------------------------------------------

    def _process_line(self, line: str) -> str:
        if self._fence is not None:
            self._fence_buffer += line + "\n"
            if is_fence_end(line, self._fence):
                return self._flush_fence()
            return ""

        if self._in_table:
            if not line.strip():
                return self._flush_table() + self._emit_blank_line()
            if not looks_like_table_row(line):
                return self._flush_table() + self._process_line(line)
            self._table_buffer += line + "\n"
            return ""

        if not line.strip():
            return self._flush_held_header() + self._emit_blank_line()

        fence = fence_start(line)
        if fence is not None:
            out = self._flush_held_header()
            self._fence = fence
            self._fence_buffer = line + "\n"
            return out

        if self._held_header is not None:
            if is_table_separator(line) and looks_like_table_row(self._held_header):
                self._in_table = True
                self._table_buffer = f"{self._held_header}\n{line}\n"
                self._held_header = None
                return ""
            return self._flush_held_header() + self._process_line(line)

        # A possible table header waits for the next line to decide.
        if looks_like_table_row(line):
            self._held_header = line
            return ""

        return self._emit_rendered(line)


def create_markdown_streamer(
    render: Callable[[str], str],
    spacing: Spacing = "single",
) -> MarkdownStreamer:
    return MarkdownStreamer(render, spacing=spacing)
