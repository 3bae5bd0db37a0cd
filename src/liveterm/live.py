"""In-place live redraw of a growing, fully re-rendered buffer.

Provides :class:`LiveRenderer`, which takes the *entire* current buffer on
every call, renders it through an injected ``render_frame`` callback, and
writes only the terminal control sequences needed to bring the screen up to
date:

* Append -- the new rendered text extends the previous one; write the suffix.
* Partial -- repaint from the first changed row down.
* Full -- move to the top of the live region and repaint everything.
* Overflow -- the frame exceeded ``max_rows``; notify once and stop.

Each call is planned first (:meth:`LiveRenderer.plan`) and then executed, so
exactly one of these paths runs per call and the retained state is only
replaced once the output for that call has been written.  The overflow latch
is the exception: it is stored before the callback runs.
"""

from __future__ import annotations

import enum
import logging
import math
import os
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, Literal, Sequence

from liveterm.utils import line_row_count, split_logical_lines, split_to_rows

if TYPE_CHECKING:
    from liveterm.terminal import Terminal

logger = logging.getLogger(__name__)

__all__ = [
    "BSU",
    "ESU",
    "HIDE_CURSOR",
    "SHOW_CURSOR",
    "CLEAR_TO_END",
    "CLEAR_SCROLLBACK",
    "DEFAULT_WIDTH",
    "ClearMode",
    "Frame",
    "LiveRenderer",
    "LiveRendererOptions",
    "LiveState",
    "OverflowInfo",
    "RedrawKind",
    "RedrawPlan",
    "create_live_renderer",
    "cursor_down",
    "cursor_up",
    "first_changed_row",
]

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

# DEC private mode 2026: synchronized output.  Terminals without support
# ignore both sequences.
BSU = "\x1b[?2026h"
ESU = "\x1b[?2026l"

HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_TO_END = "\x1b[0J"
CLEAR_SCROLLBACK = "\x1b[3J\x1b[2J\x1b[H"

_CURSOR_UP_FMT = "\x1b[{}A"
_CURSOR_DOWN_FMT = "\x1b[{}B"

DEFAULT_WIDTH = 80


def cursor_up(lines: int) -> str:
    """Return the sequence moving the cursor up *lines* rows ('' for <= 0)."""
    if lines <= 0:
        return ""
    return _CURSOR_UP_FMT.format(lines)


def cursor_down(lines: int) -> str:
    """Return the sequence moving the cursor down *lines* rows ('' for <= 0)."""
    if lines <= 0:
        return ""
    return _CURSOR_DOWN_FMT.format(lines)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverflowInfo:
    """Passed to ``on_overflow`` when a frame first exceeds ``max_rows``."""

    rows: int
    max_rows: int


OverflowCallback = Callable[[OverflowInfo], None]

ClearMode = Literal["scrollback", "screen"]


def _positive_int(value: object, name: str) -> int | None:
    """Floor *value* to a positive int, or ``None`` if it is unusable."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.debug("Ignoring non-numeric %s=%r", name, value)
        return None
    if not math.isfinite(value) or value <= 0:
        logger.debug("Ignoring out-of-range %s=%r", name, value)
        return None
    floored = math.floor(value)
    if floored <= 0:
        logger.debug("Ignoring out-of-range %s=%r", name, value)
        return None
    return floored


@dataclass(frozen=True)
class LiveRendererOptions:
    """Construction-time settings for a :class:`LiveRenderer`.

    Build instances with :meth:`normalize` to get the documented fallbacks;
    the constructor stores values as given.
    """

    width: int = DEFAULT_WIDTH
    max_rows: int | None = None
    tail_rows: int | None = None
    hide_cursor: bool = True
    synchronized_output: bool = True
    append_when_possible: bool = False
    clear_on_overflow: bool = True
    clear_scrollback_on_overflow: bool = False
    on_overflow: OverflowCallback | None = None

    @classmethod
    def normalize(
        cls,
        width: object = None,
        max_rows: object = None,
        tail_rows: object = None,
        hide_cursor: bool = True,
        synchronized_output: bool | None = None,
        append_when_possible: bool = False,
        clear_on_overflow: bool = True,
        clear_scrollback_on_overflow: bool = False,
        on_overflow: OverflowCallback | None = None,
    ) -> LiveRendererOptions:
        """Validate raw option values.

        Non-numeric, non-finite or non-positive sizes fall back to their
        defaults.  ``synchronized_output=None`` reads ``LIVETERM_SYNC_OUTPUT``
        (``"0"`` disables framing).  ``append_when_possible`` is forced off in
        tail mode: appending grows the terminal while the tail window assumes
        a fixed region.
        """
        resolved_width = _positive_int(width, "width") or DEFAULT_WIDTH
        resolved_tail = _positive_int(tail_rows, "tail_rows")
        if synchronized_output is None:
            synchronized_output = os.environ.get("LIVETERM_SYNC_OUTPUT") != "0"
        return cls(
            width=resolved_width,
            max_rows=_positive_int(max_rows, "max_rows"),
            tail_rows=resolved_tail,
            hide_cursor=bool(hide_cursor),
            synchronized_output=bool(synchronized_output),
            append_when_possible=bool(append_when_possible) and resolved_tail is None,
            clear_on_overflow=bool(clear_on_overflow),
            clear_scrollback_on_overflow=bool(clear_scrollback_on_overflow),
            on_overflow=on_overflow,
        )


# ---------------------------------------------------------------------------
# State and frames
# ---------------------------------------------------------------------------


@dataclass
class LiveState:
    """Everything retained between calls.

    ``cursor_row`` is the total physical-row count of the last emitted frame;
    the cursor sits at column 0 of the row just below it.
    """

    previous_lines: list[str] = field(default_factory=list)
    previous_heights: list[int] = field(default_factory=list)
    cursor_row: int = 0
    cursor_hidden: bool = False
    overflowed: bool = False
    overflow_notified: bool = False
    previous_rendered: str = ""


@dataclass(frozen=True)
class Frame:
    """One rendered snapshot, split into rows with their heights."""

    rendered: str
    lines: list[str]
    heights: list[int]

    @property
    def rows(self) -> int:
        return sum(self.heights)


class RedrawKind(enum.Enum):
    NOOP = "noop"
    APPEND = "append"
    PARTIAL = "partial"
    FULL = "full"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class RedrawPlan:
    """The decision for one ``render`` call, before anything is written."""

    kind: RedrawKind
    frame: Frame | None = None
    first_changed: int = 0
    appended: str = ""
    clear_mode: ClearMode | None = None
    # Set when this call moves the overflow latch; the info is only present
    # when the callback has not fired yet.
    enters_overflow: bool = False
    overflow: OverflowInfo | None = None


def first_changed_row(
    previous: Sequence[str],
    current: Sequence[str],
) -> int | None:
    """Return the first index where *previous* and *current* differ.

    A row missing from one side never equals a row present on the other.
    Returns ``None`` when both sequences are identical.
    """
    longest = max(len(previous), len(current))
    for i in range(longest):
        old = previous[i] if i < len(previous) else None
        new = current[i] if i < len(current) else None
        if old != new:
            return i
    return None


# ---------------------------------------------------------------------------
# LiveRenderer
# ---------------------------------------------------------------------------


class LiveRenderer:
    """Redraw a live region in place from full-buffer snapshots.

    *render_frame* maps the whole current buffer to styled text and must not
    move the cursor.  *write* receives raw output chunks.  Calls must be
    serialized by the caller; there is no internal locking.
    """

    def __init__(
        self,
        render_frame: Callable[[str], str],
        write: Callable[[str], None],
        options: LiveRendererOptions | None = None,
    ) -> None:
        self._render_frame = render_frame
        self._write = write
        self.options: LiveRendererOptions = (
            options if options is not None else LiveRendererOptions.normalize()
        )
        self._state = LiveState()

        # Metrics
        self._full_redraw_count: int = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> LiveState:
        return self._state

    @property
    def overflowed(self) -> bool:
        return self._state.overflowed

    @property
    def full_redraws(self) -> int:
        """Number of full (non-differential) repaints performed."""
        return self._full_redraw_count

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def build_frame(self, text: str, *, windowed: bool = True) -> Frame:
        """Render *text* and split it into rows.

        In tail mode (and with *windowed*) the frame holds the last
        ``tail_rows`` physical rows, each of height 1.  Otherwise it holds
        logical lines with the number of physical rows each occupies.
        """
        rendered = self._render_frame(text)
        if not rendered.endswith("\n"):
            rendered += "\n"

        width = self.options.width
        tail_rows = self.options.tail_rows
        if tail_rows is not None and windowed:
            rows = split_to_rows(rendered, width)[-tail_rows:]
            return Frame(rendered, rows, [1] * len(rows))

        lines = split_logical_lines(rendered) or [""]
        heights = [line_row_count(line, width) for line in lines]
        return Frame(rendered, lines, heights)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, text: str) -> RedrawPlan:
        """Decide how to bring the screen from the retained state to *text*.

        Only ``render_frame`` is called; the retained state is not touched.
        """
        opts = self.options
        state = self._state
        tail_mode = opts.tail_rows is not None

        if state.overflowed and not tail_mode:
            return RedrawPlan(RedrawKind.NOOP)

        frame = self.build_frame(text)

        if (
            opts.append_when_possible
            and state.previous_rendered
            and len(frame.rendered) > len(state.previous_rendered)
            and frame.rendered.startswith(state.previous_rendered)
        ):
            return RedrawPlan(
                RedrawKind.APPEND,
                frame,
                appended=frame.rendered[len(state.previous_rendered) :],
            )

        force_full = not state.previous_lines
        clear_mode: ClearMode | None = None
        enters_overflow = False
        overflow: OverflowInfo | None = None

        # In tail mode only the window is ever drawn, so it is the window
        # that counts against the budget.
        if (
            opts.max_rows is not None
            and frame.rows > opts.max_rows
            and not state.overflowed
        ):
            enters_overflow = True
            if not state.overflow_notified:
                overflow = OverflowInfo(rows=frame.rows, max_rows=opts.max_rows)
            if opts.clear_scrollback_on_overflow:
                clear_mode = "scrollback"
            elif opts.clear_on_overflow:
                clear_mode = "screen"
            if not tail_mode:
                return RedrawPlan(
                    RedrawKind.OVERFLOW,
                    frame,
                    clear_mode=clear_mode,
                    enters_overflow=True,
                    overflow=overflow,
                )
            if clear_mode is not None:
                force_full = True

        if not force_full:
            first = first_changed_row(state.previous_lines, frame.lines)
            if first is None:
                return RedrawPlan(
                    RedrawKind.NOOP,
                    frame,
                    enters_overflow=enters_overflow,
                    overflow=overflow,
                )

            if opts.max_rows is not None:
                # Rows above the viewport may already be in scrollback and
                # can no longer be rewritten in place.
                first_row = sum(state.previous_heights[:first])
                viewport_top = max(0, state.cursor_row - opts.max_rows)
                if first_row < viewport_top:
                    force_full = True

            if not force_full:
                return RedrawPlan(
                    RedrawKind.PARTIAL,
                    frame,
                    first_changed=first,
                    enters_overflow=enters_overflow,
                    overflow=overflow,
                )

        return RedrawPlan(
            RedrawKind.FULL,
            frame,
            clear_mode=clear_mode,
            enters_overflow=enters_overflow,
            overflow=overflow,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, text: str) -> None:
        """Redraw the live region so it shows the full buffer *text*."""
        plan = self.plan(text)
        if plan.kind is not RedrawKind.NOOP:
            logger.debug("Live render: %s", plan.kind.value)
        output, state = self._execute(plan)

        # The overflow latch survives a raising callback or sink.
        if plan.enters_overflow:
            self._state = replace(
                self._state,
                overflowed=True,
                overflow_notified=state.overflow_notified,
            )

        if plan.overflow is not None:
            logger.warning(
                "Live output exceeded %d rows (%d rows rendered)",
                plan.overflow.max_rows,
                plan.overflow.rows,
            )
            if self.options.on_overflow is not None:
                self.options.on_overflow(plan.overflow)

        if output:
            self._write(output)
        self._commit(plan, state)

    def finish(self, final: str | None = None) -> None:
        """End the live region.

        If *final* is given it is repainted in full, ignoring the tail
        window, before the cursor is shown again.
        """
        if final is not None:
            frame = self.build_frame(final, windowed=False)
            plan = RedrawPlan(RedrawKind.FULL, frame)
            output, state = self._execute(plan)
            self._write(output)
            self._commit(plan, state)

        if self.options.hide_cursor and self._state.cursor_hidden:
            self._write(SHOW_CURSOR)
            self._state = replace(self._state, cursor_hidden=False)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, plan: RedrawPlan) -> tuple[str, LiveState]:
        """Build the output for *plan* and the state that follows it."""
        state = self._state
        if plan.enters_overflow:
            state = replace(state, overflowed=True)
            if plan.overflow is not None:
                state = replace(state, overflow_notified=True)

        if plan.kind is RedrawKind.NOOP:
            return ("", state)

        frame = plan.frame
        assert frame is not None

        if plan.kind is RedrawKind.APPEND:
            body = plan.appended.replace("\r\n", "\n").replace("\n", "\r\n")
            out, state = self._batch(state, body)
            return (out, self._advance(state, frame))

        if plan.kind is RedrawKind.OVERFLOW:
            if plan.clear_mode == "scrollback":
                body = CLEAR_SCROLLBACK
            elif plan.clear_mode == "screen":
                body = self._home() + CLEAR_TO_END
            else:
                body = ""
            out, state = self._batch(state, body)
            state = replace(
                state,
                previous_lines=[],
                previous_heights=[],
                cursor_row=0,
            )
            return (out, state)

        parts: list[str] = []
        if plan.kind is RedrawKind.PARTIAL:
            first_row = sum(state.previous_heights[: plan.first_changed])
            delta = first_row - state.cursor_row
            parts.append(cursor_down(delta) if delta > 0 else cursor_up(-delta))
            parts.append("\r")
            parts.append(CLEAR_TO_END)
            lines = frame.lines[plan.first_changed :]
        else:
            if plan.clear_mode == "scrollback":
                parts.append(CLEAR_SCROLLBACK)
            else:
                parts.append(self._home())
                parts.append(CLEAR_TO_END)
            lines = frame.lines

        for line in lines:
            parts.append("\r")
            parts.append(line)
            parts.append("\r\n")

        out, state = self._batch(state, "".join(parts))
        return (out, self._advance(state, frame))

    def _batch(self, state: LiveState, body: str) -> tuple[str, LiveState]:
        """Wrap *body* in cursor hiding and synchronized-output framing."""
        opts = self.options
        parts: list[str] = []
        if opts.hide_cursor and not state.cursor_hidden:
            parts.append(HIDE_CURSOR)
            state = replace(state, cursor_hidden=True)
        if opts.synchronized_output:
            parts.append(BSU)
        parts.append(body)
        if opts.synchronized_output:
            parts.append(ESU)
        return ("".join(parts), state)

    def _home(self) -> str:
        """Return to column 0 of the first row of the live region."""
        return cursor_up(self._state.cursor_row) + "\r"

    @staticmethod
    def _advance(state: LiveState, frame: Frame) -> LiveState:
        return replace(
            state,
            previous_lines=frame.lines,
            previous_heights=frame.heights,
            cursor_row=frame.rows,
            previous_rendered=frame.rendered,
        )

    def _commit(self, plan: RedrawPlan, state: LiveState) -> None:
        if plan.kind is RedrawKind.FULL:
            self._full_redraw_count += 1
        self._state = state


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_live_renderer(
    render_frame: Callable[[str], str],
    write: Callable[[str], None] | None = None,
    *,
    terminal: Terminal | None = None,
    width: object = None,
    max_rows: object = None,
    tail_rows: object = None,
    hide_cursor: bool = True,
    synchronized_output: bool | None = None,
    append_when_possible: bool = False,
    clear_on_overflow: bool = True,
    clear_scrollback_on_overflow: bool = False,
    on_overflow: OverflowCallback | None = None,
) -> LiveRenderer:
    """Create a :class:`LiveRenderer` from keyword options.

    Output goes to *write* if given, else to *terminal*, else to a new
    :class:`~liveterm.terminal.ProcessTerminal`.  Without an explicit
    *width* the sink terminal's column count is used when one is available.
    """
    if write is None:
        if terminal is None:
            from liveterm.terminal import ProcessTerminal

            terminal = ProcessTerminal()
        write = terminal.write
    if width is None and terminal is not None:
        width = terminal.columns

    options = LiveRendererOptions.normalize(
        width=width,
        max_rows=max_rows,
        tail_rows=tail_rows,
        hide_cursor=hide_cursor,
        synchronized_output=synchronized_output,
        append_when_possible=append_when_possible,
        clear_on_overflow=clear_on_overflow,
        clear_scrollback_on_overflow=clear_scrollback_on_overflow,
        on_overflow=on_overflow,
    )
    return LiveRenderer(render_frame, write, options)
