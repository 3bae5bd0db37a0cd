"""liveterm: in-place live redraw of styled terminal output."""

# Hyperlinks
from liveterm.hyperlink import (
    detect_hyperlink_support,
    hyperlink_supported,
    osc8,
    reset_hyperlink_cache,
)

# Live redraw engine
from liveterm.live import (
    LiveRenderer,
    LiveRendererOptions,
    LiveState,
    OverflowInfo,
    RedrawKind,
    RedrawPlan,
    create_live_renderer,
    first_changed_row,
)

# Append-only Markdown streaming
from liveterm.stream import MarkdownStreamer, create_markdown_streamer

# Terminal sink
from liveterm.terminal import ProcessTerminal, Terminal

# Text utilities
from liveterm.utils import (
    Token,
    char_width,
    extract_ansi_token,
    split_to_rows,
    strip_ansi,
    tokenize,
    update_sgr_state,
    visible_width,
)

__all__ = [
    # Hyperlinks
    "detect_hyperlink_support",
    "hyperlink_supported",
    "osc8",
    "reset_hyperlink_cache",
    # Live redraw engine
    "LiveRenderer",
    "LiveRendererOptions",
    "LiveState",
    "OverflowInfo",
    "RedrawKind",
    "RedrawPlan",
    "create_live_renderer",
    "first_changed_row",
    # Streaming
    "MarkdownStreamer",
    "create_markdown_streamer",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Utilities
    "Token",
    "char_width",
    "extract_ansi_token",
    "split_to_rows",
    "strip_ansi",
    "tokenize",
    "update_sgr_state",
    "visible_width",
]
