"""OSC 8 hyperlinks and hyperlink-support detection."""

from __future__ import annotations

import os
import sys
from typing import TextIO

_OSC8_FMT = "\x1b]8;;{}\x07{}\x1b]8;;\x07"

_cached_support: bool | None = None


def osc8(url: str, text: str) -> str:
    """Wrap *text* in an OSC 8 hyperlink to *url*."""
    return _OSC8_FMT.format(url, text)


def _vte_version_ok(value: str) -> bool:
    # VTE gained OSC 8 in 0.50 (VTE_VERSION 5000).
    try:
        return int(value) >= 5000
    except ValueError:
        return False


def detect_hyperlink_support(stream: TextIO | None = None) -> bool:
    """Guess whether the terminal behind *stream* renders OSC 8 links.

    ``FORCE_HYPERLINK`` wins when set (``"0"`` disables, anything else
    enables).  Otherwise the stream must be a TTY outside CI and the terminal
    must be one known to support hyperlinks.
    """
    forced = os.environ.get("FORCE_HYPERLINK")
    if forced is not None:
        return forced != "0"

    stream = stream if stream is not None else sys.stdout
    try:
        if not stream.isatty():
            return False
    except (AttributeError, ValueError):
        return False

    if os.environ.get("CI") or os.environ.get("TEAMCITY_VERSION"):
        return False

    term_program = os.environ.get("TERM_PROGRAM", "").lower()
    term = os.environ.get("TERM", "").lower()

    if os.environ.get("KITTY_WINDOW_ID") or term == "xterm-kitty":
        return True
    if os.environ.get("WEZTERM_PANE") or term_program == "wezterm":
        return True
    if os.environ.get("GHOSTTY_RESOURCES_DIR") or term_program == "ghostty":
        return True
    if os.environ.get("ITERM_SESSION_ID") or term_program == "iterm.app":
        return True
    if term_program in ("vscode", "hyper"):
        return True
    if term in ("alacritty", "foot", "xterm-ghostty"):
        return True
    if os.environ.get("WT_SESSION"):
        return True

    vte_version = os.environ.get("VTE_VERSION")
    if vte_version:
        return _vte_version_ok(vte_version)

    return False


def hyperlink_supported() -> bool:
    """Cached :func:`detect_hyperlink_support` for ``sys.stdout``."""
    global _cached_support
    if _cached_support is None:
        _cached_support = detect_hyperlink_support()
    return _cached_support


def reset_hyperlink_cache() -> None:
    global _cached_support
    _cached_support = None
