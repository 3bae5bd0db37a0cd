"""Output-side terminal abstraction used as the live renderer's sink.

Provides a ``Terminal`` protocol (something that can be written to and knows
its size) and ``ProcessTerminal``, which writes to ``sys.stdout``.
"""

from __future__ import annotations

import os
import sys
from typing import Protocol, TextIO

# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal output."""

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by a text stream, ``sys.stdout`` by default.

    Every write is flushed immediately so partial frames never sit in a
    buffer.  If ``LIVETERM_WRITE_LOG`` names a file, each write is also
    appended to it for post-mortem inspection of the emitted sequences.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._write_log_path: str = os.environ.get("LIVETERM_WRITE_LOG", "")

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so redirections of sys.stdout (e.g. pytest's
        # capture) are honoured.
        return self._stream if self._stream is not None else sys.stdout

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self.stream.fileno()).columns
        except (AttributeError, ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(self.stream.fileno()).lines
        except (AttributeError, ValueError, OSError):
            return 24

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write *data* to the stream and optionally to the write log."""
        stream = self.stream
        stream.write(data)
        stream.flush()

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError:
                pass
