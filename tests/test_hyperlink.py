"""Tests for OSC 8 hyperlinks and support detection."""

from __future__ import annotations

import io
from collections.abc import Iterator

import pytest

from liveterm.hyperlink import (
    detect_hyperlink_support,
    hyperlink_supported,
    osc8,
    reset_hyperlink_cache,
)
from liveterm.utils import visible_width

_DETECTION_VARS = (
    "FORCE_HYPERLINK",
    "CI",
    "TEAMCITY_VERSION",
    "TERM",
    "TERM_PROGRAM",
    "KITTY_WINDOW_ID",
    "WEZTERM_PANE",
    "GHOSTTY_RESOURCES_DIR",
    "ITERM_SESSION_ID",
    "WT_SESSION",
    "VTE_VERSION",
)


class _FakeTTY(io.StringIO):
    def isatty(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _DETECTION_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_hyperlink_cache()
    yield
    reset_hyperlink_cache()


class TestOsc8:
    def test_wraps_text(self) -> None:
        assert osc8("https://example.com", "site") == (
            "\x1b]8;;https://example.com\x07site\x1b]8;;\x07"
        )

    def test_link_has_text_width(self) -> None:
        assert visible_width(osc8("https://example.com", "site")) == 4


class TestDetection:
    def test_force_enables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORCE_HYPERLINK", "1")
        assert detect_hyperlink_support(io.StringIO()) is True

    def test_force_disables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORCE_HYPERLINK", "0")
        monkeypatch.setenv("TERM_PROGRAM", "vscode")
        assert detect_hyperlink_support(_FakeTTY()) is False

    def test_not_a_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TERM_PROGRAM", "vscode")
        assert detect_hyperlink_support(io.StringIO()) is False

    def test_known_terminal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TERM_PROGRAM", "vscode")
        assert detect_hyperlink_support(_FakeTTY()) is True

    def test_kitty_by_term(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TERM", "xterm-kitty")
        assert detect_hyperlink_support(_FakeTTY()) is True

    def test_ci_disables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CI", "true")
        monkeypatch.setenv("TERM_PROGRAM", "vscode")
        assert detect_hyperlink_support(_FakeTTY()) is False

    def test_vte_version_threshold(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VTE_VERSION", "6003")
        assert detect_hyperlink_support(_FakeTTY()) is True
        monkeypatch.setenv("VTE_VERSION", "4000")
        assert detect_hyperlink_support(_FakeTTY()) is False
        monkeypatch.setenv("VTE_VERSION", "garbage")
        assert detect_hyperlink_support(_FakeTTY()) is False

    def test_unknown_terminal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TERM", "xterm-256color")
        assert detect_hyperlink_support(_FakeTTY()) is False


class TestCache:
    def test_result_is_cached_until_reset(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FORCE_HYPERLINK", "1")
        assert hyperlink_supported() is True

        monkeypatch.setenv("FORCE_HYPERLINK", "0")
        assert hyperlink_supported() is True

        reset_hyperlink_cache()
        assert hyperlink_supported() is False
