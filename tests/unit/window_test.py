"""Tests for context window extraction and secret redaction."""

from __future__ import annotations

import pytest

from crash_lens.enrich.window import (
    MAX_LINE_CHARS,
    LineOutOfRangeError,
    extract_window,
    redact_line,
    split_lines,
)


def _numbered(count: int) -> list[str]:
    return [f"line {i}" for i in range(1, count + 1)]


class TestExtractWindow:
    def test_window_is_clipped_at_end_of_file(self) -> None:
        window = extract_window(_numbered(10), 9)
        assert (window.start_line, window.end_line) == (6, 10)
        assert window.lines == ["line 6", "line 7", "line 8", "line 9", "line 10"]

    def test_window_is_clipped_at_start_of_file(self) -> None:
        window = extract_window(_numbered(10), 1)
        assert (window.start_line, window.end_line) == (1, 4)

    def test_full_window_has_seven_lines(self) -> None:
        window = extract_window(_numbered(100), 50)
        assert (window.start_line, window.end_line) == (47, 53)
        assert len(window.lines) == 7

    @pytest.mark.parametrize("line", [0, 11, -1])
    def test_out_of_range_line(self, line: int) -> None:
        with pytest.raises(LineOutOfRangeError):
            extract_window(_numbered(10), line)

    def test_long_lines_are_truncated(self) -> None:
        window = extract_window(["x" * 1000], 1)
        assert window.lines == ["x" * MAX_LINE_CHARS + "…"]


class TestRedaction:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ('var apiKey = "abc123";', 'var apiKey = "<redacted>";'),
            ('api-key: "abc123",', 'api-key: "<redacted>",'),
            ('Password="hunter2"', 'Password="<redacted>"'),
            ('token : "t0k3n"', 'token : "<redacted>"'),
            ('clientSecret = "s"', 'clientSecret = "<redacted>"'),
        ],
    )
    def test_redacts_quoted_secrets(self, line: str, expected: str) -> None:
        assert redact_line(line) == expected

    def test_leaves_other_lines_alone(self) -> None:
        line = 'var name = "Program"; // token count'
        assert redact_line(line) == line

    def test_window_lines_are_redacted(self) -> None:
        window = extract_window(['var token = "abc";'], 1)
        assert window.lines == ['var token = "<redacted>";']


class TestSplitLines:
    def test_normalizes_crlf(self) -> None:
        assert split_lines("a\r\nb\r\nc") == ["a", "b", "c"]

    def test_trailing_newline_does_not_add_a_line(self) -> None:
        assert split_lines("a\nb\n") == ["a", "b"]

    def test_empty_text(self) -> None:
        assert split_lines("") == []
