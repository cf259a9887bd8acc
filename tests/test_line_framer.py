"""Tests for LineFramer."""

import pytest

from phidgetnet.protocol.line_framer import LineFramer, clean_line

STREAM = (
    "996 No need to authenticate, version=1.0.10\r\n"
    "report 200-lid0 is pending, key /PSK/PhidgetInterfaceKit/caf\\xc3\\xa9/48587/Name"
    " latest value \"Température 25°\" (added)\r\n"
    "report 200-that's all for now\r\n"
).encode("utf-8")

EXPECTED = [
    "996 No need to authenticate, version=1.0.10",
    "report 200-lid0 is pending, key /PSK/PhidgetInterfaceKit/caf\\xc3\\xa9/48587/Name"
    " latest value \"Température 25°\" (added)",
    "report 200-that's all for now",
]


class TestCleanLine:
    """Tests for clean_line()."""

    def test_strips_trailing_cr(self):
        assert clean_line("200 ok\r") == "200 ok"

    def test_keeps_inner_cr(self):
        assert clean_line("a\rb") == "a\rb"

    def test_removes_padding(self):
        assert clean_line("\x00\x01200 ok\x00") == "200 ok"


class TestLineFramer:
    """Tests for LineFramer class."""

    @pytest.fixture
    def framer(self):
        return LineFramer()

    def test_single_complete_line(self, framer):
        assert list(framer.feed(b"200 set successful\r\n")) == ["200 set successful"]
        assert framer.pending == ""

    def test_partial_line_is_retained(self, framer):
        assert list(framer.feed(b"200 set succ")) == []
        assert framer.pending == "200 set succ"
        assert list(framer.feed(b"essful\r\n")) == ["200 set successful"]

    def test_multiple_lines_in_one_chunk(self, framer):
        assert list(framer.feed(STREAM)) == EXPECTED

    def test_lf_only_terminator(self, framer):
        assert list(framer.feed(b"a\nb\n")) == ["a", "b"]

    def test_empty_lines(self, framer):
        assert list(framer.feed(b"\r\n\r\n")) == ["", ""]

    def test_padding_is_removed(self, framer):
        assert list(framer.feed(b"\x00\x01996 ok\r\n\x00")) == ["996 ok"]
        assert framer.pending == "\x00"

    def test_str_chunks(self, framer):
        assert list(framer.feed("200 a\r\n200 ")) == ["200 a"]
        assert list(framer.feed("b\r\n")) == ["200 b"]

    @pytest.mark.parametrize("offset", range(len(STREAM) + 1))
    def test_split_anywhere(self, offset):
        """Splitting the stream at any byte yields the same lines."""
        framer = LineFramer()
        lines = list(framer.feed(STREAM[:offset]))
        lines += list(framer.feed(STREAM[offset:]))
        assert lines == EXPECTED
        assert framer.pending == ""

    def test_byte_by_byte(self, framer):
        lines = []
        for i in range(len(STREAM)):
            lines.extend(framer.feed(STREAM[i:i + 1]))
        assert lines == EXPECTED

    def test_split_multibyte_character(self, framer):
        data = "value \"°\"\r\n".encode("utf-8")
        split = data.index(b"\xb0")
        assert list(framer.feed(data[:split])) == []
        assert list(framer.feed(data[split:])) == ["value \"°\""]

    def test_invalid_utf8_is_replaced(self, framer):
        assert list(framer.feed(b"bad \xff\r\n")) == ["bad �"]

    def test_reset_discards_state(self, framer):
        list(framer.feed(b"partial \xc3"))
        framer.reset()
        assert framer.pending == ""
        assert list(framer.feed(b"200 ok\r\n")) == ["200 ok"]

    def test_no_length_limit(self, framer):
        long_value = "x" * 100_000
        assert list(framer.feed(f"200 {long_value}\r\n".encode())) == [f"200 {long_value}"]

    def test_repr(self, framer):
        list(framer.feed(b"abc"))
        assert "3" in repr(framer)
