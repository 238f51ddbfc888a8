"""Tests for the record codec."""

from datetime import timedelta

import pytest

from iodump.constants import DumpConstants
from iodump.packet import Direction, Packet, millis
from iodump.record import (
    DumpFormatError,
    encode_packet,
    format_ascii,
    format_header,
    format_packet,
    format_row,
    parse_header,
    parse_row,
)


def test_header_write_and_read_markers():
    assert format_header(Direction.WRITE, 1, 3) == "<-  0.001s  3 bytes\n"
    assert format_header(Direction.READ, 2, 0) == "->  0.002s  0 bytes\n"


def test_header_elapsed_has_three_decimals():
    assert format_header(Direction.READ, 0, 1) == "->  0.000s  1 bytes\n"
    assert format_header(Direction.READ, 61_250, 1) == "->  61.250s  1 bytes\n"


def test_ascii_byte_classes():
    assert format_ascii(0) == "\\0"
    assert format_ascii(9) == "\\t"
    assert format_ascii(10) == "\\n"
    assert format_ascii(13) == "\\r"
    assert format_ascii(65) == " A"
    assert format_ascii(32) == "  "
    assert format_ascii(126) == " ~"
    assert format_ascii(127) == "\\?"
    assert format_ascii(200) == "\\?"


def test_full_row_has_no_padding():
    data = bytes(range(65, 90))  # 25 bytes
    row = format_row(data)
    hex_col = " ".join(f"{b:02X}" for b in data) + " "
    assert row == hex_col + "    " + "".join(" " + chr(b) for b in data) + "\n"


def test_short_row_is_padded_to_column():
    row = format_row(b"\x00")
    assert row == "00 " + " " * 72 + "    " + "\\0\n"
    assert row.index("\\0") == 25 * 3 + 4


def test_row_too_long():
    with pytest.raises(ValueError):
        format_row(bytes(26))


def test_encode_26_bytes_wraps_to_two_rows():
    text = encode_packet(Direction.WRITE, 5, bytes(26))
    lines = text.split("\n")
    assert lines[0] == "<-  0.005s  26 bytes"
    assert lines[1].startswith("00 " * 25 + "    ")
    assert lines[2] == "00 " + "   " * 24 + "    " + "\\0"
    assert lines[3] == ""
    assert text.endswith("\n\n")


def test_encode_empty_payload():
    assert encode_packet(Direction.READ, 2, b"") == "->  0.002s  0 bytes\n\n"


def test_encode_is_deterministic():
    data = bytes(range(256))
    assert encode_packet(Direction.READ, 42, data) == encode_packet(Direction.READ, 42, data)


def test_format_packet_uses_millis():
    p = Packet(Direction.WRITE, timedelta(milliseconds=1500), b"A")
    assert format_packet(p).startswith("<-  1.500s  1 bytes\n")


def test_millis_rounds_up_and_saturates():
    assert millis(0) == 0
    assert millis(1_000_000) == 1
    assert millis(1_000_001) == 2
    assert millis(999) == 1
    assert millis(3_000_000_000) == 3000
    assert millis(10**40) == DumpConstants.MAX_MILLIS


def test_saturated_elapsed_reads_back():
    header = format_header(Direction.READ, DumpConstants.MAX_MILLIS, 1)
    _, elapsed, _ = parse_header(header)
    assert elapsed == timedelta(milliseconds=DumpConstants.MAX_MILLIS)


def test_parse_header():
    direction, elapsed, size = parse_header("<-  0.001s  3 bytes")
    assert direction is Direction.WRITE
    assert elapsed == timedelta(milliseconds=1)
    assert size == 3

    direction, elapsed, size = parse_header("->\t12.345s 0   bytes")
    assert direction is Direction.READ
    assert elapsed == timedelta(milliseconds=12345)
    assert size == 0


def test_parse_header_truncates_sub_millisecond():
    _, elapsed, _ = parse_header("->  0.0019s  1 bytes")
    assert elapsed == timedelta(milliseconds=1)


@pytest.mark.parametrize(
    "line",
    [
        "<-  0.001s  3",
        "<-  0.001s  3 bytes extra",
        "=>  0.001s  3 bytes",
        "<-  0.001  3 bytes",
        "<-  abcs  3 bytes",
        "<-  -1.000s  3 bytes",
        "<-  0.001s  x bytes",
        "<-  0.001s  3 octets",
        "<-  1e100000000s  0 bytes",
        "<-  1e20s  0 bytes",
    ],
)
def test_parse_header_rejects_malformed(line):
    with pytest.raises(DumpFormatError):
        parse_header(line)


def test_format_error_has_line_number():
    with pytest.raises(DumpFormatError) as exc:
        parse_header("bogus", lineno=7)
    assert exc.value.lineno == 7
    assert "line 7" in str(exc.value)


def test_parse_row_stops_at_hex_column_end():
    row = format_row(b"PRI")
    assert parse_row(row.rstrip("\n")) == b"PRI"


def test_parse_row_full_width_ignores_ascii_column():
    data = bytes(range(25))
    assert parse_row(format_row(data).rstrip("\n")) == data


def test_parse_row_ascii_spaces_not_decoded():
    # byte 0x20 renders as two spaces in the ASCII column
    data = b" " * 25
    assert parse_row(format_row(data).rstrip("\n")) == data


def test_parse_row_accepts_lowercase_and_trimmed_line():
    assert parse_row("ab cd") == b"\xab\xcd"


def test_parse_row_rejects_bad_hex():
    with pytest.raises(DumpFormatError):
        parse_row("50 5G 49 ")
