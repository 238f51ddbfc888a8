"""Dump record codec: header line, hex/ASCII data rows, blank terminator.

A record looks like::

    <-  0.001s  3 bytes
    50 52 49                                                                        P R I

The writer side (`encode_packet`) and the reader side (`parse_header`,
`parse_row`) only share this module's layout; the ASCII column is for
humans and is never decoded.
"""

from __future__ import annotations
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Tuple

from .constants import DumpConstants
from .packet import Direction, Packet

_C = DumpConstants

# Two-character renderings for the ASCII column
_ESCAPES = {0: "\\0", 9: "\\t", 10: "\\n", 13: "\\r"}
_UNPRINTABLE = "\\?"


# Exceptions for dump-level errors
class DumpError(Exception):
    """Base class for dump errors."""


class DumpFormatError(DumpError, ValueError):
    """Raised when dump text cannot be decoded."""

    def __init__(self, message: str, lineno: int = None):
        self.lineno = lineno
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)


class ReplayMismatchError(DumpError):
    """Raised when replayed traffic diverges from the recording."""


def format_elapsed(elapsed_ms: int) -> str:
    """Render milliseconds as seconds with exactly three decimals and unit."""
    secs, ms = divmod(elapsed_ms, _C.MILLIS_PER_SEC)
    return f"{secs}.{ms:03d}{_C.ELAPSED_UNIT}"


def format_header(direction: Direction, elapsed_ms: int, size: int) -> str:
    return (
        f"{direction.marker}{_C.FIELD_GAP}{format_elapsed(elapsed_ms)}"
        f"{_C.FIELD_GAP}{size} {_C.SIZE_UNIT}\n"
    )


def format_ascii(byte: int) -> str:
    """Two-character ASCII-column rendering of one byte."""
    if byte in _ESCAPES:
        return _ESCAPES[byte]
    if 32 <= byte <= 126:
        return " " + chr(byte)
    return _UNPRINTABLE


def format_row(row: bytes) -> str:
    """Render up to ROW_WIDTH bytes as one aligned hex + ASCII line."""
    if len(row) > _C.ROW_WIDTH:
        raise ValueError(f"Row too long: {len(row)} > {_C.ROW_WIDTH}")

    hex_col = "".join(f"{b:02X} " for b in row)
    hex_col += " " * _C.HEX_CELL * (_C.ROW_WIDTH - len(row))
    ascii_col = "".join(format_ascii(b) for b in row)
    return f"{hex_col}{_C.COLUMN_GAP}{ascii_col}\n"


def encode_packet(direction: Direction, elapsed_ms: int, data: bytes) -> str:
    """Encode one transfer as a complete record (header, rows, blank line).

    Deterministic: the same arguments always give the same text.
    """
    parts = [format_header(direction, elapsed_ms, len(data))]
    for pos in range(0, len(data), _C.ROW_WIDTH):
        parts.append(format_row(data[pos : pos + _C.ROW_WIDTH]))
    parts.append("\n")
    return "".join(parts)


def format_packet(packet: Packet) -> str:
    return encode_packet(packet.direction, packet.elapsed_ms, packet.data)


def parse_elapsed(token: str, lineno: int = None) -> timedelta:
    """Parse `1.234s` into a timedelta truncated to whole milliseconds."""
    if not token.endswith(_C.ELAPSED_UNIT):
        raise DumpFormatError(f"elapsed time missing unit: {token!r}", lineno)
    try:
        seconds = Decimal(token[: -len(_C.ELAPSED_UNIT)])
    except InvalidOperation:
        raise DumpFormatError(f"invalid elapsed time: {token!r}", lineno) from None
    if not seconds.is_finite() or seconds < 0:
        raise DumpFormatError(f"invalid elapsed time: {token!r}", lineno)

    try:
        return timedelta(milliseconds=int(seconds * _C.MILLIS_PER_SEC))
    except ArithmeticError:  # decimal.Overflow, OverflowError
        raise DumpFormatError(f"elapsed time out of range: {token!r}", lineno) from None


def parse_header(line: str, lineno: int = None) -> Tuple[Direction, timedelta, int]:
    """Split a header line into (direction, elapsed, declared byte count)."""
    tokens = line.split()
    if len(tokens) != 4:
        raise DumpFormatError(
            f"header needs 4 fields, got {len(tokens)}: {line!r}", lineno
        )

    marker, elapsed, size, unit = tokens
    try:
        direction = Direction.from_marker(marker)
    except ValueError:
        raise DumpFormatError(f"invalid direction marker: {marker!r}", lineno) from None

    if unit != _C.SIZE_UNIT:
        raise DumpFormatError(f"expected {_C.SIZE_UNIT!r}, got {unit!r}", lineno)
    if not (size.isascii() and size.isdigit()):
        raise DumpFormatError(f"invalid byte count: {size!r}", lineno)

    return direction, parse_elapsed(elapsed, lineno), int(size)


def parse_row(line: str, lineno: int = None) -> bytes:
    """Decode the hex column of one data row.

    Scans 3-character cells from the start of the line and stops at the
    first cell beginning with two spaces (or at end of line). Nothing past
    that point is looked at.
    """
    out = bytearray()
    pos = 0
    while pos < len(line):
        cell = line[pos : pos + 2]
        if cell == _C.HEX_END or cell.isspace():
            break
        if len(cell) != 2 or any(c not in "0123456789abcdefABCDEF" for c in cell):
            raise DumpFormatError(f"could not parse byte {cell!r} at column {pos + 1}", lineno)
        out.append(int(cell, 16))
        pos += _C.HEX_CELL
    return bytes(out)
