"""Shared dump-format constants used by the writer, the reader and the CLI."""

from datetime import timedelta


class DumpConstants:
    """Single source of truth for the text dump layout."""

    # Data rows
    ROW_WIDTH = 25  # payload bytes per row
    HEX_CELL = 3  # two hex digits + one space
    COLUMN_GAP = "    "  # between hex and ASCII columns
    HEX_END = "  "  # first two chars of a blank hex cell

    # Header
    WRITE_MARKER = "<-"
    READ_MARKER = "->"
    FIELD_GAP = "  "
    ELAPSED_UNIT = "s"
    SIZE_UNIT = "bytes"
    COMMENT = "//"

    # Timing
    NANOS_PER_MILLI = 1_000_000
    MILLIS_PER_SEC = 1_000
    MAX_MILLIS = timedelta.max // timedelta(milliseconds=1)  # readable back as a timedelta

    # Serial monitor defaults
    DEFAULT_PORT = "/dev/ttyUSB0"
    DEFAULT_BAUDRATE = 115200
    DEFAULT_TIMEOUT_S = 1.0
    MONITOR_IDLE_SLEEP_S = 0.05
