"""Read packets back out of a text dump.

Parsing is lazy: each advance consumes lines up to the end of one record.
Blank lines and `//` comment lines are skipped while looking for the next
header. Any format error is fatal; the reader yields nothing after it.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterator, Optional

from .constants import DumpConstants
from .packet import Packet
from .record import DumpFormatError, parse_header, parse_row

logger = logging.getLogger(__name__)


def _is_comment(line: str) -> bool:
    return line.split()[:1] == [DumpConstants.COMMENT]


class DumpReader:
    """Iterate over the packets stored in a dump.

    Usage:
        with DumpReader.open("session.dump") as dump:
            for packet in dump:
                print(packet.direction, packet.data)
    """

    def __init__(self, source, _owns_source: bool = False):
        """Initialize reader.

        Args:
            source: Text or binary stream (or any iterable of lines)
        """
        self._source = source
        self._lines = iter(source)
        self._owns_source = _owns_source
        self._lineno = 0
        self._done = False

    @classmethod
    def open(cls, path) -> "DumpReader":
        """Open a dump file at `path`. The reader closes it."""
        return cls(open(Path(path), "rb"), _owns_source=True)

    def _next_line(self) -> Optional[str]:
        line = next(self._lines, None)
        if line is None:
            return None
        self._lineno += 1
        if isinstance(line, (bytes, bytearray)):
            # Non-ASCII only matters inside headers and hex cells, which reject it
            line = line.decode("ascii", errors="surrogateescape")
        return line.rstrip("\r\n")

    def _read_header(self):
        while True:
            line = self._next_line()
            if line is None:
                return None
            if not line.strip() or _is_comment(line):
                continue
            return parse_header(line, self._lineno)

    def _read_packet(self) -> Optional[Packet]:
        header = self._read_header()
        if header is None:
            return None
        direction, elapsed, size = header
        header_lineno = self._lineno

        data = bytearray()
        while True:
            line = self._next_line()
            if line is None:
                # Truncated trailing record: keep what was decoded
                if len(data) != size:
                    logger.debug(
                        f"record at line {header_lineno} truncated: "
                        f"{len(data)} of {size} bytes"
                    )
                break
            if not line.strip():
                if len(data) != size:
                    raise DumpFormatError(
                        f"record declares {size} bytes but holds {len(data)}",
                        header_lineno,
                    )
                break
            data.extend(parse_row(line, self._lineno))

        return Packet(direction, elapsed, bytes(data))

    def read_packet(self) -> Optional[Packet]:
        """Return the next packet, or None at end of input."""
        if self._done:
            return None
        try:
            packet = self._read_packet()
        except Exception:
            self._done = True
            raise
        if packet is None:
            self._done = True
        return packet

    def __iter__(self) -> Iterator[Packet]:
        return self

    def __next__(self) -> Packet:
        packet = self.read_packet()
        if packet is None:
            raise StopIteration
        return packet

    def close(self):
        if self._owns_source:
            self._source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
