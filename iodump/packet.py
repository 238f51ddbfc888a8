"""Packet model: one captured read or write.

A packet is produced by `Dump` when a transfer completes (and written out
immediately) or by `DumpReader` when a record has been parsed back.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from .constants import DumpConstants


class Direction(Enum):
    """Transfer direction, valued by its dump-format marker."""

    READ = DumpConstants.READ_MARKER
    WRITE = DumpConstants.WRITE_MARKER

    @property
    def marker(self) -> str:
        return self.value

    @classmethod
    def from_marker(cls, marker: str) -> "Direction":
        """Map `->` to READ and `<-` to WRITE. Raises ValueError otherwise."""
        return cls(marker)


@dataclass(frozen=True)
class Packet:
    """A single transfer event.

    `data` is exactly what the originating read/write call moved; it is
    never re-chunked.
    """

    direction: Direction
    elapsed: timedelta
    data: bytes = field(default=b"")

    def __post_init__(self):
        # Accept bytearray/memoryview but always hold an immutable copy
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))
        if self.elapsed < timedelta(0):
            raise ValueError(f"elapsed must be non-negative, got {self.elapsed}")

    @property
    def elapsed_ms(self) -> int:
        return self.elapsed // timedelta(milliseconds=1)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"Packet({self.direction.name}, {self.elapsed_ms}ms, {len(self.data)}B)"
        )


def millis(nanos: int) -> int:
    """Convert a nanosecond duration to whole milliseconds.

    The sub-millisecond remainder is rounded up (an exact zero remainder
    stays zero) and the result saturates at `DumpConstants.MAX_MILLIS`.
    """
    if nanos < 0:
        nanos = 0
    whole, rem = divmod(nanos, DumpConstants.NANOS_PER_MILLI)
    if rem:
        whole += 1
    return min(whole, DumpConstants.MAX_MILLIS)
