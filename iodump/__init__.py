"""iodump - record byte-stream traffic as readable text and read it back.

`Dump` wraps any read/write handle and appends one record per transfer to
a sink; `DumpReader` parses those records back into `Packet`s.
"""

from .dump import Dump
from .packet import Direction, Packet
from .reader import DumpReader
from .record import DumpError, DumpFormatError, ReplayMismatchError
from .transport import MockTransport, ReplayTransport, SerialTransport

__all__ = [
    "Dump",
    "DumpReader",
    "Packet",
    "Direction",
    "DumpError",
    "DumpFormatError",
    "ReplayMismatchError",
    "SerialTransport",
    "MockTransport",
    "ReplayTransport",
]
__version__ = "0.1.0"
