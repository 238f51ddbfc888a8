"""Capturing decorator for byte-stream handles.

Like `tee` in Unix: every read or write passes through to the wrapped
stream unchanged, and each completed transfer is appended to a sink as one
human-readable record (see `record.py` for the layout).

Used for:
- Protocol debugging (place it after decryption to see cleartext)
- Recording exchanges for replay fixtures
- Inspecting device responses

The record is written synchronously inside the read/write call, so a slow
sink delays the caller.
"""

from __future__ import annotations
import io
import logging
import sys
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional

from .packet import Direction, millis
from .record import encode_packet

logger = logging.getLogger(__name__)


class _Session:
    """Live capture state: the sink and the instant capture started."""

    def __init__(self, sink, clock: Callable[[], int], owns_sink: bool):
        self.sink = sink
        self.clock = clock
        self.start = clock()
        self.owns_sink = owns_sink
        self.text = isinstance(sink, io.TextIOBase)

    def elapsed_ms(self) -> int:
        return millis(self.clock() - self.start)

    def record(self, direction: Direction, data: bytes):
        text = encode_packet(direction, self.elapsed_ms(), data)
        # One write per record: a record is either fully handed over or not at all
        self.sink.write(text if self.text else text.encode("ascii"))


class Dump:
    """Wrap `upstream`, logging each transfer to `sink`.

    `upstream` is anything with `read`/`write` (a file, socket file,
    transport). `sink` may be a text stream (`sys.stdout`, `io.StringIO`)
    or a binary one (`open(path, "wb")`, `io.BytesIO`). Pass `sink=None`
    (or use `Dump.passthrough`) for no capture at all.

    Usage:
        with Dump.to_file(transport, "session.dump") as dev:
            dev.write(b"PING")
            reply = dev.read(4)
    """

    def __init__(
        self,
        upstream,
        sink=None,
        clock: Callable[[], int] = time.monotonic_ns,
        _owns_sink: bool = False,
    ):
        """Initialize the decorator.

        Args:
            upstream: Stream being wrapped
            sink: Writable destination for records, or None for pass-through
            clock: Nanosecond monotonic clock; the session epoch is read at
                   construction
        """
        self.upstream = upstream
        self._session: Optional[_Session] = None
        if sink is not None:
            self._session = _Session(sink, clock, _owns_sink)

    @classmethod
    def to_file(cls, upstream, path, **kwargs) -> "Dump":
        """Dump `upstream`'s activity to the file at `path` (truncated)."""
        sink = open(Path(path), "wb")
        return cls(upstream, sink, _owns_sink=True, **kwargs)

    @classmethod
    def to_stdout(cls, upstream, **kwargs) -> "Dump":
        return cls(upstream, sys.stdout, **kwargs)

    @classmethod
    def passthrough(cls, upstream) -> "Dump":
        """Wrap without capturing; reads and writes are forwarded only."""
        return cls(upstream, None)

    @property
    def capturing(self) -> bool:
        return self._session is not None

    @property
    def sink(self):
        return self._session.sink if self._session else None

    def elapsed(self) -> Optional[timedelta]:
        """Time since capture started, as it would be written now."""
        if self._session is None:
            return None
        return timedelta(milliseconds=self._session.elapsed_ms())

    def _capture(self, direction: Direction, data: bytes):
        if self._session is None:
            return
        logger.debug(f"{direction.name} {len(data)} bytes: {bytes(data[:16]).hex()}")
        self._session.record(direction, data)

    # Stream interface

    def read(self, size: int = -1) -> bytes:
        """Read from upstream; the returned bytes become one READ packet."""
        data = self.upstream.read(size)
        if data is None:  # non-blocking upstream with nothing ready
            return data
        self._capture(Direction.READ, data)
        return data

    def readinto(self, buffer) -> int:
        """Read into `buffer`; the first n bytes become one READ packet."""
        n = self.upstream.readinto(buffer)
        if n is None:
            return n
        if self._session is not None:
            self._capture(Direction.READ, bytes(memoryview(buffer)[:n]))
        return n

    def write(self, data) -> int:
        """Write to upstream; the accepted prefix becomes one WRITE packet."""
        n = self.upstream.write(data)
        if n is None:
            return n
        if self._session is not None:
            self._capture(Direction.WRITE, bytes(memoryview(data)[:n]))
        return n

    def flush(self):
        """Flush upstream only. The sink keeps its own timing."""
        flush = getattr(self.upstream, "flush", None)
        if flush is not None:
            flush()

    def __getattr__(self, name):
        # Anything else (set_timeout, waiting, ...) is the wrapped stream's
        if name == "upstream":
            raise AttributeError(name)
        return getattr(self.upstream, name)

    def close(self):
        """Close upstream, then any sink opened by `to_file`."""
        try:
            close = getattr(self.upstream, "close", None)
            if close is not None:
                close()
        finally:
            session = self._session
            if session is not None and session.owns_sink and not session.sink.closed:
                session.sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        mode = "capturing" if self.capturing else "passthrough"
        return f"Dump({self.upstream!r}, {mode})"
