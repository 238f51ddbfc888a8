"""Transport abstractions (Serial + Mock + Replay)

Keep this small and explicit. SerialTransport wraps pyserial, MockTransport
is for unit tests, and ReplayTransport plays the peer side of a recorded
dump so an exchange can be re-run without hardware.
"""

from __future__ import annotations
from typing import Iterable, List, Optional

from .constants import DumpConstants
from .packet import Direction, Packet
from .reader import DumpReader
from .record import ReplayMismatchError


class TransportBase:
    def write(self, data: bytes) -> int:  # returns bytes written
        raise NotImplementedError

    def read(self, size: int = 1) -> bytes:
        raise NotImplementedError

    def waiting(self) -> int:  # bytes ready to read without blocking
        raise NotImplementedError

    def set_timeout(self, timeout: float):
        raise NotImplementedError

    def reset_input_buffer(self):
        raise NotImplementedError

    def reset_output_buffer(self):
        raise NotImplementedError

    def close(self):
        raise NotImplementedError


class SerialTransport(TransportBase):
    def __init__(
        self,
        port: str = DumpConstants.DEFAULT_PORT,
        baudrate: int = DumpConstants.DEFAULT_BAUDRATE,
        timeout: float = DumpConstants.DEFAULT_TIMEOUT_S,
    ):
        import serial

        self._ser = serial.Serial(port, baudrate, timeout=timeout)

    def write(self, data: bytes) -> int:
        return self._ser.write(data)

    def read(self, size: int = 1) -> bytes:
        return self._ser.read(size)

    def waiting(self) -> int:
        return self._ser.in_waiting

    def flush(self):
        self._ser.flush()

    def set_timeout(self, timeout: float):
        self._ser.timeout = timeout

    def reset_input_buffer(self):
        self._ser.reset_input_buffer()

    def reset_output_buffer(self):
        self._ser.reset_output_buffer()

    def close(self):
        self._ser.close()


class MockTransport(TransportBase):
    """Simple mock transport for unit tests.

    Reads are served from queued chunks, one chunk per read at most (so a
    test controls exactly how data arrives). `max_write` simulates short
    writes; `fail_next` makes the next read or write raise.

    Usage:
        m = MockTransport()
        m.queue_response(b"\x09")
        m.write(b"PING")
        assert m.read(16) == b"\x09"
    """

    def __init__(self, max_write: Optional[int] = None):
        self._write_log: List[bytes] = []
        self._resp: List[bytearray] = []
        self._timeout = 1.0
        self._max_write = max_write
        self._fail: Optional[BaseException] = None
        self.flushes = 0
        self.closed = False

    def queue_response(self, data: bytes):
        self._resp.append(bytearray(data))

    def fail_next(self, exc: BaseException):
        self._fail = exc

    def _check_fail(self):
        if self._fail is not None:
            exc, self._fail = self._fail, None
            raise exc

    def write(self, data: bytes) -> int:
        self._check_fail()
        n = len(data) if self._max_write is None else min(len(data), self._max_write)
        self._write_log.append(bytes(data[:n]))
        return n

    def read(self, size: int = 1) -> bytes:
        self._check_fail()
        if not self._resp:
            return b""
        chunk = self._resp[0]
        if size is None or size < 0:
            size = len(chunk)
        out = bytes(chunk[:size])
        del chunk[:size]
        if not chunk:
            self._resp.pop(0)
        return out

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def waiting(self) -> int:
        return len(self._resp[0]) if self._resp else 0

    def flush(self):
        self.flushes += 1

    def set_timeout(self, timeout: float):
        self._timeout = timeout

    def reset_input_buffer(self):
        self._resp = []

    def reset_output_buffer(self):
        self._write_log = []

    def close(self):
        self._resp = []
        self.closed = True

    @property
    def writes(self):
        return list(self._write_log)


class ReplayTransport(TransportBase):
    """Peer that replays a recorded exchange.

    READ packets are what the peer sends back; WRITE packets are what the
    code under test is expected to send. Events are consumed in recorded
    order. A recorded zero-length read replays as one `b""` (end of stream).
    """

    def __init__(self, packets: Iterable[Packet]):
        self._events = [(p.direction, bytearray(p.data)) for p in packets]
        self._pos = 0

    @classmethod
    def from_file(cls, path) -> "ReplayTransport":
        with DumpReader.open(path) as dump:
            return cls(list(dump))

    @property
    def done(self) -> bool:
        return self._pos >= len(self._events)

    def _expect(self, direction: Direction, action: str) -> bytearray:
        if self.done:
            raise ReplayMismatchError(f"{action} after end of recording")
        recorded, data = self._events[self._pos]
        if recorded is not direction:
            raise ReplayMismatchError(
                f"{action} at event {self._pos}, recording has {recorded.name}"
            )
        return data

    def write(self, data: bytes) -> int:
        data = bytes(data)
        offset = 0
        while offset < len(data):
            expected = self._expect(Direction.WRITE, "write")
            chunk = data[offset : offset + len(expected)]
            if not expected.startswith(chunk):
                raise ReplayMismatchError(
                    f"write at event {self._pos} diverges: "
                    f"expected {bytes(expected[: len(chunk)]).hex()}, got {chunk.hex()}"
                )
            del expected[: len(chunk)]
            offset += len(chunk)
            if not expected:
                self._pos += 1
        if not data:
            expected = self._expect(Direction.WRITE, "write")
            if expected:
                raise ReplayMismatchError(f"empty write at event {self._pos}")
            self._pos += 1
        return len(data)

    def read(self, size: int = 1) -> bytes:
        data = self._expect(Direction.READ, "read")
        if size is None or size < 0:
            size = len(data)
        out = bytes(data[:size])
        del data[:size]
        if not data:
            self._pos += 1
        return out

    def waiting(self) -> int:
        if self.done or self._events[self._pos][0] is not Direction.READ:
            return 0
        return len(self._events[self._pos][1])

    def set_timeout(self, timeout: float):
        pass

    def reset_input_buffer(self):
        pass

    def reset_output_buffer(self):
        pass

    def close(self):
        pass
