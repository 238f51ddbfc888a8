"""Tests for mock and replay transports."""

import io

import pytest

from iodump.dump import Dump
from iodump.packet import Direction
from iodump.reader import DumpReader
from iodump.record import ReplayMismatchError
from iodump.transport import MockTransport, ReplayTransport


def test_mock_serves_one_chunk_per_read():
    t = MockTransport()
    t.queue_response(b"abc")
    t.queue_response(b"de")

    assert t.waiting() == 3
    assert t.read(2) == b"ab"
    assert t.read(10) == b"c"
    assert t.read(10) == b"de"
    assert t.read(10) == b""


def test_mock_fail_next_is_one_shot():
    t = MockTransport()
    t.fail_next(OSError("boom"))
    with pytest.raises(OSError):
        t.read(1)
    assert t.read(1) == b""


def record(exchange):
    """Run `exchange` through a Dump and return the recorded packets."""
    t = MockTransport()
    for direction, data in exchange:
        if direction is Direction.READ:
            t.queue_response(data)
    sink = io.StringIO()
    dev = Dump(t, sink)
    for direction, data in exchange:
        if direction is Direction.WRITE:
            dev.write(data)
        else:
            dev.read(len(data) or 1)
    return list(DumpReader(io.StringIO(sink.getvalue())))


EXCHANGE = [
    (Direction.WRITE, b"\x0a\x00\x04\x00"),
    (Direction.READ, b"\x09"),
    (Direction.WRITE, b"HELLO"),
    (Direction.READ, b"WORLD"),
    (Direction.READ, b""),
]


def test_replay_happy_path():
    replay = ReplayTransport(record(EXCHANGE))

    assert replay.write(b"\x0a\x00\x04\x00") == 4
    assert replay.read(16) == b"\x09"
    # writes may be split differently than recorded
    replay.write(b"HEL")
    replay.write(b"LO")
    assert replay.waiting() == 5
    assert replay.read(3) == b"WOR"
    assert replay.read(16) == b"LD"
    assert replay.read(16) == b""
    assert replay.done


def test_replay_write_divergence():
    replay = ReplayTransport(record(EXCHANGE))
    with pytest.raises(ReplayMismatchError, match="diverges"):
        replay.write(b"\x0b")


def test_replay_out_of_order():
    replay = ReplayTransport(record(EXCHANGE))
    with pytest.raises(ReplayMismatchError, match="recording has WRITE"):
        replay.read(1)


def test_replay_past_end():
    replay = ReplayTransport(record([(Direction.READ, b"z")]))
    assert replay.read(1) == b"z"
    with pytest.raises(ReplayMismatchError, match="after end"):
        replay.read(1)


def test_replay_from_file(tmp_path):
    path = tmp_path / "fixture.dump"
    t = MockTransport()
    t.queue_response(b"pong")
    with Dump.to_file(t, path) as dev:
        dev.write(b"ping")
        dev.read(4)

    replay = ReplayTransport.from_file(path)
    replay.write(b"ping")
    assert replay.read(4) == b"pong"
    assert replay.done
