#!/usr/bin/env python3
"""Thin CLI around the dump library.

It should remain a tiny wrapper that calls library functions and returns
meaningful exit codes: 0 on success, 2 on a dump or I/O error.
"""

import argparse
import logging
import sys
import time

from .constants import DumpConstants
from .dump import Dump
from .packet import Direction
from .reader import DumpReader
from .record import DumpError, format_packet
from .transport import SerialTransport

logger = logging.getLogger(__name__)


def cmd_show(args, out) -> int:
    with DumpReader.open(args.dump) as dump:
        for i, packet in enumerate(dump):
            if args.hex:
                out.write(format_packet(packet))
            else:
                out.write(
                    f"{i:5d}  {packet.direction.name:5s}  "
                    f"{packet.elapsed.total_seconds():10.3f}s  {len(packet.data)} bytes\n"
                )
    return 0


def cmd_cat(args, out) -> int:
    wanted = None if args.direction == "both" else Direction[args.direction.upper()]
    sink = open(args.output, "wb") if args.output else out.buffer
    try:
        with DumpReader.open(args.dump) as dump:
            for packet in dump:
                if wanted is None or packet.direction is wanted:
                    sink.write(packet.data)
    finally:
        if args.output:
            sink.close()
        else:
            sink.flush()
    return 0


def cmd_monitor(args, out, transport_factory=SerialTransport) -> int:
    transport = transport_factory(args.port, args.baud, args.timeout)
    try:
        if args.output:
            dev = Dump.to_file(transport, args.output)
        else:
            dev = Dump(transport, out)
    except OSError:
        transport.close()
        raise

    logger.info(f"Monitoring {args.port} at {args.baud} baud (Ctrl+C to stop)")
    recorded = 0
    try:
        with dev:
            while args.count is None or recorded < args.count:
                pending = dev.waiting()
                if not pending:
                    time.sleep(DumpConstants.MONITOR_IDLE_SLEEP_S)
                    continue
                dev.read(pending)
                recorded += 1
    except KeyboardInterrupt:
        logger.info("Monitoring stopped")
    logger.info(f"Recorded {recorded} reads")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iodump", description="Inspect and record byte-stream dumps"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="cmd")

    p = sub.add_parser("show", help="list packets in a dump")
    p.add_argument("dump")
    p.add_argument("--hex", action="store_true", help="re-emit records in dump format")

    p = sub.add_parser("cat", help="write packet payloads as raw bytes")
    p.add_argument("dump")
    p.add_argument("--direction", choices=["read", "write", "both"], default="both")
    p.add_argument("-o", "--output", help="output file (default: stdout)")

    p = sub.add_parser("monitor", help="record serial traffic to a dump")
    p.add_argument("--port", default=DumpConstants.DEFAULT_PORT)
    p.add_argument("--baud", type=int, default=DumpConstants.DEFAULT_BAUDRATE)
    p.add_argument("--timeout", type=float, default=DumpConstants.DEFAULT_TIMEOUT_S)
    p.add_argument("-o", "--output", help="dump file (default: stdout)")
    p.add_argument("--count", type=int, help="stop after this many reads")

    return parser


COMMANDS = {"show": cmd_show, "cat": cmd_cat, "monitor": cmd_monitor}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.cmd not in COMMANDS:
        parser.print_help()
        return 1

    try:
        return COMMANDS[args.cmd](args, sys.stdout)
    except (DumpError, OSError) as e:
        logger.error(f"{args.cmd} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
