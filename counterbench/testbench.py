"""Testbench that clocks the counter and shows its value on a Vbuddy."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence, Tuple

from .counter import Counter
from .protocol import ProtocolError
from .serial_link import SerialLinkError
from .vbuddy import DEFAULT_CONFIG, Vbuddy
from .vcd import VcdWriter, counter_signals

HEADER = "Lab 3: Siuu"
DEFAULT_CYCLES = 1000
DEFAULT_TRACE = "counter.vcd"


def hex_digits(count: int) -> Tuple[Tuple[int, int], ...]:
    """(digit, value) pairs sent for ``count``, left-most digit first."""
    count = int(count)
    return (
        (4, (count >> 16) & 0xF),
        (3, (count >> 8) & 0xF),
        (2, (count >> 4) & 0xF),
        (1, count & 0xF),
    )


def run(vbuddy: Vbuddy, counter: Counter, trace: VcdWriter,
        cycles: int = DEFAULT_CYCLES) -> int:
    """Simulate ``cycles`` clock cycles, reporting each one to the board.

    The flag on the board drives the counter's enable. Returns the number of
    cycles run; the board and trace are closed unless the simulation finished
    early.
    """
    vbuddy.header(HEADER)
    counter.clk = 1
    counter.rst = 1
    counter.en = 0

    for i in range(cycles):
        for phase in range(2):
            trace.dump(2 * i + phase)
            counter.clk = int(not counter.clk)
            counter.eval()

        for digit, value in hex_digits(counter.count):
            vbuddy.hex(digit, value)
        vbuddy.cycle(i + 1)

        counter.rst = int(i < 2 or i == 15)
        counter.en = int(vbuddy.flag())
        vbuddy.set_mode(1)

        if counter.finished:
            return i + 1

    vbuddy.close()
    trace.close()
    return cycles


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="counterbench",
        description="Clock the counter and show its value on a Vbuddy board.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG,
                        help="file whose first line names the serial port")
    parser.add_argument("--vcd", default=DEFAULT_TRACE,
                        help="where to write the waveform trace")
    parser.add_argument("--cycles", type=int, default=DEFAULT_CYCLES,
                        help="number of clock cycles to simulate")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Command entry point; returns the process exit status."""
    args = _parse_args(argv)
    counter = Counter()
    trace = VcdWriter(counter_signals(counter))
    trace.open(args.vcd)
    vbuddy = Vbuddy()
    try:
        try:
            vbuddy.open(args.config)
        except FileNotFoundError:
            print(f"Cannot find {args.config}", file=sys.stderr)
            return 1
        except (SerialLinkError, ProtocolError, OSError) as exc:
            print(str(exc), file=sys.stderr)
            return 1
        run(vbuddy, counter, trace, args.cycles)
        return 0
    finally:
        trace.close()


if __name__ == "__main__":
    sys.exit(main())