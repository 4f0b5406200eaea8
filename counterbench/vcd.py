"""Value change dump (VCD) tracing of the counter's signals."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .counter import WIDTH, Counter

TIMESCALE = "1ps"


def _identifier(code: int) -> str:
    """Short printable VCD identifier for a signal code."""
    chars = []
    while True:
        chars.append(chr(33 + code % 94))
        code //= 94
        if code == 0:
            return "".join(chars)


@dataclass(frozen=True)
class Signal:
    """One traced variable; signals sharing a ``code`` share one value."""

    name: str
    width: int
    code: int
    read: Callable[[], int]
    scope: Tuple[str, ...] = ()
    kind: str = "wire"

    @property
    def identifier(self) -> str:
        return _identifier(self.code)

    @property
    def declaration(self) -> str:
        bits = f" [{self.width - 1}:0]" if self.width > 1 else ""
        return f"$var {self.kind} {self.width} {self.identifier} {self.name}{bits} $end"

    def format(self, value: int) -> str:
        if self.width == 1:
            return f"{value}{self.identifier}"
        return f"b{value:0{self.width}b} {self.identifier}"


class VcdWriter:
    """Writes the values of a fixed set of signals to a VCD file.

    The first dump after opening records every value; later dumps record
    only the values that changed.
    """

    def __init__(self, signals: Iterable[Signal], timescale: str = TIMESCALE) -> None:
        self.signals: List[Signal] = list(signals)
        if not self.signals:
            raise ValueError("no signals to trace")
        self.timescale = timescale
        self._by_code: Dict[int, Signal] = {}
        for signal in self.signals:
            if signal.width < 1:
                raise ValueError(f"signal {signal.name} has width {signal.width}")
            known = self._by_code.setdefault(signal.code, signal)
            if known.width != signal.width:
                raise ValueError(
                    f"signals {known.name} and {signal.name} share code "
                    f"{signal.code} with different widths"
                )
        self._handle: Optional[IO[str]] = None
        self._last: Dict[int, int] = {}
        self._time: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self, path: Union[str, Path]) -> None:
        """Create ``path`` and write the declarations."""
        if self._handle is not None:
            raise RuntimeError("trace file is already open")
        self._handle = open(path, "w", encoding="ascii", newline="\n")
        self._last = {}
        self._time = None
        self._handle.write(self._header())

    def _header(self) -> str:
        lines = [
            "$version Generated by counterbench $end",
            f"$date {time.asctime()} $end",
            f"$timescale {self.timescale} $end",
            "",
        ]
        stack: List[str] = []
        for signal in self.signals:
            common = 0
            for current, wanted in zip(stack, signal.scope):
                if current != wanted:
                    break
                common += 1
            while len(stack) > common:
                stack.pop()
                lines.append("$upscope $end")
            for name in signal.scope[common:]:
                stack.append(name)
                lines.append(f"$scope module {name} $end")
            lines.append(signal.declaration)
        lines.extend("$upscope $end" for _ in stack)
        lines.append("$enddefinitions $end")
        lines.append("")
        return "\n".join(lines) + "\n"

    def dump(self, time: int) -> None:
        """Record the values at simulation ``time``."""
        if self._handle is None:
            raise RuntimeError("trace file is not open")
        if time < 0 or (self._time is not None and time < self._time):
            raise ValueError(f"time {time} goes backwards")
        self._time = time
        lines = [f"#{time}"]
        for code, signal in self._by_code.items():
            value = int(signal.read()) & ((1 << signal.width) - 1)
            if self._last.get(code) != value:
                self._last[code] = value
                lines.append(signal.format(value))
        self._handle.write("\n".join(lines) + "\n")

    def close(self) -> None:
        """Flush and close the file; does nothing if none is open."""
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()

    def __enter__(self) -> "VcdWriter":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def counter_signals(counter: Counter) -> List[Signal]:
    """The counter's inputs and output at top level and inside its module scope."""
    top = (counter.name,) if counter.name else ()
    inner = top + ("counter",)
    wires = [("clk", 1, 1), ("rst", 1, 2), ("ld", 1, 3), ("v", WIDTH, 4),
             ("en", 1, 5), ("count", WIDTH, 6)]

    def scoped_signals(scope: Tuple[str, ...]) -> List[Signal]:
        return [
            Signal(name, width, code, _reader(counter, name), scope)
            for name, width, code in wires
        ]

    width_parameter = Signal("WIDTH", 32, 7, lambda: WIDTH, inner, "parameter")
    return scoped_signals(top) + [width_parameter] + scoped_signals(inner)


def _reader(counter: Counter, name: str) -> Callable[[], int]:
    return lambda: int(getattr(counter, name))