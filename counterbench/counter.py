"""Cycle-based model of an 8-bit loadable counter with synchronous reset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

WIDTH = 8
MAX_ITERATIONS = 100

_MASK = (1 << WIDTH) - 1
_INPUT_WIDTHS = {"clk": 1, "rst": 1, "ld": 1, "v": WIDTH, "en": 1}


class ConvergenceError(RuntimeError):
    """Evaluation kept scheduling work and did not settle."""


@dataclass
class Counter:
    """The counter design: inputs clk, rst, ld, v, en and output count.

    On each rising edge of ``clk`` the count becomes 0 when ``rst`` is high,
    otherwise ``v`` when ``ld`` is high, otherwise count + 1 (wrapping at
    8 bits). ``en`` is an input of the design but does not affect the count.
    Call :meth:`eval` after changing inputs.
    """

    name: str = "TOP"
    clk: int = 0
    rst: int = 0
    ld: int = 0
    v: int = 0
    en: int = 0
    count: int = 0
    finished: bool = field(default=False, init=False)
    _prev_clk: int = field(default=0, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)

    def _check_widths(self) -> None:
        for signal, width in _INPUT_WIDTHS.items():
            value = getattr(self, signal)
            if not 0 <= int(value) < (1 << width):
                raise ValueError(
                    f"{signal} = {value} does not fit in {width} bit(s)"
                )

    def _rising_edge(self) -> bool:
        edge = bool(self.clk) and not self._prev_clk
        self._prev_clk = int(self.clk)
        return edge

    def _clocked_update(self) -> None:
        if self.rst:
            self.count = 0
        elif self.ld:
            self.count = int(self.v) & _MASK
        else:
            self.count = (self.count + 1) & _MASK

    def eval(self) -> None:
        """Propagate the current inputs through the design."""
        self._check_widths()
        if not self._initialized:
            self._initialized = True
            self._prev_clk = int(self.clk)

        nba_iterations = 0
        while True:
            if nba_iterations > MAX_ITERATIONS:
                raise ConvergenceError("NBA region did not converge.")
            nba_iterations += 1

            nba_pending = False
            act_iterations = 0
            while True:
                if act_iterations > MAX_ITERATIONS:
                    raise ConvergenceError("Active region did not converge.")
                act_iterations += 1
                if not self._rising_edge():
                    break
                nba_pending = True

            if not nba_pending:
                return
            self._clocked_update()

    def final(self) -> None:
        """Run the end-of-simulation step; the design has no final blocks."""
        self.finished = True

    def signals(self) -> Dict[str, int]:
        """Current value of every input and output, in declaration order."""
        return {
            "clk": int(self.clk),
            "rst": int(self.rst),
            "ld": int(self.ld),
            "v": int(self.v),
            "en": int(self.en),
            "count": int(self.count),
        }