"""Driving a Vbuddy board over its serial link."""

from __future__ import annotations

import array
import fcntl
import os
import sys
import termios
from pathlib import Path
from typing import Optional, Union

from .protocol import (
    analog_off_command,
    analog_on_command,
    analog_out_init_command,
    clear_command,
    cycle_command,
    flag_command,
    header_command,
    hex_command,
    is_ack,
    mic_init_command,
    mic_value_command,
    mode_command,
    parse_flag,
    parse_reply,
    plot_command,
    read_port_name,
    sample_command,
    stop_command,
    value_command,
)
from .serial_link import SerialLink, SerialLinkError

BAUDS = 115200
ACK_LINE_MAX = 80
REPLY_MAX = 10
DEFAULT_CONFIG = "vbuddy.cfg"

_stdin_prepared = False


def get_key() -> Optional[str]:
    """Return a pending key from standard input, or None if none is waiting.

    Never blocks. On the first call, line buffering of a terminal on standard
    input is switched off so single key presses become visible at once.
    """
    global _stdin_prepared
    fd = sys.stdin.fileno()
    if not _stdin_prepared:
        try:
            attrs = termios.tcgetattr(fd)
            attrs[3] &= ~termios.ICANON
            termios.tcsetattr(fd, termios.TCSANOW, attrs)
        except termios.error:
            pass
        _stdin_prepared = True
    waiting = array.array("i", [0])
    fcntl.ioctl(fd, termios.FIONREAD, waiting, True)
    if waiting[0] == 0:
        return None
    data = os.read(fd, 1)
    if not data:
        return None
    return data.decode("latin-1")


class Vbuddy:
    """A Vbuddy board: seven-segment digits, TFT screen, flag, encoder and audio."""

    def __init__(self, link: Optional[SerialLink] = None) -> None:
        self.link = link if link is not None else SerialLink()

    def open(self, config_path: Union[str, Path] = DEFAULT_CONFIG) -> str:
        """Open the port named in ``config_path`` and clear the screen.

        Returns the port name. Raises SerialLinkError if the port cannot be
        opened.
        """
        port_name = read_port_name(config_path)
        try:
            self.link.open(port_name, BAUDS)
        except SerialLinkError:
            print(f"\n** Error opening port: {port_name}")
            raise
        print(f"\n ** Connected to Vbuddy via: {port_name}")
        self.link.flush_receiver()
        self.clear()
        return port_name

    def close(self) -> None:
        """Show STOP on the screen and close the link."""
        self._command(stop_command())
        self.link.close()

    def _ack(self) -> None:
        while True:
            try:
                line = self.link.read_string(b"\n", ACK_LINE_MAX, 0)
            except SerialLinkError as exc:
                if exc.code != SerialLinkError.BUFFER_FULL:
                    raise
                continue
            if is_ack(line):
                return

    def _command(self, command: str) -> None:
        self.link.write_string(command)
        self._ack()

    def _query(self, command: str, flush: bool) -> bytes:
        self.link.write_string(command)
        if flush:
            self.link.flush_receiver()
        while True:
            try:
                return self.link.read_string_no_timeout(b"*", REPLY_MAX)
            except SerialLinkError as exc:
                if exc.code != SerialLinkError.BUFFER_FULL:
                    raise

    def clear(self) -> None:
        """Clear the TFT screen to black."""
        self._command(clear_command())

    def hex(self, digit: int, value: int) -> None:
        """Show a 4-bit ``value`` on seven-segment ``digit`` (1 is right-most)."""
        self._command(hex_command(digit, value))

    def plot(self, y: int, low: int, high: int) -> None:
        """Plot ``y`` scaled between ``low`` and ``high`` at the next x position."""
        self._command(plot_command(y, low, high))

    def header(self, text: str) -> None:
        """Write a centred header at the top of the screen."""
        self._command(header_command(text))

    def cycle(self, count: int) -> None:
        """Show the cycle count at the bottom right of the screen."""
        self._command(cycle_command(count))

    def flag(self) -> bool:
        """Return the current flag value."""
        return parse_flag(self._query(flag_command(), flush=False))

    def set_mode(self, mode: int) -> None:
        """Set the flag mode: 0 toggles, 1 is one-shot."""
        self._command(mode_command(mode))

    def value(self) -> int:
        """Return the value set by the rotary encoder."""
        return parse_reply(self._query(value_command(), flush=True))

    def init_analog_out(self, samples: int) -> None:
        """Initialise the DAC output buffer with ``samples`` samples."""
        self._command(analog_out_init_command(samples))

    def output_sample(self, sample: int) -> None:
        """Send one sample to the DAC buffer."""
        self._command(sample_command(sample))

    def analog_out_on(self) -> None:
        """Turn analog output on."""
        self._command(analog_on_command())

    def analog_out_off(self) -> None:
        """Turn analog output off."""
        self._command(analog_off_command())

    def init_mic_in(self, samples: int) -> None:
        """Initialise the microphone buffer to capture ``samples`` samples."""
        self._command(mic_init_command(samples))

    def mic_value(self) -> int:
        """Return the next sample from the microphone buffer."""
        return parse_reply(self._query(mic_value_command(), flush=True))

    def __enter__(self) -> "Vbuddy":
        return self

    def __exit__(self, *args: object) -> None:
        if self.link.is_open():
            self.close()