"""Vbuddy wire protocol: command lines, acknowledgements and replies."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Union

Text = Union[str, bytes, bytearray]

MAX_PORT_NAME = 79
HEX_DIGITS = range(0, 6)

_INTEGER = re.compile(r"\s*([+-]?\d+)")


class ProtocolError(ValueError):
    """A reply or configuration did not have the expected form."""


def _as_text(value: Text) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    return value


def read_port_name(path: Union[str, Path] = "vbuddy.cfg") -> str:
    """Return the serial port name from the first line of the config file."""
    with open(path, "r", encoding="utf-8") as handle:
        line = handle.readline(MAX_PORT_NAME)
    name = line.rstrip("\r\n")
    if not name:
        raise ProtocolError(f"no port name in {path}")
    return name


def clear_command() -> str:
    """Clear the TFT screen."""
    return "$C\n"


def stop_command() -> str:
    """Show STOP in the cycle field; sent when closing."""
    return "$t,    STOP,R\n"


def hex_command(digit: int, value: int) -> str:
    """Show ``value`` on seven-segment ``digit`` (0 to 5, 1 is right-most)."""
    if digit not in HEX_DIGITS:
        raise ValueError(f"digit must be between 0 and 5, got {digit}")
    return f"$H{digit},{value}\n"


def plot_command(y: int, low: int, high: int) -> str:
    """Plot ``y`` scaled between ``low`` and ``high`` at the next x position."""
    return f"$p,{y},{low},{high}\n"


def header_command(text: str) -> str:
    """Write a centred header at the top of the screen."""
    return f"$T,{text}\n"


def cycle_command(cycle: int) -> str:
    """Report the cycle count at the bottom right of the screen."""
    return f"$t,cyc:{cycle:4d},R\n"


def flag_command() -> str:
    """Ask for the current flag value."""
    return "$Y\n"


def mode_command(mode: int) -> str:
    """Set the flag mode: 0 toggles, 1 is one-shot."""
    return f"$y,{mode:1d}\n"


def value_command() -> str:
    """Ask for the rotary encoder value."""
    return "$V\n"


def analog_out_init_command(samples: int) -> str:
    """Initialise the DAC output buffer with ``samples`` samples."""
    return f"$S,{samples}\n"


def sample_command(sample: int) -> str:
    """Send one sample to the DAC buffer."""
    return f"$s,{sample}\n"


def analog_on_command() -> str:
    """Turn analog output on."""
    return "$O\n"


def analog_off_command() -> str:
    """Turn analog output off."""
    return "$o\n"


def mic_init_command(samples: int) -> str:
    """Initialise the microphone buffer to capture ``samples`` samples."""
    return f"$M,{samples}\n"


def mic_value_command() -> str:
    """Ask for the next microphone sample."""
    return "$m\n"


def is_ack(line: Text) -> bool:
    """Whether ``line`` is an acknowledgement (it starts with ``$``)."""
    return _as_text(line).startswith("$")


def parse_flag(reply: Text) -> bool:
    """Return the flag carried by a ``$<0|1>*`` reply."""
    text = _as_text(reply)
    if len(text) < 2:
        raise ProtocolError(f"flag reply too short: {text!r}")
    return text[1] == "1"


def parse_reply(reply: Text) -> int:
    """Return the integer carried by a ``$<number>*`` reply.

    A spurious leading ``$`` (the second character not being a digit or
    anything above) is skipped and the next ``$`` is used instead.
    """
    text = _as_text(reply)
    start = text.find("$")
    if start < 0:
        raise ProtocolError(f"no '$' in reply {text!r}")
    if len(text) > 1 and ord(text[1]) < ord("0"):
        start = text.find("$", start + 1)
        if start < 0:
            raise ProtocolError(f"no second '$' in reply {text!r}")
    if "*" not in text[start:]:
        raise ProtocolError(f"no '*' in reply {text!r}")
    match = _INTEGER.match(text, start + 1)
    if match is None:
        raise ProtocolError(f"no number in reply {text!r}")
    return int(match.group(1))