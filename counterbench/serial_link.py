"""Serial port access with millisecond timeouts, built on pyserial."""

from __future__ import annotations

import enum
import time
from typing import Any, Optional, Union

import serial

SUPPORTED_BAUDS = frozenset({9600, 19200, 38400, 57600, 115200})

ByteLike = Union[int, str, bytes]


class DataBits(enum.Enum):
    """Number of data bits in one UART frame."""

    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    SIXTEEN = 16


class StopBits(enum.Enum):
    """Number of stop bits in one UART frame."""

    ONE = 1
    ONE_POINT_FIVE = 1.5
    TWO = 2


class Parity(enum.Enum):
    """Parity bit type."""

    NONE = "N"
    EVEN = "E"
    ODD = "O"
    MARK = "M"
    SPACE = "S"


class SerialLinkError(Exception):
    """A serial operation failed; ``code`` identifies the kind of failure."""

    WRITE_FAILED = -1
    OPEN_FAILED = -2
    READ_FAILED = -2
    BUFFER_FULL = -3
    BAD_SPEED = -4
    BAD_DATABITS = -7
    BAD_STOPBITS = -8
    BAD_PARITY = -9

    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.code = code


class Timer:
    """Measures elapsed wall time in whole milliseconds."""

    def __init__(self) -> None:
        self._start_ns = time.monotonic_ns()

    def start(self) -> None:
        """Restart the timer from now."""
        self._start_ns = time.monotonic_ns()

    def elapsed_ms(self) -> int:
        """Milliseconds since the timer was last started."""
        return (time.monotonic_ns() - self._start_ns) // 1_000_000


def _as_byte(value: ByteLike) -> bytes:
    if isinstance(value, int):
        return bytes([value])
    if isinstance(value, str):
        value = value.encode("latin-1")
    if isinstance(value, (bytes, bytearray)) and len(value) == 1:
        return bytes(value)
    raise ValueError(f"expected a single byte, got {value!r}")


class SerialLink:
    """A non-blocking serial connection with polling reads and timeouts."""

    def __init__(self) -> None:
        self._port: Optional[Any] = None

    def open(
        self,
        device: str,
        bauds: int,
        databits: DataBits = DataBits.EIGHT,
        parity: Parity = Parity.NONE,
        stopbits: StopBits = StopBits.ONE,
    ) -> None:
        """Open ``device`` with the given line settings."""
        if bauds not in SUPPORTED_BAUDS:
            raise SerialLinkError(
                f"baud rate {bauds} not supported", SerialLinkError.BAD_SPEED
            )
        if databits is DataBits.SIXTEEN or not isinstance(databits, DataBits):
            raise SerialLinkError(
                f"data bits {databits} not supported", SerialLinkError.BAD_DATABITS
            )
        if stopbits not in (StopBits.ONE, StopBits.TWO):
            raise SerialLinkError(
                f"stop bits {stopbits} not supported", SerialLinkError.BAD_STOPBITS
            )
        if parity not in (Parity.NONE, Parity.EVEN, Parity.ODD):
            raise SerialLinkError(
                f"parity {parity} not supported", SerialLinkError.BAD_PARITY
            )
        try:
            port = serial.Serial(
                port=device,
                baudrate=bauds,
                bytesize=databits.value,
                parity=parity.value,
                stopbits=stopbits.value,
                timeout=0,
                write_timeout=None,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise SerialLinkError(
                f"cannot open {device}: {exc}", SerialLinkError.OPEN_FAILED
            ) from exc
        self.close()
        self._port = port

    def attach(self, port: Any) -> None:
        """Use an already open port object (anything with pyserial's interface)."""
        self.close()
        self._port = port

    def is_open(self) -> bool:
        """Whether a device is currently open."""
        return self._port is not None

    def close(self) -> None:
        """Close the current device; does nothing if none is open."""
        port, self._port = self._port, None
        if port is not None:
            port.close()

    def _require(self, code: int) -> Any:
        if self._port is None:
            raise SerialLinkError("device is not open", code)
        return self._port

    def write_bytes(self, data: bytes) -> None:
        """Write all of ``data`` to the port."""
        port = self._require(SerialLinkError.WRITE_FAILED)
        data = bytes(data)
        try:
            written = port.write(data)
        except (serial.SerialException, OSError) as exc:
            raise SerialLinkError(
                f"write failed: {exc}", SerialLinkError.WRITE_FAILED
            ) from exc
        if written is not None and written != len(data):
            raise SerialLinkError(
                f"wrote {written} of {len(data)} bytes", SerialLinkError.WRITE_FAILED
            )

    def write_char(self, byte: ByteLike) -> None:
        """Write a single byte."""
        self.write_bytes(_as_byte(byte))

    def write_string(self, text: str) -> None:
        """Write ``text`` encoded as Latin-1."""
        self.write_bytes(text.encode("latin-1"))

    def read_char(self, timeout_ms: int = 0) -> Optional[bytes]:
        """Wait for one byte; return it, or None when the timeout passes.

        A timeout of zero waits forever.
        """
        port = self._require(SerialLinkError.READ_FAILED)
        timer = Timer()
        while timeout_ms == 0 or timer.elapsed_ms() < timeout_ms:
            try:
                data = port.read(1)
            except (serial.SerialException, OSError) as exc:
                raise SerialLinkError(
                    f"read failed: {exc}", SerialLinkError.READ_FAILED
                ) from exc
            if data:
                return bytes(data[:1])
        return None

    def read_string_no_timeout(self, final_char: ByteLike, max_bytes: int) -> bytes:
        """Read until ``final_char`` (included), waiting as long as it takes."""
        final = _as_byte(final_char)
        received = bytearray()
        while len(received) < max_bytes:
            byte = self.read_char()
            if byte is not None:
                received += byte
                if byte == final:
                    return bytes(received)
        raise SerialLinkError(
            f"no {final!r} within {max_bytes} bytes", SerialLinkError.BUFFER_FULL
        )

    def read_string(
        self, final_char: ByteLike, max_bytes: int, timeout_ms: int = 0
    ) -> bytes:
        """Read until ``final_char`` (included) or until the timeout passes.

        Raises TimeoutError when the time runs out first. A timeout of zero
        waits forever.
        """
        if timeout_ms == 0:
            return self.read_string_no_timeout(final_char, max_bytes)
        final = _as_byte(final_char)
        received = bytearray()
        timer = Timer()
        while len(received) < max_bytes:
            remaining = timeout_ms - timer.elapsed_ms()
            if remaining > 0:
                byte = self.read_char(remaining)
                if byte is not None:
                    received += byte
                    if byte == final:
                        return bytes(received)
            if timer.elapsed_ms() > timeout_ms:
                raise TimeoutError(
                    f"timed out after {timeout_ms} ms with {bytes(received)!r}"
                )
        raise SerialLinkError(
            f"no {final!r} within {max_bytes} bytes", SerialLinkError.BUFFER_FULL
        )

    def read_bytes(
        self, max_bytes: int, timeout_ms: int = 0, sleep_us: int = 100
    ) -> bytes:
        """Read up to ``max_bytes``, stopping early when the timeout passes."""
        port = self._require(SerialLinkError.READ_FAILED)
        received = bytearray()
        timer = Timer()
        while timeout_ms == 0 or timer.elapsed_ms() < timeout_ms:
            try:
                data = port.read(max_bytes - len(received))
            except (serial.SerialException, OSError) as exc:
                raise SerialLinkError(
                    f"read failed: {exc}", SerialLinkError.READ_FAILED
                ) from exc
            if data:
                received += data
                if len(received) >= max_bytes:
                    return bytes(received)
            time.sleep(sleep_us / 1_000_000)
        return bytes(received)

    def flush_receiver(self) -> None:
        """Discard everything waiting in the receive buffer."""
        self._require(SerialLinkError.READ_FAILED).reset_input_buffer()

    def available(self) -> int:
        """Number of received bytes not yet read."""
        return int(self._require(SerialLinkError.READ_FAILED).in_waiting)

    def __enter__(self) -> "SerialLink":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()