import pytest

from counterbench.serial_link import (
    DataBits,
    Parity,
    SerialLink,
    SerialLinkError,
    StopBits,
    Timer,
)


class FakePort:
    def __init__(self, incoming=b"", short_write=False):
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.closed = False
        self.short_write = short_write

    def write(self, data):
        if self.short_write:
            self.written += data[:-1]
            return len(data) - 1
        self.written += data
        return len(data)

    def read(self, size=1):
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk

    def reset_input_buffer(self):
        self.incoming.clear()

    @property
    def in_waiting(self):
        return len(self.incoming)

    def close(self):
        self.closed = True


def make_link(incoming=b"", **kwargs):
    port = FakePort(incoming, **kwargs)
    link = SerialLink()
    link.attach(port)
    return link, port


def test_write_string_sends_bytes():
    link, port = make_link()
    link.write_string("$C\n")
    assert bytes(port.written) == b"$C\n"


def test_write_char_accepts_int_str_and_bytes():
    link, port = make_link()
    link.write_char(ord("$"))
    link.write_char("H")
    link.write_char(b"\n")
    assert bytes(port.written) == b"$H\n"


def test_write_char_rejects_multiple_bytes():
    link, _ = make_link()
    with pytest.raises(ValueError):
        link.write_char(b"ab")


def test_short_write_raises():
    link, _ = make_link(short_write=True)
    with pytest.raises(SerialLinkError) as info:
        link.write_bytes(b"$V\n")
    assert info.value.code == SerialLinkError.WRITE_FAILED


def test_read_string_no_timeout_stops_at_final_char():
    link, port = make_link(b"$1*rest")
    assert link.read_string_no_timeout("*", 10) == b"$1*"
    assert bytes(port.incoming) == b"rest"


def test_read_string_no_timeout_buffer_full():
    link, _ = make_link(b"abcdefgh")
    with pytest.raises(SerialLinkError) as info:
        link.read_string_no_timeout("*", 5)
    assert info.value.code == SerialLinkError.BUFFER_FULL


def test_read_string_zero_timeout_reads_line():
    link, _ = make_link(b"$ok\n")
    assert link.read_string("\n", 80, 0) == b"$ok\n"


def test_read_string_with_timeout_returns_line():
    link, _ = make_link(b"$ack\nmore")
    assert link.read_string(b"\n", 80, 200) == b"$ack\n"


def test_read_string_times_out_without_final_char():
    link, _ = make_link(b"partial")
    with pytest.raises(TimeoutError):
        link.read_string("\n", 80, 30)


def test_read_char_returns_none_on_timeout():
    link, _ = make_link()
    assert link.read_char(20) is None


def test_read_char_returns_byte():
    link, _ = make_link(b"Z")
    assert link.read_char(100) == b"Z"


def test_read_bytes_full_and_partial():
    link, _ = make_link(b"abcdef")
    assert link.read_bytes(4, 100) == b"abcd"
    assert link.read_bytes(10, 20, 10) == b"ef"


def test_available_and_flush():
    link, _ = make_link(b"xyz")
    assert link.available() == 3
    link.flush_receiver()
    assert link.available() == 0


def test_context_manager_closes_port():
    link, port = make_link()
    with link as entered:
        assert entered is link
        assert link.is_open()
    assert port.closed
    assert not link.is_open()


def test_closed_link_refuses_io():
    link = SerialLink()
    assert not link.is_open()
    with pytest.raises(SerialLinkError):
        link.write_string("$C\n")
    with pytest.raises(SerialLinkError):
        link.read_char(10)


@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"bauds": 14400}, -4),
        ({"bauds": 115200, "databits": DataBits.SIXTEEN}, -7),
        ({"bauds": 115200, "stopbits": StopBits.ONE_POINT_FIVE}, -8),
        ({"bauds": 115200, "parity": Parity.MARK}, -9),
        ({"bauds": 115200, "parity": Parity.SPACE}, -9),
    ],
)
def test_open_rejects_unsupported_settings(kwargs, code):
    link = SerialLink()
    with pytest.raises(SerialLinkError) as info:
        link.open("/dev/does-not-exist", **kwargs)
    assert info.value.code == code
    assert not link.is_open()


def test_open_missing_device_fails():
    link = SerialLink()
    with pytest.raises(SerialLinkError) as info:
        link.open("/dev/does-not-exist-counterbench", 115200)
    assert info.value.code == SerialLinkError.OPEN_FAILED


def test_timer_is_monotonic():
    timer = Timer()
    timer.start()
    first = timer.elapsed_ms()
    second = timer.elapsed_ms()
    assert 0 <= first <= second