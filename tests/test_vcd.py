import re

import pytest

from counterbench.counter import Counter
from counterbench.vcd import Signal, VcdWriter, counter_signals


def parse_vcd(text):
    header, _, body = text.partition("$enddefinitions $end")
    variables = {}
    for match in re.finditer(r"\$var (\w+) (\d+) (\S+) (\w+)", header):
        variables.setdefault(match.group(3), []).append(
            (match.group(4), int(match.group(2)))
        )
    dumps = []
    for raw in body.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            dumps.append((int(line[1:]), {}))
        elif line.startswith("b"):
            value, ident = line[1:].split()
            dumps[-1][1][ident] = int(value, 2)
        else:
            dumps[-1][1][line[1:]] = int(line[0])
    return header, variables, dumps


def ident_of(variables, name):
    for ident, entries in variables.items():
        if any(entry_name == name for entry_name, _ in entries):
            return ident
    raise KeyError(name)


@pytest.fixture
def traced(tmp_path):
    counter = Counter()
    writer = VcdWriter(counter_signals(counter))
    path = tmp_path / "counter.vcd"
    writer.open(path)
    return counter, writer, path


def test_header_declares_scopes_and_timescale(traced):
    _, writer, path = traced
    writer.close()
    header, _, _ = parse_vcd(path.read_text())
    assert "$timescale 1ps $end" in header
    assert "$scope module TOP $end" in header
    assert "$scope module counter $end" in header
    assert header.count("$upscope $end") == 2
    assert header.index("$scope module TOP") < header.index("$scope module counter")


def test_ports_declared_twice_with_shared_identifiers(traced):
    _, writer, path = traced
    writer.close()
    _, variables, _ = parse_vcd(path.read_text())
    count_entries = variables[ident_of(variables, "count")]
    assert count_entries == [("count", 8), ("count", 8)]
    assert variables[ident_of(variables, "WIDTH")] == [("WIDTH", 32)]
    assert len(variables) == 7


def test_first_dump_records_every_value(traced):
    counter, writer, path = traced
    writer.dump(0)
    writer.close()
    _, variables, dumps = parse_vcd(path.read_text())
    assert len(dumps) == 1
    time, values = dumps[0]
    assert time == 0
    assert set(values) == set(variables)
    assert values[ident_of(variables, "WIDTH")] == 8


def test_unchanged_values_are_not_repeated(traced):
    _, writer, path = traced
    writer.dump(0)
    writer.dump(1)
    writer.close()
    _, _, dumps = parse_vcd(path.read_text())
    assert dumps[1] == (1, {})


def test_changes_round_trip_to_counter_values(traced):
    counter, writer, path = traced
    counter.rst = 1
    for step in range(6):
        writer.dump(step)
        counter.clk = int(not counter.clk)
        counter.eval()
        if step == 2:
            counter.rst = 0
    writer.dump(6)
    writer.close()
    _, variables, dumps = parse_vcd(path.read_text())
    state = {}
    for _, values in dumps:
        state.update(values)
    for name, value in counter.signals().items():
        assert state[ident_of(variables, name)] == value


def test_single_bit_and_bus_formats(traced):
    counter, writer, path = traced
    counter.v = 5
    writer.dump(0)
    writer.close()
    body = path.read_text().partition("$enddefinitions $end")[2]
    lines = [line for line in body.splitlines() if line and not line.startswith("#")]
    for line in lines:
        assert re.fullmatch(r"[01]\S+|b[01]+ \S+", line)
    _, variables, dumps = parse_vcd(path.read_text())
    assert dumps[0][1][ident_of(variables, "v")] == 5


def test_time_going_backwards_is_rejected(traced):
    _, writer, _ = traced
    writer.dump(4)
    with pytest.raises(ValueError):
        writer.dump(3)
    writer.close()


def test_dump_before_open_raises():
    writer = VcdWriter(counter_signals(Counter()))
    with pytest.raises(RuntimeError):
        writer.dump(0)


def test_open_twice_raises(traced, tmp_path):
    _, writer, _ = traced
    with pytest.raises(RuntimeError):
        writer.open(tmp_path / "other.vcd")
    writer.close()


def test_context_manager_closes(tmp_path):
    writer = VcdWriter(counter_signals(Counter()))
    with writer:
        writer.open(tmp_path / "t.vcd")
        writer.dump(0)
    assert writer.is_open is False
    with pytest.raises(RuntimeError):
        writer.dump(1)


def test_shared_code_with_different_widths_rejected():
    a = Signal("a", 1, 1, lambda: 0)
    b = Signal("b", 8, 1, lambda: 0)
    with pytest.raises(ValueError):
        VcdWriter([a, b])


def test_empty_signal_list_rejected():
    with pytest.raises(ValueError):
        VcdWriter([])


def test_values_are_masked_to_width(tmp_path):
    signal = Signal("x", 4, 0, lambda: 0x1F, ("TOP",))
    path = tmp_path / "x.vcd"
    with VcdWriter([signal]) as writer:
        writer.open(path)
        writer.dump(0)
    _, variables, dumps = parse_vcd(path.read_text())
    assert dumps[0][1][ident_of(variables, "x")] == 0xF