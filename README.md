# counterbench

A small testbench for an 8-bit synchronous counter. It simulates the counter
clock edge by clock edge, records its signals to a VCD waveform file, and
drives a Vbuddy board over a serial port: the count is shown on the board's
seven-segment digits and the cycle number on its screen, while the board's
flag is read back every cycle and fed to the counter's `en` input.

The package uses `termios` and `fcntl`, so it runs on POSIX systems.

## Installing

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Running the testbench

Put a file named `vbuddy.cfg` in the working directory. Its first line is the
path of the serial device the Vbuddy is attached to, for example
`/dev/ttyUSB0`. Then run:

```
counterbench
```

Options:

- `--config PATH` — the file whose first line names the serial port
  (default `vbuddy.cfg`).
- `--vcd PATH` — where to write the waveform trace (default `counter.vcd`).
- `--cycles N` — number of clock cycles to simulate (default 1000).

The testbench opens the port at 115200 baud, clears the screen, writes the
header `Lab 3: Siuu` and then runs the cycles. Reset is held for the first two
cycles and again at cycle 15; after each cycle the `en` input is set from the
board's flag and the flag is put in one-shot mode. At the end the board shows
`STOP` and the link and trace file are closed. If the config file is missing
or the port cannot be opened, the command prints a message and exits with
status 1.

## Using the pieces

- `counterbench.counter.Counter` models the counter. Set its `clk`, `rst`,
  `ld`, `v` and `en` inputs, call `eval()`, and read `count`. On each rising
  edge of `clk` the count becomes 0 if `rst` is high, `v` if `ld` is high,
  and otherwise increases by one, wrapping at 8 bits. `en` is carried and
  traced but does not change the count. Inputs wider than their declared
  width raise `ValueError`; `signals()` returns every value by name.
- `counterbench.vcd.VcdWriter` writes a VCD file from a list of
  `counterbench.vcd.Signal` objects: `open(path)`, `dump(time)` for each time
  step (only changed values are written after the first dump), `close()`.
  `counter_signals(counter)` gives the counter's signals at top level and
  inside a `counter` scope, with its `WIDTH` parameter.
- `counterbench.vbuddy.Vbuddy` talks to the board: `open(config_path)`,
  `close()`, `clear`, `hex`, `plot`, `header`, `cycle`, `flag`, `set_mode`,
  `value`, `init_analog_out`, `output_sample`, `analog_out_on`,
  `analog_out_off`, `init_mic_in` and `mic_value`. It can also be given an
  existing `SerialLink`. `counterbench.vbuddy.get_key()` returns a pending
  key from standard input without blocking, or `None`.
- `counterbench.serial_link.SerialLink` is the serial connection: `open`,
  `attach` (to use an already open pyserial-like port), timed reads of
  characters, strings and bytes, writes, `flush_receiver` and `available`.
  Failures raise `SerialLinkError` with a `code`; timed string reads that run
  out of time raise `TimeoutError`.
- `counterbench.protocol` builds the board's command lines (for example
  `hex_command`, `cycle_command`, `plot_command`), reads the port name with
  `read_port_name`, and parses replies with `is_ack`, `parse_flag` and
  `parse_reply`, raising `ProtocolError` on malformed input.
- `counterbench.testbench.run(vbuddy, counter, trace, cycles)` runs the
  simulation loop against the board, counter and trace you give it;
  `hex_digits(count)` gives the digit/value pairs shown for a count.

## What it does not do

The simulator models this one counter design only; it does not read or
simulate other hardware descriptions. The testbench needs a Vbuddy board on a
serial port and has no mode that runs without one. VCD files are written, not
read or displayed.