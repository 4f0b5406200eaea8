"""Counter simulation with VCD tracing, driven from a Vbuddy board over a serial link."""

__version__ = "0.1.0"
__all__ = ["counter", "protocol", "serial_link", "testbench", "vbuddy", "vcd"]