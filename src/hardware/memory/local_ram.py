"""
Local RAM Module for the HybridCore math accelerator.

Scratch memory next to the accelerator controller, one 16-bit accelerator
word per address.  Single port: combinational read of `addr`, synchronous
write on `write_enable`.  There is no acknowledge; every access completes
in the cycle it is presented.
"""

from amaranth import *
from amaranth.lib.memory import Memory


# Default configuration
LOCAL_RAM_DEPTH = 256
LOCAL_RAM_WIDTH = 16


class LocalRAM(Elaboratable):
    """
    Local RAM.

    Parameters
    ----------
    depth : int
        Number of words (default 256).
    init : list of int
        Initial contents (remaining words are zero).

    Ports
    -----
    addr         : Signal(range(depth)), in
    read_data    : Signal(16), out
    write_enable : Signal(), in
    write_data   : Signal(16), in
    """

    def __init__(self, depth=LOCAL_RAM_DEPTH, init=()):
        self.depth = depth
        self.init = list(init)

        self.addr = Signal(range(depth))
        self.read_data = Signal(LOCAL_RAM_WIDTH)
        self.write_enable = Signal()
        self.write_data = Signal(LOCAL_RAM_WIDTH)

    def elaborate(self, platform):
        m = Module()

        m.submodules.mem = mem = Memory(
            shape=LOCAL_RAM_WIDTH, depth=self.depth, init=self.init
        )

        # Read port - combinational for single-cycle reads
        rd_port = mem.read_port(domain="comb")
        m.d.comb += [
            rd_port.addr.eq(self.addr),
            self.read_data.eq(rd_port.data),
        ]

        # Write port - synchronous
        wr_port = mem.write_port()
        m.d.comb += [
            wr_port.addr.eq(self.addr),
            wr_port.data.eq(self.write_data),
            wr_port.en.eq(self.write_enable),
        ]

        return m
