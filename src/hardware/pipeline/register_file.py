"""
Register File Module for the HybridCore scalar pipeline.

16 x 64-bit cells.  Cell 0 is hardwired to zero: it always reads as zero
and writes to it are dropped.  Every write passes through the TypeCodec so
the stored value is sign/zero-extended according to the instruction type.

Two combinational read ports (src1 / src2 decode paths) and one
synchronous write port (ALU write-back).  A read of the cell being written
in the same cycle returns the old value; the new value is visible after
the clock edge.
"""

from amaranth import *

from .isa import DATA_WIDTH, NUM_REGISTERS
from .type_codec import TypeCodec


class RegisterFile(Elaboratable):
    """
    Register File.

    Ports
    -----
    rd_addr1 : Signal(4), in
    rd_data1 : Signal(64), out
    rd_addr2 : Signal(4), in
    rd_data2 : Signal(64), out
    wr_addr  : Signal(4), in
    wr_data  : Signal(64), in  -- raw value, extended by TypeCodec
    wr_type  : Signal(3), in
    wr_en    : Signal(), in
    clear    : Signal(), in   -- zero every cell on the next edge

    Attributes
    ----------
    cells : list of Signal(64)
        Storage cells, exposed for register dumps in testbenches.
    """

    def __init__(self, num_registers=NUM_REGISTERS):
        self.num_registers = num_registers

        # Read ports
        self.rd_addr1 = Signal(range(num_registers))
        self.rd_data1 = Signal(DATA_WIDTH)
        self.rd_addr2 = Signal(range(num_registers))
        self.rd_data2 = Signal(DATA_WIDTH)

        # Write port
        self.wr_addr = Signal(range(num_registers))
        self.wr_data = Signal(DATA_WIDTH)
        self.wr_type = Signal(3)
        self.wr_en = Signal()

        self.clear = Signal()

        self.cells = [Signal(DATA_WIDTH, name=f"r{i}")
                      for i in range(num_registers)]

    def elaborate(self, platform):
        m = Module()

        m.submodules.codec = codec = TypeCodec()

        regs = Array(self.cells)

        # --- Read ports (combinational, cell 0 reads zero) ---
        m.d.comb += [
            self.rd_data1.eq(Mux(self.rd_addr1 == 0, 0, regs[self.rd_addr1])),
            self.rd_data2.eq(Mux(self.rd_addr2 == 0, 0, regs[self.rd_addr2])),
        ]

        # --- Write port (synchronous, masked by TypeCodec) ---
        m.d.comb += [
            codec.type_tag.eq(self.wr_type),
            codec.raw.eq(self.wr_data),
        ]
        with m.If(self.wr_en & (self.wr_addr != 0)):
            m.d.sync += regs[self.wr_addr].eq(codec.value)

        # Clear wins over a simultaneous write
        with m.If(self.clear):
            m.d.sync += [cell.eq(0) for cell in self.cells]

        return m
