"""
Control Unit Module for the HybridCore scalar pipeline.

Combinational decode of the opcode into write/memory enables, the
immediate select and the effective ALU operation.  The mode bit is
forwarded to the ALU unchanged; the control unit never reinterprets an
opcode by mode.

    0x0-0x6  arithmetic          reg_write
    0x7-0xC  logic/compare/shift reg_write
    0xD      LOAD                reg_write, mem_read, imm_select
    0xE      STORE               mem_write, imm_select
    0xF      MOV                 reg_write, alu_pass (src1 regardless of mode)

Any other opcode drops every enable (no-op, not an error).
"""

from amaranth import *

from .isa import OP_ADD, OP_MOV, OP_LOAD, OP_STORE


class ControlUnit(Elaboratable):
    """
    Control Unit.

    Ports
    -----
    opcode     : Signal(4), in
    mode       : Signal(), in
    reg_write  : Signal(), out
    mem_read   : Signal(), out
    mem_write  : Signal(), out
    imm_select : Signal(), out
    alu_op     : Signal(4), out
    alu_mode   : Signal(), out
    alu_pass   : Signal(), out
    """

    def __init__(self):
        self.opcode = Signal(4)
        self.mode = Signal()

        self.reg_write = Signal()
        self.mem_read = Signal()
        self.mem_write = Signal()
        self.imm_select = Signal()
        self.alu_op = Signal(4)
        self.alu_mode = Signal()
        self.alu_pass = Signal()

    def elaborate(self, platform):
        m = Module()

        m.d.comb += self.alu_mode.eq(self.mode)

        with m.Switch(self.opcode):
            with m.Case(*range(0x0, 0x7)):
                m.d.comb += [
                    self.reg_write.eq(1),
                    self.alu_op.eq(self.opcode),
                ]
            with m.Case(*range(0x7, 0xD)):
                m.d.comb += [
                    self.reg_write.eq(1),
                    self.alu_op.eq(self.opcode),
                ]
            with m.Case(OP_LOAD):
                m.d.comb += [
                    self.reg_write.eq(1),
                    self.mem_read.eq(1),
                    self.imm_select.eq(1),
                    self.alu_op.eq(OP_ADD),
                ]
            with m.Case(OP_STORE):
                m.d.comb += [
                    self.mem_write.eq(1),
                    self.imm_select.eq(1),
                    self.alu_op.eq(OP_ADD),
                ]
            with m.Case(OP_MOV):
                m.d.comb += [
                    self.reg_write.eq(1),
                    self.alu_op.eq(OP_MOV),
                    self.alu_pass.eq(1),
                ]
            with m.Default():
                pass  # all enables stay low

        return m
