"""
ALU Module for the HybridCore scalar pipeline.

Dual-mode evaluator.  The same 4-bit opcode selects from one of two tables:

GP mode (mode=0)
    ADD, SUB, MUL, AND, OR, XOR over the width implied by the type tag; the
    result is masked to that width and zero-extended.  The floating types
    are computed as plain integer arithmetic on the raw 64-bit pattern (no
    IEEE-754).  MOV passes src1.  DIV, MOD, NEG, ABS, CMP, SHL, SHR are
    unimplemented and yield zero.

AMC mode (mode=1)
    MADD -> src1 * src2, SQRT -> src1, SIN -> src1.  MSUB, INV, EXP, LOG,
    COS, TAN, RSQRT are unimplemented and yield zero.

pass_through (driven by the control unit for MOV) forces src1 in either
mode.  The ALU never faults.
"""

from amaranth import *

from .isa import (DATA_WIDTH, MODE_GP,
                  OP_ADD, OP_SUB, OP_MUL, OP_AND, OP_OR, OP_XOR, OP_MOV,
                  AMC_MADD, AMC_SQRT, AMC_SIN,
                  TYPE_INT8, TYPE_INT16, TYPE_INT32)


class ALU(Elaboratable):
    """
    Dual-mode ALU.

    Ports
    -----
    opcode       : Signal(4), in
    mode         : Signal(), in
    type_tag     : Signal(3), in
    pass_through : Signal(), in
    operand_a    : Signal(64), in   -- src1 value
    operand_b    : Signal(64), in   -- src2 value or extended immediate
    result       : Signal(64), out
    """

    def __init__(self):
        self.opcode = Signal(4)
        self.mode = Signal()
        self.type_tag = Signal(3)
        self.pass_through = Signal()
        self.operand_a = Signal(DATA_WIDTH)
        self.operand_b = Signal(DATA_WIDTH)
        self.result = Signal(DATA_WIDTH)

    def elaborate(self, platform):
        m = Module()

        a = self.operand_a
        b = self.operand_b

        # Full-width GP result before type masking
        gp_raw = Signal(DATA_WIDTH)
        with m.Switch(self.opcode):
            with m.Case(OP_ADD):
                m.d.comb += gp_raw.eq(a + b)
            with m.Case(OP_SUB):
                m.d.comb += gp_raw.eq(a - b)
            with m.Case(OP_MUL):
                m.d.comb += gp_raw.eq(a * b)
            with m.Case(OP_AND):
                m.d.comb += gp_raw.eq(a & b)
            with m.Case(OP_OR):
                m.d.comb += gp_raw.eq(a | b)
            with m.Case(OP_XOR):
                m.d.comb += gp_raw.eq(a ^ b)
            with m.Case(OP_MOV):
                m.d.comb += gp_raw.eq(a)
            with m.Default():
                m.d.comb += gp_raw.eq(0)

        # Truncate to the integer width, zero-extended
        gp_result = Signal(DATA_WIDTH)
        with m.If(self.opcode == OP_MOV):
            m.d.comb += gp_result.eq(gp_raw)
        with m.Else():
            with m.Switch(self.type_tag):
                with m.Case(TYPE_INT8):
                    m.d.comb += gp_result.eq(gp_raw[0:8])
                with m.Case(TYPE_INT16):
                    m.d.comb += gp_result.eq(gp_raw[0:16])
                with m.Case(TYPE_INT32):
                    m.d.comb += gp_result.eq(gp_raw[0:32])
                with m.Default():
                    # INT64 and the raw-bit floating types
                    m.d.comb += gp_result.eq(gp_raw)

        amc_result = Signal(DATA_WIDTH)
        with m.Switch(self.opcode):
            with m.Case(AMC_MADD):
                m.d.comb += amc_result.eq(a * b)
            with m.Case(AMC_SQRT, AMC_SIN):
                m.d.comb += amc_result.eq(a)
            with m.Default():
                m.d.comb += amc_result.eq(0)

        with m.If(self.pass_through):
            m.d.comb += self.result.eq(a)
        with m.Elif(self.mode == MODE_GP):
            m.d.comb += self.result.eq(gp_result)
        with m.Else():
            m.d.comb += self.result.eq(amc_result)

        return m
