"""
Instruction Decoder Module for the HybridCore scalar pipeline.

Pure combinational field extraction.  Every 32-bit value decodes; there
are no illegal instructions at this stage.

See isa.py for the field layout.
"""

from amaranth import *

from .isa import INSTR_WIDTH, IMM_WIDTH


class InstructionDecoder(Elaboratable):
    """
    Instruction field splitter.

    Ports
    -----
    instruction : Signal(32), in
    opcode      : Signal(4), out
    mode        : Signal(), out   -- 0 = GP, 1 = AMC
    type_tag    : Signal(3), out
    dest        : Signal(4), out
    src1        : Signal(4), out
    src2        : Signal(4), out
    imm         : Signal(12), out
    imm16       : Signal(16), out -- src2 ‖ imm, used when an immediate is selected
    """

    def __init__(self):
        self.instruction = Signal(INSTR_WIDTH)

        self.opcode = Signal(4)
        self.mode = Signal()
        self.type_tag = Signal(3)
        self.dest = Signal(4)
        self.src1 = Signal(4)
        self.src2 = Signal(4)
        self.imm = Signal(12)
        self.imm16 = Signal(IMM_WIDTH)

    def elaborate(self, platform):
        m = Module()

        instr = self.instruction
        m.d.comb += [
            self.imm.eq(instr[0:12]),
            self.src2.eq(instr[12:16]),
            self.src1.eq(instr[16:20]),
            self.dest.eq(instr[20:24]),
            self.type_tag.eq(instr[24:27]),
            self.mode.eq(instr[27]),
            self.opcode.eq(instr[28:32]),
            self.imm16.eq(instr[0:16]),
        ]

        return m
