"""
HybridCore Scalar Pipeline -- Top-Level Module.

Wires Instruction Decoder -> Control Unit -> Register File -> ALU and the
memory bus.  One externally supplied instruction is executed per clock
cycle: decode, register read, ALU evaluation and memory address generation
are combinational; the write-back commits on the clock edge.

There is no fetch unit, program counter or branch logic; the caller drives
`instruction` directly every cycle.

Datapath
--------
    src1 value  -> ALU operand_a, address base
    src2 value  -> ALU operand_b (or the extended immediate for LOAD/STORE)
    dest value  -> store data (second read port is steered to dest on STORE)
    mem_addr    =  src1 value + extended immediate (LOAD/STORE only)
    write-back  =  mem_data_in on LOAD, ALU result otherwise
"""

from amaranth import *

from .isa import DATA_WIDTH, INSTR_WIDTH, TYPE_FP16
from .instruction_decoder import InstructionDecoder
from .control_unit import ControlUnit
from .register_file import RegisterFile
from .alu import ALU


class HybridCoreProcessor(Elaboratable):
    """
    Scalar pipeline.

    Ports -- instruction stream
    ---------------------------
    instruction : Signal(32), in
    clear       : Signal(), in    -- zero the register file

    Ports -- memory bus
    -------------------
    mem_data_in      : Signal(64), in
    mem_addr         : Signal(64), out
    mem_data_out     : Signal(64), out
    mem_write_enable : Signal(), out
    mem_read_enable  : Signal(), out
    """

    def __init__(self):
        self.instruction = Signal(INSTR_WIDTH)
        self.clear = Signal()

        self.mem_data_in = Signal(DATA_WIDTH)
        self.mem_addr = Signal(DATA_WIDTH)
        self.mem_data_out = Signal(DATA_WIDTH)
        self.mem_write_enable = Signal()
        self.mem_read_enable = Signal()

        # --- Sub-modules (created here for test access) ---
        self.decoder = InstructionDecoder()
        self.control = ControlUnit()
        self.register_file = RegisterFile()
        self.alu = ALU()

    def elaborate(self, platform):
        m = Module()

        decoder = self.decoder
        control = self.control
        regs = self.register_file
        alu = self.alu

        m.submodules.decoder = decoder
        m.submodules.control = control
        m.submodules.register_file = regs
        m.submodules.alu = alu

        # =============================================================
        # Decode
        # =============================================================

        m.d.comb += [
            decoder.instruction.eq(self.instruction),
            control.opcode.eq(decoder.opcode),
            control.mode.eq(decoder.mode),
        ]

        # Immediate: sign-extended for integer types, zero-extended for
        # the floating types (tags 4..7 all have bit 2 set)
        imm_ext = Signal(DATA_WIDTH)
        is_float = Signal()
        m.d.comb += is_float.eq(decoder.type_tag >= TYPE_FP16)
        with m.If(is_float):
            m.d.comb += imm_ext.eq(decoder.imm16)
        with m.Else():
            m.d.comb += imm_ext.eq(decoder.imm16.as_signed())

        # =============================================================
        # Register read
        # =============================================================

        m.d.comb += [
            regs.rd_addr1.eq(decoder.src1),
            regs.rd_addr2.eq(Mux(control.mem_write, decoder.dest, decoder.src2)),
            regs.clear.eq(self.clear),
        ]

        # =============================================================
        # Execute
        # =============================================================

        m.d.comb += [
            alu.opcode.eq(control.alu_op),
            alu.mode.eq(control.alu_mode),
            alu.pass_through.eq(control.alu_pass),
            alu.type_tag.eq(decoder.type_tag),
            alu.operand_a.eq(regs.rd_data1),
            alu.operand_b.eq(Mux(control.imm_select, imm_ext, regs.rd_data2)),
        ]

        # =============================================================
        # Memory bus
        # =============================================================

        mem_access = control.mem_read | control.mem_write
        m.d.comb += [
            self.mem_read_enable.eq(control.mem_read),
            self.mem_write_enable.eq(control.mem_write),
            self.mem_addr.eq(Mux(mem_access, regs.rd_data1 + imm_ext, 0)),
            self.mem_data_out.eq(Mux(control.mem_write, regs.rd_data2, 0)),
        ]

        # =============================================================
        # Write-back
        # =============================================================

        m.d.comb += [
            regs.wr_addr.eq(decoder.dest),
            regs.wr_type.eq(decoder.type_tag),
            regs.wr_data.eq(Mux(control.mem_read, self.mem_data_in, alu.result)),
            regs.wr_en.eq(control.reg_write),
        ]

        return m
