"""
HybridCore instruction set constants.

Instruction word layout (32 bits, MSB first):

    [31:28] opcode | [27] mode | [26:24] type | [23:20] dest |
    [19:16] src1   | [15:12] src2 | [11:0] imm

When an immediate is selected, the operand is src2 ‖ imm (bits [15:0]).
The same 4-bit opcode is read from two tables depending on the mode bit:
GP (general purpose integer/logic) or AMC (advanced math computation).
"""

# ── Word geometry ──────────────────────────────────────────────────────────
INSTR_WIDTH   = 32
DATA_WIDTH    = 64
NUM_REGISTERS = 16
IMM_WIDTH     = 16

# ── Mode bit ───────────────────────────────────────────────────────────────
MODE_GP  = 0
MODE_AMC = 1

# ── Data type tags ─────────────────────────────────────────────────────────
TYPE_INT8  = 0
TYPE_INT16 = 1
TYPE_INT32 = 2
TYPE_INT64 = 3
TYPE_FP16  = 4
TYPE_BF16  = 5
TYPE_FP32  = 6
TYPE_FP64  = 7

TYPE_NAMES = {
    TYPE_INT8: "INT8", TYPE_INT16: "INT16", TYPE_INT32: "INT32",
    TYPE_INT64: "INT64", TYPE_FP16: "FP16", TYPE_BF16: "BF16",
    TYPE_FP32: "FP32", TYPE_FP64: "FP64",
}

# Bit width an integer type computes over in GP mode
INT_TYPE_WIDTHS = {
    TYPE_INT8: 8,
    TYPE_INT16: 16,
    TYPE_INT32: 32,
    TYPE_INT64: 64,
}

FLOAT_TYPES = (TYPE_FP16, TYPE_BF16, TYPE_FP32, TYPE_FP64)

# ── GP opcode table ────────────────────────────────────────────────────────
OP_ADD   = 0x0
OP_SUB   = 0x1
OP_MUL   = 0x2
OP_DIV   = 0x3   # unimplemented, yields zero
OP_MOD   = 0x4   # unimplemented
OP_NEG   = 0x5   # unimplemented
OP_ABS   = 0x6   # unimplemented
OP_AND   = 0x7
OP_OR    = 0x8
OP_XOR   = 0x9
OP_CMP   = 0xA   # unimplemented
OP_SHL   = 0xB   # unimplemented
OP_SHR   = 0xC   # unimplemented
OP_LOAD  = 0xD
OP_STORE = 0xE
OP_MOV   = 0xF

# ── AMC opcode table (same encoding space, mode=1) ─────────────────────────
AMC_MADD  = 0x0   # stand-in: src1 * src2
AMC_MSUB  = 0x1   # unimplemented
AMC_SQRT  = 0x2   # stand-in: src1
AMC_INV   = 0x3   # unimplemented
AMC_EXP   = 0x4   # unimplemented
AMC_LOG   = 0x5   # unimplemented
AMC_SIN   = 0x6   # stand-in: src1
AMC_COS   = 0x7   # unimplemented
AMC_TAN   = 0x8   # unimplemented
AMC_RSQRT = 0x9   # unimplemented

GP_MNEMONICS = {
    OP_ADD: "ADD", OP_SUB: "SUB", OP_MUL: "MUL", OP_DIV: "DIV",
    OP_MOD: "MOD", OP_NEG: "NEG", OP_ABS: "ABS", OP_AND: "AND",
    OP_OR: "OR", OP_XOR: "XOR", OP_CMP: "CMP", OP_SHL: "SHL",
    OP_SHR: "SHR", OP_LOAD: "LOAD", OP_STORE: "STORE", OP_MOV: "MOV",
}

AMC_MNEMONICS = {
    AMC_MADD: "MADD", AMC_MSUB: "MSUB", AMC_SQRT: "SQRT", AMC_INV: "INV",
    AMC_EXP: "EXP", AMC_LOG: "LOG", AMC_SIN: "SIN", AMC_COS: "COS",
    AMC_TAN: "TAN", AMC_RSQRT: "RSQRT",
}


def encode_instruction(opcode, type_tag, dest, src1, src2=0, imm=0,
                       mode=MODE_GP):
    """Pack instruction fields into a 32-bit word."""
    return (((opcode & 0xF) << 28)
            | ((mode & 0x1) << 27)
            | ((type_tag & 0x7) << 24)
            | ((dest & 0xF) << 20)
            | ((src1 & 0xF) << 16)
            | ((src2 & 0xF) << 12)
            | (imm & 0xFFF))


def decode_fields(word):
    """Split a 32-bit instruction word into a dict of its fields."""
    return {
        "opcode": (word >> 28) & 0xF,
        "mode": (word >> 27) & 0x1,
        "type": (word >> 24) & 0x7,
        "dest": (word >> 20) & 0xF,
        "src1": (word >> 16) & 0xF,
        "src2": (word >> 12) & 0xF,
        "imm": word & 0xFFF,
        "imm16": word & 0xFFFF,
    }


def disassemble(word):
    """Render an instruction word as a mnemonic string."""
    f = decode_fields(word)
    table = AMC_MNEMONICS if f["mode"] == MODE_AMC else GP_MNEMONICS
    name = table.get(f["opcode"], f"OP{f['opcode']:X}")
    # Memory and move opcodes ignore the mode bit
    if f["opcode"] in (OP_LOAD, OP_STORE, OP_MOV):
        name = GP_MNEMONICS[f["opcode"]]
    type_name = TYPE_NAMES[f["type"]]
    if f["opcode"] in (OP_LOAD, OP_STORE):
        return f"{name}.{type_name} R{f['dest']}, R{f['src1']}, #{f['imm16']}"
    return f"{name}.{type_name} R{f['dest']}, R{f['src1']}, R{f['src2']}"
