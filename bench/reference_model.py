"""
Pure-Python golden model of the HybridCore datapaths.

Mirrors the hardware bit for bit so simulation results can be compared
directly:

  - scalar pipeline: type extension, dual-mode ALU, register file and the
    load/store address path (ScalarCoreModel)
  - accelerator: bfloat16-like add/sub/mul/div with the same truncating
    normalization and exponent wrap as the execution core (accelerator_op)
"""

import struct
from dataclasses import dataclass, field

from pipeline.isa import (NUM_REGISTERS, decode_fields,
                          MODE_GP, TYPE_FP16, TYPE_INT8, TYPE_INT16, TYPE_INT32,
                          TYPE_BF16, TYPE_FP32,
                          OP_ADD, OP_SUB, OP_MUL, OP_AND, OP_OR, OP_XOR,
                          OP_LOAD, OP_STORE, OP_MOV,
                          AMC_MADD, AMC_SQRT, AMC_SIN)
from accelerator.protocol import (EXP_BIAS, DIV_STEPS,
                                  ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV,
                                  STATUS_OK, STATUS_ERROR, DIV_ZERO_RESULT)

MASK64 = (1 << 64) - 1
MASK16 = 0xFFFF


def _sign_extend(value, bits):
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value & MASK64


# ── Scalar pipeline ───────────────────────────────────────────────────────

def type_extend(type_tag, raw):
    """Stored 64-bit form of `raw` for a register write of `type_tag`."""
    if type_tag == TYPE_INT8:
        return _sign_extend(raw, 8)
    if type_tag == TYPE_INT16:
        return _sign_extend(raw, 16)
    if type_tag == TYPE_INT32:
        return _sign_extend(raw, 32)
    if type_tag in (TYPE_FP16, TYPE_BF16):
        return raw & 0xFFFF
    if type_tag == TYPE_FP32:
        return raw & 0xFFFFFFFF
    return raw & MASK64


def alu(opcode, mode, type_tag, a, b, pass_through=False):
    """Dual-mode ALU result for one instruction."""
    if pass_through:
        return a & MASK64

    if mode == MODE_GP:
        if opcode == OP_ADD:
            raw = a + b
        elif opcode == OP_SUB:
            raw = a - b
        elif opcode == OP_MUL:
            raw = a * b
        elif opcode == OP_AND:
            raw = a & b
        elif opcode == OP_OR:
            raw = a | b
        elif opcode == OP_XOR:
            raw = a ^ b
        elif opcode == OP_MOV:
            return a & MASK64
        else:
            raw = 0
        raw &= MASK64
        if type_tag == TYPE_INT8:
            return raw & 0xFF
        if type_tag == TYPE_INT16:
            return raw & 0xFFFF
        if type_tag == TYPE_INT32:
            return raw & 0xFFFFFFFF
        return raw

    if opcode == AMC_MADD:
        return (a * b) & MASK64
    if opcode in (AMC_SQRT, AMC_SIN):
        return a & MASK64
    return 0


def extend_immediate(type_tag, imm16):
    """Sign-extend for integer types, zero-extend for the floating types."""
    if type_tag >= TYPE_FP16:
        return imm16 & 0xFFFF
    return _sign_extend(imm16, 16)


@dataclass
class MemoryAccess:
    read: bool = False
    write: bool = False
    addr: int = 0
    data: int = 0


@dataclass
class ScalarCoreModel:
    """Register-level model of HybridCoreProcessor."""
    registers: list = field(default_factory=lambda: [0] * NUM_REGISTERS)

    def reset(self):
        self.registers = [0] * NUM_REGISTERS

    def read(self, index):
        return 0 if index == 0 else self.registers[index]

    def step(self, instruction, mem_data_in=0):
        """Execute one instruction. Returns the memory bus activity."""
        f = decode_fields(instruction)
        opcode = f["opcode"]
        is_load = opcode == OP_LOAD
        is_store = opcode == OP_STORE

        imm = extend_immediate(f["type"], f["imm16"])
        a = self.read(f["src1"])
        b_reg = self.read(f["dest"] if is_store else f["src2"])

        if is_load or is_store:
            result = alu(OP_ADD, f["mode"], f["type"], a, imm)
        else:
            result = alu(opcode, f["mode"], f["type"], a, b_reg,
                         pass_through=(opcode == OP_MOV))

        access = MemoryAccess(
            read=is_load,
            write=is_store,
            addr=(a + imm) & MASK64 if (is_load or is_store) else 0,
            data=b_reg if is_store else 0,
        )

        if not is_store and f["dest"] != 0:
            wb = mem_data_in if is_load else result
            self.registers[f["dest"]] = type_extend(f["type"], wb)

        return access

    def run(self, program, load_data=0):
        """Execute a list of instruction words, driving `load_data` on LOADs."""
        trace = []
        for word in program:
            data_in = load_data if ((word >> 28) & 0xF) == OP_LOAD else 0
            trace.append(self.step(word, data_in))
        return trace


# ── Accelerator arithmetic ────────────────────────────────────────────────

def decompose(word):
    """Split a 16-bit word into (sign, exponent, 8-bit significand)."""
    sign = (word >> 15) & 1
    exp = (word >> 7) & 0xFF
    sig = (word & 0x7F) | (0x80 if exp != 0 else 0)
    return sign, exp, sig


def _normalize(sig, exp):
    # sig is the 16-bit working value with the leading one at bit 14
    if sig == 0:
        return 0, 0
    if sig & 0x8000:
        sig >>= 1
        exp += 1
    for _ in range(14):
        if not (sig & 0x4000) and exp > 0:
            sig = (sig << 1) & MASK16
            exp -= 1
    return sig, exp


def _pack(sign, exp, sig):
    return (sign << 15) | ((exp & 0xFF) << 7) | ((sig >> 7) & 0x7F)


def bf16_add(a, b, subtract=False):
    a_sign, a_exp, a_sig = decompose(a)
    b_sign, b_exp, b_sig = decompose(b)
    if subtract:
        b_sign ^= 1

    if a_exp < b_exp or (a_exp == b_exp and a_sig < b_sig):
        a_sign, a_exp, a_sig, b_sign, b_exp, b_sig = \
            b_sign, b_exp, b_sig, a_sign, a_exp, a_sig

    big = a_sig << 7
    aligned = (b_sig << 7) >> (a_exp - b_exp)
    if a_sign == b_sign:
        sig = (big + aligned) & MASK16
    else:
        sig = (big - aligned) & MASK16

    sig, exp = _normalize(sig, a_exp)
    return _pack(a_sign, exp, sig)


def bf16_sub(a, b):
    return bf16_add(a, b, subtract=True)


def bf16_mul(a, b):
    a_sign, a_exp, a_sig = decompose(a)
    b_sign, b_exp, b_sig = decompose(b)
    sig, exp = _normalize(a_sig * b_sig, a_exp + b_exp - EXP_BIAS)
    return _pack(a_sign ^ b_sign, exp, sig)


def bf16_div(a, b):
    """Non-restoring 8-step division. Returns (result, status)."""
    a_sign, a_exp, a_sig = decompose(a)
    b_sign, b_exp, b_sig = decompose(b)
    if b_sig == 0:
        return DIV_ZERO_RESULT, STATUS_ERROR

    remainder = a_sig << 7
    divisor = b_sig << 8
    quotient = 0
    for _ in range(DIV_STEPS):
        if remainder >= 0:
            remainder = 2 * remainder - divisor
        else:
            remainder = 2 * remainder + divisor
        quotient = ((quotient << 1) | (1 if remainder >= 0 else 0)) & 0xFF

    sig, exp = _normalize(quotient << 7, a_exp - b_exp + EXP_BIAS)
    return _pack(a_sign ^ b_sign, exp, sig), STATUS_OK


def accelerator_op(opcode, a, b):
    """Result of one queued request as (result, status)."""
    if opcode == ACC_ADD:
        return bf16_add(a, b), STATUS_OK
    if opcode == ACC_SUB:
        return bf16_sub(a, b), STATUS_OK
    if opcode == ACC_MUL:
        return bf16_mul(a, b), STATUS_OK
    if opcode == ACC_DIV:
        return bf16_div(a, b)
    return 0, STATUS_OK


# ── Conversions ───────────────────────────────────────────────────────────

def float_to_bf16(x):
    """Truncate a Python float to the 16-bit accelerator word."""
    bits = struct.unpack(">I", struct.pack(">f", x))[0]
    return bits >> 16


def bf16_to_float(word):
    bits = (word & MASK16) << 16
    return struct.unpack(">f", struct.pack(">I", bits))[0]
