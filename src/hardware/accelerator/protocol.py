"""
Host protocol and word format constants for the HybridCore math accelerator.

Accelerator word (16 bits, bfloat16-like):
    sign [15] | exponent [14:7] (bias 127) | mantissa [6:0]

Host request opcodes (3 bits):
    0 NOOP          -- not queued, reported as an error by the controller
    1 ADD  2 SUB  3 MUL  4 DIV   -- queued for the execution cores
    5 LOCAL_RAM     -- write_flag selects write (1) / read (0)
    6 EXTERNAL_MEM  -- write_flag selects write (1) / read (0)
    7 reserved      -- error
"""

# ── Word geometry ──────────────────────────────────────────────────────────
WORD_WIDTH     = 16
EXP_BITS       = 8
MAN_BITS       = 7
EXP_BIAS       = 127
OPCODE_WIDTH   = 3
EXT_ADDR_WIDTH = 32

# ── Request opcodes ────────────────────────────────────────────────────────
ACC_NOOP         = 0
ACC_ADD          = 1
ACC_SUB          = 2
ACC_MUL          = 3
ACC_DIV          = 4
ACC_LOCAL_RAM    = 5
ACC_EXTERNAL_MEM = 6

ARITHMETIC_OPS = (ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV)

ACC_OP_NAMES = {
    ACC_NOOP: "NOOP", ACC_ADD: "ADD", ACC_SUB: "SUB", ACC_MUL: "MUL",
    ACC_DIV: "DIV", ACC_LOCAL_RAM: "LOCAL_RAM",
    ACC_EXTERNAL_MEM: "EXTERNAL_MEM",
}

# ── Response status ────────────────────────────────────────────────────────
STATUS_OK    = 0
STATUS_ERROR = 1

# Result driven by a core on divide-by-zero
DIV_ZERO_RESULT = 0xFFFF

# ── Cycle costs (from leaving READY to result_valid) ──────────────────────
ADD_CYCLES = 1
MUL_CYCLES = 2
DIV_CYCLES = 10
DIV_STEPS  = 8
