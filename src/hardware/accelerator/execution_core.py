"""
Execution Core Module for the HybridCore math accelerator.

One arithmetic worker operating on the 16-bit accelerator word
(sign [15] | exponent [14:7] | mantissa [6:0]).  Each operand is
decomposed combinationally into sign, exponent and an 8-bit significand
with an implicit leading 1 (normalized, exponent != 0) or 0 (denormal).

Working format: the 8-bit significand sits at bits [14:7] of a 16-bit
working register, so bit 15 catches carry-out and bits [13:7] are the
packed mantissa.  The exponent is kept in a signed register wide enough
for the bias arithmetic and packed as its low 8 bits.  No rounding and no
Inf/NaN handling.

FSM (cycle costs from leaving READY to result_valid):

    READY --start--> DECOMPOSE
        ADD/SUB : align, add/sub, normalize, pack              -> RESULT_VALID (1)
        MUL     : sign, exponent, 8x8 product                  -> MUL_NORMALIZE
        DIV     : sign, exponent, divide-by-zero check, R=N<<7 -> DIV_STEP
        other   : result 0                                     -> RESULT_VALID (1)
    MUL_NORMALIZE : normalize, pack                            -> RESULT_VALID (2)
    DIV_STEP      : 8 non-restoring steps                      -> DIV_FINISH
    DIV_FINISH    : remainder correction, normalize, pack      -> RESULT_VALID (10)
    RESULT_VALID  : result_valid high for one cycle; accepts a new start

Dropping `enable` makes the core not ready and sends any in-flight
operation back to READY on the next edge without a result.
"""

from amaranth import *

from .protocol import (WORD_WIDTH, OPCODE_WIDTH, EXP_BIAS, DIV_STEPS,
                       ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV,
                       STATUS_OK, STATUS_ERROR, DIV_ZERO_RESULT)


# Signed exponent register: covers ea+eb-127 and ea-eb+127 plus carries
EXP_WORK_WIDTH = 11
# Signed remainder register for the non-restoring divider
REM_WIDTH = 26
# Working-register bit that holds the implicit leading one
LEAD_BIT = 14


def decompose(m, word, name):
    """Split a 16-bit word into (sign, exponent, significand) signals."""
    sign = Signal(name=f"{name}_sign")
    exp = Signal(8, name=f"{name}_exp")
    sig = Signal(8, name=f"{name}_sig")
    m.d.comb += [
        sign.eq(word[15]),
        exp.eq(word[7:15]),
        sig.eq(Cat(word[0:7], word[7:15] != 0)),
    ]
    return sign, exp, sig


def normalize(m, sig, exp, name):
    """
    Build combinational normalization logic.

    Carry-out (bit 15) shifts right once and bumps the exponent; otherwise
    shift left while the lead bit is clear and the exponent is positive.
    A zero significand walks the exponent all the way down to 0.
    Returns (sig, exp) signals.
    """
    cur_sig = Signal(16, name=f"{name}_ovf_sig")
    cur_exp = Signal(signed(EXP_WORK_WIDTH), name=f"{name}_ovf_exp")
    with m.If(sig[15]):
        m.d.comb += [
            cur_sig.eq(sig >> 1),
            cur_exp.eq(exp + 1),
        ]
    with m.Else():
        m.d.comb += [
            cur_sig.eq(sig),
            cur_exp.eq(exp),
        ]

    # A nonzero significand needs at most LEAD_BIT left shifts
    for i in range(LEAD_BIT):
        nxt_sig = Signal(16, name=f"{name}_sig{i}")
        nxt_exp = Signal(signed(EXP_WORK_WIDTH), name=f"{name}_exp{i}")
        shift = ~cur_sig[LEAD_BIT] & (cur_exp > 0)
        m.d.comb += [
            nxt_sig.eq(Mux(shift, cur_sig << 1, cur_sig)),
            nxt_exp.eq(Mux(shift, cur_exp - 1, cur_exp)),
        ]
        cur_sig, cur_exp = nxt_sig, nxt_exp

    out_exp = Signal(signed(EXP_WORK_WIDTH), name=f"{name}_exp")
    with m.If(sig == 0):
        m.d.comb += out_exp.eq(0)
    with m.Else():
        m.d.comb += out_exp.eq(cur_exp)

    return cur_sig, out_exp


def pack(sign, exp, sig):
    """Pack {sign, exponent[7:0], sig[13:7]} into a 16-bit word."""
    return Cat(sig[7:LEAD_BIT], exp[0:8], sign)


class ExecutionCore(Elaboratable):
    """
    Multi-cycle bfloat16-like arithmetic core.

    Ports
    -----
    enable       : Signal(), in   -- core_enable; low abandons work
    start        : Signal(), in   -- assignment strobe
    opcode       : Signal(3), in  -- sampled on start
    operand_a    : Signal(16), in
    operand_b    : Signal(16), in
    ready        : Signal(), out  -- can accept a start this cycle
    busy         : Signal(), out
    result       : Signal(16), out  -- held until the next result
    status       : Signal(), out    -- 0 = OK, 1 = error (divide by zero)
    result_valid : Signal(), out    -- one-cycle pulse
    div_remainder : Signal(signed(26)), out  -- corrected remainder of the last DIV
    """

    def __init__(self):
        self.enable = Signal(init=1)
        self.start = Signal()
        self.opcode = Signal(OPCODE_WIDTH)
        self.operand_a = Signal(WORD_WIDTH)
        self.operand_b = Signal(WORD_WIDTH)

        self.ready = Signal()
        self.busy = Signal()
        self.result = Signal(WORD_WIDTH)
        self.status = Signal()
        self.result_valid = Signal()
        self.div_remainder = Signal(signed(REM_WIDTH))

    def elaborate(self, platform):
        m = Module()

        # --- Session registers ---
        op_reg = Signal(OPCODE_WIDTH)
        a_reg = Signal(WORD_WIDTH)
        b_reg = Signal(WORD_WIDTH)
        sign = Signal()
        exponent = Signal(signed(EXP_WORK_WIDTH))
        mantissa = Signal(16)
        cycle = Signal(range(DIV_STEPS + 1))

        # Signed so a biased exponent below zero stays negative
        bias = C(EXP_BIAS, signed(EXP_WORK_WIDTH))

        # Divider registers (remainder is corrected in DIV_FINISH)
        divisor = Signal(8)
        remainder = Signal(signed(REM_WIDTH))
        quotient = Signal(8)
        m.d.comb += self.div_remainder.eq(remainder)

        # --- Decompose (combinational, always live) ---
        a_sign, a_exp, a_sig = decompose(m, a_reg, "a")
        b_sign, b_exp, b_sig = decompose(m, b_reg, "b")

        # =============================================================
        # Add / subtract datapath
        # =============================================================

        # Subtract is add with B's sign inverted
        b_sign_eff = Signal()
        m.d.comb += b_sign_eff.eq(b_sign ^ (op_reg == ACC_SUB))

        # Larger magnitude anchors the result
        swap = Signal()
        m.d.comb += swap.eq((a_exp < b_exp) | ((a_exp == b_exp) & (a_sig < b_sig)))

        big_sign = Signal()
        big_exp = Signal(8)
        big_sig = Signal(16)
        small_exp = Signal(8)
        small_sig = Signal(16)
        small_sign = Signal()
        with m.If(swap):
            m.d.comb += [
                big_sign.eq(b_sign_eff), big_exp.eq(b_exp), big_sig.eq(b_sig << 7),
                small_sign.eq(a_sign), small_exp.eq(a_exp), small_sig.eq(a_sig << 7),
            ]
        with m.Else():
            m.d.comb += [
                big_sign.eq(a_sign), big_exp.eq(a_exp), big_sig.eq(a_sig << 7),
                small_sign.eq(b_sign_eff), small_exp.eq(b_exp), small_sig.eq(b_sig << 7),
            ]

        exp_diff = Signal(8)
        aligned = Signal(16)
        m.d.comb += [
            exp_diff.eq(big_exp - small_exp),
            aligned.eq(small_sig >> exp_diff),
        ]

        addsub_sig = Signal(16)
        with m.If(big_sign == small_sign):
            m.d.comb += addsub_sig.eq(big_sig + aligned)
        with m.Else():
            m.d.comb += addsub_sig.eq(big_sig - aligned)

        addsub_exp = Signal(signed(EXP_WORK_WIDTH))
        m.d.comb += addsub_exp.eq(big_exp)
        add_norm_sig, add_norm_exp = normalize(m, addsub_sig, addsub_exp, "addn")

        # =============================================================
        # Shared normalize/pack stage for MUL and DIV
        # =============================================================

        # DIV places the quotient at [14:7]; MUL already holds its product
        stage_sig = Signal(16)
        with m.If(op_reg == ACC_DIV):
            m.d.comb += stage_sig.eq(quotient << 7)
        with m.Else():
            m.d.comb += stage_sig.eq(mantissa)
        norm_sig, norm_exp = normalize(m, stage_sig, exponent, "norm")

        # =============================================================
        # Divider step (non-restoring)
        # =============================================================

        divisor_shifted = Signal(signed(REM_WIDTH))
        m.d.comb += divisor_shifted.eq(divisor << 8)

        next_rem = Signal(signed(REM_WIDTH))
        with m.If(remainder >= 0):
            m.d.comb += next_rem.eq((remainder << 1) - divisor_shifted)
        with m.Else():
            m.d.comb += next_rem.eq((remainder << 1) + divisor_shifted)

        # =============================================================
        # FSM
        # =============================================================

        def accept(m):
            m.d.sync += [
                op_reg.eq(self.opcode),
                a_reg.eq(self.operand_a),
                b_reg.eq(self.operand_b),
                cycle.eq(0),
            ]
            m.next = "DECOMPOSE"

        with m.FSM(name="core"):
            with m.State("READY"):
                m.d.comb += self.ready.eq(self.enable)
                with m.If(self.enable & self.start):
                    accept(m)

            with m.State("DECOMPOSE"):
                m.d.comb += self.busy.eq(1)
                with m.If(~self.enable):
                    m.next = "READY"
                with m.Else():
                    with m.Switch(op_reg):
                        with m.Case(ACC_ADD, ACC_SUB):
                            m.d.sync += [
                                self.result.eq(pack(big_sign, add_norm_exp, add_norm_sig)),
                                self.status.eq(STATUS_OK),
                            ]
                            m.next = "RESULT_VALID"

                        with m.Case(ACC_MUL):
                            m.d.sync += [
                                sign.eq(a_sign ^ b_sign),
                                exponent.eq(a_exp + b_exp - bias),
                                mantissa.eq(a_sig * b_sig),
                            ]
                            m.next = "MUL_NORMALIZE"

                        with m.Case(ACC_DIV):
                            m.d.sync += [
                                sign.eq(a_sign ^ b_sign),
                                exponent.eq(a_exp + bias - b_exp),
                            ]
                            with m.If(b_sig == 0):
                                m.d.sync += [
                                    self.result.eq(DIV_ZERO_RESULT),
                                    self.status.eq(STATUS_ERROR),
                                ]
                                m.next = "RESULT_VALID"
                            with m.Else():
                                m.d.sync += [
                                    divisor.eq(b_sig),
                                    remainder.eq(a_sig << 7),
                                    quotient.eq(0),
                                    cycle.eq(0),
                                ]
                                m.next = "DIV_STEP"

                        with m.Default():
                            m.d.sync += [
                                self.result.eq(0),
                                self.status.eq(STATUS_OK),
                            ]
                            m.next = "RESULT_VALID"

            with m.State("MUL_NORMALIZE"):
                m.d.comb += self.busy.eq(1)
                with m.If(~self.enable):
                    m.next = "READY"
                with m.Else():
                    m.d.sync += [
                        self.result.eq(pack(sign, norm_exp, norm_sig)),
                        self.status.eq(STATUS_OK),
                    ]
                    m.next = "RESULT_VALID"

            with m.State("DIV_STEP"):
                m.d.comb += self.busy.eq(1)
                with m.If(~self.enable):
                    m.next = "READY"
                with m.Else():
                    # Next quotient bit is the complement of the new sign
                    m.d.sync += [
                        remainder.eq(next_rem),
                        quotient.eq(Cat(~next_rem[-1], quotient[0:7])),
                        cycle.eq(cycle + 1),
                    ]
                    with m.If(cycle == DIV_STEPS - 1):
                        m.next = "DIV_FINISH"

            with m.State("DIV_FINISH"):
                m.d.comb += self.busy.eq(1)
                with m.If(~self.enable):
                    m.next = "READY"
                with m.Else():
                    with m.If(remainder < 0):
                        m.d.sync += remainder.eq(remainder + divisor_shifted)
                    m.d.sync += [
                        self.result.eq(pack(sign, norm_exp, norm_sig)),
                        self.status.eq(STATUS_OK),
                    ]
                    m.next = "RESULT_VALID"

            with m.State("RESULT_VALID"):
                m.d.comb += [
                    self.result_valid.eq(1),
                    self.ready.eq(self.enable),
                ]
                with m.If(self.enable & self.start):
                    accept(m)
                with m.Else():
                    m.next = "READY"

        return m
