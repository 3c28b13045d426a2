"""
Testbench for the dual-mode ALU.

Verifies:
  1. GP arithmetic truncates to the integer width (ADD.INT32, MUL.INT16, SUB wrap).
  2. GP logic over INT64.
  3. Floating tags compute plain integer arithmetic on the raw bits.
  4. Unimplemented GP opcodes yield zero.
  5. AMC MADD/SQRT/SIN stand-ins; other AMC opcodes yield zero.
  6. pass_through forces src1 in either mode.
"""

import sys, os

# Add src/ to the path so we can import the module
sys.path.insert(
    0,
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "src", "hardware"),
)

from amaranth import *
from amaranth.sim import Simulator

from pipeline.alu import ALU
from pipeline.isa import (MODE_GP, MODE_AMC,
                          TYPE_INT8, TYPE_INT16, TYPE_INT32, TYPE_INT64, TYPE_FP32,
                          OP_ADD, OP_SUB, OP_MUL, OP_DIV, OP_AND, OP_OR, OP_XOR,
                          OP_SHL, OP_CMP, OP_MOV,
                          AMC_MADD, AMC_SQRT, AMC_SIN, AMC_EXP, AMC_RSQRT)


def test_alu():
    dut = ALU()
    sim = Simulator(dut)

    async def testbench(ctx):

        def run(opcode, mode, type_tag, a, b, pass_through=0):
            ctx.set(dut.opcode, opcode)
            ctx.set(dut.mode, mode)
            ctx.set(dut.type_tag, type_tag)
            ctx.set(dut.operand_a, a)
            ctx.set(dut.operand_b, b)
            ctx.set(dut.pass_through, pass_through)
            return ctx.get(dut.result)

        # ---- Test 1: GP arithmetic with truncation ----
        cases = [
            (OP_ADD, TYPE_INT32, 10, 20, 30),
            (OP_MUL, TYPE_INT16, 30, 40, 1200),
            (OP_SUB, TYPE_INT32, 5, 7, 0xFFFFFFFE),
            (OP_ADD, TYPE_INT8, 200, 100, 44),
            (OP_MUL, TYPE_INT64, 0x1_0000_0000, 0x1_0000_0000, 0),
        ]
        for opcode, type_tag, a, b, expected in cases:
            got = run(opcode, MODE_GP, type_tag, a, b)
            assert got == expected, (
                f"Test 1 FAIL: op {opcode} type {type_tag} ({a}, {b}) "
                f"expected {expected:#x}, got {got:#x}"
            )
        print("Test 1 PASSED: GP arithmetic truncates to the type width.")

        # ---- Test 2: GP logic ----
        a, b = 0xF0F0_0000_FFFF_1234, 0x0FF0_FFFF_0000_4321
        for opcode, expected in [(OP_AND, a & b), (OP_OR, a | b), (OP_XOR, a ^ b)]:
            got = run(opcode, MODE_GP, TYPE_INT64, a, b)
            assert got == expected, (
                f"Test 2 FAIL: op {opcode} expected {expected:#x}, got {got:#x}"
            )
        print("Test 2 PASSED: GP logic operations.")

        # ---- Test 3: Floating tags are raw integer arithmetic ----
        got = run(OP_ADD, MODE_GP, TYPE_FP32, 0x3F800000, 5)
        assert got == 0x3F800005, f"Test 3 FAIL: got {got:#x}"
        print("Test 3 PASSED: FP tags use integer arithmetic on raw bits.")

        # ---- Test 4: Unimplemented GP opcodes ----
        for opcode in (OP_DIV, OP_CMP, OP_SHL):
            got = run(opcode, MODE_GP, TYPE_INT64, 100, 7)
            assert got == 0, f"Test 4 FAIL: op {opcode} should yield 0, got {got:#x}"
        print("Test 4 PASSED: Unimplemented GP opcodes yield zero.")

        # ---- Test 5: AMC stand-ins ----
        got = run(AMC_MADD, MODE_AMC, TYPE_INT8, 30, 40)
        assert got == 1200, f"Test 5 FAIL: MADD expected 1200, got {got}"
        got = run(AMC_SQRT, MODE_AMC, TYPE_FP32, 0x40800000, 0x1234)
        assert got == 0x40800000, f"Test 5 FAIL: SQRT expected src1, got {got:#x}"
        got = run(AMC_SIN, MODE_AMC, TYPE_FP32, 0x3F000000, 0)
        assert got == 0x3F000000, f"Test 5 FAIL: SIN expected src1, got {got:#x}"
        for opcode in (AMC_EXP, AMC_RSQRT):
            got = run(opcode, MODE_AMC, TYPE_FP32, 0x40800000, 3)
            assert got == 0, f"Test 5 FAIL: AMC op {opcode} should yield 0"
        print("Test 5 PASSED: AMC stand-ins.")

        # ---- Test 6: pass_through ----
        for mode in (MODE_GP, MODE_AMC):
            got = run(OP_MOV, mode, TYPE_INT8, 0xABCD12345678ABCD, 0, pass_through=1)
            assert got == 0xABCD12345678ABCD, (
                f"Test 6 FAIL: mode {mode} pass-through got {got:#x}"
            )
        print("Test 6 PASSED: pass_through forces src1.")

        print("\nAll tests PASSED.")

    sim.add_testbench(testbench)
    sim.run()


if __name__ == "__main__":
    test_alu()
