"""
Testbench for the Instruction Decoder module.

Verifies:
  1. Field extraction for an AMC instruction (SQRT.FP32).
  2. Field extraction for a GP immediate instruction (ADD.FP32 #5).
  3. imm16 spans src2 and imm.
  4. encode_instruction() produces words the decoder splits back apart.
"""

import sys, os

# Add src/ to the path so we can import the module
sys.path.insert(
    0,
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "src", "hardware"),
)

from amaranth import *
from amaranth.sim import Simulator

from pipeline.instruction_decoder import InstructionDecoder
from pipeline.isa import (encode_instruction, disassemble, MODE_AMC,
                          OP_STORE, AMC_SQRT, TYPE_FP32, TYPE_INT16)


FIELDS = ("opcode", "mode", "type_tag", "dest", "src1", "src2", "imm", "imm16")


def test_instruction_decoder():
    dut = InstructionDecoder()
    sim = Simulator(dut)

    async def testbench(ctx):

        def decode(word):
            ctx.set(dut.instruction, word)
            return {name: ctx.get(getattr(dut, name)) for name in FIELDS}

        def check(test, word, expected):
            got = decode(word)
            for name, value in expected.items():
                assert got[name] == value, (
                    f"Test {test} FAIL: {word:08X} {name} expected {value}, "
                    f"got {got[name]}"
                )

        # ---- Test 1: AMC SQRT.FP32 R6, R2 ----
        check(1, 0x2E620000, dict(opcode=2, mode=1, type_tag=6, dest=6,
                                  src1=2, src2=0, imm=0, imm16=0))
        assert disassemble(0x2E620000) == "SQRT.FP32 R6, R2, R0", (
            f"Test 1 FAIL: disassembly {disassemble(0x2E620000)!r}"
        )
        print("Test 1 PASSED: AMC instruction fields.")

        # ---- Test 2: GP ADD.FP32 R4, R1, #5 ----
        check(2, 0x06410005, dict(opcode=0, mode=0, type_tag=6, dest=4,
                                  src1=1, src2=0, imm=5, imm16=5))
        print("Test 2 PASSED: GP immediate instruction fields.")

        # ---- Test 3: imm16 = src2 ‖ imm ----
        check(3, 0x0251_2ABC, dict(src2=2, imm=0xABC, imm16=0x2ABC))
        check(3, 0xE631_FFFF, dict(opcode=OP_STORE, src2=0xF, imm=0xFFF,
                                   imm16=0xFFFF))
        print("Test 3 PASSED: imm16 spans src2 and imm.")

        # ---- Test 4: encode_instruction ----
        word = encode_instruction(AMC_SQRT, TYPE_FP32, dest=6, src1=2,
                                  mode=MODE_AMC)
        assert word == 0x2E620000, f"Test 4 FAIL: encoded {word:08X}"
        word = encode_instruction(0x1, TYPE_INT16, dest=6, src1=3, src2=4)
        assert word == 0x11634000, f"Test 4 FAIL: encoded {word:08X}"
        check(4, word, dict(opcode=1, mode=0, type_tag=TYPE_INT16, dest=6,
                            src1=3, src2=4))
        print("Test 4 PASSED: encode_instruction matches the decoder.")

        print("\nAll tests PASSED.")

    sim.add_testbench(testbench)
    sim.run()


if __name__ == "__main__":
    test_instruction_decoder()
