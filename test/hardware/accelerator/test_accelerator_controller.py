"""
Testbench for the Accelerator Controller.

The controller is wrapped together with a real LocalRAM; external memory is
modelled in the testbench as a dict that acknowledges requests after a
configurable delay.

Verifies:
  1. Idle on reset: busy=0, done=0, ack=0.
  2. ADD request: ack pulse, busy until done, result 8.0 with OK status.
  3. Local RAM write then read back.
  4. External memory write and read; request held until ext_ack.
  5. NOOP and reserved opcode report an error status.
  6. Divide by zero propagates 0xFFFF with error status.
  7. Back-to-back requests with one core enabled complete in FIFO order.
  8. Queue overflow: 17 requests with no core enabled, level stays 16,
     exactly 16 results once a core is enabled.
  9. A RAM write strobed while a DIV is in flight, followed by an ADD,
     still completes: three done pulses and the word reads back.
"""

import sys, os

# Add src/ to the path so we can import the module
sys.path.insert(
    0,
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "src", "hardware"),
)

from amaranth import *
from amaranth.sim import Simulator

from accelerator.controller import AcceleratorController
from accelerator.protocol import (ACC_NOOP, ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV,
                                  ACC_LOCAL_RAM, ACC_EXTERNAL_MEM,
                                  STATUS_OK, STATUS_ERROR, DIV_ZERO_RESULT)
from accelerator.operation_queue import DEFAULT_QUEUE_DEPTH
from memory.local_ram import LocalRAM


LOG_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "logs")

TWO, THREE, FIVE, EIGHT, FIFTEEN = 0x4000, 0x4040, 0x40A0, 0x4100, 0x4170


class ControllerTestWrapper(Elaboratable):
    """Wraps AcceleratorController + LocalRAM with internal wiring."""

    def __init__(self, num_cores=4):
        self.ctrl = AcceleratorController(num_cores=num_cores)
        self.lram = LocalRAM()

    def elaborate(self, platform):
        m = Module()
        m.submodules.ctrl = self.ctrl
        m.submodules.lram = self.lram

        # Wire controller ↔ local RAM
        m.d.comb += [
            self.lram.addr.eq(self.ctrl.lram_addr),
            self.lram.write_enable.eq(self.ctrl.lram_write_enable),
            self.lram.write_data.eq(self.ctrl.lram_write_data),
            self.ctrl.lram_read_data.eq(self.lram.read_data),
        ]
        return m


def test_accelerator_controller():
    dut = ControllerTestWrapper(num_cores=4)
    ctrl = dut.ctrl
    sim = Simulator(dut)
    sim.add_clock(1e-8)  # 100 MHz

    ext_memory = {0x8000_0000: 0x4242}
    ext_state = {"delay": 0, "waited": 0, "requests_seen": 0}

    async def testbench(ctx):

        async def step():
            """One clock, answering the external memory port."""
            acked = False
            if ctx.get(ctrl.ext_request):
                if ext_state["waited"] < ext_state["delay"]:
                    ext_state["waited"] += 1
                else:
                    addr = ctx.get(ctrl.ext_addr)
                    if ctx.get(ctrl.ext_write):
                        ext_memory[addr] = ctx.get(ctrl.ext_write_data)
                    else:
                        ctx.set(ctrl.ext_read_data, ext_memory.get(addr, 0))
                    ctx.set(ctrl.ext_ack, 1)
                    ext_state["waited"] = 0
                    ext_state["requests_seen"] += 1
                    acked = True
            await ctx.tick()
            if acked:
                ctx.set(ctrl.ext_ack, 0)

        async def strobe(opcode, a=0, b=0, write=0, ram_addr=0,
                         ext_addr=0, ext_data=0):
            ctx.set(ctrl.opcode, opcode)
            ctx.set(ctrl.operand_a, a)
            ctx.set(ctrl.operand_b, b)
            ctx.set(ctrl.write_flag, write)
            ctx.set(ctrl.local_ram_addr, ram_addr)
            ctx.set(ctrl.external_addr, ext_addr)
            ctx.set(ctrl.external_write_data, ext_data)
            ctx.set(ctrl.request_valid, 1)
            await step()
            ctx.set(ctrl.request_valid, 0)

        async def wait_done(max_cycles=100):
            for _ in range(max_cycles):
                if ctx.get(ctrl.done):
                    return ctx.get(ctrl.result_out), ctx.get(ctrl.status)
                await step()
            raise RuntimeError(f"Controller timed out after {max_cycles} cycles")

        async def request(opcode, **kwargs):
            await strobe(opcode, **kwargs)
            return await wait_done()

        async def wait_idle(max_cycles=100):
            for _ in range(max_cycles):
                if not ctx.get(ctrl.busy):
                    return
                await step()
            raise RuntimeError("Controller did not return to IDLE")

        # ---- Test 1: Reset state ----
        assert ctx.get(ctrl.busy) == 0, "Test 1 FAIL: busy should be 0"
        assert ctx.get(ctrl.done) == 0, "Test 1 FAIL: done should be 0"
        assert ctx.get(ctrl.ack) == 0, "Test 1 FAIL: ack should be 0"
        print("Test 1 PASSED: Idle on reset.")

        # ---- Test 2: Arithmetic request ----
        await strobe(ACC_ADD, a=FIVE, b=THREE)
        assert ctx.get(ctrl.ack) == 1, "Test 2 FAIL: ack should pulse after the strobe"
        assert ctx.get(ctrl.busy) == 1, "Test 2 FAIL: busy while handling request"
        await step()
        assert ctx.get(ctrl.ack) == 0, "Test 2 FAIL: ack is a single-cycle pulse"
        result, status = await wait_done()
        assert result == EIGHT and status == STATUS_OK, (
            f"Test 2 FAIL: 5+3 expected {EIGHT:#06x}/OK, got {result:#06x}/{status}"
        )
        await step()
        assert ctx.get(ctrl.done) == 0, "Test 2 FAIL: done is a single-cycle pulse"
        await wait_idle()
        print("Test 2 PASSED: ADD request returns 8.0.")

        # ---- Test 3: Local RAM ----
        result, status = await request(ACC_LOCAL_RAM, write=1, ram_addr=0x10, a=0x1234)
        assert status == STATUS_OK, "Test 3 FAIL: RAM write status"
        await wait_idle()
        result, status = await request(ACC_LOCAL_RAM, write=0, ram_addr=0x10)
        assert result == 0x1234 and status == STATUS_OK, (
            f"Test 3 FAIL: RAM read expected 0x1234, got {result:#06x}/{status}"
        )
        await wait_idle()
        result, _ = await request(ACC_LOCAL_RAM, write=0, ram_addr=0x11)
        assert result == 0, f"Test 3 FAIL: untouched RAM word read {result:#06x}"
        await wait_idle()
        print("Test 3 PASSED: Local RAM write then read.")

        # ---- Test 4: External memory ----
        _, status = await request(ACC_EXTERNAL_MEM, write=1,
                                  ext_addr=0x0000_1000, ext_data=0xBEEF)
        assert status == STATUS_OK, "Test 4 FAIL: external write status"
        assert ext_memory.get(0x1000) == 0xBEEF, "Test 4 FAIL: external write lost"
        await wait_idle()

        ext_state["delay"] = 3
        await strobe(ACC_EXTERNAL_MEM, write=0, ext_addr=0x8000_0000)
        await step()
        for _ in range(2):
            assert ctx.get(ctrl.ext_request) == 1, (
                "Test 4 FAIL: ext_request must be held until ext_ack"
            )
            assert ctx.get(ctrl.ext_addr) == 0x8000_0000, "Test 4 FAIL: ext_addr"
            assert ctx.get(ctrl.ext_write) == 0, "Test 4 FAIL: ext_write on a read"
            assert ctx.get(ctrl.busy) == 1, "Test 4 FAIL: busy while waiting"
            await step()
        result, status = await wait_done()
        assert result == 0x4242 and status == STATUS_OK, (
            f"Test 4 FAIL: external read expected 0x4242, got {result:#06x}"
        )
        assert ctx.get(ctrl.ext_request) == 0, "Test 4 FAIL: ext_request not dropped"
        ext_state["delay"] = 0
        await wait_idle()
        print("Test 4 PASSED: External memory write and read.")

        # ---- Test 5: Error opcodes ----
        for opcode in (ACC_NOOP, 7):
            result, status = await request(opcode)
            assert status == STATUS_ERROR, (
                f"Test 5 FAIL: opcode {opcode} should report an error"
            )
            await wait_idle()
        result, status = await request(ACC_SUB, a=FIVE, b=THREE)
        assert result == TWO and status == STATUS_OK, (
            f"Test 5 FAIL: status should clear on success, got {result:#06x}/{status}"
        )
        await wait_idle()
        print("Test 5 PASSED: NOOP and reserved opcode report errors.")

        # ---- Test 6: Divide by zero ----
        result, status = await request(ACC_DIV, a=FIVE, b=0x0000)
        assert result == DIV_ZERO_RESULT and status == STATUS_ERROR, (
            f"Test 6 FAIL: 5/0 expected 0xFFFF/ERROR, got {result:#06x}/{status}"
        )
        await wait_idle()
        print("Test 6 PASSED: Divide by zero propagates 0xFFFF with error.")

        # ---- Test 7: FIFO order with one core ----
        ctx.set(ctrl.core_enable, 0b0001)
        burst = [(ACC_DIV, FIFTEEN, THREE, FIVE),
                 (ACC_ADD, FIVE, THREE, EIGHT),
                 (ACC_MUL, FIVE, THREE, FIFTEEN)]
        results = []
        for opcode, a, b, _ in burst:
            await strobe(opcode, a=a, b=b)
            if ctx.get(ctrl.done):
                results.append(ctx.get(ctrl.result_out))
        for _ in range(200):
            if len(results) == len(burst):
                break
            await step()
            if ctx.get(ctrl.done):
                results.append(ctx.get(ctrl.result_out))
        expected = [r for _, _, _, r in burst]
        assert results == expected, (
            f"Test 7 FAIL: results {[hex(r) for r in results]}, "
            f"expected {[hex(r) for r in expected]}"
        )
        await wait_idle()
        print("Test 7 PASSED: Requests complete in FIFO order.")

        # ---- Test 8: Queue overflow ----
        ctx.set(ctrl.core_enable, 0)
        for i in range(DEFAULT_QUEUE_DEPTH + 1):
            await strobe(ACC_ADD, a=FIVE, b=THREE)
        await wait_idle()
        assert ctx.get(ctrl.queue_level) == DEFAULT_QUEUE_DEPTH, (
            f"Test 8 FAIL: queue level expected {DEFAULT_QUEUE_DEPTH}, "
            f"got {ctx.get(ctrl.queue_level)}"
        )
        assert ctx.get(ctrl.done) == 0, "Test 8 FAIL: no core, no result"

        ctx.set(ctrl.core_enable, 0b0001)
        completed = 0
        for _ in range(DEFAULT_QUEUE_DEPTH * 20):
            await step()
            if ctx.get(ctrl.done):
                completed += 1
        assert completed == DEFAULT_QUEUE_DEPTH, (
            f"Test 8 FAIL: expected {DEFAULT_QUEUE_DEPTH} results, got {completed}"
        )
        assert ctx.get(ctrl.queue_level) == 0, "Test 8 FAIL: queue should be drained"
        print("Test 8 PASSED: Overflow request dropped, level capped at 16.")

        # ---- Test 9: Memory request survives a following arithmetic strobe ----
        await wait_idle()
        ctx.set(ctrl.core_enable, 0b1111)
        dones = []

        def note_done():
            if ctx.get(ctrl.done):
                dones.append((ctx.get(ctrl.result_out), ctx.get(ctrl.status)))

        await strobe(ACC_DIV, a=FIFTEEN, b=THREE)
        note_done()
        for _ in range(4):
            await step()
            note_done()
        assert ctx.get(ctrl.busy) == 1, "Test 9 FAIL: DIV should still be in flight"

        await strobe(ACC_LOCAL_RAM, write=1, ram_addr=5, a=0x1234)
        note_done()
        await strobe(ACC_ADD, a=FIVE, b=THREE)
        note_done()
        for _ in range(100):
            if len(dones) == 3:
                break
            await step()
            note_done()
        assert len(dones) == 3, f"Test 9 FAIL: expected 3 done pulses, got {len(dones)}"
        assert dones[0] == (FIVE, STATUS_OK), f"Test 9 FAIL: DIV result {dones[0]}"
        assert dones[1][1] == STATUS_OK, "Test 9 FAIL: RAM write status"
        assert dones[2] == (EIGHT, STATUS_OK), f"Test 9 FAIL: ADD result {dones[2]}"
        await wait_idle()

        result, status = await request(ACC_LOCAL_RAM, write=0, ram_addr=5)
        assert result == 0x1234 and status == STATUS_OK, (
            f"Test 9 FAIL: RAM write lost, read back {result:#06x}"
        )
        await wait_idle()
        print("Test 9 PASSED: Memory request kept behind a later arithmetic strobe.")

        print("\nAll tests PASSED.")

    sim.add_testbench(testbench)

    os.makedirs(LOG_DIR, exist_ok=True)
    with sim.write_vcd(os.path.join(LOG_DIR, "accelerator_controller.vcd")):
        sim.run()


if __name__ == "__main__":
    test_accelerator_controller()
