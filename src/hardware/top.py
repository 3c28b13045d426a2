"""
HybridCore System Top-Level Module.

Places the scalar pipeline and the math accelerator side by side and
connects the accelerator to its local RAM:

    instruction / mem bus ──► HybridCoreProcessor

    host request ──► AcceleratorController ──► ext_* (external memory)
                          │
                          └─ lram_* ◄──► LocalRAM

The two halves share only the clock; the processor's memory bus and the
accelerator's external-memory port are both brought out to the top.

Running this file writes `hybridcore.v`.
"""

from amaranth import *

from pipeline.processor import HybridCoreProcessor
from accelerator.controller import AcceleratorController
from memory.local_ram import LocalRAM, LOCAL_RAM_DEPTH


class HybridCoreTop(Elaboratable):
    def __init__(self, num_cores=4, queue_depth=16, ram_depth=LOCAL_RAM_DEPTH,
                 ram_init=()):
        self.processor = HybridCoreProcessor()
        self.accel     = AcceleratorController(num_cores=num_cores,
                                               queue_depth=queue_depth,
                                               ram_depth=ram_depth)
        self.lram      = LocalRAM(depth=ram_depth, init=ram_init)

    def elaborate(self, platform):
        m = Module()

        # ── Instantiate submodules ───────────────────────────────────────
        processor = self.processor
        accel     = self.accel
        lram      = self.lram

        m.submodules.processor = processor
        m.submodules.accel     = accel
        m.submodules.lram      = lram

        # ── Controller ↔ LocalRAM ───────────────────────────────────────
        m.d.comb += [
            lram.addr.eq(accel.lram_addr),
            lram.write_enable.eq(accel.lram_write_enable),
            lram.write_data.eq(accel.lram_write_data),
            accel.lram_read_data.eq(lram.read_data),
        ]

        return m

    def ports(self):
        p = self.processor
        a = self.accel
        return [
            # Scalar pipeline
            p.instruction, p.clear, p.mem_data_in,
            p.mem_addr, p.mem_data_out, p.mem_write_enable, p.mem_read_enable,
            # Accelerator host side
            a.request_valid, a.write_flag, a.opcode,
            a.operand_a, a.operand_b,
            a.local_ram_addr, a.external_addr, a.external_write_data,
            a.ack, a.busy, a.done, a.result_out, a.status,
            # Accelerator external memory
            a.ext_request, a.ext_write, a.ext_addr, a.ext_write_data,
            a.ext_ack, a.ext_read_data,
            a.core_enable,
        ]


if __name__ == "__main__":
    from amaranth.back import verilog

    top = HybridCoreTop()
    with open("hybridcore.v", "w") as f:
        f.write(verilog.convert(top, name="hybridcore", ports=top.ports()))
    print("Wrote hybridcore.v")
