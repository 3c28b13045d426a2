"""
Scalar pipeline simulation bridge -- drives HybridCoreProcessor directly.

Feeds one instruction word per clock, drives the load data on
`mem_data_in` while a LOAD is on the bus, records the memory bus activity
of every instruction and returns the final register contents.
"""

from amaranth.sim import Simulator

from pipeline.processor import HybridCoreProcessor
from pipeline.isa import OP_LOAD

from .microprogram import DEFAULT_LOAD_DATA
from .reference_model import MemoryAccess


class ProcessorSimulator:
    """Run a microprogram through HybridCoreProcessor in Amaranth simulation."""

    def __init__(self, program, load_data=DEFAULT_LOAD_DATA, vcd_path=None,
                 verbose=False):
        self.program = list(program)
        self.load_data = load_data
        self.vcd_path = vcd_path
        self.verbose = verbose
        self.cycles = 0
        self._registers = None
        self._trace = None

    def run(self):
        """Run the program. Returns (registers, trace)."""
        dut = HybridCoreProcessor()
        sim = Simulator(dut)
        sim.add_clock(1e-8)  # 100 MHz sync

        async def testbench(ctx):
            self._trace = await self._execute(ctx, dut)
            self._registers = [ctx.get(cell) for cell in dut.register_file.cells]

        sim.add_testbench(testbench)
        if self.vcd_path:
            with sim.write_vcd(self.vcd_path):
                sim.run()
        else:
            sim.run()

        return self._registers, self._trace

    async def _execute(self, ctx, dut):
        trace = []
        for pc, word in enumerate(self.program):
            ctx.set(dut.instruction, word)
            if ((word >> 28) & 0xF) == OP_LOAD:
                ctx.set(dut.mem_data_in, self.load_data)
            else:
                ctx.set(dut.mem_data_in, 0)

            access = MemoryAccess(
                read=bool(ctx.get(dut.mem_read_enable)),
                write=bool(ctx.get(dut.mem_write_enable)),
                addr=ctx.get(dut.mem_addr),
                data=ctx.get(dut.mem_data_out),
            )
            trace.append(access)

            if self.verbose:
                flags = ("R" if access.read else "-") + ("W" if access.write else "-")
                print(f"  [{pc:3d}] {word:08X} {flags} addr={access.addr:016X}")

            await ctx.tick()
            self.cycles += 1

        ctx.set(dut.instruction, 0)
        return trace


def format_registers(registers):
    """Register dump lines in the `R<n> = <hex>` harness format."""
    return [f"R{i} = {value:016X}" for i, value in enumerate(registers)]
