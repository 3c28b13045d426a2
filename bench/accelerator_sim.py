"""
Accelerator simulation bridge -- drives AcceleratorController via HybridCoreTop.

Issues host requests on the controller's request port and waits for the
`done` pulse of each one.  The local RAM is the real LocalRAM inside the
top level; external memory is modelled here as a dict that acknowledges
every request on the cycle it is first seen.
"""

from dataclasses import dataclass, field

from amaranth.sim import Simulator

from top import HybridCoreTop
from accelerator.protocol import ARITHMETIC_OPS


@dataclass
class HostRequest:
    opcode: int
    a: int = 0
    b: int = 0
    write: bool = False
    ram_addr: int = 0
    ext_addr: int = 0
    ext_data: int = 0


@dataclass
class RequestResult:
    result: int
    status: int
    cycles: int  # run(): since the strobe; run_burst(): since simulation start


@dataclass
class AcceleratorCounters:
    total_cycles: int = 0
    requests: int = 0
    ext_accesses: int = 0
    max_queue_level: int = 0
    per_request_cycles: list = field(default_factory=list)


class AcceleratorSimulator:
    """Run host request sequences through the accelerator in simulation."""

    def __init__(self, num_cores=4, queue_depth=16, ram_init=(),
                 ext_memory=None, core_enable=None, vcd_path=None,
                 verbose=False):
        self.num_cores = num_cores
        self.queue_depth = queue_depth
        self.ram_init = list(ram_init)
        self.ext_memory = dict(ext_memory or {})
        self.core_enable = core_enable
        self.vcd_path = vcd_path
        self.verbose = verbose
        self.counters = AcceleratorCounters()

    def _simulate(self, body):
        top = HybridCoreTop(num_cores=self.num_cores,
                            queue_depth=self.queue_depth,
                            ram_init=self.ram_init)
        dut = top.accel
        sim = Simulator(top)
        sim.add_clock(1e-8)  # 100 MHz sync

        results = []

        async def testbench(ctx):
            if self.core_enable is not None:
                ctx.set(dut.core_enable, self.core_enable)
            results.extend(await body(ctx, dut))

        sim.add_testbench(testbench)
        if self.vcd_path:
            with sim.write_vcd(self.vcd_path):
                sim.run()
        else:
            sim.run()
        return results

    def run(self, requests, max_cycles=200):
        """Issue requests one at a time. Returns a list of RequestResult."""
        async def body(ctx, dut):
            out = []
            for req in requests:
                await self._issue(ctx, dut, req)
                cycles = await self._wait_done(ctx, dut, max_cycles)
                res = RequestResult(result=ctx.get(dut.result_out),
                                    status=ctx.get(dut.status),
                                    cycles=cycles)
                out.append(res)
                self.counters.requests += 1
                self.counters.per_request_cycles.append(cycles)
                if self.verbose:
                    print(f"  op={req.opcode} a={req.a:04X} b={req.b:04X} -> "
                          f"{res.result:04X} status={res.status} "
                          f"({cycles} cycles)")
            return out

        return self._simulate(body)

    def run_burst(self, requests, max_cycles=2000):
        """
        Strobe arithmetic requests on consecutive cycles, then collect one
        result per done pulse.  Returns results in completion order.
        """
        for req in requests:
            if req.opcode not in ARITHMETIC_OPS:
                raise ValueError(f"burst requests must be arithmetic, got {req.opcode}")

        async def body(ctx, dut):
            out = []
            for req in requests:
                await self._issue(ctx, dut, req)
                self._collect(ctx, dut, out)
            for _ in range(max_cycles):
                if len(out) == len(requests):
                    return out
                await self._step(ctx, dut)
                self._collect(ctx, dut, out)
            raise RuntimeError(
                f"Accelerator burst timed out after {max_cycles} cycles "
                f"({len(out)}/{len(requests)} results)")

        return self._simulate(body)

    def _collect(self, ctx, dut, out):
        level = ctx.get(dut.queue_level)
        if level > self.counters.max_queue_level:
            self.counters.max_queue_level = level
        if ctx.get(dut.done):
            out.append(RequestResult(result=ctx.get(dut.result_out),
                                     status=ctx.get(dut.status),
                                     cycles=self.counters.total_cycles))

    # ── Host port helpers ─────────────────────────────────────────────────

    async def _issue(self, ctx, dut, req):
        """Strobe one request. 1 sync cycle."""
        ctx.set(dut.opcode, req.opcode)
        ctx.set(dut.operand_a, req.a)
        ctx.set(dut.operand_b, req.b)
        ctx.set(dut.write_flag, int(req.write))
        ctx.set(dut.local_ram_addr, req.ram_addr)
        ctx.set(dut.external_addr, req.ext_addr)
        ctx.set(dut.external_write_data, req.ext_data)
        ctx.set(dut.request_valid, 1)
        await self._step(ctx, dut)
        ctx.set(dut.request_valid, 0)

    async def _step(self, ctx, dut):
        """Advance one cycle, answering the external memory port."""
        acked = False
        if ctx.get(dut.ext_request):
            addr = ctx.get(dut.ext_addr)
            if ctx.get(dut.ext_write):
                self.ext_memory[addr] = ctx.get(dut.ext_write_data)
            else:
                ctx.set(dut.ext_read_data, self.ext_memory.get(addr, 0))
            ctx.set(dut.ext_ack, 1)
            acked = True
            self.counters.ext_accesses += 1
        await ctx.tick()
        self.counters.total_cycles += 1
        if acked:
            ctx.set(dut.ext_ack, 0)

    async def _wait_done(self, ctx, dut, max_cycles):
        """Wait for the done pulse. Returns cycles since the strobe."""
        for i in range(max_cycles):
            if ctx.get(dut.done):
                return i + 1
            await self._step(ctx, dut)
        raise RuntimeError(f"Accelerator request timed out after {max_cycles} cycles")
