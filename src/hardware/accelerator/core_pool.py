"""
Execution Core Pool Module for the HybridCore math accelerator.

N identical ExecutionCores side by side.  Arbitration is a fixed-priority
encoder re-evaluated every cycle: the lowest-indexed ready core wins.  The
pool keeps no ownership state of its own; the controller remembers which
core it assigned and points `watch_sel` at it to observe the result.
"""

from amaranth import *

from .protocol import WORD_WIDTH, OPCODE_WIDTH
from .execution_core import ExecutionCore


DEFAULT_NUM_CORES = 4


class ExecutionCorePool(Elaboratable):
    """
    Execution Core Pool.

    Parameters
    ----------
    num_cores : int
        Number of execution cores (default 4).

    Ports -- arbitration
    --------------------
    core_enable : Signal(num_cores), in  -- per-core enable, all set on reset
    ready_mask  : Signal(num_cores), out
    any_ready   : Signal(), out
    first_ready : Signal(range(num_cores)), out  -- lowest ready index

    Ports -- assignment
    -------------------
    assign        : Signal(), in  -- start first_ready on this cycle
    assign_opcode : Signal(3), in
    assign_a      : Signal(16), in
    assign_b      : Signal(16), in

    Ports -- result watch
    ---------------------
    watch_sel          : Signal(range(num_cores)), in
    watch_result_valid : Signal(), out
    watch_result       : Signal(16), out
    watch_status       : Signal(), out
    """

    def __init__(self, num_cores=DEFAULT_NUM_CORES):
        self.num_cores = num_cores

        self.core_enable = Signal(num_cores, init=(1 << num_cores) - 1)
        self.ready_mask = Signal(num_cores)
        self.any_ready = Signal()
        self.first_ready = Signal(range(max(num_cores, 2)))

        self.assign = Signal()
        self.assign_opcode = Signal(OPCODE_WIDTH)
        self.assign_a = Signal(WORD_WIDTH)
        self.assign_b = Signal(WORD_WIDTH)

        self.watch_sel = Signal(range(max(num_cores, 2)))
        self.watch_result_valid = Signal()
        self.watch_result = Signal(WORD_WIDTH)
        self.watch_status = Signal()

        # --- Sub-modules (created here for test access) ---
        self.cores = [ExecutionCore() for _ in range(num_cores)]

    def elaborate(self, platform):
        m = Module()

        for i, core in enumerate(self.cores):
            m.submodules[f"core{i}"] = core

            m.d.comb += [
                core.enable.eq(self.core_enable[i]),
                core.opcode.eq(self.assign_opcode),
                core.operand_a.eq(self.assign_a),
                core.operand_b.eq(self.assign_b),
                core.start.eq(self.assign & self.any_ready
                              & (self.first_ready == i)),
                self.ready_mask[i].eq(core.ready),
            ]

        # --- select_first_ready: lowest index wins ---
        m.d.comb += self.any_ready.eq(self.ready_mask.any())
        for i in reversed(range(self.num_cores)):
            with m.If(self.ready_mask[i]):
                m.d.comb += self.first_ready.eq(i)

        # --- Result watch mux ---
        valids = Array(core.result_valid for core in self.cores)
        results = Array(core.result for core in self.cores)
        statuses = Array(core.status for core in self.cores)
        m.d.comb += [
            self.watch_result_valid.eq(valids[self.watch_sel]),
            self.watch_result.eq(results[self.watch_sel]),
            self.watch_status.eq(statuses[self.watch_sel]),
        ]

        return m
