"""
Accelerator Controller -- Top-Level Module of the HybridCore math accelerator.

Host-facing protocol state machine.  Owns the Operation Queue and the
Execution Core Pool and is the only block that dequeues requests or
assigns cores.  Also multiplexes local-RAM and external-memory accesses
requested by the host.

Arithmetic requests (ADD/SUB/MUL/DIV) are captured by the queue's own
enqueue logic on the cycle the host strobes `request_valid`; the
controller only acknowledges them, separately from the one latched
memory or reserved request, so a later arithmetic strobe never displaces
it.  Queued work is drained whenever the controller is idle and a core is
ready.

FSM states:
  IDLE               -- pending host request first, else dispatch queued work
  HOST_REQUEST       -- ack pulse; classify the latched request
  LOCAL_RAM_READ     -- single cycle: capture read data
  LOCAL_RAM_WRITE    -- single cycle: write commits, drop write enable
  EXTERNAL_MEM_READ  -- hold request until ext_ack, capture read data
  EXTERNAL_MEM_WRITE -- hold request until ext_ack, drop request lines
  DISPATCH           -- bind queue head to the lowest ready core
  AWAIT_CORE         -- wait for that core's result_valid

`busy` is high whenever the FSM is outside IDLE.  `done` pulses for one
cycle each time result_out/status are updated.  There is no timeout: if
the assigned core is disabled, AWAIT_CORE waits forever.
"""

from amaranth import *

from memory.local_ram import LOCAL_RAM_DEPTH

from .protocol import (WORD_WIDTH, OPCODE_WIDTH, EXT_ADDR_WIDTH,
                       ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV,
                       ACC_LOCAL_RAM, ACC_EXTERNAL_MEM,
                       STATUS_OK, STATUS_ERROR)
from .operation_queue import OperationQueue, DEFAULT_QUEUE_DEPTH
from .core_pool import ExecutionCorePool, DEFAULT_NUM_CORES


class AcceleratorController(Elaboratable):
    """
    Accelerator Controller.

    Parameters
    ----------
    num_cores : int
        Execution cores in the pool (default 4).
    queue_depth : int
        Operation queue capacity (default 16).
    ram_depth : int
        Local RAM address space (default 256).

    Ports -- host request
    ---------------------
    request_valid       : Signal(), in  -- one-cycle strobe per request
    write_flag          : Signal(), in
    opcode              : Signal(3), in
    operand_a           : Signal(16), in  -- also local-RAM write data
    operand_b           : Signal(16), in
    local_ram_addr      : Signal(range(ram_depth)), in
    external_addr       : Signal(32), in
    external_write_data : Signal(16), in

    Ports -- host response
    ----------------------
    ack        : Signal(), out  -- pulsed in HOST_REQUEST
    busy       : Signal(), out
    done       : Signal(), out  -- result_out/status just updated
    result_out : Signal(16), out
    status     : Signal(), out  -- 0 = success, 1 = error

    Ports -- local RAM
    ------------------
    lram_addr, lram_write_enable, lram_write_data : out
    lram_read_data : Signal(16), in

    Ports -- external memory
    ------------------------
    ext_request, ext_write, ext_addr, ext_write_data : out
    ext_ack       : Signal(), in
    ext_read_data : Signal(16), in

    Ports -- pool control
    ---------------------
    core_enable : Signal(num_cores), in  -- all cores enabled on reset
    queue_level : Signal(range(queue_depth + 1)), out
    """

    def __init__(self, num_cores=DEFAULT_NUM_CORES,
                 queue_depth=DEFAULT_QUEUE_DEPTH, ram_depth=LOCAL_RAM_DEPTH):
        self.num_cores = num_cores
        self.queue_depth = queue_depth
        self.ram_depth = ram_depth

        # --- Host request ---
        self.request_valid = Signal()
        self.write_flag = Signal()
        self.opcode = Signal(OPCODE_WIDTH)
        self.operand_a = Signal(WORD_WIDTH)
        self.operand_b = Signal(WORD_WIDTH)
        self.local_ram_addr = Signal(range(ram_depth))
        self.external_addr = Signal(EXT_ADDR_WIDTH)
        self.external_write_data = Signal(WORD_WIDTH)

        # --- Host response ---
        self.ack = Signal()
        self.busy = Signal()
        self.done = Signal()
        self.result_out = Signal(WORD_WIDTH)
        self.status = Signal()

        # --- Local RAM port ---
        self.lram_addr = Signal(range(ram_depth))
        self.lram_write_enable = Signal()
        self.lram_write_data = Signal(WORD_WIDTH)
        self.lram_read_data = Signal(WORD_WIDTH)

        # --- External memory port ---
        self.ext_request = Signal()
        self.ext_write = Signal()
        self.ext_addr = Signal(EXT_ADDR_WIDTH)
        self.ext_write_data = Signal(WORD_WIDTH)
        self.ext_ack = Signal()
        self.ext_read_data = Signal(WORD_WIDTH)

        # --- Pool control / observation ---
        self.core_enable = Signal(num_cores, init=(1 << num_cores) - 1)
        self.queue_level = Signal(range(queue_depth + 1))

        # --- Sub-modules (created here for test access) ---
        self.queue = OperationQueue(depth=queue_depth)
        self.pool = ExecutionCorePool(num_cores=num_cores)

    def elaborate(self, platform):
        m = Module()

        queue = self.queue
        pool = self.pool

        m.submodules.queue = queue
        m.submodules.pool = pool

        # =============================================================
        # Host -> queue (queue filters for arithmetic opcodes)
        # =============================================================

        m.d.comb += [
            queue.enq_valid.eq(self.request_valid),
            queue.enq_opcode.eq(self.opcode),
            queue.enq_a.eq(self.operand_a),
            queue.enq_b.eq(self.operand_b),
            self.queue_level.eq(queue.level),
        ]

        # =============================================================
        # Queue head -> pool
        # =============================================================

        assigned_core = Signal.like(pool.watch_sel)

        m.d.comb += [
            pool.core_enable.eq(self.core_enable),
            pool.assign_opcode.eq(queue.head_opcode),
            pool.assign_a.eq(queue.head_a),
            pool.assign_b.eq(queue.head_b),
            pool.watch_sel.eq(assigned_core),
        ]

        # =============================================================
        # Registered memory-port drivers
        # =============================================================

        lram_addr_reg = Signal(range(self.ram_depth))
        lram_we_reg = Signal()
        lram_wdata_reg = Signal(WORD_WIDTH)

        m.d.comb += [
            self.lram_addr.eq(lram_addr_reg),
            self.lram_write_enable.eq(lram_we_reg),
            self.lram_write_data.eq(lram_wdata_reg),
        ]

        # ext_request / ext_write / ext_addr / ext_write_data are driven
        # straight from the sync domain below.

        # =============================================================
        # Pending host request latch
        # =============================================================

        # pending: one memory/reserved request; arith_pending: ack owed
        # for arithmetic strobes the queue has already captured
        pending = Signal()
        arith_pending = Signal()
        consume = Signal()
        req_write = Signal()
        req_opcode = Signal(OPCODE_WIDTH)
        req_a = Signal(WORD_WIDTH)
        req_lram_addr = Signal(range(self.ram_depth))
        req_ext_addr = Signal(EXT_ADDR_WIDTH)
        req_ext_data = Signal(WORD_WIDTH)

        # done is a one-cycle pulse, re-armed below when a result lands
        m.d.sync += self.done.eq(0)

        # =============================================================
        # FSM
        # =============================================================

        with m.FSM(name="ctrl") as fsm:

            with m.State("IDLE"):
                with m.If(pending | arith_pending | self.request_valid):
                    m.next = "HOST_REQUEST"
                with m.Elif(queue.head_valid & pool.any_ready):
                    m.next = "DISPATCH"

            with m.State("HOST_REQUEST"):
                m.d.comb += self.ack.eq(1)

                with m.If(~pending):
                    # Arithmetic only: already in the queue
                    m.d.sync += arith_pending.eq(0)
                    m.next = "IDLE"

                with m.Else():
                    m.d.comb += consume.eq(1)
                    m.d.sync += pending.eq(0)

                    with m.Switch(req_opcode):
                        with m.Case(ACC_LOCAL_RAM):
                            m.d.sync += lram_addr_reg.eq(req_lram_addr)
                            with m.If(req_write):
                                m.d.sync += [
                                    lram_we_reg.eq(1),
                                    lram_wdata_reg.eq(req_a),
                                ]
                                m.next = "LOCAL_RAM_WRITE"
                            with m.Else():
                                m.next = "LOCAL_RAM_READ"

                        with m.Case(ACC_EXTERNAL_MEM):
                            m.d.sync += [
                                self.ext_request.eq(1),
                                self.ext_write.eq(req_write),
                                self.ext_addr.eq(req_ext_addr),
                                self.ext_write_data.eq(req_ext_data),
                            ]
                            with m.If(req_write):
                                m.next = "EXTERNAL_MEM_WRITE"
                            with m.Else():
                                m.next = "EXTERNAL_MEM_READ"

                        with m.Default():
                            m.d.sync += [
                                self.status.eq(STATUS_ERROR),
                                self.done.eq(1),
                            ]
                            m.next = "IDLE"

            with m.State("LOCAL_RAM_READ"):
                m.d.sync += [
                    self.result_out.eq(self.lram_read_data),
                    self.status.eq(STATUS_OK),
                    self.done.eq(1),
                ]
                m.next = "IDLE"

            with m.State("LOCAL_RAM_WRITE"):
                # Write commits on this edge
                m.d.sync += [
                    lram_we_reg.eq(0),
                    self.status.eq(STATUS_OK),
                    self.done.eq(1),
                ]
                m.next = "IDLE"

            with m.State("EXTERNAL_MEM_READ"):
                with m.If(self.ext_ack):
                    m.d.sync += [
                        self.result_out.eq(self.ext_read_data),
                        self.ext_request.eq(0),
                        self.status.eq(STATUS_OK),
                        self.done.eq(1),
                    ]
                    m.next = "IDLE"

            with m.State("EXTERNAL_MEM_WRITE"):
                with m.If(self.ext_ack):
                    m.d.sync += [
                        self.ext_request.eq(0),
                        self.ext_write.eq(0),
                        self.status.eq(STATUS_OK),
                        self.done.eq(1),
                    ]
                    m.next = "IDLE"

            with m.State("DISPATCH"):
                # No ready core: spin here, queue entry stays put
                with m.If(pool.any_ready):
                    m.d.comb += [
                        pool.assign.eq(1),
                        queue.deq.eq(1),
                    ]
                    m.d.sync += assigned_core.eq(pool.first_ready)
                    m.next = "AWAIT_CORE"

            with m.State("AWAIT_CORE"):
                with m.If(pool.watch_result_valid):
                    m.d.sync += [
                        self.result_out.eq(pool.watch_result),
                        self.status.eq(pool.watch_status),
                        self.done.eq(1),
                    ]
                    m.next = "IDLE"

        m.d.comb += self.busy.eq(~fsm.ongoing("IDLE"))

        is_arith = Signal()
        with m.Switch(self.opcode):
            with m.Case(ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV):
                m.d.comb += is_arith.eq(1)

        # Arithmetic strobes only owe an ack.  Other strobes take the latch
        # unless it still holds an unserved request; a strobe in
        # HOST_REQUEST stays pending.
        with m.If(self.request_valid & is_arith):
            m.d.sync += arith_pending.eq(1)
        with m.Elif(self.request_valid & (~pending | consume)):
            m.d.sync += [
                pending.eq(1),
                req_write.eq(self.write_flag),
                req_opcode.eq(self.opcode),
                req_a.eq(self.operand_a),
                req_lram_addr.eq(self.local_ram_addr),
                req_ext_addr.eq(self.external_addr),
                req_ext_data.eq(self.external_write_data),
            ]

        return m
