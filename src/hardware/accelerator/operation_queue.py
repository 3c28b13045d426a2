"""
Operation Queue Module for the HybridCore math accelerator.

Buffers pending arithmetic requests (opcode + two operands) between the
host and the execution core pool.  Synchronous circular buffer with a write
pointer, a read pointer and an occupancy count.

Only ADD/SUB/MUL/DIV are captured; any other opcode on the enqueue port is
ignored.  A request arriving while the queue is full is dropped silently:
there is no backpressure signal to the host.

The head entry is exposed combinationally and stays in place until the
controller pulses `deq` after assigning it to a core.
"""

from amaranth import *
from amaranth.lib.memory import Memory

from .protocol import (WORD_WIDTH, OPCODE_WIDTH,
                       ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV)


# Entry packing: opcode (3-bit) + operand_a (16-bit) + operand_b (16-bit) = 35 bits
ENTRY_WIDTH = OPCODE_WIDTH + 2 * WORD_WIDTH
DEFAULT_QUEUE_DEPTH = 16


class OperationQueue(Elaboratable):
    """
    Operation Queue.

    Parameters
    ----------
    depth : int
        Number of requests the queue can hold (default 16).

    Ports
    -----
    enq_valid  : Signal(), in
        Asserted for one cycle per host request.
    enq_opcode : Signal(3), in
    enq_a      : Signal(16), in
    enq_b      : Signal(16), in
    head_valid : Signal(), out
        High when an entry is waiting at the read pointer.
    head_opcode, head_a, head_b : out
        Fields of the entry at the read pointer.
    deq        : Signal(), in
        Removes the head entry (ignored when empty).
    empty      : Signal(), out
    full       : Signal(), out
    level      : Signal(range(depth + 1)), out
        Number of occupied slots.
    """

    def __init__(self, depth=DEFAULT_QUEUE_DEPTH):
        self.depth = depth

        # Enqueue side (host)
        self.enq_valid = Signal()
        self.enq_opcode = Signal(OPCODE_WIDTH)
        self.enq_a = Signal(WORD_WIDTH)
        self.enq_b = Signal(WORD_WIDTH)

        # Dequeue side (controller)
        self.head_valid = Signal()
        self.head_opcode = Signal(OPCODE_WIDTH)
        self.head_a = Signal(WORD_WIDTH)
        self.head_b = Signal(WORD_WIDTH)
        self.deq = Signal()

        # Status
        self.empty = Signal()
        self.full = Signal()
        self.level = Signal(range(depth + 1))

    def elaborate(self, platform):
        m = Module()

        depth = self.depth

        # Storage
        m.submodules.mem = mem = Memory(
            shape=ENTRY_WIDTH, depth=depth, init=[]
        )

        # Pointers and count
        wr_ptr = Signal(range(depth))
        rd_ptr = Signal(range(depth))
        count = Signal(range(depth + 1))

        m.d.comb += [
            self.empty.eq(count == 0),
            self.full.eq(count == depth),
            self.level.eq(count),
            self.head_valid.eq(~self.empty),
        ]

        # Only arithmetic requests are queued
        is_arith = Signal()
        with m.Switch(self.enq_opcode):
            with m.Case(ACC_ADD, ACC_SUB, ACC_MUL, ACC_DIV):
                m.d.comb += is_arith.eq(1)

        do_push = Signal()
        do_pop = Signal()
        m.d.comb += [
            do_push.eq(self.enq_valid & is_arith & ~self.full),
            do_pop.eq(self.deq & ~self.empty),
        ]

        # --- Write port (synchronous) ---
        wr_port = mem.write_port()
        m.d.comb += [
            # Pack: opcode [0:3] | operand_a [3:19] | operand_b [19:35]
            wr_port.addr.eq(wr_ptr),
            wr_port.data.eq(Cat(self.enq_opcode, self.enq_a, self.enq_b)),
            wr_port.en.eq(do_push),
        ]

        # --- Read port (combinational) ---
        rd_port = mem.read_port(domain="comb")
        m.d.comb += [
            rd_port.addr.eq(rd_ptr),
            self.head_opcode.eq(rd_port.data[0:3]),
            self.head_a.eq(rd_port.data[3:19]),
            self.head_b.eq(rd_port.data[19:35]),
        ]

        # --- Pointer and count update (synchronous) ---
        with m.If(do_push & ~do_pop):
            m.d.sync += count.eq(count + 1)
        with m.Elif(do_pop & ~do_push):
            m.d.sync += count.eq(count - 1)

        with m.If(do_push):
            with m.If(wr_ptr == depth - 1):
                m.d.sync += wr_ptr.eq(0)
            with m.Else():
                m.d.sync += wr_ptr.eq(wr_ptr + 1)

        with m.If(do_pop):
            with m.If(rd_ptr == depth - 1):
                m.d.sync += rd_ptr.eq(0)
            with m.Else():
                m.d.sync += rd_ptr.eq(rd_ptr + 1)

        return m
