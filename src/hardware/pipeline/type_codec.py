"""
Type Codec Module for the HybridCore scalar pipeline.

Produces the 64-bit stored form of a value according to its 3-bit data
type tag.  Signed integer widths are sign-extended; the floating-point
categories are zero-extended (no IEEE conversion in this model).

    INT8/16/32  -> sign-extend low 8/16/32 bits
    INT64, FP64 -> pass through
    FP16, BF16  -> zero-extend low 16 bits
    FP32        -> zero-extend low 32 bits
"""

from amaranth import *

from .isa import (DATA_WIDTH, TYPE_INT8, TYPE_INT16, TYPE_INT32,
                  TYPE_FP16, TYPE_BF16, TYPE_FP32)


class TypeCodec(Elaboratable):
    """
    Type-directed sign/zero extension.

    Ports
    -----
    type_tag : Signal(3), in
    raw      : Signal(64), in
    value    : Signal(64), out
    """

    def __init__(self):
        self.type_tag = Signal(3)
        self.raw = Signal(DATA_WIDTH)
        self.value = Signal(DATA_WIDTH)

    def elaborate(self, platform):
        m = Module()

        with m.Switch(self.type_tag):
            with m.Case(TYPE_INT8):
                m.d.comb += self.value.eq(self.raw[0:8].as_signed())
            with m.Case(TYPE_INT16):
                m.d.comb += self.value.eq(self.raw[0:16].as_signed())
            with m.Case(TYPE_INT32):
                m.d.comb += self.value.eq(self.raw[0:32].as_signed())
            with m.Case(TYPE_FP16, TYPE_BF16):
                m.d.comb += self.value.eq(self.raw[0:16])
            with m.Case(TYPE_FP32):
                m.d.comb += self.value.eq(self.raw[0:32])
            with m.Default():
                # INT64 / FP64
                m.d.comb += self.value.eq(self.raw)

        return m
