"""Scalar instruction pipeline for the HybridCore processor."""

from .type_codec import TypeCodec
from .instruction_decoder import InstructionDecoder
from .register_file import RegisterFile
from .control_unit import ControlUnit
from .alu import ALU
from .processor import HybridCoreProcessor
