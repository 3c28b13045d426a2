"""Memory modules for the HybridCore system."""

from .local_ram import LocalRAM, LOCAL_RAM_DEPTH, LOCAL_RAM_WIDTH
