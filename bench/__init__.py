"""Simulation bridges, reference model and CLI tools for HybridCore."""

import sys
import os

# Hardware sources live outside the package tree
_hw_dir = os.path.join(os.path.dirname(__file__), "..", "src", "hardware")
if _hw_dir not in sys.path:
    sys.path.insert(0, _hw_dir)
