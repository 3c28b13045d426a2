"""Math accelerator for the HybridCore system: BF16 arithmetic behind a request queue."""

from .operation_queue import OperationQueue
from .execution_core import ExecutionCore
from .core_pool import ExecutionCorePool
from .controller import AcceleratorController
