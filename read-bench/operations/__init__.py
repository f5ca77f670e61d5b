"""
Benchmark operations and the records they produce.
"""

from .errors import StorageError, FatalProvisioningError, RecoverableExecutionError
from .latency import Latency
from .context import BenchmarkContext
from .read import OperationRead

__all__ = [
    'StorageError', 'FatalProvisioningError', 'RecoverableExecutionError',
    'Latency', 'BenchmarkContext', 'OperationRead',
]
