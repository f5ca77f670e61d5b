"""
Error types for the read benchmark.

Provisioning failures abort a payload-size run; execution failures are
recorded on the sample's Latency and the run continues.
"""

from typing import Optional


class StorageError(Exception):
    """A storage client call failed for a reason other than not-found."""

    def __init__(self, operation: str, key: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed for {key}{detail}")


class FatalProvisioningError(RuntimeError):
    """Test data could not be provisioned; the benchmark run must stop."""

    def __init__(self, message: str, key: str):
        self.key = key
        super().__init__(message)


class RecoverableExecutionError(Exception):
    """A single timed read failed; recorded on the sample and not raised."""

    REQUEST = "request"
    STREAM = "stream"
    CLOSE = "close"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"

    def __init__(self, key: str, stage: str, cause: Optional[BaseException] = None):
        self.key = key
        self.stage = stage
        self.cause = cause
        self.__cause__ = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{stage} error on {key}{detail}")
