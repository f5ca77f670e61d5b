"""
Run context shared by the phases of a read benchmark.
"""

import logging
from typing import Optional

from common.keys import default_run_id

ERROR_LOGGER_NAME = "read-bench.errors"
WARNING_LOGGER_NAME = "read-bench.warnings"


class BenchmarkContext:
    """Storage client, target bucket, sample count and the two log sinks."""

    def __init__(
        self,
        client,
        path: str,
        samples: int,
        error_logger: Optional[logging.Logger] = None,
        warning_logger: Optional[logging.Logger] = None,
        run_id: Optional[str] = None,
    ):
        if samples < 1:
            raise ValueError(f"samples must be at least 1, got {samples}")

        self.client = client
        self.path = path
        self.samples = samples
        self.error_logger = error_logger or logging.getLogger(ERROR_LOGGER_NAME)
        self.warning_logger = warning_logger or logging.getLogger(WARNING_LOGGER_NAME)
        self.run_id = run_id or default_run_id()

    def __repr__(self) -> str:
        return f"BenchmarkContext(path='{self.path}', samples={self.samples}, run_id='{self.run_id}')"
