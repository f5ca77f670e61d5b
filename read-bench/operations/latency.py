"""
Latency record produced by one timed read.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from configuration import MILLISECONDS_PER_SECOND
from operations.errors import RecoverableExecutionError


@dataclass(frozen=True)
class Latency:
    """First-byte and last-byte timings of one sample, in seconds.

    ``first_byte`` and ``last_byte`` are None when the request itself failed;
    in that case ``errors`` is never empty.
    """

    key: str
    sample_id: int
    payload_size: int
    first_byte: Optional[float] = None
    last_byte: Optional[float] = None
    bytes_read: int = 0
    errors: Tuple[RecoverableExecutionError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first_byte_ms(self) -> Optional[float]:
        if self.first_byte is None:
            return None
        return self.first_byte * MILLISECONDS_PER_SECOND

    @property
    def last_byte_ms(self) -> Optional[float]:
        if self.last_byte is None:
            return None
        return self.last_byte * MILLISECONDS_PER_SECOND
