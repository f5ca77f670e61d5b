"""
Common utilities for the read benchmark.
"""

from .keys import generate_object_key, default_run_id
from .ticker import Ticker, ProgressTicker, NilTicker
from .formatting import byte_format, parse_size

__all__ = [
    'generate_object_key', 'default_run_id',
    'Ticker', 'ProgressTicker', 'NilTicker',
    'byte_format', 'parse_size',
]
