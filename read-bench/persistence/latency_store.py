"""
Parquet persistence for read benchmark latencies.
"""

import os
import logging
import threading
from typing import List, Optional
from datetime import datetime

import pandas as pd

from operations.latency import Latency

logger = logging.getLogger(__name__)

COLUMNS = [
    'sample_id',
    'payload_size',
    'object_key',
    'first_byte_ms',
    'last_byte_ms',
    'bytes',
    'error_count',
    'errors',
]


class LatencyPersistence:
    """Thread-safe Parquet file persistence for Latency records.

    Records are kept in memory while the benchmark runs and written to a
    timestamped Parquet file for later analysis.

    Attributes:
        output_dir: Directory where Parquet files will be saved
        records: Latency records accumulated during the benchmark
    """

    def __init__(self, output_dir: str = "results"):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir
        self.records: List[Latency] = []
        self._lock = threading.Lock()

    def store_record(self, record: Latency) -> None:
        """Store a Latency record in memory.

        Args:
            record: Latency record to store
        """
        with self._lock:
            self.records.append(record)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the stored records to a DataFrame, one row per sample."""
        with self._lock:
            records = list(self.records)

        data = []
        for record in records:
            data.append({
                'sample_id': record.sample_id,
                'payload_size': record.payload_size,
                'object_key': record.key,
                'first_byte_ms': record.first_byte_ms,
                'last_byte_ms': record.last_byte_ms,
                'bytes': record.bytes_read,
                'error_count': len(record.errors),
                'errors': "; ".join(str(e) for e in record.errors),
            })

        return pd.DataFrame(data, columns=COLUMNS)

    def save_to_file(self, filename_prefix: str = "read_latency") -> Optional[str]:
        """Save all records to a Parquet file.

        Args:
            filename_prefix: Prefix for the generated filename (default: 'read_latency')

        Returns:
            Path to the saved file, or None if no records to save
        """
        df = self.to_dataframe()
        if df.empty:
            return None

        os.makedirs(self.output_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{filename_prefix}_{timestamp}.parquet"
        filepath = os.path.join(self.output_dir, filename)

        logger.info(f"Saving {len(df)} latency records to {filepath}")
        df.to_parquet(filepath, index=False)

        return filepath
