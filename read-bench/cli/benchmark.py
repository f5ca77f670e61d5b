"""
Read latency benchmark: provision, time reads concurrently, clean up.
"""

import asyncio
import os
import sys
import logging
from typing import Dict, Iterable, List, Optional

# Ensure project root is in path (for running as script)
# When run as module (python -m cli.benchmark), this is not needed
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from configuration import (
    DEFAULT_CONCURRENCY,
    DEFAULT_SAMPLES,
    SAMPLE_TIMEOUT_SECONDS,
)
from common.formatting import byte_format
from common.keys import generate_object_key
from common.storage_factory import create_storage_system
from common.ticker import ProgressTicker
from operations.context import BenchmarkContext
from operations.errors import (
    FatalProvisioningError,
    RecoverableExecutionError,
    StorageError,
)
from operations.latency import Latency
from operations.read import OperationRead
from persistence.latency_store import LatencyPersistence

logger = logging.getLogger(__name__)


class ReadBenchmarkRunner:
    """Runs the read benchmark once per payload size.

    Each payload size goes through three phases separated by barriers:
    provisioning, concurrent timed reads, and cleanup.
    """

    def __init__(
        self,
        storage_type: str = "r2",
        bucket_name: Optional[str] = None,
        samples: int = DEFAULT_SAMPLES,
        concurrency: int = DEFAULT_CONCURRENCY,
        sample_timeout: Optional[float] = SAMPLE_TIMEOUT_SECONDS,
        run_id: Optional[str] = None,
        persistence: Optional[LatencyPersistence] = None,
        storage_system=None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.storage_type = storage_type.lower()
        self.samples = samples
        self.concurrency = concurrency
        self.sample_timeout = sample_timeout
        self.run_id = run_id
        self.persistence = persistence

        try:
            self.storage_system = storage_system or create_storage_system(
                self.storage_type, bucket_name=bucket_name
            )
        except Exception as e:
            logger.error(f"Failed to initialize {self.storage_type.upper()} storage: {e}")
            raise

        self.bucket_name = bucket_name or self.storage_system.bucket_name
        if not self.bucket_name:
            raise ValueError("No bucket configured. Set BUCKET_NAME or pass --bucket.")

        logger.info(
            f"Initialized read benchmark: {self.storage_type.upper()} bucket {self.bucket_name}, "
            f"{samples} samples, concurrency {concurrency}"
        )

    def _context(self) -> BenchmarkContext:
        return BenchmarkContext(
            client=self.storage_system,
            path=self.bucket_name,
            samples=self.samples,
            run_id=self.run_id,
        )

    async def run(self, payload_sizes: Iterable[int]) -> Dict[int, List[Latency]]:
        """Benchmark every payload size in order.

        Raises:
            StorageError: If the bucket cannot be reached
            FatalProvisioningError: If test data for a payload size cannot be
                provisioned; remaining sizes are not run
        """
        results: Dict[int, List[Latency]] = {}

        async with self.storage_system:
            if not await self.storage_system.verify_connection(self.bucket_name):
                raise StorageError("HeadBucket", self.bucket_name)

            for payload_size in payload_sizes:
                logger.info(f"=== Payload size {byte_format(payload_size)} ===")
                try:
                    results[payload_size] = await self.run_payload_size(payload_size)
                except FatalProvisioningError as e:
                    logger.error(f"Aborting benchmark: {e}")
                    raise

        return results

    async def run_payload_size(self, payload_size: int) -> List[Latency]:
        """Provision, read and clean up the objects of one payload size."""
        ctx = self._context()
        op = OperationRead()

        # Phase 1: provisioning
        await op.ensure_testdata(
            ctx, payload_size, ProgressTicker(ctx.samples, f"Provisioning {byte_format(payload_size)}")
        )

        # Phase 2: timed reads
        semaphore = asyncio.Semaphore(self.concurrency)
        read_ticker = ProgressTicker(ctx.samples, f"Reading {byte_format(payload_size)}")

        async def run_sample(sample_id: int) -> Latency:
            async with semaphore:
                latency = await self._execute_sample(op, ctx, sample_id, payload_size)
            read_ticker.add(1)
            if self.persistence is not None:
                self.persistence.store_record(latency)
            return latency

        try:
            latencies = await asyncio.gather(
                *(run_sample(sample_id) for sample_id in range(1, ctx.samples + 1))
            )
        finally:
            # Phase 3: cleanup, also when the timed phase was interrupted
            keys = op.keys
            await op.cleanup_testdata(
                ctx, ProgressTicker(len(keys), f"Cleaning up {byte_format(payload_size)}")
            )

        failed = sum(1 for latency in latencies if not latency.ok)
        logger.info(
            f"Payload {byte_format(payload_size)}: {len(latencies)} samples, {failed} with errors"
        )
        return list(latencies)

    async def _execute_sample(
        self, op: OperationRead, ctx: BenchmarkContext, sample_id: int, payload_size: int
    ) -> Latency:
        key = generate_object_key(sample_id, payload_size, ctx.run_id)
        try:
            if self.sample_timeout is None:
                return await op.execute(ctx, sample_id, payload_size)
            return await asyncio.wait_for(
                op.execute(ctx, sample_id, payload_size), timeout=self.sample_timeout
            )
        except asyncio.TimeoutError as e:
            ctx.error_logger.error(
                f"Timed out reading object {key} after {self.sample_timeout:.1f}s"
            )
            error = RecoverableExecutionError(key, RecoverableExecutionError.TIMEOUT, e)
        except Exception as e:
            ctx.error_logger.error(f"Unexpected error reading object {key}: {e!r}")
            error = RecoverableExecutionError(key, RecoverableExecutionError.UNEXPECTED, e)

        op.mark_error(key)
        return Latency(
            key=key,
            sample_id=sample_id,
            payload_size=payload_size,
            errors=(error,),
        )
