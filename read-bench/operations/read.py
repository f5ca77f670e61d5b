"""
Read benchmark operation: provision test objects, time reads, clean up.
"""

import logging
import threading
import time
from typing import List, Optional, Set

from common.formatting import byte_format
from common.keys import generate_object_key
from common.ticker import NilTicker, Ticker
from configuration import READ_CHUNK_SIZE
from operations.context import BenchmarkContext
from operations.errors import (
    FatalProvisioningError,
    RecoverableExecutionError,
    StorageError,
)
from operations.latency import Latency

logger = logging.getLogger(__name__)


class OperationRead:
    """Read benchmark for a single payload size.

    ``ensure_testdata`` and ``cleanup_testdata`` run alone, before and after
    the timed phase. ``execute`` may run concurrently from many workers, each
    with its own sample index.

    Attributes:
        keys: Keys this instance issued writes for, in provisioning order
        err_keys: Keys that saw an error during a timed read
    """

    def __init__(self):
        self._keys: List[str] = []
        self._err_keys: Set[str] = set()
        self._lock = threading.Lock()

    @property
    def keys(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    @property
    def err_keys(self) -> Set[str]:
        with self._lock:
            return set(self._err_keys)

    def mark_error(self, key: str) -> None:
        """Keep ``key`` in storage after the run for inspection."""
        with self._lock:
            self._err_keys.add(key)

    def _add_key(self, key: str) -> None:
        with self._lock:
            self._keys.append(key)

    async def ensure_testdata(
        self, ctx: BenchmarkContext, payload_size: int, ticker: Ticker
    ) -> None:
        """Make sure one object of ``payload_size`` bytes exists per sample.

        Objects left over from a previous run are reused as they are.

        Raises:
            FatalProvisioningError: If an existence check or a write fails;
                everything provisioned so far is removed first
        """
        created = 0
        reused = 0

        for sample_id in range(1, ctx.samples + 1):
            ticker.add(1)

            key = generate_object_key(sample_id, payload_size, ctx.run_id)

            try:
                exists = await ctx.client.head_object(ctx.path, key)
            except StorageError as e:
                message = f"Failed to head object {key}: {e}"
                await self._abandon_testdata(ctx, message)
                raise FatalProvisioningError(message, key) from e

            if exists:
                reused += 1
                continue

            body = bytes(payload_size)

            # Recorded before the write so cleanup also covers partial uploads
            self._add_key(key)
            try:
                await ctx.client.put_object(ctx.path, key, body)
            except StorageError as e:
                message = f"Failed to put object {key}: {e}"
                await self._abandon_testdata(ctx, message)
                raise FatalProvisioningError(message, key) from e
            created += 1

        logger.info(
            f"Provisioned {ctx.samples} objects of {byte_format(payload_size)} "
            f"in {ctx.path}: {created} created, {reused} reused"
        )

    async def _abandon_testdata(self, ctx: BenchmarkContext, message: str) -> None:
        """Log a provisioning failure and remove what was provisioned so far."""
        ctx.error_logger.error(message)
        await self.cleanup_testdata(ctx, NilTicker())

    async def execute(
        self, ctx: BenchmarkContext, sample_id: int, payload_size: int
    ) -> Latency:
        """Time one read of the sample's object.

        Failures never propagate: they are logged, the key is kept out of
        cleanup, and the error is attached to the returned Latency.
        """
        key = generate_object_key(sample_id, payload_size, ctx.run_id)
        errors: List[RecoverableExecutionError] = []

        start = time.perf_counter()

        try:
            stream = await ctx.client.get_object(ctx.path, key)
        except StorageError as e:
            ctx.error_logger.error(f"Failed to get object {key}: {e}")
            self.mark_error(key)
            errors.append(RecoverableExecutionError(key, RecoverableExecutionError.REQUEST, e))
            return Latency(key=key, sample_id=sample_id, payload_size=payload_size,
                           errors=tuple(errors))

        first_byte = time.perf_counter() - start

        chunk_size = max(1, min(payload_size, READ_CHUNK_SIZE))
        size = 0
        close_error: Optional[StorageError] = None
        try:
            while True:
                try:
                    chunk = await stream.read(chunk_size)
                except StorageError as e:
                    ctx.warning_logger.warning(
                        f"Error reading object body of object {key} "
                        f"(payload: {byte_format(payload_size)}, sample: {sample_id}): {e}"
                    )
                    self.mark_error(key)
                    errors.append(RecoverableExecutionError(key, RecoverableExecutionError.STREAM, e))
                    break
                if not chunk:
                    break
                size += len(chunk)
        finally:
            try:
                stream.close()
            except StorageError as e:
                close_error = e

        last_byte = time.perf_counter() - start

        if close_error is not None:
            ctx.error_logger.error(f"Error closing the datastream of object {key}: {close_error}")
            self.mark_error(key)
            errors.append(RecoverableExecutionError(key, RecoverableExecutionError.CLOSE, close_error))

        return Latency(
            key=key,
            sample_id=sample_id,
            payload_size=payload_size,
            first_byte=first_byte,
            last_byte=last_byte,
            bytes_read=size,
            errors=tuple(errors),
        )

    async def cleanup_testdata(self, ctx: BenchmarkContext, ticker: Ticker) -> None:
        """Delete provisioned objects, keeping those that produced errors."""
        keys = self.keys
        err_keys = self.err_keys
        kept = 0

        for key in keys:
            ticker.add(1)
            # Errored objects stay in storage so the operator can analyse them
            if key in err_keys:
                kept += 1
                continue
            await ctx.client.delete_object(ctx.path, key)

        if kept:
            logger.info(f"Kept {kept} errored objects in {ctx.path} for inspection")

    def __repr__(self) -> str:
        with self._lock:
            return f"OperationRead(keys={len(self._keys)}, err_keys={len(self._err_keys)})"
