"""
Tests for the read benchmark operation: provisioning, timed reads, cleanup.
"""

import asyncio
import os
import sys
import threading
import unittest
from unittest.mock import Mock

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from common.keys import generate_object_key
from common.ticker import NilTicker
from operations.context import BenchmarkContext
from operations.errors import FatalProvisioningError, RecoverableExecutionError
from operations.read import OperationRead
from storage_fakes import FakeStorageSystem

RUN_ID = "test-host"
PAYLOAD = 1024


def key_for(sample_id: int, payload_size: int = PAYLOAD) -> str:
    return generate_object_key(sample_id, payload_size, RUN_ID)


class ReadOperationTestCase(unittest.IsolatedAsyncioTestCase):
    """Shared fixtures: fake storage, mock log sinks and a fresh operation."""

    samples = 3

    def setUp(self):
        self.storage = FakeStorageSystem()
        self.error_logger = Mock()
        self.warning_logger = Mock()
        self.ctx = BenchmarkContext(
            client=self.storage,
            path=self.storage.bucket_name,
            samples=self.samples,
            error_logger=self.error_logger,
            warning_logger=self.warning_logger,
            run_id=RUN_ID,
        )
        self.op = OperationRead()


class TestEnsureTestdata(ReadOperationTestCase):
    """Provisioning of test objects."""

    async def test_all_samples_created(self):
        """Every missing object is written with payload_size zero bytes."""
        ticker = Mock()
        await self.op.ensure_testdata(self.ctx, PAYLOAD, ticker)

        expected = [key_for(i) for i in range(1, 4)]
        self.assertEqual(self.op.keys, expected)
        self.assertEqual(self.storage.put_calls, expected)
        self.assertEqual(self.op.err_keys, set())
        for key in expected:
            self.assertEqual(self.storage.objects[key], bytes(PAYLOAD))
        self.assertEqual(ticker.add.call_count, 3)

    async def test_existing_object_is_skipped(self):
        """An object reported as existing is neither written nor tracked."""
        self.storage.objects[key_for(2)] = b"left over from a previous run"

        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        self.assertEqual(self.storage.put_calls, [key_for(1), key_for(3)])
        self.assertEqual(self.op.keys, [key_for(1), key_for(3)])
        self.assertNotIn(key_for(2), self.op.keys)

    async def test_repeated_provisioning_is_idempotent(self):
        """A second pass over the same samples creates nothing."""
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        second = OperationRead()
        await second.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        self.assertEqual(len(self.storage.put_calls), 3)
        self.assertEqual(second.keys, [])

    async def test_progress_counts_skipped_samples(self):
        """Progress reflects attempted samples, not created objects."""
        self.storage.objects[key_for(1)] = bytes(PAYLOAD)
        ticker = Mock()

        await self.op.ensure_testdata(self.ctx, PAYLOAD, ticker)

        self.assertEqual(ticker.add.call_count, 3)
        for call in ticker.add.call_args_list:
            self.assertEqual(call.args, (1,))

    async def test_write_failure_aborts_after_cleanup(self):
        """A failed write cleans up what was provisioned, then aborts."""
        self.storage.put_errors[key_for(2)] = PermissionError("AccessDenied")
        ticker = Mock()

        with self.assertRaises(FatalProvisioningError) as raised:
            await self.op.ensure_testdata(self.ctx, PAYLOAD, ticker)

        self.assertIn("AccessDenied", str(raised.exception))
        self.assertEqual(raised.exception.key, key_for(2))
        self.assertIsNotNone(raised.exception.__cause__)

        # The failed key was recorded when the write was issued
        self.assertEqual(self.op.keys, [key_for(1), key_for(2)])
        self.assertIn(key_for(1), self.storage.delete_calls)
        self.assertNotIn(key_for(1), self.storage.objects)
        self.assertNotIn(key_for(3), self.storage.head_calls)

        # Fatal-path cleanup does not touch the caller's progress
        self.assertEqual(ticker.add.call_count, 2)
        self.error_logger.error.assert_called_once()

    async def test_head_failure_aborts_after_cleanup(self):
        """An existence check failing for a reason other than not-found is fatal."""
        self.storage.head_errors[key_for(2)] = ConnectionError("connection refused")

        with self.assertRaises(FatalProvisioningError) as raised:
            await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        self.assertIn("connection refused", str(raised.exception))
        self.assertEqual(self.storage.put_calls, [key_for(1)])
        self.assertEqual(self.storage.delete_calls, [key_for(1)])
        self.assertEqual(self.op.keys, [key_for(1)])


class TestExecute(ReadOperationTestCase):
    """Timed reads."""

    async def asyncSetUp(self):
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

    async def test_successful_reads(self):
        """Three clean samples give full timings and no errors."""
        for sample_id in range(1, 4):
            latency = await self.op.execute(self.ctx, sample_id, PAYLOAD)

            self.assertTrue(latency.ok)
            self.assertEqual(latency.errors, ())
            self.assertEqual(latency.key, key_for(sample_id))
            self.assertEqual(latency.bytes_read, PAYLOAD)
            self.assertIsNotNone(latency.first_byte)
            self.assertGreaterEqual(latency.last_byte, latency.first_byte)

        self.assertEqual(self.op.err_keys, set())
        self.assertTrue(all(stream.closed for stream in self.storage.streams))
        self.error_logger.error.assert_not_called()
        self.warning_logger.warning.assert_not_called()

    async def test_request_failure(self):
        """A failed request returns an errored Latency without timings."""
        self.storage.get_errors[key_for(2)] = TimeoutError("connect timeout")

        latency = await self.op.execute(self.ctx, 2, PAYLOAD)

        self.assertFalse(latency.ok)
        self.assertEqual(len(latency.errors), 1)
        self.assertIsInstance(latency.errors[0], RecoverableExecutionError)
        self.assertEqual(latency.errors[0].stage, RecoverableExecutionError.REQUEST)
        self.assertIsNone(latency.first_byte)
        self.assertIsNone(latency.last_byte)
        self.assertEqual(latency.bytes_read, 0)
        self.assertIn(key_for(2), self.op.err_keys)
        self.error_logger.error.assert_called_once()
        self.warning_logger.warning.assert_not_called()

    async def test_stream_failure_is_truncated_sample(self):
        """A mid-stream failure logs a warning and still measures last byte."""
        self.storage.read_errors.add(key_for(1))

        latency = await self.op.execute(self.ctx, 1, PAYLOAD)

        self.assertEqual([e.stage for e in latency.errors], [RecoverableExecutionError.STREAM])
        self.assertIsNotNone(latency.first_byte)
        self.assertGreaterEqual(latency.last_byte, latency.first_byte)
        self.assertIn(key_for(1), self.op.err_keys)
        self.assertTrue(self.storage.stream_for(key_for(1)).closed)
        self.warning_logger.warning.assert_called_once()
        self.error_logger.error.assert_not_called()

        message = self.warning_logger.warning.call_args.args[0]
        self.assertIn(key_for(1), message)
        self.assertIn("1.0 KiB", message)
        self.assertIn("sample: 1", message)

    async def test_close_failure_keeps_timings(self):
        """A close failure is recorded but the measured timings are kept."""
        self.storage.close_errors.add(key_for(3))

        latency = await self.op.execute(self.ctx, 3, PAYLOAD)

        self.assertEqual([e.stage for e in latency.errors], [RecoverableExecutionError.CLOSE])
        self.assertEqual(latency.bytes_read, PAYLOAD)
        self.assertIsNotNone(latency.first_byte)
        self.assertGreaterEqual(latency.last_byte, latency.first_byte)
        self.assertIn(key_for(3), self.op.err_keys)
        self.error_logger.error.assert_called_once()

    async def test_stream_and_close_failure_both_recorded(self):
        """Errors are kept in the order they happened."""
        self.storage.read_errors.add(key_for(1))
        self.storage.close_errors.add(key_for(1))

        latency = await self.op.execute(self.ctx, 1, PAYLOAD)

        self.assertEqual(
            [e.stage for e in latency.errors],
            [RecoverableExecutionError.STREAM, RecoverableExecutionError.CLOSE],
        )

    async def test_cancelled_read_closes_stream(self):
        """A caller-level timeout still releases the stream."""
        self.storage.read_delay = 5.0

        with self.assertRaises(asyncio.TimeoutError):
            await asyncio.wait_for(self.op.execute(self.ctx, 1, PAYLOAD), timeout=0.05)

        stream = self.storage.stream_for(key_for(1))
        self.assertIsNotNone(stream)
        self.assertTrue(stream.closed)

    async def test_concurrent_failures_all_recorded(self):
        """Concurrent executes on one instance record every errored key."""
        for sample_id in range(1, 4):
            self.storage.get_errors[key_for(sample_id)] = ConnectionError("reset")

        latencies = await asyncio.gather(
            *(self.op.execute(self.ctx, sample_id, PAYLOAD) for sample_id in range(1, 4))
        )

        self.assertTrue(all(not latency.ok for latency in latencies))
        self.assertEqual(self.op.err_keys, {key_for(i) for i in range(1, 4)})


class TestExecuteFromThreads(unittest.TestCase):
    """Execute called from many threads against one operation."""

    def test_threads_share_operation(self):
        samples = 40
        storage = FakeStorageSystem()
        ctx = BenchmarkContext(storage, storage.bucket_name, samples,
                               error_logger=Mock(), warning_logger=Mock(), run_id=RUN_ID)
        op = OperationRead()
        asyncio.run(op.ensure_testdata(ctx, PAYLOAD, NilTicker()))

        # Every even sample fails mid-stream
        for sample_id in range(2, samples + 1, 2):
            storage.read_errors.add(key_for(sample_id))

        results = {}

        def worker(sample_ids):
            for sample_id in sample_ids:
                results[sample_id] = asyncio.run(op.execute(ctx, sample_id, PAYLOAD))

        threads = [
            threading.Thread(target=worker, args=(range(start, samples + 1, 4),))
            for start in range(1, 5)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), samples)
        self.assertEqual(op.err_keys, {key_for(i) for i in range(2, samples + 1, 2)})


class TestCleanupTestdata(ReadOperationTestCase):
    """Cleanup of provisioned objects."""

    async def test_errored_keys_are_kept(self):
        """Read fails for sample 2: cleanup deletes samples 1 and 3 only."""
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())
        self.storage.get_errors[key_for(2)] = ConnectionError("reset")

        latencies = [await self.op.execute(self.ctx, i, PAYLOAD) for i in range(1, 4)]
        self.assertFalse(latencies[1].ok)
        self.assertEqual(self.op.err_keys, {key_for(2)})

        ticker = Mock()
        await self.op.cleanup_testdata(self.ctx, ticker)

        self.assertEqual(self.storage.delete_calls, [key_for(1), key_for(3)])
        self.assertIn(key_for(2), self.storage.objects)
        self.assertEqual(ticker.add.call_count, len(self.op.keys))

    async def test_progress_counts_every_key(self):
        """Progress increments equal the number of provisioned keys."""
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())
        for key in self.op.keys:
            self.op.mark_error(key)

        ticker = Mock()
        await self.op.cleanup_testdata(self.ctx, ticker)

        self.assertEqual(self.storage.delete_calls, [])
        self.assertEqual(ticker.add.call_count, 3)

    async def test_cleanup_follows_provisioning_order(self):
        """Keys are deleted in the order they were provisioned."""
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        await self.op.cleanup_testdata(self.ctx, NilTicker())

        self.assertEqual(self.storage.delete_calls, [key_for(i) for i in range(1, 4)])
        self.assertEqual(self.storage.objects, {})

    async def test_reused_objects_are_not_deleted(self):
        """Objects from a previous run were not created here and stay."""
        self.storage.objects[key_for(1)] = bytes(PAYLOAD)
        await self.op.ensure_testdata(self.ctx, PAYLOAD, NilTicker())

        await self.op.cleanup_testdata(self.ctx, NilTicker())

        self.assertNotIn(key_for(1), self.storage.delete_calls)
        self.assertIn(key_for(1), self.storage.objects)


if __name__ == '__main__':
    unittest.main()
