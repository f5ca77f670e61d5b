import os
import sys
import logging
import argparse
import asyncio

# Required: Use uvloop for better performance
import uvloop
asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

# Add the current directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from configuration import (
    DEFAULT_CONCURRENCY, DEFAULT_OUTPUT_DIR, DEFAULT_PAYLOAD_SIZES,
    DEFAULT_SAMPLES, SAMPLE_TIMEOUT_SECONDS
)
from common.formatting import parse_size

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_payload_sizes(text: str):
    """Parse a comma-separated list of payload sizes such as ``1KB,64KB,1MB``."""
    sizes = [parse_size(part) for part in text.split(',') if part.strip()]
    if not sizes:
        raise argparse.ArgumentTypeError("at least one payload size is required")
    return sizes


def _payload_size_list(text: str):
    try:
        return parse_payload_sizes(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


class ReadBenchmarkCLI:
    """CLI interface for the object storage read latency benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description='Object storage read latency benchmark',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Time 50 reads of 1 KiB, 64 KiB and 1 MiB objects on R2
  python bench.py read --storage r2 --samples 50 --payload-sizes 1KB,64KB,1MB

  # Same against S3 with 16 reads in flight
  python bench.py read --storage s3 --bucket my-bucket --concurrency 16
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        read_parser = subparsers.add_parser('read', help='Measure first-byte and last-byte read latency')
        read_parser.add_argument('--storage', choices=['r2', 's3'], default='r2',
                                 help='Storage type to use (default: r2)')
        read_parser.add_argument('--bucket', type=str, default=None,
                                 help='Bucket to benchmark (default: BUCKET_NAME environment variable)')
        read_parser.add_argument('--samples', type=int, default=DEFAULT_SAMPLES,
                                 help=f'Objects read per payload size (default: {DEFAULT_SAMPLES})')
        read_parser.add_argument('--concurrency', type=int, default=DEFAULT_CONCURRENCY,
                                 help=f'Reads in flight at once (default: {DEFAULT_CONCURRENCY})')
        read_parser.add_argument('--payload-sizes', type=_payload_size_list,
                                 default=list(DEFAULT_PAYLOAD_SIZES),
                                 help='Comma-separated payload sizes, e.g. 1KB,64KB,1MB')
        read_parser.add_argument('--sample-timeout', type=float, default=SAMPLE_TIMEOUT_SECONDS,
                                 help=f'Timeout per timed read in seconds (default: {SAMPLE_TIMEOUT_SECONDS})')
        read_parser.add_argument('--run-id', type=str, default=None,
                                 help='Identity used in object keys (default: host name)')
        read_parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR,
                                 help=f'Directory for the latency Parquet file (default: {DEFAULT_OUTPUT_DIR})')

        return parser

    async def run_read(self, args):
        """Run the read benchmark."""
        persistence = None
        try:
            from cli.benchmark import ReadBenchmarkRunner
            from persistence.latency_store import LatencyPersistence

            logger.info("=== Read Latency Benchmark ===")

            persistence = LatencyPersistence(args.output_dir)
            runner = ReadBenchmarkRunner(
                storage_type=args.storage,
                bucket_name=args.bucket,
                samples=args.samples,
                concurrency=args.concurrency,
                sample_timeout=args.sample_timeout,
                run_id=args.run_id,
                persistence=persistence,
            )

            await runner.run(args.payload_sizes)

            logger.info("Read benchmark completed successfully")
            return 0

        except Exception as e:
            logger.error(f"Error in read benchmark: {e}")
            return 1

        finally:
            # Samples from payload sizes finished before a failure are kept too
            if persistence is not None:
                self._save_results(persistence)

    def _save_results(self, persistence):
        """Write the collected latency records, if any."""
        try:
            filepath = persistence.save_to_file()
        except Exception as e:
            logger.error(f"Failed to save latency records: {e}")
            return
        if filepath:
            logger.info(f"Latency records saved to {filepath}")

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            if parsed_args.command == 'read':
                return asyncio.run(self.run_read(parsed_args))
            else:
                logger.error(f"Unknown command: {parsed_args.command}")
                return 1

        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1


def main():
    """Main entry point."""
    cli = ReadBenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
