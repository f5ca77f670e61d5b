"""
Configuration constants for the object storage read benchmark.

This module contains all configuration parameters including:
- Cloud credentials and endpoints
- Test parameters (payload sizes, samples, concurrency)
- Timeouts and client connection settings
- File size constants and conversion factors
"""

import os
from typing import List

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

# Object storage configuration
BUCKET_NAME: str = os.getenv("BUCKET_NAME", "")

# AWS S3 credentials and configuration
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "eu-north-1")

# Cloudflare R2 credentials and configuration
R2_ENDPOINT: str = os.getenv("R2_ENDPOINT", "")
R2_ACCESS_KEY_ID: str = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY: str = os.getenv("R2_SECRET_ACCESS_KEY", "")

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024
BYTES_PER_MB: int = 1024 * 1024
BYTES_PER_GB: int = 1024 * 1024 * 1024
MILLISECONDS_PER_SECOND: int = 1000

# =============================================================================
# TEST PARAMETERS
# =============================================================================

# Number of objects (samples) provisioned and read per payload size
DEFAULT_SAMPLES: int = 50

# Number of reads in flight at once during the execute phase
DEFAULT_CONCURRENCY: int = 8

# Payload sizes benchmarked when none are given on the command line
DEFAULT_PAYLOAD_SIZES: List[int] = [
    1 * BYTES_PER_KB,
    64 * BYTES_PER_KB,
    1 * BYTES_PER_MB,
]

# Prefix of every provisioned object key
OBJECT_KEY_PREFIX: str = os.getenv("OBJECT_KEY_PREFIX", "read-bench")

# Upper bound for a single stream read while draining an object body
READ_CHUNK_SIZE: int = 1 * BYTES_PER_MB

PROGRESS_INTERVAL: int = 50  # Log progress every N ticks

# =============================================================================
# ERROR HANDLING AND TIMEOUTS
# =============================================================================

# Caller-level timeout around one timed read (request + drain + close)
SAMPLE_TIMEOUT_SECONDS: float = 60.0

# botocore connection settings
CONNECT_TIMEOUT_SECONDS: int = 5
REQUEST_TIMEOUT_SECONDS: int = 60
MAX_TRANSPORT_ATTEMPTS: int = 3
MAX_POOL_CONNECTIONS: int = 200

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_OUTPUT_DIR: str = "results"
