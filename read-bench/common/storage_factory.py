"""
Factory module for creating storage system instances.
"""

import logging

# Suppress boto3/botocore logging before importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)

from systems.r2 import R2System
from systems.aws import AWSSystem
from configuration import (
    R2_ACCESS_KEY_ID,
    R2_SECRET_ACCESS_KEY,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
)

logger = logging.getLogger(__name__)


def create_storage_system(storage_type: str, bucket_name: str = None):
    """Create and return the appropriate storage system based on type.

    Args:
        storage_type: Storage type ('r2' or 's3')
        bucket_name: Bucket to benchmark (default: BUCKET_NAME from configuration)

    Returns:
        Storage system instance (R2System or AWSSystem)

    Raises:
        ValueError: If storage_type is not supported
    """
    storage_type = storage_type.lower()

    if storage_type == "r2":
        credentials = {
            "access_key_id": R2_ACCESS_KEY_ID,
            "secret_access_key": R2_SECRET_ACCESS_KEY,
            "region_name": "auto",
        }
        return R2System(credentials, bucket_name=bucket_name)

    elif storage_type == "s3":
        credentials = {
            "access_key_id": AWS_ACCESS_KEY_ID,
            "secret_access_key": AWS_SECRET_ACCESS_KEY,
            "region_name": AWS_REGION,
        }
        return AWSSystem(credentials, bucket_name=bucket_name)

    else:
        raise ValueError(f"Unsupported storage type: {storage_type}. Must be 'r2' or 's3'.")
