"""
Async base class for S3-compatible object storage systems.
"""

import asyncio
import logging
from typing import Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ReadTimeoutError
from urllib3.exceptions import IncompleteRead

# aiohttp is a required dependency of aioboto3, so it's always available
from aiohttp.client_exceptions import ClientError as AiohttpClientError

from configuration import (
    CONNECT_TIMEOUT_SECONDS,
    MAX_POOL_CONNECTIONS,
    MAX_TRANSPORT_ATTEMPTS,
    REQUEST_TIMEOUT_SECONDS,
)
from operations.errors import StorageError

logger = logging.getLogger(__name__)

# Error codes S3 and R2 use for a missing object
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")

# Transport failures surfaced while a response body is streamed
TRANSPORT_ERRORS = (
    AiohttpClientError,
    ReadTimeoutError,
    IncompleteRead,
    asyncio.TimeoutError,
    OSError,
)

# aiobotocore reports dropped connections and short bodies as botocore errors
# (ResponseStreamingError, IncompleteReadError)
STREAM_ERRORS = (BotoCoreError,) + TRANSPORT_ERRORS


def is_not_found(error: ClientError) -> bool:
    """Check whether a ClientError is the service's not-found answer."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    return code in NOT_FOUND_CODES or status == 404


class ObjectStream:
    """Response body of a GetObject request, read in chunks and closed once."""

    def __init__(self, key: str, body):
        self.key = key
        self._body = body
        self._closed = False

    async def read(self, amt: int) -> bytes:
        """Read up to ``amt`` bytes; returns ``b""`` at end of stream."""
        try:
            return await self._body.read(amt)
        except STREAM_ERRORS as e:
            raise StorageError("Read", self.key, e) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._body.close()
        except STREAM_ERRORS as e:
            raise StorageError("Close", self.key, e) from e


class ObjectStorageSystem:
    """Async base class for object storage systems backed by aioboto3."""

    def __init__(self, endpoint: str, bucket_name: str, credentials: dict):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials

        # Single source of truth for config
        self._config = self._create_config()

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=credentials.get("region_name", "auto"),
        )

        self.client = None

        logger.info(
            f"Initialized async storage for {endpoint or 'default endpoint'} "
            f"(max_pool_connections={self._config.max_pool_connections})"
        )

    def _create_config(self) -> Config:
        """Create the botocore config shared by every request."""
        return Config(
            max_pool_connections=MAX_POOL_CONNECTIONS,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=REQUEST_TIMEOUT_SECONDS,
            # Transport-level retries stay inside botocore
            retries={
                "max_attempts": MAX_TRANSPORT_ATTEMPTS,
                "mode": "adaptive",
            },
            s3={
                "payload_signing_enabled": False,
                "addressing_style": "virtual",
            },
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = await self.session.client(
            "s3",
            endpoint_url=self.endpoint or None,
            config=self._config,
        ).__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    async def head_object(self, bucket: str, key: str) -> bool:
        """Check whether an object exists.

        Returns:
            True if the object exists, False if the service reports not-found

        Raises:
            StorageError: For any other failure (auth, connectivity, throttling)
        """
        client = self._require_client()
        try:
            await client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if is_not_found(e):
                return False
            raise StorageError("HeadObject", key, e) from e
        except (BotoCoreError,) + TRANSPORT_ERRORS as e:
            raise StorageError("HeadObject", key, e) from e

    async def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """Upload an object in a single request.

        Raises:
            StorageError: If the upload fails
        """
        client = self._require_client()
        try:
            await client.put_object(Bucket=bucket, Key=key, Body=body)
        except (ClientError, BotoCoreError) + TRANSPORT_ERRORS as e:
            raise StorageError("PutObject", key, e) from e

    async def get_object(self, bucket: str, key: str) -> ObjectStream:
        """Issue a GetObject request and return the body once headers arrive.

        Raises:
            StorageError: If the request fails before a body is available
        """
        client = self._require_client()
        try:
            response = await client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            if status_code in (429, 503):
                logger.debug(f"Throttled: {error_code} (HTTP {status_code}) for {key}")
            raise StorageError("GetObject", key, e) from e
        except (BotoCoreError,) + TRANSPORT_ERRORS as e:
            raise StorageError("GetObject", key, e) from e

        return ObjectStream(key, response["Body"])

    async def delete_object(self, bucket: str, key: str) -> bool:
        """Delete an object; failures are logged and reported as False."""
        client = self._require_client()
        try:
            await client.delete_object(Bucket=bucket, Key=key)
            return True
        except (ClientError, BotoCoreError) + TRANSPORT_ERRORS as e:
            logger.error(f"Failed to delete {key}: {e}")
            return False

    async def verify_connection(self, bucket: Optional[str] = None) -> bool:
        """Verify storage connection and bucket access."""
        if not self.client:
            logger.error("Client not initialized. Use async context manager.")
            return False

        bucket = bucket or self.bucket_name
        try:
            await self.client.head_bucket(Bucket=bucket)
            logger.info(f"✓ Successfully connected to bucket: {bucket}")
            logger.info(f"✓ Endpoint: {self.endpoint or 'default'}")
            return True
        except (ClientError, BotoCoreError) + TRANSPORT_ERRORS as e:
            logger.error(f"✗ Connection verification failed: {e}")
            return False
