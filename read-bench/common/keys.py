"""
Deterministic object keys for provisioned test data.
"""

import hashlib
import socket

from configuration import OBJECT_KEY_PREFIX


def default_run_id() -> str:
    """Identity of this benchmark host, so parallel hosts never share objects."""
    return socket.gethostname()


def generate_object_key(
    sample_id: int, payload_size: int, run_id: str, prefix: str = OBJECT_KEY_PREFIX
) -> str:
    """Map a sample of a given payload size to its object key.

    The same arguments always give the same key, so provisioning, the timed
    reads and cleanup all address the same object.

    Args:
        sample_id: Sample index (1-based)
        payload_size: Object size in bytes
        run_id: Identity of the run, usually the host name
        prefix: Key prefix grouping all benchmark objects

    Returns:
        Object key of the form ``<prefix>/<payload_size>/<sha256 hex>``
    """
    digest = hashlib.sha256(
        f"{run_id}\x00{sample_id}\x00{payload_size}".encode("utf-8")
    ).hexdigest()
    return f"{prefix}/{payload_size}/{digest}"
