"""
Blob storage boundary.

Exports the storage protocol, the S3 implementation and key builders.
"""

from extractflow.boundary.storage.base import BlobStorage
from extractflow.boundary.storage.keys import (
    bundle_key,
    session_prefix,
    standalone_job_key,
    unit_key,
)
from extractflow.boundary.storage.s3_client import S3BlobStorage

__all__ = [
    "BlobStorage",
    "S3BlobStorage",
    "session_prefix",
    "unit_key",
    "bundle_key",
    "standalone_job_key",
]
