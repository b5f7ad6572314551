"""
S3 client for blob storage operations.

Stores uploaded units and result bundles, deletes them during cleanup and
issues presigned download links.

Dependencies: boto3
System role: S3 implementation of the BlobStorage port
"""

import logging

import boto3
from botocore.exceptions import ClientError

from extractflow.core.exceptions import BlobNotFoundError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_DELETE_BATCH_SIZE = 1000


class S3BlobStorage:
    """S3-backed blob storage for one bucket."""

    def __init__(self, bucket: str, region: str = "us-east-1", client=None) -> None:
        """
        Initialize S3 client for the storage bucket.

        Args:
            bucket: S3 bucket name
            region: AWS region for S3 bucket
            client: Optional pre-built boto3 S3 client (tests, custom endpoints)
        """
        self._bucket = bucket
        self._region = region
        self._s3_client = client or boto3.client("s3", region_name=region)

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """
        Upload bytes to S3.

        Args:
            key: S3 object key
            data: Object bytes
            content_type: MIME type stored with the object
        """
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.debug(f"Stored s3://{self._bucket}/{key} ({len(data)} bytes)")

    def get(self, key: str) -> bytes:
        """
        Download object bytes.

        Args:
            key: S3 object key

        Returns:
            bytes: Object body

        Raises:
            BlobNotFoundError: If the key does not exist
        """
        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise BlobNotFoundError(key) from e
            raise
        return response["Body"].read()

    def delete(self, key: str) -> bool:
        """
        Delete a single object.

        Args:
            key: S3 object key

        Returns:
            bool: False when the object did not exist
        """
        if not self.exists(key):
            return False
        self._s3_client.delete_object(Bucket=self._bucket, Key=key)
        return True

    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every object under a prefix.

        Args:
            prefix: Key prefix (should end with '/')

        Returns:
            int: Number of objects deleted
        """
        paginator = self._s3_client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))

        deleted = 0
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            batch = keys[start:start + _DELETE_BATCH_SIZE]
            response = self._s3_client.delete_objects(
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                raise RuntimeError(
                    f"Failed to delete {len(errors)} objects under {prefix}: "
                    f"{first.get('Key')} ({first.get('Code')})"
                )
            deleted += len(batch)

        logger.info(f"Deleted {deleted} objects under s3://{self._bucket}/{prefix}")
        return deleted

    def exists(self, key: str) -> bool:
        """
        Check if a file exists in S3.

        Args:
            key: S3 object key to check

        Returns:
            bool: True if file exists, False otherwise
        """
        try:
            self._s3_client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            raise

    def generate_download_url(self, key: str, expires_in: int = 3600) -> str:
        """
        Generate presigned URL for downloading an S3 object.

        Args:
            key: S3 object key
            expires_in: URL expiry in seconds (default 1 hour)

        Returns:
            str: Presigned GET URL
        """
        return self._s3_client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expires_in,
        )
