"""
Blob storage contract.

Any object store that offers put/get/delete by key can back the
orchestration core.

Dependencies: typing
System role: Storage port consumed by core components
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BlobStorage(Protocol):
    """Object storage addressed by string keys."""

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Store bytes under key, overwriting any existing object."""
        ...

    def get(self, key: str) -> bytes:
        """Return object bytes. Raises BlobNotFoundError when missing."""
        ...

    def delete(self, key: str) -> bool:
        """Delete one object. Returns False when it did not exist."""
        ...

    def delete_prefix(self, prefix: str) -> int:
        """Delete every object under prefix. Returns the number deleted."""
        ...

    def exists(self, key: str) -> bool:
        """Whether an object exists under key."""
        ...

    def generate_download_url(self, key: str, expires_in: int = 3600) -> str:
        """Time-limited URL for reading the object."""
        ...
