"""BlobStore protocol for flat object storage backends."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class BlobMetadata:
    """Metadata for a single object in the bucket.

    Directory entries produced by a current-directory listing are synthetic:
    their key ends with "/", size is 0 and creation time is unknown.
    """

    key: str
    size: int
    etag: str | None = None
    created: datetime | None = None
    content_type: str | None = None
    is_directory: bool = False


class BlobStore(Protocol):
    """Protocol for blob storage backends (memory, filesystem, GCS)."""

    async def get(self, key: str) -> BlobMetadata | None:
        """Get blob metadata. Returns None if not found."""
        ...

    async def list(self, prefix: str, current_directory: bool = True) -> list[BlobMetadata]:
        """List one page of blobs under a prefix.

        With current_directory, keys nested deeper than the prefix collapse
        into one directory entry per child segment.
        """
        ...

    def read(self, key: str) -> AsyncIterator[bytes]:
        """Stream the blob content in chunks."""
        ...

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> BlobMetadata:
        """Create or overwrite a blob and return its metadata."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a blob. No-op if the blob doesn't exist."""
        ...
