"""In-memory blob storage."""

import asyncio
import hashlib
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from bucket_repo.protocols import BlobMetadata
from bucket_repo.utils import keys

CHUNK_SIZE = 64 * 1024


@dataclass
class StoredBlob:
    """A blob held in memory."""

    content: bytes
    metadata: BlobMetadata


class MemoryBlobStore:
    """In-memory blob store.

    Suitable for development and testing. Data is lost on restart.
    Keys are listed in lexicographic order, like a cloud bucket.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, **kwargs: Any) -> None:
        """Initialize memory blob store.

        Args:
            chunk_size: Size of chunks yielded by read()
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.chunk_size = chunk_size
        self._blobs: dict[str, StoredBlob] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> BlobMetadata | None:
        """Get blob metadata."""
        async with self._lock:
            stored = self._blobs.get(key)
            return stored.metadata if stored else None

    async def list(self, prefix: str, current_directory: bool = True) -> list[BlobMetadata]:
        """List blobs under a prefix."""
        async with self._lock:
            blobs = [
                self._blobs[key].metadata
                for key in sorted(self._blobs)
                if key.startswith(prefix)
            ]
        if not current_directory:
            return blobs
        return keys.current_directory(prefix, blobs)

    async def read(self, key: str) -> AsyncIterator[bytes]:
        """Stream blob content in chunks."""
        async with self._lock:
            stored = self._blobs.get(key)
        if stored is None:
            raise FileNotFoundError(key)
        content = stored.content
        for offset in range(0, len(content), self.chunk_size):
            yield content[offset:offset + self.chunk_size]

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> BlobMetadata:
        """Create or overwrite a blob.

        Like a cloud bucket, an overwrite gets a fresh creation time.
        """
        metadata = BlobMetadata(
            key=key,
            size=len(content),
            etag=hashlib.md5(content).hexdigest(),
            created=datetime.now(timezone.utc),
            content_type=content_type,
            is_directory=key.endswith("/"),
        )
        async with self._lock:
            self._blobs[key] = StoredBlob(content=bytes(content), metadata=metadata)
        return metadata

    async def delete(self, key: str) -> None:
        """Delete a blob."""
        async with self._lock:
            self._blobs.pop(key, None)

    async def set_created(self, key: str, created: datetime | None) -> None:
        """Override a blob's creation time. Useful for testing."""
        async with self._lock:
            stored = self._blobs[key]
            stored.metadata = replace(stored.metadata, created=created)
