"""Local filesystem-based blob storage."""

import atexit
import asyncio
import hashlib
import json
import os
from collections.abc import AsyncIterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from bucket_repo.protocols import BlobMetadata
from bucket_repo.utils import keys
from bucket_repo.utils.validation import validate_key

# Thread pool for async file I/O - configurable via environment
_max_workers = int(os.environ.get("BUCKET_REPO_FILE_WORKERS", "16"))
_executor = ThreadPoolExecutor(max_workers=_max_workers)

# Ensure executor is cleaned up on process exit
atexit.register(_executor.shutdown, wait=False)

CHUNK_SIZE = 64 * 1024
BLOBS_DIR = "blobs"
META_DIR = "meta"


class LocalBlobStore:
    """Blob storage using the local filesystem.

    Content lives under <path>/blobs/<key>; the recorded content type lives
    in a JSON sidecar under <path>/meta/<key>.json so it never shows up in
    listings. Suitable for development and single-server deployments.
    """

    def __init__(self, path: str | None = None, chunk_size: int = CHUNK_SIZE, **kwargs: Any) -> None:
        """Initialize local blob store.

        Args:
            path: Base directory for storage. Defaults to ./data/bucket
            chunk_size: Size of chunks yielded by read()
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.base_path = Path(path) if path else Path("./data/bucket")
        self.blobs_path = self.base_path / BLOBS_DIR
        self.meta_path = self.base_path / META_DIR
        self.blobs_path.mkdir(parents=True, exist_ok=True)
        self.meta_path.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size

    def _get_path(self, key: str) -> Path:
        """Get the filesystem path for a key.

        Validates the key to prevent path traversal attacks.
        """
        validate_key(key)

        target_path = (self.blobs_path / key).resolve()

        try:
            target_path.relative_to(self.blobs_path.resolve())
        except ValueError:
            raise ValueError("Invalid key: path traversal detected")

        return target_path

    def _meta_file(self, key: str) -> Path:
        return self.meta_path / f"{key.rstrip('/')}.json"

    def _key_for(self, path: Path) -> str:
        key = path.resolve().relative_to(self.blobs_path.resolve()).as_posix()
        return f"{key}/" if path.is_dir() else key

    def _get_metadata(self, path: Path, key: str) -> BlobMetadata:
        """Get metadata for a file.

        Uses stat-based ETag (inode, size, mtime) to avoid reading file content.
        """
        if path.is_dir():
            return keys.directory_marker("", key.rstrip("/"))

        stat = path.stat()
        etag = f"{stat.st_ino}-{stat.st_size}-{int(stat.st_mtime * 1000)}"

        content_type = None
        meta_file = self._meta_file(key)
        if meta_file.exists():
            content_type = json.loads(meta_file.read_text()).get("content_type")

        return BlobMetadata(
            key=key,
            size=stat.st_size,
            etag=hashlib.md5(etag.encode()).hexdigest(),
            created=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            content_type=content_type,
        )

    async def get(self, key: str) -> BlobMetadata | None:
        """Get blob metadata asynchronously."""
        path = self._get_path(key)

        def _head() -> BlobMetadata | None:
            if key.endswith("/"):
                return self._get_metadata(path, key) if path.is_dir() else None
            if not path.is_file():
                return None
            return self._get_metadata(path, key)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, _head)

    async def list(self, prefix: str, current_directory: bool = True) -> list[BlobMetadata]:
        """List blobs under a prefix, sorted by key."""
        if prefix:
            validate_key(prefix)
        parent, _, name_prefix = prefix.rpartition("/")
        base = self.blobs_path / parent if parent else self.blobs_path

        def _list_files() -> list[BlobMetadata]:
            if not base.is_dir():
                return []
            if current_directory:
                candidates = [p for p in base.iterdir() if p.name.startswith(name_prefix)]
            else:
                candidates = [
                    p for p in base.rglob("*")
                    if p.is_file() and self._key_for(p).startswith(prefix)
                ]
            results = [self._get_metadata(p, self._key_for(p)) for p in candidates]
            return sorted(results, key=lambda blob: blob.key)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, _list_files)

    async def read(self, key: str) -> AsyncIterator[bytes]:
        """Stream file content in chunks read on the thread pool."""
        path = self._get_path(key)
        loop = asyncio.get_running_loop()
        handle = await loop.run_in_executor(_executor, path.open, "rb")
        try:
            while True:
                chunk = await loop.run_in_executor(_executor, handle.read, self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> BlobMetadata:
        """Store a file asynchronously."""
        path = self._get_path(key)
        meta_file = self._meta_file(key)

        def _write() -> BlobMetadata:
            if key.endswith("/"):
                path.mkdir(parents=True, exist_ok=True)
                return self._get_metadata(path, key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            if content_type is not None:
                meta_file.parent.mkdir(parents=True, exist_ok=True)
                meta_file.write_text(json.dumps({"content_type": content_type}))
            elif meta_file.exists():
                meta_file.unlink()
            return self._get_metadata(path, key)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, _write)

    async def delete(self, key: str) -> None:
        """Delete a file asynchronously."""
        path = self._get_path(key)
        meta_file = self._meta_file(key)

        def _delete() -> None:
            if path.is_file():
                path.unlink()
            if meta_file.exists():
                meta_file.unlink()

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(_executor, _delete)
