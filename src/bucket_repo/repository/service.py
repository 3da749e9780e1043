"""Artifact repository: listing, download and upload on top of a blob store."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath

from bucket_repo.exceptions import DuplicateArtifactError, NotFoundError, StorageError
from bucket_repo.observability import Timer, emit_counter, emit_timer, get_logger
from bucket_repo.protocols import BlobMetadata, BlobStore
from bucket_repo.repository.conditional import format_etag
from bucket_repo.repository.listing import Directory, assemble_directory

logger = get_logger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"

# Maven rewrites these on every deploy, so they may always be overwritten
MUTABLE_METADATA_SUFFIXES = (
    "maven-metadata.xml",
    "maven-metadata.xml.sha1",
    "maven-metadata.xml.md5",
)

DUPLICATE_ARTIFACT_WARNING = (
    "The uploaded artifact is already inside the repository. "
    "If you want to overwrite the artifact, you have to disable the "
    "'repository.unique.artifact' flag"
)


def is_mutable_metadata(key: str) -> bool:
    """Whether the key names a maven-metadata.xml file or one of its checksums."""
    return key.endswith(MUTABLE_METADATA_SUFFIXES)


@dataclass(frozen=True)
class Artifact:
    """A resolved download: metadata plus a handle to stream the content."""

    blob: BlobMetadata
    store: BlobStore

    @property
    def key(self) -> str:
        return self.blob.key

    @property
    def etag(self) -> str | None:
        return format_etag(self.blob.etag) if self.blob.etag else None

    @property
    def last_modified(self) -> datetime | None:
        return self.blob.created

    @property
    def content_type(self) -> str | None:
        return self.blob.content_type

    @property
    def media_type(self) -> str:
        return self.blob.content_type or DEFAULT_MEDIA_TYPE

    @property
    def filename(self) -> str:
        return PurePosixPath(self.blob.key).name

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Stream the artifact content.

        Raises:
            StorageError: If the store fails mid-transfer
        """
        sent = 0
        try:
            async for chunk in self.store.read(self.blob.key):
                sent += len(chunk)
                yield chunk
        except StorageError as e:
            logger.error("Download failed", context={"key": self.key, "sent": sent}, error=e)
            raise
        except OSError as e:
            logger.error("Download failed", context={"key": self.key, "sent": sent}, error=e)
            raise StorageError(f"Failed to read {self.key}: {e}") from e
        emit_counter("repository.download.bytes", {"size": sent})


class ArtifactRepository:
    """Serves a flat blob store as a hierarchical artifact repository.

    The duplicate check before an upload is best-effort: two concurrent
    uploads of the same key can both pass it, and the last write wins.
    """

    def __init__(self, store: BlobStore, unique_artifacts: bool = False) -> None:
        """Initialize the repository.

        Args:
            store: Backing blob store
            unique_artifacts: Reject uploads that would overwrite an artifact
        """
        self.store = store
        self.unique_artifacts = unique_artifacts

    async def list_directory(self, prefix: str, path: str) -> Directory:
        """List one level of the tree.

        Args:
            prefix: Key prefix ("" for the root, otherwise ending in "/")
            path: Request path to record on the listing

        Raises:
            NotFoundError: If a non-root directory has no entries
        """
        page = await self.store.list(prefix, current_directory=True)
        return assemble_directory(prefix, path, page)

    async def open_artifact(self, key: str) -> Artifact:
        """Resolve a file for download.

        Raises:
            NotFoundError: If no blob exists at the key
        """
        blob = await self.store.get(key)
        if blob is None:
            raise NotFoundError(f"Artifact not found: {key}")
        return Artifact(blob=blob, store=self.store)

    async def exists(self, key: str) -> bool:
        return await self.store.get(key) is not None

    async def put_artifact(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> BlobMetadata:
        """Store an uploaded artifact.

        Args:
            key: Target key
            content: Artifact bytes
            content_type: Media type to record, if the client sent one

        Returns:
            Metadata of the written blob

        Raises:
            DuplicateArtifactError: If unique artifacts are enforced and the
                key already holds a non-metadata artifact
        """
        if self.unique_artifacts and await self.exists(key) and not is_mutable_metadata(key):
            logger.info(DUPLICATE_ARTIFACT_WARNING, context={"key": key})
            emit_counter("repository.upload.rejected")
            raise DuplicateArtifactError(DUPLICATE_ARTIFACT_WARNING)

        with Timer() as timer:
            blob = await self.store.put(key, content, content_type=content_type)

        logger.info(
            "Artifact stored",
            context={"key": key, "size": len(content), "content_type": content_type},
            duration_ms=timer.duration_ms,
        )
        emit_timer("repository.upload", timer.duration_ms)
        return blob
