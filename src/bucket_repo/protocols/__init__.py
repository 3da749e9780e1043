"""Protocol interfaces for pluggable backends."""

from bucket_repo.protocols.blob_store import BlobMetadata, BlobStore

__all__ = [
    "BlobMetadata",
    "BlobStore",
]
