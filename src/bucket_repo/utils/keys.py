"""Helpers for emulating directories on a flat key namespace."""

from collections.abc import Iterable

from bucket_repo.protocols import BlobMetadata


def directory_marker(prefix: str, name: str) -> BlobMetadata:
    """Synthetic entry for a sub-directory found under a prefix."""
    return BlobMetadata(key=f"{prefix}{name}/", size=0, is_directory=True)


def current_directory(prefix: str, blobs: Iterable[BlobMetadata]) -> list[BlobMetadata]:
    """Collapse a recursive listing into one level below the prefix.

    Blobs directly under the prefix are kept. Deeper keys become a single
    directory entry per child segment, placed where the first such key
    appeared. A stored blob whose key ends in "/" (an explicit directory
    marker) is reported as that directory.
    """
    result: list[BlobMetadata] = []
    seen_dirs: set[str] = set()

    for blob in blobs:
        if not blob.key.startswith(prefix):
            continue
        rest = blob.key[len(prefix):]
        head, sep, _ = rest.partition("/")
        if not sep:
            result.append(blob)
            continue
        if head in seen_dirs:
            continue
        seen_dirs.add(head)
        result.append(directory_marker(prefix, head))

    return result
