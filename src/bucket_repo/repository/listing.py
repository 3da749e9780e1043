"""Rebuild one directory level from a flat, prefix-keyed blob listing."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from bucket_repo.exceptions import NotFoundError
from bucket_repo.protocols import BlobMetadata


@dataclass(frozen=True)
class FileEntry:
    """A file or sub-directory inside a listing, named relative to it."""

    name: str
    size: int
    created: datetime | None
    is_directory: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "created": self.created.isoformat() if self.created else None,
            "directory": self.is_directory,
        }


@dataclass(frozen=True)
class Directory:
    """One level of the repository tree."""

    path: str
    entries: tuple[FileEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "files": [entry.to_dict() for entry in self.entries],
        }


@dataclass
class DirectoryBuilder:
    """Accumulates entries in the order they are added."""

    path: str
    _entries: list[FileEntry] = field(default_factory=list)

    def add(self, entry: FileEntry) -> "DirectoryBuilder":
        self._entries.append(entry)
        return self

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def build(self) -> Directory:
        return Directory(path=self.path, entries=tuple(self._entries))


def assemble_directory(prefix: str, path: str, blobs: Iterable[BlobMetadata]) -> Directory:
    """Build the directory listing for a prefix from one listing page.

    The marker object whose key equals the prefix is skipped. Order is
    kept as returned by the store.

    Args:
        prefix: Key prefix of the directory ("" for the root)
        path: Request path the listing is rendered for
        blobs: Current-directory listing page scoped to the prefix

    Returns:
        The assembled directory

    Raises:
        NotFoundError: If a non-root prefix has no entries
    """
    directory = DirectoryBuilder(path)

    for blob in blobs:
        if blob.key == prefix:
            continue
        directory.add(
            FileEntry(
                name=blob.key[len(prefix):],
                size=blob.size,
                created=blob.created,
                is_directory=blob.is_directory,
            )
        )

    if prefix and directory.is_empty:
        raise NotFoundError(f"Directory not found: {prefix}")

    return directory.build()
