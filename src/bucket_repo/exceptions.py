"""Bucket repo exceptions."""


class RepositoryError(Exception):
    """Base exception for bucket-repo."""

    pass


class ConfigError(RepositoryError):
    """Configuration error."""

    pass


class NotFoundError(RepositoryError):
    """Requested directory or file has no backing blob."""

    pass


class DuplicateArtifactError(RepositoryError):
    """Upload rejected because the artifact already exists.

    Raised only when unique artifacts are enforced. Maps to 406 Not Acceptable.
    """

    pass


class StorageError(RepositoryError):
    """Blob store failure (I/O, transport, unexpected response)."""

    pass
