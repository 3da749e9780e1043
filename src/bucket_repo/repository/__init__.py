"""Repository core: directory listings and artifact transfer."""

from bucket_repo.repository.conditional import (
    NOT_MODIFIED,
    PRECONDITION_FAILED,
    evaluate_preconditions,
    format_etag,
    format_http_date,
    parse_http_date,
)
from bucket_repo.repository.listing import Directory, DirectoryBuilder, FileEntry, assemble_directory
from bucket_repo.repository.service import (
    DEFAULT_MEDIA_TYPE,
    DUPLICATE_ARTIFACT_WARNING,
    Artifact,
    ArtifactRepository,
    is_mutable_metadata,
)

__all__ = [
    "DEFAULT_MEDIA_TYPE",
    "DUPLICATE_ARTIFACT_WARNING",
    "NOT_MODIFIED",
    "PRECONDITION_FAILED",
    "Artifact",
    "ArtifactRepository",
    "Directory",
    "DirectoryBuilder",
    "FileEntry",
    "assemble_directory",
    "evaluate_preconditions",
    "format_etag",
    "format_http_date",
    "is_mutable_metadata",
    "parse_http_date",
]
