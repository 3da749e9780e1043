"""Bucket Repo - serve a flat object-storage bucket as an artifact repository."""

from bucket_repo.auth import CredentialStore, Principal, PrincipalResolver, SecurityContext, User
from bucket_repo.config import Config
from bucket_repo.observability import (
    RepositoryLogger,
    RequestContext,
    Timer,
    configure_logging,
    emit_counter,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from bucket_repo.protocols import BlobMetadata, BlobStore
from bucket_repo.repository import ArtifactRepository, Directory, FileEntry, assemble_directory

__version__ = "0.1.0"
__all__ = [
    # Core
    "ArtifactRepository",
    "Config",
    "Directory",
    "FileEntry",
    "assemble_directory",
    # Auth
    "CredentialStore",
    "Principal",
    "PrincipalResolver",
    "SecurityContext",
    "User",
    # Storage
    "BlobMetadata",
    "BlobStore",
    # Observability
    "RepositoryLogger",
    "RequestContext",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
