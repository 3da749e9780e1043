"""Plugin discovery via Python entry points."""

from importlib.metadata import entry_points
from typing import Any

from bucket_repo.protocols import BlobStore

BACKEND_GROUPS = {
    "blobs": "bucket_repo.backends.blobs",
}


def discover_backends(group: str) -> dict[str, Any]:
    """Discover all registered backends for a given group.

    Args:
        group: The backend group name (blobs)

    Returns:
        Dictionary mapping backend names to their classes
    """
    full_group = BACKEND_GROUPS.get(group, group)
    eps = entry_points(group=full_group)
    return {ep.name: ep.load() for ep in eps}


def get_backend(group: str, name: str) -> Any:
    """Get a specific backend class by group and name.

    Args:
        group: The backend group name (blobs)
        name: The backend name (e.g., "memory", "local", "gcs")

    Returns:
        The backend class

    Raises:
        ValueError: If the backend is not found
    """
    backends = discover_backends(group)
    if name not in backends:
        available = ", ".join(sorted(backends.keys())) or "(none)"
        raise ValueError(
            f"Backend '{name}' not found in group '{group}'. Available: {available}"
        )
    return backends[name]


def create_blob_store(backend: str, **kwargs: Any) -> BlobStore:
    """Create a BlobStore instance.

    Args:
        backend: The backend name (e.g., "memory", "local", "gcs")
        **kwargs: Backend-specific configuration

    Returns:
        A BlobStore implementation
    """
    cls = get_backend("blobs", backend)
    return cls(**kwargs)
