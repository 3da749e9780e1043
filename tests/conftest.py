"""Pytest configuration and fixtures."""

import pytest

from bucket_repo.auth.credentials import encode_basic_token
from bucket_repo.backends.blobs.memory import MemoryBlobStore


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "repository": {"bucket_name": "test-bucket"},
        "auth": {
            "realm": "test-repo",
            "max_delay_ms": 0,
            "users": [
                {"username": "deployer", "password": "deploy-secret", "roles": ["write"]},
                {"username": "reader", "password": "read-secret", "roles": ["read"]},
                {"username": "lister", "password": "list-secret", "roles": ["list"]},
            ],
        },
        "storage": {"backend": "memory"},
    }


@pytest.fixture
def memory_store() -> MemoryBlobStore:
    """Empty in-memory blob store."""
    return MemoryBlobStore()


@pytest.fixture
def basic_auth():
    """Build an Authorization header for a username/password pair."""

    def build(username: str, password: str) -> dict[str, str]:
        return {"Authorization": f"Basic {encode_basic_token(username, password)}"}

    return build
