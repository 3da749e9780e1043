"""Authentication module."""

from bucket_repo.auth.credentials import (
    ANONYMOUS_TOKEN,
    CredentialStore,
    Principal,
    User,
    encode_basic_token,
    load_users,
)
from bucket_repo.auth.resolver import PrincipalResolver, SecurityContext, is_secure_scheme

__all__ = [
    "ANONYMOUS_TOKEN",
    "CredentialStore",
    "Principal",
    "PrincipalResolver",
    "SecurityContext",
    "User",
    "encode_basic_token",
    "is_secure_scheme",
    "load_users",
]
