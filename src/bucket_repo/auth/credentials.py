"""In-memory credential store keyed by Basic authentication token."""

import base64
from collections.abc import Iterable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from bucket_repo.config import AuthConfig


def encode_basic_token(username: str, password: str) -> str:
    """Encode a username/password pair the way clients send it after "Basic "."""
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


# Well-known token standing for public access
ANONYMOUS_TOKEN = encode_basic_token("*", "*")


@dataclass(frozen=True)
class Principal:
    """Identity of an authenticated caller."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class User:
    """A configured user: transport token, principal and granted roles."""

    authentication: str
    principal: Principal
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_credentials(
        cls,
        username: str,
        password: str,
        roles: Iterable[str] = (),
    ) -> "User":
        """Create a user whose token is base64("username:password")."""
        return cls(
            authentication=encode_basic_token(username, password),
            principal=Principal(username),
            roles=frozenset(roles),
        )

    @classmethod
    def anonymous(cls, roles: Iterable[str]) -> "User":
        """Create the user matched when no Authorization header is sent."""
        return cls(
            authentication=ANONYMOUS_TOKEN,
            principal=Principal("anonymous"),
            roles=frozenset(roles),
        )


class CredentialStore:
    """Mapping from authentication token to user.

    Lookups read an immutable snapshot. Writes build a new mapping and swap
    the reference, so concurrent readers never observe a partial update.
    """

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: Mapping[str, User] = MappingProxyType({})
        self.add_all(users)

    def add(self, user: User) -> None:
        """Insert or overwrite a user by authentication token."""
        updated = dict(self._users)
        updated[user.authentication] = user
        self._users = MappingProxyType(updated)

    def add_all(self, users: Iterable[User]) -> None:
        """Add users in order; a later user with the same token wins."""
        updated = dict(self._users)
        for user in users:
            updated[user.authentication] = user
        self._users = MappingProxyType(updated)

    def replace(self, users: Iterable[User]) -> None:
        """Atomically replace the whole credential table."""
        self._users = MappingProxyType({user.authentication: user for user in users})

    def lookup(self, token: str) -> User | None:
        """Find the user for a token. Returns None if unknown."""
        return self._users.get(token)

    def snapshot(self) -> Mapping[str, User]:
        """Current read-only view of the table."""
        return self._users

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, token: object) -> bool:
        return token in self._users


def load_users(config: AuthConfig) -> list[User]:
    """Build the user table from configuration.

    The anonymous user is added first when anonymous roles are configured,
    so an explicit user carrying the anonymous token still wins.
    """
    users: list[User] = []
    if config.anonymous_roles:
        users.append(User.anonymous(config.anonymous_roles))
    for entry in config.users:
        if entry.token is not None:
            users.append(
                User(
                    authentication=entry.token,
                    principal=Principal(entry.name or entry.username or "user"),
                    roles=frozenset(entry.roles),
                )
            )
        else:
            users.append(User.from_credentials(entry.username, entry.password, entry.roles))
    return users
