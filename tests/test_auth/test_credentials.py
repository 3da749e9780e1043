"""Tests for the credential store."""

import base64

from bucket_repo.auth.credentials import (
    ANONYMOUS_TOKEN,
    CredentialStore,
    Principal,
    User,
    encode_basic_token,
    load_users,
)
from bucket_repo.config import AuthConfig


class TestTokens:
    """Tests for token encoding."""

    def test_encode_basic_token(self):
        assert encode_basic_token("user", "pass") == base64.b64encode(b"user:pass").decode()

    def test_anonymous_token_is_encoded_wildcard(self):
        assert ANONYMOUS_TOKEN == base64.b64encode(b"*:*").decode()

    def test_user_from_credentials(self):
        user = User.from_credentials("deployer", "secret", ["write", "read"])
        assert user.authentication == encode_basic_token("deployer", "secret")
        assert user.principal == Principal("deployer")
        assert user.roles == frozenset({"write", "read"})


class TestCredentialStore:
    """Tests for CredentialStore."""

    def test_lookup_unknown_returns_none(self):
        store = CredentialStore()
        assert store.lookup("nope") is None
        assert len(store) == 0

    def test_add_and_lookup(self):
        store = CredentialStore()
        user = User.from_credentials("a", "b", ["read"])
        store.add(user)

        assert store.lookup(user.authentication) is user
        assert user.authentication in store

    def test_add_overwrites_same_token(self):
        store = CredentialStore()
        first = User(authentication="tok", principal=Principal("first"), roles=frozenset({"read"}))
        second = User(authentication="tok", principal=Principal("second"), roles=frozenset({"write"}))
        store.add(first)
        store.add(second)

        assert store.lookup("tok") is second
        assert len(store) == 1

    def test_add_all_later_entries_win(self):
        first = User(authentication="tok", principal=Principal("first"))
        other = User(authentication="other", principal=Principal("other"))
        last = User(authentication="tok", principal=Principal("last"))

        store = CredentialStore()
        store.add_all([first, other, last])

        assert store.lookup("tok") is last
        assert store.lookup("other") is other

    def test_snapshot_is_not_affected_by_later_writes(self):
        store = CredentialStore([User(authentication="a", principal=Principal("a"))])
        snapshot = store.snapshot()

        store.add(User(authentication="b", principal=Principal("b")))

        assert "b" not in snapshot
        assert "b" in store

    def test_replace_swaps_whole_table(self):
        store = CredentialStore([User(authentication="old", principal=Principal("old"))])
        store.replace([User(authentication="new", principal=Principal("new"))])

        assert store.lookup("old") is None
        assert store.lookup("new") is not None


class TestLoadUsers:
    """Tests for building users from configuration."""

    def test_users_from_config(self):
        config = AuthConfig.model_validate({
            "users": [
                {"username": "deployer", "password": "secret", "roles": ["write"]},
                {"token": "raw-token", "name": "ci", "roles": ["read"]},
            ],
        })

        users = load_users(config)

        assert [u.principal.name for u in users] == ["deployer", "ci"]
        assert users[0].authentication == encode_basic_token("deployer", "secret")
        assert users[1].authentication == "raw-token"

    def test_anonymous_roles_add_anonymous_user(self):
        config = AuthConfig.model_validate({"anonymous_roles": ["read", "list"]})

        users = load_users(config)

        assert len(users) == 1
        assert users[0].authentication == ANONYMOUS_TOKEN
        assert users[0].roles == frozenset({"read", "list"})
