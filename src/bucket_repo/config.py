"""Configuration loading with environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from bucket_repo.exceptions import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")

# Environment variables read by Config.from_env()
ENV_APPLICATION_ID = "APPLICATION_ID"
ENV_BUCKET_NAME = "REPOSITORY_BUCKET_NAME"
ENV_UNIQUE_ARTIFACT = "REPOSITORY_UNIQUE_ARTIFACT"
ENV_CACHE_CONTROL_LIST = "REPOSITORY_CACHE_CONTROL_LIST"
ENV_CACHE_CONTROL_FETCH = "REPOSITORY_CACHE_CONTROL_FETCH"
ENV_CONFIG_FILE = "BUCKET_REPO_CONFIG"

DEFAULT_APPLICATION_ID = "bucket-repo"

ROLE_WRITE = "write"
ROLE_READ = "read"
ROLE_LIST = "list"


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean property the way Boolean.parseBoolean does.

    Only a case-insensitive "true" is true; anything else is false.
    """
    if value is None:
        return default
    return value.strip().lower() == "true"


def default_bucket_name() -> str:
    """Bucket name derived from the application id."""
    application_id = os.environ.get(ENV_APPLICATION_ID, DEFAULT_APPLICATION_ID)
    return f"{application_id}.appspot.com"


class RepositoryConfig(BaseModel):
    """Repository behaviour settings."""

    bucket_name: str = Field(default_factory=default_bucket_name)
    unique_artifacts: bool = False
    cache_control_list: str | None = None
    cache_control_fetch: str | None = None


class UserConfig(BaseModel):
    """A configured user.

    Either username and password (encoded into a Basic token) or a
    pre-encoded token must be given.
    """

    username: str | None = None
    password: str | None = None
    token: str | None = None
    name: str | None = None
    roles: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_credentials(self) -> "UserConfig":
        if self.token is None and (self.username is None or self.password is None):
            raise ValueError("user requires either 'token' or both 'username' and 'password'")
        return self


class AuthConfig(BaseModel):
    """Authentication settings."""

    realm: str = "repository"
    max_delay_ms: int = Field(default=2000, ge=0)
    anonymous_roles: list[str] = Field(default_factory=list)
    users: list[UserConfig] = Field(default_factory=list)


class StorageConfig(BaseModel):
    """Blob storage backend configuration."""

    backend: str = "memory"  # memory | local | gcs
    # Backend-specific settings
    path: str | None = None  # For local backend
    access_token: str | None = None  # For GCS
    endpoint: str | None = None  # For GCS (emulators)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "json"


class Config(BaseModel):
    """Main configuration for bucket-repo."""

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            try:
                if path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    import json
                    data = json.load(f)
            except (yaml.YAMLError, ValueError) as e:
                raise ConfigError(f"Cannot parse {path}: {e}") from e

        data = substitute_env_vars(data or {})
        return cls.model_validate(data).with_env_overrides()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from BUCKET_REPO_CONFIG, or defaults, plus env overrides."""
        config_file = os.environ.get(ENV_CONFIG_FILE)
        if config_file:
            return cls.from_file(config_file)
        return cls().with_env_overrides()

    def with_env_overrides(self) -> "Config":
        """Apply repository properties set in the environment."""
        repository = self.repository.model_copy()
        if ENV_BUCKET_NAME in os.environ:
            repository.bucket_name = os.environ[ENV_BUCKET_NAME]
        if ENV_UNIQUE_ARTIFACT in os.environ:
            repository.unique_artifacts = parse_bool(os.environ[ENV_UNIQUE_ARTIFACT])
        if ENV_CACHE_CONTROL_LIST in os.environ:
            repository.cache_control_list = os.environ[ENV_CACHE_CONTROL_LIST]
        if ENV_CACHE_CONTROL_FETCH in os.environ:
            repository.cache_control_fetch = os.environ[ENV_CACHE_CONTROL_FETCH]
        return self.model_copy(update={"repository": repository})
