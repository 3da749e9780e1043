"""Tests for the command line interface."""

import yaml
from typer.testing import CliRunner

from bucket_repo.cli import app

runner = CliRunner()


def clear_repository_env(monkeypatch) -> None:
    for name in (
        "BUCKET_REPO_CONFIG",
        "APPLICATION_ID",
        "REPOSITORY_BUCKET_NAME",
        "REPOSITORY_UNIQUE_ARTIFACT",
        "REPOSITORY_CACHE_CONTROL_LIST",
        "REPOSITORY_CACHE_CONTROL_FETCH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_check_config_from_file(monkeypatch, tmp_path, sample_config_dict):
    """check-config reports the settings loaded from a file."""
    clear_repository_env(monkeypatch)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump(sample_config_dict))

    result = runner.invoke(app, ["check-config", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "bucket: test-bucket" in result.output
    assert "backend: memory" in result.output
    assert "unique artifacts: false" in result.output
    assert "users: 3" in result.output


def test_check_config_from_environment(monkeypatch):
    """Without a file the defaults and environment properties apply."""
    clear_repository_env(monkeypatch)
    monkeypatch.setenv("APPLICATION_ID", "my-app")
    monkeypatch.setenv("REPOSITORY_UNIQUE_ARTIFACT", "true")

    result = runner.invoke(app, ["check-config"])

    assert result.exit_code == 0
    assert "bucket: my-app.appspot.com" in result.output
    assert "unique artifacts: true" in result.output


def test_check_config_missing_file(tmp_path):
    """A missing config file is a usage error."""
    result = runner.invoke(app, ["check-config", "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code != 0


def test_check_config_unparseable_file(monkeypatch, tmp_path):
    """A malformed config file exits with status 1."""
    clear_repository_env(monkeypatch)
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")

    result = runner.invoke(app, ["check-config", "--config", str(config_file)])

    assert result.exit_code == 1


def test_check_config_invalid_settings(monkeypatch, tmp_path):
    """Settings that fail validation exit with status 1 and a message."""
    clear_repository_env(monkeypatch)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({"auth": {"max_delay_ms": -1}}))

    result = runner.invoke(app, ["check-config", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "max_delay_ms" in result.output


def test_check_config_unset_variable(monkeypatch, tmp_path):
    """An unset ${VAR} in the config file exits with status 1 and names it."""
    clear_repository_env(monkeypatch)
    monkeypatch.delenv("BUCKET_REPO_TEST_UNSET", raising=False)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({"repository": {"bucket_name": "${BUCKET_REPO_TEST_UNSET}"}}))

    result = runner.invoke(app, ["check-config", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "BUCKET_REPO_TEST_UNSET" in result.output
