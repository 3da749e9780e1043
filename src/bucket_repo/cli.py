"""Command line entry point: serve the repository with uvicorn."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from bucket_repo.config import Config
from bucket_repo.exceptions import ConfigError
from bucket_repo.observability import configure_logging

app = typer.Typer(help="Serve an object-storage bucket as an artifact repository.", no_args_is_help=True)


def load_config(config_file: Optional[Path]) -> Config:
    """Config from an explicit file, else from BUCKET_REPO_CONFIG / environment."""
    try:
        if config_file is not None:
            return Config.from_file(config_file)
        return Config.from_env()
    except (ConfigError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def serve(
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML or JSON configuration file", exists=True, dir_okay=False),
    ] = None,
    host: Annotated[Optional[str], typer.Option(help="Host to bind to")] = None,
    port: Annotated[Optional[int], typer.Option(help="Port to bind to")] = None,
) -> None:
    """Start the HTTP server."""
    import uvicorn

    from bucket_repo.server.app import create_app

    config = load_config(config_file)
    configure_logging(config.server.log_level, format=config.server.log_format)

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


@app.command("check-config")
def check_config(
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML or JSON configuration file", exists=True, dir_okay=False),
    ] = None,
) -> None:
    """Validate the configuration and print the effective repository settings."""
    config = load_config(config_file)
    typer.echo(f"bucket: {config.repository.bucket_name}")
    typer.echo(f"backend: {config.storage.backend}")
    typer.echo(f"unique artifacts: {str(config.repository.unique_artifacts).lower()}")
    typer.echo(f"users: {len(config.auth.users)}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
