"""Command-line entry point for the build-image orchestrator.

Usage:
    imagebuild ACCOUNT_ID REGION REPO_OWNER REPO_NAME ACTION [OPTIONS]

ACTION is one of DEPLOY, DIFF, SYNTH, DESTROY (case-sensitive). Any other
value is reported as unsupported and exits 0.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from imagebuild import __version__
from imagebuild.core.config import OrchestratorConfig, load_config
from imagebuild.core.exceptions import ImageBuildError
from imagebuild.core.models import build_context
from imagebuild.integrations.cloud.factory import create_cloud_provider
from imagebuild.log import configure_logging
from imagebuild.orchestration.dispatcher import ActionDispatcher


def _resolve_config(
    config_path: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
    docker_images_dir: Optional[Path],
    provider: Optional[str],
) -> OrchestratorConfig:
    try:
        config = load_config(
            config_path,
            log_level=log_level,
            log_format=log_format,
            docker_images_dir=docker_images_dir,
        )
    except (FileNotFoundError, ImageBuildError, ValidationError) as e:
        raise click.ClickException(str(e)) from e

    if provider is not None:
        config = config.model_copy(update={
            "cloud": config.cloud.model_copy(update={"provider": provider}),
        })
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("account_id")
@click.argument("region")
@click.argument("repo_owner")
@click.argument("repo_name")
@click.argument("action")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="YAML configuration file (default: ./imagebuild.yaml if present)")
@click.option("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None,
              help="Log renderer")
@click.option("--docker-images-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Directory holding the per-platform build scripts")
@click.option("--provider", type=click.Choice(["aws", "mock"]), default=None,
              help="Cloud backend; 'mock' performs a dry run without cloud calls")
@click.version_option(__version__, prog_name="imagebuild")
def main(
    account_id: str,
    region: str,
    repo_owner: str,
    repo_name: str,
    action: str,
    config_path: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
    docker_images_dir: Optional[Path],
    provider: Optional[str],
) -> None:
    """Provision CI infrastructure, build the Docker images, and tear down."""
    config = _resolve_config(config_path, log_level, log_format, docker_images_dir, provider)
    configure_logging(config.log_level, config.log_format)

    try:
        context = build_context(account_id, region, repo_owner, repo_name, naming=config.naming)
    except ValidationError as e:
        raise click.ClickException(f"Invalid arguments: {e}") from e

    try:
        cloud = create_cloud_provider(config.cloud, context=context)
    except ImageBuildError as e:
        raise click.ClickException(e.message) from e

    dispatcher = ActionDispatcher(context, cloud, config, echo=click.echo)
    exit_code = asyncio.run(dispatcher.dispatch(action))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
