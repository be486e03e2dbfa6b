"""Command line entry point for the release pipeline.

Loads settings and credentials, wires up the components and runs the
pipeline. Any unrecovered failure ends the process with a non-zero exit
status after logging a diagnostic.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from release_pipeline import __version__
from release_pipeline.build.platforms import PLATFORMS
from release_pipeline.config.credentials import CredentialManager
from release_pipeline.config.settings import (
    PipelineSettings,
    SettingsManager,
    apply_env_overrides,
)
from release_pipeline.errors import ConfigurationError, PipelineError
from release_pipeline.materialize.tree import TreeMaterializer
from release_pipeline.pipeline import ReleasePipeline
from release_pipeline.remote.github_client import GitHubClient
from release_pipeline.remote.models import RepoRef
from release_pipeline.utils.logging import get_logger, setup_logging

EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def load_settings(config_path: Optional[Path], **overrides) -> PipelineSettings:
    """
    Load settings from file, environment and command line, in that order.

    Args:
        config_path: Settings file (default platform location)
        **overrides: Command line values; None means "not given"

    Returns:
        Validated PipelineSettings

    Raises:
        ConfigurationError: If the merged settings are invalid
    """
    settings = SettingsManager(config_path).load()
    apply_env_overrides(settings)

    for key, value in overrides.items():
        if value is not None:
            setattr(settings, key, value)

    settings.validate()
    return settings


def _fail(message: str, exit_code: int = EXIT_FAILURE) -> None:
    get_logger().error(message)
    sys.exit(exit_code)


@click.group()
@click.version_option(__version__, prog_name="release-pipeline")
@click.option("--config", "config_path", type=click.Path(path_type=Path),
              help="Settings JSON file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug output")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.pass_context
def cli(ctx, config_path, verbose, log_file):
    """Fetch, build and publish browser installers as a GitHub release."""
    setup_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        log_file=log_file,
    )
    ctx.obj = {"config_path": config_path}


@cli.command()
@click.option("--platform", type=click.Choice(sorted(PLATFORMS)), help="Target platform")
@click.option("--workspace", "workspace_dir", help="Directory the source tree is materialized into")
@click.option("--branch", "source_branch", help="Source branch to build")
@click.option("--tag-prefix", help="Prefix for the release tag (default: none)")
@click.option("--create-tag/--no-create-tag", default=None,
              help="Create the tag ref before the release")
@click.option("--stage-copy/--no-stage-copy", default=None,
              help="Copy artifacts to version/<version> before upload")
@click.option("--skip-existing-assets/--no-skip-existing-assets", default=None,
              help="Skip assets already attached to the release")
@click.option("--max-rate-limit-retries", type=click.IntRange(min=0),
              help="Give up after this many rate-limit waits")
@click.option("--skip-fetch", is_flag=True, help="Reuse the source tree already on disk")
@click.option("--skip-build", is_flag=True, help="Reuse build output already on disk")
@click.pass_context
def run(ctx, skip_fetch, skip_build, **overrides):
    """Run the full pipeline."""
    logger = get_logger()

    try:
        settings = load_settings(ctx.obj["config_path"], **overrides)
        token = CredentialManager().require_token()
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR)

    if settings.log_file and not ctx.parent.params.get("log_file"):
        setup_logging(
            level=logger.level,
            log_file=Path(settings.log_file),
        )

    try:
        with GitHubClient(token=token, timeout=settings.timeout) as client:
            pipeline = ReleasePipeline(settings, client)
            result = pipeline.run(skip_fetch=skip_fetch, skip_build=skip_build)
    except PipelineError as e:
        _fail(f"Pipeline failed: {e}")
    except KeyboardInterrupt:
        _fail("Interrupted")

    click.echo(
        f"Published {len(result.uploaded)} assets to {settings.release_slug} "
        f"release {result.release.tag_name}"
    )


@cli.command()
@click.argument("repository")
@click.argument("destination", type=click.Path(path_type=Path))
@click.option("--branch", default="main", show_default=True, help="Branch to download")
def fetch(repository, destination, branch):
    """Materialize REPOSITORY (owner/name) into DESTINATION."""
    try:
        repo = RepoRef.parse(repository)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="REPOSITORY")

    try:
        token = CredentialManager().require_token()
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR)

    try:
        with GitHubClient(token=token) as client:
            stats = TreeMaterializer(client).materialize_branch(repo, branch, destination)
    except PipelineError as e:
        _fail(f"Download failed: {e}")

    click.echo(f"Downloaded {repo}@{branch} into {destination}: {stats}")


@cli.group()
def token():
    """Manage the access token kept in the system keyring."""


@token.command("set")
@click.password_option("--value", prompt="GitHub token", confirmation_prompt=False)
def token_set(value):
    """Store a GitHub access token in the keyring."""
    if not CredentialManager().save_token(value):
        _fail("Could not save the token to the system keyring")
    click.echo("Token saved")


@token.command("delete")
def token_delete():
    """Remove the stored access token."""
    if not CredentialManager().delete_token():
        _fail("No token removed from the system keyring")
    click.echo("Token removed")


@cli.command("config")
@click.argument("assignments", nargs=-1)
@click.pass_context
def config_command(ctx, assignments):
    """Show settings, or update them with KEY=VALUE pairs."""
    manager = SettingsManager(ctx.obj["config_path"])
    settings = manager.load()

    if assignments:
        updates = {}
        for assignment in assignments:
            key, sep, raw = assignment.partition("=")
            if not sep or not hasattr(settings, key):
                raise click.BadParameter(f"Unknown setting: {assignment}")
            try:
                updates[key] = json.loads(raw)
            except ValueError:
                updates[key] = raw
        settings = manager.update(**updates)

    click.echo(json.dumps(settings.to_dict(), indent=2))


def main() -> int:
    """
    Console script entry point.

    Returns:
        Exit code (0 for success)
    """
    try:
        cli(standalone_mode=False)
        return 0
    except click.exceptions.Abort:
        return EXIT_FAILURE
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_FAILURE
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
