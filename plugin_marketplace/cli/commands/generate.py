"""``plugin-marketplace generate`` — build the plugin database from GitHub releases.

Crawls every configured plugin repository, reduces its releases to one
entry per minimum server version, and writes the resulting ``plugins.json``
to stdout.  Pass ``--existing`` with the previous database to skip
re-downloading bundles that have not changed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from plugin_marketplace.config import settings
from plugin_marketplace.cli.console import configure_logging, err_console
from plugin_marketplace.core.catalogue import CatalogueDecodeError, CatalogueValidationError
from plugin_marketplace.generator.host import GitHubReleaseHost
from plugin_marketplace.generator.pipeline import (
    CatalogueGenerator,
    ProjectGenerationError,
    load_existing,
)

logger = logging.getLogger(__name__)


def generate_cmd(
    github_token: str = typer.Option(
        settings.github_token,
        "--github-token",
        help="The optional GitHub token for API requests.",
    ),
    debug: bool = typer.Option(
        settings.debug,
        "--debug",
        help="Whether to output debug logs.",
    ),
    include_pre_release: bool = typer.Option(
        settings.include_prerelease,
        "--include-pre-release/--no-include-pre-release",
        help="Whether to include pre-release versions.",
    ),
    existing: Optional[Path] = typer.Option(
        settings.existing_database,
        "--existing",
        help="An existing plugins.json to help streamline incremental updates.",
    ),
    skip_failed: bool = typer.Option(
        settings.skip_failed_releases,
        "--skip-failed",
        help="Log and skip releases that cannot be processed instead of aborting.",
    ),
    workers: int = typer.Option(
        settings.workers,
        "--workers",
        "-w",
        min=1,
        help="Number of repositories processed concurrently.",
    ),
) -> None:
    """Generate the plugin database and write it to stdout."""
    run_settings = settings.model_copy(
        update={
            "github_token": github_token,
            "debug": debug,
            "include_prerelease": include_pre_release,
            "existing_database": existing,
            "skip_failed_releases": skip_failed,
            "workers": workers,
        }
    )
    configure_logging(run_settings.effective_log_level)

    existing_plugins = []
    if run_settings.existing_database is not None:
        try:
            existing_plugins = load_existing(run_settings.existing_database)
        except (OSError, CatalogueDecodeError, CatalogueValidationError) as exc:
            logger.error(
                "Failed to read existing database %s: %s",
                run_settings.existing_database,
                exc,
            )
            raise typer.Exit(code=1)

    host = GitHubReleaseHost(
        run_settings.github_owner,
        run_settings.github_token,
        api_url=run_settings.github_api_url,
        timeout=run_settings.request_timeout_seconds,
    )
    generator = CatalogueGenerator.from_settings(host, run_settings, existing=existing_plugins)

    try:
        entries = generator.write(typer.get_binary_stream("stdout"))
    except ProjectGenerationError as exc:
        logger.error("Command failed: %s", exc)
        raise typer.Exit(code=1)

    err_console.print(f"[dim]Wrote {len(entries)} plugin(s).[/dim]")
