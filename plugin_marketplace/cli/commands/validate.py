"""``plugin-marketplace validate`` — check that a database loads cleanly."""

from __future__ import annotations

from pathlib import Path

import typer

from plugin_marketplace.config import settings
from plugin_marketplace.cli.console import configure_logging, console, err_console
from plugin_marketplace.core.catalogue import (
    Catalogue,
    CatalogueDecodeError,
    CatalogueValidationError,
)


def validate_cmd(
    database: Path = typer.Option(
        settings.database_path,
        "--database",
        "-d",
        help="Path to the plugins.json database.",
    ),
) -> None:
    """Load a database through the catalogue store and report the result."""
    configure_logging(settings.effective_log_level)

    try:
        catalogue = Catalogue.from_path(database)
    except OSError as exc:
        err_console.print(f"[bold red]Cannot read database:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except (CatalogueDecodeError, CatalogueValidationError) as exc:
        err_console.print(f"[bold red]Invalid database:[/bold red] {exc}")
        raise typer.Exit(code=1)

    plugin_ids = {entry.id for entry in catalogue}
    console.print(
        f"[bold green]Database valid:[/bold green] {len(catalogue)} entr"
        f"{'y' if len(catalogue) == 1 else 'ies'} across {len(plugin_ids)} plugin(s)."
    )
