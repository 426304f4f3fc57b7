"""``plugin-marketplace query`` — answer a catalogue query from a local database.

Loads the database through the catalogue store (so it is validated exactly
as a server would) and runs one query through the query engine.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from plugin_marketplace.config import settings
from plugin_marketplace.cli.console import configure_logging, console, err_console
from plugin_marketplace.core.catalogue import (
    Catalogue,
    CatalogueDecodeError,
    CatalogueValidationError,
)
from plugin_marketplace.models.query import (
    InvalidQueryError,
    PluginQuery,
    QueryResult,
    SortField,
)

logger = logging.getLogger(__name__)


def query_cmd(
    database: Path = typer.Option(
        settings.database_path,
        "--database",
        "-d",
        help="Path to the plugins.json database.",
    ),
    server_version: Optional[str] = typer.Option(
        None,
        "--server-version",
        "-s",
        help="Only return plugins compatible with this server version.",
    ),
    plugin_id: Optional[str] = typer.Option(
        None,
        "--plugin-id",
        help="Only return the plugin with this id.",
    ),
    search: Optional[str] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Case-insensitive text matched against name and description.",
    ),
    page: int = typer.Option(0, "--page", min=0, help="Zero-based page index."),
    per_page: int = typer.Option(
        settings.default_per_page,
        "--per-page",
        min=0,
        help="Page size; 0 returns every match.",
    ),
    sort: SortField = typer.Option(SortField.NAME, "--sort", help="Sort field."),
    descending: bool = typer.Option(False, "--desc", help="Sort descending."),
    exclude: Optional[List[str]] = typer.Option(
        None,
        "--exclude",
        "-x",
        help="Plugin id to leave out (repeatable).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Query a plugin database the way the marketplace server would."""
    configure_logging(settings.effective_log_level)

    try:
        catalogue = Catalogue.from_path(database)
        query = PluginQuery(
            server_version=server_version,
            plugin_id=plugin_id,
            search=search,
            excluded_ids=frozenset(exclude or ()),
            page=page,
            per_page=per_page,
            sort=sort,
            descending=descending,
        )
        result = catalogue.query(query)
    except OSError as exc:
        err_console.print(f"[bold red]Cannot read database:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except (CatalogueDecodeError, CatalogueValidationError) as exc:
        err_console.print(f"[bold red]Invalid database:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except InvalidQueryError as exc:
        err_console.print(f"[bold red]Invalid query:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps([p.to_json_dict() for p in result.plugins], indent=2))
        return
    _print_table(result)


def _print_table(result: QueryResult) -> None:
    if not result.plugins:
        console.print("[dim]No plugins matched.[/dim]")
        return

    table = Table(title="Plugins")
    table.add_column("Name", style="cyan")
    table.add_column("Id")
    table.add_column("Version", style="green")
    table.add_column("Min Server")
    table.add_column("Signed", justify="center")
    table.add_column("Updated")

    for p in result.plugins:
        signed = "[green]Yes[/green]" if p.signature else "[yellow]No[/yellow]"
        updated = p.updated_at.isoformat() if p.updated_at else "-"
        table.add_row(p.name, p.id, p.version, p.min_server_version or "-", signed, updated)

    console.print(table)
    console.print(
        f"[dim]Showing {len(result.plugins)} of {result.total} plugin(s).[/dim]"
    )
