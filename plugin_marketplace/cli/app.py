"""Main Typer application — imports and registers all CLI commands.

Entry point: ``plugin-marketplace`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from plugin_marketplace.cli.commands.generate import generate_cmd
from plugin_marketplace.cli.commands.query_cmd import query_cmd
from plugin_marketplace.cli.commands.validate import validate_cmd

app = typer.Typer(
    name="plugin-marketplace",
    help="Plugin marketplace: generate, validate and query the plugin database.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="generate", help="Generate the plugins.json database from GitHub releases.")(generate_cmd)
app.command(name="query", help="Query a plugins.json database.")(query_cmd)
app.command(name="validate", help="Validate a plugins.json database.")(validate_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
