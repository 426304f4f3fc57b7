"""Marketplace CLI — Typer-based command-line interface.

Provides the ``plugin-marketplace`` command with subcommands for generating
the plugin database, validating it, and querying it locally.

Logs and errors go to stderr through Rich; stdout carries only command
results (the generated database, query tables or JSON).
"""
