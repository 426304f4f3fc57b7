"""Manifest validator — structural checks on a single catalogue entry.

Pure functions: no I/O, no logging.  The catalogue store calls
``validate_entries`` once per build and stops at the first failure.
"""

from __future__ import annotations

from collections.abc import Iterable

from plugin_marketplace.core.semver import InvalidVersionError, SemVer
from plugin_marketplace.models.plugin import PluginEntry


class InvalidEntryError(ValueError):
    """Raised when an entry is missing its plugin id."""


def validate_entry(entry: PluginEntry, position: int = 0) -> None:
    """Check one entry, raising on the first structural problem.

    Parameters
    ----------
    entry:
        The candidate entry.
    position:
        Index of the entry in its catalogue, reported when the id is empty.

    Raises
    ------
    InvalidEntryError
        If ``id`` is empty.
    InvalidVersionError
        If ``version`` is empty or not SemVer, or if ``min_server_version``
        is present but not SemVer.  The message names the plugin id.
    """
    if not entry.id:
        raise InvalidEntryError(f"plugin id is empty for entry at position {position}")

    try:
        SemVer.parse(entry.version)
    except InvalidVersionError as exc:
        raise InvalidVersionError(
            f"failed to parse version for plugin id {entry.id}: {exc}"
        ) from exc

    # Absent (or empty) means compatible with every server version.
    if entry.min_server_version:
        try:
            SemVer.parse(entry.min_server_version)
        except InvalidVersionError as exc:
            raise InvalidVersionError(
                f"failed to parse min server version for plugin id {entry.id}: {exc}"
            ) from exc


def validate_entries(entries: Iterable[PluginEntry]) -> None:
    """Validate *entries* in order, stopping at the first failure."""
    for position, entry in enumerate(entries):
        validate_entry(entry, position)
