"""Catalogue store — an immutable, validated collection of plugin entries.

A ``Catalogue`` is built exactly once from a serialized stream (the JSON
array written by the generator) and is read-only afterwards.  Building is
all-or-nothing: a decode or validation failure raises and no catalogue is
returned.

Reloading never mutates a live catalogue.  ``CatalogueHolder`` builds the
replacement off to the side and swaps a single reference, so concurrent
readers always see one complete catalogue or the other.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO, TYPE_CHECKING, Optional

from pydantic import TypeAdapter, ValidationError

from plugin_marketplace.core.semver import InvalidVersionError
from plugin_marketplace.core.validator import InvalidEntryError, validate_entries
from plugin_marketplace.models.plugin import PluginEntry

if TYPE_CHECKING:
    from plugin_marketplace.models.query import PluginQuery, QueryResult

logger = logging.getLogger(__name__)

_ENTRIES_ADAPTER: TypeAdapter[Optional[list[PluginEntry]]] = TypeAdapter(
    Optional[list[PluginEntry]]
)


class CatalogueDecodeError(RuntimeError):
    """Raised when a catalogue stream is not a well-formed entry array."""


class CatalogueValidationError(RuntimeError):
    """Raised when a decoded entry fails validation.

    The validator's ``InvalidEntryError`` / ``InvalidVersionError`` is
    available as ``__cause__``.
    """


def _describe(exc: ValidationError) -> str:
    """Condense a pydantic error into a one-line cause."""
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", str(exc))
    return f"{location}: {message}" if location else message


def decode_entries(data: bytes | str) -> list[PluginEntry]:
    """Decode a serialized catalogue without validating entry invariants.

    Empty input and a JSON ``null`` both decode to an empty list.

    Raises
    ------
    CatalogueDecodeError
        If the input is not valid JSON or not an array of entry objects.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data.strip():
        return []
    try:
        entries = _ENTRIES_ADAPTER.validate_json(data)
    except ValidationError as exc:
        raise CatalogueDecodeError(f"failed to parse stream: {_describe(exc)}") from exc
    return entries or []


def encode_catalogue(entries: Iterable[PluginEntry]) -> bytes:
    """Serialize entries as the catalogue JSON array (trailing newline)."""
    payload = [entry.to_json_dict() for entry in entries]
    return (json.dumps(payload, indent=2) + "\n").encode("utf-8")


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

class Catalogue:
    """Read-only, validated set of catalogue entries.

    Use the ``from_*`` constructors; they decode and validate before the
    catalogue exists.

    Examples
    --------
    >>> Catalogue.from_bytes(b"").plugins
    ()
    >>> len(Catalogue.from_bytes(b'[{"id": "demo", "version": "0.1.0"}]'))
    1
    """

    def __init__(self, entries: Iterable[PluginEntry] = ()) -> None:
        self._plugins: tuple[PluginEntry, ...] = tuple(entries)

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes | str) -> Catalogue:
        """Decode and validate a serialized catalogue.

        Raises
        ------
        CatalogueDecodeError
            ``failed to parse stream: <cause>`` for malformed input.
        CatalogueValidationError
            ``failed to validate plugins: <cause>`` for the first entry that
            fails validation.
        """
        entries = decode_entries(data)
        try:
            validate_entries(entries)
        except (InvalidEntryError, InvalidVersionError) as exc:
            raise CatalogueValidationError(f"failed to validate plugins: {exc}") from exc
        logger.debug("Built catalogue with %d plugin(s).", len(entries))
        return cls(entries)

    @classmethod
    def from_stream(cls, stream: IO[bytes] | IO[str]) -> Catalogue:
        """Read *stream* to the end and build a catalogue from it."""
        return cls.from_bytes(stream.read())

    @classmethod
    def from_path(cls, path: Path) -> Catalogue:
        """Build a catalogue from a database file on disk."""
        catalogue = cls.from_bytes(Path(path).read_bytes())
        logger.info("Loaded %d plugin(s) from %s.", len(catalogue), path)
        return catalogue

    # -- Read-only access ---------------------------------------------------

    @property
    def plugins(self) -> tuple[PluginEntry, ...]:
        """All entries in catalogue order."""
        return self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[PluginEntry]:
        return iter(self._plugins)

    def by_download_url(self) -> dict[str, PluginEntry]:
        """Index entries by download URL (first entry wins)."""
        index: dict[str, PluginEntry] = {}
        for entry in self._plugins:
            if entry.download_url:
                index.setdefault(entry.download_url, entry)
        return index

    def query(self, query: PluginQuery) -> QueryResult:
        """Run *query* against this catalogue."""
        from plugin_marketplace.core.query_engine import QueryEngine

        return QueryEngine(self).run(query)


# ---------------------------------------------------------------------------
# Holder
# ---------------------------------------------------------------------------

class CatalogueHolder:
    """Owns the live catalogue and replaces it wholesale on reload.

    Readers call ``current`` once per request and work on that snapshot.
    A failed reload leaves the previous catalogue in place.
    """

    def __init__(self, catalogue: Catalogue | None = None) -> None:
        self._current = catalogue if catalogue is not None else Catalogue()

    @property
    def current(self) -> Catalogue:
        """The catalogue readers should use right now."""
        return self._current

    def replace(self, catalogue: Catalogue) -> Catalogue:
        """Swap in *catalogue* and return the one it replaced."""
        previous, self._current = self._current, catalogue
        logger.info(
            "Swapped catalogue: %d -> %d plugin(s).", len(previous), len(catalogue)
        )
        return previous

    def reload(self, stream: IO[bytes] | IO[str]) -> Catalogue:
        """Build a new catalogue from *stream*, then swap it in.

        Raises the store's build errors without touching the live catalogue.
        """
        catalogue = Catalogue.from_stream(stream)
        self.replace(catalogue)
        return catalogue

    def reload_path(self, path: Path) -> Catalogue:
        """Like ``reload`` but reads a database file."""
        catalogue = Catalogue.from_path(path)
        self.replace(catalogue)
        return catalogue
