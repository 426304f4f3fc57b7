"""Query engine — compatibility-aware filtering, sorting and pagination.

Resolution order for a ``PluginQuery``:

1. server-version compatibility (``min_server_version`` <= requested)
2. identity (``plugin_id``)
3. search text (case-insensitive substring of name or description)
4. denylist (``excluded_ids``)
5. latest version per plugin id
6. sort (requested field, then ``id``)
7. pagination

The engine never mutates the catalogue; the same query against the same
catalogue always yields the same result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from plugin_marketplace.core.catalogue import Catalogue
from plugin_marketplace.core.semver import InvalidVersionError, SemVer
from plugin_marketplace.models.plugin import PluginEntry
from plugin_marketplace.models.query import (
    InvalidQueryError,
    PluginQuery,
    QueryResult,
    SortField,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _updated_at(entry: PluginEntry) -> datetime:
    if entry.updated_at is None:
        return _EPOCH
    if entry.updated_at.tzinfo is None:
        return entry.updated_at.replace(tzinfo=timezone.utc)
    return entry.updated_at


def _version_rank(entry: PluginEntry) -> tuple[SemVer, datetime]:
    return (SemVer.parse(entry.version), _updated_at(entry))


def is_compatible(entry: PluginEntry, server_version: SemVer | None) -> bool:
    """Whether *entry* can be installed on *server_version*.

    Entries without a minimum server version are compatible with every
    server, and so is every entry when no server version is given.
    """
    if server_version is None or not entry.min_server_version:
        return True
    return SemVer.parse(entry.min_server_version) <= server_version


def matches_search(entry: PluginEntry, needle: str) -> bool:
    """Case-insensitive substring match on name or description."""
    needle = needle.lower()
    return needle in entry.name.lower() or needle in entry.description.lower()


def latest_per_plugin(entries: Iterable[PluginEntry]) -> list[PluginEntry]:
    """Keep only the highest version of each plugin id.

    Equal versions are resolved in favour of the later ``updated_at``.
    Output preserves the order in which each id was first seen.
    """
    best: dict[str, PluginEntry] = {}
    for entry in entries:
        current = best.get(entry.id)
        if current is None or _version_rank(entry) > _version_rank(current):
            best[entry.id] = entry
    return list(best.values())


_SORT_KEYS: dict[SortField, Callable[[PluginEntry], Any]] = {
    SortField.NAME: lambda e: e.name.lower(),
    SortField.ID: lambda e: e.id,
    SortField.VERSION: lambda e: SemVer.parse(e.version),
    SortField.UPDATED_AT: _updated_at,
}


def sort_entries(
    entries: Iterable[PluginEntry],
    field: SortField = SortField.NAME,
    descending: bool = False,
) -> list[PluginEntry]:
    """Order entries by *field*, then by ``id`` for determinism."""
    primary = _SORT_KEYS[field]
    # Two stable passes: secondary key ascending first, then primary.
    ordered = sorted(entries, key=lambda e: e.id)
    return sorted(ordered, key=primary, reverse=descending)


def paginate(
    entries: list[PluginEntry], page: int, per_page: int
) -> list[PluginEntry]:
    """Slice one zero-based page; ``per_page`` of 0 returns everything."""
    if per_page <= 0:
        return list(entries)
    start = page * per_page
    return entries[start:start + per_page]


class QueryEngine:
    """Resolves ``PluginQuery`` descriptors against a ``Catalogue``.

    Parameters
    ----------
    catalogue:
        The immutable catalogue to query.  The engine holds no other state,
        so one engine may serve any number of concurrent callers.

    Examples
    --------
    >>> catalogue = Catalogue.from_bytes(
    ...     b'[{"id": "demo", "version": "0.1.0"}, {"id": "demo", "version": "0.2.0"}]'
    ... )
    >>> [p.version for p in QueryEngine(catalogue).run(PluginQuery()).plugins]
    ['0.2.0']
    """

    def __init__(self, catalogue: Catalogue) -> None:
        self._catalogue = catalogue

    def run(self, query: PluginQuery) -> QueryResult:
        """Filter, reduce, sort and paginate the catalogue for *query*.

        Raises
        ------
        InvalidQueryError
            If ``query.server_version`` is not a semantic version.
        """
        server_version: SemVer | None = None
        if query.server_version:
            try:
                server_version = SemVer.parse(query.server_version)
            except InvalidVersionError as exc:
                raise InvalidQueryError(
                    f"invalid server version {query.server_version!r}: {exc}"
                ) from exc

        candidates = [e for e in self._catalogue if is_compatible(e, server_version)]
        if query.plugin_id:
            candidates = [e for e in candidates if e.id == query.plugin_id]
        if query.search:
            candidates = [e for e in candidates if matches_search(e, query.search)]
        if query.excluded_ids:
            candidates = [e for e in candidates if e.id not in query.excluded_ids]

        reduced = sort_entries(latest_per_plugin(candidates), query.sort, query.descending)
        page = paginate(reduced, query.page, query.per_page)
        logger.debug(
            "Query matched %d plugin(s), returning %d (page=%d, per_page=%d).",
            len(reduced),
            len(page),
            query.page,
            query.per_page,
        )
        return QueryResult(
            plugins=page,
            total=len(reduced),
            page=query.page,
            per_page=query.per_page,
        )
