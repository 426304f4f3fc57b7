"""Catalogue generator — runs the reducer over every configured plugin project.

The generator queries the release host for each repository, reduces the
releases to canonical entries, fills in fallback icons for plugins whose
bundles carry none, and writes the combined catalogue sorted by
descending version.

Projects are independent, so they may be processed on a thread pool.  The
reducer and the existing-catalogue lookup it holds are read-only and safe
to share; ``GitHubReleaseHost`` opens one HTTP session per worker thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import IO

from plugin_marketplace.config import MarketplaceSettings
from plugin_marketplace.core.catalogue import Catalogue, encode_catalogue
from plugin_marketplace.core.semver import InvalidVersionError
from plugin_marketplace.generator.host import ReleaseHost, ReleaseHostError
from plugin_marketplace.generator.icons import IconError, load_icon, to_data_uri
from plugin_marketplace.generator.reducer import (
    ReleaseProcessingError,
    ReleaseReducer,
    VersionRequiredError,
    sort_by_version_desc,
)
from plugin_marketplace.models.plugin import PluginEntry

logger = logging.getLogger(__name__)


class ProjectGenerationError(RuntimeError):
    """Raised when a plugin project cannot be turned into catalogue entries."""

    def __init__(self, message: str, *, repository: str) -> None:
        super().__init__(message)
        self.repository = repository


def load_existing(path: Path) -> list[PluginEntry]:
    """Read a previously generated catalogue for incremental updates."""
    return list(Catalogue.from_path(path).plugins)


class CatalogueGenerator:
    """Generates the plugin catalogue from a release host.

    Parameters
    ----------
    host:
        The release host to crawl.
    repositories:
        Plugin project names, processed in order.
    icon_paths:
        Fallback icon (local path or URL) per repository, used when a
        plugin's bundle declares no icon.
    existing:
        Entries of a previous catalogue, enabling the incremental skip.
    include_prerelease, skip_failed:
        Passed to the ``ReleaseReducer``.
    workers:
        Number of projects processed concurrently.
    icon_loader:
        Loads icon bytes from a reference; defaults to ``load_icon`` with
        the host as fetcher.
    """

    def __init__(
        self,
        host: ReleaseHost,
        repositories: Iterable[str],
        *,
        icon_paths: dict[str, str] | None = None,
        existing: Iterable[PluginEntry] = (),
        include_prerelease: bool = True,
        skip_failed: bool = False,
        workers: int = 1,
        icon_loader: Callable[[str], bytes] | None = None,
    ) -> None:
        self._host = host
        self._repositories = list(repositories)
        self._icon_paths = dict(icon_paths or {})
        self._workers = max(1, workers)
        self._icon_loader = icon_loader or (lambda ref: load_icon(ref, host))
        self._reducer = ReleaseReducer(
            host,
            existing=existing,
            include_prerelease=include_prerelease,
            skip_failed=skip_failed,
        )

    @classmethod
    def from_settings(
        cls,
        host: ReleaseHost,
        settings: MarketplaceSettings,
        existing: Iterable[PluginEntry] = (),
    ) -> CatalogueGenerator:
        """Build a generator configured from ``MarketplaceSettings``."""
        return cls(
            host,
            settings.repositories,
            icon_paths=settings.icon_paths,
            existing=existing,
            include_prerelease=settings.include_prerelease,
            skip_failed=settings.skip_failed_releases,
            workers=settings.workers,
        )

    # -- Per project -----------------------------------------------------------

    def generate_project(self, repository: str) -> list[PluginEntry]:
        """Return the reduced entries of one repository.

        Raises
        ------
        ProjectGenerationError
            Wrapping host, release, version or icon failures.
        """
        logger.debug("Querying repository %s.", repository)
        try:
            project = self._host.get_project(repository)
            releases = self._host.list_releases(repository)
            if not releases:
                logger.warning("No releases found for repository %s.", repository)
                return []
            entries = self._reducer.reduce(releases, project)
            return [self._with_fallback_icon(repository, entry) for entry in entries]
        except (
            ReleaseHostError,
            ReleaseProcessingError,
            VersionRequiredError,
            InvalidVersionError,
            IconError,
        ) as exc:
            raise ProjectGenerationError(
                f"failed to release plugin for repository {repository}: {exc}",
                repository=repository,
            ) from exc

    def _with_fallback_icon(self, repository: str, entry: PluginEntry) -> PluginEntry:
        if entry.icon_data:
            return entry
        reference = self._icon_paths.get(repository)
        if not reference:
            return entry
        try:
            icon_data = to_data_uri(self._icon_loader(reference))
        except IconError as exc:
            raise IconError(f"failed to match icon at {reference} to image: {exc}") from exc
        return entry.model_copy(update={"icon_data": icon_data})

    # -- Whole catalogue -------------------------------------------------------

    def generate(self) -> list[PluginEntry]:
        """Generate entries for every repository, sorted by descending version.

        An ``(id, version)`` pair is emitted once; later duplicates are
        dropped with a warning.
        """
        if self._workers == 1 or len(self._repositories) <= 1:
            per_project = [self.generate_project(r) for r in self._repositories]
        else:
            with ThreadPoolExecutor(max_workers=self._workers) as pool:
                per_project = list(pool.map(self.generate_project, self._repositories))

        entries: list[PluginEntry] = []
        seen: set[tuple[str, str]] = set()
        for entry in (e for project_entries in per_project for e in project_entries):
            if entry.identity in seen:
                logger.warning("Dropping duplicate plugin %s v%s.", entry.id, entry.version)
                continue
            seen.add(entry.identity)
            entries.append(entry)
        logger.info(
            "Generated %d plugin(s) from %d repositories.",
            len(entries),
            len(self._repositories),
        )
        return sort_by_version_desc(entries)

    def write(self, stream: IO[bytes]) -> list[PluginEntry]:
        """Generate the catalogue and write it to *stream* as JSON."""
        entries = self.generate()
        stream.write(encode_catalogue(entries))
        return entries
