"""Release reducer — collapses a project's release history into catalogue entries.

For one plugin project the reducer keeps, for every distinct
``min_server_version`` ever declared, only the newest plugin version that
declared it.  A server on any historically supported version can therefore
find the newest plugin it is able to run.

Per release:

1. drafts (and, unless requested, pre-releases) are dropped;
2. the ``.tar.gz`` bundle and an optional ``.sig``/``.asc`` signature are
   located among the release assets;
3. if a previous catalogue already holds an entry for the same download URL
   whose ``updated_at`` is not older than the asset's, that entry is reused
   and the bundle is not downloaded; otherwise the bundle is fetched and its
   manifest (and icon) read.

Entries are then bucketed by ``min_server_version`` (``""`` is a bucket of
its own) and sorted by descending version.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

from plugin_marketplace.core.catalogue import Catalogue
from plugin_marketplace.core.semver import InvalidVersionError, SemVer
from plugin_marketplace.core.validator import InvalidEntryError, validate_entry
from plugin_marketplace.generator.bundle import BundleError, read_bundle_file, read_manifest
from plugin_marketplace.generator.host import ArtifactFetcher, ReleaseHostError
from plugin_marketplace.generator.icons import SVG_MIME, IconError, to_data_uri
from plugin_marketplace.models.plugin import PluginEntry
from plugin_marketplace.models.releases import ProjectInfo, ReleaseAsset, ReleaseCandidate

logger = logging.getLogger(__name__)

BUNDLE_SUFFIX = ".tar.gz"
LEGACY_BUNDLE_MARKER = "-amd64"
SIGNATURE_SUFFIXES = (".sig", ".asc")


class MultipleSignaturesError(RuntimeError):
    """Raised when a release carries more than one signature asset."""


class VersionRequiredError(RuntimeError):
    """Raised when two entries of a bucket must be compared but one has no version."""


class ReleaseProcessingError(RuntimeError):
    """Raised when a single release cannot be turned into an entry.

    The underlying failure is available as ``__cause__``.
    """

    def __init__(self, message: str, *, release_name: str, project: str = "") -> None:
        super().__init__(message)
        self.release_name = release_name
        self.project = project


# Failures scoped to one release; anything else is a programming error.
_RELEASE_ERRORS = (
    MultipleSignaturesError,
    BundleError,
    ReleaseHostError,
    IconError,
    InvalidEntryError,
    InvalidVersionError,
)


class ReleaseAssets(BaseModel):
    """The assets of one release that matter to the catalogue."""

    model_config = ConfigDict(frozen=True)

    download_url: str = ""
    updated_at: datetime | None = None
    signature_asset: ReleaseAsset | None = None


# ---------------------------------------------------------------------------
# Pure steps
# ---------------------------------------------------------------------------

def select_releases(
    releases: Iterable[ReleaseCandidate], include_prerelease: bool = True
) -> list[ReleaseCandidate]:
    """Drop drafts and, unless *include_prerelease*, pre-releases."""
    selected: list[ReleaseCandidate] = []
    for release in releases:
        if release.draft:
            continue
        if release.prerelease and not include_prerelease:
            continue
        selected.append(release)
    return selected


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_release_assets(release: ReleaseCandidate) -> ReleaseAssets:
    """Find the bundle and signature assets of *release*.

    Legacy per-platform bundles (``-amd64``) are ignored.  When several
    bundles are attached the last one wins.

    Raises
    ------
    MultipleSignaturesError
        If more than one ``.sig``/``.asc`` asset is attached.
    """
    download_url = ""
    updated_at: datetime | None = None
    signature: ReleaseAsset | None = None

    for asset in release.assets:
        if LEGACY_BUNDLE_MARKER in asset.name:
            logger.debug(
                "Ignoring old style tar bundle %s for release %s.",
                asset.name,
                release.display_name,
            )
            continue

        if asset.name.endswith(BUNDLE_SUFFIX):
            download_url = asset.browser_download_url
            updated_at = _to_utc(asset.updated_at or asset.created_at)

        if asset.name.endswith(SIGNATURE_SUFFIXES):
            if signature is not None:
                raise MultipleSignaturesError(
                    f"found multiple signatures {asset.name} for release {release.display_name}"
                )
            signature = asset

    return ReleaseAssets(
        download_url=download_url, updated_at=updated_at, signature_asset=signature
    )


def needs_inspection(existing: PluginEntry | None, updated_at: datetime | None) -> bool:
    """Whether the bundle must be downloaded rather than reusing *existing*."""
    if existing is None:
        logger.debug("No existing plugin.")
        return True
    if updated_at is None:
        logger.debug("No new update timestamp for plugin.")
        return True
    recorded = _to_utc(existing.updated_at)
    if recorded is None:
        logger.debug("No recorded update timestamp for plugin.")
        return True
    if recorded < updated_at:
        logger.debug(
            "Plugin release asset is newer (+%d seconds).",
            (updated_at - recorded).total_seconds(),
        )
        return True
    return False


def _supersedes(candidate: PluginEntry, current: PluginEntry) -> bool:
    if not candidate.version or not current.version:
        plugin_id = candidate.id or current.id
        raise VersionRequiredError(f"version is empty for plugin id {plugin_id}")
    candidate_version = SemVer.parse(candidate.version)
    current_version = SemVer.parse(current.version)
    if candidate_version != current_version:
        return candidate_version > current_version
    # Equal versions: the artifact updated last wins, first seen otherwise.
    candidate_at = _to_utc(candidate.updated_at)
    current_at = _to_utc(current.updated_at)
    return candidate_at is not None and (current_at is None or candidate_at > current_at)


def reduce_by_min_server_version(entries: Iterable[PluginEntry]) -> list[PluginEntry]:
    """Keep the newest entry per ``min_server_version`` bucket.

    Buckets are emitted in the order they were first seen.  Absent and
    empty minimum server versions share the ``""`` bucket.

    Raises
    ------
    VersionRequiredError
        If a comparison involves an entry with an empty version.
    InvalidVersionError
        If a compared version is not SemVer.
    """
    buckets: dict[str, PluginEntry] = {}
    for entry in entries:
        key = entry.min_server_version or ""
        current = buckets.get(key)
        if current is None or _supersedes(entry, current):
            buckets[key] = entry
    return list(buckets.values())


def sort_by_version_desc(entries: Iterable[PluginEntry]) -> list[PluginEntry]:
    """Stable sort by descending semantic version."""
    return sorted(entries, key=lambda e: SemVer.parse(e.version), reverse=True)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

class ReleaseReducer:
    """Turns a project's releases into its canonical catalogue entries.

    Parameters
    ----------
    fetcher:
        Downloads bundles and signature files.
    existing:
        Entries from a previously generated catalogue, used to skip
        re-downloading unchanged bundles.  Read-only, so one list may be
        shared between reducers running in parallel.
    include_prerelease:
        Whether pre-releases are candidates.
    skip_failed:
        Log and skip releases that fail instead of raising.
    """

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        *,
        existing: Iterable[PluginEntry] = (),
        include_prerelease: bool = True,
        skip_failed: bool = False,
    ) -> None:
        self._fetcher = fetcher
        self._include_prerelease = include_prerelease
        self._skip_failed = skip_failed
        self._existing = Catalogue(existing).by_download_url()

    # -- Single release ------------------------------------------------------

    def inspect_release(
        self, release: ReleaseCandidate, project: ProjectInfo
    ) -> PluginEntry | None:
        """Build the entry for one release, or ``None`` if it has no bundle.

        Raises
        ------
        ReleaseProcessingError
            Wrapping any asset, download, bundle or validation failure.
        """
        logger.debug("Found release %s.", release.display_name)
        try:
            return self._inspect(release, project)
        except _RELEASE_ERRORS as exc:
            raise ReleaseProcessingError(
                f"failed to get release plugin for {release.display_name}: {exc}",
                release_name=release.display_name,
                project=project.name,
            ) from exc

    def _inspect(self, release: ReleaseCandidate, project: ProjectInfo) -> PluginEntry | None:
        assets = resolve_release_assets(release)

        signature: str | None = None
        if assets.signature_asset is not None:
            signature = self._download_signature(assets.signature_asset)

        if not assets.download_url:
            logger.warning("Failed to find plugin asset for release %s.", release.display_name)
            return None

        existing = self._existing.get(assets.download_url)
        if needs_inspection(existing, assets.updated_at):
            entry = self._entry_from_bundle(assets.download_url)
            homepage = entry.homepage_url or project.html_url
        else:
            logger.debug("Skipping download since found existing plugin.")
            entry = existing
            homepage = existing.homepage_url or project.html_url

        # Release-derived fields are refreshed even for reused entries.
        entry = entry.model_copy(
            update={
                "homepage_url": homepage,
                "download_url": assets.download_url,
                "release_notes_url": release.html_url,
                "signature": signature,
                "updated_at": assets.updated_at,
            }
        )
        validate_entry(entry)
        return entry

    def _entry_from_bundle(self, download_url: str) -> PluginEntry:
        logger.debug("Fetching download url %s.", download_url)
        bundle = self._fetcher.fetch(download_url)
        manifest = read_manifest(bundle)

        icon_data = ""
        if manifest.icon_path:
            icon = read_bundle_file(bundle, manifest.icon_path)
            logger.debug("Using icon specified in manifest as %s.", manifest.icon_path)
            icon_data = to_data_uri(icon, default_mime=SVG_MIME)

        return manifest.to_entry(icon_data=icon_data)

    def _download_signature(self, asset: ReleaseAsset) -> str:
        logger.debug("Fetching signature file from %s.", asset.browser_download_url)
        return base64.b64encode(self._fetcher.fetch(asset.browser_download_url)).decode("ascii")

    # -- Whole project ---------------------------------------------------------

    def reduce(
        self, releases: Iterable[ReleaseCandidate], project: ProjectInfo
    ) -> list[PluginEntry]:
        """Reduce all *releases* of *project* to one entry per bucket.

        Returns entries sorted by descending version.

        Raises
        ------
        ReleaseProcessingError
            For the first failing release, unless ``skip_failed`` is set.
        VersionRequiredError
            If bucket comparison meets an entry without a version.
        """
        entries: list[PluginEntry] = []
        for release in select_releases(releases, self._include_prerelease):
            try:
                entry = self.inspect_release(release, project)
            except ReleaseProcessingError as exc:
                if not self._skip_failed:
                    raise
                logger.warning("Skipping release %s of %s: %s", exc.release_name, project.name, exc)
                continue
            if entry is None:
                logger.warning("No plugin found for release %s.", release.display_name)
                continue
            entries.append(entry)

        reduced = sort_by_version_desc(reduce_by_min_server_version(entries))
        logger.debug(
            "Reduced %d release plugin(s) of %s to %d bucket(s).",
            len(entries),
            project.name,
            len(reduced),
        )
        return reduced
