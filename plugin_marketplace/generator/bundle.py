"""Plugin bundle inspection — reads files out of a ``.tar.gz`` plugin bundle.

A bundle is a gzipped tarball with a single top-level directory named after
the plugin id::

    com.mattermost.demo-plugin/
        plugin.json          — the manifest
        assets/icon.svg      — optional, referenced by ``icon_path``
        server/dist/...

Files are located relative to that top-level directory.
"""

from __future__ import annotations

import io
import logging
import tarfile

from pydantic import ValidationError

from plugin_marketplace.models.plugin import PluginManifest

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "plugin.json"


class BundleError(RuntimeError):
    """Raised when a bundle cannot be read or lacks a required file."""


class BundleFileMissingError(BundleError):
    """Raised when a requested file is not present in a bundle."""


class ManifestMissingError(BundleFileMissingError):
    """Raised when a bundle has no ``plugin.json``."""


class ManifestInvalidError(BundleError):
    """Raised when a bundle's ``plugin.json`` cannot be parsed."""


def _matches(member_name: str, filepath: str) -> bool:
    """Match ``<top-dir>/<filepath>`` with exactly one leading directory."""
    top, sep, rest = member_name.partition("/")
    return bool(sep) and "/" not in top and rest == filepath.lstrip("/")


def read_bundle_file(bundle: bytes, filepath: str) -> bytes:
    """Return the contents of *filepath* inside the gzipped tar *bundle*.

    Raises
    ------
    BundleError
        If the bundle is not a readable ``.tar.gz`` or the file is absent.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(bundle), mode="r:gz") as archive:
            for member in archive:
                if not member.isfile() or not _matches(member.name, filepath):
                    continue
                extracted = archive.extractfile(member)
                if extracted is None:
                    continue
                return extracted.read()
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise BundleError(f"failed to read tar file: {exc}") from exc
    raise BundleFileMissingError(f"failed to find {filepath} in tar file")


def read_manifest(bundle: bytes) -> PluginManifest:
    """Locate and parse the bundle's ``plugin.json``.

    Raises
    ------
    ManifestMissingError
        If the bundle contains no manifest.
    ManifestInvalidError
        If the manifest is not a valid JSON object.
    BundleError
        If the archive itself is unreadable.
    """
    try:
        data = read_bundle_file(bundle, MANIFEST_FILENAME)
    except BundleFileMissingError as exc:
        raise ManifestMissingError(
            f"failed to read manifest from plugin bundle: {exc}"
        ) from exc
    try:
        manifest = PluginManifest.model_validate_json(data)
    except ValidationError as exc:
        raise ManifestInvalidError(f"failed to parse plugin manifest: {exc}") from exc
    logger.debug("Read manifest for plugin %s v%s.", manifest.id, manifest.version)
    return manifest
