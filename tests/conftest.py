"""Shared test fixtures for the plugin marketplace."""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from plugin_marketplace.core.catalogue import Catalogue, encode_catalogue
from plugin_marketplace.generator.host import ReleaseHostError
from plugin_marketplace.models.plugin import PluginEntry
from plugin_marketplace.models.releases import ProjectInfo, ReleaseAsset, ReleaseCandidate


# ---------------------------------------------------------------------------
# In-memory release host
# ---------------------------------------------------------------------------


class FakeReleaseHost:
    """A ``ReleaseHost`` serving canned projects, releases and artifacts."""

    def __init__(self) -> None:
        self.projects: dict[str, ProjectInfo] = {}
        self.releases: dict[str, list[ReleaseCandidate]] = {}
        self.artifacts: dict[str, bytes] = {}
        self.fetched: list[str] = []

    def add_project(
        self, name: str, releases: list[ReleaseCandidate], html_url: str = ""
    ) -> None:
        self.projects[name] = ProjectInfo(
            name=name, html_url=html_url or f"https://github.com/mattermost/{name}"
        )
        self.releases[name] = releases

    def get_project(self, name: str) -> ProjectInfo:
        if name not in self.projects:
            raise ReleaseHostError(f"request for project {name} failed with status code 404")
        return self.projects[name]

    def list_releases(self, name: str) -> list[ReleaseCandidate]:
        return list(self.releases.get(name, []))

    def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.artifacts:
            raise ReleaseHostError(f"request to {url} failed with status code 404")
        return self.artifacts[url]


@pytest.fixture
def fake_host() -> FakeReleaseHost:
    """Provide an empty in-memory release host."""
    return FakeReleaseHost()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_entry() -> Callable[..., PluginEntry]:
    """Factory fixture: build a PluginEntry with sensible defaults."""

    def _factory(
        plugin_id: str = "com.mattermost.demo-plugin",
        version: str = "0.1.0",
        **overrides: Any,
    ) -> PluginEntry:
        defaults: dict[str, Any] = {
            "id": plugin_id,
            "version": version,
            "name": "Demo Plugin",
            "description": "A demo plugin",
            "homepage_url": "https://github.com/mattermost/mattermost-plugin-demo",
            "download_url": (
                f"https://github.com/mattermost/mattermost-plugin-demo/releases/download/"
                f"v{version}/{plugin_id}-{version}.tar.gz"
            ),
            "release_notes_url": (
                f"https://github.com/mattermost/mattermost-plugin-demo/releases/v{version}"
            ),
        }
        defaults.update(overrides)
        return PluginEntry(**defaults)

    return _factory


@pytest.fixture
def make_catalogue() -> Callable[..., Catalogue]:
    """Factory fixture: build a validated Catalogue from entries."""

    def _factory(*entries: PluginEntry) -> Catalogue:
        return Catalogue.from_bytes(encode_catalogue(entries))

    return _factory


@pytest.fixture
def make_bundle() -> Callable[..., bytes]:
    """Factory fixture: build a gzipped plugin bundle in memory.

    ``manifest=None`` produces a bundle without ``plugin.json``; a ``str``
    manifest is written verbatim (for malformed manifests).
    """

    def _factory(
        manifest: dict[str, Any] | str | None = None,
        top_dir: str = "com.mattermost.demo-plugin",
        files: dict[str, bytes] | None = None,
    ) -> bytes:
        contents: dict[str, bytes] = {}
        if isinstance(manifest, dict):
            contents["plugin.json"] = json.dumps(manifest).encode("utf-8")
        elif isinstance(manifest, str):
            contents["plugin.json"] = manifest.encode("utf-8")
        contents.update(files or {})
        contents.setdefault("server/dist/plugin-linux-amd64", b"\x7fELF")

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            for rel_path, data in contents.items():
                info = tarfile.TarInfo(name=f"{top_dir}/{rel_path}")
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
        return buffer.getvalue()

    return _factory


@pytest.fixture
def make_release() -> Callable[..., ReleaseCandidate]:
    """Factory fixture: build a ReleaseCandidate with a bundle asset.

    ``extra_assets`` are appended as-is; ``bundle=False`` omits the bundle.
    """

    def _factory(
        tag: str = "v0.1.0",
        *,
        repository: str = "mattermost-plugin-demo",
        bundle: bool = True,
        signature: bool = False,
        updated_at: datetime | None = None,
        extra_assets: list[ReleaseAsset] | None = None,
        **overrides: Any,
    ) -> ReleaseCandidate:
        version = tag.lstrip("v")
        base = f"https://github.com/mattermost/{repository}/releases/download/{tag}"
        stamp = updated_at or datetime(2019, 10, 1, 12, 0, tzinfo=timezone.utc)
        assets: list[ReleaseAsset] = []
        if bundle:
            assets.append(
                ReleaseAsset(
                    name=f"com.mattermost.demo-plugin-{version}.tar.gz",
                    browser_download_url=f"{base}/com.mattermost.demo-plugin-{version}.tar.gz",
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        if signature:
            assets.append(
                ReleaseAsset(
                    name=f"com.mattermost.demo-plugin-{version}.tar.gz.sig",
                    browser_download_url=f"{base}/com.mattermost.demo-plugin-{version}.tar.gz.sig",
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
        assets.extend(extra_assets or [])
        fields: dict[str, Any] = {
            "tag_name": tag,
            "name": f"Release {tag}",
            "html_url": f"https://github.com/mattermost/{repository}/releases/tag/{tag}",
            "assets": assets,
        }
        fields.update(overrides)
        return ReleaseCandidate(**fields)

    return _factory


@pytest.fixture
def publish_release(
    fake_host: FakeReleaseHost,
    make_bundle: Callable[..., bytes],
) -> Callable[..., None]:
    """Register a release's bundle (and signature) artifacts on the fake host."""

    def _publish(
        release: ReleaseCandidate,
        manifest: dict[str, Any] | str | None,
        files: dict[str, bytes] | None = None,
        signature: bytes = b"signature",
    ) -> None:
        for asset in release.assets:
            if asset.name.endswith(".tar.gz"):
                fake_host.artifacts[asset.browser_download_url] = make_bundle(
                    manifest, files=files
                )
            elif asset.name.endswith((".sig", ".asc")):
                fake_host.artifacts[asset.browser_download_url] = signature

    return _publish


@pytest.fixture
def demo_manifest() -> Callable[..., dict[str, Any]]:
    """Factory fixture: a plugin.json payload for the demo plugin."""

    def _factory(version: str = "0.1.0", **overrides: Any) -> dict[str, Any]:
        manifest: dict[str, Any] = {
            "id": "com.mattermost.demo-plugin",
            "name": "Demo Plugin",
            "description": "A demo plugin",
            "version": version,
        }
        manifest.update(overrides)
        return manifest

    return _factory


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Path for a temporary plugins.json database."""
    return tmp_path / "plugins.json"
