"""Tests for the catalogue, manifest and release models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from plugin_marketplace.models import (
    PluginEntry,
    PluginManifest,
    ProjectInfo,
    ReleaseAsset,
    ReleaseCandidate,
)


class TestPluginEntry:
    def test_aliases_accepted(self):
        entry = PluginEntry.model_validate(
            {
                "id": "demo",
                "version": "1.0.0",
                "minServerVersion": "5.12.0",
                "homepageURL": "https://example.com",
                "downloadURL": "https://example.com/demo.tar.gz",
                "releaseNotesURL": "https://example.com/notes",
                "iconData": "data:image/svg+xml;base64,PHN2Zz4=",
                "updatedAt": "2019-10-01T12:00:00Z",
            }
        )
        assert entry.min_server_version == "5.12.0"
        assert entry.download_url.endswith("demo.tar.gz")
        assert entry.updated_at == datetime(2019, 10, 1, 12, 0, tzinfo=timezone.utc)

    def test_field_names_accepted(self):
        entry = PluginEntry(id="demo", version="1.0.0", homepage_url="https://example.com")
        assert entry.homepage_url == "https://example.com"

    def test_json_uses_aliases(self, make_entry):
        data = make_entry(min_server_version="5.0.0", signature="c2ln").to_json_dict()
        assert data["minServerVersion"] == "5.0.0"
        assert data["downloadURL"].endswith(".tar.gz")
        assert data["signature"] == "c2ln"
        assert "min_server_version" not in data

    def test_json_omits_unset_and_none(self):
        data = PluginEntry(id="demo", version="1.0.0", signature=None).to_json_dict()
        assert data == {"id": "demo", "version": "1.0.0"}

    def test_identity(self, make_entry):
        assert make_entry("demo", "2.0.0").identity == ("demo", "2.0.0")

    def test_has_min_server_version(self, make_entry):
        assert make_entry(min_server_version="5.0.0").has_min_server_version
        assert not make_entry(min_server_version="").has_min_server_version
        assert not make_entry().has_min_server_version

    def test_frozen(self, make_entry):
        entry = make_entry()
        with pytest.raises(ValidationError):
            entry.version = "9.9.9"

    def test_model_copy_marks_updates_as_set(self):
        entry = PluginEntry(id="demo", version="1.0.0")
        updated = entry.model_copy(update={"signature": "c2ln"})
        assert updated.to_json_dict()["signature"] == "c2ln"


class TestPluginManifest:
    def test_parses_plugin_json(self):
        manifest = PluginManifest.model_validate_json(
            b'{"id": "demo", "name": "Demo", "version": "0.3.0",'
            b' "min_server_version": "5.12.0", "icon_path": "assets/icon.svg",'
            b' "server": {"executables": {}}}'
        )
        assert manifest.icon_path == "assets/icon.svg"
        assert manifest.min_server_version == "5.12.0"

    def test_to_entry(self):
        manifest = PluginManifest(id="demo", name="Demo", version="0.3.0", min_server_version="5.12.0")
        entry = manifest.to_entry(download_url="https://example.com/demo.tar.gz")
        assert entry.id == "demo"
        assert entry.min_server_version == "5.12.0"
        assert entry.download_url == "https://example.com/demo.tar.gz"

    def test_to_entry_without_min_server_version(self):
        entry = PluginManifest(id="demo", version="0.3.0").to_entry()
        assert entry.min_server_version is None
        assert "minServerVersion" not in entry.to_json_dict()

    def test_overrides_win(self):
        entry = PluginManifest(id="demo", version="0.3.0", homepage_url="a").to_entry(homepage_url="b")
        assert entry.homepage_url == "b"


class TestReleaseModels:
    def test_display_name(self, make_release):
        assert make_release("v1.0.0").display_name == "Release v1.0.0 (v1.0.0)"
        assert make_release("v1.0.0", name=None).display_name == "v1.0.0"
        assert make_release("v1.0.0", name="").display_name == "v1.0.0"

    def test_release_from_api_payload(self):
        release = ReleaseCandidate.model_validate(
            {
                "tag_name": "v0.1.0",
                "name": "v0.1.0",
                "draft": False,
                "prerelease": True,
                "html_url": "https://github.com/mattermost/demo/releases/tag/v0.1.0",
                "author": {"login": "someone"},
                "assets": [
                    {
                        "name": "demo-0.1.0.tar.gz",
                        "browser_download_url": "https://example.com/demo-0.1.0.tar.gz",
                        "created_at": "2019-10-01T12:00:00Z",
                        "updated_at": "2019-10-02T12:00:00Z",
                        "size": 1024,
                    }
                ],
            }
        )
        assert release.prerelease is True
        assert isinstance(release.assets[0], ReleaseAsset)
        assert release.assets[0].updated_at.day == 2

    def test_project_requires_name(self):
        with pytest.raises(ValidationError):
            ProjectInfo.model_validate({"html_url": "https://example.com"})
