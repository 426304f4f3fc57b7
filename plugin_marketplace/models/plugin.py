"""Plugin catalogue models — the entry served by the store and the bundle manifest.

``PluginEntry`` is the unit of the catalogue: one installable version of
one plugin.  It is frozen once built; the catalogue is replaced wholesale
on regeneration rather than patched.

``PluginManifest`` is the ``plugin.json`` embedded in a plugin bundle.  The
generator reads it and turns it into a ``PluginEntry``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Catalogue entry
# ---------------------------------------------------------------------------

class PluginEntry(BaseModel):
    """Immutable record of a single catalogue entry.

    Structural invariants (non-empty ``id``, SemVer ``version``) are checked
    by :mod:`plugin_marketplace.core.validator` rather than by pydantic, so
    a malformed database is reported with the validator's error kinds.

    Examples
    --------
    >>> entry = PluginEntry(
    ...     id="com.mattermost.demo-plugin",
    ...     version="0.1.0",
    ...     name="Demo Plugin",
    ...     min_server_version="5.12.0",
    ... )
    >>> entry.to_json_dict()["minServerVersion"]
    '5.12.0'
    >>> "signature" in entry.to_json_dict()
    False
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = ""
    min_server_version: str | None = Field(default=None, alias="minServerVersion")
    homepage_url: str = Field(default="", alias="homepageURL")
    download_url: str = Field(default="", alias="downloadURL")
    release_notes_url: str = Field(default="", alias="releaseNotesURL")
    icon_data: str = Field(default="", alias="iconData")  # data:<mime>;base64,<payload>
    signature: str | None = None  # base64 detached signature
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @property
    def identity(self) -> tuple[str, str]:
        """The ``(id, version)`` pair that must be unique in a catalogue."""
        return (self.id, self.version)

    @property
    def has_min_server_version(self) -> bool:
        """Whether the entry declares a minimum server version."""
        return bool(self.min_server_version)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with catalogue field names.

        Unset and ``None`` fields are omitted so that absent optionals do
        not reappear as ``null`` after a decode/encode round trip.
        """
        return self.model_dump(
            mode="json", by_alias=True, exclude_unset=True, exclude_none=True
        )


# ---------------------------------------------------------------------------
# Bundle manifest
# ---------------------------------------------------------------------------

class PluginManifest(BaseModel):
    """Schema for the ``plugin.json`` found at the root of a plugin bundle."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = ""
    min_server_version: str = ""
    homepage_url: str = ""
    icon_path: str = ""

    def to_entry(self, **overrides: Any) -> PluginEntry:
        """Build a ``PluginEntry`` from this manifest.

        Keyword *overrides* use ``PluginEntry`` field names and win over the
        manifest's values.
        """
        fields: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "homepage_url": self.homepage_url,
        }
        if self.min_server_version:
            fields["min_server_version"] = self.min_server_version
        fields.update(overrides)
        return PluginEntry(**fields)
