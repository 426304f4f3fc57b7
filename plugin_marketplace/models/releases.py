"""Release host models — raw release metadata feeding the reducer.

These mirror the subset of the GitHub releases API the generator needs.
They are ephemeral: built per run from API JSON and never persisted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReleaseAsset(BaseModel):
    """A file attached to a release (bundle, signature, checksum, ...)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    browser_download_url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReleaseCandidate(BaseModel):
    """One release of a plugin project as reported by the release host."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tag_name: str = ""
    name: str | None = ""
    html_url: str = ""
    draft: bool = False
    prerelease: bool = False
    published_at: datetime | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Human-readable release name used in logs and errors."""
        if not self.name:
            return self.tag_name
        return f"{self.name} ({self.tag_name})"


class ProjectInfo(BaseModel):
    """The host project (repository) a plugin is released from."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    html_url: str = ""
