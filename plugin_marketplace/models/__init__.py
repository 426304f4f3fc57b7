"""Marketplace data models — all Pydantic v2, all frozen (immutable)."""

from plugin_marketplace.models.plugin import PluginEntry, PluginManifest
from plugin_marketplace.models.query import (
    InvalidQueryError,
    PluginQuery,
    QueryResult,
    SortField,
)
from plugin_marketplace.models.releases import ProjectInfo, ReleaseAsset, ReleaseCandidate

__all__ = [
    # catalogue
    "PluginEntry",
    "PluginManifest",
    # releases
    "ProjectInfo",
    "ReleaseAsset",
    "ReleaseCandidate",
    # queries
    "InvalidQueryError",
    "PluginQuery",
    "QueryResult",
    "SortField",
]
