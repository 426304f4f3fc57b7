"""Catalogue store core — version ordering, validation, loading and querying."""

from plugin_marketplace.core.catalogue import (
    Catalogue,
    CatalogueDecodeError,
    CatalogueHolder,
    CatalogueValidationError,
    encode_catalogue,
)
from plugin_marketplace.core.query_engine import QueryEngine
from plugin_marketplace.core.semver import InvalidVersionError, SemVer
from plugin_marketplace.core.validator import InvalidEntryError, validate_entry

__all__ = [
    "Catalogue",
    "CatalogueDecodeError",
    "CatalogueHolder",
    "CatalogueValidationError",
    "InvalidEntryError",
    "InvalidVersionError",
    "QueryEngine",
    "SemVer",
    "encode_catalogue",
    "validate_entry",
]
