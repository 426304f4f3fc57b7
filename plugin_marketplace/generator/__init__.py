"""Catalogue generator — crawls plugin releases and reduces them to entries."""

from plugin_marketplace.generator.bundle import (
    BundleError,
    ManifestInvalidError,
    ManifestMissingError,
)
from plugin_marketplace.generator.host import GitHubReleaseHost, ReleaseHost, ReleaseHostError
from plugin_marketplace.generator.pipeline import (
    CatalogueGenerator,
    ProjectGenerationError,
    load_existing,
)
from plugin_marketplace.generator.reducer import (
    MultipleSignaturesError,
    ReleaseProcessingError,
    ReleaseReducer,
    VersionRequiredError,
)

__all__ = [
    "BundleError",
    "CatalogueGenerator",
    "GitHubReleaseHost",
    "ManifestInvalidError",
    "ManifestMissingError",
    "MultipleSignaturesError",
    "ProjectGenerationError",
    "ReleaseHost",
    "ReleaseHostError",
    "ReleaseProcessingError",
    "ReleaseReducer",
    "VersionRequiredError",
    "load_existing",
]
