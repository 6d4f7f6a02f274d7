"""Data models for verity.

This module exports the core data structures used throughout the application.
"""

from verity.models.image import (
    DEFAULT_REGISTRY,
    ImageRef,
    ImageRefError,
    format_reference,
    normalize_image_ref,
    parse_image_ref,
    sanitize_image_name,
)
from verity.models.manifest import ChartDiscovery, DiscoveryManifest, ImageDiscovery
from verity.models.release import (
    ImageDecision,
    ImageMapping,
    PublishedRelease,
    ReleaseDecision,
)
from verity.models.result import (
    Failed,
    ImageOutcome,
    Missing,
    PatchOutcome,
    Skipped,
    Succeeded,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "ChartDiscovery",
    "DiscoveryManifest",
    "Failed",
    "ImageDecision",
    "ImageDiscovery",
    "ImageMapping",
    "ImageOutcome",
    "ImageRef",
    "ImageRefError",
    "Missing",
    "PatchOutcome",
    "PublishedRelease",
    "ReleaseDecision",
    "Skipped",
    "Succeeded",
    "format_reference",
    "normalize_image_ref",
    "parse_image_ref",
    "sanitize_image_name",
]
