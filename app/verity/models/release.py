"""Release decision models.

This module defines the per-chart release decision produced by the
aggregation engine and the published-release record written at the end
of a pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from verity.models.image import ImageRef
from verity.models.manifest import ChartDiscovery, ImageDiscovery
from verity.models.result import Failed, ImageOutcome, Missing, Skipped, Succeeded


@dataclass(frozen=True, slots=True)
class ImageMapping:
    """Original image and the patched image that replaces it.

    Attributes:
        original: Image as discovered in the chart.
        patched: Patched (or mirrored) counterpart.
    """

    original: ImageRef
    patched: ImageRef

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"original": self.original.reference, "patched": self.patched.reference}


@dataclass(frozen=True, slots=True)
class ImageDecision:
    """Aggregated outcome of one image within a chart.

    Attributes:
        image: Discovered image entry.
        outcome: Tagged patch outcome for the image.
    """

    image: ImageDiscovery
    outcome: ImageOutcome

    @property
    def original(self) -> ImageRef:
        """Original image reference."""
        return ImageRef.from_discovery(self.image)

    @property
    def patched(self) -> ImageRef | None:
        """Patched counterpart, if the outcome carries one."""
        if isinstance(self.outcome, Succeeded | Skipped):
            return self.outcome.patched
        return None

    @property
    def changed(self) -> bool:
        """Whether this image moved to a new patched build."""
        return isinstance(self.outcome, Succeeded) and self.outcome.changed

    @property
    def failed(self) -> bool:
        """Whether the patch attempt failed."""
        return isinstance(self.outcome, Failed)

    @property
    def skip_reason(self) -> str | None:
        """Why the image was skipped, or None if it was not."""
        if isinstance(self.outcome, Skipped | Missing):
            return self.outcome.reason
        return None

    @property
    def vuln_count(self) -> int:
        """Fixable vulnerabilities addressed by the patch."""
        if isinstance(self.outcome, Succeeded):
            return self.outcome.vuln_count
        return 0

    @property
    def mapping(self) -> ImageMapping | None:
        """Original/patched pair eligible for publishing, if any."""
        patched = self.patched
        if patched is None:
            return None
        return ImageMapping(original=self.original, patched=patched)


@dataclass(frozen=True, slots=True)
class ReleaseDecision:
    """Whether a chart needs a new release, and with which images.

    Attributes:
        chart: Chart as discovered.
        images: Per-image decisions in declaration order.
    """

    chart: ChartDiscovery
    images: tuple[ImageDecision, ...]

    @property
    def has_changes(self) -> bool:
        """True if at least one image in the chart changed."""
        return any(img.changed for img in self.images)

    @property
    def included_images(self) -> tuple[ImageMapping, ...]:
        """Images that go into the released chart, in declaration order.

        Failed and resultless images are omitted; mirrored images that were
        skipped but carry a patched reference are kept.
        """
        return tuple(m for img in self.images if (m := img.mapping) is not None)

    @property
    def changed_count(self) -> int:
        return sum(1 for img in self.images if img.changed)

    @property
    def failed_count(self) -> int:
        return sum(1 for img in self.images if img.failed)

    @property
    def skipped_count(self) -> int:
        return sum(1 for img in self.images if img.skip_reason is not None)


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    """A chart release recorded in published-charts.json.

    Attributes:
        name: Chart name.
        version: Released chart version.
        registry: Registry the chart was published to.
        release_ref: OCI reference of the released chart.
        images: Original/patched image pairs included in the release.
    """

    name: str
    version: str
    registry: str
    release_ref: str
    images: tuple[ImageMapping, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "registry": self.registry,
            "oci_ref": self.release_ref,
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishedRelease:
        """Create a PublishedRelease from a dictionary.

        Args:
            data: Dictionary as written by to_dict().

        Returns:
            PublishedRelease instance.

        Raises:
            KeyError: If a required field is missing.
        """
        return cls(
            name=data["name"],
            version=data["version"],
            registry=data.get("registry", ""),
            release_ref=data.get("oci_ref", ""),
            images=tuple(
                ImageMapping(
                    original=ImageRef.parse(img["original"]),
                    patched=ImageRef.parse(img["patched"]),
                )
                for img in data.get("images") or []
            ),
        )
