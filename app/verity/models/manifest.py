"""Discovery manifest models.

This module defines the Pydantic models representing the manifest.json
document written by the discovery stage: every chart with the images it
embeds, plus the flat de-duplicated image list used for matrix fan-out.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from verity.models.image import format_reference, normalize_image_ref


class ImageDiscovery(BaseModel):
    """A single discovered image with its Helm values path.

    Attributes:
        registry: Registry host (may be empty).
        repository: Repository path.
        tag: Image tag (may be empty).
        path: Dot-separated values path (e.g., "server.image").
    """

    model_config = ConfigDict(frozen=True)

    registry: Annotated[str, Field(description="Registry host")] = ""
    repository: Annotated[str, Field(min_length=1, description="Repository path")]
    tag: Annotated[str, Field(description="Image tag")] = ""
    path: Annotated[str, Field(description="Dot-separated values path")] = ""

    @property
    def reference(self) -> str:
        """Reference string as discovered, without normalization."""
        return format_reference(self.registry, self.repository, self.tag)

    @property
    def canonical(self) -> str:
        """Normalized reference used to look up patch results."""
        return normalize_image_ref(self.reference)


class ChartDiscovery(BaseModel):
    """Images found in a single Helm chart dependency.

    Attributes:
        name: Chart name.
        version: Upstream chart version.
        repository: Chart repository URL (oci://, https:// or file://).
        images: Images embedded by the chart, in declaration order.
    """

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(min_length=1, description="Chart name")]
    version: Annotated[str, Field(description="Upstream chart version")] = ""
    repository: Annotated[str, Field(description="Chart repository URL")] = ""
    images: Annotated[
        tuple[ImageDiscovery, ...],
        Field(default_factory=tuple, description="Images embedded by the chart"),
    ]


class DiscoveryManifest(BaseModel):
    """All images discovered in one pipeline run.

    Attributes:
        charts: Charts in declaration order.
        images: Flat de-duplicated union of every chart's images.
    """

    model_config = ConfigDict(frozen=True)

    charts: Annotated[
        tuple[ChartDiscovery, ...],
        Field(default_factory=tuple, description="Charts in declaration order"),
    ]
    images: Annotated[
        tuple[ImageDiscovery, ...],
        Field(default_factory=tuple, description="Flat image list for fan-out"),
    ]

    def unlisted_images(self) -> list[str]:
        """Find chart images that are missing from the flat image list.

        Returns:
            Canonical references present under a chart but absent from
            ``images``, in first-seen order.
        """
        listed = {img.canonical for img in self.images}
        missing: list[str] = []
        for chart in self.charts:
            for img in chart.images:
                ref = img.canonical
                if ref not in listed and ref not in missing:
                    missing.append(ref)
        return missing

    @property
    def image_count(self) -> int:
        """Number of images in the flat list."""
        return len(self.images)
