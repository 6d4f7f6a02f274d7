"""Per-image patch result models.

This module defines the JSON record written by each isolated patch job
(PatchOutcome) and the tagged variant the aggregation engine works with
(ImageOutcome). A record carries overlapping optional fields; converting it
into an ImageOutcome makes the precedence explicit:
error > skipped > success, and no record at all is Missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from verity.models.image import ImageRef, format_reference

# Skip reasons reported by the aggregation engine
SKIP_REASON_NO_PATCH_RESULT = "no patch result"
SKIP_REASON_UP_TO_DATE = "already up to date"


class PatchOutcome(BaseModel):
    """Outcome of a single patch job, as written to the results directory.

    Attributes:
        image_ref: Original image reference the job patched.
        patched_registry: Registry of the patched image.
        patched_repository: Repository of the patched image.
        patched_tag: Tag of the patched image.
        vuln_count: Number of fixable vulnerabilities found.
        skipped: Whether the job skipped patching.
        skip_reason: Why the job skipped patching.
        error: Error message if the patch attempt failed.
        changed: Whether a new patched image distinct from the original was produced.
    """

    model_config = ConfigDict(frozen=True)

    image_ref: Annotated[str, Field(description="Original image reference")] = ""
    patched_registry: Annotated[str, Field(description="Patched image registry")] = ""
    patched_repository: Annotated[str, Field(description="Patched image repository")] = ""
    patched_tag: Annotated[str, Field(description="Patched image tag")] = ""
    vuln_count: Annotated[int, Field(ge=0, description="Fixable vulnerability count")] = 0
    skipped: Annotated[bool, Field(description="Patching was skipped")] = False
    skip_reason: Annotated[str, Field(description="Reason patching was skipped")] = ""
    error: Annotated[str, Field(description="Error message on failure")] = ""
    changed: Annotated[bool, Field(description="A new patched image was produced")] = False

    @property
    def patched_image(self) -> ImageRef | None:
        """Patched image reference, or None if the record carries none."""
        if not self.patched_repository:
            return None
        return ImageRef(
            repository=self.patched_repository,
            registry=self.patched_registry or None,
            tag=self.patched_tag or None,
        )

    @property
    def patched_reference(self) -> str:
        """Patched image reference string (empty if none)."""
        if not self.patched_repository:
            return ""
        return format_reference(self.patched_registry, self.patched_repository, self.patched_tag)

    def to_outcome(self) -> ImageOutcome:
        """Convert the record into a tagged outcome."""
        if self.error:
            return Failed(error=self.error)
        if self.skipped:
            return Skipped(
                reason=self.skip_reason or SKIP_REASON_UP_TO_DATE,
                patched=self.patched_image,
            )
        return Succeeded(
            patched=self.patched_image,
            vuln_count=self.vuln_count,
            changed=self.changed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization, omitting empty strings."""
        data = self.model_dump()
        return {key: value for key, value in data.items() if value != "" or key == "image_ref"}


@dataclass(frozen=True, slots=True)
class Succeeded:
    """The patch job produced (or confirmed) a patched image.

    Attributes:
        patched: Patched image reference, None if the job reported none.
        vuln_count: Number of fixable vulnerabilities addressed.
        changed: Whether a new patched image distinct from the original was produced.
    """

    patched: ImageRef | None
    vuln_count: int = 0
    changed: bool = True


@dataclass(frozen=True, slots=True)
class Skipped:
    """The patch job decided not to patch.

    Attributes:
        reason: Why the image was skipped.
        patched: Mirrored/re-tagged reference kept for bookkeeping, if any.
    """

    reason: str
    patched: ImageRef | None = None


@dataclass(frozen=True, slots=True)
class Failed:
    """The patch attempt failed."""

    error: str


@dataclass(frozen=True, slots=True)
class Missing:
    """No patch result was produced for the image."""

    reason: str = SKIP_REASON_NO_PATCH_RESULT


ImageOutcome = Succeeded | Skipped | Failed | Missing
