"""Change aggregation engine.

This module provides the AggregationEngine class that joins the discovery
manifest against the per-image patch results and decides, per chart,
whether the chart must be re-released.

A chart is released only if at least one of its images changed. Charts
whose images are all unchanged, skipped, failed or resultless are left
alone: no version is minted and nothing is published for them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from verity.core.results import outcome_for
from verity.core.tags import next_patched_tag
from verity.models.release import ImageDecision, PublishedRelease, ReleaseDecision
from verity.models.result import Missing

if TYPE_CHECKING:
    from verity.models.manifest import ChartDiscovery, DiscoveryManifest
    from verity.models.result import PatchOutcome

# Mints the release version of a chart
ChartVersioner = Callable[["ChartDiscovery"], str]


def patched_chart_versioner(
    published_versions: Mapping[str, Iterable[str]] | None = None,
) -> ChartVersioner:
    """Create a versioner that derives release versions like image tags.

    Chart version 28.9.1 is released as 28.9.1-patched, then
    28.9.1-patched-1, and so on, never reusing a version already published
    for the same chart.

    Args:
        published_versions: Versions already published, keyed by chart name.

    Returns:
        Callable mapping a chart to its next release version.
    """
    known = {name: list(versions) for name, versions in (published_versions or {}).items()}

    def versioner(chart: ChartDiscovery) -> str:
        return next_patched_tag(known.get(chart.name, []), chart.version)

    return versioner


def release_ref(registry: str, name: str, version: str) -> str:
    """OCI reference of a released chart."""
    return f"{registry}/charts/{name}:{version}"


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Release decisions for every chart in a manifest.

    Attributes:
        decisions: One decision per chart, in manifest order.
    """

    decisions: tuple[ReleaseDecision, ...] = field(default_factory=tuple)

    @property
    def released(self) -> tuple[ReleaseDecision, ...]:
        """Decisions for charts that have changes."""
        return tuple(d for d in self.decisions if d.has_changes)

    @property
    def unchanged(self) -> tuple[ReleaseDecision, ...]:
        """Decisions for charts left alone."""
        return tuple(d for d in self.decisions if not d.has_changes)

    @property
    def has_releases(self) -> bool:
        return bool(self.released)

    def _images(self) -> Iterable[ImageDecision]:
        for decision in self.decisions:
            yield from decision.images

    @property
    def changed_count(self) -> int:
        return sum(1 for img in self._images() if img.changed)

    @property
    def skipped_count(self) -> int:
        return sum(1 for img in self._images() if img.skip_reason is not None)

    @property
    def failed_count(self) -> int:
        return sum(1 for img in self._images() if img.failed)

    @property
    def missing_count(self) -> int:
        return sum(1 for img in self._images() if isinstance(img.outcome, Missing))

    def published_releases(
        self,
        registry: str,
        versioner: ChartVersioner | None = None,
    ) -> list[PublishedRelease]:
        """Build the published-release records for charts with changes.

        Args:
            registry: Registry the charts are published to.
            versioner: Mints release versions. Defaults to patched_chart_versioner().

        Returns:
            Records in manifest order; empty when nothing changed.
        """
        versioner = versioner or patched_chart_versioner()
        releases: list[PublishedRelease] = []
        for decision in self.released:
            chart = decision.chart
            version = versioner(chart)
            releases.append(
                PublishedRelease(
                    name=chart.name,
                    version=version,
                    registry=registry,
                    release_ref=release_ref(registry, chart.name, version),
                    images=decision.included_images,
                )
            )
        return releases

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with summary counts and per-chart decisions.
        """
        return {
            "summary": {
                "charts": len(self.decisions),
                "released": len(self.released),
                "changed": self.changed_count,
                "skipped": self.skipped_count,
                "failed": self.failed_count,
                "missing": self.missing_count,
            },
            "charts": [_decision_to_dict(d) for d in self.decisions],
        }


def _decision_to_dict(decision: ReleaseDecision) -> dict[str, Any]:
    """Convert a ReleaseDecision to a dictionary."""
    images: list[dict[str, Any]] = []
    for img in decision.images:
        entry: dict[str, Any] = {
            "original": img.original.reference,
            "status": _status_name(img),
            "changed": img.changed,
        }
        if img.patched is not None:
            entry["patched"] = img.patched.reference
        if img.skip_reason is not None:
            entry["skip_reason"] = img.skip_reason
        if img.failed:
            entry["error"] = img.outcome.error  # type: ignore[union-attr]
        if img.vuln_count:
            entry["vuln_count"] = img.vuln_count
        images.append(entry)

    return {
        "name": decision.chart.name,
        "version": decision.chart.version,
        "has_changes": decision.has_changes,
        "images": images,
    }


def _status_name(img: ImageDecision) -> str:
    """Short status label for an image decision."""
    return type(img.outcome).__name__.lower()


class AggregationEngine:
    """Engine for deciding which charts need a new release.

    The engine is a pure fold over the manifest and the result lookup; it
    performs no I/O and never mutates its inputs.

    Example:
        >>> from verity.core.aggregate import AggregationEngine
        >>> from verity.core.manifest import load_manifest
        >>> from verity.core.results import load_results
        >>> engine = AggregationEngine(load_manifest(path), load_results(results_dir))
        >>> result = engine.decide()
        >>> for decision in result.released:
        ...     print(decision.chart.name)
    """

    def __init__(self, manifest: DiscoveryManifest, results: Mapping[str, PatchOutcome]) -> None:
        """Initialize the AggregationEngine.

        Args:
            manifest: Discovery manifest describing charts and their images.
            results: Patch results keyed by canonical image reference.
        """
        self.manifest = manifest
        self.results = results

    def decide_chart(self, chart: ChartDiscovery) -> ReleaseDecision:
        """Decide whether a single chart needs a new release.

        Args:
            chart: Chart to decide on.

        Returns:
            ReleaseDecision with one ImageDecision per declared image.
        """
        images = tuple(
            ImageDecision(image=img, outcome=outcome_for(self.results.get(img.canonical)))
            for img in chart.images
        )
        return ReleaseDecision(chart=chart, images=images)

    def decide(self) -> AggregationResult:
        """Decide for every chart in the manifest.

        Returns:
            AggregationResult with decisions in manifest order.
        """
        return AggregationResult(
            decisions=tuple(self.decide_chart(chart) for chart in self.manifest.charts)
        )
