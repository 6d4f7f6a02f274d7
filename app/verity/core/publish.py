"""Published-release record I/O.

The published-release record (published-charts.json) lists every chart
released by a pipeline run together with the image mapping baked into it.
It is written once per run and never updated in place; a run with no
released charts writes no file at all.

Because each run replaces that record, released chart versions are also
appended to a release history (release-history.json) that is never
truncated. The history is what keeps a chart from being given a version
that an earlier run already published.
"""

import json
import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from verity.models.release import PublishedRelease

logger = logging.getLogger(__name__)

PUBLISHED_FILENAME = "published-charts.json"
HISTORY_FILENAME = "release-history.json"


class PublishError(Exception):
    """Raised when the published-release record cannot be read or written."""


def get_published_path(output_dir: Path) -> Path:
    """Path of the published-release record inside an output directory."""
    return output_dir / PUBLISHED_FILENAME


def get_history_path(output_dir: Path) -> Path:
    """Path of the release history inside an output directory."""
    return output_dir / HISTORY_FILENAME


def _write_json(data: Any, path: Path) -> None:
    """Write JSON atomically via a temporary file and os.replace().

    Raises:
        OSError: If the file cannot be written.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


def _read_json(path: Path, what: str) -> Any:
    """Read a JSON document, wrapping failures in PublishError."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise PublishError(f"Failed to read {what}: {e}") from e
    except json.JSONDecodeError as e:
        raise PublishError(f"Invalid JSON in {path}: {e}") from e


def write_published_releases(
    releases: Sequence[PublishedRelease],
    output_dir: Path,
) -> Path | None:
    """Write the published-release record.

    Args:
        releases: Released charts in manifest order.
        output_dir: Directory to write published-charts.json into.

    Returns:
        Path of the written file, or None if there was nothing to write.

    Raises:
        PublishError: If the file cannot be written.
    """
    if not releases:
        logger.debug("No charts released, not writing %s", PUBLISHED_FILENAME)
        return None

    path = get_published_path(output_dir)
    try:
        _write_json([release.to_dict() for release in releases], path)
    except OSError as e:
        raise PublishError(f"Failed to write published charts: {e}") from e

    logger.info("Wrote %d released chart(s) to %s", len(releases), path)
    return path


def load_published_releases(path: Path) -> list[PublishedRelease]:
    """Load a published-release record written by a previous run.

    Args:
        path: Path to published-charts.json.

    Returns:
        Released charts, or an empty list if the file does not exist.

    Raises:
        PublishError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return []

    data = _read_json(path, "published charts")
    if not isinstance(data, list):
        raise PublishError(f"Expected a list of charts in {path}")

    try:
        return [PublishedRelease.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        raise PublishError(f"Invalid published chart entry in {path}: {e}") from e


def published_versions(releases: Sequence[PublishedRelease]) -> dict[str, list[str]]:
    """Group released chart versions by chart name."""
    versions: dict[str, list[str]] = {}
    for release in releases:
        versions.setdefault(release.name, []).append(release.version)
    return versions


def merge_versions(*sources: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Union chart versions from several sources, keeping first-seen order."""
    merged: dict[str, list[str]] = {}
    for source in sources:
        for name, versions in source.items():
            known = merged.setdefault(name, [])
            known.extend(v for v in versions if v not in known)
    return merged


def load_release_history(path: Path) -> dict[str, list[str]]:
    """Load every chart version released so far.

    Args:
        path: Path to release-history.json.

    Returns:
        Versions keyed by chart name, or an empty dict if there is no history.

    Raises:
        PublishError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return {}

    data = _read_json(path, "release history")
    if not isinstance(data, dict) or not all(
        isinstance(versions, list) and all(isinstance(v, str) for v in versions)
        for versions in data.values()
    ):
        raise PublishError(f"Expected chart names mapped to version lists in {path}")
    return {str(name): list(versions) for name, versions in data.items()}


def record_release_history(
    releases: Sequence[PublishedRelease],
    history: Mapping[str, Iterable[str]],
    output_dir: Path,
) -> Path | None:
    """Append released versions to the release history.

    Existing entries are never dropped, so a chart that skips a run still
    remembers the versions it was published under.

    Args:
        releases: Charts released by this run.
        history: History loaded before this run.
        output_dir: Directory holding release-history.json.

    Returns:
        Path of the history file, or None if nothing was released.

    Raises:
        PublishError: If the file cannot be written.
    """
    if not releases:
        return None

    path = get_history_path(output_dir)
    merged = merge_versions(history, published_versions(releases))
    try:
        _write_json(merged, path)
    except OSError as e:
        raise PublishError(f"Failed to write release history: {e}") from e

    logger.debug("Recorded %d release(s) in %s", len(releases), path)
    return path
