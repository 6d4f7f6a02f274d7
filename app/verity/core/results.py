"""Per-image patch result I/O.

Each patch job runs in isolation and writes exactly one JSON record into a
shared results directory. This module loads that directory into a read-only
lookup keyed by canonical image reference, and writes records on behalf of
patch jobs.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from tempfile import NamedTemporaryFile
from types import MappingProxyType

from pydantic import ValidationError

from verity.models.image import normalize_image_ref, sanitize_image_name
from verity.models.result import ImageOutcome, Missing, PatchOutcome

logger = logging.getLogger(__name__)

RESULT_SUFFIX = ".json"


class ResultsError(Exception):
    """Raised when the results directory cannot be used."""


def _read_result(path: Path) -> PatchOutcome | None:
    """Read one result file, returning None if it is unusable."""
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read result file %s: %s", path.name, e)
        return None

    try:
        record = PatchOutcome.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Cannot parse result file %s: %s", path.name, e)
        return None

    if not record.image_ref:
        logger.warning("Result file %s has an empty image_ref, skipping", path.name)
        return None
    return record


def load_results(directory: Path) -> Mapping[str, PatchOutcome]:
    """Load all patch results from a directory.

    Records are indexed by the canonical form of their own ``image_ref``
    field; file names carry no meaning. Unreadable or malformed files are
    skipped with a warning. When two files declare the same image, the one
    read last wins.

    Args:
        directory: Results directory written by the patch jobs.

    Returns:
        Read-only mapping of canonical image reference to PatchOutcome.
        Empty if the directory does not exist.

    Raises:
        ResultsError: If the path exists but cannot be listed as a directory.
    """
    results: dict[str, PatchOutcome] = {}

    if not directory.exists():
        logger.debug("Results directory %s does not exist", directory)
        return MappingProxyType(results)

    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise ResultsError(f"Cannot read results directory {directory}: {e}") from e

    for entry in entries:
        if entry.suffix != RESULT_SUFFIX or not entry.is_file():
            continue
        record = _read_result(entry)
        if record is None:
            continue

        key = normalize_image_ref(record.image_ref)
        if key in results:
            logger.warning("Duplicate result for %s in %s, replacing", key, entry.name)
        results[key] = record

    logger.debug("Loaded %d patch result(s) from %s", len(results), directory)
    return MappingProxyType(results)


def outcome_for(record: PatchOutcome | None) -> ImageOutcome:
    """Convert an optional result record into a tagged outcome.

    Args:
        record: Result record, or None if the image has no result.

    Returns:
        Missing when there is no record, otherwise the record's outcome.
    """
    if record is None:
        return Missing()
    return record.to_outcome()


def result_filename(image_ref: str) -> str:
    """File name used for an image's result record."""
    return sanitize_image_name(image_ref) + RESULT_SUFFIX


def write_result(record: PatchOutcome, directory: Path) -> Path:
    """Write a patch result record into the results directory.

    The file is written atomically so a concurrent reader never sees a
    partial record.

    Args:
        record: Result record to write.
        directory: Results directory (created if missing).

    Returns:
        Path of the written record.

    Raises:
        ResultsError: If the record has no image_ref or cannot be written.
    """
    if not record.image_ref:
        raise ResultsError("Cannot write a result without an image_ref")

    target = directory / result_filename(record.image_ref)
    tmp_path: Path | None = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=directory,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            json.dump(record.to_dict(), f, indent=2)
            f.write("\n")
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ResultsError(f"Failed to write result for {record.image_ref}: {e}") from e

    return target
