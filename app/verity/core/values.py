"""Helm values override generation.

A released chart wraps its upstream chart and remaps every patched image
through a values override file. Each image's values path (e.g.
"server.image") determines where in the nested YAML the image fields go.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import yaml

from verity.models.image import ImageRef
from verity.models.release import ReleaseDecision
from verity.models.result import Succeeded

logger = logging.getLogger(__name__)

VALUES_OVERRIDE_FILENAME = "values-override.yaml"


class ValuesError(Exception):
    """Raised when a values override file cannot be written."""


def set_image_at_path(root: dict[str, Any], dot_path: str, image: ImageRef) -> None:
    """Set registry/repository/tag at a dot-separated path.

    ``"server.image"`` becomes ``{server: {image: {registry, repository, tag}}}``.
    Non-mapping values found along the way are replaced.

    Args:
        root: Values tree to update in place.
        dot_path: Dot-separated values path.
        image: Image whose fields are written at the leaf.
    """
    current = root
    for key in dot_path.split("."):
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child

    if image.registry:
        current["registry"] = image.registry
    current["repository"] = image.repository
    if image.tag:
        current["tag"] = image.tag


def build_values_override(decision: ReleaseDecision) -> dict[str, Any]:
    """Build the values override for a chart release.

    Only successfully patched images with a values path and a patched
    reference are remapped.

    Args:
        decision: Release decision for the chart.

    Returns:
        Nested values tree (empty if nothing is remapped).
    """
    root: dict[str, Any] = {}
    for img in decision.images:
        outcome = img.outcome
        if not isinstance(outcome, Succeeded) or outcome.patched is None:
            continue
        if not img.image.path:
            logger.debug("Image %s has no values path, not remapped", img.original)
            continue
        set_image_at_path(root, img.image.path, outcome.patched)
    return root


def write_values_override(decision: ReleaseDecision, path: Path) -> Path | None:
    """Write the values override file for a chart release.

    Args:
        decision: Release decision for the chart.
        path: Destination path.

    Returns:
        Path of the written file, or None if nothing needed remapping.

    Raises:
        ValuesError: If the file cannot be written.
    """
    values = build_values_override(decision)
    if not values:
        return None

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
            yaml.safe_dump(values, f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ValuesError(f"Failed to write values override {path}: {e}") from e

    return path
