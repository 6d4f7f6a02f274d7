"""GitHub Actions matrix generation.

Each discovered image is patched by its own isolated matrix job. The
matrix is built from the manifest's flat image list.
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from verity.models.image import sanitize_image_name
from verity.models.manifest import DiscoveryManifest

logger = logging.getLogger(__name__)

MATRIX_FILENAME = "matrix.json"


class MatrixError(Exception):
    """Raised when the matrix file cannot be written."""


def build_matrix(manifest: DiscoveryManifest) -> dict[str, list[dict[str, str]]]:
    """Build the job matrix for per-image patching.

    Images are de-duplicated by canonical reference and keep their
    first-seen order.

    Args:
        manifest: Discovery manifest.

    Returns:
        Matrix of the form ``{"include": [{"image_ref", "image_name"}, ...]}``.
    """
    include: list[dict[str, str]] = []
    seen: set[str] = set()

    for image in manifest.images:
        key = image.canonical
        if key in seen:
            continue
        seen.add(key)
        ref = image.reference
        include.append({"image_ref": ref, "image_name": sanitize_image_name(ref)})

    return {"include": include}


def write_matrix(matrix: dict[str, Any], path: Path) -> Path:
    """Write the matrix as JSON.

    Args:
        matrix: Matrix returned by build_matrix().
        path: Destination path.

    Returns:
        Path of the written file.

    Raises:
        MatrixError: If the file cannot be written.
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
            json.dump(matrix, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise MatrixError(f"Failed to write matrix: {e}") from e

    logger.debug("Wrote matrix with %d job(s) to %s", len(matrix.get("include", [])), path)
    return path
