"""Discovery manifest I/O operations.

This module provides functions for loading the discovery manifest written
by the discovery stage, with validation using Pydantic models. A manifest
that cannot be loaded is fatal for the run.
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from verity.models.manifest import DiscoveryManifest

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Base exception for manifest-related errors."""


class ManifestNotFoundError(ManifestError):
    """Raised when manifest file is not found."""


class ManifestParseError(ManifestError):
    """Raised when manifest file cannot be parsed."""


class ManifestValidationError(ManifestError):
    """Raised when manifest content is invalid."""


def load_manifest(path: Path) -> DiscoveryManifest:
    """Load and validate a discovery manifest from a JSON file.

    Chart images missing from the flat image list are reported as a
    warning; they are still aggregated.

    Args:
        path: Path to the manifest file.

    Returns:
        Validated DiscoveryManifest object.

    Raises:
        ManifestNotFoundError: If the manifest file doesn't exist.
        ManifestParseError: If the JSON syntax is invalid.
        ManifestValidationError: If the content doesn't match the schema.
    """
    if not path.exists():
        raise ManifestNotFoundError(f"Manifest not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestParseError(f"Invalid JSON syntax: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestParseError(f"Manifest is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read manifest: {e}") from e

    try:
        manifest = DiscoveryManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestValidationError(f"Invalid manifest content: {e}") from e

    for ref in manifest.unlisted_images():
        logger.warning("Chart image %s is missing from the flat image list", ref)

    return manifest


def save_manifest(manifest: DiscoveryManifest, path: Path) -> Path:
    """Save a discovery manifest to a JSON file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        manifest: The DiscoveryManifest to save.
        path: Destination path.

    Returns:
        Path where the manifest was saved.

    Raises:
        ManifestError: If the file cannot be written.
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
            f.write(manifest.model_dump_json(indent=2))
            f.write("\n")
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ManifestError(f"Failed to write manifest: {e}") from e

    return path


def require_manifest(path: Path) -> DiscoveryManifest:
    """Load manifest or exit with helpful error message.

    This is a convenience wrapper around load_manifest() that handles
    common error cases by printing user-friendly messages and exiting.

    Args:
        path: Manifest path.

    Returns:
        Loaded and validated DiscoveryManifest.

    Raises:
        typer.Exit: If manifest cannot be loaded.
    """
    import typer

    from verity.utils.formatting import print_error, print_info

    try:
        return load_manifest(path)
    except ManifestNotFoundError as e:
        print_error(f"Manifest not found: {path}")
        print_info("Run the discovery stage first or pass --manifest.")
        raise typer.Exit(code=1) from e
    except ManifestError as e:
        print_error(f"Failed to load manifest: {e}")
        raise typer.Exit(code=1) from e
