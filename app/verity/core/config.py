"""Configuration for verity.

Settings are read from a project-local ``verity.toml`` or from
``~/.config/verity/config.toml``. Every setting has a default, so running
without a config file is fine; command-line options override the file.

Example verity.toml:

    registry = "ghcr.io/verity-org"
    work_dir = ".verity"
    values_override = true
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from verity.core.paths import (
    DEFAULT_WORK_DIR,
    find_config_path,
    get_charts_dir,
    get_manifest_path,
    get_results_dir,
)

logger = logging.getLogger(__name__)


class VerityConfig(BaseModel):
    """Pipeline configuration.

    Attributes:
        registry: Registry prefix patched images and charts are pushed to.
        work_dir: Pipeline work directory.
        manifest: Discovery manifest path (default: <work_dir>/manifest.json).
        results_dir: Patch results directory (default: <work_dir>/results).
        output_dir: Released charts directory (default: <work_dir>/charts).
        values_override: Write a values-override.yaml for each released chart.
    """

    model_config = ConfigDict(extra="forbid")

    registry: Annotated[
        str | None,
        Field(description="Registry prefix, e.g. ghcr.io/verity-org"),
    ] = None
    work_dir: Annotated[Path, Field(description="Pipeline work directory")] = DEFAULT_WORK_DIR
    manifest: Annotated[Path | None, Field(description="Discovery manifest path")] = None
    results_dir: Annotated[Path | None, Field(description="Patch results directory")] = None
    output_dir: Annotated[Path | None, Field(description="Released charts directory")] = None
    values_override: Annotated[
        bool,
        Field(description="Write values overrides for released charts"),
    ] = True

    @field_validator("registry")
    @classmethod
    def strip_registry(cls, v: str | None) -> str | None:
        """Drop trailing slashes so references join cleanly."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    @property
    def manifest_path(self) -> Path:
        return self.manifest or get_manifest_path(self.work_dir)

    @property
    def results_path(self) -> Path:
        return self.results_dir or get_results_dir(self.work_dir)

    @property
    def output_path(self) -> Path:
        return self.output_dir or get_charts_dir(self.work_dir)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path) -> VerityConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file.

    Returns:
        Validated VerityConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Config not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return VerityConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def get_config(path: Path | None = None) -> VerityConfig:
    """Load the effective configuration.

    Args:
        path: Explicit config file. If None, the first of ./verity.toml and
            the user config is used, falling back to defaults.

    Returns:
        VerityConfig instance.

    Raises:
        ConfigError: If an existing or explicitly requested config cannot be loaded.
    """
    config_path = path or find_config_path()
    if config_path is None:
        logger.debug("No config file found, using defaults")
        return VerityConfig()

    logger.debug("Loading config from %s", config_path)
    return load_config(config_path)


def save_config(config: VerityConfig, path: Path) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The VerityConfig object to save.
        path: Destination path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return path


def _config_to_dict(config: VerityConfig) -> dict[str, object]:
    """Convert VerityConfig to a dictionary for TOML serialization.

    Only includes values that are set, to keep the file clean.
    """
    result: dict[str, object] = {}
    if config.registry is not None:
        result["registry"] = config.registry
    result["work_dir"] = str(config.work_dir)
    for key in ("manifest", "results_dir", "output_dir"):
        value = getattr(config, key)
        if value is not None:
            result[key] = str(value)
    result["values_override"] = config.values_override
    return result
