"""Path management for verity.

Pipeline files live in a work directory (``.verity`` by default) that is
shared between the discovery, patch and assemble stages:

- manifest.json: discovery manifest
- results/: one patch result per image
- charts/: released charts and published-charts.json

User configuration follows the XDG Base Directory Specification.
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "verity"

# Default pipeline work directory, relative to the current directory
DEFAULT_WORK_DIR = Path(".verity")

# Project-local configuration file name
LOCAL_CONFIG_NAME = "verity.toml"


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/verity/ (or XDG_CONFIG_HOME/verity/).
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_config_path() -> Path:
    """Get the user configuration file path.

    Returns:
        Path to ~/.config/verity/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_local_config_path(cwd: Path | None = None) -> Path:
    """Get the project-local configuration file path.

    Args:
        cwd: Directory to look in. Defaults to the current directory.

    Returns:
        Path to ./verity.toml.
    """
    return (cwd or Path.cwd()) / LOCAL_CONFIG_NAME


def find_config_path(cwd: Path | None = None) -> Path | None:
    """Find the configuration file to use.

    A project-local verity.toml takes priority over the user config.

    Args:
        cwd: Directory to look for verity.toml in.

    Returns:
        Path of the first existing config file, or None.
    """
    for candidate in (get_local_config_path(cwd), get_user_config_path()):
        if candidate.is_file():
            return candidate
    return None


def get_manifest_path(work_dir: Path = DEFAULT_WORK_DIR) -> Path:
    """Discovery manifest path inside a work directory."""
    return work_dir / "manifest.json"


def get_results_dir(work_dir: Path = DEFAULT_WORK_DIR) -> Path:
    """Patch results directory inside a work directory."""
    return work_dir / "results"


def get_charts_dir(work_dir: Path = DEFAULT_WORK_DIR) -> Path:
    """Released charts directory inside a work directory."""
    return work_dir / "charts"
