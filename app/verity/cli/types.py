"""Shared helpers for CLI commands.

This module provides the configuration lookup used across multiple
CLI command modules to avoid code duplication.
"""

from pathlib import Path

import typer

from verity.core.config import ConfigError, VerityConfig, get_config
from verity.utils.formatting import print_error


def get_cli_config(ctx: typer.Context) -> VerityConfig:
    """Get the effective configuration for a command invocation.

    The configuration is loaded once per invocation, from the path given
    with ``--config`` on the main command or from the default locations.

    Args:
        ctx: Typer context of the running command.

    Returns:
        Loaded VerityConfig.

    Raises:
        typer.Exit: If the config file exists but cannot be loaded.
    """
    root = ctx.find_root()
    root.ensure_object(dict)
    config = root.obj.get("config")
    if isinstance(config, VerityConfig):
        return config

    config_path: Path | None = root.obj.get("config_path")
    try:
        config = get_config(config_path)
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e

    root.obj["config"] = config
    return config
