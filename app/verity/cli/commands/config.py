"""Config command implementation.

Shows and creates the verity configuration file.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from verity.cli.types import get_cli_config
from verity.core.config import ConfigError, VerityConfig, save_config
from verity.core.paths import get_local_config_path
from verity.utils.formatting import console, print_error, print_success

app = typer.Typer(
    help="Show or create the verity configuration.",
    no_args_is_help=True,
)


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective configuration.

    Examples:
        verity config show
        verity --config ci.toml config show
    """
    config = get_cli_config(ctx)
    data = {
        "registry": config.registry,
        "work_dir": str(config.work_dir),
        "manifest": str(config.manifest_path),
        "results_dir": str(config.results_path),
        "output_dir": str(config.output_path),
        "values_override": config.values_override,
    }
    console.print_json(json.dumps(data))


@app.command()
def init(
    path: Annotated[
        Path | None,
        typer.Option("--path", "-p", help="Where to write the config (default: ./verity.toml)."),
    ] = None,
    registry: Annotated[
        str | None,
        typer.Option("--registry", help="Registry prefix for patched images and charts."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Create a configuration file with default settings.

    Examples:
        verity config init --registry ghcr.io/verity-org
    """
    target = path or get_local_config_path()
    if target.exists() and not force:
        print_error(f"Config already exists: {target}")
        raise typer.Exit(code=1)

    try:
        save_config(VerityConfig(registry=registry), target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {target}")
