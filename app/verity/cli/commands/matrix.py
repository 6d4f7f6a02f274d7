"""Matrix command implementation.

Builds the per-image job matrix from the discovery manifest.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from verity.cli.types import get_cli_config
from verity.core.manifest import require_manifest
from verity.core.matrix import MatrixError, build_matrix, write_matrix
from verity.utils.formatting import print_error

app = typer.Typer(
    help="Build the per-image patch job matrix.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def matrix(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option(
            "--manifest",
            "-m",
            help="Discovery manifest (default: <work_dir>/manifest.json).",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Also write the matrix to this file.",
        ),
    ] = None,
) -> None:
    """Build the per-image patch job matrix.

    Prints compact JSON suitable for a GitHub Actions matrix, with one
    entry per unique image in the manifest.

    Examples:
        verity matrix
        verity matrix -m manifest.json -o matrix.json
    """
    if ctx.invoked_subcommand is not None:
        return

    config = get_cli_config(ctx)
    discovery = require_manifest(manifest or config.manifest_path)
    job_matrix = build_matrix(discovery)

    if output is not None:
        try:
            write_matrix(job_matrix, output)
        except MatrixError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

    typer.echo(json.dumps(job_matrix, separators=(",", ":")))
