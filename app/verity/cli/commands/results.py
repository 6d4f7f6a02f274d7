"""Results command implementation.

Shows the per-image patch results found in a results directory.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from verity.cli.types import get_cli_config
from verity.core.results import ResultsError, load_results
from verity.models.result import Failed, PatchOutcome, Skipped, Succeeded
from verity.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="Show per-image patch results.",
    invoke_without_command=True,
)


def _status(record: PatchOutcome) -> tuple[str, str]:
    """Get status label and note for a result record."""
    outcome = record.to_outcome()
    if isinstance(outcome, Failed):
        return "[error]failed[/error]", outcome.error
    if isinstance(outcome, Skipped):
        return "[muted]skipped[/muted]", outcome.reason
    if isinstance(outcome, Succeeded) and outcome.changed:
        return "[added]changed[/added]", ""
    return "[info]unchanged[/info]", ""


def _create_results_table(results: Mapping[str, PatchOutcome]) -> Table:
    """Create a table with one row per result record."""
    table = Table(
        title="Patch Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=10)
    table.add_column("Image", no_wrap=True)
    table.add_column("Patched")
    table.add_column("Vulns", justify="right")
    table.add_column("Note")

    for ref, record in results.items():
        status, note = _status(record)
        table.add_row(
            status,
            ref,
            record.patched_reference or "-",
            str(record.vuln_count),
            f"[muted]{note}[/muted]",
        )
    return table


@app.callback(invoke_without_command=True)
def show_results(
    ctx: typer.Context,
    directory: Annotated[
        Path | None,
        typer.Option(
            "--results-dir",
            "-r",
            help="Results directory (default: <work_dir>/results).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for scripting."),
    ] = False,
) -> None:
    """Show per-image patch results.

    Malformed result files are skipped with a warning.

    Examples:
        verity results
        verity results -r .verity/results --json
    """
    if ctx.invoked_subcommand is not None:
        return

    path = directory or get_cli_config(ctx).results_path
    try:
        loaded = load_results(path)
    except ResultsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps({ref: r.to_dict() for ref, r in loaded.items()}))
        return

    if not loaded:
        print_info(f"No patch results in {path}.")
        return

    console.print(_create_results_table(loaded))
