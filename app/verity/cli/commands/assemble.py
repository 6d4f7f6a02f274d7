"""Assemble command implementation.

Joins the discovery manifest with the per-image patch results, decides
which charts need a new release and writes the published-release record.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from verity.cli.types import get_cli_config
from verity.core.aggregate import AggregationEngine, AggregationResult, patched_chart_versioner
from verity.core.manifest import require_manifest
from verity.core.publish import (
    PublishError,
    get_history_path,
    get_published_path,
    load_published_releases,
    load_release_history,
    merge_versions,
    published_versions,
    record_release_history,
    write_published_releases,
)
from verity.core.results import ResultsError, load_results
from verity.core.values import VALUES_OVERRIDE_FILENAME, ValuesError, write_values_override
from verity.models.release import ImageDecision, PublishedRelease, ReleaseDecision
from verity.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Decide which charts need a new release.",
    invoke_without_command=True,
)


def _image_note(img: ImageDecision) -> str:
    """Explain why an image did not change."""
    if img.failed:
        return f"failed: {img.outcome.error}"  # type: ignore[union-attr]
    if img.skip_reason is not None:
        return f"skipped: {img.skip_reason}"
    return "unchanged"


def _create_decisions_table(result: AggregationResult, releases: list[PublishedRelease]) -> Table:
    """Create a table with one row per chart.

    Args:
        result: Aggregation result.
        releases: Released charts, used to show the minted versions.

    Returns:
        Rich Table configured for decision display.
    """
    versions = {r.name: r.version for r in releases}

    table = Table(
        title="Release Decisions",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Chart", no_wrap=True)
    table.add_column("Version")
    table.add_column("Changed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")

    for decision in result.decisions:
        name = decision.chart.name
        if decision.has_changes:
            status = "[added]release[/added]"
            version = f"{decision.chart.version} -> [added]{versions.get(name, '?')}[/added]"
        else:
            status = "[muted]skip[/muted]"
            version = f"[muted]{decision.chart.version}[/muted]"

        table.add_row(
            status,
            name,
            version,
            str(decision.changed_count),
            str(decision.skipped_count),
            f"[error]{decision.failed_count}[/error]" if decision.failed_count else "0",
        )

    return table


def _print_skip_reasons(decisions: tuple[ReleaseDecision, ...]) -> None:
    """Print why images in each chart did not change."""
    for decision in decisions:
        notes = [(img, _image_note(img)) for img in decision.images if not img.changed]
        if not notes:
            continue
        console.print(f"\n[bold_header]{decision.chart.name}[/bold_header]")
        for img, note in notes:
            style = "error" if img.failed else "muted"
            console.print(f"  [{style}]{img.original.reference}: {note}[/{style}]")


def _print_summary(result: AggregationResult) -> None:
    """Print the end-of-run summary line."""
    console.print(
        f"\nImages: [added]{result.changed_count} changed[/added], "
        f"[muted]{result.skipped_count} skipped[/muted], "
        f"[error]{result.failed_count} failed[/error]"
    )
    console.print(
        f"Charts: [added]{len(result.released)} to release[/added], "
        f"[muted]{len(result.unchanged)} unchanged[/muted]"
    )


def _previous_versions(output_dir: Path) -> dict[str, list[str]]:
    """Chart versions published by earlier runs.

    The release history is authoritative; the last published record is
    merged in for output directories written before the history existed.

    Raises:
        typer.Exit: If the release history exists but cannot be read.
    """
    try:
        history = load_release_history(get_history_path(output_dir))
    except PublishError as e:
        print_error(str(e))
        print_info("Fix or remove the release history; versions cannot be minted safely.")
        raise typer.Exit(code=1) from e

    try:
        previous = load_published_releases(get_published_path(output_dir))
    except PublishError as e:
        print_warning(f"Ignoring previous published charts: {e}")
        return history
    return merge_versions(history, published_versions(previous))


def _write_values_overrides(result: AggregationResult, output_dir: Path) -> list[Path]:
    """Write a values override for every released chart."""
    written: list[Path] = []
    for decision in result.released:
        path = output_dir / decision.chart.name / VALUES_OVERRIDE_FILENAME
        if write_values_override(decision, path) is not None:
            written.append(path)
    return written


@app.callback(invoke_without_command=True)
def assemble_charts(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option(
            "--manifest",
            "-m",
            help="Discovery manifest (default: <work_dir>/manifest.json).",
        ),
    ] = None,
    results_dir: Annotated[
        Path | None,
        typer.Option(
            "--results-dir",
            "-r",
            help="Directory of per-image patch results (default: <work_dir>/results).",
        ),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            help="Directory for released charts (default: <work_dir>/charts).",
        ),
    ] = None,
    registry: Annotated[
        str | None,
        typer.Option(
            "--registry",
            help="Registry prefix charts are published to (e.g. ghcr.io/verity-org).",
        ),
    ] = None,
    values: Annotated[
        bool | None,
        typer.Option(
            "--values/--no-values",
            help="Write a values-override.yaml for each released chart.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON for scripting.",
        ),
    ] = False,
) -> None:
    """Decide which charts need a new release.

    A chart is released only when at least one of its images changed.
    Images that failed to patch or have no result are reported but never
    fail the run.

    Examples:
        verity assemble --registry ghcr.io/verity-org
        verity assemble -m manifest.json -r results/ -o charts/
        verity assemble --json         # JSON output for scripting
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    config = get_cli_config(ctx)
    registry = (registry or config.registry or "").rstrip("/")
    if not registry:
        print_error("No registry configured.")
        print_info("Pass --registry or set 'registry' in verity.toml.")
        raise typer.Exit(code=1)

    manifest_path = manifest or config.manifest_path
    results_path = results_dir or config.results_path
    output_path = output_dir or config.output_path
    write_values = config.values_override if values is None else values

    discovery = require_manifest(manifest_path)

    try:
        patch_results = load_results(results_path)
    except ResultsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    result = AggregationEngine(discovery, patch_results).decide()
    history = _previous_versions(output_path)
    versioner = patched_chart_versioner(history)
    releases = result.published_releases(registry, versioner)

    try:
        overrides = _write_values_overrides(result, output_path) if write_values else []
        published_path = write_published_releases(releases, output_path)
        record_release_history(releases, history, output_path)
    except (ValuesError, PublishError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        data: dict[str, Any] = result.to_dict()
        data["published"] = [r.to_dict() for r in releases]
        data["published_path"] = str(published_path) if published_path else None
        data["values_overrides"] = [str(p) for p in overrides]
        console.print_json(json.dumps(data))
        return

    if not result.decisions:
        print_info("Manifest contains no charts.")
        return

    console.print(_create_decisions_table(result, releases))
    _print_skip_reasons(result.decisions)
    _print_summary(result)

    if published_path is None:
        print_info("\nNo charts changed; nothing to publish.")
    else:
        print_success(f"\nPublished {len(releases)} chart(s) -> {published_path}")
