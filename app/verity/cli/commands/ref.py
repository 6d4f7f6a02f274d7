"""Ref command implementation.

Parses and normalizes image references.
"""

import json
from typing import Annotated

import typer

from verity.models.image import normalize_image_ref, parse_image_ref
from verity.utils.formatting import console

app = typer.Typer(
    help="Parse and normalize image references.",
    no_args_is_help=True,
)


@app.command()
def parse(
    reference: Annotated[str, typer.Argument(help="Image reference to parse.")],
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON."),
    ] = False,
) -> None:
    """Split an image reference into registry, repository and tag.

    Examples:
        verity ref parse quay.io/prometheus/prometheus:v3.9.1
        verity ref parse localhost:5000/myimage --json
    """
    registry, repository, tag = parse_image_ref(reference)
    if json_output:
        data = {"registry": registry, "repository": repository, "tag": tag}
        console.print_json(json.dumps(data))
        return

    console.print(f"[muted]registry:[/muted]   {registry or '-'}")
    console.print(f"[muted]repository:[/muted] {repository or '-'}")
    console.print(f"[muted]tag:[/muted]        {tag or '-'}")


@app.command()
def normalize(
    reference: Annotated[str, typer.Argument(help="Image reference to normalize.")],
) -> None:
    """Print the canonical form of an image reference.

    Examples:
        verity ref normalize nginx:1.25.3   # docker.io/library/nginx:1.25.3
    """
    typer.echo(normalize_image_ref(reference))
