"""Tags command implementation.

Computes patched image tags from the tags already present in a
repository, either given on the command line or listed from the
registry.
"""

from typing import Annotated

import typer

from verity.cli.types import get_cli_config
from verity.core.registry import CraneTagLister, RegistryError
from verity.core.tags import latest_patched_tag, next_patched_tag
from verity.models.image import ImageRef, ImageRefError
from verity.utils.formatting import print_error, print_info

app = typer.Typer(
    help="Compute patched image tags.",
    no_args_is_help=True,
)

SourceTagOption = Annotated[
    str | None,
    typer.Option(
        "--source-tag",
        "-s",
        help="Tag of the unpatched image (default: the tag of --image).",
    ),
]
TagOption = Annotated[
    list[str] | None,
    typer.Option(
        "--tag",
        "-t",
        help="Existing tag (repeatable). Skips the registry lookup.",
    ),
]
ImageOption = Annotated[
    str | None,
    typer.Option(
        "--image",
        "-i",
        help="Original image; tags are listed from its patched repository.",
    ),
]
RegistryOption = Annotated[
    str | None,
    typer.Option(
        "--registry",
        help="Registry prefix holding patched images (default: from config).",
    ),
]


def _resolve(
    ctx: typer.Context,
    source_tag: str | None,
    tags: list[str] | None,
    image: str | None,
    registry: str | None,
) -> tuple[list[str], str]:
    """Resolve the existing tags and the source tag for a command.

    Returns:
        Tuple of (existing tags, source tag).

    Raises:
        typer.Exit: If the inputs are incomplete or the registry lookup fails.
    """
    original: ImageRef | None = None
    if image:
        try:
            original = ImageRef.parse(image).normalized()
        except ImageRefError as e:
            print_error(f"Invalid image reference {image!r}: {e}")
            raise typer.Exit(code=1) from e

    source = source_tag if source_tag is not None else (original.tag if original else None)
    if source is None:
        print_error("No source tag given.")
        print_info("Pass --source-tag or an --image with a tag.")
        raise typer.Exit(code=1)

    if tags is not None:
        return tags, source

    if original is None:
        print_error("Pass existing tags with --tag or an --image to look them up.")
        raise typer.Exit(code=1)

    target = original
    registry = registry or get_cli_config(ctx).registry
    if registry:
        target = original.with_registry(registry.rstrip("/"))

    try:
        return CraneTagLister().list_tags(target), source
    except RegistryError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.command()
def latest(
    ctx: typer.Context,
    source_tag: SourceTagOption = None,
    tag: TagOption = None,
    image: ImageOption = None,
    registry: RegistryOption = None,
) -> None:
    """Print the most recent patched tag of a source tag.

    Prints nothing when no patched tag exists yet.

    Examples:
        verity tags latest -s 1.29.3 -t 1.29.3-patched -t 1.29.3-patched-2
        verity tags latest -i nginx:1.29.3 --registry ghcr.io/verity-org
    """
    existing, source = _resolve(ctx, source_tag, tag, image, registry)
    found = latest_patched_tag(existing, source)
    if found:
        typer.echo(found)


@app.command("next")
def next_tag(
    ctx: typer.Context,
    source_tag: SourceTagOption = None,
    tag: TagOption = None,
    image: ImageOption = None,
    registry: RegistryOption = None,
) -> None:
    """Print the next unused patched tag of a source tag.

    Examples:
        verity tags next -s 1.29.3 -t 1.29.3-patched
        verity tags next -i nginx:1.29.3 --registry ghcr.io/verity-org
    """
    existing, source = _resolve(ctx, source_tag, tag, image, registry)
    typer.echo(next_patched_tag(existing, source))
