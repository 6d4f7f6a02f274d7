"""Patched tag versioning.

Registries are append-only and pipeline runs may re-patch the same source
image, so every patched build gets a fresh tag derived from its source tag:

    1.29.3 -> 1.29.3-patched -> 1.29.3-patched-1 -> 1.29.3-patched-2 -> ...

A tag belongs to source tag S only if it is exactly ``S-patched`` or
``S-patched-N`` where N is one or more decimal digits. Numbered tags whose
suffix cannot be represented are ignored rather than treated as errors.
"""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

PATCHED_SUFFIX = "-patched"

# Tag used when the source image is untagged
DEFAULT_SOURCE_TAG = "latest"

# Largest patch number considered valid (signed 64-bit range)
MAX_PATCH_NUMBER = 2**63 - 1


def bare_patched_tag(source_tag: str) -> str:
    """Return the first patched tag for a source tag (``S-patched``)."""
    return f"{source_tag or DEFAULT_SOURCE_TAG}{PATCHED_SUFFIX}"


def patch_number(tag: str, source_tag: str) -> int | None:
    """Extract the patch number from a numbered patched tag.

    Args:
        tag: Candidate tag (e.g., "1.29.3-patched-2").
        source_tag: Source tag the candidate must derive from.

    Returns:
        The patch number, or None if the tag is not ``S-patched-N`` for this
        exact source tag or N is not a representable unsigned integer.
    """
    prefix = bare_patched_tag(source_tag) + "-"
    if not tag.startswith(prefix):
        return None

    digits = tag[len(prefix) :]
    # isdigit() also accepts non-ASCII digits
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None

    number = int(digits)
    if number > MAX_PATCH_NUMBER:
        logger.debug("Ignoring out-of-range patch number in tag %s", tag)
        return None
    return number


def _max_patch_number(tags: Iterable[str], source_tag: str) -> int | None:
    numbers = [n for tag in tags if (n := patch_number(tag, source_tag)) is not None]
    return max(numbers, default=None)


def latest_patched_tag(tags: Iterable[str], source_tag: str) -> str:
    """Find the most recent patched tag for a source tag.

    Numbered tags win over the bare ``S-patched`` form, and the highest
    number wins among numbered tags.

    Args:
        tags: Tags present in the image repository.
        source_tag: Tag of the original, unpatched image.

    Returns:
        The latest patched tag, or an empty string if none exists.
    """
    tags = list(tags)
    highest = _max_patch_number(tags, source_tag)
    if highest is not None:
        return f"{bare_patched_tag(source_tag)}-{highest}"

    bare = bare_patched_tag(source_tag)
    if bare in tags:
        return bare
    return ""


def next_patched_tag(tags: Iterable[str], source_tag: str) -> str:
    """Compute the next unused patched tag for a source tag.

    The result is never one of ``tags``: calling this repeatedly and adding
    each result to the tag list yields ``S-patched``, ``S-patched-1``,
    ``S-patched-2`` and so on.

    Args:
        tags: Tags present in the image repository.
        source_tag: Tag of the original, unpatched image.

    Returns:
        Tag to use for the next patched build.
    """
    existing = set(tags)
    bare = bare_patched_tag(source_tag)

    highest = _max_patch_number(existing, source_tag)
    if highest is None:
        if bare not in existing:
            return bare
        highest = 0

    number = highest + 1
    # Out-of-range tags are ignored when ranking but must still not be reused
    while f"{bare}-{number}" in existing:
        number += 1
    return f"{bare}-{number}"


def is_patched_tag(tag: str, source_tag: str) -> bool:
    """Check whether a tag is a patched build of the given source tag."""
    return tag == bare_patched_tag(source_tag) or patch_number(tag, source_tag) is not None
