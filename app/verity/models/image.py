"""Image reference model.

This module defines the canonical representation of a container image
reference (``registry/repository:tag``) used to compare images across
pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from verity.models.manifest import ImageDiscovery

# Public registry used when a reference names no registry
DEFAULT_REGISTRY = "docker.io"

# Implicit namespace of official images on the public registry
OFFICIAL_NAMESPACE = "library"

# Characters replaced when turning a reference into a file/artifact name
_SANITIZE_TABLE = str.maketrans({"/": "_", ":": "_", ".": "_", "@": "_"})


class ImageRefError(ValueError):
    """Raised when an image reference cannot describe a real image."""


def _looks_like_registry(segment: str) -> bool:
    """Check whether the first path segment names a registry host.

    Mirrors Docker's disambiguation rule: a segment is a host if it contains
    a dot, a port separator, or is exactly ``localhost``.
    """
    return "." in segment or ":" in segment or segment == "localhost"


def parse_image_ref(ref: str) -> tuple[str, str, str]:
    """Parse an image reference into registry, repository, and tag.

    Example:
        >>> parse_image_ref("ghcr.io/verity-org/library/nginx:1.25.3-patched")
        ('ghcr.io', 'verity-org/library/nginx', '1.25.3-patched')

    Args:
        ref: Image reference string.

    Returns:
        Tuple of (registry, repository, tag). Absent parts are empty strings.
    """
    tag = ""
    # A colon before the last slash belongs to a host:port registry
    colon = ref.rfind(":")
    if colon > ref.rfind("/"):
        tag = ref[colon + 1 :]
        ref = ref[:colon]

    first, sep, rest = ref.partition("/")
    if sep and _looks_like_registry(first):
        return first, rest, tag
    return "", ref, tag


def format_reference(registry: str | None, repository: str, tag: str | None) -> str:
    """Assemble ``registry/repository:tag``, omitting absent parts."""
    ref = repository
    if registry:
        ref = f"{registry}/{ref}"
    if tag:
        ref = f"{ref}:{tag}"
    return ref


def normalize_image_ref(ref: str) -> str:
    """Convert an image reference to its canonical form for comparison.

    Adds the default registry if missing and the ``library/`` namespace for
    single-segment repositories on the default registry.

    Example:
        >>> normalize_image_ref("nginx:1.25.3")
        'docker.io/library/nginx:1.25.3'
    """
    registry, repository, tag = parse_image_ref(ref)
    registry = registry or DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"{OFFICIAL_NAMESPACE}/{repository}"
    return format_reference(registry, repository, tag)


def sanitize_image_name(ref: str) -> str:
    """Convert an image reference to a safe file or artifact name.

    Example:
        >>> sanitize_image_name("docker.io/library/nginx:1.25.3")
        'docker_io_library_nginx_1_25_3'
    """
    return ref.translate(_SANITIZE_TABLE)


@dataclass(frozen=True, slots=True)
class ImageRef:
    """Immutable container image reference.

    Attributes:
        repository: Repository path (e.g., 'library/nginx').
        registry: Registry host, None until normalization is requested.
        tag: Image tag, None when the reference is untagged.
    """

    repository: str
    registry: str | None = None
    tag: str | None = None

    def __post_init__(self) -> None:
        """Validate image reference after initialization."""
        if not self.repository:
            msg = "Image repository cannot be empty"
            raise ImageRefError(msg)

    @classmethod
    def parse(cls, ref: str) -> ImageRef:
        """Build an ImageRef from a reference string.

        Raises:
            ImageRefError: If the reference has no repository.
        """
        registry, repository, tag = parse_image_ref(ref)
        return cls(repository=repository, registry=registry or None, tag=tag or None)

    @classmethod
    def from_discovery(cls, image: ImageDiscovery) -> ImageRef:
        """Build an ImageRef from a discovered image entry."""
        return cls(
            repository=image.repository,
            registry=image.registry or None,
            tag=image.tag or None,
        )

    @property
    def reference(self) -> str:
        """Full reference string, omitting absent registry and tag."""
        return format_reference(self.registry, self.repository, self.tag)

    @property
    def canonical(self) -> str:
        """Normalized reference used as a join key across stages."""
        return normalize_image_ref(self.reference)

    def normalized(self) -> ImageRef:
        """Return a copy with default registry and namespace applied."""
        return ImageRef.parse(self.canonical)

    def with_tag(self, tag: str | None) -> ImageRef:
        """Return a copy carrying a different tag."""
        return replace(self, tag=tag or None)

    def with_registry(self, registry: str | None) -> ImageRef:
        """Return a copy pointing at a different registry."""
        return replace(self, registry=registry or None)

    def __str__(self) -> str:
        return self.reference
