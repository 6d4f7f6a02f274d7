"""Registry tag listing.

Lists the tags already pushed for an image repository using the crane CLI,
so the next patched tag can be computed without colliding with them.
Authentication and retries are left to crane and its environment.
"""

import logging
import subprocess

from verity.models.image import ImageRef
from verity.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

CRANE = "crane"


class RegistryError(Exception):
    """Raised when tags cannot be listed from a registry."""


class CraneTagLister:
    """Lists repository tags with ``crane ls``."""

    def __init__(self, timeout: float = 60.0) -> None:
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if the crane CLI is available."""
        return command_exists(CRANE)

    def list_tags(self, image: ImageRef) -> list[str]:
        """List all tags of the image's repository.

        The image tag itself is ignored; only registry and repository are
        used.

        Args:
            image: Image whose repository should be listed.

        Returns:
            Tags in the order crane reports them.

        Raises:
            RegistryError: If crane is missing or the listing fails.
        """
        if not self.is_available():
            msg = "crane is not available on this system"
            raise RegistryError(msg)

        repo = image.with_tag(None).reference
        try:
            result = run_command([CRANE, "ls", repo], timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise RegistryError(f"crane ls {repo} timed out") from e
        except OSError as e:
            raise RegistryError(f"crane ls {repo} failed: {e}") from e

        if not result.success:
            msg = f"crane ls {repo} failed: {result.stderr.strip()}"
            raise RegistryError(msg)

        tags = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        logger.debug("Found %d tag(s) for %s", len(tags), repo)
        return tags
