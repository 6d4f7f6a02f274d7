"""Unit tests for registry tag listing."""

import subprocess
from unittest.mock import patch

import pytest
from verity.core.registry import CraneTagLister, RegistryError
from verity.models.image import ImageRef
from verity.utils.shell import CommandResult

IMAGE = ImageRef.parse("ghcr.io/verity-org/library/nginx:1.25.3")


class TestCraneTagLister:
    """Tests for CraneTagLister."""

    def test_is_available(self) -> None:
        with patch("verity.core.registry.command_exists", return_value=True) as mock_exists:
            assert CraneTagLister().is_available() is True

        mock_exists.assert_called_once_with("crane")

    def test_lists_repository_without_tag(self) -> None:
        output = "1.25.3\n1.25.3-patched\n\n1.25.3-patched-1\n"
        with (
            patch("verity.core.registry.command_exists", return_value=True),
            patch(
                "verity.core.registry.run_command",
                return_value=CommandResult(stdout=output, stderr="", returncode=0),
            ) as mock_run,
        ):
            tags = CraneTagLister(timeout=5).list_tags(IMAGE)

        assert tags == ["1.25.3", "1.25.3-patched", "1.25.3-patched-1"]
        mock_run.assert_called_once_with(
            ["crane", "ls", "ghcr.io/verity-org/library/nginx"], timeout=5
        )

    def test_crane_missing(self) -> None:
        with (
            patch("verity.core.registry.command_exists", return_value=False),
            pytest.raises(RegistryError, match="crane is not available"),
        ):
            CraneTagLister().list_tags(IMAGE)

    def test_nonzero_exit(self) -> None:
        with (
            patch("verity.core.registry.command_exists", return_value=True),
            patch(
                "verity.core.registry.run_command",
                return_value=CommandResult(stdout="", stderr="UNAUTHORIZED\n", returncode=1),
            ),
            pytest.raises(RegistryError, match="UNAUTHORIZED"),
        ):
            CraneTagLister().list_tags(IMAGE)

    def test_timeout(self) -> None:
        with (
            patch("verity.core.registry.command_exists", return_value=True),
            patch(
                "verity.core.registry.run_command",
                side_effect=subprocess.TimeoutExpired(cmd="crane", timeout=60),
            ),
            pytest.raises(RegistryError, match="timed out"),
        ):
            CraneTagLister().list_tags(IMAGE)
