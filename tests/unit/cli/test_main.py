"""Unit tests for the main CLI application."""

import logging

import pytest
from typer.testing import CliRunner
from verity import __version__
from verity.cli.main import app, configure_logging

runner = CliRunner()


class TestMainApp:
    """Tests for global options."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"verity version {__version__}" in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])

        assert "assemble" in result.output
        assert "tags" in result.output

    @pytest.mark.parametrize("command", ["assemble", "matrix", "tags", "ref", "results", "config"])
    def test_commands_registered(self, command: str) -> None:
        result = runner.invoke(app, [command, "--help"])

        assert result.exit_code == 0


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.mark.parametrize(
        ("verbose", "quiet", "level"),
        [
            (False, False, logging.WARNING),
            (True, False, logging.DEBUG),
            (False, True, logging.ERROR),
            (True, True, logging.DEBUG),
        ],
    )
    def test_levels(self, verbose: bool, quiet: bool, level: int) -> None:
        configure_logging(verbose, quiet)

        assert logging.getLogger().level == level
