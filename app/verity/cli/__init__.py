"""CLI package for verity.

This package contains the Typer application and all subcommands.
"""

from verity.cli.main import app

__all__ = ["app"]
