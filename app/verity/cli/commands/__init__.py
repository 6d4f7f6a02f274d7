"""CLI commands for verity.

This package contains all subcommand implementations.
"""

from verity.cli.commands import assemble, config, matrix, ref, results, tags

__all__ = ["assemble", "config", "matrix", "ref", "results", "tags"]
