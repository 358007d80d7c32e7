"""CLI commands for pteropurge.

This package contains all subcommand implementations.
"""

from pteropurge.cli.commands import config, preview, purge

__all__ = ["config", "preview", "purge"]
