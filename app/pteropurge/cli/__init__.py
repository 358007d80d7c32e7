"""CLI package for pteropurge.

This package contains the Typer application and all subcommands.
"""

from pteropurge.cli.main import app

__all__ = ["app"]
