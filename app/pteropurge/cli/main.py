"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from pteropurge import __version__
from pteropurge.cli.commands import config, preview, purge
from pteropurge.utils.logging import configure_logging

# Create main Typer app
app = typer.Typer(
    name="pteropurge",
    help="Bulk-delete Pterodactyl servers by node, keeping protected names.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pteropurge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """pteropurge - Bulk server cleanup for Pterodactyl panels.

    Deletes every server on the chosen nodes except those whose name
    contains a protected keyword.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    configure_logging(verbose=verbose, quiet=quiet)


# Register commands
app.add_typer(purge.app, name="purge")
app.add_typer(preview.app, name="preview")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
