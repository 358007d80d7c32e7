"""Logging setup for the CLI.

Library modules only create module-level loggers; handlers are installed
here, once, by the CLI entry point.
"""

import logging

from rich.logging import RichHandler

from pteropurge.utils.formatting import err_console


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route package logs through Rich on stderr.

    Args:
        verbose: Show DEBUG messages.
        quiet: Show only errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger("pteropurge")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(
            console=err_console,
            show_path=verbose,
            rich_tracebacks=True,
            markup=False,
        )
    )
    logger.propagate = False
