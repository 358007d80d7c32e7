"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table

from pteropurge.core.theme import get_rich_theme


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, Rich auto-detection otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


_theme = get_rich_theme()

# Shared console instances (theme loaded once at import)
console = Console(theme=_theme, color_system=_detect_color_system())
err_console = Console(theme=_theme, stderr=True, color_system=_detect_color_system())


def create_server_table(title: str) -> Table:
    """Create a pre-configured table for displaying servers.

    Args:
        title: Table title.

    Returns:
        Rich Table with ID, Name and Node columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("ID", justify="right", style="muted")
    table.add_column("Name", no_wrap=True)
    table.add_column("Node", justify="right")
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
