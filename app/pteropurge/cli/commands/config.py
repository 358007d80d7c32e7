"""Settings file commands.

Provides commands to show and create the settings file that supplies
default options for purge and preview.
"""

from pathlib import Path
from typing import Annotated

import typer
from pydantic import SecretStr, ValidationError
from rich.markup import escape
from rich.table import Table

from pteropurge.cli.options import (
    ApiKeyOption,
    ConcurrencyOption,
    ExcludeKeywordOption,
    MaxPagesOption,
    NodeIdsOption,
    PanelUrlOption,
    RetriesOption,
    RetryBackoffOption,
    SettingsPathOption,
    TimeoutOption,
)
from pteropurge.core.config import (
    PanelSettings,
    SettingsError,
    SettingsNotFoundError,
    load_settings,
    save_settings,
)
from pteropurge.core.paths import get_settings_path
from pteropurge.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the settings file.",
    no_args_is_help=True,
)


@app.command()
def show(settings_path: SettingsPathOption = None) -> None:
    """Show the current settings (the API key is masked)."""
    path = settings_path or get_settings_path()
    try:
        settings = load_settings(path)
    except SettingsNotFoundError as e:
        print_error(f"Settings file not found: {path}")
        print_info("Run 'pteropurge config init' to create one.")
        raise typer.Exit(code=1) from e
    except SettingsError as e:
        print_error(f"Failed to load settings: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    table = Table(
        title=f"Settings ({path})",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Key", style="muted")
    table.add_column("Value")

    for name, value in settings.model_dump().items():
        if value is None:
            shown = "[muted]-[/muted]"
        elif isinstance(value, SecretStr):
            shown = "********"
        else:
            shown = str(value)
        table.add_row(name, shown)

    console.print(table)


@app.command()
def init(
    panel_url: PanelUrlOption = None,
    api_key: ApiKeyOption = None,
    node_ids: NodeIdsOption = None,
    exclude_keyword: ExcludeKeywordOption = None,
    timeout: TimeoutOption = None,
    max_pages: MaxPagesOption = None,
    retries: RetriesOption = None,
    retry_backoff: RetryBackoffOption = None,
    concurrency: ConcurrencyOption = None,
    settings_path: SettingsPathOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing settings file."),
    ] = False,
) -> None:
    """Write the given options to the settings file.

    The file is created with owner-only permissions since it may hold the
    API key.

    Examples:
        pteropurge config init -u https://panel.example.com -k ptla_xxx
        pteropurge config init -n 3,4 -x prod --force
    """
    path: Path = settings_path or get_settings_path()
    if path.exists() and not force:
        print_error(f"Settings file already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        settings = PanelSettings.model_validate(
            {
                "panel_url": panel_url,
                "api_key": api_key,
                "node_ids": node_ids,
                "exclude_keyword": exclude_keyword,
                "timeout_seconds": timeout,
                "max_pages": max_pages,
                "delete_retries": retries,
                "retry_backoff_seconds": retry_backoff,
                "concurrency": concurrency,
            }
        )
    except ValidationError as e:
        print_error(f"Invalid settings: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    try:
        saved = save_settings(settings, path)
    except SettingsError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e

    print_success(f"Settings written to {saved}")
