"""Shared CLI options and configuration resolution.

Commands that talk to the panel accept the same connection and filter
options. Values given on the command line (or through environment
variables) override the settings file.
"""

from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.markup import escape

from pteropurge.core.config import PurgeConfig, SettingsError, load_settings_or_default
from pteropurge.panel.client import PanelClient
from pteropurge.utils.formatting import print_error, print_info

PanelUrlOption = Annotated[
    str | None,
    typer.Option(
        "--panel-url",
        "-u",
        help="Panel base URL, e.g. https://panel.example.com.",
        envvar="PTEROPURGE_PANEL_URL",
    ),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option(
        "--api-key",
        "-k",
        help="Application API key.",
        envvar="PTEROPURGE_API_KEY",
        show_envvar=True,
    ),
]
NodeIdsOption = Annotated[
    str | None,
    typer.Option(
        "--node-ids",
        "-n",
        help="Comma-separated node ids whose servers are deleted, e.g. '1,2,3'.",
    ),
]
ExcludeKeywordOption = Annotated[
    str | None,
    typer.Option(
        "--exclude-keyword",
        "-x",
        help="Keep servers whose name contains this text (case-sensitive).",
    ),
]
TimeoutOption = Annotated[
    float | None,
    typer.Option("--timeout", help="Per-request timeout in seconds."),
]
MaxPagesOption = Annotated[
    int | None,
    typer.Option("--max-pages", help="Stop listing after this many pages (0 = no limit)."),
]
RetriesOption = Annotated[
    int | None,
    typer.Option("--retries", help="Extra attempts for a failed delete (0-10)."),
]
RetryBackoffOption = Annotated[
    float | None,
    typer.Option(
        "--retry-backoff",
        help="Seconds before the first retry; doubles with each further retry.",
    ),
]
ConcurrencyOption = Annotated[
    int | None,
    typer.Option("--concurrency", "-c", help="Delete calls in flight at once (1-16)."),
]
SettingsPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Settings file to read defaults from.",
        dir_okay=False,
    ),
]


def resolve_config(
    settings_path: Path | None = None,
    **overrides: object,
) -> PurgeConfig:
    """Build the run configuration from the settings file and CLI options.

    Args:
        settings_path: Settings file path (None = default location).
        **overrides: Option values; None means "not given on the command line".

    Returns:
        Validated PurgeConfig.

    Raises:
        typer.Exit: With code 1 if the settings file or the options are invalid.
    """
    try:
        settings = load_settings_or_default(settings_path)
    except SettingsError as e:
        print_error(f"Failed to load settings: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    data = settings.merged_with(**overrides)

    missing = [name for name in ("panel_url", "api_key") if not data.get(name)]
    if missing:
        flags = ", ".join(f"--{name.replace('_', '-')}" for name in missing)
        print_error(f"Missing required option(s): {flags}")
        print_info("Pass them on the command line or run 'pteropurge config init'.")
        raise typer.Exit(code=1)

    try:
        return PurgeConfig.model_validate(data)
    except ValidationError as e:
        print_error(f"Invalid configuration: {escape(str(e))}")
        raise typer.Exit(code=1) from e


def create_client(config: PurgeConfig) -> PanelClient:
    """Create a panel client for the given configuration."""
    return PanelClient(
        config.panel_url,
        config.api_key.get_secret_value(),
        timeout=config.timeout_seconds,
    )
