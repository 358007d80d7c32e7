"""Preview command implementation.

Lists every server and shows which ones a purge would delete, without
deleting anything.
"""

from dataclasses import dataclass
from typing import Annotated

import typer
from rich.markup import escape

from pteropurge.cli.display import (
    create_plan_table,
    create_protected_table,
    describe_config,
    print_plan_summary,
)
from pteropurge.cli.options import (
    ApiKeyOption,
    ExcludeKeywordOption,
    MaxPagesOption,
    NodeIdsOption,
    PanelUrlOption,
    SettingsPathOption,
    TimeoutOption,
    create_client,
    resolve_config,
)
from pteropurge.core.config import PurgeConfig
from pteropurge.core.purge import PurgePlan, plan
from pteropurge.models.run import ErrorLog
from pteropurge.models.server import Server
from pteropurge.panel.client import PanelClient
from pteropurge.panel.lister import ServerLister
from pteropurge.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Preview which servers a purge would delete.",
    invoke_without_command=True,
)


@dataclass(frozen=True, slots=True)
class Listing:
    """Servers listed for a preview or a purge.

    Attributes:
        servers: All listed servers, in listing order.
        errors: Listing errors; non-empty means the list may be partial.
        plan: Eligible and protected split of ``servers``.
    """

    servers: tuple[Server, ...]
    errors: tuple[str, ...]
    plan: PurgePlan


def list_servers(client: PanelClient, config: PurgeConfig) -> Listing:
    """List all servers of the configured panel and plan the purge."""
    errors = ErrorLog()
    servers = ServerLister(client, max_pages=config.max_pages).list_all(errors)
    return Listing(servers=tuple(servers), errors=errors.entries, plan=plan(servers, config))


def show_preview(
    client: PanelClient,
    config: PurgeConfig,
    show_protected: bool = False,
    dry_run: bool = False,
) -> Listing:
    """List servers and print the purge plan.

    Returns:
        The listing, for a purge to act on.

    Raises:
        typer.Exit: With code 1 if listing failed before returning any server.
    """
    console.print(f"Listing {describe_config(config)}\n")

    listing = list_servers(client, config)
    for message in listing.errors:
        print_error(escape(message))

    if not listing.servers:
        if listing.errors:
            raise typer.Exit(code=1)
        print_success("No servers found on the panel. Nothing to do.")
        return listing

    result = listing.plan

    if result.eligible:
        console.print(create_plan_table(result.eligible, dry_run=dry_run))
    else:
        print_success("No server matches the filters. Nothing to delete.")

    if show_protected and result.protected:
        console.print(create_protected_table(result.protected))

    print_plan_summary(result)

    if dry_run:
        print_info("\nDry-run mode: No servers were deleted.")
    return listing


@app.callback(invoke_without_command=True)
def preview(
    ctx: typer.Context,
    panel_url: PanelUrlOption = None,
    api_key: ApiKeyOption = None,
    node_ids: NodeIdsOption = None,
    exclude_keyword: ExcludeKeywordOption = None,
    timeout: TimeoutOption = None,
    max_pages: MaxPagesOption = None,
    settings_path: SettingsPathOption = None,
    show_protected: Annotated[
        bool,
        typer.Option("--show-protected", "-p", help="Also list servers that would be kept."),
    ] = False,
) -> None:
    """Show which servers a purge would delete.

    Examples:
        pteropurge preview -u https://panel.example.com -n 1,2 -x keep
        pteropurge preview --show-protected
    """
    if ctx.invoked_subcommand is not None:
        return

    config = resolve_config(
        settings_path,
        panel_url=panel_url,
        api_key=api_key,
        node_ids=node_ids,
        exclude_keyword=exclude_keyword,
        timeout_seconds=timeout,
        max_pages=max_pages,
    )
    with create_client(config) as client:
        show_preview(client, config, show_protected=show_protected)
