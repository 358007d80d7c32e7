"""Purge command implementation.

Deletes every server on the target nodes whose name does not contain the
excluded keyword.
"""

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import Annotated

import typer

from pteropurge.cli.commands.preview import show_preview
from pteropurge.cli.display import (
    ProgressReporter,
    create_results_table,
    print_run_summary,
)
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
    create_client,
    resolve_config,
)
from pteropurge.core.purge import PurgeOrchestrator
from pteropurge.models.run import RunPhase, ServerOutcome
from pteropurge.utils.formatting import console, print_info, print_warning

app = typer.Typer(
    help="Delete servers on the given nodes.",
    invoke_without_command=True,
)

# Conventional exit status for SIGINT
EXIT_CANCELLED = 130


@contextmanager
def _cancel_on_interrupt(orchestrator: PurgeOrchestrator) -> Iterator[None]:
    """Turn Ctrl+C into a cancellation request instead of an exception.

    The current request finishes; no further server is processed.
    """

    def handler(signum: int, frame: FrameType | None) -> None:
        if not orchestrator.is_running:
            return
        print_warning("Cancelling after the current server...")
        orchestrator.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _confirm_purge(count: int) -> bool:
    """Prompt user to confirm deleting the listed servers.

    Returns:
        True if user confirms, False otherwise.
    """
    return typer.confirm(f"\nPermanently delete {count} server(s)?", default=False)


@app.callback(invoke_without_command=True)
def purge(
    ctx: typer.Context,
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
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt and proceed."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted without deleting."),
    ] = False,
) -> None:
    """Delete servers on the given nodes.

    Every server on one of the --node-ids is deleted unless its name
    contains --exclude-keyword. The servers to delete are listed first and
    confirmed before anything is deleted. A failed deletion is reported and
    the server is counted as skipped; the run continues with the next server.

    Press Ctrl+C to stop after the current server.

    Examples:
        pteropurge purge -u https://panel.example.com -n 3,4 -x prod --dry-run
        pteropurge purge -n 3 --yes --retries 2 --retry-backoff 0.5
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
        delete_retries=retries,
        retry_backoff_seconds=retry_backoff,
        concurrency=concurrency,
    )

    with create_client(config) as client:
        listing = show_preview(client, config, dry_run=dry_run)
        eligible = len(listing.plan.eligible)
        if dry_run or not eligible:
            return

        if not yes and not _confirm_purge(eligible):
            print_info("Aborted.")
            raise typer.Exit(code=0)

        orchestrator = PurgeOrchestrator(client, config)
        with _cancel_on_interrupt(orchestrator), ProgressReporter() as reporter:
            orchestrator.subscribe(reporter)
            stats = orchestrator.run(listing.servers)

    snapshot = orchestrator.snapshot()
    results = orchestrator.results
    if any(r.outcome != ServerOutcome.SKIPPED for r in results):
        console.print(create_results_table(results))
    print_run_summary(stats, snapshot.phase, snapshot.errors)

    if listing.errors:
        print_warning("Server listing was incomplete; servers on later pages were not processed.")

    if snapshot.phase == RunPhase.CANCELLED:
        raise typer.Exit(code=EXIT_CANCELLED)
