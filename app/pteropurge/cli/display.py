"""Shared Rich display functions for plans, progress and results.

The orchestrator never prints; these helpers render the snapshots and
results it exposes.
"""

from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.table import Table

from pteropurge.core.config import PurgeConfig
from pteropurge.core.purge import PurgePlan
from pteropurge.models.run import (
    PurgeEvent,
    PurgeEventType,
    RunPhase,
    RunStatistics,
    ServerOutcome,
    ServerResult,
)
from pteropurge.models.server import Server
from pteropurge.utils.formatting import (
    console,
    create_server_table,
    print_success,
    print_warning,
)


def describe_config(config: PurgeConfig) -> str:
    """Return a one-line description of what a run will target."""
    nodes = ", ".join(node or "''" for node in config.target_node_ids)
    text = f"servers on node(s) [bold]{nodes}[/bold] of [bold]{escape(config.panel_url)}[/bold]"
    if config.exclude_keyword:
        keyword = escape(repr(config.exclude_keyword))
        text += f", keeping names containing [protected]{keyword}[/protected]"
    return text


def create_plan_table(servers: tuple[Server, ...], dry_run: bool = False) -> Table:
    """Create a table of servers a run would delete."""
    title = "Servers To Delete (Dry Run)" if dry_run else "Servers To Delete"
    table = create_server_table(title)
    for server in servers:
        table.add_row(str(server.id), f"[deleted]{escape(server.name)}[/deleted]", str(server.node))
    return table


def create_protected_table(servers: tuple[Server, ...]) -> Table:
    """Create a table of servers a run would keep."""
    table = create_server_table("Servers Kept")
    for server in servers:
        name = f"[protected]{escape(server.name)}[/protected]"
        table.add_row(str(server.id), name, str(server.node))
    return table


def print_plan_summary(plan: PurgePlan) -> None:
    """Print counts of eligible and kept servers."""
    console.print(
        f"\nSummary: [deleted]{len(plan.eligible)} to delete[/deleted], "
        f"[protected]{len(plan.protected)} kept[/protected] "
        f"[muted](of {plan.total} listed)[/muted]"
    )


def create_results_table(results: tuple[ServerResult, ...]) -> Table:
    """Create a table of delete attempts.

    Servers skipped by the filters are left out; they only show up in the
    summary counts.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("ID", justify="right")
    table.add_column("Name", no_wrap=True)
    table.add_column("Message")

    for result in results:
        if result.outcome == ServerOutcome.SKIPPED:
            continue
        if result.deleted:
            status = "[success]OK[/success]"
            message = "Deleted"
            if result.attempts > 1:
                message += f" after {result.attempts} attempts"
        else:
            status = "[error]FAIL[/error]"
            message = result.error or "Unknown error"
        table.add_row(
            status,
            str(result.server.id),
            escape(result.server.name),
            f"[muted]{escape(message)}[/muted]",
        )

    return table


def print_run_summary(stats: RunStatistics, phase: RunPhase, errors: tuple[str, ...]) -> None:
    """Print final statistics and any recorded errors."""
    console.print(
        f"\nTotal: [bold]{stats.total}[/bold], "
        f"[deleted]{stats.deleted} deleted[/deleted], "
        f"[skipped]{stats.skipped} skipped[/skipped]"
    )

    if phase == RunPhase.CANCELLED:
        print_warning(f"Run cancelled after {stats.processed} of {stats.total} server(s).")
    elif not errors:
        print_success("Purge completed successfully.")
    else:
        print_warning(f"Purge completed with {len(errors)} error(s). Last: {escape(errors[-1])}")


class ProgressReporter:
    """Run subscriber that drives a Rich progress bar.

    Example:
        >>> with ProgressReporter() as reporter:
        ...     orchestrator.subscribe(reporter)
        ...     orchestrator.run()
    """

    def __init__(self) -> None:
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[deleted]{task.fields[deleted]} deleted[/deleted]"),
            TextColumn("[skipped]{task.fields[skipped]} skipped[/skipped]"),
            console=console,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> "ProgressReporter":
        self._progress.start()
        self._task = self._progress.add_task("Listing servers", total=None, deleted=0, skipped=0)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def __call__(self, event: PurgeEvent) -> None:
        if self._task is None:
            return
        snapshot = event.snapshot
        stats = snapshot.statistics

        if event.event_type == PurgeEventType.ERROR and event.message:
            self._progress.console.print(f"[error]Error:[/] {escape(event.message)}")
        elif event.event_type == PurgeEventType.LISTED:
            self._progress.update(self._task, description="Purging servers", total=stats.total)
        elif event.event_type == PurgeEventType.PROCESSED:
            self._progress.update(
                self._task,
                completed=snapshot.progress.completed,
                deleted=stats.deleted,
                skipped=stats.skipped,
            )
        elif event.event_type == PurgeEventType.FINISHED:
            self._progress.update(self._task, description=snapshot.phase.value.capitalize())
