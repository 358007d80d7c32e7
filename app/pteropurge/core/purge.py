"""Purge workflow orchestration.

Drives one complete run: list every server, evaluate each against the
node and name filters, delete the eligible ones, and keep statistics,
progress and the error log up to date. The orchestrator is the only
writer of run state; subscribers receive immutable snapshots.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Collection, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace

from pteropurge.core.config import PurgeConfig
from pteropurge.core.filter import is_eligible
from pteropurge.models.run import (
    ErrorLog,
    PurgeEvent,
    PurgeEventType,
    RunPhase,
    RunProgress,
    RunSnapshot,
    RunStatistics,
    ServerOutcome,
    ServerResult,
)
from pteropurge.models.server import Server
from pteropurge.panel.client import DeleteError, PanelClient
from pteropurge.panel.lister import ServerLister

logger = logging.getLogger(__name__)

Listener = Callable[[PurgeEvent], None]


class RunInProgressError(RuntimeError):
    """Raised when a run is started while another one is active."""


@dataclass(frozen=True, slots=True)
class PurgePlan:
    """Dry-run evaluation of a server list.

    Attributes:
        eligible: Servers that a run would try to delete.
        protected: Servers that a run would skip.
    """

    eligible: tuple[Server, ...]
    protected: tuple[Server, ...]

    @property
    def total(self) -> int:
        """Number of servers evaluated."""
        return len(self.eligible) + len(self.protected)


def plan(servers: Sequence[Server], config: PurgeConfig) -> PurgePlan:
    """Split servers into eligible and protected without deleting anything.

    Args:
        servers: Servers in listing order.
        config: Run configuration providing the filters.

    Returns:
        PurgePlan preserving listing order in both groups.
    """
    targets = config.target_node_ids
    eligible: list[Server] = []
    protected: list[Server] = []
    for server in servers:
        if is_eligible(server, targets, config.exclude_keyword):
            eligible.append(server)
        else:
            protected.append(server)
    return PurgePlan(eligible=tuple(eligible), protected=tuple(protected))


class PurgeOrchestrator:
    """Runs the list, filter, delete workflow against one panel.

    Servers are processed strictly in listing order. With
    ``config.concurrency > 1`` delete calls overlap in a bounded thread
    pool, but results are still accounted one at a time in listing order.

    Example:
        >>> orchestrator = PurgeOrchestrator(client, config)
        >>> orchestrator.subscribe(lambda event: print(event.snapshot.progress.percent))
        >>> stats = orchestrator.run()
        >>> stats.deleted + stats.skipped == stats.total
        True
    """

    def __init__(
        self,
        client: PanelClient,
        config: PurgeConfig,
        *,
        cancel: threading.Event | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Client for the panel the config points at.
            config: Immutable run configuration.
            cancel: Cancellation token checked between pages and between servers.
            sleep: Delay function used for retry backoff.
        """
        self._client = client
        self._config = config
        self._cancel = cancel or threading.Event()
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._running = False

        self._phase = RunPhase.IDLE
        self._statistics = RunStatistics()
        self._progress = RunProgress()
        self._errors = ErrorLog()
        self._servers: tuple[Server, ...] = ()
        self._results: list[ServerResult] = []

    @property
    def config(self) -> PurgeConfig:
        """Return the run configuration."""
        return self._config

    @property
    def is_running(self) -> bool:
        """Check if a run is in progress."""
        return self._running

    @property
    def servers(self) -> tuple[Server, ...]:
        """Return the servers listed by the current or last run."""
        return self._servers

    @property
    def results(self) -> tuple[ServerResult, ...]:
        """Return per-server results of the current or last run."""
        return tuple(self._results)

    def cancel(self) -> None:
        """Request cancellation; honored before the next page or server."""
        self._cancel.set()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for run events.

        Args:
            listener: Callable receiving each PurgeEvent.

        Returns:
            Function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> RunSnapshot:
        """Return a read-only view of the current run state."""
        return RunSnapshot(
            phase=self._phase,
            statistics=self._statistics,
            progress=self._progress,
            errors=self._errors.entries,
        )

    def run(self, servers: Sequence[Server] | None = None) -> RunStatistics:
        """Execute one complete run.

        Listing errors stop pagination and the run continues with the servers
        gathered so far. Delete errors are recorded and the server counts as
        skipped.

        Args:
            servers: Servers listed beforehand, in listing order. When given,
                the run skips its own listing and processes exactly these.

        Returns:
            Final statistics of the run.

        Raises:
            RunInProgressError: If called while a run is already active.
        """
        if self._running:
            msg = "A purge run is already in progress"
            raise RunInProgressError(msg)

        self._running = True
        try:
            return self._execute(servers)
        finally:
            self._running = False

    def _execute(self, listed: Sequence[Server] | None) -> RunStatistics:
        self._reset()
        self._phase = RunPhase.LISTING
        self._emit(PurgeEventType.STARTED)

        if listed is None:
            lister = ServerLister(
                self._client, max_pages=self._config.max_pages, cancel=self._cancel
            )
            servers = lister.list_all(self._errors)
            for message in self._errors:
                self._emit(PurgeEventType.ERROR, message=message)
        else:
            servers = list(listed)

        self._servers = tuple(servers)
        self._statistics = RunStatistics(total=len(servers))
        self._progress = RunProgress(total=len(servers))

        if self._cancel.is_set():
            logger.info("Run cancelled during listing; no servers processed")
            return self._finish(RunPhase.CANCELLED)

        self._phase = RunPhase.PROCESSING
        self._emit(PurgeEventType.LISTED)

        targets = self._config.target_node_ids
        logger.info(
            "Processing %d server(s) for node(s) %s, excluding names containing %r",
            len(servers),
            ", ".join(targets),
            self._config.exclude_keyword,
        )

        for result in self._results_in_order(servers, targets):
            self._record(result)

        if self._statistics.processed < self._statistics.total:
            return self._finish(RunPhase.CANCELLED)
        return self._finish(RunPhase.COMPLETE)

    def _reset(self) -> None:
        self._statistics = RunStatistics()
        self._progress = RunProgress()
        self._errors.clear()
        self._servers = ()
        self._results = []

    def _finish(self, phase: RunPhase) -> RunStatistics:
        self._phase = phase
        stats = self._statistics
        logger.info(
            "Run %s: %d total, %d deleted, %d skipped",
            phase.value,
            stats.total,
            stats.deleted,
            stats.skipped,
        )
        self._emit(PurgeEventType.FINISHED)
        return stats

    def _results_in_order(
        self,
        servers: Sequence[Server],
        targets: Collection[str],
    ) -> Iterator[ServerResult]:
        """Yield one result per server, in listing order.

        Stops handing out new servers once cancellation is requested.
        Servers already in flight still yield their result.
        """
        workers = self._config.concurrency
        if workers == 1:
            for server in servers:
                if self._cancel.is_set():
                    return
                yield self._process(server, targets)
            return

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="purge") as pool:
            pending: deque[Future[ServerResult]] = deque()
            for server in servers:
                if self._cancel.is_set():
                    break
                pending.append(pool.submit(self._process, server, targets))
                if len(pending) >= workers:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()

    def _process(self, server: Server, targets: Collection[str]) -> ServerResult:
        """Evaluate one server and delete it if eligible.

        Runs on a worker thread when a pool is used, so it must not touch
        run state.
        """
        if not is_eligible(server, targets, self._config.exclude_keyword):
            logger.debug("Skipping server %d (%s) on node %d", server.id, server.name, server.node)
            return ServerResult(server=server, outcome=ServerOutcome.SKIPPED)
        return self._delete(server)

    def _delete(self, server: Server) -> ServerResult:
        """Delete a server, retrying with exponential backoff if configured."""
        max_attempts = self._config.delete_retries + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                self._client.delete_server(server.id)
            except DeleteError as e:
                if attempt >= max_attempts or self._cancel.is_set():
                    logger.warning("Failed to delete server %d: %s", server.id, e)
                    return ServerResult(
                        server=server,
                        outcome=ServerOutcome.FAILED,
                        error=f"Error deleting server {server.id}: {e}",
                        attempts=attempt,
                    )
                delay = self._config.retry_backoff_seconds * 2 ** (attempt - 1)
                logger.info(
                    "Delete of server %d failed (attempt %d/%d), retrying in %.1fs: %s",
                    server.id,
                    attempt,
                    max_attempts,
                    delay,
                    e,
                )
                self._sleep(delay)
            else:
                logger.info("Deleted server %d (%s)", server.id, server.name)
                return ServerResult(server=server, outcome=ServerOutcome.DELETED, attempts=attempt)

    def _record(self, result: ServerResult) -> None:
        """Account one result. Only ever called on the orchestrator's thread."""
        if result.deleted:
            self._statistics = replace(self._statistics, deleted=self._statistics.deleted + 1)
        else:
            self._statistics = replace(self._statistics, skipped=self._statistics.skipped + 1)

        if result.failed and result.error:
            self._errors.append(result.error)
            self._emit(PurgeEventType.ERROR, message=result.error)

        self._results.append(result)
        self._progress = replace(self._progress, completed=self._progress.completed + 1)
        self._emit(PurgeEventType.PROCESSED, result=result)

    def _emit(
        self,
        event_type: PurgeEventType,
        *,
        result: ServerResult | None = None,
        message: str | None = None,
    ) -> None:
        if not self._listeners:
            return
        event = PurgeEvent(
            event_type=event_type,
            snapshot=self.snapshot(),
            result=result,
            message=message,
        )
        for listener in list(self._listeners):
            listener(event)
