"""Run state models for the purge workflow.

This module defines the statistics, progress, error log and event
structures that describe one purge run. The orchestrator owns the only
mutable instances; everything handed to subscribers is immutable.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from pteropurge.models.server import Server


class RunPhase(Enum):
    """Lifecycle phase of a purge run.

    Attributes:
        IDLE: No run has started yet.
        LISTING: Fetching servers page by page.
        PROCESSING: Evaluating and deleting servers one at a time.
        COMPLETE: Every listed server has been processed.
        CANCELLED: The run was stopped through its cancellation token.
    """

    IDLE = "idle"
    LISTING = "listing"
    PROCESSING = "processing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class ServerOutcome(Enum):
    """Outcome of processing one server.

    FAILED is informational only. Statistics count a failed deletion as
    skipped.
    """

    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RunStatistics:
    """Counters for one purge run.

    Attributes:
        total: Number of servers returned by listing.
        deleted: Servers deleted successfully.
        skipped: Servers not eligible, or whose deletion failed.
    """

    total: int = 0
    deleted: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        """Number of servers that reached an outcome."""
        return self.deleted + self.skipped

    @property
    def is_balanced(self) -> bool:
        """Check that every listed server resolved to exactly one outcome."""
        return self.processed == self.total


@dataclass(frozen=True, slots=True)
class RunProgress:
    """Completed-item count relative to the run total."""

    completed: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        """Return progress as a percentage (0 when there is nothing to do)."""
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100


class ErrorLog:
    """Ordered, append-only collection of human-readable failure messages."""

    def __init__(self) -> None:
        self._entries: list[str] = []

    def append(self, message: str) -> None:
        """Append a message to the log."""
        self._entries.append(message)

    def clear(self) -> None:
        """Drop all messages (only done at run start)."""
        self._entries.clear()

    @property
    def entries(self) -> tuple[str, ...]:
        """Return an immutable copy of all messages."""
        return tuple(self._entries)

    @property
    def latest(self) -> str | None:
        """Return the most recent message, if any."""
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._entries))


@dataclass(frozen=True, slots=True)
class ServerResult:
    """Result of processing a single server.

    Attributes:
        server: The server that was evaluated.
        outcome: What happened to it.
        error: Error message if the deletion failed.
        attempts: Number of delete calls issued (0 when not eligible).
    """

    server: Server
    outcome: ServerOutcome
    error: str | None = None
    attempts: int = 0

    @property
    def deleted(self) -> bool:
        """Check if the server was deleted."""
        return self.outcome == ServerOutcome.DELETED

    @property
    def failed(self) -> bool:
        """Check if a deletion was attempted and failed."""
        return self.outcome == ServerOutcome.FAILED


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    """Read-only view of a run, handed to subscribers.

    Attributes:
        phase: Current lifecycle phase.
        statistics: Counters at the time of the snapshot.
        progress: Progress at the time of the snapshot.
        errors: All error messages recorded so far.
    """

    phase: RunPhase = RunPhase.IDLE
    statistics: RunStatistics = field(default_factory=RunStatistics)
    progress: RunProgress = field(default_factory=RunProgress)
    errors: tuple[str, ...] = ()

    @property
    def latest_error(self) -> str | None:
        """Return the most recent error message, if any."""
        return self.errors[-1] if self.errors else None


class PurgeEventType(Enum):
    """Kinds of events emitted by the orchestrator."""

    STARTED = "started"
    LISTED = "listed"
    PROCESSED = "processed"
    ERROR = "error"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class PurgeEvent:
    """Notification sent to run subscribers.

    Attributes:
        event_type: What happened.
        snapshot: State of the run right after the event.
        result: Per-server result (PROCESSED events only).
        message: Error message (ERROR events only).
    """

    event_type: PurgeEventType
    snapshot: RunSnapshot
    result: ServerResult | None = None
    message: str | None = None
