"""Unit tests for the purge orchestrator.

Tests the list, filter, delete workflow, statistics and progress
accounting, error isolation, events, cancellation, retries and the
worker pool, using a mocked panel client.
"""

import threading
from unittest.mock import MagicMock

import pytest
from pteropurge.core.config import PurgeConfig
from pteropurge.core.purge import PurgeOrchestrator, RunInProgressError, plan
from pteropurge.models.run import PurgeEvent, PurgeEventType, RunPhase, ServerOutcome
from pteropurge.models.server import Server
from pteropurge.panel.client import DeleteError, PanelClient, ServerPage, TransportError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _server(id: int, name: str = "srv", node: int = 2) -> Server:
    """Create a test Server."""
    return Server(id=id, name=name, node=node)


def _page(*servers: Server) -> ServerPage:
    """Create a listing page."""
    return ServerPage(servers=tuple(servers), has_more=bool(servers))


def _client(*pages: ServerPage | Exception) -> MagicMock:
    """Create a mock client listing the given pages; deletes succeed."""
    client = MagicMock(spec=PanelClient)
    client.list_page.side_effect = list(pages)
    client.delete_server.return_value = None
    return client


def _config(**overrides: object) -> PurgeConfig:
    """Create a config targeting nodes 1-3 and protecting 'keep'."""
    data: dict[str, object] = {
        "panel_url": "https://panel.example.com",
        "api_key": "k",
        "node_ids": "1, 2,3",
        "exclude_keyword": "keep",
    }
    data.update(overrides)
    return PurgeConfig.model_validate(data)


def _failing_for(*ids: int) -> object:
    """Build a delete side effect failing for the given server ids."""

    def delete(server_id: int) -> None:
        if server_id in ids:
            raise DeleteError(server_id, "Request failed with status code 500")

    return delete


# ---------------------------------------------------------------------------
# Basic workflow
# ---------------------------------------------------------------------------


class TestRunWorkflow:
    """Tests for the main run loop."""

    def test_deletes_eligible_and_skips_protected(self) -> None:
        """Keyword-protected servers are skipped, others on target nodes deleted."""
        keep = _server(1, "keep-this")
        drop = _server(2, "drop-this")
        client = _client(_page(keep, drop), _page())

        stats = PurgeOrchestrator(client, _config()).run()

        client.delete_server.assert_called_once_with(2)
        assert (stats.total, stats.deleted, stats.skipped) == (2, 1, 1)

    def test_other_nodes_are_not_touched(self) -> None:
        """Servers outside the target nodes get no delete call."""
        client = _client(_page(_server(1, node=9), _server(2, node=3)), _page())

        stats = PurgeOrchestrator(client, _config()).run()

        client.delete_server.assert_called_once_with(2)
        assert stats.deleted == 1
        assert stats.skipped == 1

    def test_processes_in_listing_order(self) -> None:
        """Delete calls follow pagination order without re-sorting."""
        client = _client(
            _page(_server(30), _server(10)),
            _page(_server(20)),
            _page(),
        )

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.run()

        assert [c.args[0] for c in client.delete_server.call_args_list] == [30, 10, 20]
        assert [r.server.id for r in orchestrator.results] == [30, 10, 20]

    def test_statistics_balance(self) -> None:
        """deleted + skipped == total after a completed run."""
        servers = [
            _server(1, "a"),
            _server(2, "keep-b"),
            _server(3, "c", node=7),
            _server(4, "d"),
        ]
        client = _client(_page(*servers), _page())
        client.delete_server.side_effect = _failing_for(4)

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run()

        assert stats.deleted + stats.skipped == stats.total == 4
        assert stats.is_balanced
        assert orchestrator.snapshot().phase == RunPhase.COMPLETE

    def test_blank_node_ids_skip_everything(self) -> None:
        """Blank node ids make every server ineligible."""
        client = _client(_page(_server(1), _server(2, node=1)), _page())

        stats = PurgeOrchestrator(client, _config(node_ids="")).run()

        client.delete_server.assert_not_called()
        assert stats.deleted == 0
        assert stats.skipped == stats.total == 2

    def test_empty_keyword_deletes_all_on_target_nodes(self) -> None:
        """Without a keyword no server is protected by name."""
        client = _client(_page(_server(1, "keep-me")), _page())

        stats = PurgeOrchestrator(client, _config(exclude_keyword="")).run()

        assert stats.deleted == 1

    def test_run_with_listed_servers(self) -> None:
        """Servers handed to run() are processed without listing again."""
        client = _client()
        servers = [_server(4, "drop"), _server(8, "keep-me"), _server(2, "drop-too")]

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run(servers)

        client.list_page.assert_not_called()
        assert [c.args[0] for c in client.delete_server.call_args_list] == [4, 2]
        assert (stats.total, stats.deleted, stats.skipped) == (3, 2, 1)
        assert orchestrator.servers == tuple(servers)
        assert orchestrator.snapshot().phase == RunPhase.COMPLETE

    def test_no_servers(self) -> None:
        """An empty panel completes with zero progress and no calls."""
        client = _client(_page())

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run()

        assert (stats.total, stats.deleted, stats.skipped) == (0, 0, 0)
        snapshot = orchestrator.snapshot()
        assert snapshot.progress.percent == 0.0
        assert snapshot.phase == RunPhase.COMPLETE
        client.delete_server.assert_not_called()


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


class TestRunErrors:
    """Tests for error isolation."""

    def test_failed_delete_counts_as_skipped(self) -> None:
        """A failed deletion is skipped, logged with its id, and the run continues."""
        client = _client(_page(_server(1), _server(2), _server(3)), _page())
        client.delete_server.side_effect = _failing_for(2)

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run()

        assert stats.deleted == 2
        assert stats.skipped == 1
        assert client.delete_server.call_count == 3
        errors = orchestrator.snapshot().errors
        assert len(errors) == 1
        assert "2" in errors[0]
        assert errors[0] == "Error deleting server 2: Request failed with status code 500"

    def test_failed_result_is_reported(self) -> None:
        """The per-server result marks the failure."""
        client = _client(_page(_server(1)), _page())
        client.delete_server.side_effect = _failing_for(1)

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.run()

        (result,) = orchestrator.results
        assert result.outcome == ServerOutcome.FAILED
        assert result.attempts == 1

    def test_listing_failure_uses_partial_list(self) -> None:
        """A page failure stops listing; already listed servers are processed."""
        client = _client(_page(_server(1), _server(2)), TransportError("Network Error"))

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run()

        assert stats.total == 2
        assert stats.deleted == 2
        assert orchestrator.snapshot().errors == ("Error fetching servers: Network Error",)

    def test_listing_failure_on_first_page(self) -> None:
        """A failure on page 1 completes with nothing processed."""
        client = _client(TransportError("Connection refused"))

        orchestrator = PurgeOrchestrator(client, _config())
        stats = orchestrator.run()

        assert stats.total == 0
        assert orchestrator.snapshot().phase == RunPhase.COMPLETE
        assert orchestrator.snapshot().latest_error == "Error fetching servers: Connection refused"

    def test_state_reset_between_runs(self) -> None:
        """Statistics, errors and results start fresh for each run."""
        client = MagicMock(spec=PanelClient)
        client.list_page.side_effect = [
            _page(_server(1)),
            _page(),
            _page(_server(5), _server(6)),
            _page(),
        ]
        client.delete_server.side_effect = [DeleteError(1, "boom"), None, None]

        orchestrator = PurgeOrchestrator(client, _config())
        first = orchestrator.run()
        second = orchestrator.run()

        assert (first.total, first.deleted, first.skipped) == (1, 0, 1)
        assert (second.total, second.deleted, second.skipped) == (2, 2, 0)
        assert orchestrator.snapshot().errors == ()
        assert [r.server.id for r in orchestrator.results] == [5, 6]


# ---------------------------------------------------------------------------
# Progress and events
# ---------------------------------------------------------------------------


class TestRunEvents:
    """Tests for progress reporting through subscribers."""

    def test_progress_after_each_server(self) -> None:
        """Progress after item i equals (i + 1) / total * 100."""
        servers = [_server(i, "keep" if i % 2 else "x") for i in range(1, 5)]
        client = _client(_page(*servers), _page())
        events: list[PurgeEvent] = []

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.subscribe(events.append)
        orchestrator.run()

        processed = [e for e in events if e.event_type == PurgeEventType.PROCESSED]
        percents = [e.snapshot.progress.percent for e in processed]
        assert percents == [25.0, 50.0, 75.0, 100.0]
        assert [e.result.server.id for e in processed if e.result] == [1, 2, 3, 4]

    def test_event_sequence(self) -> None:
        """Events follow the run lifecycle."""
        client = _client(_page(_server(1)), _page())
        client.delete_server.side_effect = _failing_for(1)
        events: list[PurgeEvent] = []

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.subscribe(events.append)
        orchestrator.run()

        assert [e.event_type for e in events] == [
            PurgeEventType.STARTED,
            PurgeEventType.LISTED,
            PurgeEventType.ERROR,
            PurgeEventType.PROCESSED,
            PurgeEventType.FINISHED,
        ]
        assert events[0].snapshot.phase == RunPhase.LISTING
        assert events[1].snapshot.statistics.total == 1
        assert events[2].message == "Error deleting server 1: Request failed with status code 500"
        assert events[-1].snapshot.phase == RunPhase.COMPLETE

    def test_total_fixed_during_processing(self) -> None:
        """Total does not change once listing has completed."""
        client = _client(_page(_server(1), _server(2)), _page())
        totals: list[int] = []

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.subscribe(
            lambda e: totals.append(e.snapshot.statistics.total)
            if e.event_type != PurgeEventType.STARTED
            else None
        )
        orchestrator.run()

        assert set(totals) == {2}

    def test_listing_error_emitted(self) -> None:
        """Listing errors are emitted before processing starts."""
        client = _client(TransportError("down"))
        events: list[PurgeEvent] = []

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.subscribe(events.append)
        orchestrator.run()

        errors = [e for e in events if e.event_type == PurgeEventType.ERROR]
        assert [e.message for e in errors] == ["Error fetching servers: down"]

    def test_unsubscribe(self) -> None:
        """An unsubscribed listener receives nothing."""
        client = _client(_page())
        listener = MagicMock()

        orchestrator = PurgeOrchestrator(client, _config())
        unsubscribe = orchestrator.subscribe(listener)
        unsubscribe()
        orchestrator.run()

        listener.assert_not_called()

    def test_snapshots_are_immutable_copies(self) -> None:
        """Snapshots handed out earlier are not changed by later progress."""
        client = _client(_page(_server(1), _server(2)), _page())
        events: list[PurgeEvent] = []

        orchestrator = PurgeOrchestrator(client, _config())
        orchestrator.subscribe(events.append)
        orchestrator.run()

        listed = next(e for e in events if e.event_type == PurgeEventType.LISTED)
        assert listed.snapshot.statistics.deleted == 0
        assert listed.snapshot.progress.completed == 0

    def test_reentrant_run_rejected(self) -> None:
        """Starting a run from inside a running one is refused."""
        client = _client(_page(), _page())
        orchestrator = PurgeOrchestrator(client, _config())
        raised: list[Exception] = []

        def listener(event: PurgeEvent) -> None:
            if event.event_type == PurgeEventType.STARTED:
                try:
                    orchestrator.run()
                except RunInProgressError as e:
                    raised.append(e)

        orchestrator.subscribe(listener)
        orchestrator.run()

        assert len(raised) == 1
        assert orchestrator.is_running is False


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestRunCancellation:
    """Tests for the cancellation token."""

    def test_cancel_between_servers(self) -> None:
        """No further server is processed after cancellation."""
        client = _client(_page(_server(1), _server(2), _server(3)), _page())
        orchestrator = PurgeOrchestrator(client, _config())

        def listener(event: PurgeEvent) -> None:
            if event.event_type == PurgeEventType.PROCESSED:
                orchestrator.cancel()

        orchestrator.subscribe(listener)
        stats = orchestrator.run()

        client.delete_server.assert_called_once_with(1)
        assert stats.total == 3
        assert stats.processed == 1
        assert orchestrator.snapshot().phase == RunPhase.CANCELLED

    def test_cancel_during_listing_deletes_nothing(self) -> None:
        """A run cancelled while listing never deletes."""
        cancel = threading.Event()
        client = MagicMock(spec=PanelClient)

        def fetch(page: int) -> ServerPage:
            cancel.set()
            return _page(_server(page))

        client.list_page.side_effect = fetch

        orchestrator = PurgeOrchestrator(client, _config(), cancel=cancel)
        stats = orchestrator.run()

        client.delete_server.assert_not_called()
        assert stats.processed == 0
        assert orchestrator.snapshot().phase == RunPhase.CANCELLED

    def test_cancel_stops_retries(self) -> None:
        """Pending retries are abandoned once cancellation is requested."""
        cancel = threading.Event()
        client = _client(_page(_server(1)), _page())

        def delete(server_id: int) -> None:
            cancel.set()
            raise DeleteError(server_id, "boom")

        client.delete_server.side_effect = delete
        sleep = MagicMock()

        orchestrator = PurgeOrchestrator(
            client, _config(delete_retries=3), cancel=cancel, sleep=sleep
        )
        stats = orchestrator.run()

        assert client.delete_server.call_count == 1
        sleep.assert_not_called()
        assert stats.skipped == 1


# ---------------------------------------------------------------------------
# Retries and page ceiling
# ---------------------------------------------------------------------------


class TestRunRetries:
    """Tests for bounded delete retries."""

    def test_retry_then_succeed(self) -> None:
        """A transient failure is retried with exponential backoff."""
        client = _client(_page(_server(1)), _page())
        client.delete_server.side_effect = [DeleteError(1, "a"), DeleteError(1, "b"), None]
        sleep = MagicMock()

        orchestrator = PurgeOrchestrator(
            client,
            _config(delete_retries=3, retry_backoff_seconds=0.5),
            sleep=sleep,
        )
        stats = orchestrator.run()

        assert stats.deleted == 1
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]
        assert orchestrator.results[0].attempts == 3
        assert orchestrator.snapshot().errors == ()

    def test_retries_exhausted(self) -> None:
        """Only the final failure is logged and the server is skipped."""
        client = _client(_page(_server(1)), _page())
        client.delete_server.side_effect = DeleteError(1, "still failing")
        sleep = MagicMock()

        orchestrator = PurgeOrchestrator(client, _config(delete_retries=2), sleep=sleep)
        stats = orchestrator.run()

        assert client.delete_server.call_count == 3
        assert stats.skipped == 1
        assert orchestrator.snapshot().errors == ("Error deleting server 1: still failing",)

    def test_no_retries_by_default(self) -> None:
        """Without retries a delete is attempted once."""
        client = _client(_page(_server(1)), _page())
        client.delete_server.side_effect = DeleteError(1, "boom")
        sleep = MagicMock()

        PurgeOrchestrator(client, _config(), sleep=sleep).run()

        assert client.delete_server.call_count == 1
        sleep.assert_not_called()

    def test_page_ceiling(self) -> None:
        """Listing stops at max_pages and the run continues with what was listed."""
        client = _client(_page(_server(1)), _page(_server(2)), _page(_server(3)))

        orchestrator = PurgeOrchestrator(client, _config(max_pages=2))
        stats = orchestrator.run()

        assert stats.total == 2
        assert client.list_page.call_count == 2
        assert len(orchestrator.snapshot().errors) == 1


# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------


class TestRunConcurrency:
    """Tests for the bounded worker pool."""

    def test_pool_preserves_accounting_order(self) -> None:
        """Results and progress follow listing order with a pool."""
        servers = [_server(i, "keep" if i == 3 else f"s{i}") for i in range(1, 9)]
        client = _client(_page(*servers), _page())
        lock = threading.Lock()
        calls: list[int] = []

        def delete(server_id: int) -> None:
            with lock:
                calls.append(server_id)
            if server_id == 5:
                raise DeleteError(server_id, "boom")

        client.delete_server = delete
        events: list[PurgeEvent] = []

        orchestrator = PurgeOrchestrator(client, _config(concurrency=4))
        orchestrator.subscribe(events.append)
        stats = orchestrator.run()

        assert [r.server.id for r in orchestrator.results] == list(range(1, 9))
        completed = [
            e.snapshot.progress.completed
            for e in events
            if e.event_type == PurgeEventType.PROCESSED
        ]
        assert completed == list(range(1, 9))
        assert (stats.total, stats.deleted, stats.skipped) == (8, 6, 2)
        assert sorted(calls) == [1, 2, 4, 5, 6, 7, 8]


# ---------------------------------------------------------------------------
# plan
# ---------------------------------------------------------------------------


class TestPlan:
    """Tests for the dry-run plan."""

    def test_plan_splits_servers(self) -> None:
        """Servers are split into eligible and protected, order preserved."""
        servers = [
            _server(1, "drop-this"),
            _server(2, "keep-this"),
            _server(3, "other", node=8),
            _server(4, "drop-too"),
        ]

        result = plan(servers, _config())

        assert [s.id for s in result.eligible] == [1, 4]
        assert [s.id for s in result.protected] == [2, 3]
        assert result.total == 4

    @pytest.mark.parametrize("node_ids", ["", " , "])
    def test_plan_without_targets(self, node_ids: str) -> None:
        """Blank node ids protect every server."""
        result = plan([_server(1)], _config(node_ids=node_ids))
        assert result.eligible == ()
