"""
Tests for the polling orchestrator.

Covers first-run suppression, chronological replay, idempotence, type
filtering, commit backfill and failure isolation for a single cycle.
"""

from unittest.mock import AsyncMock, call

import pytest

from activity_relay.exceptions import GitHubAPIError, NotifierError
from activity_relay.models import Commit, PollState
from activity_relay.polling.orchestrator import (
    OUTCOME_EMPTY,
    OUTCOME_ERROR,
    OUTCOME_FIRST_RUN,
    OUTCOME_REPLAY,
    OUTCOME_THROTTLED,
    PollingOrchestrator,
)
from activity_relay.state.manager import InMemoryStateManager


def _starred(make_event, event_id):
    return make_event(event_id, "WatchEvent", repo=f"octocat/repo-{event_id}")


def _sent_titles(notifier):
    return [c.args[0].title for c in notifier.send.call_args_list]


class TestCycle:
    """Test a single polling cycle."""

    @pytest.mark.asyncio
    async def test_first_run_posts_only_newest(
        self, orchestrator, mock_github_client, mock_notifier, state_manager, make_event
    ):
        mock_github_client.fetch_user_events.return_value = [
            _starred(make_event, "5"),
            _starred(make_event, "4"),
            _starred(make_event, "3"),
        ]

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_FIRST_RUN
        assert result.dispatched == 1
        assert _sent_titles(mock_notifier) == ["Starred octocat/repo-5"]
        assert orchestrator.state.last_seen_id == "5"
        assert state_manager.last_event_id == "5"
        mock_github_client.fetch_user_events.assert_called_once_with("octocat")

    @pytest.mark.asyncio
    async def test_replay_is_chronological(
        self, orchestrator, mock_github_client, mock_notifier, mock_sleep, make_event
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.return_value = [
            _starred(make_event, "5"),
            _starred(make_event, "4"),
            _starred(make_event, "3"),
        ]

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_REPLAY
        assert _sent_titles(mock_notifier) == [
            "Starred octocat/repo-4",
            "Starred octocat/repo-5",
        ]
        assert mock_sleep.call_args_list == [call(0.5), call(0.5)]
        assert orchestrator.state.last_seen_id == "5"

    @pytest.mark.asyncio
    async def test_unchanged_feed_is_idempotent(
        self, orchestrator, mock_github_client, mock_notifier, make_event
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.return_value = [
            _starred(make_event, "5"),
            _starred(make_event, "4"),
            _starred(make_event, "3"),
        ]

        await orchestrator.run_cycle()
        mock_notifier.send.reset_mock()
        result = await orchestrator.run_cycle()

        assert result.dispatched == 0
        assert result.outcome == OUTCOME_EMPTY
        mock_notifier.send.assert_not_called()
        assert orchestrator.state.last_seen_id == "5"

    @pytest.mark.asyncio
    async def test_excluded_type_still_advances_last_seen_id(
        self,
        settings,
        mock_github_client,
        mock_notifier,
        state_manager,
        mock_sleep,
        make_event,
    ):
        watch_only = settings.model_copy(update={"event_types": ["WatchEvent"]})
        orchestrator = PollingOrchestrator(
            mock_github_client,
            mock_notifier,
            state_manager,
            watch_only,
            state=PollState(last_seen_id="4"),
            sleep=mock_sleep,
        )
        mock_github_client.fetch_user_events.return_value = [
            make_event("6", "PushEvent", payload={"ref": "refs/heads/main"}),
            _starred(make_event, "5"),
            _starred(make_event, "4"),
        ]

        result = await orchestrator.run_cycle()

        assert _sent_titles(mock_notifier) == ["Starred octocat/repo-5"]
        assert result.new_items == 1
        assert orchestrator.state.last_seen_id == "6"
        assert state_manager.last_event_id == "6"

    @pytest.mark.asyncio
    async def test_unknown_type_is_not_sent_but_advances(
        self, orchestrator, mock_github_client, mock_notifier, make_event
    ):
        orchestrator.state.last_seen_id = "7"
        mock_github_client.fetch_user_events.return_value = [
            make_event("9", "GollumEvent", payload={"pages": []}),
            _starred(make_event, "8"),
            _starred(make_event, "7"),
        ]

        await orchestrator.run_cycle()

        assert _sent_titles(mock_notifier) == ["Starred octocat/repo-8"]
        assert orchestrator.state.last_seen_id == "9"

    @pytest.mark.asyncio
    async def test_throttled_fetch_leaves_state_alone(
        self, orchestrator, mock_github_client, mock_notifier, state_manager
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.return_value = None

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_THROTTLED
        mock_notifier.send.assert_not_called()
        assert orchestrator.state.last_seen_id == "3"
        assert state_manager.save_count == 0
        assert orchestrator.stats.cycles_throttled == 1

    @pytest.mark.asyncio
    async def test_empty_feed_does_not_persist(
        self, orchestrator, mock_github_client, state_manager
    ):
        mock_github_client.fetch_user_events.return_value = []

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_EMPTY
        assert orchestrator.state.last_seen_id is None
        assert state_manager.save_count == 0

    @pytest.mark.asyncio
    async def test_transport_failure_is_contained(
        self, orchestrator, mock_github_client, mock_notifier
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.side_effect = GitHubAPIError(
            "GitHub API error: 500", status_code=500
        )

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_ERROR
        assert "500" in result.error
        assert orchestrator.state.last_seen_id == "3"
        assert orchestrator.stats.cycles_failed == 1
        mock_notifier.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_does_not_abort_batch(
        self, orchestrator, mock_github_client, mock_notifier, state_manager, make_event
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.return_value = [
            _starred(make_event, "5"),
            _starred(make_event, "4"),
            _starred(make_event, "3"),
        ]
        mock_notifier.send.side_effect = [NotifierError("Discord API error: 500"), None]

        result = await orchestrator.run_cycle()

        assert result.failed == 1
        assert result.dispatched == 1
        assert mock_notifier.send.call_count == 2
        assert state_manager.last_event_id == "5"
        assert orchestrator.stats.events_failed == 1

    @pytest.mark.asyncio
    async def test_save_failure_is_not_fatal(
        self, orchestrator, mock_github_client, make_event
    ):
        failing_store = AsyncMock(spec=InMemoryStateManager)
        failing_store.save_last_event_id.side_effect = OSError("disk full")
        orchestrator.state_manager = failing_store
        mock_github_client.fetch_user_events.return_value = [_starred(make_event, "5")]

        result = await orchestrator.run_cycle()

        assert result.outcome == OUTCOME_FIRST_RUN
        assert orchestrator.state.last_seen_id == "5"


class TestCommitBackfill:
    """Test commit backfill for push events without inline commits."""

    @pytest.mark.asyncio
    async def test_missing_commits_are_fetched(
        self, orchestrator, mock_github_client, mock_notifier, make_event
    ):
        before, head = "a" * 40, "b" * 40
        mock_github_client.fetch_user_events.return_value = [
            make_event(
                "5",
                "PushEvent",
                payload={"ref": "refs/heads/main", "before": before, "head": head},
            )
        ]
        mock_github_client.fetch_commits.return_value = [
            Commit(sha="c" * 40, message="Backfilled commit")
        ]

        result = await orchestrator.run_cycle()

        mock_github_client.fetch_commits.assert_called_once_with(
            "octocat/hello-world", before, head
        )
        assert result.dispatched == 1
        message = mock_notifier.send.call_args.args[0]
        assert "Backfilled commit" in message.description

    @pytest.mark.asyncio
    async def test_backfill_failure_skips_only_that_event(
        self, orchestrator, mock_github_client, mock_notifier, make_event
    ):
        orchestrator.state.last_seen_id = "3"
        mock_github_client.fetch_user_events.return_value = [
            _starred(make_event, "5"),
            make_event(
                "4",
                "PushEvent",
                payload={"ref": "refs/heads/main", "before": "a" * 40, "head": "b" * 40},
            ),
            _starred(make_event, "3"),
        ]
        mock_github_client.fetch_commits.side_effect = GitHubAPIError("boom")

        result = await orchestrator.run_cycle()

        assert result.failed == 1
        assert _sent_titles(mock_notifier) == ["Starred octocat/repo-5"]
        assert orchestrator.state.last_seen_id == "5"

    @pytest.mark.asyncio
    async def test_inline_commits_skip_backfill(
        self, orchestrator, mock_github_client, make_event
    ):
        mock_github_client.fetch_user_events.return_value = [
            make_event(
                "5",
                "PushEvent",
                payload={
                    "ref": "refs/heads/main",
                    "before": "a" * 40,
                    "head": "b" * 40,
                    "commits": [{"sha": "b" * 40, "message": "Inline"}],
                },
            )
        ]

        await orchestrator.run_cycle()

        mock_github_client.fetch_commits.assert_not_called()


@pytest.mark.asyncio
async def test_load_state_reads_persisted_id(orchestrator):
    orchestrator.state_manager = InMemoryStateManager(last_event_id="42")

    await orchestrator.load_state()

    assert orchestrator.state.last_seen_id == "42"


def test_collect_new_events_stops_at_last_seen(orchestrator, make_event):
    events = [_starred(make_event, i) for i in ("5", "4", "3", "2")]

    collected = orchestrator.collect_new_events(events, "3")

    assert [e.id for e in collected] == ["5", "4"]


def test_stats_summary(orchestrator):
    summary = orchestrator.stats.to_dict()

    assert summary["cycles"] == 0
    assert summary["last_cycle_at"] is None
