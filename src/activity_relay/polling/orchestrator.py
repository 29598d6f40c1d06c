"""
Polling orchestrator for the GitHub activity relay.

This module runs one polling cycle: fetch the activity feed, find the events
newer than the last one seen, post them to Discord oldest first, and persist
the newest id.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from ..config import Settings
from ..models import FeedItem, PollState
from ..renderer import needs_commit_backfill, render
from ..state.manager import StateManager

if TYPE_CHECKING:
    from ..discord_client import DiscordNotifier
    from ..github_client import GitHubClient

logger = structlog.get_logger(__name__)

OUTCOME_THROTTLED = "throttled"
OUTCOME_EMPTY = "empty"
OUTCOME_FIRST_RUN = "first_run"
OUTCOME_REPLAY = "replay"
OUTCOME_ERROR = "error"


@dataclass
class CycleResult:
    """Outcome of a single polling cycle."""

    outcome: str
    fetched: int = 0
    new_items: int = 0
    dispatched: int = 0
    failed: int = 0
    skipped: int = 0
    error: str | None = None


@dataclass
class PollingStats:
    """Cumulative counters across polling cycles."""

    cycles: int = 0
    cycles_failed: int = 0
    cycles_throttled: int = 0
    events_dispatched: int = 0
    events_failed: int = 0
    last_cycle_at: datetime | None = None
    last_outcome: str | None = None
    errors: list[str] = field(default_factory=list)

    def record(self, result: CycleResult) -> None:
        self.cycles += 1
        self.last_cycle_at = datetime.now(UTC)
        self.last_outcome = result.outcome
        self.events_dispatched += result.dispatched
        self.events_failed += result.failed
        if result.outcome == OUTCOME_THROTTLED:
            self.cycles_throttled += 1
        elif result.outcome == OUTCOME_ERROR:
            self.cycles_failed += 1
            if result.error:
                self.errors = (self.errors + [result.error])[-10:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles": self.cycles,
            "cycles_failed": self.cycles_failed,
            "cycles_throttled": self.cycles_throttled,
            "events_dispatched": self.events_dispatched,
            "events_failed": self.events_failed,
            "last_cycle_at": (
                self.last_cycle_at.isoformat() if self.last_cycle_at else None
            ),
            "last_outcome": self.last_outcome,
            "recent_errors": list(self.errors),
        }


class PollingOrchestrator:
    """
    Runs polling cycles against the GitHub activity feed.

    The orchestrator owns no timer; the scheduler calls ``run_cycle``. The
    poll state is an explicit object so a single cycle can be exercised in
    isolation.
    """

    def __init__(
        self,
        github_client: "GitHubClient",
        notifier: "DiscordNotifier",
        state_manager: StateManager,
        settings: Settings,
        state: PollState | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the polling orchestrator.

        Args:
            github_client: Fetcher for the activity feed and commit ranges
            notifier: Destination for rendered messages
            state_manager: Persistence for the last seen event id
            settings: Application settings
            state: Poll state shared across cycles
            sleep: Coroutine used for pacing between sends
        """
        self.github_client = github_client
        self.notifier = notifier
        self.state_manager = state_manager
        self.settings = settings
        self.config = settings.polling_config
        self.state = state or PollState()
        self.stats = PollingStats()
        self._sleep = sleep
        self._allowed_types = set(self.config.event_types)

    async def load_state(self) -> None:
        """Load the persisted last seen id into the poll state."""
        self.state.last_seen_id = await self.state_manager.load_last_event_id()
        logger.info("Loaded poll state", last_event_id=self.state.last_seen_id)

    async def run_cycle(self) -> CycleResult:
        """
        Run one polling cycle.

        Errors never escape: a failed cycle is logged and the next scheduled
        cycle starts from the same persisted state.
        """
        try:
            result = await self._run_cycle()
        except Exception as e:
            logger.error("Poll error", error=str(e), exc_info=True)
            result = CycleResult(outcome=OUTCOME_ERROR, error=str(e))

        self.stats.record(result)
        return result

    async def _run_cycle(self) -> CycleResult:
        username = self.settings.github_username
        events = await self.github_client.fetch_user_events(username)
        if events is None:
            logger.debug("Cycle skipped, rate limited")
            return CycleResult(outcome=OUTCOME_THROTTLED)

        logger.debug("Fetched events", count=len(events))

        new_events = self.collect_new_events(events, self.state.last_seen_id)
        result = CycleResult(
            outcome=OUTCOME_EMPTY, fetched=len(events), new_items=len(new_events)
        )

        if new_events:
            if self.state.last_seen_id is None:
                logger.debug("First run - posting latest event only")
                result.outcome = OUTCOME_FIRST_RUN
                await self._dispatch(new_events[0], result)
            else:
                logger.debug("Posting new events", count=len(new_events))
                result.outcome = OUTCOME_REPLAY
                for event in reversed(new_events):
                    await self._dispatch(event, result)
                    await self._sleep(self.config.send_delay_seconds)

        if events:
            # Advance past every fetched event, including filtered ones
            self.state.last_seen_id = events[0].id
            try:
                await self.state_manager.save_last_event_id(events[0].id)
            except Exception as e:
                logger.error("Failed to save state", error=str(e))

        return result

    def collect_new_events(
        self, events: list[FeedItem], last_seen_id: str | None
    ) -> list[FeedItem]:
        """
        Collect events newer than ``last_seen_id`` whose type is allowed.

        Args:
            events: Feed items newest first
            last_seen_id: Id of the last processed event, if any

        Returns:
            Matching events, newest first
        """
        new_events = []
        for event in events:
            if event.id == last_seen_id:
                break
            if event.type in self._allowed_types:
                new_events.append(event)
        return new_events

    async def _dispatch(self, event: FeedItem, result: CycleResult) -> None:
        """Render and send a single event; failures stay with the event."""
        try:
            commits = None
            if needs_commit_backfill(event):
                commits = await self.github_client.fetch_commits(
                    event.repo.name,
                    event.payload["before"],
                    event.payload["head"],
                )

            message = render(event, commits)
            if message is None:
                logger.debug("Event type not rendered", event_type=event.type)
                result.skipped += 1
                return

            await self.notifier.send(message)
            result.dispatched += 1
            logger.info(
                "Posted event",
                event_type=event.type,
                repository=event.repo.name,
                event_id=event.id,
            )
        except Exception as e:
            result.failed += 1
            logger.error(
                "Error posting event",
                event_type=event.type,
                event_id=event.id,
                error=str(e),
            )
