"""
Pytest configuration and fixtures for the GitHub activity relay tests.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from activity_relay.config import Settings
from activity_relay.discord_client import DiscordNotifier
from activity_relay.github_client import GitHubClient
from activity_relay.models import FeedItem
from activity_relay.polling.orchestrator import PollingOrchestrator
from activity_relay.state.manager import InMemoryStateManager


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings for testing, independent of the environment."""
    return Settings(
        discord_token="test-token",
        channel_id="123456789",
        github_username="octocat",
        state_file="",
        _env_file=None,
    )


@pytest.fixture
def raw_event() -> Callable[..., dict[str, Any]]:
    """Factory for raw events as returned by the GitHub events API."""

    def _make(
        event_id: str,
        event_type: str = "WatchEvent",
        repo: str = "octocat/hello-world",
        payload: dict[str, Any] | None = None,
        login: str = "octocat",
        created_at: str = "2024-01-15T10:00:00Z",
    ) -> dict[str, Any]:
        return {
            "id": event_id,
            "type": event_type,
            "actor": {
                "id": 1,
                "login": login,
                "avatar_url": f"https://avatars.githubusercontent.com/u/1?v=4&{login}",
            },
            "repo": {
                "id": 2,
                "name": repo,
                "url": f"https://api.github.com/repos/{repo}",
            },
            "payload": payload if payload is not None else {},
            "public": True,
            "created_at": created_at,
        }

    return _make


@pytest.fixture
def make_event(raw_event: Callable[..., dict[str, Any]]) -> Callable[..., FeedItem]:
    """Factory for parsed feed items."""

    def _make(event_id: str, event_type: str = "WatchEvent", **kwargs: Any) -> FeedItem:
        return FeedItem.model_validate(raw_event(event_id, event_type, **kwargs))

    return _make


@pytest.fixture
def mock_github_client() -> AsyncMock:
    """Mock GitHub client for testing."""
    client = AsyncMock(spec=GitHubClient)
    client.fetch_user_events.return_value = []
    client.fetch_commits.return_value = []
    return client


@pytest.fixture
def mock_notifier() -> AsyncMock:
    """Mock Discord notifier for testing."""
    return AsyncMock(spec=DiscordNotifier)


@pytest.fixture
def state_manager() -> InMemoryStateManager:
    return InMemoryStateManager()


@pytest.fixture
def mock_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(
    settings: Settings,
    mock_github_client: AsyncMock,
    mock_notifier: AsyncMock,
    state_manager: InMemoryStateManager,
    mock_sleep: AsyncMock,
) -> PollingOrchestrator:
    """Orchestrator wired to fakes."""
    return PollingOrchestrator(
        github_client=mock_github_client,
        notifier=mock_notifier,
        state_manager=state_manager,
        settings=settings,
        sleep=mock_sleep,
    )
