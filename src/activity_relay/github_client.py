"""
GitHub API client for the GitHub activity relay.

This module fetches the public activity feed of an account and, when a push
event arrives without inline commits, the commit range behind it. Every
request is routed through the rate limit gate.
"""

from typing import Any

import httpx
import structlog

from .exceptions import GitHubAPIError
from .models import Commit, FeedItem
from .polling.rate_limiter import RateLimitGate

logger = structlog.get_logger(__name__)

THROTTLE_STATUSES = (403, 429)


class GitHubClient:
    """
    GitHub REST API client with rate limit handling.

    Throttling is not an error: gated or throttled calls return None and the
    gate is armed with the reset hint GitHub sent. Any other non-success
    status raises GitHubAPIError.
    """

    def __init__(
        self,
        gate: RateLimitGate,
        token: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the GitHub client.

        Args:
            gate: Rate limit gate shared with the rest of the relay
            token: Optional personal access token
            api_url: Base URL of the GitHub REST API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.gate = gate
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "github-activity-relay",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers=self._headers(),
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _update_rate_limit_info(self, response: httpx.Response) -> None:
        """Update the gate from rate limit headers, whatever the status."""
        remaining_header = response.headers.get("x-ratelimit-remaining")
        reset_header = response.headers.get("x-ratelimit-reset")

        remaining = _parse_int(remaining_header)
        reset_at_ms = _parse_int(reset_header)
        if reset_at_ms is not None:
            reset_at_ms *= 1000

        if remaining is not None:
            self.gate.record_remaining(remaining)

        if response.status_code in THROTTLE_STATUSES:
            self.gate.record_throttled(reset_at_ms)
        elif remaining == 0 and reset_at_ms is not None:
            # Quota exhausted by this very request
            self.gate.record_throttled(reset_at_ms)

    async def _get_json(self, path: str) -> Any | None:
        """
        Perform a gated GET request.

        Args:
            path: API path relative to the base URL

        Returns:
            Parsed JSON body, or None when suppressed or throttled

        Raises:
            GitHubAPIError: On transport failures and non-throttling errors
        """
        if self.gate.should_suppress():
            logger.debug(
                "Rate limited, skipping request",
                path=path,
                wait_seconds=round(self.gate.seconds_until_reset()),
            )
            return None

        try:
            response = await self._get_client().get(path)
        except httpx.HTTPError as e:
            logger.error("GitHub request failed", path=path, error=str(e))
            raise GitHubAPIError(f"GitHub request failed: {e}") from e

        self._update_rate_limit_info(response)

        if response.status_code in THROTTLE_STATUSES:
            return None

        if not response.is_success:
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                context={"path": path},
            )

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"Invalid JSON from GitHub: {e}",
                status_code=response.status_code,
                context={"path": path},
            ) from e

    async def fetch_user_events(self, username: str) -> list[FeedItem] | None:
        """
        Fetch the public activity feed of an account.

        Args:
            username: GitHub login

        Returns:
            Feed items newest first, or None when suppressed or throttled
        """
        data = await self._get_json(f"/users/{username}/events/public")
        if data is None:
            return None

        if not isinstance(data, list):
            raise GitHubAPIError(
                "Unexpected events payload", context={"username": username}
            )

        items = [FeedItem.model_validate(event) for event in data]
        logger.debug("Fetched events", username=username, count=len(items))
        return items

    async def fetch_commits(self, repo_name: str, before: str, head: str) -> list[Commit]:
        """
        Fetch the commits between two revisions of a repository.

        Args:
            repo_name: Repository full name (owner/repo)
            before: Revision before the push
            head: Revision after the push

        Returns:
            Commits in the range, empty when suppressed or throttled
        """
        data = await self._get_json(f"/repos/{repo_name}/compare/{before}...{head}")
        if not data:
            return []

        commits = [Commit.from_compare_entry(entry) for entry in data.get("commits") or []]
        logger.debug(
            "Fetched commit range",
            repository=repo_name,
            before=before,
            head=head,
            count=len(commits),
        )
        return commits


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
