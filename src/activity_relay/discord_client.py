"""
Discord API client for the GitHub activity relay.

Posts rendered messages as rich embeds into a single channel using the
Discord REST API with a bot token.
"""

import asyncio
from typing import Any

import httpx
import structlog

from .exceptions import AuthenticationError, NotifierError
from .models import RenderedMessage

logger = structlog.get_logger(__name__)

MAX_RETRY_AFTER_SECONDS = 60.0


def build_embed(message: RenderedMessage) -> dict[str, Any]:
    """
    Convert a rendered message to a Discord embed object.

    Optional fields that are empty are left out; Discord rejects embeds
    with null URLs.
    """
    author: dict[str, Any] = {"name": message.author_name, "url": message.author_url}
    if message.author_icon_url:
        author["icon_url"] = message.author_icon_url

    embed: dict[str, Any] = {
        "color": message.color,
        "author": author,
        "title": message.title,
        "footer": {"text": message.footer_text},
    }
    if message.url:
        embed["url"] = message.url
    if message.description:
        embed["description"] = message.description
    if message.timestamp is not None:
        embed["timestamp"] = message.timestamp.isoformat()
    return embed


class DiscordNotifier:
    """
    Sends notifications to a Discord channel.

    ``connect`` must be called before ``send``; it opens the HTTP client and
    checks that the bot can see the channel.
    """

    def __init__(
        self,
        token: str,
        channel_id: str,
        api_url: str = "https://discord.com/api/v10",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.channel_id = channel_id
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.channel_name: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """
        Open the connection and verify the destination channel.

        Raises:
            AuthenticationError: If the bot token is rejected
            NotifierError: If the channel cannot be reached
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers={
                    "Authorization": f"Bot {self._token}",
                    "User-Agent": "github-activity-relay",
                },
                timeout=self._timeout,
                transport=self._transport,
            )

        try:
            response = await self._client.get(f"/channels/{self.channel_id}")
        except httpx.HTTPError as e:
            raise NotifierError(f"Failed to reach Discord: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Discord rejected the bot token")
        if response.status_code == 404:
            raise NotifierError(
                f"Channel not found: {self.channel_id}", status_code=404
            )
        if not response.is_success:
            raise NotifierError(
                f"Discord API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            self.channel_name = response.json().get("name")
        except (ValueError, AttributeError):
            self.channel_name = None
        logger.info(
            "Connected to Discord channel",
            channel_id=self.channel_id,
            channel_name=self.channel_name,
        )

    async def send(self, message: RenderedMessage) -> None:
        """
        Post a message to the channel.

        A 429 answer is retried once after the delay Discord asks for.

        Raises:
            NotifierError: If the message could not be delivered
        """
        if self._client is None:
            raise NotifierError("Discord notifier is not connected")

        payload = {"embeds": [build_embed(message)]}
        path = f"/channels/{self.channel_id}/messages"

        response = await self._post(path, payload)
        if response.status_code == 429:
            retry_after = _retry_after(response)
            logger.warning("Discord rate-limited, retrying", retry_after=retry_after)
            await asyncio.sleep(retry_after)
            response = await self._post(path, payload)

        if not response.is_success:
            raise NotifierError(
                f"Discord API error: {response.status_code}",
                status_code=response.status_code,
                context={"body": response.text[:300]},
            )

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        assert self._client is not None
        try:
            return await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise NotifierError(f"Failed to reach Discord: {e}") from e

    async def close(self) -> None:
        """Close the connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Discord connection closed")


def _retry_after(response: httpx.Response) -> float:
    value: Any = None
    try:
        value = response.json().get("retry_after")
    except (ValueError, AttributeError):
        pass
    if value is None:
        value = response.headers.get("retry-after", 1)
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        seconds = 1.0
    return min(max(seconds, 0.0), MAX_RETRY_AFTER_SECONDS)
