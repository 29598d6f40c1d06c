"""
GitHub Activity Relay

Polls the public activity feed of a GitHub account and posts new events to a
Discord channel.
"""

__version__ = "0.1.0"

from .config import Settings
from .discord_client import DiscordNotifier
from .exceptions import ActivityRelayError
from .github_client import GitHubClient
from .polling import PollingOrchestrator, RateLimitGate
from .renderer import render

__all__ = [
    "Settings",
    "GitHubClient",
    "DiscordNotifier",
    "PollingOrchestrator",
    "RateLimitGate",
    "ActivityRelayError",
    "render",
]
