"""
Data models for the GitHub activity relay.

Feed items are parsed from the GitHub public events API with Pydantic and
never mutated afterwards. Rendered messages are plain dataclasses handed to
the notifier.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """GitHub event types the relay knows how to render."""

    PUSH = "PushEvent"
    CREATE = "CreateEvent"
    FORK = "ForkEvent"
    WATCH = "WatchEvent"
    RELEASE = "ReleaseEvent"
    ISSUES = "IssuesEvent"
    ISSUE_COMMENT = "IssueCommentEvent"
    PULL_REQUEST = "PullRequestEvent"

    @classmethod
    def from_type(cls, event_type: str) -> "EventKind | None":
        """Map a raw event type to a kind, or None when unrecognised."""
        try:
            return cls(event_type)
        except ValueError:
            return None


ALL_EVENT_TYPES: list[str] = [kind.value for kind in EventKind]


class Actor(BaseModel):
    """Account that triggered an event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    login: str
    avatar_url: str = ""


class Repo(BaseModel):
    """Repository an event happened in."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    url: str = ""

    @property
    def short_name(self) -> str:
        """Repository name without the owner prefix."""
        return self.name.split("/")[-1]

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.name}"


class FeedItem(BaseModel):
    """A single entry of the public activity feed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    type: str
    actor: Actor
    repo: Repo
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @property
    def kind(self) -> EventKind | None:
        return EventKind.from_type(self.type)


class Commit(BaseModel):
    """Commit summary used when rendering push events."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sha: str
    message: str = ""

    @classmethod
    def from_compare_entry(cls, data: dict[str, Any]) -> "Commit":
        """Create a Commit from an entry of the compare API's commit list."""
        return cls(
            sha=data.get("sha", ""),
            message=(data.get("commit") or {}).get("message", ""),
        )


@dataclass(frozen=True)
class RenderedMessage:
    """Structured notification derived from a feed item."""

    color: int
    author_name: str
    author_icon_url: str
    author_url: str
    title: str
    url: str | None = None
    description: str | None = None
    footer_text: str = ""
    timestamp: datetime | None = None


@dataclass
class PollState:
    """Last processed feed item id, shared between cycles."""

    last_seen_id: str | None = None
