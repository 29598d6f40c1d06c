"""
Event rendering for the GitHub activity relay.

Maps a feed item to a RenderedMessage. Rendering is synchronous and has no
side effects: commit detail missing from a push event is fetched by the
dispatcher beforehand and handed in through the ``commits`` argument.
"""

from collections.abc import Callable, Sequence
from typing import Any

from .models import Commit, EventKind, FeedItem, RenderedMessage

DEFAULT_COLOR = 0x768390

EVENT_COLORS: dict[EventKind, int] = {
    EventKind.PUSH: 0x238636,
    EventKind.CREATE: 0x8957E5,
    EventKind.FORK: 0x58A6FF,
    EventKind.WATCH: 0xF0B72F,
    EventKind.RELEASE: 0x1F6FEB,
    EventKind.ISSUES: 0x238636,
    EventKind.ISSUE_COMMENT: 0x768390,
    EventKind.PULL_REQUEST: 0x8957E5,
}

MAX_LISTED_COMMITS = 5
COMMIT_MESSAGE_LIMIT = 50
ISSUE_TITLE_LIMIT = 100
COMMENT_BODY_LIMIT = 150
PR_TITLE_LIMIT = 100
RELEASE_BODY_LIMIT = 200

GITHUB_URL = "https://github.com"
HEADS_PREFIX = "refs/heads/"


def truncate(text: str | None, limit: int) -> str:
    """Cut text to ``limit`` characters, ending with '...' when shortened."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def capitalize(text: str | None) -> str:
    """Upper-case the first character only."""
    if not text:
        return ""
    return text[:1].upper() + text[1:]


def event_color(event_type: str) -> int:
    kind = EventKind.from_type(event_type)
    if kind is None:
        return DEFAULT_COLOR
    return EVENT_COLORS.get(kind, DEFAULT_COLOR)


def needs_commit_backfill(item: FeedItem) -> bool:
    """
    Check whether a push event must have its commits fetched separately.

    The events API sometimes omits the inline commit list; the range between
    ``before`` and ``head`` is then resolved through the compare API.
    """
    if item.kind is not EventKind.PUSH:
        return False
    payload = item.payload
    return not payload.get("commits") and bool(payload.get("before")) and bool(
        payload.get("head")
    )


def _inline_commits(payload: dict[str, Any]) -> list[Commit]:
    return [Commit.model_validate(c) for c in payload.get("commits") or []]


def _commit_line(repo_name: str, commit: Commit) -> str:
    first_line = commit.message.split("\n")[0]
    return (
        f"[`{commit.sha[:7]}`]({GITHUB_URL}/{repo_name}/commit/{commit.sha}) "
        f"{truncate(first_line, COMMIT_MESSAGE_LIMIT)}"
    )


def _render_push(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    payload = item.payload
    repo = item.repo
    branch = (payload.get("ref") or "").removeprefix(HEADS_PREFIX)

    resolved = _inline_commits(payload)
    if not resolved and commits:
        resolved = list(commits)

    count = payload.get("size") or len(resolved) or 1

    if resolved:
        lines = [_commit_line(repo.name, c) for c in resolved[:MAX_LISTED_COMMITS]]
        description = "\n".join(lines)
        if len(resolved) > MAX_LISTED_COMMITS:
            description += f"\n... and {len(resolved) - MAX_LISTED_COMMITS} more"
    else:
        head = payload.get("head") or ""
        description = f"[`{head[:7]}`]({GITHUB_URL}/{repo.name}/commit/{head})"

    title = (
        f"Pushed {count} commit{'s' if count > 1 else ''} "
        f"to {repo.short_name}/{branch}"
    )
    return title, f"{GITHUB_URL}/{repo.name}/tree/{branch}", description


def _render_create(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    payload = item.payload
    ref = payload.get("ref")
    target = f"`{ref}`" if ref else item.repo.short_name
    url = f"{GITHUB_URL}/{item.repo.name}/tree/{ref}" if ref else item.repo.html_url
    return (
        f"Created {payload.get('ref_type')} {target}",
        url,
        payload.get("description") or None,
    )


def _render_fork(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    forkee = item.payload["forkee"]
    return (
        f"Forked to {forkee['full_name']}",
        forkee.get("html_url"),
        forkee.get("description") or None,
    )


def _render_watch(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    return f"Starred {item.repo.name}", item.repo.html_url, None


def _render_release(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    release = item.payload["release"]
    tag = release.get("tag_name")
    name = release.get("name")
    title = f"Released {tag}"
    if name and name != tag:
        title += f": {name}"
    body = release.get("body")
    return (
        title,
        release.get("html_url"),
        truncate(body, RELEASE_BODY_LIMIT) if body else None,
    )


def _render_issues(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    issue = item.payload["issue"]
    return (
        f"{capitalize(item.payload.get('action'))} issue #{issue['number']}",
        issue.get("html_url"),
        truncate(issue.get("title"), ISSUE_TITLE_LIMIT),
    )


def _render_issue_comment(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    issue = item.payload["issue"]
    comment = item.payload["comment"]
    return (
        f"Commented on #{issue['number']}",
        comment.get("html_url"),
        truncate(comment.get("body"), COMMENT_BODY_LIMIT),
    )


def _render_pull_request(
    item: FeedItem, commits: Sequence[Commit] | None
) -> tuple[str, str | None, str | None]:
    pr = item.payload["pull_request"]
    merged = " (merged)" if pr.get("merged") else ""
    return (
        f"{capitalize(item.payload.get('action'))} PR #{pr['number']}{merged}",
        pr.get("html_url"),
        truncate(pr.get("title"), PR_TITLE_LIMIT),
    )


_Renderer = Callable[
    [FeedItem, Sequence[Commit] | None], tuple[str, str | None, str | None]
]

RENDERERS: dict[EventKind, _Renderer] = {
    EventKind.PUSH: _render_push,
    EventKind.CREATE: _render_create,
    EventKind.FORK: _render_fork,
    EventKind.WATCH: _render_watch,
    EventKind.RELEASE: _render_release,
    EventKind.ISSUES: _render_issues,
    EventKind.ISSUE_COMMENT: _render_issue_comment,
    EventKind.PULL_REQUEST: _render_pull_request,
}


def render(
    item: FeedItem, commits: Sequence[Commit] | None = None
) -> RenderedMessage | None:
    """
    Render a feed item as a notification.

    Args:
        item: Feed item to render
        commits: Pre-fetched commits for push events lacking inline commits

    Returns:
        The rendered message, or None when the event type is not rendered
    """
    kind = item.kind
    renderer = RENDERERS.get(kind) if kind is not None else None
    if renderer is None:
        return None

    title, url, description = renderer(item, commits)
    login = item.actor.login
    return RenderedMessage(
        color=event_color(item.type),
        author_name=login,
        author_icon_url=item.actor.avatar_url,
        author_url=f"{GITHUB_URL}/{login}",
        title=title,
        url=url,
        description=description or None,
        footer_text=item.repo.name,
        timestamp=item.created_at,
    )
