#!/usr/bin/env python3
"""
Preview rendered events for a GitHub account.

Fetches the public activity feed and prints what would be posted to Discord,
without sending anything.
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from activity_relay.github_client import GitHubClient
from activity_relay.polling.rate_limiter import RateLimitGate
from activity_relay.renderer import needs_commit_backfill, render


async def preview_events(username: str) -> bool:
    """Fetch and render the feed of ``username``."""
    print(f"🔍 Fetching public events for {username}...")

    client = GitHubClient(RateLimitGate(), token=os.getenv("GITHUB_TOKEN", ""))
    try:
        events = await client.fetch_user_events(username)
        if events is None:
            print("❌ Rate limited, try again later or set GITHUB_TOKEN")
            return False

        print(f"✅ Found {len(events)} events\n")
        for event in events:
            commits = None
            if needs_commit_backfill(event):
                commits = await client.fetch_commits(
                    event.repo.name, event.payload["before"], event.payload["head"]
                )

            message = render(event, commits)
            if message is None:
                print(f"   - {event.type} (not rendered)")
                continue

            print(f"[{event.type}] {message.title}")
            if message.url:
                print(f"   {message.url}")
            if message.description:
                for line in message.description.splitlines():
                    print(f"   | {line}")
            print()

        return True
    except Exception as e:
        print(f"❌ Preview failed: {e}")
        return False
    finally:
        await client.close()


if __name__ == "__main__":
    login = sys.argv[1] if len(sys.argv) > 1 else os.getenv("GITHUB_USERNAME")
    if not login:
        print("Usage: preview_events.py <github-username>")
        sys.exit(1)

    success = asyncio.run(preview_events(login))
    sys.exit(0 if success else 1)
