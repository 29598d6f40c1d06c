"""
State management for the GitHub activity relay.

This package persists the id of the last processed feed item so restarts
do not replay the activity feed.
"""

from .manager import (
    InMemoryStateManager,
    JSONFileStateManager,
    StateManager,
    StateManagerFactory,
)

__all__ = [
    "StateManager",
    "StateManagerFactory",
    "InMemoryStateManager",
    "JSONFileStateManager",
]
