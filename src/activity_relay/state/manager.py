"""
State management abstraction for the GitHub activity relay.

Provides pluggable backends for the last processed event id:
- JSON file: survives restarts, used by default
- In-memory: used when no state file is configured and in tests
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import structlog

from ..exceptions import StateError

logger = structlog.get_logger(__name__)

STATE_KEY = "lastEventId"


class StateManager(ABC):
    """Abstract base class for state management."""

    @abstractmethod
    async def load_last_event_id(self) -> str | None:
        """
        Load the id of the last processed event.

        Returns:
            The stored id, or None on a cold start
        """
        pass

    @abstractmethod
    async def save_last_event_id(self, event_id: str) -> None:
        """
        Persist the id of the last processed event.

        Args:
            event_id: Id of the newest event seen
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the state backend is healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass

    def describe(self) -> dict[str, Any]:
        """Describe the backend for health output."""
        return {"backend": type(self).__name__}


class InMemoryStateManager(StateManager):
    """State kept in process memory; lost on restart."""

    def __init__(self, last_event_id: str | None = None) -> None:
        self.last_event_id = last_event_id
        self.save_count = 0

    async def load_last_event_id(self) -> str | None:
        return self.last_event_id

    async def save_last_event_id(self, event_id: str) -> None:
        self.last_event_id = event_id
        self.save_count += 1

    async def health_check(self) -> bool:
        return True


class JSONFileStateManager(StateManager):
    """
    State stored as ``{"lastEventId": "<id>"}`` in a JSON file.

    Load and save failures are logged and never raised: a broken file is
    treated as a cold start and a failed write leaves the previous file in
    place.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load_last_event_id(self) -> str | None:
        try:
            return self._read()
        except StateError as e:
            logger.warning("Failed to load state", path=str(self.path), error=str(e))
            return None

    async def save_last_event_id(self, event_id: str) -> None:
        try:
            self._write(event_id)
            logger.debug("State saved", path=str(self.path), last_event_id=event_id)
        except OSError as e:
            logger.error("Failed to save state", path=str(self.path), error=str(e))

    async def health_check(self) -> bool:
        directory = self.path.parent
        if directory.exists():
            return os.access(directory, os.W_OK)
        return True

    def describe(self) -> dict[str, Any]:
        return {"backend": type(self).__name__, "path": str(self.path)}

    def _read(self) -> str | None:
        if not self.path.exists():
            logger.info("No saved state, starting fresh", path=str(self.path))
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StateError(f"Unreadable state file: {e}") from e

        if not isinstance(data, dict):
            raise StateError("State file does not hold a JSON object")

        event_id = data.get(STATE_KEY)
        if event_id is None:
            return None
        if not isinstance(event_id, str):
            raise StateError(f"Invalid {STATE_KEY}: {event_id!r}")
        return event_id

    def _write(self, event_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Replace atomically so a crash never leaves a truncated file
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({STATE_KEY: event_id}, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class StateManagerFactory:
    """Factory for creating state managers."""

    @staticmethod
    def create_state_manager(state_file: str | None) -> StateManager:
        """
        Create a state manager for the configured location.

        Args:
            state_file: Path of the JSON state file; empty keeps state in memory

        Returns:
            StateManager instance
        """
        if not state_file:
            logger.warning("No state file configured, state will not survive restarts")
            return InMemoryStateManager()
        return JSONFileStateManager(state_file)
