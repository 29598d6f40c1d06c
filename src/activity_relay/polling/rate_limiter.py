"""
Rate limit gate for the GitHub activity relay.

This module tracks the GitHub API cooldown and tells the fetcher when
requests must be held back until the limit resets.
"""

import time
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN_MS = 60_000


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitGate:
    """
    Cooldown tracker for GitHub API requests.

    The gate is armed when GitHub answers with a throttling status and stays
    closed until the reset time it was given. State lives in memory only;
    GitHub signals again on the first request after a restart.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms):
        """
        Initialize the rate limit gate.

        Args:
            clock: Callable returning the current epoch time in milliseconds
        """
        self._clock = clock
        self.reset_at_ms = 0
        self.remaining: int | None = None

    def should_suppress(self) -> bool:
        """Check whether requests must be suppressed right now."""
        return self._clock() < self.reset_at_ms

    def record_throttled(self, reset_at_ms: int | None = None) -> None:
        """
        Arm the gate after a throttling signal.

        Args:
            reset_at_ms: Epoch milliseconds at which requests may resume;
                defaults to one minute from now when GitHub gave no hint
        """
        if reset_at_ms is None:
            reset_at_ms = self._clock() + DEFAULT_COOLDOWN_MS

        self.reset_at_ms = reset_at_ms
        logger.warning(
            "Rate limited",
            reset_at_ms=reset_at_ms,
            wait_seconds=round(self.seconds_until_reset(), 1),
        )

    def record_remaining(self, remaining: int) -> None:
        """Remember the remaining request quota reported by GitHub."""
        self.remaining = remaining
        logger.debug("Rate limit remaining", remaining=remaining)

    def seconds_until_reset(self) -> float:
        """Seconds left before the gate opens again (0 when open)."""
        return max(0.0, (self.reset_at_ms - self._clock()) / 1000.0)

    def status(self) -> dict[str, object]:
        """Summary used by the health check."""
        return {
            "suppressed": self.should_suppress(),
            "reset_at_ms": self.reset_at_ms,
            "remaining": self.remaining,
            "seconds_until_reset": self.seconds_until_reset(),
        }
