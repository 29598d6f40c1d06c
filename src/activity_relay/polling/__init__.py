"""
Polling system for the GitHub activity relay.

This package contains the rate limit gate, the per-cycle orchestrator and
the scheduler that drives it.
"""

from .orchestrator import CycleResult, PollingOrchestrator
from .rate_limiter import RateLimitGate
from .scheduler import IntervalScheduler

__all__ = ["CycleResult", "IntervalScheduler", "PollingOrchestrator", "RateLimitGate"]
