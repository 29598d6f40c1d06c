"""
Custom exceptions for the GitHub activity relay.

This module defines custom exception classes for better error handling
and debugging across the application.
"""

from typing import Any


class ActivityRelayError(Exception):
    """Base exception for activity relay errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "ACTIVITY_RELAY_ERROR"
        self.context = context or {}


class ConfigurationError(ActivityRelayError):
    """Exception for configuration related errors."""

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "CONFIGURATION_ERROR", context)
        self.missing = missing or []


class GitHubAPIError(ActivityRelayError):
    """Exception for GitHub API related errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "GITHUB_API_ERROR", context)
        self.status_code = status_code


class AuthenticationError(ActivityRelayError):
    """Exception for authentication related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "AUTHENTICATION_ERROR", context)


class NotifierError(ActivityRelayError):
    """Exception for Discord delivery errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "NOTIFIER_ERROR", context)
        self.status_code = status_code


class StateError(ActivityRelayError):
    """Exception for state persistence errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "STATE_ERROR", context)
