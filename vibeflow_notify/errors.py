"""Exception types shared across the notification service."""

from __future__ import annotations


class NotifyError(Exception):
    """Base class for notification service errors."""


class ConfigurationError(NotifyError):
    """Required secrets or credentials are missing from the environment."""


class DispatchError(NotifyError):
    """Slack rejected a delivery or the request never reached it."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
