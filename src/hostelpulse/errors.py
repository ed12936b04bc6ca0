"""Error hierarchy for imports, remote calls and reconciliation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostelpulse.modules.reconciler.reconciler import WeekCollision


class HostelPulseError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ParseError(HostelPulseError):
    def __init__(self, message: str = "Could not parse input") -> None:
        super().__init__(code="parse_error", message=message)


class ClassificationError(HostelPulseError):
    """The target property could not be determined; needs manual selection."""

    def __init__(self, message: str = "Could not detect property. Select one manually.") -> None:
        super().__init__(code="classification_error", message=message)


class PeriodError(HostelPulseError):
    """The target week could not be determined; needs manual date selection."""

    def __init__(self, message: str = "Could not determine week. Select a week date.") -> None:
        super().__init__(code="period_error", message=message)


class RemoteError(HostelPulseError):
    def __init__(self, message: str = "Remote API error", code: str = "remote_error") -> None:
        super().__init__(code=code, message=message)


class NetworkError(RemoteError):
    def __init__(self, message: str = "Network error. Check your internet connection.") -> None:
        super().__init__(message=message, code="network_error")


class AuthError(RemoteError):
    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(message=message, code="auth_error")


class NotFoundError(RemoteError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message=message, code="not_found")


class RequestTimeoutError(RemoteError):
    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message=message, code="timeout")


class ReconciliationConflict(HostelPulseError):
    """Week already holds data for an incoming hostel and the overwrite was not confirmed."""

    def __init__(self, collision: WeekCollision) -> None:
        names = ", ".join(collision.overlapping)
        super().__init__(
            code="reconciliation_conflict",
            message=f"Week {collision.period_label} already has data for {names}. Confirm to overwrite.",
        )
        self.collision = collision


class ConfigError(HostelPulseError):
    """config.yaml is missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(code="config_error", message=message)
