"""Custom exceptions for the harvester domain."""


class HarvesterError(Exception):
    """Base exception for this project."""


class ConfigError(HarvesterError):
    """Raised when runtime configuration is invalid."""


class TransportError(HarvesterError):
    """Raised when a provider request fails or returns a non-success status."""


class DecodeError(HarvesterError):
    """Raised when a provider response cannot be decoded."""


class RateLimitExceeded(HarvesterError):
    """Raised when a provider rejects a request because a quota is spent."""

    def __init__(self, message: str, retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class Cancelled(HarvesterError):
    """Raised when a run is cancelled or its deadline has passed."""
