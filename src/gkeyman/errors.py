"""Exception hierarchy for gkeyman.

Per-item errors (provider, permanent, exhausted) are turned into Failure
outcomes by the work item processors. PreconditionFailure and
QuotaPlanningAborted stop a batch before any item is scheduled.
"""

from typing import Optional


class GkeymanError(Exception):
    """Base class for all gkeyman errors."""


class ConfigurationError(GkeymanError):
    """Invalid or missing configuration value."""


class ProviderError(GkeymanError):
    """A remote provider call failed.

    Attributes:
        message: Error text reported by the provider
        returncode: Exit status of the underlying command, if any
    """

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.message = message
        self.returncode = returncode
        super().__init__(message)


class MalformedResponseError(ProviderError):
    """A provider response could not be parsed or lacked an expected field."""


class BackoffError(GkeymanError):
    """Base class for errors raised by the backoff executor."""

    def __init__(self, message: str, attempts: int):
        self.message = message
        self.attempts = attempts
        super().__init__(message)


class PermanentError(BackoffError):
    """An authorization or authentication error that must not be retried."""


class RetriesExhaustedError(BackoffError):
    """A transient error persisted through every allowed attempt."""

    def __str__(self) -> str:
        return f"failed after {self.attempts} attempts: {self.message}"


class PreconditionFailure(GkeymanError):
    """The batch cannot start, e.g. the project list could not be obtained."""


class QuotaPlanningAborted(GkeymanError):
    """The quota check ended with a decision not to run the batch."""
