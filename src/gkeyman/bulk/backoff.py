"""Retry with exponential backoff for remote provider calls.

This module provides the error classifier used to decide whether a failed
provider call is worth repeating, and the executor that repeats it.

Classes:
    ErrorClass: Permanent or transient classification of an error message
    RetryState: Per-call attempt and delay bookkeeping
    BackoffExecutor: Runs one operation with bounded retries and doubling delays

Functions:
    classify_error: Map raw provider error text to an ErrorClass
    is_quota_error: Detect quota-exhaustion messages
"""

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from ..errors import PermanentError, ProviderError, RetriesExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_DELAY = 5.0
DEFAULT_MAX_DELAY = 60.0

# Authorization failures never succeed on retry
PERMANENT_ERROR_PATTERNS = [
    re.compile(r"permission[ _]denied", re.IGNORECASE),
    re.compile(r"authentication failed", re.IGNORECASE),
]

QUOTA_ERROR_PATTERNS = [
    re.compile(r"quota exceeded", re.IGNORECASE),
]


class ErrorClass(str, Enum):
    """Retry classification of a provider error."""

    PERMANENT = "permanent"
    TRANSIENT = "transient"


def classify_error(error_text: Optional[str]) -> ErrorClass:
    """Classify a provider error message.

    Anything that is not recognised as an authorization failure is treated as
    transient, including quota errors.

    Args:
        error_text: Raw error text captured from the provider

    Returns:
        ErrorClass.PERMANENT or ErrorClass.TRANSIENT
    """
    if not error_text:
        return ErrorClass.TRANSIENT
    for pattern in PERMANENT_ERROR_PATTERNS:
        if pattern.search(error_text):
            return ErrorClass.PERMANENT
    return ErrorClass.TRANSIENT


def is_quota_error(error_text: Optional[str]) -> bool:
    """Return True if the error text reports an exhausted quota."""
    if not error_text:
        return False
    return any(pattern.search(error_text) for pattern in QUOTA_ERROR_PATTERNS)


@dataclass
class RetryState:
    """Attempt bookkeeping for a single ``BackoffExecutor.execute`` call."""

    max_attempts: int
    current_delay: float
    max_delay: float
    attempt: int = 1
    last_error: str = ""

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def advance(self) -> None:
        """Move to the next attempt and double the delay up to the ceiling."""
        self.attempt += 1
        self.current_delay = min(self.current_delay * 2, self.max_delay)


class BackoffExecutor:
    """Runs a fallible operation with bounded retries and increasing delay.

    The executor keeps no per-call state on the instance, so a single executor
    can be shared by every worker thread of a batch.
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the executor.

        Args:
            base_delay: Delay in seconds after the first failed attempt
            max_delay: Ceiling for the delay between attempts
            sleep: Function used to wait between attempts
        """
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """Delay that follows failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay * (2 ** (attempt - 1))
        return min(delay, self.max_delay)

    def execute(self, operation: Callable[[], T], max_attempts: int, description: str = "") -> T:
        """Run ``operation`` until it succeeds, fails permanently, or runs out of attempts.

        Args:
            operation: Zero-argument callable that raises ProviderError on failure
            max_attempts: Total number of attempts allowed (at least 1)
            description: Short label used in log messages

        Returns:
            Whatever ``operation`` returns on its first successful attempt

        Raises:
            PermanentError: The error matched an authorization failure pattern
            RetriesExhaustedError: Every attempt failed with a transient error
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        label = description or getattr(operation, "__name__", "operation")
        state = RetryState(
            max_attempts=max_attempts,
            current_delay=min(self.base_delay, self.max_delay),
            max_delay=self.max_delay,
        )

        while True:
            try:
                return operation()
            except ProviderError as e:
                state.last_error = e.message or "unknown error"

            logger.info(
                "%s: attempt %d/%d failed: %s",
                label,
                state.attempt,
                state.max_attempts,
                state.last_error,
            )

            if classify_error(state.last_error) is ErrorClass.PERMANENT:
                logger.error("%s: permission or authentication error, not retrying", label)
                raise PermanentError(state.last_error, attempts=state.attempt)

            if is_quota_error(state.last_error):
                logger.warning("%s: quota error detected, retrying is unlikely to help", label)

            if state.exhausted:
                break

            logger.info("%s: waiting %.0fs before retrying", label, state.current_delay)
            self._sleep(state.current_delay)
            state.advance()

        logger.error("%s: giving up after %d attempts", label, state.attempt)
        raise RetriesExhaustedError(state.last_error, attempts=state.attempt)
