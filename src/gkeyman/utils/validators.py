"""Input validation utilities for gkeyman."""

import re
from typing import Any

from rich.console import Console

from ..errors import ConfigurationError

console = Console()

# Project prefix: lowercase letter first, then letters, digits or hyphens, 1-20 chars
PREFIX_PATTERN = r"^[a-z][a-z0-9-]{0,19}$"

QUOTA_POLICIES = ("ask", "proceed", "clamp", "abort")


def check_project_prefix(value: Any) -> str:
    """Return the prefix if valid.

    Raises:
        ConfigurationError: The prefix does not match the allowed pattern
    """
    if not isinstance(value, str) or not re.match(PREFIX_PATTERN, value):
        raise ConfigurationError(
            "project prefix must start with a lowercase letter and contain only lowercase "
            "letters, digits and hyphens (1-20 characters)"
        )
    return value


def check_positive_int(value: Any, field_name: str) -> int:
    """Return ``value`` as an int if it is a positive integer.

    Raises:
        ConfigurationError: The value is not an integer greater than zero
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a positive integer")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"{field_name} must be a positive integer, got {value!r}")
    if number <= 0:
        raise ConfigurationError(f"{field_name} must be a positive integer, got {number}")
    return number


def check_non_negative_float(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{field_name} must be a number, got {value!r}")
    if number < 0:
        raise ConfigurationError(f"{field_name} must not be negative, got {number}")
    return number


def check_quota_policy(value: Any) -> str:
    policy = str(value).strip().lower()
    if policy not in QUOTA_POLICIES:
        raise ConfigurationError(
            f"quota policy must be one of {', '.join(QUOTA_POLICIES)}, got {value!r}"
        )
    return policy


def validate_project_prefix(value: str) -> bool:
    """
    Validate a project prefix entered by the user.

    Args:
        value: The prefix to validate

    Returns:
        True if the prefix is valid, False otherwise
    """
    try:
        check_project_prefix(value)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return False
    return True


def validate_positive_int(value: Any, field_name: str) -> bool:
    """
    Validate that a value is a positive integer.

    Args:
        value: The value to validate
        field_name: The name of the field being validated (for error messages)

    Returns:
        True if the value is a positive integer, False otherwise
    """
    try:
        check_positive_int(value, field_name)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return False
    return True
