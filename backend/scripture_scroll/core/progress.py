"""Goal Calculations - Pure functions for goal progress and input validation.

All functions are pure: same input always produces same output, no side effects.
"""

import re

from .errors import ValidationError


_INTEGER = re.compile(r"-?[0-9]+")


def is_completed(count: int, goal: int) -> bool:
    """A day is completed only when a goal was set and reached."""
    return goal > 0 and count >= goal


def progress_percent(count: int, goal: int) -> int:
    """Calculate goal progress as a whole percentage.

    Args:
        count: Current count for the day
        goal: Daily goal (0 means no goal)

    Returns:
        0 when no goal is set, otherwise round(count / goal * 100) clamped to 0..100
    """
    if goal <= 0:
        return 0
    return max(0, min(100, round(count / goal * 100)))


def parse_non_negative_int(value: object, field: str = "value") -> int:
    """Validate user input as a non-negative integer.

    Accepts ints and strings of decimal digits (surrounding whitespace allowed).
    Booleans, floats, decimals like "12.5" and text like "abc" are rejected.

    Args:
        value: Raw input from a form field or API call
        field: Name used in the error message

    Returns:
        The parsed integer

    Raises:
        ValidationError: If the input is not a non-negative integer
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not _INTEGER.fullmatch(text):
            raise ValidationError(f"{field} must be a whole number, got {value!r}")
        parsed = int(text)
    else:
        raise ValidationError(f"{field} must be a whole number, got {value!r}")

    if parsed < 0:
        raise ValidationError(f"{field} must not be negative")
    return parsed


def clamp_interval(interval_ms: int, minimum_ms: int) -> int:
    """Apply the auto-increment floor to a requested interval."""
    return max(interval_ms, minimum_ms)
