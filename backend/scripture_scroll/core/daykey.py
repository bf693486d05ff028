"""Day Keys - Calendar-day identifiers used to partition storage and history.

All functions are pure: same input always produces same output, no side effects.
"""

from datetime import date, datetime, timedelta

from .errors import ValidationError


def day_key(now: datetime | None = None) -> str:
    """Derive the YYYY-MM-DD key for the local calendar day of ``now``.

    Args:
        now: Local wall-clock time (defaults to the current time)

    Returns:
        Day key string, e.g. "2024-12-28"
    """
    if now is None:
        now = datetime.now()
    return now.date().isoformat()


def parse_day_key(key: str) -> date:
    """Parse a day key back into a date.

    Raises:
        ValidationError: If the key is not a YYYY-MM-DD date
    """
    try:
        parsed = date.fromisoformat(key)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date {key!r}. Use YYYY-MM-DD.") from e
    # fromisoformat accepts other ISO forms on newer Pythons
    if parsed.isoformat() != key:
        raise ValidationError(f"Invalid date {key!r}. Use YYYY-MM-DD.")
    return parsed


def previous_day(key: str) -> str:
    """Return the key of the calendar day before ``key``."""
    return (parse_day_key(key) - timedelta(days=1)).isoformat()


def count_key(key: str) -> str:
    """Storage key for a day's count."""
    return f"count_{key}"


def goal_key(key: str) -> str:
    """Storage key for a day's goal."""
    return f"goal_{key}"
