"""History Ledger - Pure functions over the bounded daily history.

The ledger is a list of HistoryEntry, newest-first, unique by date and capped
at HISTORY_LIMIT entries. All functions return new lists and never mutate
their input.
"""

from datetime import timedelta

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from .daykey import parse_day_key
from .errors import ParseError
from .models import HISTORY_KEY, HISTORY_LIMIT, HistoryEntry, HistoryView
from .progress import is_completed


_history_adapter = TypeAdapter(list[HistoryEntry])


def make_entry(date: str, count: int, goal: int) -> HistoryEntry:
    """Build the entry for a day, deriving completion from count and goal."""
    return HistoryEntry(date=date, count=count, goal=goal, completed=is_completed(count, goal))


def upsert_entry(
    history: list[HistoryEntry],
    entry: HistoryEntry,
    limit: int = HISTORY_LIMIT,
) -> list[HistoryEntry]:
    """Insert an entry at the front, replacing any entry for the same date.

    Args:
        history: Current ledger, newest-first
        entry: Entry to commit
        limit: Maximum ledger length; the oldest (tail) entries are evicted

    Returns:
        New ledger with ``entry`` first
    """
    rest = [h for h in history if h.date != entry.date]
    return [entry, *rest][:limit]


def delete_entry(history: list[HistoryEntry], date: str) -> list[HistoryEntry]:
    """Remove the entry for ``date``. Absent dates leave the ledger unchanged."""
    return [h for h in history if h.date != date]


def best_day_count(history: list[HistoryEntry]) -> int:
    """Highest count recorded in the ledger, 0 if empty."""
    return max((h.count for h in history), default=0)


def current_streak(history: list[HistoryEntry], today: str) -> int:
    """Count consecutive completed days ending today.

    Walks backward from ``today`` and stops at the first day that is missing
    or not completed. Today itself must be present and completed, otherwise
    the streak is 0.

    Args:
        history: Ledger entries in any order
        today: Day key to start from

    Returns:
        Number of consecutive completed days
    """
    completed = {h.date for h in history if h.completed}

    streak = 0
    day = parse_day_key(today)
    while day.isoformat() in completed:
        streak += 1
        day -= timedelta(days=1)

    return streak


def build_history_view(history: list[HistoryEntry], today: str) -> HistoryView:
    """Bundle the ledger with its derived statistics."""
    return HistoryView(
        entries=list(history),
        best_day_count=best_day_count(history),
        current_streak=current_streak(history, today),
    )


def normalize_history(
    history: list[HistoryEntry],
    limit: int = HISTORY_LIMIT,
) -> list[HistoryEntry]:
    """Restore ledger invariants on data read back from storage.

    Keeps the first occurrence of each date, orders newest-first and
    truncates to ``limit``.
    """
    seen: set[str] = set()
    unique = []
    for entry in history:
        if entry.date in seen:
            continue
        seen.add(entry.date)
        unique.append(entry)

    unique.sort(key=lambda h: h.date, reverse=True)
    return unique[:limit]


def encode_history(history: list[HistoryEntry]) -> str:
    """Serialize the ledger as a JSON array with exactly the entry fields."""
    return _history_adapter.dump_json(history).decode()


def decode_history(raw: str) -> list[HistoryEntry]:
    """Parse a stored ledger.

    Raises:
        ParseError: If the JSON is malformed or an entry is invalid
    """
    try:
        return _history_adapter.validate_json(raw)
    except PydanticValidationError as e:
        raise ParseError(HISTORY_KEY, f"corrupt history ({e.error_count()} errors)") from e
