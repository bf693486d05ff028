"""Counter Session - The single owner of counter, goal, history and theme state.

Every operation mutates in-memory state synchronously under one lock and then
queues a write-through to the key-value store. In-memory state is the source
of truth; a failed write is logged and never surfaces to the caller.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from ..core import confirmations
from ..core.daykey import count_key, day_key, goal_key, parse_day_key
from ..core.errors import ParseError, PersistenceError, ScrollError, ValidationError
from ..core.ledger import (
    build_history_view,
    decode_history,
    delete_entry,
    encode_history,
    make_entry,
    normalize_history,
    upsert_entry,
)
from ..core.models import (
    DEFAULT_THEME_COLOR,
    HISTORY_KEY,
    HISTORY_LIMIT,
    MIN_AUTO_INTERVAL_MS,
    THEME_KEY,
    TOTAL_KEY,
    ConfirmationPrompt,
    HistoryEntry,
    HistoryView,
    RehydrationReport,
    TodayStatus,
)
from ..core.progress import is_completed, parse_non_negative_int, progress_percent
from .scheduler import AutoIncrementScheduler, TimerFactory
from .store import KeyValueStore
from .write_through import WriteThroughQueue


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IncrementListener = Callable[[int], None]


@dataclass
class SessionConfig:
    """Tunables for a counter session.

    Attributes:
        default_theme_color: Theme used when none is stored
        min_auto_interval_ms: Floor for the auto-increment interval
        history_limit: Maximum number of ledger entries kept
    """

    default_theme_color: str = DEFAULT_THEME_COLOR
    min_auto_interval_ms: int = MIN_AUTO_INTERVAL_MS
    history_limit: int = HISTORY_LIMIT


def _parse_stored_count(key: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ParseError(key, f"not an integer: {raw!r}") from e
    if value < 0:
        raise ParseError(key, f"negative value: {value}")
    return value


class CounterSession:
    """Counter, goal, history ledger, theme and auto-increment for one user.

    Args:
        store: Persistence gateway
        config: Session tunables
        clock: Returns local wall-clock time; injectable for tests
        timer_factory: Passed to the scheduler; injectable for tests
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: SessionConfig | None = None,
        clock: Clock = datetime.now,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.config = config or SessionConfig()
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._writer = WriteThroughQueue(store)
        self._listeners: list[IncrementListener] = []
        self._closed = False

        self._day = day_key(clock())
        self._count = 0
        self._all_time = 0
        self._goal = 0
        self._history: list[HistoryEntry] = []
        self._theme = self.config.default_theme_color

        self.scheduler = AutoIncrementScheduler(
            self.increment,
            lock=self._lock,
            min_interval_ms=self.config.min_auto_interval_ms,
            timer_factory=timer_factory,
        )

    # ==================== Read-only State ====================

    @property
    def day(self) -> str:
        return self._day

    @property
    def count(self) -> int:
        return self._count

    @property
    def all_time_count(self) -> int:
        return self._all_time

    @property
    def goal(self) -> int:
        return self._goal

    @property
    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    @property
    def theme_color(self) -> str:
        return self._theme

    @property
    def writer(self) -> WriteThroughQueue:
        return self._writer

    def add_increment_listener(self, listener: IncrementListener) -> None:
        """Register a callback receiving the new count after each increment."""
        self._listeners.append(listener)

    # ==================== Rehydration ====================

    def rehydrate(self) -> RehydrationReport:
        """Load persisted state for today.

        Keys are fetched concurrently. A missing key keeps its default; an
        unreadable or corrupt key keeps its default and is listed in the
        report. No failure stops the other keys from loading.

        Returns:
            Report of loaded and failed keys
        """
        with self._lock:
            self._day = day_key(self._clock())
            report = RehydrationReport(day_key=self._day)
            loaded = self._fetch_all(
                [count_key(self._day), goal_key(self._day), HISTORY_KEY, THEME_KEY, TOTAL_KEY],
                report,
            )

            self._count = self._parse(report, loaded, count_key(self._day), _parse_stored_count, 0)
            self._goal = self._parse(report, loaded, goal_key(self._day), _parse_stored_count, 0)
            self._all_time = self._parse(report, loaded, TOTAL_KEY, _parse_stored_count, 0)
            history = self._parse(report, loaded, HISTORY_KEY, lambda _k, raw: decode_history(raw), [])
            self._history = normalize_history(history, self.config.history_limit)
            theme = loaded.get(THEME_KEY)
            self._theme = theme if theme else self.config.default_theme_color
            if theme is not None:
                report.loaded.append(THEME_KEY)

        if report.failed:
            logger.warning("Rehydration partially failed: %s", ", ".join(sorted(report.failed)))
        else:
            logger.info("Rehydrated state for %s", self._day)
        return report

    def _fetch_all(self, keys: list[str], report: RehydrationReport) -> dict[str, str | None]:
        results: dict[str, str | None] = {}
        with ThreadPoolExecutor(max_workers=len(keys), thread_name_prefix="rehydrate") as pool:
            futures = {key: pool.submit(self._store.get, key) for key in keys}
            for key, future in futures.items():
                try:
                    results[key] = future.result()
                except PersistenceError as e:
                    logger.error("Failed to load %s: %s", key, str(e))
                    report.failed[key] = str(e)
        return results

    def _parse(
        self,
        report: RehydrationReport,
        loaded: dict[str, str | None],
        key: str,
        parser: Callable[[str, str], Any],
        default: Any,
    ) -> Any:
        raw = loaded.get(key)
        if raw is None:
            return default
        try:
            value = parser(key, raw)
        except ParseError as e:
            logger.warning("Ignoring corrupt value for %s: %s", key, str(e))
            report.failed[key] = str(e)
            return default
        report.loaded.append(key)
        return value

    # ==================== Day Rollover ====================

    def _roll_over(self) -> None:
        """Move to a new day if the calendar day changed during the session.

        Progress of the finished day is committed to the ledger under that
        day's key before count and goal are reloaded for the new day.
        """
        today = day_key(self._clock())
        if today == self._day:
            return

        previous = self._day
        logger.info("Day changed from %s to %s", previous, today)
        if self._count > 0 or self._goal > 0:
            self._commit_for(previous, self._count, self._goal)

        self._day = today
        self._count = self._load_int(count_key(today))
        self._goal = self._load_int(goal_key(today))

    def _load_int(self, key: str) -> int:
        try:
            raw = self._store.get(key)
            return 0 if raw is None else _parse_stored_count(key, raw)
        except (PersistenceError, ParseError) as e:
            logger.warning("Using 0 for %s: %s", key, str(e))
            return 0

    # ==================== Counter ====================

    def increment(self) -> int:
        """Add one to today's count and the all-time count.

        Returns:
            The new count for today
        """
        with self._lock:
            self._roll_over()
            self._count += 1
            self._all_time += 1
            count = self._count
            self._save_count()
            self._save_total()
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(count)
            except Exception:
                logger.exception("Increment listener failed")
        return count

    def decrement(self) -> int:
        """Subtract one from today's count, never going below zero.

        The all-time count is a record of taps performed and is not touched.
        """
        with self._lock:
            self._roll_over()
            if self._count > 0:
                self._count -= 1
                self._save_count()
            return self._count

    def reset_today(self) -> HistoryEntry:
        """Snapshot today into history, then zero today's count.

        Returns:
            The history entry holding the pre-reset count
        """
        with self._lock:
            self._roll_over()
            entry = self._commit_for(self._day, self._count, self._goal)
            self._count = 0
            self._save_count()
            logger.info("Reset today's count (%d saved to history)", entry.count)
            return entry

    def reset_all_time(self) -> None:
        with self._lock:
            self._all_time = 0
            self._save_total()
            logger.info("Reset all-time count")

    # ==================== Goal ====================

    def set_goal(self, value: object) -> int:
        """Set today's goal.

        Args:
            value: Non-negative whole number (int or digit string); 0 clears the goal

        Returns:
            The new goal

        Raises:
            ValidationError: If value is not a non-negative integer
        """
        goal = parse_non_negative_int(value, "goal")
        with self._lock:
            self._roll_over()
            self._goal = goal
            if goal > 0:
                self._writer.set(goal_key(self._day), str(goal))
            else:
                self._writer.remove(goal_key(self._day))
            return goal

    def progress_percent(self) -> int:
        with self._lock:
            self._roll_over()
            return progress_percent(self._count, self._goal)

    # ==================== History ====================

    def commit(self) -> HistoryEntry:
        """Record today's current count and goal in the ledger."""
        with self._lock:
            self._roll_over()
            return self._commit_for(self._day, self._count, self._goal)

    def _commit_for(self, date: str, count: int, goal: int) -> HistoryEntry:
        entry = make_entry(date, count, goal)
        self._history = upsert_entry(self._history, entry, self.config.history_limit)
        self._save_history()
        return entry

    def view_history(self) -> HistoryView:
        """Commit today's progress, then return the ledger and statistics."""
        with self._lock:
            self.commit()
            return build_history_view(self._history, self._day)

    def history_view(self) -> HistoryView:
        """Ledger and statistics without committing today."""
        with self._lock:
            self._roll_over()
            return build_history_view(self._history, self._day)

    def delete_history_entry(self, date: str) -> bool:
        """Remove one day from the ledger.

        Returns:
            True if an entry was removed; deleting an absent day is not an error

        Raises:
            ValidationError: If date is not a YYYY-MM-DD key
        """
        parse_day_key(date)
        with self._lock:
            updated = delete_entry(self._history, date)
            if len(updated) == len(self._history):
                return False
            self._history = updated
            self._save_history()
            return True

    def clear_history(self) -> None:
        with self._lock:
            self._history = []
            self._writer.remove(HISTORY_KEY)
            logger.info("Cleared history")

    # ==================== Theme ====================

    def set_theme_color(self, color: str) -> str:
        """Persist the chosen theme color verbatim.

        Raises:
            ValidationError: If color is empty
        """
        if not isinstance(color, str) or not color.strip():
            raise ValidationError("theme color must be a non-empty string")
        with self._lock:
            self._theme = color
            self._writer.set(THEME_KEY, color)
            return color

    # ==================== Auto-Increment ====================

    def start_auto_increment(self, interval_ms: object) -> int:
        """Start auto-incrementing.

        Returns:
            The effective interval after the minimum floor is applied

        Raises:
            ValidationError: If interval_ms is not a non-negative integer
            ScrollError: If the session has been closed
        """
        interval = parse_non_negative_int(interval_ms, "interval")
        with self._lock:
            if self._closed:
                raise ScrollError("session is closed")
            return self.scheduler.start(interval)

    def stop_auto_increment(self) -> bool:
        with self._lock:
            return self.scheduler.stop()

    # ==================== Status ====================

    def status(self) -> TodayStatus:
        with self._lock:
            self._roll_over()
            return TodayStatus(
                date=self._day,
                count=self._count,
                all_time_count=self._all_time,
                goal=self._goal,
                progress_percent=progress_percent(self._count, self._goal),
                completed=is_completed(self._count, self._goal),
                theme_color=self._theme,
                auto_increment=self.scheduler.config,
            )

    def confirmation_for(self, action: str, **context: str) -> ConfirmationPrompt:
        """Prompt to show before running a destructive action."""
        return confirmations.confirmation_prompt(action, **context)

    # ==================== Persistence ====================

    def _save_count(self) -> None:
        self._writer.set(count_key(self._day), str(self._count))

    def _save_total(self) -> None:
        self._writer.set(TOTAL_KEY, str(self._all_time))

    def _save_history(self) -> None:
        self._writer.set(HISTORY_KEY, encode_history(self._history))

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued write has reached the store."""
        return self._writer.flush(timeout)

    def close(self) -> None:
        """Stop the scheduler and drain pending writes.

        The session stays readable and still counts in memory after close,
        but nothing more is persisted and auto-increment cannot be restarted.
        """
        if self._closed:
            return
        self._closed = True
        self.stop_auto_increment()
        self._writer.close()
        logger.info("Session closed")
