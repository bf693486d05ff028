"""Unit tests for data models - validation and defaults."""

import pytest
from pydantic import ValidationError

from scripture_scroll.core.models import (
    AutoIncrementConfig,
    HistoryEntry,
    RehydrationReport,
    TodayStatus,
)


class TestHistoryEntry:
    """Tests for HistoryEntry model."""

    def test_valid_entry(self):
        """Valid entry is created successfully."""
        entry = HistoryEntry(date="2024-12-28", count=108, goal=108, completed=True)
        assert entry.date == "2024-12-28"
        assert entry.completed is True

    def test_defaults(self):
        """Goal and completed default to no goal."""
        entry = HistoryEntry(date="2024-12-28", count=5)
        assert entry.goal == 0
        assert entry.completed is False

    def test_negative_count_rejected(self):
        """Negative counts are rejected."""
        with pytest.raises(ValidationError):
            HistoryEntry(date="2024-12-28", count=-1)

    def test_bad_date_rejected(self):
        """Dates must be YYYY-MM-DD keys."""
        with pytest.raises(ValidationError):
            HistoryEntry(date="28/12/2024", count=1)

    def test_immutable(self):
        """Entries cannot be changed after creation."""
        entry = HistoryEntry(date="2024-12-28", count=1)
        with pytest.raises(ValidationError):
            entry.count = 2

    def test_dump_has_exact_fields(self):
        """Serialized entry carries exactly date, count, goal, completed."""
        entry = HistoryEntry(date="2024-12-28", count=40, goal=50)
        assert entry.model_dump() == {
            "date": "2024-12-28",
            "count": 40,
            "goal": 50,
            "completed": False,
        }

    def test_completed_recomputed_without_goal(self):
        """A completed flag without a goal is dropped."""
        entry = HistoryEntry(date="2024-12-28", count=1, goal=0, completed=True)
        assert entry.completed is False

    def test_completed_recomputed_when_goal_reached(self):
        """Completion follows count and goal, not the flag given."""
        entry = HistoryEntry(date="2024-12-28", count=108, goal=108, completed=False)
        assert entry.completed is True


class TestTodayStatus:
    """Tests for TodayStatus model."""

    def test_progress_above_100_rejected(self):
        """Progress percent is capped at 100."""
        with pytest.raises(ValidationError):
            TodayStatus(
                date="2024-12-28",
                count=200,
                all_time_count=200,
                goal=108,
                progress_percent=185,
                completed=True,
                theme_color="#E29F36",
                auto_increment=AutoIncrementConfig(interval_ms=300),
            )


class TestRehydrationReport:
    """Tests for RehydrationReport model."""

    def test_ok_without_failures(self):
        report = RehydrationReport(day_key="2024-12-28", loaded=["scripture_total"])
        assert report.ok is True

    def test_not_ok_with_failures(self):
        report = RehydrationReport(day_key="2024-12-28", failed={"scripture_history": "corrupt"})
        assert report.ok is False
