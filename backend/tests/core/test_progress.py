"""Unit tests for goal calculations and input validation."""

import pytest

from scripture_scroll.core.errors import ValidationError
from scripture_scroll.core.progress import (
    clamp_interval,
    is_completed,
    parse_non_negative_int,
    progress_percent,
)


class TestProgressPercent:
    """Tests for progress_percent."""

    def test_no_goal_is_zero(self):
        assert progress_percent(count=50, goal=0) == 0

    def test_half_way(self):
        """54 of 108 is 50%."""
        assert progress_percent(count=54, goal=108) == 50

    def test_clamped_at_100(self):
        """Counts beyond the goal never exceed 100%."""
        assert progress_percent(count=200, goal=108) == 100

    def test_rounds_to_nearest(self):
        # 1/3 = 33.3%, 2/3 = 66.7%
        assert progress_percent(count=1, goal=3) == 33
        assert progress_percent(count=2, goal=3) == 67

    def test_zero_count(self):
        assert progress_percent(count=0, goal=10) == 0


class TestIsCompleted:
    """Tests for is_completed."""

    def test_reached(self):
        assert is_completed(count=108, goal=108) is True

    def test_not_reached(self):
        assert is_completed(count=40, goal=50) is False

    def test_no_goal_never_completed(self):
        assert is_completed(count=1000, goal=0) is False


class TestParseNonNegativeInt:
    """Tests for parse_non_negative_int."""

    @pytest.mark.parametrize("raw,expected", [(0, 0), (108, 108), ("108", 108), (" 27 ", 27), ("0", 0)])
    def test_accepted(self, raw, expected):
        assert parse_non_negative_int(raw) == expected

    @pytest.mark.parametrize("raw", [-1, "-1", "abc", "", "12.5", 12.0, None, True, "--5", "١٢"])
    def test_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_non_negative_int(raw)

    def test_error_names_field(self):
        with pytest.raises(ValidationError, match="goal"):
            parse_non_negative_int("abc", "goal")


class TestClampInterval:
    """Tests for clamp_interval."""

    def test_below_floor_raised(self):
        assert clamp_interval(50, 300) == 300

    def test_above_floor_kept(self):
        assert clamp_interval(1000, 300) == 1000
