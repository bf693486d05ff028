"""Core Data Models - Pydantic models for type safety.

All models are immutable value objects with no behavior beyond validation.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .progress import is_completed


DAY_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

# Storage keys shared by every store backend
HISTORY_KEY = "scripture_history"
THEME_KEY = "scripture_theme_color"
TOTAL_KEY = "scripture_total"

HISTORY_LIMIT = 30
MIN_AUTO_INTERVAL_MS = 300
DEFAULT_THEME_COLOR = "#E29F36"


class HistoryEntry(BaseModel):
    """A finalized snapshot of one day's practice."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str = Field(pattern=DAY_KEY_PATTERN, description="Day key (YYYY-MM-DD)")
    count: int = Field(ge=0, description="Count at commit time")
    goal: int = Field(default=0, ge=0, description="Goal at commit time, 0 if none")
    completed: bool = Field(
        default=False,
        validate_default=True,
        description="goal > 0 and count >= goal",
    )

    @field_validator("completed")
    @classmethod
    def derive_completed(cls, value: bool, info: ValidationInfo) -> bool:
        """Completion always follows from count and goal, whatever was stored."""
        return is_completed(info.data.get("count", 0), info.data.get("goal", 0))


class AutoIncrementConfig(BaseModel):
    """State of the auto-increment timer."""

    model_config = ConfigDict(frozen=True)

    interval_ms: int = Field(ge=0, description="Effective interval after clamping")
    active: bool = False


class TodayStatus(BaseModel):
    """Everything a front-end needs to render the counter screen."""

    date: str
    count: int = Field(ge=0)
    all_time_count: int = Field(ge=0)
    goal: int = Field(ge=0)
    progress_percent: int = Field(ge=0, le=100)
    completed: bool
    theme_color: str
    auto_increment: AutoIncrementConfig


class HistoryView(BaseModel):
    """The ledger plus its derived statistics."""

    entries: list[HistoryEntry]
    best_day_count: int = Field(ge=0)
    current_streak: int = Field(ge=0)


class RehydrationReport(BaseModel):
    """Outcome of loading persisted state at startup.

    Failed keys fell back to their defaults; the session is usable either way.
    """

    day_key: str
    loaded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="Key -> reason")

    @property
    def ok(self) -> bool:
        return not self.failed


class ConfirmationPrompt(BaseModel):
    """Prompt a front-end must show before a destructive action runs."""

    model_config = ConfigDict(frozen=True)

    action: str
    title: str
    message: str
