"""Data models for challenge profiles and notifications."""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Routine(str, Enum):
    """Plan variant chosen at signup."""
    HOME = "Home"
    GYM = "Gym"


class NotificationKind(str, Enum):
    """Email templates sent by the scheduled jobs."""
    RESET = "reset"
    MILESTONE = "milestone"
    REMINDER = "reminder"


# Streak values that earn a congratulation email (every full week)
MILESTONE_INTERVAL = 7


class Profile(BaseModel):
    """A row of the Supabase `profiles` table."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    current_streak: int = Field(default=0, ge=0)
    last_completed_day: Optional[date] = None
    workout_routine: Optional[Routine] = None
    timezone: str = "UTC"
    current_weight: Optional[float] = None  # kg

    # Ignore columns we don't use (age, height, ...)
    model_config = ConfigDict(extra="ignore")

    @field_validator("current_streak", mode="before")
    @classmethod
    def _streak_default(cls, value):
        return 0 if value is None else value

    @field_validator("timezone", mode="before")
    @classmethod
    def _timezone_default(cls, value):
        return value or "UTC"

    @field_validator("workout_routine", mode="before")
    @classmethod
    def _routine_blank(cls, value):
        return value or None

    @property
    def display_name(self) -> str:
        return self.name or "User"

    @property
    def current_day(self) -> int:
        """Challenge day the user is working on today."""
        return self.current_streak + 1


class NotificationEvent(BaseModel):
    """A single email to send on behalf of a scheduled job."""
    user_id: str
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    kind: NotificationKind
    streak_value: int = 0


# Lowest weight accepted when logging, in kg
MIN_WEIGHT_KG = 30


class WeightEntry(BaseModel):
    """A row of the `weight_history` table."""
    log_date: datetime
    weight: float

    model_config = ConfigDict(extra="ignore")


class DailyProgressEntry(BaseModel):
    """A row of the `daily_progress` table."""
    workout_date: date
    is_completed: bool = False

    model_config = ConfigDict(extra="ignore")


class SummaryDay(BaseModel):
    """One day of the weekly summary."""
    day: date
    weight: Optional[float] = None
    completed: bool = False


class WeeklySummary(BaseModel):
    """Weight and completion over the last seven days, oldest first."""
    start_date: date
    end_date: date
    days: List[SummaryDay] = Field(default_factory=list)
    days_completed: int = 0
    latest_weight: Optional[float] = None
