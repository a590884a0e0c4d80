"""
Plan Models

Pydantic models for the workout plan: raw spreadsheet rows as read from the
CSV export, and the normalized per-day structure the resolver works with.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class WorkoutRow(BaseModel):
    """One row of the plan spreadsheet (an exercise or a day marker)"""
    day: str = ""
    day_title: str = ""
    day_focus: str = ""
    category: str = ""
    exercise_name: str = ""
    sets: str = ""
    reps: str = ""
    notes: str = ""

    # 1-based record number in the source file (header is 1), for warnings
    source_row: Optional[int] = None


class ExerciseSpec(BaseModel):
    """A single exercise prescribed for a day"""
    name: str = Field(..., description="Exercise name, unique within its day")
    set_count: int = Field(default=1, ge=1)
    reps: Optional[str] = Field(default=None, description="Reps as string to preserve '8-12', 'AMRAP'")
    category: Optional[str] = Field(default=None, description="Section, e.g. 'Main' or 'Core'")
    notes: Optional[str] = None

    @property
    def rep_count(self) -> Optional[int]:
        """Reps as an int when the token is purely numeric."""
        if self.reps and self.reps.isdigit():
            return int(self.reps)
        return None


class NormalizedDay(BaseModel):
    """All rows of one challenge day, grouped"""
    day_number: int = Field(..., ge=1)
    title: str = ""
    focus: str = ""
    exercises: List[ExerciseSpec] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    @property
    def is_rest_day(self) -> bool:
        return not self.exercises
