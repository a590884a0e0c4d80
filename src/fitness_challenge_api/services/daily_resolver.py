"""
Daily resolver.

Works out what a user sees today from the normalized plan and their streak:
the workout with one tracking slot per set, a rest day, or the terminal
"challenge complete" view. The completeness predicate is always recomputed
from the in-memory slots; nothing here is persisted.
"""
import logging
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from fitness_challenge_api.models import Routine
from fitness_challenge_api.plan.models import ExerciseSpec, NormalizedDay

logger = logging.getLogger(__name__)

CHALLENGE_DAYS = 45

ViewKind = Literal["workout", "rest", "complete"]


class SetSlot(BaseModel):
    """Tracking state of one set."""
    completed: bool = False
    weight: Optional[str] = None  # Gym routine only, free text


class ExerciseTracker(BaseModel):
    """An exercise of today's workout with its set slots."""
    name: str
    set_count: int = Field(..., ge=1)
    reps: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    tracks_weight: bool = False
    sets: List[SetSlot] = Field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: ExerciseSpec, tracks_weight: bool) -> "ExerciseTracker":
        return cls(
            name=spec.name,
            set_count=spec.set_count,
            reps=spec.reps,
            category=spec.category,
            notes=spec.notes,
            tracks_weight=tracks_weight,
            sets=[SetSlot() for _ in range(spec.set_count)],
        )

    def is_done(self) -> bool:
        return len(self.sets) == self.set_count and all(slot.completed for slot in self.sets)


class SetProgress(BaseModel):
    """Client-submitted state for one exercise."""
    completed: List[bool] = Field(default_factory=list)
    weights: List[Optional[str]] = Field(default_factory=list)


class TodayView(BaseModel):
    """What the dashboard renders for the current challenge day."""
    kind: ViewKind
    day_number: int
    challenge_days: int = CHALLENGE_DAYS
    title: str = ""
    focus: str = ""
    notes: List[str] = Field(default_factory=list)
    routine: Routine = Routine.HOME
    exercises: List[ExerciseTracker] = Field(default_factory=list)

    @property
    def can_complete(self) -> bool:
        """Whether a completion action exists at all for this view."""
        return self.kind != "complete"

    def is_completable(self) -> bool:
        """
        True for a rest day, or for a workout once every set of every
        exercise is marked complete. Never true for the terminal view.
        """
        if self.kind == "complete":
            return False
        if self.kind == "rest":
            return True
        return all(exercise.is_done() for exercise in self.exercises)

    def _exercise(self, name: str) -> ExerciseTracker:
        for exercise in self.exercises:
            if exercise.name == name:
                return exercise
        raise ValueError(f"No exercise named {name!r} on day {self.day_number}")

    def mark_set(
        self,
        exercise_name: str,
        set_index: int,
        completed: bool = True,
        weight: Optional[str] = None,
    ) -> None:
        """
        Update one set slot.

        Raises:
            ValueError: unknown exercise or set index out of range
        """
        exercise = self._exercise(exercise_name)
        if not 0 <= set_index < len(exercise.sets):
            raise ValueError(
                f"Set {set_index + 1} out of range for {exercise_name!r} ({exercise.set_count} sets)"
            )
        slot = exercise.sets[set_index]
        slot.completed = completed
        if exercise.tracks_weight and weight is not None:
            slot.weight = weight.strip() or None

    def apply_progress(self, progress: Dict[str, SetProgress]) -> None:
        """
        Apply a full client snapshot of set progress.

        Exercises not in today's plan and surplus set entries are ignored;
        the plan may have been republished since the client loaded it.
        """
        for name, state in progress.items():
            try:
                exercise = self._exercise(name)
            except ValueError:
                logger.warning(f"Ignoring progress for unknown exercise {name!r} on day {self.day_number}")
                continue

            for index, completed in enumerate(state.completed[:exercise.set_count]):
                weight = state.weights[index] if index < len(state.weights) else None
                self.mark_set(exercise.name, index, completed=completed, weight=weight)


def find_day(plan: List[NormalizedDay], day_number: int) -> Optional[NormalizedDay]:
    for day in plan:
        if day.day_number == day_number:
            return day
    return None


def resolve_today(
    plan: List[NormalizedDay],
    streak: int,
    routine: Routine = Routine.HOME,
    challenge_days: int = CHALLENGE_DAYS,
) -> TodayView:
    """
    Resolve the view for a user with the given streak.

    A streak of 0 is day 1; a streak of challenge_days - 1 is the final day.
    Past the last day, or when the plan has no such day, the terminal
    "complete" view is returned.

    Args:
        plan: Normalized plan days
        streak: Current streak (>= 0)
        routine: Home or Gym; Gym adds a weight entry per set
        challenge_days: Length of the challenge

    Returns:
        A fresh TodayView with every set unchecked
    """
    day_number = max(streak, 0) + 1

    day = find_day(plan, day_number) if day_number <= challenge_days else None
    if day is None:
        return TodayView(
            kind="complete",
            day_number=day_number,
            challenge_days=challenge_days,
            routine=routine,
        )

    if day.is_rest_day:
        return TodayView(
            kind="rest",
            day_number=day_number,
            challenge_days=challenge_days,
            title=day.title,
            focus=day.focus,
            notes=list(day.notes),
            routine=routine,
        )

    tracks_weight = routine == Routine.GYM
    return TodayView(
        kind="workout",
        day_number=day_number,
        challenge_days=challenge_days,
        title=day.title,
        focus=day.focus,
        notes=list(day.notes),
        routine=routine,
        exercises=[ExerciseTracker.from_spec(spec, tracks_weight) for spec in day.exercises],
    )
