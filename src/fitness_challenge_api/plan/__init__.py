"""Workout plan reading and normalization."""
from .models import WorkoutRow, ExerciseSpec, NormalizedDay
from .csv_reader import read_workout_rows
from .normalizer import normalize, parse_set_count

__all__ = [
    "WorkoutRow",
    "ExerciseSpec",
    "NormalizedDay",
    "read_workout_rows",
    "normalize",
    "parse_set_count",
]
