"""
Plan Normalizer

Turns the flat spreadsheet rows into one NormalizedDay per challenge day.

The spreadsheet only fills Day/DayTitle/DayFocus on the first row of each
day; the rows below leave them blank. Each of those three columns is carried
forward from the nearest preceding non-blank cell.

Rows without an exercise name are kept as day markers: they add notes but no
exercise, so a day made only of marker rows is a rest day.
"""

import re
import logging
from typing import Dict, List, Optional

from .models import WorkoutRow, ExerciseSpec, NormalizedDay

logger = logging.getLogger(__name__)


DAY_PATTERN = re.compile(r'^(?:day\s*)?(\d+)$', re.IGNORECASE)  # "3", "Day 3"
LEADING_INT_PATTERN = re.compile(r'^[+-]?\d+')  # "4", "4 sets", "3-4"

DEFAULT_SET_COUNT = 1


def parse_set_count(sets: Optional[str]) -> int:
    """
    Parse the Sets cell as a base-10 integer.

    Reads the leading integer ("4 sets" -> 4); anything unparseable or
    below 1 becomes 1.
    """
    match = LEADING_INT_PATTERN.match((sets or '').strip())
    if not match:
        return DEFAULT_SET_COUNT
    value = int(match.group(0), 10)
    return value if value >= 1 else DEFAULT_SET_COUNT


def parse_day_number(day: Optional[str]) -> Optional[int]:
    """Parse a Day cell ("3" or "Day 3"); None when blank or not a positive number."""
    match = DAY_PATTERN.match((day or '').strip())
    if not match:
        return None
    value = int(match.group(1), 10)
    return value if value >= 1 else None


def _unique_name(name: str, taken: Dict[str, int]) -> str:
    """Suffix repeated names within a day: 'Plank', 'Plank (2)', ..."""
    count = taken.get(name, 0) + 1
    taken[name] = count
    return name if count == 1 else f"{name} ({count})"


def normalize(rows: List[WorkoutRow]) -> List[NormalizedDay]:
    """
    Group plan rows into days.

    Args:
        rows: Spreadsheet rows in file order

    Returns:
        Days in first-seen order, exercises in row order
    """
    days: Dict[int, NormalizedDay] = {}
    names_by_day: Dict[int, Dict[str, int]] = {}

    last_day: Optional[int] = None
    last_title = ''
    last_focus = ''

    for row in rows:
        day_cell = row.day.strip()
        if day_cell:
            day_number = parse_day_number(day_cell)
            if day_number is None:
                # Continuation rows belong to this unreadable day, not the previous one
                logger.warning(f"Row {row.source_row}: unreadable Day value {day_cell!r}, skipping row")
                last_day = None
                continue
            last_day = day_number

        if row.day_title.strip():
            last_title = row.day_title.strip()
        if row.day_focus.strip():
            last_focus = row.day_focus.strip()

        if last_day is None:
            logger.warning(f"Row {row.source_row}: no readable Day before this row, skipping")
            continue

        day = days.get(last_day)
        if day is None:
            day = NormalizedDay(day_number=last_day, title=last_title, focus=last_focus)
            days[last_day] = day
            names_by_day[last_day] = {}

        notes = row.notes.strip()
        name = row.exercise_name.strip()

        if not name:
            # Day marker row
            if notes:
                day.notes.append(notes)
            continue

        day.exercises.append(ExerciseSpec(
            name=_unique_name(name, names_by_day[last_day]),
            set_count=parse_set_count(row.sets),
            reps=row.reps.strip() or None,
            category=row.category.strip() or None,
            notes=notes or None,
        ))

    result = list(days.values())
    rest_days = sum(1 for day in result if day.is_rest_day)
    logger.info(f"Normalized plan: {len(result)} days ({rest_days} rest) from {len(rows)} rows")
    return result
