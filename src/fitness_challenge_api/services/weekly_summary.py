"""
Weekly summary.

Folds the raw `weight_history` and `daily_progress` rows of the last seven
days into one entry per calendar day, oldest first.
"""
from datetime import date, timedelta, timezone
from typing import Dict, List

from fitness_challenge_api.models import (
    DailyProgressEntry,
    SummaryDay,
    WeeklySummary,
    WeightEntry,
)

SUMMARY_DAYS = 7


def summary_start(today: date) -> date:
    """First day covered by the summary ending on `today`."""
    return today - timedelta(days=SUMMARY_DAYS - 1)


def _entry_day(entry: WeightEntry) -> date:
    log_date = entry.log_date
    if log_date.tzinfo is not None:
        log_date = log_date.astimezone(timezone.utc)
    return log_date.date()


def build_weekly_summary(
    weights: List[WeightEntry],
    progress: List[DailyProgressEntry],
    today: date,
) -> WeeklySummary:
    """
    Build the seven-day summary ending on `today`.

    A day with several weight entries shows the last one logged. Entries
    outside the window are ignored.
    """
    start = summary_start(today)

    weight_by_day: Dict[date, float] = {}
    for entry in sorted(weights, key=lambda e: e.log_date):
        weight_by_day[_entry_day(entry)] = entry.weight

    completed_days = {p.workout_date for p in progress if p.is_completed}

    days = []
    for offset in range(SUMMARY_DAYS):
        day = start + timedelta(days=offset)
        days.append(SummaryDay(
            day=day,
            weight=weight_by_day.get(day),
            completed=day in completed_days,
        ))

    logged = [d.weight for d in days if d.weight is not None]
    return WeeklySummary(
        start_date=start,
        end_date=today,
        days=days,
        days_completed=sum(1 for d in days if d.completed),
        latest_weight=logged[-1] if logged else None,
    )
