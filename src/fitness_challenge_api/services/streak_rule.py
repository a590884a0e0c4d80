"""
Streak progression rules and the scheduled jobs that apply them.

Two passes run on a schedule:

- Reminder pass (hourly): users with a running streak who have not completed
  today (UTC) get a reminder when it is REMINDER_HOUR in their own time zone.
- Nightly pass (after UTC midnight): users whose last completed day is not
  yesterday (UTC) lose their streak; users who completed yesterday and sit on
  a multiple of 7 get a milestone email.

Streak resets are the authoritative side effect and are written before any
email goes out. Email is best-effort: a failed send is logged and counted,
never rolled back and never allowed to stop the batch.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from fitness_challenge_api.config import settings
from fitness_challenge_api.errors import NotificationDeliveryError
from fitness_challenge_api.models import (
    MILESTONE_INTERVAL,
    NotificationEvent,
    NotificationKind,
    Profile,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------


def yesterday_utc(now: datetime) -> date:
    """The calendar day before `now`, in UTC."""
    return (now.astimezone(timezone.utc) - timedelta(days=1)).date()


def today_utc(now: datetime) -> date:
    return now.astimezone(timezone.utc).date()


def is_milestone(streak: int) -> bool:
    return streak > 0 and streak % MILESTONE_INTERVAL == 0


def local_hour(now: datetime, tz_name: Optional[str]) -> int:
    """Wall-clock hour of `now` in the given IANA zone; unknown zones count as UTC."""
    try:
        zone = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone {tz_name!r}, using UTC")
        zone = ZoneInfo("UTC")
    return now.astimezone(zone).hour


def _event(profile: Profile, kind: NotificationKind) -> NotificationEvent:
    return NotificationEvent(
        user_id=profile.id,
        user_email=profile.email,
        user_name=profile.name,
        kind=kind,
        streak_value=profile.current_streak,
    )


@dataclass
class NightlyDecision:
    """Outcome of the nightly rule for one user."""
    reset: bool = False
    event: Optional[NotificationEvent] = None


def evaluate_nightly(profile: Profile, yesterday: date) -> NightlyDecision:
    """
    Decide whether a user's streak resets or earns a milestone.

    Reset when a streak is running but yesterday was not completed.
    Milestone when yesterday was completed and the streak is a multiple of 7.
    The two are mutually exclusive.
    """
    if profile.current_streak <= 0:
        return NightlyDecision()

    if profile.last_completed_day != yesterday:
        return NightlyDecision(reset=True, event=_event(profile, NotificationKind.RESET))

    if is_milestone(profile.current_streak):
        return NightlyDecision(event=_event(profile, NotificationKind.MILESTONE))

    return NightlyDecision()


def evaluate_reminder(profile: Profile, now: datetime, reminder_hour: int) -> Optional[NotificationEvent]:
    """Reminder event for a user who still owes today's workout, at their local reminder hour."""
    if profile.current_streak <= 0:
        return None
    if profile.last_completed_day == today_utc(now):
        return None
    if local_hour(now, profile.timezone) != reminder_hour:
        return None
    return _event(profile, NotificationKind.REMINDER)


# ---------------------------------------------------------------------------
# Batch jobs
# ---------------------------------------------------------------------------


class BatchReport(BaseModel):
    """Summary of one scheduled run."""
    job: str
    run_date: date
    evaluated: int = 0
    resets: int = 0
    milestones: int = 0
    reminders: int = 0
    skipped: int = 0
    update_failures: int = 0
    emails_sent: int = 0
    email_failures: int = 0


class StreakProgressionJob:
    """
    Applies the streak rules to every active profile.

    Args:
        repository: object with `list_active_profiles()` and `reset_streak(profile)`
            (normally a ProfileService)
        notifier: object with async `send(event)` (normally an EmailService)
        reminder_hour: local hour at which reminders go out
    """

    def __init__(self, repository, notifier, reminder_hour: Optional[int] = None):
        self.repository = repository
        self.notifier = notifier
        self.reminder_hour = settings.REMINDER_HOUR if reminder_hour is None else reminder_hour

    async def _notify(self, events: List[NotificationEvent], report: BatchReport) -> None:
        for event in events:
            try:
                if await self.notifier.send(event):
                    report.emails_sent += 1
            except NotificationDeliveryError as e:
                report.email_failures += 1
                logger.error(str(e))
            except Exception as e:
                report.email_failures += 1
                logger.exception(f"Unexpected error sending {event.kind.value} email to {event.user_id}: {e}")

    async def run_nightly(self, now: Optional[datetime] = None) -> BatchReport:
        """Reset missed streaks, then send reset and milestone emails."""
        now = now or datetime.now(timezone.utc)
        yesterday = yesterday_utc(now)
        report = BatchReport(job="daily-reset", run_date=today_utc(now))

        profiles = await asyncio.to_thread(self.repository.list_active_profiles)
        report.evaluated = len(profiles)

        events: List[NotificationEvent] = []
        for profile in profiles:
            decision = evaluate_nightly(profile, yesterday)

            if decision.reset:
                try:
                    updated = await asyncio.to_thread(self.repository.reset_streak, profile)
                except Exception as e:
                    report.update_failures += 1
                    logger.error(f"Failed to reset streak for {profile.id}: {e}")
                    continue
                if not updated:
                    # Completed or reset concurrently; leave it alone
                    report.skipped += 1
                    logger.info(f"Streak for {profile.id} changed during the run, not reset")
                    continue
                report.resets += 1
            elif decision.event:
                report.milestones += 1

            if decision.event:
                events.append(decision.event)

        logger.info(
            f"Daily reset for {yesterday.isoformat()}: {report.resets} reset, "
            f"{report.milestones} milestones out of {report.evaluated} active users"
        )

        await self._notify(events, report)
        return report

    async def run_reminders(self, now: Optional[datetime] = None) -> BatchReport:
        """Send reminders to users whose local time is the reminder hour."""
        now = now or datetime.now(timezone.utc)
        report = BatchReport(job="daily-reminder", run_date=today_utc(now))

        profiles = await asyncio.to_thread(self.repository.list_active_profiles)
        report.evaluated = len(profiles)

        events = []
        for profile in profiles:
            event = evaluate_reminder(profile, now, self.reminder_hour)
            if event:
                events.append(event)
        report.reminders = len(events)

        logger.info(f"Reminder pass: {report.reminders} of {report.evaluated} active users due")

        await self._notify(events, report)
        return report
