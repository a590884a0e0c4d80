"""
Cron API Routes

Entry points for the scheduler:
- POST /cron/daily-reminder - hourly; reminds users at their local reminder hour
- POST /cron/daily-reset - once a day after UTC midnight; resets missed streaks
  and sends milestone emails
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from fitness_challenge_api.auth import require_cron_secret
from fitness_challenge_api.errors import ChallengeError
from fitness_challenge_api.services.email_service import EmailService
from fitness_challenge_api.services.profile_service import ProfileService
from fitness_challenge_api.services.streak_rule import BatchReport, StreakProgressionJob

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(require_cron_secret)],
)


def get_streak_job() -> StreakProgressionJob:
    return StreakProgressionJob(repository=ProfileService(), notifier=EmailService())


@router.post("/daily-reset", response_model=BatchReport)
async def daily_reset(job: StreakProgressionJob = Depends(get_streak_job)):
    """Nightly streak reset and milestone pass."""
    try:
        return await job.run_nightly()
    except ChallengeError as e:
        logger.error(f"Error in daily reset cron: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/daily-reminder", response_model=BatchReport)
async def daily_reminder(job: StreakProgressionJob = Depends(get_streak_job)):
    """Reminder pass."""
    try:
        return await job.run_reminders()
    except ChallengeError as e:
        logger.error(f"Error in reminder cron: {e}")
        raise HTTPException(status_code=503, detail=str(e))
