"""API routes for the challenge dashboard, profile, weight log and certificate."""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fitness_challenge_api.auth import get_current_user
from fitness_challenge_api.config import settings
from fitness_challenge_api.errors import (
    BackendUnavailableError,
    ChallengeError,
    DayAlreadyCompletedError,
    DayNotCompletableError,
    InvalidWeightError,
    PlanUnavailableError,
    ProfileNotFoundError,
    ProgressConflictError,
    UnauthorizedCompletionError,
)
from fitness_challenge_api.models import Profile, Routine, WeeklySummary
from fitness_challenge_api.services.daily_resolver import (
    ExerciseTracker,
    SetProgress,
    resolve_today,
)
from fitness_challenge_api.services.plan_service import PlanService
from fitness_challenge_api.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

BUILD_TIMESTAMP = datetime.now().isoformat()

router = APIRouter()

# Shared service instances (the plan cache lives on the PlanService)
_profile_service = ProfileService()
_plan_service = PlanService()


def get_profile_service() -> ProfileService:
    return _profile_service


def get_plan_service() -> PlanService:
    return _plan_service


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

ERROR_STATUS = [
    (ProfileNotFoundError, 404),
    (UnauthorizedCompletionError, 403),
    (DayNotCompletableError, 409),
    (DayAlreadyCompletedError, 409),
    (ProgressConflictError, 409),
    (InvalidWeightError, 422),
    (PlanUnavailableError, 503),
    (BackendUnavailableError, 503),
]


def to_http_error(error: ChallengeError) -> HTTPException:
    """Translate a domain error into an HTTPException."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    logger.exception(f"Unmapped challenge error: {error}")
    return HTTPException(status_code=500, detail="Internal error")


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    id: str
    name: Optional[str] = None
    current_streak: int
    current_day: int
    last_completed_day: Optional[date] = None
    workout_routine: Optional[Routine] = None
    timezone: str
    current_weight: Optional[float] = None
    certificate_unlocked: bool


class TodayResponse(BaseModel):
    user_name: str
    current_streak: int
    kind: str
    day_number: int
    challenge_days: int
    title: str = ""
    focus: str = ""
    notes: List[str] = Field(default_factory=list)
    routine: Routine
    exercises: List[ExerciseTracker] = Field(default_factory=list)
    can_complete: bool
    is_completable: bool


class CompleteDayRequest(BaseModel):
    """Set progress as tracked on the dashboard, keyed by exercise name."""
    progress: Dict[str, SetProgress] = Field(default_factory=dict)


class CompleteDayResponse(BaseModel):
    success: bool = True
    completed_day: int
    current_streak: int
    last_completed_day: Optional[date] = None
    certificate_unlocked: bool


class CertificateResponse(BaseModel):
    name: str
    routine: Optional[Routine] = None
    challenge_days: int
    share_url: str


class ShareResponse(BaseModel):
    title: str
    description: str
    url: str
    image_url: str


def _certificate_unlocked(profile: Profile) -> bool:
    return profile.current_streak >= settings.CHALLENGE_DAYS


def _profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        name=profile.name,
        current_streak=profile.current_streak,
        current_day=profile.current_day,
        last_completed_day=profile.last_completed_day,
        workout_routine=profile.workout_routine,
        timezone=profile.timezone,
        current_weight=profile.current_weight,
        certificate_unlocked=_certificate_unlocked(profile),
    )


# ---------------------------------------------------------------------------
# Version / health
# ---------------------------------------------------------------------------


@router.get("/version")
async def get_version():
    """Get API version and build information."""
    return JSONResponse({
        "service": "fitness-challenge-api",
        "build_timestamp": BUILD_TIMESTAMP,
        "environment": settings.ENVIRONMENT,
    })


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"ok": True}


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/me/profile", response_model=ProfileResponse)
def get_my_profile(
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """The caller's profile and challenge status."""
    try:
        return _profile_response(profiles.get_profile(user_id))
    except ChallengeError as e:
        raise to_http_error(e)


@router.post("/me/reset", response_model=ProfileResponse)
def reset_my_progress(
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Restart the challenge from day 1."""
    try:
        return _profile_response(profiles.reset_progress(caller_id=user_id, user_id=user_id))
    except ChallengeError as e:
        raise to_http_error(e)


# ---------------------------------------------------------------------------
# Today
# ---------------------------------------------------------------------------


@router.get("/today", response_model=TodayResponse)
async def get_today(
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
    plans: PlanService = Depends(get_plan_service),
):
    """
    Resolve today's workout for the caller.

    Returns the workout with unchecked set slots, a rest day, or the
    terminal "complete" view once the challenge is finished.
    """
    try:
        profile = await asyncio.to_thread(profiles.get_profile, user_id)
        plan = await plans.get_plan(profile.workout_routine)
    except ChallengeError as e:
        raise to_http_error(e)

    view = resolve_today(
        plan,
        profile.current_streak,
        routine=profile.workout_routine or Routine.HOME,
        challenge_days=settings.CHALLENGE_DAYS,
    )

    return TodayResponse(
        user_name=profile.display_name,
        current_streak=profile.current_streak,
        kind=view.kind,
        day_number=view.day_number,
        challenge_days=view.challenge_days,
        title=view.title,
        focus=view.focus,
        notes=view.notes,
        routine=view.routine,
        exercises=view.exercises,
        can_complete=view.can_complete,
        is_completable=view.is_completable(),
    )


@router.post("/today/complete", response_model=CompleteDayResponse)
async def complete_today(
    request: CompleteDayRequest,
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
    plans: PlanService = Depends(get_plan_service),
):
    """
    Mark today's day complete.

    The submitted set progress is checked against today's plan on the
    server; the streak only advances when every set is done (or it is a
    rest day). The update is always applied to the caller's own profile
    and is guarded on the streak the sets were checked against.
    """
    try:
        profile = await asyncio.to_thread(profiles.get_profile, user_id)
        plan = await plans.get_plan(profile.workout_routine)

        view = resolve_today(
            plan,
            profile.current_streak,
            routine=profile.workout_routine or Routine.HOME,
            challenge_days=settings.CHALLENGE_DAYS,
        )
        if not view.can_complete:
            raise DayNotCompletableError("The challenge is already complete")

        view.apply_progress(request.progress)
        if not view.is_completable():
            raise DayNotCompletableError(f"Finish every set of day {view.day_number} first")

        today = datetime.now(timezone.utc).date()
        updated = await asyncio.to_thread(profiles.complete_day, user_id, profile, today)
    except ChallengeError as e:
        raise to_http_error(e)

    return CompleteDayResponse(
        completed_day=view.day_number,
        current_streak=updated.current_streak,
        last_completed_day=updated.last_completed_day,
        certificate_unlocked=_certificate_unlocked(updated),
    )


# ---------------------------------------------------------------------------
# Certificate / share
# ---------------------------------------------------------------------------


@router.get("/me/certificate", response_model=CertificateResponse)
def get_my_certificate(
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Certificate data; locked until the full challenge is completed."""
    try:
        profile = profiles.get_profile(user_id)
    except ChallengeError as e:
        raise to_http_error(e)

    if not _certificate_unlocked(profile):
        raise HTTPException(
            status_code=403,
            detail=f"Complete {settings.CHALLENGE_DAYS} consecutive days to unlock the certificate",
        )

    return CertificateResponse(
        name=profile.display_name,
        routine=profile.workout_routine,
        challenge_days=settings.CHALLENGE_DAYS,
        share_url=f"{settings.SITE_URL}/share/{profile.id}",
    )


@router.get("/share/{user_id}", response_model=ShareResponse)
def get_share_metadata(
    user_id: str,
    profiles: ProfileService = Depends(get_profile_service),
):
    """Public link-preview metadata for a completion certificate."""
    try:
        name = profiles.get_public_name(user_id)
    except ChallengeError as e:
        raise to_http_error(e)

    user_name = name or "A Challenger"
    return ShareResponse(
        title=f"{user_name} Completed the {settings.CHALLENGE_DAYS}-Day Fitness Challenge!",
        description="Join the challenge and start your own transformation journey.",
        url=f"{settings.SITE_URL}/share/{user_id}",
        image_url=f"{settings.SITE_URL}/api/og/{user_id}",
    )


# ---------------------------------------------------------------------------
# Weight / weekly summary
# ---------------------------------------------------------------------------


class LogWeightRequest(BaseModel):
    weight: float  # kg


class LogWeightResponse(BaseModel):
    success: bool = True
    weight: float
    log_date: datetime


@router.post("/me/weight", response_model=LogWeightResponse)
def log_my_weight(
    request: LogWeightRequest,
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Update the current weight and add it to the weight history."""
    try:
        entry = profiles.log_weight(
            caller_id=user_id,
            user_id=user_id,
            weight=request.weight,
            logged_at=datetime.now(timezone.utc),
        )
    except ChallengeError as e:
        raise to_http_error(e)

    return LogWeightResponse(weight=entry.weight, log_date=entry.log_date)


@router.get("/me/weekly-summary", response_model=WeeklySummary)
def get_my_weekly_summary(
    user_id: str = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Weight and completed days over the last seven days."""
    try:
        return profiles.get_weekly_summary(user_id, datetime.now(timezone.utc).date())
    except ChallengeError as e:
        raise to_http_error(e)
