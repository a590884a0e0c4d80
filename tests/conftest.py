"""
Test fixtures for fitness-challenge-api.

Provides in-memory stand-ins for Supabase and the plan source so route
tests run offline and deterministically.
"""

import sys
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Repo root: .../fitness-challenge-api
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import fitness_challenge_api...`
p_str = str(SRC)
if p_str not in sys.path:
    sys.path.insert(0, p_str)

from fitness_challenge_api.main import app
from fitness_challenge_api.auth import get_current_user
from fitness_challenge_api.api.routes import get_plan_service, get_profile_service
from fitness_challenge_api.errors import (
    DayAlreadyCompletedError,
    InvalidWeightError,
    PlanUnavailableError,
    ProfileNotFoundError,
    ProgressConflictError,
)
from fitness_challenge_api.models import (
    MIN_WEIGHT_KG,
    DailyProgressEntry,
    Profile,
    Routine,
    WeeklySummary,
    WeightEntry,
)
from fitness_challenge_api.plan import NormalizedDay, normalize, read_workout_rows
from fitness_challenge_api.services.profile_service import ProfileService
from fitness_challenge_api.services.weekly_summary import build_weekly_summary


# ---------------------------------------------------------------------------
# Sample plan
# ---------------------------------------------------------------------------


SAMPLE_PLAN_CSV = """Day,DayTitle,DayFocus,Category,ExerciseName,Sets,Reps,Cardio / Notes
1,Push,Chest & Triceps,Main,Push-ups,4,10,
,,,Main,Squats,3,12,
,,,Core,Plank,2,AMRAP,Hold with a flat back
2,Rest,Recovery,,,,,Walk 30 minutes
3,Legs,Lower Body,Main,Lunges,abc,10,
"""


@pytest.fixture
def sample_plan_csv() -> str:
    return SAMPLE_PLAN_CSV


@pytest.fixture
def sample_plan() -> List[NormalizedDay]:
    return normalize(read_workout_rows(SAMPLE_PLAN_CSV))


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


TEST_USER_ID = "test-user-123"
OTHER_USER_ID = "other-user-456"


async def mock_get_current_user() -> str:
    """Mock auth dependency that returns a test user."""
    return TEST_USER_ID


class FakeProfileService:
    """In-memory profiles table with the ProfileService interface."""

    def __init__(self, profiles: Optional[Dict[str, Profile]] = None):
        self.profiles: Dict[str, Profile] = profiles or {}
        self.completions: List[tuple] = []
        self.weights: List[WeightEntry] = []

    def get_profile(self, user_id: str) -> Profile:
        if user_id not in self.profiles:
            raise ProfileNotFoundError(f"No profile for user {user_id}")
        return self.profiles[user_id]

    def get_public_name(self, user_id: str) -> Optional[str]:
        profile = self.profiles.get(user_id)
        return profile.name if profile else None

    def complete_day(self, caller_id: str, profile: Profile, today: date) -> Profile:
        ProfileService._check_identity(caller_id, profile.id)
        if profile.last_completed_day == today:
            raise DayAlreadyCompletedError("already done")
        stored = self.get_profile(profile.id)
        if stored.current_streak != profile.current_streak:
            raise ProgressConflictError("streak changed")
        updated = stored.model_copy(update={
            "current_streak": profile.current_streak + 1,
            "last_completed_day": today,
        })
        self.profiles[profile.id] = updated
        self.completions.append((caller_id, profile.id, today))
        return updated

    def reset_progress(self, caller_id: str, user_id: str) -> Profile:
        ProfileService._check_identity(caller_id, user_id)
        profile = self.get_profile(user_id)
        updated = profile.model_copy(update={"current_streak": 0, "last_completed_day": None})
        self.profiles[user_id] = updated
        return updated

    def log_weight(self, caller_id: str, user_id: str, weight: float, logged_at: datetime) -> WeightEntry:
        ProfileService._check_identity(caller_id, user_id)
        if weight <= MIN_WEIGHT_KG:
            raise InvalidWeightError("too light")
        profile = self.get_profile(user_id)
        self.profiles[user_id] = profile.model_copy(update={"current_weight": weight})
        entry = WeightEntry(log_date=logged_at, weight=weight)
        self.weights.append(entry)
        return entry

    def get_weekly_summary(self, user_id: str, today: date) -> WeeklySummary:
        self.get_profile(user_id)
        progress = [
            DailyProgressEntry(workout_date=day, is_completed=True)
            for caller, uid, day in self.completions if uid == user_id
        ]
        return build_weekly_summary(self.weights, progress, today)


class FakePlanService:
    """Returns a fixed plan, or raises when none is set."""

    def __init__(self, plan: Optional[List[NormalizedDay]] = None):
        self.plan = plan
        self.requested: List[Optional[Routine]] = []

    async def get_plan(self, routine: Optional[Routine]) -> List[NormalizedDay]:
        self.requested.append(routine)
        if routine is None:
            raise PlanUnavailableError("Your workout routine is not configured correctly.")
        if self.plan is None:
            raise PlanUnavailableError("Could not load the workout plan. Please try again later.")
        return self.plan


def make_profile(**overrides) -> Profile:
    values = {
        "id": TEST_USER_ID,
        "name": "Asha",
        "email": "asha@example.com",
        "current_streak": 0,
        "last_completed_day": None,
        "workout_routine": "Home",
        "timezone": "Asia/Kolkata",
    }
    values.update(overrides)
    return Profile(**values)


@pytest.fixture
def profile_service() -> FakeProfileService:
    return FakeProfileService({TEST_USER_ID: make_profile()})


@pytest.fixture
def plan_service(sample_plan) -> FakePlanService:
    return FakePlanService(sample_plan)


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(profile_service, plan_service) -> TestClient:
    """Per-test FastAPI TestClient wired to the fakes."""
    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[get_profile_service] = lambda: profile_service
    app.dependency_overrides[get_plan_service] = lambda: plan_service
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Environment Variables
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set mock environment variables for tests."""
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test-supabase-key")
    monkeypatch.setenv("CRON_SECRET", "test-cron-secret")
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
