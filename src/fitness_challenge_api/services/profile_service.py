"""
Profile service.

Reads and writes challenge progress in the Supabase `profiles` table, plus
the `weight_history` and `daily_progress` tables behind the weekly summary.

Every mutating call takes the authenticated caller's id explicitly and
refuses to touch another user's row. Streak writes are single-row updates
guarded on the streak value that was read, so a concurrent completion and
nightly reset can never both apply to the same starting state.
"""
import logging
import math
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from fitness_challenge_api.errors import (
    BackendUnavailableError,
    DayAlreadyCompletedError,
    InvalidWeightError,
    ProfileNotFoundError,
    ProgressConflictError,
    UnauthorizedCompletionError,
)
from fitness_challenge_api.models import (
    MIN_WEIGHT_KG,
    DailyProgressEntry,
    Profile,
    WeeklySummary,
    WeightEntry,
)
from fitness_challenge_api.services.supabase_client import get_supabase_client
from fitness_challenge_api.services.weekly_summary import build_weekly_summary, summary_start

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, name, email, current_streak, last_completed_day, workout_routine, timezone, current_weight"

# PostgREST caps responses at 1000 rows by default
PAGE_SIZE = 1000


class ProfileService:
    """Access to `profiles` and the per-user history tables."""

    TABLE_NAME = "profiles"
    WEIGHT_TABLE = "weight_history"
    PROGRESS_TABLE = "daily_progress"

    def __init__(self, client_factory: Callable[[], Any] = get_supabase_client):
        self._client_factory = client_factory

    def _client(self):
        client = self._client_factory()
        if not client:
            raise BackendUnavailableError("Profile storage is not configured")
        return client

    @staticmethod
    def _check_identity(caller_id: str, user_id: str) -> None:
        if not caller_id or caller_id != user_id:
            logger.warning(f"Rejected progress change on {user_id} by {caller_id}")
            raise UnauthorizedCompletionError("You can only change your own progress")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> Profile:
        """
        Fetch one profile.

        Raises:
            ProfileNotFoundError: no row for this user
            BackendUnavailableError: Supabase unconfigured or failing
        """
        client = self._client()
        try:
            result = (
                client.table(self.TABLE_NAME)
                .select(PROFILE_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise BackendUnavailableError("Could not load profile") from e

        if not result.data:
            raise ProfileNotFoundError(f"No profile for user {user_id}")
        return Profile(**result.data[0])

    def get_public_name(self, user_id: str) -> Optional[str]:
        """Name for share pages; None when the user or name is missing."""
        try:
            return self.get_profile(user_id).name
        except ProfileNotFoundError:
            return None

    def list_active_profiles(self) -> List[Profile]:
        """All profiles with a running streak, read page by page."""
        client = self._client()
        profiles: List[Profile] = []
        start = 0

        while True:
            try:
                result = (
                    client.table(self.TABLE_NAME)
                    .select(PROFILE_COLUMNS)
                    .gt("current_streak", 0)
                    .order("id")
                    .range(start, start + PAGE_SIZE - 1)
                    .execute()
                )
            except Exception as e:
                logger.error(f"Error listing active profiles: {e}")
                raise BackendUnavailableError("Could not load profiles") from e

            rows = result.data or []
            for row in rows:
                try:
                    profiles.append(Profile(**row))
                except ValueError as e:
                    logger.error(f"Skipping unreadable profile row {row.get('id')}: {e}")
            if len(rows) < PAGE_SIZE:
                break
            start += PAGE_SIZE

        return profiles

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _guarded_update(self, user_id: str, expected_streak: int, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        result = (
            self._client().table(self.TABLE_NAME)
            .update(values)
            .eq("id", user_id)
            .eq("current_streak", expected_streak)
            .execute()
        )
        return result.data or []

    def complete_day(self, caller_id: str, profile: Profile, today: date) -> Profile:
        """
        Advance the streak of an already-read profile by one and stamp today's date.

        The write is guarded on `profile.current_streak`, the streak the caller
        checked today's sets against. The row is not read again here, so a
        streak that moved in between is a conflict, never a different day.

        Raises:
            UnauthorizedCompletionError: caller_id is not the profile's id (nothing is written)
            DayAlreadyCompletedError: a day was already completed on `today`
            ProgressConflictError: the streak changed since it was read
        """
        self._check_identity(caller_id, profile.id)

        if profile.last_completed_day == today:
            raise DayAlreadyCompletedError(f"Day already completed on {today.isoformat()}")

        new_streak = profile.current_streak + 1
        try:
            rows = self._guarded_update(profile.id, profile.current_streak, {
                "current_streak": new_streak,
                "last_completed_day": today.isoformat(),
            })
        except Exception as e:
            logger.error(f"Error completing day for {profile.id}: {e}")
            raise BackendUnavailableError("Could not save progress") from e

        if not rows:
            raise ProgressConflictError("Progress changed while saving, reload and try again")

        self._record_daily_progress(profile.id, today)

        logger.info(f"User {profile.id} completed day {new_streak}")
        return Profile(**rows[0])

    def _record_daily_progress(self, user_id: str, workout_date: date) -> None:
        """Log the completion for the weekly summary; the streak is already saved."""
        try:
            (
                self._client().table(self.PROGRESS_TABLE)
                .upsert(
                    {"user_id": user_id, "workout_date": workout_date.isoformat(), "is_completed": True},
                    on_conflict="user_id,workout_date",
                )
                .execute()
            )
        except Exception as e:
            logger.error(f"Error recording daily progress for {user_id} on {workout_date.isoformat()}: {e}")

    def reset_progress(self, caller_id: str, user_id: str) -> Profile:
        """User-initiated restart from day 1."""
        self._check_identity(caller_id, user_id)

        try:
            result = (
                self._client().table(self.TABLE_NAME)
                .update({"current_streak": 0, "last_completed_day": None})
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error resetting progress for {user_id}: {e}")
            raise BackendUnavailableError("Could not reset progress") from e

        if not result.data:
            raise ProfileNotFoundError(f"No profile for user {user_id}")

        logger.info(f"User {user_id} reset their progress")
        return Profile(**result.data[0])

    def reset_streak(self, profile: Profile) -> bool:
        """
        Nightly reset of a missed streak.

        Returns:
            False when the row changed since it was read (left untouched)
        """
        rows = self._guarded_update(profile.id, profile.current_streak, {
            "current_streak": 0,
            "last_completed_day": None,
        })
        return bool(rows)

    # ------------------------------------------------------------------
    # Weight and weekly summary
    # ------------------------------------------------------------------

    def log_weight(self, caller_id: str, user_id: str, weight: float, logged_at: datetime) -> WeightEntry:
        """
        Set the profile's current weight and append it to the weight history.

        Raises:
            UnauthorizedCompletionError: caller_id is not user_id
            InvalidWeightError: weight is not above MIN_WEIGHT_KG
            ProfileNotFoundError: no row for this user
        """
        self._check_identity(caller_id, user_id)

        if not math.isfinite(weight) or weight <= MIN_WEIGHT_KG:
            raise InvalidWeightError(f"Please enter a valid weight greater than {MIN_WEIGHT_KG} kg.")

        client = self._client()
        try:
            result = (
                client.table(self.TABLE_NAME)
                .update({"current_weight": weight})
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error updating weight for {user_id}: {e}")
            raise BackendUnavailableError("Could not save weight") from e

        if not result.data:
            raise ProfileNotFoundError(f"No profile for user {user_id}")

        entry = WeightEntry(log_date=logged_at, weight=weight)
        try:
            (
                client.table(self.WEIGHT_TABLE)
                .insert({"user_id": user_id, "weight": weight, "log_date": logged_at.isoformat()})
                .execute()
            )
        except Exception as e:
            logger.error(f"Error logging weight history for {user_id}: {e}")
            raise BackendUnavailableError("Could not save weight history") from e

        logger.info(f"User {user_id} logged weight {weight} kg")
        return entry

    def get_weekly_summary(self, user_id: str, today: date) -> WeeklySummary:
        """Weight entries and completed days of the seven days ending on `today`."""
        client = self._client()
        since = summary_start(today).isoformat()

        try:
            weight_result = (
                client.table(self.WEIGHT_TABLE)
                .select("log_date, weight")
                .eq("user_id", user_id)
                .gte("log_date", since)
                .order("log_date")
                .execute()
            )
            progress_result = (
                client.table(self.PROGRESS_TABLE)
                .select("workout_date, is_completed")
                .eq("user_id", user_id)
                .gte("workout_date", since)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error loading weekly summary for {user_id}: {e}")
            raise BackendUnavailableError("Could not load summary data") from e

        weights = [WeightEntry(**row) for row in weight_result.data or []]
        progress = [DailyProgressEntry(**row) for row in progress_result.data or []]
        return build_weekly_summary(weights, progress, today)
