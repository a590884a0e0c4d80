"""
Plan service.

Fetches the published CSV plan for a routine, reads and normalizes it.
Normalized plans are kept in-process for PLAN_CACHE_TTL_SECONDS per URL.
"""
import logging
import time
from typing import Dict, List, Optional, Tuple

import httpx

from fitness_challenge_api.config import Settings, settings as default_settings
from fitness_challenge_api.errors import PlanFormatError, PlanUnavailableError
from fitness_challenge_api.models import Routine
from fitness_challenge_api.plan import NormalizedDay, normalize, read_workout_rows

logger = logging.getLogger(__name__)


class PlanService:
    """Resolves a routine to its normalized plan."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self._transport = transport
        self._cache: Dict[str, Tuple[float, List[NormalizedDay]]] = {}

    def plan_url_for(self, routine: Optional[Routine]) -> str:
        """
        Raises:
            PlanUnavailableError: routine unset or its URL not configured
        """
        if routine == Routine.HOME:
            url = self.config.HOME_WORKOUT_PLAN_URL
        elif routine == Routine.GYM:
            url = self.config.GYM_WORKOUT_PLAN_URL
        else:
            raise PlanUnavailableError("Your workout routine is not configured correctly.")

        if not url:
            raise PlanUnavailableError(f"The workout plan URL for the {routine.value} routine is not configured.")
        return url

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _fetch_text(self, url: str) -> str:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.config.PLAN_FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text

    async def get_plan(self, routine: Optional[Routine]) -> List[NormalizedDay]:
        """
        Fetch, read and normalize the plan for a routine.

        Raises:
            PlanUnavailableError: unconfigured, unreachable, unreadable or empty plan
        """
        url = self.plan_url_for(routine)
        ttl = self.config.PLAN_CACHE_TTL_SECONDS

        cached = self._cache.get(url)
        if cached and ttl > 0 and time.monotonic() - cached[0] < ttl:
            return cached[1]

        try:
            text = await self._fetch_text(url)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch workout plan from {url}: {e}")
            raise PlanUnavailableError("Could not load the workout plan. Please try again later.") from e

        try:
            plan = normalize(read_workout_rows(text))
        except PlanFormatError as e:
            logger.error(f"Workout plan at {url} is not a usable CSV: {e}")
            raise

        if not plan:
            raise PlanUnavailableError("The workout plan is empty.")

        if ttl > 0:
            self._cache[url] = (time.monotonic(), plan)
        return plan
