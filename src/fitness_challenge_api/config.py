"""Configuration settings for the fitness challenge API."""
import os
from typing import Literal, Optional


EnvironmentType = Literal["development", "staging", "production"]


def _int_env(name: str, default: int) -> int:
    """Read an integer env var, falling back to the default on bad input."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"

    # Supabase
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None

    # Workout plans (CSV exports, one per routine)
    HOME_WORKOUT_PLAN_URL: Optional[str] = None
    GYM_WORKOUT_PLAN_URL: Optional[str] = None
    PLAN_CACHE_TTL_SECONDS: int = 3600
    PLAN_FETCH_TIMEOUT_SECONDS: int = 10

    # Challenge rules
    CHALLENGE_DAYS: int = 45
    REMINDER_HOUR: int = 18

    # Email (Resend)
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "Challenge Bot <onboarding@resend.dev>"

    # Public site, used for share links
    SITE_URL: str = "http://localhost:3000"

    # Shared secret for the scheduled jobs
    CRON_SECRET: Optional[str] = None

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"

        # Supabase
        self.SUPABASE_URL = os.getenv("SUPABASE_URL")
        self.SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        self.SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")

        # Workout plans
        self.HOME_WORKOUT_PLAN_URL = os.getenv("HOME_WORKOUT_PLAN_URL")
        self.GYM_WORKOUT_PLAN_URL = os.getenv("GYM_WORKOUT_PLAN_URL")
        self.PLAN_CACHE_TTL_SECONDS = _int_env("PLAN_CACHE_TTL_SECONDS", 3600)
        self.PLAN_FETCH_TIMEOUT_SECONDS = _int_env("PLAN_FETCH_TIMEOUT_SECONDS", 10)

        # Challenge rules
        self.CHALLENGE_DAYS = _int_env("CHALLENGE_DAYS", 45)
        self.REMINDER_HOUR = _int_env("REMINDER_HOUR", 18)

        # Email
        self.RESEND_API_KEY = os.getenv("RESEND_API_KEY")
        self.EMAIL_FROM = os.getenv("EMAIL_FROM", self.EMAIL_FROM)

        self.SITE_URL = os.getenv("SITE_URL", self.SITE_URL).rstrip("/")
        self.CRON_SECRET = os.getenv("CRON_SECRET")


settings = Settings()
